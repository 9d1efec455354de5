"""CLI entry point."""

import argparse
import os
import sys
from typing import List, Optional, TextIO

from common.logging_config import setup_logging
from cli.client import ShortDropClient
from cli.config import Config
from cli.utils import ProgressCallback, format_progress


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="shortdrop", description="Upload files to a ShortDrop server")
    parser.add_argument("--server", help="Server base URL (overrides config for this run)")
    parser.add_argument("--config", help="Path to config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Upload one or more files")
    upload.add_argument("paths", nargs="+")

    info = subparsers.add_parser("info", help="Show metadata for a file id")
    info.add_argument("file_id")

    download = subparsers.add_parser("download", help="Download a file by id")
    download.add_argument("file_id")
    download.add_argument("-o", "--output", help="Destination file or directory")

    set_server = subparsers.add_parser("set-server", help="Save the default server URL")
    set_server.add_argument("url")

    return parser


def progress_line(name: str, stream: Optional[TextIO] = None) -> ProgressCallback:
    """
    Build an upload progress callback that redraws a single line on stream (stderr by default).
    """
    def report(sent: int, total: int) -> None:
        out = stream or sys.stderr
        out.write("\r" + format_progress(name, sent, total))
        if sent >= total:
            out.write("\n")
        out.flush()

    return report


def run(client: ShortDropClient, args: argparse.Namespace) -> int:
    """
    Execute one parsed command.

    Returns:
        Process exit code
    """
    if args.command == "upload":
        results = [client.upload(path, on_progress=progress_line(os.path.basename(path))) for path in args.paths]
        print("\n".join(results))
        return 0 if all(r.startswith("Uploaded") for r in results) else 1

    if args.command == "info":
        result = client.info(args.file_id)
        print(result)
        return 0 if result.startswith("ID:") else 1

    result = client.download(args.file_id, args.output)
    print(result)
    return 0 if result.startswith("Downloaded") else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for CLI."""
    args = build_parser().parse_args(argv)

    log_level = 'DEBUG' if args.debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    config = Config(args.config) if args.config else Config()

    if args.command == "set-server":
        config.data["server_url"] = args.url.rstrip("/")
        config.save()
        print(f"Server URL saved: {config.get_base_url()}")
        return 0

    if args.server:
        config.data['server_url'] = args.server.rstrip('/')

    client = ShortDropClient(config)
    try:
        return run(client, args)
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        client.close()


if __name__ == "__main__":
    sys.exit(main())
