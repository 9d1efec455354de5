"""HTTP client for communicating with a ShortDrop server."""

import mimetypes
import os
import time
import uuid
from pathlib import Path
from typing import Dict, Optional

import httpx

from common.constants import MAX_UPLOAD_BYTES
from common.logging_config import get_logger
from cli.config import Config
from cli.constants import ERROR_MESSAGES, STATUS_MESSAGES
from cli.utils import ProgressCallback, ProgressReader, format_file_size

logger = get_logger(__name__)

CONNECT_FAILED = "Cannot connect to ShortDrop server. Is it running?"
TIMED_OUT = "Request timed out. Server may be overloaded."


def network_error_message(error: httpx.HTTPError) -> str:
    if isinstance(error, httpx.TimeoutException):
        return TIMED_OUT
    if isinstance(error, httpx.ConnectError):
        return CONNECT_FAILED
    return f"Connection interrupted ({type(error).__name__})"


class ShortDropClient:
    """HTTP client for the ShortDrop API."""

    def __init__(self, config: Config):
        """
        Initialize client.

        Args:
            config: Configuration instance
        """
        self.config = config
        self.session = httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized ShortDropClient [base_url={config.get_base_url()}]")

    def close(self) -> None:
        self.session.close()

    def _new_request_headers(self) -> Dict[str, str]:
        self.request_id = str(uuid.uuid4())
        return {'X-Request-ID': self.request_id}

    def _get(self, endpoint: str) -> httpx.Response:
        """
        GET with retries on 5xx responses and connect/timeout failures.

        Only reads go through here; uploads are never replayed.

        Raises:
            ConnectionError: If the last attempt still failed at the network level
        """
        retry = self.config.get_retry_config()
        attempts = retry['max_retries'] + 1
        headers = self._new_request_headers()

        for attempt in range(1, attempts + 1):
            try:
                response = self.session.get(endpoint, headers=headers)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                if attempt == attempts:
                    logger.error(f"GET {endpoint} failed after {attempts} attempt(s): {e} [request_id={self.request_id}]")
                    raise ConnectionError(network_error_message(e)) from e
                reason = type(e).__name__
            else:
                if response.status_code < 500 or attempt == attempts:
                    return response
                reason = f"status={response.status_code}"

            delay = retry['retry_backoff_multiplier'] ** (attempt - 1)
            logger.warning(f"GET {endpoint} {reason}, retry {attempt}/{attempts - 1} in {delay}s [request_id={self.request_id}]")
            time.sleep(delay)

    def _format_error(self, response: httpx.Response) -> str:
        """
        Map an error response to a user-facing message.
        """
        try:
            body = response.json()
            detail = body.get('error', 'Unknown error')
            code = body.get('code', 'UNKNOWN')
        except ValueError:
            detail = response.text or 'Unknown error'
            code = 'UNKNOWN'

        if code in ERROR_MESSAGES:
            message = ERROR_MESSAGES[code]
            if code == 'RATE_LIMITED' and response.headers.get('Retry-After'):
                message += f" (retry in {response.headers['Retry-After']}s)"
            return message

        message = STATUS_MESSAGES.get(response.status_code, detail)
        return f"{message} (Code: {code})" if code != 'UNKNOWN' else message

    def upload(self, file_path: str, on_progress: Optional[ProgressCallback] = None) -> str:
        """
        Upload a file through the programmatic endpoint.

        Args:
            file_path: Path of the local file
            on_progress: Called with (bytes_sent, total) as the body is sent

        Returns:
            Result message with the public URL and id, or an error message
        """
        path = Path(file_path)
        if not path.is_file():
            return f"Error: {file_path} is not a file"

        file_size = path.stat().st_size
        if file_size > MAX_UPLOAD_BYTES:
            return f"Error: {path.name} is {format_file_size(file_size)}, the limit is {format_file_size(MAX_UPLOAD_BYTES)}"

        mime_type = mimetypes.guess_type(path.name)[0] or 'application/octet-stream'
        logger.info(f"Uploading {path} ({file_size} bytes, {mime_type})")

        # Configured timeout plus 0.1s per MiB.
        timeout = self.config.get_timeout() + file_size / (1024 * 1024) * 0.1

        try:
            with open(path, 'rb') as f:
                body = ProgressReader(f, file_size, on_progress or (lambda sent, total: None))
                response = self.session.post(
                    '/api/upload',
                    files={'file': (path.name, body, mime_type)},
                    headers=self._new_request_headers(),
                    timeout=timeout
                )
        except httpx.HTTPError as e:
            logger.error(f"Upload of {path.name} failed: {e} [request_id={self.request_id}]")
            return f"Error: {network_error_message(e)}"

        if response.status_code != 200:
            return f"Upload failed: {self._format_error(response)}"

        data = response.json()
        logger.info(f"Upload successful: {path.name} [id={data['id']}]")
        return (
            f"Uploaded: {data['filename']} ({format_file_size(data['size'])})\n"
            f"URL: {data['url']}\n"
            f"ID: {data['id']}"
        )

    def info(self, file_id: str) -> str:
        """
        Fetch and format metadata for a stored file.
        """
        try:
            response = self._get(f'/api/info/{file_id}')
        except ConnectionError as e:
            return f"Error: {e}"

        if response.status_code != 200:
            return f"Info failed: {self._format_error(response)}"

        data = response.json()['data']
        return "\n".join([
            f"ID:       {data['id']}",
            f"Name:     {data['originalName']}",
            f"Type:     {data['mimeType']} ({data['category']})",
            f"Size:     {format_file_size(data['sizeBytes'])}",
            f"Uploaded: {data['uploadedAt']}",
            f"URL:      {data['publicUrl']}",
        ])

    def download(self, file_id: str, output_path: Optional[str] = None) -> str:
        """
        Download a stored file.

        The body goes to a hidden temp file that is renamed into place once
        complete, so an interrupted transfer never leaves a truncated file.

        Args:
            file_id: Short id of the file
            output_path: Destination path (defaults to the id in the current directory)

        Returns:
            Result message
        """
        destination = Path(output_path) if output_path else Path.cwd() / file_id
        if destination.is_dir():
            destination = destination / file_id
        partial = destination.with_name(f".{destination.name}.part")

        written = 0
        try:
            with self.session.stream('GET', f'/{file_id}', headers=self._new_request_headers()) as response:
                if response.status_code != 200:
                    response.read()
                    return f"Download failed: {self._format_error(response)}"

                destination.parent.mkdir(parents=True, exist_ok=True)
                with open(partial, 'wb') as f:
                    for piece in response.iter_bytes():
                        f.write(piece)
                        written += len(piece)
            os.replace(partial, destination)
        except OSError as e:
            logger.error(f"Failed to write {destination}: {e}")
            partial.unlink(missing_ok=True)
            return f"Download failed: {e}"
        except httpx.HTTPError as e:
            logger.error(f"Download of {file_id} failed after {written} bytes: {e} [request_id={self.request_id}]")
            partial.unlink(missing_ok=True)
            if isinstance(e, (httpx.ConnectError, httpx.TimeoutException)):
                return f"Error: {network_error_message(e)}"
            return f"Download failed: {network_error_message(e)}"

        logger.info(f"Downloaded {file_id} to {destination} ({written} bytes)")
        return f"Downloaded: {destination} ({format_file_size(written)})"
