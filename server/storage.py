"""Manages uploaded files in the content directory: atomic writes and streaming reads."""

import asyncio
import os
from pathlib import Path
from typing import AsyncIterator, Iterator, Optional

import aiofiles

from common.constants import STREAM_PIECE_SIZE
from common.logging_config import get_logger
from server.exceptions import PayloadTooLargeError

logger = get_logger(__name__)

TEMP_SUFFIX = ".part"


class ContentStorage:
    """
    One file per record, named <id><ext>, in a single directory.

    Writes go to a hidden temp file that is renamed into place, so a reader
    never sees a partial file under its final name.
    """

    def __init__(self, root: str):
        """
        Initialize content storage.

        Args:
            root: Content directory (created on first write)
        """
        self.root = Path(root)

    def ensure_directory(self) -> None:
        """Ensure content directory exists."""
        self.root.mkdir(parents=True, exist_ok=True)

    def get_path(self, stored_filename: str) -> Path:
        """
        Get file path for a stored filename.

        Raises:
            ValueError: If stored_filename is not a plain file name
        """
        if not stored_filename or Path(stored_filename).name != stored_filename or stored_filename in (".", ".."):
            raise ValueError(f"Invalid stored filename: {stored_filename!r}")
        return self.root / stored_filename

    def _temp_path(self, stored_filename: str) -> Path:
        return self.root / f".{stored_filename}{TEMP_SUFFIX}"

    async def write_stream(
        self,
        stored_filename: str,
        pieces: AsyncIterator[bytes],
        max_bytes: int
    ) -> int:
        """
        Write streamed bytes under stored_filename.

        Args:
            stored_filename: Final file name inside the content directory
            pieces: Async iterator of byte pieces
            max_bytes: Abort once more than this many bytes have arrived

        Returns:
            Number of bytes written

        Raises:
            PayloadTooLargeError: If the stream exceeds max_bytes
            OSError: If the write or rename fails
        """
        self.ensure_directory()
        final_path = self.get_path(stored_filename)
        temp_path = self._temp_path(stored_filename)

        written = 0
        try:
            async with aiofiles.open(temp_path, 'wb') as f:
                async for piece in pieces:
                    written += len(piece)
                    if written > max_bytes:
                        raise PayloadTooLargeError(f"File too large: limit is {max_bytes} bytes")
                    await f.write(piece)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            os.replace(temp_path, final_path)
        except BaseException:
            self._discard(temp_path)
            raise

        logger.debug(f"Stored {stored_filename} ({written} bytes)")
        return written

    def read_streaming(self, stored_filename: str, piece_size: int = STREAM_PIECE_SIZE) -> Iterator[bytes]:
        """
        Stream file data in pieces.

        Yields:
            File data pieces

        Raises:
            FileNotFoundError: If the file does not exist
        """
        filepath = self.get_path(stored_filename)
        with open(filepath, 'rb') as f:
            while True:
                piece = f.read(piece_size)
                if not piece:
                    break
                yield piece

    def read_bytes(self, stored_filename: str) -> bytes:
        return self.get_path(stored_filename).read_bytes()

    def exists(self, stored_filename: str) -> bool:
        return self.get_path(stored_filename).is_file()

    def get_size(self, stored_filename: str) -> Optional[int]:
        """
        Returns:
            Size in bytes, or None if the file doesn't exist
        """
        filepath = self.get_path(stored_filename)
        if filepath.is_file():
            return filepath.stat().st_size
        return None

    def delete(self, stored_filename: str) -> bool:
        """
        Delete a stored file.

        Returns:
            True if file was deleted, False if it didn't exist
        """
        filepath = self.get_path(stored_filename)
        try:
            filepath.unlink()
            return True
        except FileNotFoundError:
            return False

    def list_stored(self) -> list[str]:
        """
        List stored file names, excluding in-progress temp files.
        """
        if not self.root.exists():
            return []
        return sorted(
            p.name for p in self.root.iterdir()
            if p.is_file() and not p.name.startswith(".")
        )

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove temp file {path}: {e}")
