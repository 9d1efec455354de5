"""Upload progress reporting and size formatting for the CLI."""

from typing import BinaryIO, Callable

ProgressCallback = Callable[[int, int], None]

SIZE_UNITS = ('B', 'KiB', 'MiB', 'GiB', 'TiB')


class ProgressReader:
    """
    Binary file wrapper handed to httpx as a multipart file.

    Reports (bytes_sent, total) to on_progress after every read. The wrapper
    never prints; the caller decides where progress goes.
    """

    def __init__(self, fileobj: BinaryIO, total: int, on_progress: ProgressCallback):
        self._file = fileobj
        self.total = total
        self.sent = 0
        self._on_progress = on_progress

    def read(self, size: int = -1) -> bytes:
        data = self._file.read(size)
        if data:
            self.sent += len(data)
            self._on_progress(self.sent, self.total)
        return data

    def seek(self, offset: int, whence: int = 0) -> int:
        # httpx rewinds before rendering the part; a rewind restarts the count.
        self.sent = self._file.seek(offset, whence)
        return self.sent

    def tell(self) -> int:
        return self._file.tell()

    def fileno(self) -> int:
        # Lets httpx size the part so the request carries a Content-Length.
        return self._file.fileno()


def format_progress(name: str, sent: int, total: int, width: int = 30) -> str:
    """
    Render a one-line progress bar, e.g. "photo.jpg [=====     ] 50.0% 1.00 MiB / 2.00 MiB".
    """
    fraction = min(sent / total, 1.0) if total else 1.0
    filled = int(width * fraction)
    bar = '=' * filled + ' ' * (width - filled)
    return f"{name} [{bar}] {fraction * 100:5.1f}% {format_file_size(sent)} / {format_file_size(total)}"


def format_file_size(size_bytes: int) -> str:
    """
    Format a byte count with binary units ("512 B", "1.50 MiB").
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    size = float(size_bytes)
    for unit in SIZE_UNITS[1:]:
        size /= 1024.0
        if size < 1024.0 or unit == SIZE_UNITS[-1]:
            return f"{size:.2f} {unit}"
