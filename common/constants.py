"""Project-wide constants (upload limits, ID scheme, accepted types)."""

from typing import Dict, Tuple

MAX_UPLOAD_BYTES: int = 100 * 1024 * 1024  # 100 MiB

SHORT_ID_ALPHABET: str = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
SHORT_ID_LENGTH: int = 10
SHORT_ID_MAX_ATTEMPTS: int = 5

# Category -> accepted declared MIME types.
ALLOWED_MIME_TYPES: Dict[str, Tuple[str, ...]] = {
    "image": ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"),
    "video": ("video/mp4", "video/webm", "video/quicktime"),
    "audio": ("audio/mpeg", "audio/wav", "audio/ogg"),
    "document": ("application/pdf", "text/plain", "application/zip", "application/x-zip-compressed"),
}

RATE_LIMIT_MAX_ATTEMPTS: int = 50
RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

STREAM_PIECE_SIZE: int = 64 * 1024

UPLOAD_FIELD_NAME: str = "file"
