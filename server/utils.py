"""Utility helper functions for the server."""

import re
import secrets
from datetime import datetime, timezone
from pathlib import PurePosixPath, PureWindowsPath

from common.constants import SHORT_ID_ALPHABET, SHORT_ID_LENGTH

_SAFE_IDENTIFIER = re.compile(r"^[A-Za-z0-9_-]{1,64}$")
_SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,16}$")


def generate_short_id(length: int = SHORT_ID_LENGTH) -> str:
    """
    Generate a short URL-safe identifier from a cryptographic source.

    Args:
        length: Number of characters

    Returns:
        Random alphanumeric string
    """
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(length))


def get_current_timestamp() -> str:
    """
    Get current UTC timestamp in ISO format.

    Returns:
        Current timestamp as ISO format string
    """
    return datetime.now(timezone.utc).isoformat()


def is_safe_identifier(value: str) -> bool:
    """
    Check that an identifier taken from a request path is a safe single path component.
    """
    return bool(value) and _SAFE_IDENTIFIER.match(value) is not None


def display_name(filename: str) -> str:
    """
    Reduce a client-supplied filename to its final component.

    Browsers on Windows may send a full path; both separator styles are stripped.
    """
    name = PureWindowsPath(PurePosixPath(filename or "").name).name
    return name.strip() or "upload"


def file_extension(filename: str) -> str:
    """
    Return the extension (with leading dot) of a client filename, or "" if it is absent or unsafe.
    """
    suffix = PurePosixPath(display_name(filename)).suffix
    if _SAFE_EXTENSION.match(suffix):
        return suffix
    return ""


def normalize_mime_type(content_type: str) -> str:
    """
    Lower-case a declared content type and drop parameters such as charset.
    """
    return (content_type or "").split(";", 1)[0].strip().lower()
