"""Declared-type and size policy for uploads.

The type check trusts the client's declared Content-Type; it does not sniff
content, so a client can upload arbitrary bytes under an allowed label.
"""

from typing import Dict, Mapping, Optional, Sequence

from common.constants import ALLOWED_MIME_TYPES
from server.exceptions import PayloadTooLargeError, UnsupportedTypeError
from server.utils import normalize_mime_type


def _index_by_type(table: Mapping[str, Sequence[str]]) -> Dict[str, str]:
    return {
        mime_type: category
        for category, mime_types in table.items()
        for mime_type in mime_types
    }


_CATEGORY_BY_TYPE = _index_by_type(ALLOWED_MIME_TYPES)


def categorize(content_type: str) -> Optional[str]:
    """
    Look up the allow-list category of a declared content type.

    Args:
        content_type: Declared content type, parameters allowed

    Returns:
        Category name ("image", "video", "audio", "document") or None
    """
    return _CATEGORY_BY_TYPE.get(normalize_mime_type(content_type))


def validate_mime_type(content_type: str) -> str:
    """
    Ensure the declared content type is accepted.

    Returns:
        The category of the type

    Raises:
        UnsupportedTypeError: If the type is outside the allow-list
    """
    category = categorize(content_type)
    if category is None:
        raise UnsupportedTypeError(
            f"File type not allowed: {normalize_mime_type(content_type) or 'unknown'}"
        )
    return category


def validate_size(size_bytes: int, max_bytes: int) -> None:
    """
    Raises:
        PayloadTooLargeError: If size_bytes exceeds max_bytes
    """
    if size_bytes > max_bytes:
        raise PayloadTooLargeError(
            f"File too large: limit is {max_bytes} bytes"
        )
