"""Server-specific data type definitions."""

from dataclasses import dataclass, asdict
from typing import Any, Dict


@dataclass(frozen=True)
class FileRecord:
    """
    Metadata for one stored file. Created once, never mutated.
    """
    id: str
    stored_filename: str
    original_name: str
    mime_type: str
    size_bytes: int
    uploaded_at: str
    public_url: str
    category: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """
        Build a record from its persisted form.

        Raises:
            KeyError: If a required field is missing
            TypeError, ValueError: If a field has the wrong shape
        """
        size_bytes = data["size_bytes"]
        if isinstance(size_bytes, bool) or not isinstance(size_bytes, int) or size_bytes < 0:
            raise ValueError(f"Invalid size_bytes: {size_bytes!r}")

        return cls(
            id=str(data["id"]),
            stored_filename=str(data["stored_filename"]),
            original_name=str(data["original_name"]),
            mime_type=str(data["mime_type"]),
            size_bytes=size_bytes,
            uploaded_at=str(data["uploaded_at"]),
            public_url=str(data["public_url"]),
            category=str(data.get("category", "")),
        )
