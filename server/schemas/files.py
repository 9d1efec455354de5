"""Pydantic schemas for upload and file info endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from server.types import FileRecord


class UploadResponse(BaseModel):
    """Response model for form-based upload."""
    success: bool = True
    url: str
    filename: str
    size: int


class ApiUploadResponse(UploadResponse):
    """Response model for programmatic upload; also echoes the identifier."""
    id: str


class FileRecordSchema(BaseModel):
    """Public view of a FileRecord, serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    stored_filename: str
    original_name: str
    mime_type: str
    size_bytes: int = Field(ge=0)
    uploaded_at: str
    public_url: str
    category: str

    @classmethod
    def from_record(cls, record: FileRecord) -> "FileRecordSchema":
        return cls(**record.to_dict())


class FileInfoResponse(BaseModel):
    """Response model for file metadata lookup."""
    success: bool = True
    data: FileRecordSchema


def build_upload_response(record: FileRecord, detailed: bool) -> UploadResponse:
    """
    Format the success descriptor for an upload.

    Args:
        record: Newly registered record
        detailed: Include the identifier (programmatic endpoint)
    """
    fields = {
        "url": record.public_url,
        "filename": record.original_name,
        "size": record.size_bytes,
    }
    if detailed:
        return ApiUploadResponse(id=record.id, **fields)
    return UploadResponse(**fields)
