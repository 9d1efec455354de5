"""Pydantic schemas for API requests and responses."""

from server.schemas.files import (
    UploadResponse,
    ApiUploadResponse,
    FileRecordSchema,
    FileInfoResponse,
    build_upload_response
)
from server.schemas.common import ErrorResponse

__all__ = [
    "UploadResponse",
    "ApiUploadResponse",
    "FileRecordSchema",
    "FileInfoResponse",
    "build_upload_response",
    "ErrorResponse"
]
