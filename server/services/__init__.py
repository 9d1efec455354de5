"""Service layer for business logic."""

from server.services.upload_service import UploadService
from server.services.retrieval_service import RetrievalService

__all__ = [
    "UploadService",
    "RetrievalService",
]
