"""Retrieval service: resolve identifiers to records and file contents."""

import mimetypes
from pathlib import Path
from typing import Iterator, Optional, Tuple

from starlette.concurrency import run_in_threadpool

from common.logging_config import get_logger
from server.exceptions import RecordNotFoundError
from server.metadata_store import MetadataStore
from server.service_locator import get_content_storage, get_metadata_store
from server.storage import ContentStorage
from server.types import FileRecord
from server.utils import is_safe_identifier

logger = get_logger(__name__)


class RetrievalService:
    def __init__(
        self,
        store: Optional[MetadataStore] = None,
        storage: Optional[ContentStorage] = None,
    ):
        self.store = store or get_metadata_store()
        self.storage = storage or get_content_storage()

    async def get_record(self, file_id: str) -> FileRecord:
        """
        Look up the record for an identifier taken from a request path.

        Raises:
            RecordNotFoundError: If the id is malformed or not registered
        """
        if not is_safe_identifier(file_id):
            logger.warning(f"Rejected unsafe file id {file_id!r}")
            raise RecordNotFoundError()

        record = await run_in_threadpool(self.store.get, file_id)
        if record is None:
            raise RecordNotFoundError()
        return record

    async def open_file(self, file_id: str) -> Tuple[FileRecord, Iterator[bytes]]:
        """
        Resolve an identifier to its record and a lazy iterator over the stored bytes.

        Raises:
            RecordNotFoundError: If the id is unknown or its file is missing from disk
        """
        record = await self.get_record(file_id)

        try:
            present = self.storage.exists(record.stored_filename)
        except ValueError:
            present = False

        if not present:
            logger.warning(
                f"File {file_id} is registered but {record.stored_filename} is missing from the content directory"
            )
            raise RecordNotFoundError()

        return record, self.storage.read_streaming(record.stored_filename)

    async def resolve_stored_file(self, stored_filename: str) -> Tuple[Path, str]:
        """
        Resolve a name in the content directory to its path and content type.

        Backs the direct /files/<stored name> route. The type comes from the
        record when one is registered for the name's id, else from the
        extension.

        Raises:
            RecordNotFoundError: If the name is not a plain visible file name or the file is absent
        """
        try:
            path = self.storage.get_path(stored_filename)
        except ValueError:
            path = None

        if path is None or stored_filename.startswith(".") or not path.is_file():
            logger.warning(f"Stored file {stored_filename!r} not found")
            raise RecordNotFoundError()

        file_id = stored_filename.split(".", 1)[0]
        record = None
        if is_safe_identifier(file_id):
            record = await run_in_threadpool(self.store.get, file_id)

        if record is not None and record.stored_filename == stored_filename:
            return path, record.mime_type
        return path, mimetypes.guess_type(stored_filename)[0] or "application/octet-stream"
