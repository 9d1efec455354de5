"""Upload service: validate, store and register one uploaded file."""

from typing import AsyncIterator, Callable, Optional

from starlette.datastructures import UploadFile
from starlette.concurrency import run_in_threadpool

from common.constants import SHORT_ID_MAX_ATTEMPTS, STREAM_PIECE_SIZE
from common.logging_config import get_logger
from server import config
from server.exceptions import NoFileError, UploadFailedError, ValidationFailedError
from server.metadata_store import MetadataStore
from server.service_locator import get_content_storage, get_metadata_store
from server.storage import ContentStorage
from server.types import FileRecord
from server.utils import (
    display_name,
    file_extension,
    generate_short_id,
    get_current_timestamp,
    normalize_mime_type,
)
from server.validation import validate_mime_type, validate_size

logger = get_logger(__name__)


class UploadService:
    """
    Runs the upload-and-register flow.

    Order of operations: validate, write the file (temp + rename), then
    register metadata. A failed write registers nothing; a failed
    registration removes the file it just placed.
    """

    def __init__(
        self,
        store: Optional[MetadataStore] = None,
        storage: Optional[ContentStorage] = None,
        max_upload_size: Optional[int] = None,
        id_generator: Callable[[], str] = generate_short_id,
    ):
        self.store = store or get_metadata_store()
        self.storage = storage or get_content_storage()
        self.max_upload_size = max_upload_size if max_upload_size is not None else config.MAX_UPLOAD_SIZE
        self._generate_id = id_generator

    async def upload_file(self, upload: Optional[UploadFile], base_url: str) -> FileRecord:
        """
        Validate and persist an uploaded file.

        Args:
            upload: File part from the multipart form, or None if absent
            base_url: Public base URL used to build the record's URL

        Returns:
            The registered FileRecord

        Raises:
            NoFileError: No file part in the request
            PayloadTooLargeError: Received bytes exceed the limit
            UnsupportedTypeError: Declared type outside the allow-list
            UploadFailedError: Write or registration failed
        """
        if upload is None:
            raise NoFileError()

        mime_type = normalize_mime_type(upload.content_type)
        category = validate_mime_type(mime_type)

        received_size = getattr(upload, "size", None)
        if received_size is not None:
            validate_size(received_size, self.max_upload_size)

        original_name = display_name(upload.filename)
        extension = file_extension(upload.filename)

        file_id = await self._allocate_id(extension)
        stored_filename = f"{file_id}{extension}"

        try:
            size_bytes = await self.storage.write_stream(
                stored_filename,
                self._iter_upload(upload),
                self.max_upload_size
            )
        except ValidationFailedError:
            logger.warning(f"Upload {file_id} exceeded {self.max_upload_size} bytes while streaming")
            raise
        except Exception as e:
            logger.error(f"Failed to store file {stored_filename}: {e}", exc_info=True)
            raise UploadFailedError() from e

        record = FileRecord(
            id=file_id,
            stored_filename=stored_filename,
            original_name=original_name,
            mime_type=mime_type,
            size_bytes=size_bytes,
            uploaded_at=get_current_timestamp(),
            public_url=f"{base_url.rstrip('/')}/{file_id}",
            category=category,
        )

        try:
            await run_in_threadpool(self.store.register, record)
        except Exception as e:
            logger.error(f"Failed to register metadata for {file_id}: {e}", exc_info=True)
            self._remove_orphan(stored_filename)
            raise UploadFailedError() from e

        logger.info(
            f"Upload complete: id={file_id} name={original_name!r} size={size_bytes} type={mime_type}"
        )
        return record

    async def _allocate_id(self, extension: str) -> str:
        """
        Draw an id that is neither registered nor present on disk.

        Raises:
            UploadFailedError: If every attempt collided
        """
        for attempt in range(SHORT_ID_MAX_ATTEMPTS):
            candidate = self._generate_id()
            registered = await run_in_threadpool(self.store.contains, candidate)
            if not registered and not self.storage.exists(f"{candidate}{extension}"):
                return candidate
            logger.warning(f"Short id collision on {candidate} (attempt {attempt + 1}/{SHORT_ID_MAX_ATTEMPTS})")

        logger.error(f"Could not allocate a unique id after {SHORT_ID_MAX_ATTEMPTS} attempts")
        raise UploadFailedError()

    def _remove_orphan(self, stored_filename: str) -> None:
        try:
            if self.storage.delete(stored_filename):
                logger.info(f"Removed orphaned file {stored_filename}")
        except OSError as e:
            logger.error(f"Failed to remove orphaned file {stored_filename}: {e}")

    @staticmethod
    async def _iter_upload(upload: UploadFile) -> AsyncIterator[bytes]:
        await upload.seek(0)
        while True:
            piece = await upload.read(STREAM_PIECE_SIZE)
            if not piece:
                break
            yield piece
