"""File retrieval API routes."""

from urllib.parse import quote

from fastapi import APIRouter, status
from fastapi.responses import FileResponse, StreamingResponse

from server.schemas.common import ErrorResponse
from server.schemas.files import FileInfoResponse, FileRecordSchema
from server.services.retrieval_service import RetrievalService

router = APIRouter(tags=["Files"])


def content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"inline; filename*=utf-8''{quoted}"
    return f'inline; filename="{filename}"'


@router.get(
    "/api/info/{file_id}",
    response_model=FileInfoResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def file_info(file_id: str):
    """
    Get metadata for a stored file.

    Raises:
        - 404: Unknown or malformed file id
    """
    record = await RetrievalService().get_record(file_id)
    return FileInfoResponse(data=FileRecordSchema.from_record(record))


@router.get(
    "/files/{stored_filename}",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def stored_file(stored_filename: str):
    """
    Serve a file straight from the content directory by its stored name (e.g. /files/Ab3dE5gH7j.png).

    Raises:
        - 404: Name is not a plain file name or nothing is stored under it
    """
    path, media_type = await RetrievalService().resolve_stored_file(stored_filename)
    return FileResponse(path, media_type=media_type)


@router.get(
    "/{file_id}",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def download_file(file_id: str):
    """
    Stream the raw bytes of a stored file with its declared content type.

    Must stay the last route registered: it matches every single-segment path.

    Raises:
        - 404: Unknown or malformed file id
    """
    record, stream = await RetrievalService().open_file(file_id)

    return StreamingResponse(
        stream,
        media_type=record.mime_type,
        headers={
            "Content-Disposition": content_disposition(record.original_name),
            "Content-Length": str(record.size_bytes),
        }
    )
