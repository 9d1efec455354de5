"""Upload API routes."""

from fastapi import APIRouter, Depends, Request, status
from starlette.datastructures import UploadFile
from starlette.types import Message, Receive

from common.constants import UPLOAD_FIELD_NAME
from common.logging_config import get_logger
from server import config
from server.exceptions import PayloadTooLargeError, RateLimitedError
from server.schemas.common import ErrorResponse
from server.schemas.files import ApiUploadResponse, UploadResponse, build_upload_response
from server.service_locator import get_rate_limiter
from server.services.upload_service import UploadService

logger = get_logger(__name__)

router = APIRouter(tags=["Upload"])

# Allowance for multipart boundaries and part headers on top of the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def public_base_url(request: Request) -> str:
    """
    Base URL for public file links: the configured override, else the URL the client used.
    """
    return config.PUBLIC_BASE_URL or str(request.base_url).rstrip("/")


async def enforce_upload_rate_limit(request: Request) -> None:
    """
    FastAPI dependency that admits or rejects an upload attempt per client address.

    Runs before the request body is parsed.

    Raises:
        RateLimitedError: 429 if the client has used up its window
    """
    address = client_address(request)
    decision = get_rate_limiter().hit(address)
    if not decision.allowed:
        logger.warning(f"Rate limit exceeded for {address}, retry after {decision.retry_after}s")
        raise RateLimitedError(retry_after=decision.retry_after)


def reject_oversized_declaration(request: Request) -> None:
    """
    Cheap early rejection when Content-Length already announces an oversized body.

    The authoritative check is on the bytes actually received.
    """
    declared = request.headers.get("content-length")
    if declared is None or not declared.isdigit():
        return
    if int(declared) > config.MAX_UPLOAD_SIZE + MULTIPART_OVERHEAD_BYTES:
        raise PayloadTooLargeError(f"File too large: limit is {config.MAX_UPLOAD_SIZE} bytes")


def bounded_receive(receive: Receive, limit: int) -> Receive:
    """
    Wrap an ASGI receive callable so the body stops being read once it passes limit bytes.

    Covers chunked bodies that carry no Content-Length. Raising from inside
    receive aborts form parsing before the excess is spooled to disk.
    """
    received = 0

    async def receive_within_limit() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                logger.warning(f"Upload body passed {limit} bytes while reading, aborting")
                raise PayloadTooLargeError(f"File too large: limit is {config.MAX_UPLOAD_SIZE} bytes")
        return message

    return receive_within_limit


async def handle_upload(request: Request, detailed: bool) -> UploadResponse:
    """
    Shared upload flow for both entry points; only the response shape differs.
    """
    reject_oversized_declaration(request)

    limit = config.MAX_UPLOAD_SIZE + MULTIPART_OVERHEAD_BYTES
    form = await Request(request.scope, bounded_receive(request.receive, limit)).form()
    try:
        upload = form.get(UPLOAD_FIELD_NAME)
        if not isinstance(upload, UploadFile):
            upload = None

        record = await UploadService().upload_file(upload, public_base_url(request))
    finally:
        await form.close()

    return build_upload_response(record, detailed=detailed)


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
async def upload_form(request: Request):
    """
    Upload a file from the browser form.

    Parameters:
        - file: File to upload (multipart/form-data)

    Returns:
        - url: Public URL of the stored file
        - filename: Original filename
        - size: File size in bytes

    Raises:
        - 400: No file, file too large or type not allowed
        - 429: Too many upload attempts
        - 500: Upload failed
    """
    return await handle_upload(request, detailed=False)


@router.post(
    "/api/upload",
    response_model=ApiUploadResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(enforce_upload_rate_limit)],
)
async def upload_api(request: Request):
    """
    Upload a file programmatically (bots, scripts, the CLI).

    Same as /upload, and the response also carries the file id.
    """
    return await handle_upload(request, detailed=True)
