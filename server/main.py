"""Entry point for the ShortDrop server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.logging_config import setup_logging, set_request_id, reset_request_id
from server.config import SERVER_HOST, SERVER_PORT, CORS_ORIGINS
from server.exceptions import ShortDropError, RateLimitedError
from server.routes import site_router, upload_router, file_router
from server.routes.site_routes import STATIC_DIR
from server.service_locator import get_content_storage, get_metadata_store

logger = setup_logging('server')

app = FastAPI(
    title="ShortDrop",
    description="Minimal file hosting: upload a file, get a short public link",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id
    token = set_request_id(request_id)

    start_time = time.time()

    client = request.client.host if request.client else 'unknown'
    logger.info(f"Request started: {request.method} {request.url.path} [client={client}]")

    try:
        try:
            response = await call_next(request)
        except Exception as exc:
            # Errors without a registered handler surface here; answer them inside
            # the middleware so the response still carries X-Request-ID.
            logger.error(f"Unhandled error: {exc} path={request.url.path}", exc_info=exc)
            response = error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                "INTERNAL_ERROR"
            )

        duration = time.time() - start_time
        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        reset_request_id(token)


@app.on_event("startup")
async def startup_event():
    """
    Prepare the content directory and report the metadata snapshot on startup.
    """
    logger.info("ShortDrop server starting up...")

    storage = get_content_storage()
    storage.ensure_directory()
    logger.info(f"Content directory ready at {storage.root}")

    store = get_metadata_store()
    logger.info(f"Metadata snapshot at {store.path} ({store.count()} record(s))")


def error_response(status_code: int, message: str, code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, "code": code},
        headers=headers
    )


@app.exception_handler(ShortDropError)
async def shortdrop_error_handler(request: Request, exc: ShortDropError):
    request_id = getattr(request.state, 'request_id', 'unknown')

    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}",
            exc_info=exc.__cause__ or exc
        )
    else:
        logger.warning(
            f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
        )

    headers = None
    if isinstance(exc, RateLimitedError) and exc.retry_after:
        headers = {"Retry-After": str(exc.retry_after)}

    return error_response(exc.status_code, exc.message, exc.code, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.warning(
        f"HTTP error {exc.status_code}: {exc.detail} [request_id={request_id}] path={request.url.path}"
    )
    code = "NOT_FOUND" if exc.status_code == status.HTTP_404_NOT_FOUND else "HTTP_ERROR"
    return error_response(exc.status_code, str(exc.detail), code, headers=getattr(exc, 'headers', None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, 'request_id', 'unknown')
    logger.error(
        f"Unhandled error: {exc} [request_id={request_id}] path={request.url.path}",
        exc_info=exc
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        "INTERNAL_ERROR"
    )


app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

app.include_router(site_router)
app.include_router(upload_router)
# file_router owns the catch-all GET /{file_id}; keep it last.
app.include_router(file_router)


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "server.main:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
    )


if __name__ == "__main__":
    main()
