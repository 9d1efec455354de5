"""Browser UI entry point and health check."""

from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

router = APIRouter(tags=["Site"])


@router.get("/", include_in_schema=False)
async def index():
    """
    Serve the drag-and-drop upload page.
    """
    return FileResponse(STATIC_DIR / "index.html", media_type="text/html")


@router.get("/health")
async def health_check():
    """
    Health check endpoint for container healthchecks.
    Returns 200 if service is alive.
    """
    return {"status": "healthy", "service": "shortdrop"}
