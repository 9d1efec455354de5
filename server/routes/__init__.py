"""API route modules."""

from server.routes.site_routes import router as site_router
from server.routes.upload_routes import router as upload_router
from server.routes.file_routes import router as file_router

__all__ = ["site_router", "upload_router", "file_router"]
