"""API routes package."""

from server.routes.upload_routes import router as upload_router
from server.routes.attachment_routes import router as attachment_router
from server.routes.attachment_routes import public_router as attachment_public_router

__all__ = ["upload_router", "attachment_router", "attachment_public_router"]
