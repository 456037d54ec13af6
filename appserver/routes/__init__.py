"""API routes package."""

from appserver.routes.entry_routes import router as entry_router

__all__ = ["entry_router"]
