"""API routers"""

from . import auth_router, pages_router

__all__ = ["auth_router", "pages_router"]
