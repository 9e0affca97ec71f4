"""HTTP surface for the observability core."""

from vigil.web.routes import create_router

__all__ = ["create_router"]
