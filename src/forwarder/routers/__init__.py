"""API routers for the forwarder."""

from .forward import create_forward_router
from .health import router as health_router

__all__ = ["health_router", "create_forward_router"]
