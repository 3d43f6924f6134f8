"""HTTP Server module."""

from preview_core.server.app import create_app, serve
from preview_core.server.middleware import RequestContextMiddleware
from preview_core.server.registry import ViewRegistry
from preview_core.server.routes import create_routes

__all__ = [
    "RequestContextMiddleware",
    "ViewRegistry",
    "create_app",
    "create_routes",
    "serve",
]
