"""FastAPI adapter for filesystem routing."""

from fastapi_filesystem_router.fastapi.router import (
    create_router_from_path,
    handle_routes,
    register_routes,
)

__all__ = ["create_router_from_path", "handle_routes", "register_routes"]
