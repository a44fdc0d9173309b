"""Filesystem-based routing for FastAPI."""

# Primary API
from fastapi_filesystem_router.config import RoutingConfig

# Core types and building blocks
from fastapi_filesystem_router.core.importer import (
    MethodMapExport,
    RouteExport,
    RouteMetadata,
    RouterExport,
)
from fastapi_filesystem_router.core.ordering import compare_route_files, sort_route_files
from fastapi_filesystem_router.core.parser import PathSegment, SegmentType, translate_route_path
from fastapi_filesystem_router.core.scanner import RouteFile

# Exceptions
from fastapi_filesystem_router.exceptions import (
    FileSystemRouterError,
    InvalidAppError,
    InvalidMiddlewareError,
    PathParseError,
    RouteDiscoveryError,
    RouteValidationError,
)
from fastapi_filesystem_router.fastapi.router import (
    create_router_from_path,
    handle_routes,
    register_routes,
)

__all__ = [
    # Primary API
    "handle_routes",
    "create_router_from_path",
    "register_routes",
    "RoutingConfig",
    # Core types
    "MethodMapExport",
    "PathSegment",
    "RouteExport",
    "RouteFile",
    "RouteMetadata",
    "RouterExport",
    "SegmentType",
    "compare_route_files",
    "sort_route_files",
    "translate_route_path",
    # Exceptions
    "FileSystemRouterError",
    "InvalidAppError",
    "InvalidMiddlewareError",
    "PathParseError",
    "RouteDiscoveryError",
    "RouteValidationError",
]

__version__ = "1.0.0"
