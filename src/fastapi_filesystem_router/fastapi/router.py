"""Route registration onto FastAPI.

Composes scanner, ordering, middleware and importer to wire a directory
of route files onto a FastAPI application or APIRouter.
"""

import logging
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

from fastapi import APIRouter
from fastapi.routing import APIRoute, APIWebSocketRoute

from fastapi_filesystem_router.config import RoutingConfig
from fastapi_filesystem_router.core.importer import (
    MethodMapExport,
    RouteExport,
    RouterExport,
    load_route_export,
)
from fastapi_filesystem_router.core.middleware import (
    Middleware,
    build_middleware_chain,
    collect_middleware,
    validate_middleware_mapping,
)
from fastapi_filesystem_router.core.ordering import sort_route_files
from fastapi_filesystem_router.core.scanner import (
    RouteFile,
    ensure_routes_directory,
    scan_route_files,
)
from fastapi_filesystem_router.exceptions import InvalidAppError

logger = logging.getLogger(__name__)


def handle_routes(
    app: Any,
    *,
    middleware: Mapping[str, Any] | None = None,
    routes_directory: str | Path | None = None,
) -> None:
    """Route requests based on the tree of files in the routes directory.

    ``routes/users/profile.py`` handles requests to ``/users/profile``.
    ``index`` files handle requests to their directory, so
    ``routes/users/index.py`` handles ``/users``. A leading underscore
    marks a path parameter: ``routes/users/_id.py`` handles ``/users/{id}``.

    Args:
        app: A FastAPI application or APIRouter.
        middleware: Optional mapping of relative paths in the routes
            directory to an async middleware or a list of them. Entries
            apply to every file whose relative path starts with the key,
            in mapping order, so list the least specific first.
        routes_directory: Directory holding the route files. Defaults to
            ``routes/`` under the current working directory.

    Raises:
        InvalidAppError: If app is not a FastAPI application or APIRouter.
        InvalidMiddlewareError: If the middleware mapping is invalid.
        RouteDiscoveryError: If the routes directory doesn't exist.
        RouteValidationError: If a route file fails to import or has invalid exports.
        PathParseError: If a route file name has invalid parameter syntax.

    Example:
        from fastapi import FastAPI
        from fastapi_filesystem_router import handle_routes

        app = FastAPI()
        handle_routes(
            app,
            middleware={
                "admin": require_admin,
                "admin/reports.py": [audit, rate_limit],
            },
        )
    """
    if routes_directory is None:
        config = RoutingConfig(app=app, middleware=middleware)
    else:
        config = RoutingConfig(
            app=app,
            middleware=middleware,
            routes_directory=Path(routes_directory),
        )
    register_routes(config)


def create_router_from_path(
    base_path: str | Path,
    *,
    middleware: Mapping[str, Any] | None = None,
    prefix: str = "",
) -> APIRouter:
    """Create a FastAPI APIRouter from a directory of route files.

    Args:
        base_path: Routes directory.
        middleware: Optional middleware mapping, as for ``handle_routes``.
        prefix: Optional URL prefix for all discovered routes.

    Returns:
        A FastAPI APIRouter with all discovered routes registered.

    Example:
        app = FastAPI()
        app.include_router(create_router_from_path("routes", prefix="/api"))
    """
    router = APIRouter(prefix=prefix)
    register_routes(
        RoutingConfig(app=router, middleware=middleware, routes_directory=Path(base_path))
    )
    return router


def register_routes(config: RoutingConfig) -> None:
    """Run one registration pass for a routing configuration.

    Validates the app and the middleware mapping before any route file is
    touched, then registers files in ``sort_route_files`` order. For each
    file, its middleware is bound first and its handlers registered after.
    """
    target = _resolve_target(config.app)
    base = ensure_routes_directory(config.routes_directory)
    middleware = validate_middleware_mapping(config.middleware, base)

    route_files = sort_route_files(scan_route_files(base), key=lambda rf: rf.relative_path)

    logger.info(
        "Discovered route files",
        extra={"count": len(route_files), "routes_directory": str(base)},
    )

    registered: dict[tuple[str, str], str] = {}

    for route_file in route_files:
        route_path = route_file.route_path
        route_class = _bind_middleware(route_file, route_path, middleware)
        export = load_route_export(route_file.file_path, base_path=base)
        _register_handlers(target, route_file, route_path, export, route_class, registered)

    logger.info(
        "Route registration complete",
        extra={"route_count": len(registered), "routes_directory": str(base)},
    )


def _resolve_target(app: Any) -> APIRouter:
    """Return the APIRouter routes are registered on.

    Raises:
        InvalidAppError: If app is neither an APIRouter nor an app wrapping one.
    """
    if isinstance(app, APIRouter):
        return app

    router = getattr(app, "router", None)
    if isinstance(router, APIRouter):
        return router

    raise InvalidAppError(
        f"handle_routes was not passed a valid FastAPI app or APIRouter, "
        f"got {type(app).__name__}"
    )


def _bind_middleware(
    route_file: RouteFile,
    route_path: str,
    middleware: Mapping[str, Sequence[Middleware]],
) -> type[APIRoute] | None:
    """Bind the middleware that applies to a route file.

    Returns:
        An APIRoute subclass running the file's middleware stack, or None
        when no middleware applies.
    """
    stack = collect_middleware(route_file.relative_path, middleware)
    if not stack:
        return None

    logger.debug(
        "Bound middleware",
        extra={
            "file": route_file.relative_path,
            "path": route_path,
            "middleware_count": len(stack),
        },
    )
    return _make_middleware_route(stack)


def _register_handlers(
    target: APIRouter,
    route_file: RouteFile,
    route_path: str,
    export: RouteExport,
    route_class: type[APIRoute] | None,
    registered: dict[tuple[str, str], str],
) -> None:
    """Register a route file's export under its route path."""
    match export:
        case RouterExport(router=router):
            for layer in router.routes:
                path = _join_route_path(route_path, layer.path)
                if isinstance(layer, APIWebSocketRoute):
                    _add_websocket_route(target, route_file, path, layer.endpoint, route_class)
                    _track(registered, "WEBSOCKET", path, route_file)
                    continue

                _add_router_layer(target, path, layer, route_class)
                for method in sorted(layer.methods):
                    _track(registered, method, path, route_file)

        case MethodMapExport(handlers=handlers, metadata=metadata):
            tags = metadata.tags or _derive_tags(route_path)
            for method, handler in handlers.items():
                if method == "websocket":
                    _add_websocket_route(target, route_file, route_path, handler, route_class)
                    _track(registered, "WEBSOCKET", route_path, route_file)
                    continue

                kwargs: dict[str, Any] = {
                    "methods": [method.upper()],
                    "tags": tags,
                    "deprecated": metadata.deprecated,
                    "description": handler.__doc__,
                }
                if metadata.summary is not None:
                    kwargs["summary"] = metadata.summary
                if route_class is not None:
                    kwargs["route_class_override"] = route_class

                target.add_api_route(route_path, handler, **kwargs)
                _track(registered, method.upper(), route_path, route_file)


def _add_router_layer(
    target: APIRouter,
    path: str,
    layer: APIRoute,
    route_class: type[APIRoute] | None,
) -> None:
    """Re-register one route of a Router-like export at its concrete path."""
    kwargs: dict[str, Any] = {
        "methods": sorted(layer.methods),
        "response_model": layer.response_model,
        "status_code": layer.status_code,
        "tags": list(layer.tags),
        "dependencies": list(layer.dependencies),
        "summary": layer.summary,
        "description": layer.description,
        "response_description": layer.response_description,
        "responses": dict(layer.responses),
        "deprecated": layer.deprecated,
        "name": layer.name,
        "operation_id": layer.operation_id,
        "include_in_schema": layer.include_in_schema,
        "response_class": layer.response_class,
        "response_model_include": layer.response_model_include,
        "response_model_exclude": layer.response_model_exclude,
        "response_model_by_alias": layer.response_model_by_alias,
        "response_model_exclude_unset": layer.response_model_exclude_unset,
        "response_model_exclude_defaults": layer.response_model_exclude_defaults,
        "response_model_exclude_none": layer.response_model_exclude_none,
        "callbacks": layer.callbacks,
        "openapi_extra": layer.openapi_extra,
        "generate_unique_id_function": layer.generate_unique_id_function,
    }
    if route_class is not None:
        kwargs["route_class_override"] = route_class

    target.add_api_route(path, layer.endpoint, **kwargs)


def _add_websocket_route(
    target: APIRouter,
    route_file: RouteFile,
    path: str,
    endpoint: Callable[..., Any],
    route_class: type[APIRoute] | None,
) -> None:
    if route_class is not None:
        logger.warning(
            "WebSocket route has applicable middleware that will be skipped. "
            "Middleware only wraps HTTP routes.",
            extra={"path": path, "file": route_file.relative_path},
        )
    target.add_api_websocket_route(path, endpoint)


def _track(
    registered: dict[tuple[str, str], str],
    method: str,
    path: str,
    route_file: RouteFile,
) -> None:
    """Record a registration, warning when an earlier one already matches."""
    key = (method, path)
    if key in registered:
        logger.warning(
            "Route shadowed by an earlier registration",
            extra={
                "method": method,
                "path": path,
                "first": registered[key],
                "second": route_file.relative_path,
            },
        )
        return

    registered[key] = route_file.relative_path
    logger.debug(
        "Registered route",
        extra={"method": method, "path": path, "file": route_file.relative_path},
    )


def _join_route_path(route_path: str, sub_path: str) -> str:
    """Join a file's route path with a router's sub-path.

    Examples:
        ("/items", "/") -> "/items"
        ("/items", "/{item_id}") -> "/items/{item_id}"
        ("/", "/health") -> "/health"
    """
    if not sub_path or sub_path == "/":
        return route_path
    if route_path == "/":
        return sub_path
    return route_path + sub_path


def _derive_tags(path: str) -> list[str]:
    """Derive OpenAPI tags from a URL path.

    Takes the first non-parameter segment from the path.

    Examples:
        /users/{id} -> ["users"]
        /{id} -> ["root"]
        / -> ["root"]
    """
    parts = [p for p in path.split("/") if p and not p.startswith("{")]
    return [parts[0]] if parts else ["root"]


def _make_middleware_route(
    middleware_stack: Sequence[Callable[..., Any]],
) -> type[APIRoute]:
    """Create an APIRoute subclass running a middleware stack around its handler.

    The stack wraps the request handler returned by get_route_handler(), so
    middleware sees the Request after path matching and before dependency
    resolution. The first middleware in the stack runs outermost.
    """

    class MiddlewareRoute(APIRoute):
        def get_route_handler(self) -> Callable[..., Any]:
            original_handler = super().get_route_handler()
            return build_middleware_chain(original_handler, middleware_stack)

    return MiddlewareRoute
