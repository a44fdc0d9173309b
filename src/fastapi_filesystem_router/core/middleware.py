"""Middleware mapping validation, matching and chain assembly.

A middleware mapping pairs path prefixes inside the routes directory with
one middleware or an ordered list of them:

    {
        "users": require_login,
        "users/_id": [load_user, check_owner],
        "users/_id/purchases.py": audit,
    }

Entries are matched with a plain string prefix test against each route
file's relative path, in mapping order. The mapping order is the cascade
order: list the least specific prefix first. Because the test is not
segment aware, "user" also matches "users/index.py".
"""

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from pathlib import Path, PurePosixPath
from typing import Any

from fastapi_filesystem_router.exceptions import InvalidMiddlewareError

Middleware = Callable[[Any, Callable[[Any], Awaitable[Any]]], Awaitable[Any]]


def normalize_middleware(
    middleware_attr: Any,
    *,
    source: str = "",
) -> tuple[Callable[..., Any], ...]:
    """Normalize a middleware value to a tuple of callables.

    Accepts: a single callable, list, or tuple.

    Args:
        middleware_attr: The middleware value to normalize.
        source: Context for error messages (e.g., 'middleware for "users"').

    Raises:
        InvalidMiddlewareError: If middleware_attr is not a valid type.
    """
    if callable(middleware_attr) and not isinstance(middleware_attr, (list, tuple)):
        return (middleware_attr,)
    if isinstance(middleware_attr, (list, tuple)):
        return tuple(middleware_attr)
    raise InvalidMiddlewareError(
        f"{source + ': ' if source else ''}middleware must be a function or list of functions, "
        f"got {type(middleware_attr).__name__}"
    )


def validate_middleware_mapping(
    middleware: Mapping[str, Any],
    routes_directory: Path,
) -> dict[str, tuple[Middleware, ...]]:
    """Validate a middleware mapping against the routes directory.

    Args:
        middleware: Mapping of relative path prefixes to middleware.
        routes_directory: Resolved routes directory.

    Returns:
        Ordered dict of prefix to middleware tuple, in mapping order.

    Raises:
        InvalidMiddlewareError: If middleware isn't a mapping, a prefix
            doesn't resolve to an existing path, or a value isn't an async
            callable or list of them.
    """
    if not isinstance(middleware, Mapping):
        raise InvalidMiddlewareError(
            f"middleware must be a mapping of paths to middleware, "
            f"got {type(middleware).__name__}"
        )

    result: dict[str, tuple[Middleware, ...]] = {}

    for prefix, value in middleware.items():
        _validate_prefix(prefix, routes_directory)

        source = f'middleware for "{prefix}"'
        handlers = normalize_middleware(value, source=source)

        for i, handler in enumerate(handlers):
            if not callable(handler):
                raise InvalidMiddlewareError(f"{source}: non-callable middleware at index {i}")
            if not inspect.iscoroutinefunction(handler):
                raise InvalidMiddlewareError(
                    f"{source}: middleware at index {i} must be async, "
                    f"got sync function {getattr(handler, '__name__', repr(handler))}"
                )

        result[prefix] = handlers

    return result


def _validate_prefix(prefix: Any, routes_directory: Path) -> None:
    """Check that a mapping key names an existing path in the routes directory."""
    if not isinstance(prefix, str):
        raise InvalidMiddlewareError(
            f"Middleware keys must be strings, got {type(prefix).__name__}: {prefix!r}"
        )

    if prefix.startswith("/") or not _is_normalized(prefix) or not (
        routes_directory / prefix
    ).exists():
        raise InvalidMiddlewareError(
            f'Unable to resolve path to "{prefix}" in the routes directory {routes_directory}.\n'
            'Check the middleware mapping for typos or a leading "/".\n'
            'The accepted formats are "some-directory" and "some-directory/file-name.py".'
        )


def _is_normalized(prefix: str) -> bool:
    """Check that a prefix is spelled the way relative paths are.

    Route files are matched against normalized POSIX paths, so a key like
    ``./users`` or ``users//_id`` exists on disk but never matches. One
    trailing ``/`` is allowed.

    Examples:
        "users/_id" -> True
        "users/" -> True
        "./users" -> False
        "users/../posts" -> False
    """
    body = prefix.removesuffix("/")
    if not body:
        return not prefix
    parts = body.split("/")
    if "." in parts or ".." in parts:
        return False
    return PurePosixPath(body).as_posix() == body


def collect_middleware(
    relative_path: str,
    middleware: Mapping[str, Sequence[Middleware]],
) -> tuple[Middleware, ...]:
    """Collect the middleware that applies to a route file.

    Args:
        relative_path: POSIX path of the route file in the routes directory.
        middleware: Validated mapping of prefix to middleware tuple.

    Returns:
        Middleware in mapping order, each entry's handlers in listed order.

    Examples:
        collect_middleware("users/_id.py", {"users": (m1,), "posts": (m2,)})
            -> (m1,)
    """
    stack: list[Middleware] = []
    for prefix, handlers in middleware.items():
        if relative_path.startswith(prefix):
            stack.extend(handlers)
    return tuple(stack)


def build_middleware_chain(
    handler: Callable[..., Any],
    middleware_stack: Sequence[Callable[..., Any]],
) -> Callable[..., Any]:
    """Wrap a handler function with a middleware chain.

    Composes middleware in order so that the first middleware in the list
    is the outermost (executes first). Each middleware receives (request, call_next)
    where call_next invokes the next middleware or handler.

    Args:
        handler: The route handler function.
        middleware_stack: Ordered sequence of middleware (outermost first).

    Returns:
        A wrapped handler function that executes the middleware chain.
        If middleware_stack is empty, returns the handler unchanged.
    """
    chain = handler
    for mw in reversed(middleware_stack):
        chain = _wrap_with_middleware(chain, mw)
    return chain


def _wrap_with_middleware(
    next_handler: Callable[..., Any],
    middleware: Callable[..., Any],
) -> Callable[..., Any]:
    async def wrapped(request: Any) -> Any:
        async def call_next(req: Any) -> Any:
            return await next_handler(req)

        return await middleware(request, call_next)

    wrapped.__name__ = (
        f"{getattr(middleware, '__name__', 'middleware')}"
        f"_wrapping_{getattr(next_handler, '__name__', 'handler')}"
    )
    wrapped.__qualname__ = wrapped.__name__

    return wrapped
