"""Exception hierarchy for filesystem routing errors."""


class FileSystemRouterError(Exception):
    """Base exception for all filesystem routing errors.

    Every error raised while building a routing table derives from this
    class, so a hosting application can catch it once at startup and
    decide whether to abort.

    Example:
        try:
            handle_routes(app)
        except FileSystemRouterError as e:
            logger.critical(f"Routing table could not be built: {e}")
            raise SystemExit(1) from e
    """


class InvalidAppError(FileSystemRouterError):
    """Raised when the supplied app cannot accept middleware or routes.

    The target must be a FastAPI application or an APIRouter. This check
    runs before any route file is processed.

    Example:
        InvalidAppError("handle_routes was not passed a valid FastAPI app or APIRouter, got dict")
    """


class InvalidMiddlewareError(FileSystemRouterError):
    """Raised when the middleware mapping is invalid.

    This exception is raised when:
        - A mapping key does not name an existing file or directory
          under the routes directory
        - A mapping key starts with "/" or contains ".."
        - A mapping value is not an async callable or a list of async callables

    It runs before any route is registered, so a typo can never leave a
    route unprotected while the developer believes middleware is wired.

    Example:
        InvalidMiddlewareError(
            'Unable to resolve path to "uesrs" in the routes directory'
        )
    """


class PathParseError(FileSystemRouterError):
    """Raised when a route file path cannot become a URL pattern.

    Examples of invalid paths:
        - Missing route file suffix: users/profile.txt
        - Invalid parameter names: _123, _user-id, a bare "_"

    Example:
        PathParseError("Invalid parameter name '123' in segment '_123'")
    """


class RouteDiscoveryError(FileSystemRouterError):
    """Raised when the routes directory doesn't exist or can't be scanned.

    Example:
        RouteDiscoveryError("Routes directory does not exist: /srv/app/routes")
    """


class RouteValidationError(FileSystemRouterError):
    """Raised for route modules that fail to import or export invalid names.

    This exception is raised when a route file:
        - Has import errors or syntax errors
        - Exports public functions that are not HTTP method handlers
        - Contains path traversal attempts (..)
        - Lies outside the routes directory

    Example:
        RouteValidationError(
            "Invalid export(s) ['fetch_user'] in /srv/app/routes/users.py"
        )
    """
