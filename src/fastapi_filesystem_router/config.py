"""Routing configuration."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

# Routes directory name, relative to the working directory
DEFAULT_ROUTES_DIRECTORY = "routes"


def default_routes_directory() -> Path:
    """Return ``routes/`` under the current working directory."""
    return Path.cwd() / DEFAULT_ROUTES_DIRECTORY


@dataclass(frozen=True)
class RoutingConfig:
    """Everything one routing pass needs, fixed at construction.

    Attributes:
        app: Target FastAPI application or APIRouter.
        middleware: Mapping of relative path prefixes to middleware, least
            specific first. Stored as a read-only copy in the given order.
        routes_directory: Directory holding the route files. Resolved to an
            absolute path when the config is created.

    Example:
        config = RoutingConfig(
            app=app,
            middleware={"admin": require_admin},
            routes_directory=Path(__file__).parent / "routes",
        )
        register_routes(config)
    """

    app: Any
    middleware: Mapping[str, Any] = field(default_factory=dict)
    routes_directory: Path = field(default_factory=default_routes_directory)

    def __post_init__(self) -> None:
        middleware = self.middleware if self.middleware is not None else {}
        # Non-mappings are kept as given and rejected by register_routes
        # once the app has been checked
        if isinstance(middleware, Mapping):
            middleware = MappingProxyType(dict(middleware))
        object.__setattr__(self, "routes_directory", Path(self.routes_directory).resolve())
        object.__setattr__(self, "middleware", middleware)
