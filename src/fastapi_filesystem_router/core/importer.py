"""Module importer for filesystem routing.

Dynamically imports route files and decides, in one place, which of the
two supported export shapes a file provides:

- Router-like: a module-level ``router = APIRouter()`` whose routes are
  re-registered under the file's path.
- Method map: module-level functions named after HTTP methods
  (``get``, ``post``, ...), each registered at the file's path.
"""

import hashlib
import importlib.machinery
import importlib.util
import inspect
import re
import sys
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

from fastapi import APIRouter

from fastapi_filesystem_router.core.parser import matched_suffix
from fastapi_filesystem_router.exceptions import RouteValidationError

# HTTP methods and WebSocket that can be exported from method-map route files
ALLOWED_HANDLERS: frozenset[str] = frozenset(
    {
        "get",
        "post",
        "put",
        "patch",
        "delete",
        "head",
        "options",
        "websocket",
    }
)

# Module attribute holding a Router-like export
ROUTER_ATTRIBUTE = "router"

# Namespace under which route modules are registered in sys.modules
MODULE_NAMESPACE = "_filesystem_routes"

_UNSAFE_MODULE_CHARS = re.compile(r"\W")


@dataclass(frozen=True)
class RouteMetadata:
    """Metadata extracted from a route module's constants.

    Attributes:
        tags: List of OpenAPI tags for the route.
        summary: OpenAPI summary for the route.
        deprecated: Whether the route is deprecated.
    """

    tags: list[str] | None = None
    summary: str | None = None
    deprecated: bool = False


@dataclass(frozen=True)
class RouterExport:
    """A route file exporting an APIRouter."""

    router: APIRouter


@dataclass(frozen=True)
class MethodMapExport:
    """A route file exporting one handler per HTTP method.

    Attributes:
        handlers: HTTP method names (lowercase) to handlers, in definition order.
        metadata: Route metadata (tags, summary, deprecated).
    """

    handlers: dict[str, Callable[..., Any]] = field(default_factory=dict)
    metadata: RouteMetadata = field(default_factory=RouteMetadata)


RouteExport = RouterExport | MethodMapExport


def _validate_file_path(file_path: Path, *, base_path: Path | None = None) -> Path:
    """Validate a route file path for security and correctness.

    Returns:
        Resolved absolute path to the route file.

    Raises:
        RouteValidationError: If the path is invalid or insecure.
    """
    # Check for path traversal attempts (.. as path component, not inside filenames)
    if ".." in file_path.parts:
        raise RouteValidationError(f"Path traversal detected in file path: {file_path}")

    resolved_path = file_path.resolve()

    if base_path is not None:
        resolved_base = base_path.resolve()
        try:
            resolved_path.relative_to(resolved_base)
        except ValueError:
            raise RouteValidationError(
                f"Route file outside allowed directory: {resolved_path}\n"
                f"Allowed base: {resolved_base}"
            ) from None

    if matched_suffix(resolved_path.name) is None:
        raise RouteValidationError(f"Invalid route file name: {resolved_path.name}")

    return resolved_path


def _path_to_module_name(file_path: Path) -> str:
    """Convert an absolute file path to a deterministic, unique module name.

    Sanitizing is lossy (``a-b.py`` and ``a_b.py`` sanitize alike), so the
    last part carries a digest of the full path.

    Examples:
        /app/routes/a-b.py -> _filesystem_routes.app.routes.a_b_py_<digest>
    """
    parts = [
        _UNSAFE_MODULE_CHARS.sub("_", part)
        for part in file_path.parts
        if part != file_path.anchor
    ]
    digest = hashlib.sha256(str(file_path).encode()).hexdigest()[:12]
    parts[-1] = f"{parts[-1]}_{digest}"
    return ".".join([MODULE_NAMESPACE, *parts])


def _register_parent_packages(module_name: str) -> None:
    """Register placeholder parent packages in sys.modules for nested module names."""
    parts = module_name.split(".")
    for i in range(1, len(parts)):
        parent_name = ".".join(parts[:i])
        if parent_name not in sys.modules:
            parent_module = ModuleType(parent_name)
            parent_module.__path__ = []
            parent_module.__package__ = parent_name
            sys.modules[parent_name] = parent_module


def _import_module_from_file(file_path: Path, module_name: str) -> ModuleType:
    """Low-level module import from file path.

    Raises:
        RouteValidationError: If spec creation fails or module execution fails.
    """
    # An explicit loader lets .pyw files import like .py files
    loader = importlib.machinery.SourceFileLoader(module_name, str(file_path))
    spec = importlib.util.spec_from_file_location(module_name, file_path, loader=loader)
    if spec is None:
        raise RouteValidationError(f"Cannot create module spec for: {file_path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module

    try:
        loader.exec_module(module)
    except Exception as exc:
        del sys.modules[module_name]
        raise RouteValidationError(
            f"Failed to import module: {file_path}\nError: {type(exc).__name__}: {exc}"
        ) from exc

    return module


def import_route_module(file_path: Path, *, base_path: Path | None = None) -> ModuleType:
    """Import a route file as a Python module.

    Modules are cached in sys.modules under a name derived from the
    absolute file path, so importing the same file twice returns the
    same module.

    Args:
        file_path: Path to the route file.
        base_path: Optional base directory to restrict imports to.

    Raises:
        RouteValidationError: If the path is invalid, the file doesn't
            exist, or the import fails.
    """
    validated_path = _validate_file_path(file_path, base_path=base_path)

    if not validated_path.is_file():
        raise RouteValidationError(f"Route file does not exist: {validated_path}")

    module_name = _path_to_module_name(validated_path)
    if module_name in sys.modules:
        return sys.modules[module_name]

    _register_parent_packages(module_name)
    return _import_module_from_file(validated_path, module_name)


def extract_route_export(module: ModuleType, file_path: Path) -> RouteExport:
    """Determine a route module's export shape and extract it.

    A module whose ``router`` attribute is an APIRouter is Router-like and
    nothing else in it is inspected. Otherwise every public callable
    defined in the module is a method handler named after its HTTP method.

    Args:
        module: The imported route module.
        file_path: Path to the route file (for error messages).

    Raises:
        RouteValidationError: If a method-map module exports a public
            function that is not an HTTP method handler, or a WebSocket
            handler that is not async.
    """
    router = getattr(module, ROUTER_ATTRIBUTE, None)
    if isinstance(router, APIRouter):
        return RouterExport(router=router)

    tags = getattr(module, "TAGS", None)
    metadata = RouteMetadata(
        tags=list(tags) if tags else None,
        summary=getattr(module, "SUMMARY", None),
        deprecated=bool(getattr(module, "DEPRECATED", False)),
    )

    handlers: dict[str, Callable[..., Any]] = {}
    invalid_exports: list[str] = []

    # vars() keeps definition order, which becomes registration order
    for name, obj in vars(module).items():
        # Skip private helpers and dunders
        if name.startswith("_"):
            continue

        # Skip uppercase constants (TAGS, SUMMARY, etc.)
        if name.isupper():
            continue

        if not callable(obj) or inspect.isclass(obj):
            continue

        # Skip imported classes/functions
        if getattr(obj, "__module__", None) != module.__name__:
            continue

        handler_name = name.lower()
        if handler_name not in ALLOWED_HANDLERS:
            invalid_exports.append(name)
            continue

        if handler_name == "websocket" and not inspect.iscoroutinefunction(obj):
            raise RouteValidationError(
                f"WebSocket handler must be async\n"
                f"  File: {file_path}\n"
                f"  Hint: Change 'def websocket(...)' to 'async def websocket(...)'"
            )

        handlers[handler_name] = obj

    if invalid_exports:
        raise RouteValidationError(
            f"Invalid export(s) {invalid_exports} in route file\n"
            f"  File: {file_path}\n"
            f"  Hint: Only HTTP verbs ({', '.join(sorted(ALLOWED_HANDLERS))}) or a "
            f"'{ROUTER_ATTRIBUTE} = APIRouter()' are allowed.\n"
            f"        Prefix helper functions with underscore: _{invalid_exports[0]}"
        )

    return MethodMapExport(handlers=handlers, metadata=metadata)


def load_route_export(file_path: Path, *, base_path: Path | None = None) -> RouteExport:
    """Import a route file and extract its export (convenience function).

    Raises:
        RouteValidationError: If the path is invalid, import fails,
            or the exports are invalid.
    """
    module = import_route_module(file_path, base_path=base_path)
    return extract_route_export(module, file_path)
