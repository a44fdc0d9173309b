"""Directory scanner for filesystem routing.

Walks the routes directory to discover route files.
"""

from dataclasses import dataclass
from pathlib import Path

from fastapi_filesystem_router.core.parser import matched_suffix, translate_route_path
from fastapi_filesystem_router.exceptions import RouteDiscoveryError

# Package markers are never route files
_IGNORED_FILE_NAMES = frozenset({"__init__.py", "__init__.pyw"})


@dataclass(frozen=True)
class RouteFile:
    """A discovered route file.

    Attributes:
        relative_path: POSIX path relative to the routes directory
            (e.g., users/_id.py)
        file_path: Absolute path to the file
    """

    relative_path: str
    file_path: Path

    @property
    def route_path(self) -> str:
        """FastAPI path pattern for this file (e.g., /users/{id})."""
        return translate_route_path(self.relative_path)


def ensure_routes_directory(base_path: Path | str) -> Path:
    """Resolve the routes directory and check that it can be scanned.

    Raises:
        RouteDiscoveryError: If base_path doesn't exist or isn't a directory.
    """
    base = Path(base_path).resolve()

    if not base.exists():
        raise RouteDiscoveryError(f"Routes directory does not exist: {base}")
    if not base.is_dir():
        raise RouteDiscoveryError(f"Routes directory is not a directory: {base}")

    return base


def scan_route_files(base_path: Path | str) -> list[RouteFile]:
    """Scan a directory tree for route files.

    Files ending in a route file suffix are collected at any depth. Other
    files and directories are traversed but never registered. The result
    is in filesystem order; use ``sort_route_files`` before registering.

    Args:
        base_path: Routes directory to scan.

    Returns:
        List of RouteFile objects, one per discovered file.

    Raises:
        RouteDiscoveryError: If base_path doesn't exist or isn't a directory.

    Examples:
        for route_file in scan_route_files("routes"):
            print(f"{route_file.route_path} -> {route_file.relative_path}")
    """
    base = ensure_routes_directory(base_path)

    route_files: list[RouteFile] = []

    for candidate in base.rglob("*"):
        if not candidate.is_file() or matched_suffix(candidate.name) is None:
            continue

        if candidate.name in _IGNORED_FILE_NAMES:
            continue

        relative = candidate.relative_to(base)

        # Skip __pycache__ directories
        if "__pycache__" in relative.parts:
            continue

        # Skip hidden directories and files (starting with .)
        if any(part.startswith(".") for part in relative.parts):
            continue

        # Security: Resolve symlinks and verify file is within base path
        if not _is_path_within(candidate.resolve(), base):
            continue

        route_files.append(RouteFile(relative_path=relative.as_posix(), file_path=candidate))

    return route_files


def _is_path_within(path: Path, base: Path) -> bool:
    """Check if a resolved path is within a base directory."""
    try:
        path.relative_to(base)
        return True
    except ValueError:
        return False
