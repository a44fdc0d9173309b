"""Route path translator for filesystem routing.

Converts a route file path, relative to the routes directory, into a
FastAPI path pattern:
- users.py -> /users
- users/index.py -> /users (index files map to their directory)
- users/_id.py -> /users/{id} (underscore prefix marks a parameter)
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import PurePath

from fastapi_filesystem_router.exceptions import PathParseError

# File suffixes recognized as route files
ROUTE_FILE_SUFFIXES: tuple[str, ...] = (".py", ".pyw")

# Base name of files that handle requests for their own directory
INDEX_NAME = "index"

# Leading character that turns a segment into a path parameter
PARAMETER_MARKER = "_"

_VALID_IDENTIFIER = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


class SegmentType(Enum):
    """Type of a URL path segment."""

    STATIC = "static"
    DYNAMIC = "dynamic"


@dataclass(frozen=True)
class PathSegment:
    """A parsed URL path segment with type and name."""

    name: str
    segment_type: SegmentType
    original: str

    @property
    def is_parameter(self) -> bool:
        """Check if this segment represents a path parameter."""
        return self.segment_type == SegmentType.DYNAMIC

    def to_fastapi_segment(self) -> str:
        """Convert this segment to FastAPI path syntax.

        Examples:
            STATIC "users" -> "users"
            DYNAMIC "id" -> "{id}"
        """
        match self.segment_type:
            case SegmentType.STATIC:
                return self.name
            case SegmentType.DYNAMIC:
                return f"{{{self.name}}}"


def parse_path_segment(segment: str) -> PathSegment:
    """Parse a single path segment into a PathSegment.

    Args:
        segment: Directory name or suffix-stripped file name.

    Returns:
        PathSegment with detected type and extracted name.

    Raises:
        PathParseError: If the segment is empty or names an invalid parameter.

    Examples:
        "users" -> PathSegment(name="users", segment_type=STATIC, ...)
        "_id" -> PathSegment(name="id", segment_type=DYNAMIC, ...)
    """
    if not segment:
        raise PathParseError("Empty segment")

    if segment.startswith(PARAMETER_MARKER):
        name = segment[len(PARAMETER_MARKER) :]
        if not _VALID_IDENTIFIER.match(name):
            raise PathParseError(
                f"Invalid parameter name '{name}' in segment '{segment}'.\n"
                "Parameter names must be valid Python identifiers."
            )
        return PathSegment(name=name, segment_type=SegmentType.DYNAMIC, original=segment)

    return PathSegment(name=segment, segment_type=SegmentType.STATIC, original=segment)


def matched_suffix(relative_file_path: str) -> str | None:
    """Return the route file suffix a path ends with, or None."""
    # Longest first so ".pyw" is never mistaken for a shorter suffix
    for suffix in sorted(ROUTE_FILE_SUFFIXES, key=len, reverse=True):
        if relative_file_path.endswith(suffix):
            return suffix
    return None


def translate_route_path(relative_file_path: str | PurePath) -> str:
    """Translate a relative route file path into a FastAPI path pattern.

    Args:
        relative_file_path: Path of the route file relative to the routes
            directory. Either separator style is accepted.

    Returns:
        FastAPI-compatible path string with leading slash.

    Raises:
        PathParseError: If the path has no route file suffix or contains
            an invalid parameter segment.

    Examples:
        "index.py" -> "/"
        "users/index.py" -> "/users"
        "users/_id.py" -> "/users/{id}"
        "users/_id/purchases.py" -> "/users/{id}/purchases"
    """
    raw = str(relative_file_path).replace("\\", "/")

    suffix = matched_suffix(raw)
    if suffix is None:
        raise PathParseError(
            f"Not a route file: '{raw}'. Expected one of: {', '.join(ROUTE_FILE_SUFFIXES)}"
        )

    parts = [part for part in raw[: -len(suffix)].split("/") if part]
    if parts and parts[-1] == INDEX_NAME:
        parts = parts[:-1]

    segments = [parse_path_segment(part) for part in parts]
    return segments_to_fastapi_path(segments)


def segments_to_fastapi_path(segments: list[PathSegment]) -> str:
    """Join PathSegments into a FastAPI path string.

    Examples:
        [STATIC("users")] -> "/users"
        [STATIC("users"), DYNAMIC("id")] -> "/users/{id}"
        [] -> "/"
    """
    return "/" + "/".join(segment.to_fastapi_segment() for segment in segments)
