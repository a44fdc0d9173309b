"""Registration ordering for route files.

Starlette tries routes in registration order, so the order route files are
registered in decides which file wins when patterns overlap. Sorting with
the parameter marker after every other character registers
``users/photos.py`` before ``users/_id.py``, and ``GET /users/photos``
reaches the photos handler instead of binding ``id="photos"``.
"""

from collections.abc import Callable, Iterable
from functools import cmp_to_key
from typing import TypeVar

from fastapi_filesystem_router.core.parser import PARAMETER_MARKER

T = TypeVar("T")


def compare_route_files(a: str, b: str) -> int:
    """Compare two relative route file paths, parameters last.

    At the first differing character, a path with the parameter marker
    sorts after the other one; otherwise code points decide. When one
    path is a prefix of the other, the shorter one sorts first.

    Returns:
        Negative if ``a`` sorts first, positive if ``b`` does, 0 if equal.
    """
    for char_a, char_b in zip(a, b):
        if char_a == char_b:
            continue
        if char_a == PARAMETER_MARKER:
            return 1
        if char_b == PARAMETER_MARKER:
            return -1
        return ord(char_a) - ord(char_b)
    return len(a) - len(b)


def sort_route_files(items: Iterable[T], key: Callable[[T], str] | None = None) -> list[T]:
    """Sort route files into registration order.

    Args:
        items: Relative paths, or objects that ``key`` maps to relative paths.
        key: Optional function extracting the relative path of an item.

    Returns:
        A new list, literal segments before parameter segments.

    Examples:
        sort_route_files(["users/_id.py", "users/photos.py"])
            -> ["users/photos.py", "users/_id.py"]
    """
    route_key = cmp_to_key(compare_route_files)
    if key is None:
        return sorted(items, key=route_key)  # type: ignore[arg-type]
    return sorted(items, key=lambda item: route_key(key(item)))
