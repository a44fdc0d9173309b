"""Shared pytest fixtures for fastapi-filesystem-router tests."""

from pathlib import Path

import pytest


@pytest.fixture
def routes_dir(tmp_path: Path) -> Path:
    """Return an empty routes directory inside tmp_path."""
    directory = tmp_path / "routes"
    directory.mkdir()
    return directory


@pytest.fixture
def create_route_tree(routes_dir: Path):
    """Create route files from a dict of relative path to file content.

    Example:
        create_route_tree({
            "index.py": "async def get(): return {'page': 'home'}",
            "users/_id.py": "async def get(id: str): return {'id': id}",
        })

    Parent directories are created as needed. Returns the routes directory.
    """

    def _create(files: dict[str, str]) -> Path:
        for relative_path, content in files.items():
            target = routes_dir / relative_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return routes_dir

    return _create


@pytest.fixture
def simple_route_handler() -> str:
    """Return a minimal method-map route file."""
    return """
async def get():
    return {"message": "Hello, World!"}
"""


@pytest.fixture
def router_route_handler() -> str:
    """Return a Router-like route file with GET and POST on its root."""
    return """
from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def list_items():
    return {"items": []}


@router.post("/")
async def create_item():
    return {"created": True}
"""


@pytest.fixture
def multi_method_handler() -> str:
    """Return a method-map route file with several HTTP methods."""
    return """
def get():
    return {"method": "GET"}

def post(data: dict):
    return {"method": "POST", "data": data}

def delete():
    return {"method": "DELETE"}
"""
