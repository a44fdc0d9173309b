"""Integration tests for the middleware mapping.

Each test builds a routes directory, passes a middleware mapping to
handle_routes, and checks through TestClient which middleware ran, in
which order, for which route.
"""

from pathlib import Path
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from fastapi_filesystem_router import InvalidMiddlewareError, handle_routes

ORDER_ROUTE = (
    "from fastapi import Request\n"
    "async def get(request: Request):\n"
    '    return {"order": [*getattr(request.state, "order", []), "handler"]}\n'
)


def tracing(name: str) -> Any:
    """Build a middleware that appends its name to request.state.order."""

    async def middleware(request: Any, call_next: Any) -> Any:
        request.state.order = [*getattr(request.state, "order", []), name]
        return await call_next(request)

    middleware.__name__ = name
    return middleware


def _client(routes: Path, middleware: dict[str, Any]) -> TestClient:
    app = FastAPI()
    handle_routes(app, middleware=middleware, routes_directory=routes)
    return TestClient(app)


class TestCascade:
    def test_least_specific_first_then_route_handler(self, create_route_tree):
        routes = create_route_tree({"users/_id/purchases.py": ORDER_ROUTE})

        client = _client(
            routes,
            {
                "users": tracing("M1"),
                "users/_id": [tracing("M2"), tracing("M3")],
                "users/_id/purchases.py": tracing("M4"),
            },
        )

        response = client.get("/users/42/purchases")

        assert response.status_code == 200
        assert response.json() == {"order": ["M1", "M2", "M3", "M4", "handler"]}

    def test_mapping_order_is_respected_as_given(self, create_route_tree):
        routes = create_route_tree({"users/index.py": ORDER_ROUTE})

        client = _client(routes, {"users/index.py": tracing("file"), "users": tracing("dir")})

        assert client.get("/users").json() == {"order": ["file", "dir", "handler"]}

    def test_sibling_routes_do_not_share_middleware(self, create_route_tree):
        routes = create_route_tree({"users/index.py": ORDER_ROUTE, "posts/index.py": ORDER_ROUTE})

        client = _client(routes, {"users": tracing("users-only")})

        assert client.get("/users").json() == {"order": ["users-only", "handler"]}
        assert client.get("/posts").json() == {"order": ["handler"]}

    def test_empty_prefix_applies_to_every_route(self, create_route_tree):
        routes = create_route_tree({"index.py": ORDER_ROUTE, "a/b.py": ORDER_ROUTE})

        client = _client(routes, {"": tracing("global")})

        assert client.get("/").json() == {"order": ["global", "handler"]}
        assert client.get("/a/b").json() == {"order": ["global", "handler"]}

    def test_prefix_match_is_plain_string_prefix(self, create_route_tree):
        routes = create_route_tree({"user/index.py": ORDER_ROUTE, "users/index.py": ORDER_ROUTE})

        client = _client(routes, {"user": tracing("user")})

        # "user" is a prefix of "users/index.py" too
        assert client.get("/user").json() == {"order": ["user", "handler"]}
        assert client.get("/users").json() == {"order": ["user", "handler"]}

    def test_middleware_runs_on_router_export_layers(self, create_route_tree):
        routes = create_route_tree(
            {
                "items.py": (
                    "from fastapi import APIRouter, Request\n"
                    "router = APIRouter()\n"
                    "@router.get('/')\n"
                    "async def index(request: Request):\n"
                    "    return {'order': [*request.state.order, 'index']}\n"
                    "@router.get('/{item_id}')\n"
                    "async def read(item_id: int, request: Request):\n"
                    "    return {'order': [*request.state.order, 'read']}\n"
                )
            }
        )

        client = _client(routes, {"items.py": tracing("items")})

        assert client.get("/items").json() == {"order": ["items", "index"]}
        assert client.get("/items/3").json() == {"order": ["items", "read"]}

    def test_middleware_runs_once_per_request(self, create_route_tree):
        routes = create_route_tree({"users/index.py": ORDER_ROUTE, "users/_id.py": ORDER_ROUTE})

        client = _client(routes, {"users": tracing("auth")})

        assert client.get("/users/9").json() == {"order": ["auth", "handler"]}


class TestMiddlewareBehavior:
    def test_middleware_can_short_circuit(self, create_route_tree):
        routes = create_route_tree(
            {"admin/index.py": 'async def get():\n    return {"secret": True}\n'}
        )

        async def require_token(request: Any, call_next: Any) -> Any:
            if request.headers.get("Authorization") != "Bearer ok":
                return JSONResponse({"detail": "Unauthorized"}, status_code=401)
            return await call_next(request)

        client = _client(routes, {"admin": require_token})

        assert client.get("/admin").status_code == 401
        authorized = client.get("/admin", headers={"Authorization": "Bearer ok"})
        assert authorized.json() == {"secret": True}

    def test_middleware_can_modify_response(self, create_route_tree, simple_route_handler):
        routes = create_route_tree({"hello.py": simple_route_handler})

        async def stamp(request: Any, call_next: Any) -> Any:
            response = await call_next(request)
            response.headers["X-Stamp"] = "applied"
            return response

        client = _client(routes, {"hello.py": stamp})

        assert client.get("/hello").headers["X-Stamp"] == "applied"

    def test_response_flows_back_in_reverse_order(self, create_route_tree, simple_route_handler):
        routes = create_route_tree({"api/hello.py": simple_route_handler})

        def appending(label: str) -> Any:
            async def middleware(request: Any, call_next: Any) -> Any:
                response = await call_next(request)
                order = response.headers.get("X-Order", "")
                response.headers["X-Order"] = f"{order}{label},"
                return response

            return middleware

        client = _client(routes, {"api": appending("api"), "api/hello.py": appending("file")})

        assert client.get("/api/hello").headers["X-Order"] == "file,api,"


class TestValidationBeforeRegistration:
    @pytest.mark.parametrize(
        "middleware",
        [
            {"uesrs": tracing("typo")},
            {"users/missing.py": tracing("typo")},
            {"/users": tracing("slash")},
            {"./users": tracing("dot")},
            {"users//": tracing("double-slash")},
            {"users": "not a function"},
            {"users": [tracing("ok"), None]},
        ],
    )
    def test_invalid_mapping_registers_no_routes(self, create_route_tree, middleware):
        routes = create_route_tree({"users/index.py": ORDER_ROUTE})
        app = FastAPI()
        before = [route.path for route in app.routes]

        with pytest.raises(InvalidMiddlewareError):
            handle_routes(app, middleware=middleware, routes_directory=routes)

        assert [route.path for route in app.routes] == before
        assert TestClient(app).get("/users").status_code == 404
