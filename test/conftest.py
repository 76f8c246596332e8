from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest


class MockServer:
    """In-memory HTTP endpoint set that records every request it receives."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add(self, method: str, path: str, status_code: int = 200, **kwargs: Any) -> None:
        self.routes[(method.upper(), path)] = lambda request: httpx.Response(status_code, **kwargs)

    def add_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method.upper(), path)] = handler

    def fail(self, method: str, path: str, message: str = "connection refused") -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError(message, request=request)

        self.routes[(method.upper(), path)] = handler

    def client(self) -> httpx.Client:
        return httpx.Client(transport=self.transport)

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": "not found"})
        return route(request)


@pytest.fixture
def server():
    return MockServer()


@pytest.fixture
def client(server):
    with server.client() as http_client:
        yield http_client
