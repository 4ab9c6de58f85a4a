"""
Shared fixtures.

The network is replaced by an httpx.MockTransport routed through FakeApi,
which records every request it receives. No real API calls are made.
"""

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from finance_sync.audit import InMemoryAuditSink
from finance_sync.config import ApiSettings
from finance_sync.orchestrator import FinanceSyncClient
from finance_sync.services.identifier import IdentifierGenerator


BASE_URL = "https://finance.test"
FIXED_ENTROPY = bytes(range(16))


class FakeApi:
    """Canned responses keyed by (method, raw path)."""

    def __init__(self):
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def on(
        self,
        method: str,
        path: str,
        status: int = 200,
        json_body: Any = None,
        content: Optional[bytes] = None,
        responder: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if responder is not None:
                return responder(request)
            if content is not None:
                return httpx.Response(status, content=content, request=request)
            if json_body is not None:
                return httpx.Response(status, json=json_body, request=request)
            return httpx.Response(status, request=request)

        self.routes[(method, path)] = respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = (request.method, request.url.raw_path.decode("ascii"))
        if route not in self.routes:
            raise AssertionError(f"unexpected request {route}")
        return self.routes[route](request)

    def body(self, index: int = -1) -> Any:
        return json.loads(self.requests[index].content)


def echo(status: int = 200, **extra) -> Callable[[httpx.Request], httpx.Response]:
    """Responder that returns the request body merged with `extra`."""
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status,
            json={**json.loads(request.content), **extra},
            request=request,
        )
    return respond


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    return InMemoryAuditSink()


@pytest.fixture
def make_client(fake_api, audit_sink):
    """Factory for a FinanceSyncClient speaking one generation to FakeApi."""
    def _make(generation: str = "modern", cache=None) -> FinanceSyncClient:
        return FinanceSyncClient(
            settings=ApiSettings(base_url=BASE_URL, generation=generation),
            transport=httpx.MockTransport(fake_api.handler),
            cache=cache,
            audit_sink=audit_sink,
            identifiers=IdentifierGenerator(entropy=lambda n: FIXED_ENTROPY[:n]),
        )
    return _make
