from typing import Any, Callable, Optional

import httpx
import pytest

from services.catalog_gateway.config import GatewayConfig
from services.catalog_gateway.tests.payloads import API_BASE


class FakeUpstream:
    """Routes requests by path suffix and records everything it receives."""

    def __init__(self) -> None:
        self.routes: dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        path: str,
        json: Any = None,
        *,
        status_code: int = 200,
        content: Optional[bytes] = None,
    ) -> None:
        def respond(request: httpx.Request) -> httpx.Response:
            if content is not None:
                return httpx.Response(status_code, content=content)
            return httpx.Response(status_code, json=json)

        self.routes[path] = respond

    def add_handler(self, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for path, respond in self.routes.items():
            if request.url.path.endswith(path):
                return respond(request)
        return httpx.Response(404, json={"status": "error", "code": 404, "message": "No route"})

    @property
    def last_request(self) -> httpx.Request:
        assert self.requests, "no request reached the upstream"
        return self.requests[-1]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def config() -> GatewayConfig:
    return GatewayConfig(
        app_id="950096963",
        secret="10b251c286cfbf64d6b7105f253d9a2e",
        api_base=API_BASE,
        auth_tokens=("fallback-token-0001",),
        permalink_domain="example.com",
    )
