"""
Outbound transport composition.

Two independent indirections can sit between the gateway and the upstream:

- a SOCKS proxy, applied at the connection level to every leg of the call;
- a CORS relay, applied at the URL level by appending the percent-encoded
  target URL to the relay's base URL.

Either, both or neither may be active. ``TransportPlan`` captures the choice
once and builds a fresh ``httpx.AsyncClient`` per call.
"""

from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote

import httpx

from services.catalog_gateway.config import DEFAULT_RELAY_USER_AGENT, GatewayConfig
from services.common.sidecar_runtime_utils import upstream_timeout

# Characters JavaScript's encodeURIComponent leaves untouched, beyond
# the alphanumerics and "_.-~" that quote() never escapes.
_URI_COMPONENT_SAFE = "!*'()"


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def _socks_url(endpoint: str) -> str:
    return endpoint if "://" in endpoint else f"socks5://{endpoint}"


@dataclass(frozen=True)
class TransportPlan:
    """How a single upstream call leaves the process."""

    socks_proxy: Optional[str] = None
    relay_base_url: Optional[str] = None
    relay_user_agent: str = DEFAULT_RELAY_USER_AGENT
    timeout: httpx.Timeout = field(default_factory=upstream_timeout)

    @property
    def uses_relay(self) -> bool:
        return bool(self.relay_base_url)

    @property
    def proxy_url(self) -> Optional[str]:
        return _socks_url(self.socks_proxy) if self.socks_proxy else None

    def target_url(self, url: str) -> str:
        """Rewrite a fully built upstream URL so it goes through the relay, if any."""
        if not self.uses_relay:
            return url
        return f"{self.relay_base_url}{encode_uri_component(url)}"

    def headers(self) -> dict[str, str]:
        """Extra headers the plan imposes on every request."""
        if self.uses_relay:
            return {"User-Agent": self.relay_user_agent}
        return {}

    def client_kwargs(self) -> dict:
        kwargs: dict = {"timeout": self.timeout}
        if self.proxy_url:
            kwargs["proxy"] = self.proxy_url
        return kwargs

    def build_client(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> httpx.AsyncClient:
        """Build an AsyncClient honouring the plan's proxy and timeout."""
        kwargs = self.client_kwargs()
        if transport is not None:
            kwargs["transport"] = transport
        return httpx.AsyncClient(**kwargs)


def build_transport_plan(
    socks_endpoint: Optional[str] = None,
    relay_base_url: Optional[str] = None,
    *,
    relay_user_agent: str = DEFAULT_RELAY_USER_AGENT,
    timeout: Optional[float] = None,
) -> TransportPlan:
    """Compose the outbound transport from the optional SOCKS and relay settings."""
    return TransportPlan(
        socks_proxy=(socks_endpoint or "").strip() or None,
        relay_base_url=(relay_base_url or "").strip() or None,
        relay_user_agent=relay_user_agent,
        timeout=upstream_timeout(timeout) if timeout else upstream_timeout(),
    )


def plan_from_config(config: GatewayConfig) -> TransportPlan:
    return build_transport_plan(
        config.socks_proxy,
        config.cors_proxy,
        relay_user_agent=config.relay_user_agent,
        timeout=config.request_timeout,
    )
