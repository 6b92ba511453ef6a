"""
Async client for the upstream catalog's private API.

Each operation is an independent request: resolve a credential, compose the
transport, send, normalize. Nothing is cached or retried here; timeouts come
from the transport and failures surface as the exceptions in ``errors``.
"""

import logging
import random
import time
from typing import Any, Callable, Optional, Union

import httpx
from pydantic import ValidationError

from services.catalog_gateway.classifier import CatalogQuery, classify_query
from services.catalog_gateway.config import GatewayConfig
from services.catalog_gateway.credentials import CredentialPool
from services.catalog_gateway.errors import (
    SignatureRejected,
    StreamUnavailable,
    UpstreamRejected,
    UpstreamUnavailable,
)
from services.catalog_gateway.models import (
    Album,
    AlbumDetail,
    ArtistProfile,
    Page,
    QualityTier,
    RawFileUrl,
    ReleaseType,
    SearchResultSet,
)
from services.catalog_gateway.normalizer import (
    normalize_album_detail,
    normalize_artist_profile,
    normalize_releases_page,
    normalize_search,
)
from services.catalog_gateway.signer import STREAM_INTENT, sign
from services.catalog_gateway.transport import TransportPlan, plan_from_config
from services.common.logging_utils import log_timing, mask_secret

log = logging.getLogger("catalog-gateway.client")

APP_ID_HEADER = "X-App-Id"
AUTH_TOKEN_HEADER = "X-User-Auth-Token"

_SIGNATURE_MARKERS = ("signature", "request_sig", "request_ts", "timestamp")
_CREDENTIAL_MARKERS = ("auth", "token", "credential", "user")


def _enum_value(value: Any) -> str:
    return str(getattr(value, "value", value))


def _is_signature_rejection(status_code: int, message: Optional[str]) -> bool:
    """Tell a refused signature apart from a refused credential on a signed call."""
    text = (message or "").lower()
    if status_code in (400, 401, 403) and any(m in text for m in _SIGNATURE_MARKERS):
        return True
    if status_code in (401, 403):
        return not any(m in text for m in _CREDENTIAL_MARKERS)
    return False


class CatalogClient:
    """Gateway to the upstream catalog, built once from a ``GatewayConfig``."""

    def __init__(
        self,
        config: GatewayConfig,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        config.validate_requirements()
        self._config = config
        self._pool = CredentialPool(config.token_countries, config.auth_tokens, rng=rng)
        self._plan: TransportPlan = plan_from_config(config)
        self._transport = transport
        self._clock = clock

    @property
    def config(self) -> GatewayConfig:
        return self._config

    @property
    def transport_plan(self) -> TransportPlan:
        return self._plan

    def _endpoint(self, path: str) -> str:
        return f"{self._config.api_base.rstrip('/')}/{path.lstrip('/')}"

    async def _get(
        self,
        operation: str,
        path: str,
        params: dict[str, Any],
        region: Optional[str],
        *,
        signed: bool = False,
    ) -> dict:
        token = self._pool.resolve(region)
        url = str(httpx.URL(self._endpoint(path), params=params))
        headers = {
            APP_ID_HEADER: self._config.app_id,
            AUTH_TOKEN_HEADER: token,
            **self._plan.headers(),
        }
        log.debug(
            "%s: GET %s (region=%s, token=%s, relay=%s, socks=%s)",
            operation,
            path,
            region or "default",
            mask_secret(token),
            self._plan.uses_relay,
            bool(self._plan.proxy_url),
        )

        try:
            async with self._plan.build_client(self._transport) as client:
                response = await client.get(self._plan.target_url(url), headers=headers)
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"{operation} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{operation} failed: {e}") from e

        return self._parse(operation, response, signed=signed)

    def _parse(self, operation: str, response: httpx.Response, *, signed: bool) -> dict:
        status = response.status_code
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_success:
            if not isinstance(payload, dict):
                raise UpstreamUnavailable(f"{operation} returned an unreadable body", status)
            return payload

        if not isinstance(payload, dict):
            raise UpstreamUnavailable(f"{operation} failed with HTTP {status}", status)

        message = payload.get("message")
        code = payload.get("code")
        code = str(code) if code is not None else None
        log.info("%s rejected by upstream: HTTP %d %s", operation, status, message)
        if signed and _is_signature_rejection(status, message):
            raise SignatureRejected(status, message, code)
        raise UpstreamRejected(status, message, code)

    # ── Operations ──────────────────────────────────────────────────

    @log_timing(log, "search", level=logging.DEBUG)
    async def search(
        self,
        text: str,
        limit: int = 10,
        offset: int = 0,
        region: Optional[str] = None,
    ) -> SearchResultSet:
        """Search the catalog; a pasted permalink searches for its entity id."""
        classified = classify_query(
            CatalogQuery(raw_text=text, region_hint=region),
            self._config.permalink_domain,
        )
        payload = await self._get(
            "search",
            "catalog/search",
            {"query": classified.resolved_term, "limit": limit, "offset": offset},
            region,
        )
        try:
            return normalize_search(payload, classified.resolved_term, classified.entity_hint)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Unexpected search shape for {classified.resolved_term!r}: {e}") from e

    @log_timing(log, "get_artist_profile", level=logging.DEBUG)
    async def get_artist_profile(
        self,
        artist_id: Union[int, str],
        region: Optional[str] = None,
    ) -> ArtistProfile:
        payload = await self._get(
            "get_artist_profile",
            "artist/page",
            {"artist_id": artist_id, "sort": "release_date"},
            region,
        )
        try:
            return normalize_artist_profile(payload)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Unexpected artist page shape for {artist_id}: {e}") from e

    @log_timing(log, "get_artist_releases", level=logging.DEBUG)
    async def get_artist_releases(
        self,
        artist_id: Union[int, str],
        release_type: Union[ReleaseType, str] = ReleaseType.ALBUM,
        limit: int = 10,
        offset: int = 0,
        track_size: int = 1000,
        region: Optional[str] = None,
    ) -> Page[Album]:
        """Paginated releases of one type, newest first."""
        payload = await self._get(
            "get_artist_releases",
            "artist/getReleasesList",
            {
                "artist_id": artist_id,
                "release_type": _enum_value(release_type),
                "limit": limit,
                "offset": offset,
                "track_size": track_size,
                "sort": "release_date",
            },
            region,
        )
        try:
            return normalize_releases_page(payload, limit=limit, offset=offset)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Unexpected releases shape for {artist_id}: {e}") from e

    @log_timing(log, "get_album_detail", level=logging.DEBUG)
    async def get_album_detail(
        self,
        album_id: str,
        region: Optional[str] = None,
    ) -> AlbumDetail:
        payload = await self._get(
            "get_album_detail",
            "album/get",
            {"album_id": album_id, "extra": "track_ids"},
            region,
        )
        try:
            return normalize_album_detail(payload)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Unexpected album shape for {album_id}: {e}") from e

    @log_timing(log, "resolve_stream_url", level=logging.DEBUG)
    async def resolve_stream_url(
        self,
        track_id: int,
        quality_tier: Union[QualityTier, str] = QualityTier.HIRES_24_192,
        region: Optional[str] = None,
    ) -> str:
        """
        Resolve a playable file URL. This is the only signed operation.

        Raises ``StreamUnavailable`` when the credential for ``region`` only
        gets a preview or nothing at all; another region may succeed.
        """
        quality = _enum_value(quality_tier)
        signed_request = sign(int(track_id), quality, self._config.secret, now=int(self._clock()))
        payload = await self._get(
            "resolve_stream_url",
            "track/getFileUrl",
            {
                "format_id": quality,
                "intent": STREAM_INTENT,
                "track_id": track_id,
                **signed_request.as_params(),
            },
            region,
            signed=True,
        )

        try:
            file_url = RawFileUrl.model_validate(payload)
        except ValidationError as e:
            raise UpstreamUnavailable(f"Unexpected file URL shape for track {track_id}: {e}") from e

        if not file_url.url or file_url.sample:
            restrictions = ", ".join(
                str(r.get("code")) for r in file_url.restrictions if isinstance(r, dict) and r.get("code")
            )
            raise StreamUnavailable(
                int(track_id),
                f"Track {track_id} is not streamable with the "
                f"{region or 'default'} credential"
                + (f" ({restrictions})" if restrictions else ""),
            )
        return file_url.url
