"""
Qobuz Catalog Gateway: FastAPI sidecar.

Thin HTTP surface over ``CatalogClient``: search, artist pages, artist
release listings, album details and signed stream-URL resolution against
the Qobuz private API. The web frontend talks to this service on port 8587
and passes the listener's preferred region in the ``Token-Country`` header.

All upstream configuration (app id, secret, token pools, SOCKS / CORS
relay) is read from the environment once, on first use.
"""

from typing import Optional

from fastapi import FastAPI, Header, Query, Request
from fastapi.responses import JSONResponse

from services.catalog_gateway.client import CatalogClient
from services.catalog_gateway.config import GatewayConfig
from services.catalog_gateway.errors import (
    CatalogGatewayError,
    ConfigurationError,
    SignatureRejected,
    StreamUnavailable,
    UpstreamRejected,
    UpstreamUnavailable,
)
from services.catalog_gateway.formatting import (
    format_artists,
    format_custom_title,
    format_duration,
    format_title,
    full_res_image_url,
)
from services.catalog_gateway.models import QualityTier, ReleaseType
from services.catalog_gateway.normalizer import filter_explicit
from services.common.logging_utils import configure_service_logger

# ── Logging ─────────────────────────────────────────────────────────
log = configure_service_logger("catalog-gateway")

# ── FastAPI app ─────────────────────────────────────────────────────
app = FastAPI(title="Qobuz Catalog Gateway", version="1.0.0")

# ── Client instance (initialised on first use) ─────────────────────
_catalog_client: Optional[CatalogClient] = None


def _get_client() -> CatalogClient:
    """Build the shared client from the environment the first time it is needed."""
    global _catalog_client
    if _catalog_client is None:
        config = GatewayConfig.from_env()
        _catalog_client = CatalogClient(config)
        log.info(f"Catalog gateway configured: {config.summary()}")
    return _catalog_client


def _status_for(error: CatalogGatewayError) -> int:
    if isinstance(error, ConfigurationError):
        return 500
    if isinstance(error, StreamUnavailable):
        return 404
    if isinstance(error, (UpstreamUnavailable, SignatureRejected)):
        return 502
    if isinstance(error, UpstreamRejected) and 400 <= error.status_code < 500:
        return error.status_code
    return 502


@app.exception_handler(CatalogGatewayError)
async def catalog_error_handler(request: Request, exc: CatalogGatewayError):
    status_code = _status_for(exc)
    if status_code >= 500:
        log.error(f"{request.url.path} failed: {type(exc).__name__}: {exc}")
    else:
        log.warning(f"{request.url.path} rejected: {type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# ════════════════════════════════════════════════════════════════════
# Routes
# ════════════════════════════════════════════════════════════════════

@app.get("/health")
async def health():
    return {"status": "ok", "service": "catalog-gateway"}


@app.get("/search")
async def search(
    q: str = Query(..., min_length=1),
    limit: int = Query(10, ge=1, le=500),
    offset: int = Query(0, ge=0),
    explicit: bool = True,
    token_country: Optional[str] = Header(None),
):
    """Search albums, tracks and artists; permalinks jump straight to their entity."""
    results = await _get_client().search(q, limit=limit, offset=offset, region=token_country)
    return filter_explicit(results, allow_explicit=explicit).model_dump(mode="json")


@app.get("/artist/{artist_id}")
async def get_artist(artist_id: int, token_country: Optional[str] = Header(None)):
    """Artist biography plus discography grouped by release type."""
    profile = await _get_client().get_artist_profile(artist_id, region=token_country)
    return {"artist": profile.model_dump(mode="json")}


@app.get("/artist/{artist_id}/releases")
async def get_artist_releases(
    artist_id: int,
    release_type: ReleaseType = ReleaseType.ALBUM,
    limit: int = Query(10, ge=1, le=500),
    offset: int = Query(0, ge=0),
    track_size: int = Query(1000, ge=1),
    token_country: Optional[str] = Header(None),
):
    page = await _get_client().get_artist_releases(
        artist_id,
        release_type=release_type,
        limit=limit,
        offset=offset,
        track_size=track_size,
        region=token_country,
    )
    return page.model_dump(mode="json")


@app.get("/album/{album_id}")
async def get_album(
    album_id: str,
    title_template: Optional[str] = None,
    token_country: Optional[str] = Header(None),
):
    """Album with its tracks, plus ready-to-render display strings."""
    album = await _get_client().get_album_detail(album_id, region=token_country)
    display = {
        "title": format_title(album),
        "artists": format_artists(album),
        "duration": format_duration(album.duration),
        "cover_url": full_res_image_url(album) if album.image.large else None,
    }
    if title_template:
        display["custom_title"] = format_custom_title(title_template, album)
    return {**album.model_dump(mode="json"), "display": display}


@app.get("/track/{track_id}/stream")
async def get_stream_url(
    track_id: int,
    quality: QualityTier = QualityTier.HIRES_24_192,
    token_country: Optional[str] = Header(None),
):
    """Resolve a signed, short-lived file URL for a track."""
    url = await _get_client().resolve_stream_url(track_id, quality, region=token_country)
    return {"track_id": track_id, "quality": quality.value, "url": url}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8587)
