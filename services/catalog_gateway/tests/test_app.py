import pytest
from fastapi.testclient import TestClient

from services.catalog_gateway import app as gateway_app
from services.catalog_gateway.client import CatalogClient
from services.catalog_gateway.credentials import Credential
from services.catalog_gateway.tests.payloads import (
    album_detail_payload,
    album_payload,
    artist_page_payload,
    page_payload,
    release_group,
    release_item_payload,
    search_payload,
    track_payload,
)


@pytest.fixture
def http(config, upstream, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    regional = config.model_copy(
        update={
            "token_countries": (
                Credential(region="US", secret_token="token-us"),
                Credential(region="FR", secret_token="token-fr"),
            )
        }
    )
    monkeypatch.setattr(gateway_app, "_catalog_client", CatalogClient(regional, transport=upstream.transport))
    return TestClient(gateway_app.app)


def test_health(http: TestClient) -> None:
    assert http.get("/health").json() == {"status": "ok", "service": "catalog-gateway"}


def test_search_uses_token_country_header(http: TestClient, upstream) -> None:
    upstream.add("catalog/search", search_payload())

    response = http.get("/search", params={"q": "daft punk"}, headers={"Token-Country": "fr"})

    assert response.status_code == 200
    assert upstream.last_request.headers["X-User-Auth-Token"] == "token-fr"
    body = response.json()
    assert body["switch_to"] is None
    assert body["albums"]["total"] == 120


def test_search_can_hide_explicit_results(http: TestClient, upstream) -> None:
    upstream.add(
        "catalog/search",
        search_payload(
            albums=[album_payload("a1", parental_warning=True), album_payload("a2")],
            tracks=[track_payload(1, parental_warning=True)],
        ),
    )

    body = http.get("/search", params={"q": "air", "explicit": "false"}).json()

    assert [a["id"] for a in body["albums"]["items"]] == ["a2"]
    assert body["tracks"]["items"] == []
    assert body["tracks"]["total"] == 340


def test_search_permalink_reports_tab(http: TestClient, upstream) -> None:
    upstream.add("catalog/search", search_payload(query="XYZ1"))

    body = http.get("/search", params={"q": "https://play.example.com/album/XYZ1"}).json()

    assert body["entity_hint"] == "album"
    assert body["switch_to"] == "albums"


def test_artist_routes(http: TestClient, upstream) -> None:
    upstream.add(
        "artist/page",
        artist_page_payload(releases=[release_group("album", [release_item_payload("al1")])]),
    )
    upstream.add("artist/getReleasesList", page_payload([release_item_payload("r1")], limit=5))

    artist = http.get("/artist/42").json()["artist"]
    releases = http.get("/artist/42/releases", params={"release_type": "live", "limit": 5}).json()

    assert list(artist["releases"]) == ["album"]
    assert artist["releases"]["album"]["items"][0]["id"] == "al1"
    assert upstream.last_request.url.params["release_type"] == "live"
    assert releases["items"][0]["id"] == "r1"


def test_album_route(http: TestClient, upstream) -> None:
    upstream.add("album/get", album_detail_payload("0060254735180"))

    body = http.get("/album/0060254735180").json()

    assert body["id"] == "0060254735180"
    assert body["tracks"]["items"][0]["album"]["id"] == "0060254735180"
    assert body["display"] == {
        "title": "Discovery",
        "artists": "Daft Punk",
        "duration": "1h",
        "cover_url": "https://static.test/covers/80/51/0060254735180_org.jpg",
    }


def test_album_route_expands_title_template(http: TestClient, upstream) -> None:
    upstream.add("album/get", album_detail_payload("0060254735180"))

    body = http.get("/album/0060254735180", params={"title_template": "{artists} - {name} ({year})"}).json()

    assert body["display"]["custom_title"] == "Daft Punk - Discovery (2001)"


def test_releases_route_reports_paging(http: TestClient, upstream) -> None:
    upstream.add("artist/getReleasesList", {"has_more": True, "items": [release_item_payload("r1")]})

    body = http.get("/artist/42/releases", params={"limit": 10, "offset": 30}).json()

    assert (body["limit"], body["offset"], body["total"], body["has_more"]) == (10, 30, 32, True)


def test_malformed_search_body_is_bad_gateway(http: TestClient, upstream) -> None:
    upstream.add("catalog/search", {"query": "air", "albums": None})

    response = http.get("/search", params={"q": "air"})

    assert response.status_code == 502
    assert response.json()["error"] == "UpstreamUnavailable"


def test_stream_route(http: TestClient, upstream) -> None:
    upstream.add("track/getFileUrl", {"url": "https://streaming.test/file.flac"})

    response = http.get("/track/99999/stream", params={"quality": "6"})

    assert response.json() == {"track_id": 99999, "quality": "6", "url": "https://streaming.test/file.flac"}
    assert upstream.last_request.url.params["format_id"] == "6"


def test_stream_route_rejects_unknown_quality(http: TestClient) -> None:
    assert http.get("/track/1/stream", params={"quality": "99"}).status_code == 422


@pytest.mark.parametrize(
    "path, route, status_code, body, expected_status, expected_error",
    [
        ("/track/1/stream", "track/getFileUrl", 200, {"sample": True}, 404, "StreamUnavailable"),
        (
            "/track/1/stream",
            "track/getFileUrl",
            400,
            {"code": 400, "message": "Invalid Request Signature parameter (request_sig)"},
            502,
            "SignatureRejected",
        ),
        ("/album/nope", "album/get", 404, {"code": 404, "message": "Album not found"}, 404, "UpstreamRejected"),
        ("/album/nope", "album/get", 500, {"code": 500, "message": "Internal error"}, 502, "UpstreamRejected"),
        ("/album/nope", "album/get", 503, None, 502, "UpstreamUnavailable"),
    ],
)
def test_errors_map_to_http_status(
    http: TestClient,
    upstream,
    path: str,
    route: str,
    status_code: int,
    body,
    expected_status: int,
    expected_error: str,
) -> None:
    if body is None:
        upstream.add(route, status_code=status_code, content=b"Bad Gateway")
    else:
        upstream.add(route, body, status_code=status_code)

    response = http.get(path)

    assert response.status_code == expected_status
    assert response.json()["error"] == expected_error


def test_missing_configuration_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("QOBUZ_APP_ID", "QOBUZ_SECRET", "QOBUZ_API_BASE", "QOBUZ_AUTH_TOKENS", "QOBUZ_TOKEN_COUNTRIES"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(gateway_app, "_catalog_client", None)

    response = TestClient(gateway_app.app).get("/search", params={"q": "air"})

    assert response.status_code == 500
    assert response.json()["error"] == "ConfigurationError"
