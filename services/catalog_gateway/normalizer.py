"""
Reshape upstream payloads into the gateway's data model.

The upstream is not consistent across endpoints: artist-page release items
nest their quality, rights and dates, album-detail track listings omit the
parent album, and search pages occasionally carry entries with missing
fields. Every function here works per item or per group so one bad entry
never costs the whole response.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from services.catalog_gateway.classifier import EntityHint
from services.catalog_gateway.models import (
    Album,
    AlbumDetail,
    Artist,
    ArtistProfile,
    Page,
    RawPage,
    RawReleaseGroup,
    RawReleaseItem,
    RawSearchResponse,
    ReleaseType,
    SearchResultSet,
    Track,
)

log = logging.getLogger("catalog-gateway.normalizer")

M = TypeVar("M", bound=BaseModel)

RELEASE_TYPE_ORDER = tuple(ReleaseType)
RELEASE_TYPE_VALUES = frozenset(t.value for t in ReleaseType)


# ════════════════════════════════════════════════════════════════════
# Pages
# ════════════════════════════════════════════════════════════════════

def _validate_items(model: Type[M], items: list[Any], context: str) -> list[M]:
    valid: list[M] = []
    for index, item in enumerate(items):
        try:
            valid.append(model.model_validate(item))
        except ValidationError as e:
            log.warning(
                "Skipping %s item #%d with unexpected shape (%d validation errors)",
                context,
                index,
                e.error_count(),
            )
    return valid


def normalize_page(model: Type[M], raw: RawPage, context: str) -> Page[M]:
    """Validate a page of items and enforce ``len(items) <= limit, total``."""
    items = _validate_items(model, raw.items, context)
    limit = raw.limit
    total = raw.total

    if limit and len(items) > limit:
        log.warning("%s page returned %d items for limit %d; truncating", context, len(items), limit)
        items = items[:limit]
    elif not limit:
        limit = len(items)

    if total < len(items):
        log.warning("%s page reported total %d below %d items", context, total, len(items))
        total = len(items)

    return Page[model](items=items, limit=limit, offset=raw.offset, total=total, has_more=raw.has_more)


def normalize_search(
    payload: dict,
    query: str,
    entity_hint: EntityHint = EntityHint.NONE,
) -> SearchResultSet:
    raw = RawSearchResponse.model_validate(payload)
    return SearchResultSet(
        query=raw.query if raw.query is not None else query,
        entity_hint=entity_hint,
        albums=normalize_page(Album, raw.albums, "album"),
        tracks=normalize_page(Track, raw.tracks, "track"),
        artists=normalize_page(Artist, raw.artists, "artist"),
    )


def filter_explicit(results: SearchResultSet, allow_explicit: bool = True) -> SearchResultSet:
    """
    Drop albums and tracks flagged with a parental warning.

    Only the fetched page is filtered; reported totals are left alone.
    """
    if allow_explicit:
        return results

    return results.model_copy(
        update={
            "albums": results.albums.model_copy(
                update={"items": [a for a in results.albums.items if not a.parental_warning]}
            ),
            "tracks": results.tracks.model_copy(
                update={"items": [t for t in results.tracks.items if not t.parental_warning]}
            ),
        }
    )


def normalize_releases_page(payload: dict, limit: int = 0, offset: int = 0) -> Page[Album]:
    """
    Normalize ``artist/getReleasesList``, whose items use the artist-page shape.

    The listing usually answers with only ``has_more`` and ``items``; paging
    the upstream leaves out is taken from the request, and a missing total
    becomes the known lower bound ``offset + len(items)``, plus one while
    ``has_more`` is set.
    """
    raw = RawPage.model_validate(payload)
    items = []
    for index, item in enumerate(raw.items):
        try:
            items.append(remap_release_item(item))
        except (ValidationError, ValueError, TypeError) as e:
            log.warning("Skipping release #%d with unexpected shape: %s", index, e)

    update: dict[str, Any] = {"items": items}
    reported = raw.model_fields_set
    if "limit" not in reported:
        update["limit"] = limit
    if "offset" not in reported:
        update["offset"] = offset
    if "total" not in reported:
        update["total"] = update.get("offset", raw.offset) + len(items) + (1 if raw.has_more else 0)
    return normalize_page(Album, raw.model_copy(update=update), "release")


def normalize_album_detail(payload: dict) -> AlbumDetail:
    """Normalize ``album/get``, embedding the parent album into every track."""
    album_fields = {k: v for k, v in payload.items() if k != "tracks"}
    parent = Album.model_validate(album_fields).model_dump()

    raw_tracks = RawPage.model_validate(payload.get("tracks") or {})
    raw_tracks = raw_tracks.model_copy(
        update={
            "items": [
                {**item, "album": item.get("album") or parent} if isinstance(item, dict) else item
                for item in raw_tracks.items
            ]
        }
    )
    return AlbumDetail.model_validate(
        {**album_fields, "tracks": normalize_page(Track, raw_tracks, "album track")}
    )


# ════════════════════════════════════════════════════════════════════
# Artist discography
# ════════════════════════════════════════════════════════════════════

def _epoch_seconds(date_text: Optional[str]) -> Optional[int]:
    """Best-effort epoch seconds; an unreadable date leaves ``released_at`` unset."""
    if not date_text:
        return None
    text = date_text.strip()
    if text.endswith(("Z", "z")):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        log.debug("Ignoring unreadable release date %r", date_text)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def _flatten_name(artist: Any) -> Any:
    if isinstance(artist, dict) and isinstance(artist.get("name"), dict):
        return {**artist, "name": artist["name"].get("display")}
    return artist


def remap_release_item(item: dict) -> dict:
    """Move nested quality, rights and date fields to where ``Album`` expects them."""
    raw = RawReleaseItem.model_validate(item)
    remapped = {
        **item,
        "maximum_sampling_rate": raw.audio_info.maximum_sampling_rate,
        "maximum_bit_depth": raw.audio_info.maximum_bit_depth,
        "streamable": raw.rights.streamable,
        "released_at": _epoch_seconds(raw.dates.stream),
        "release_date_original": raw.dates.original,
    }
    if "artist" in item:
        remapped["artist"] = _flatten_name(item["artist"])
    if isinstance(item.get("artists"), list):
        remapped["artists"] = [_flatten_name(a) for a in item["artists"]]
    # Fail here, per item, rather than later on the whole profile.
    return Album.model_validate(remapped).model_dump(exclude_none=True)


def _remap_group(group: Any) -> Optional[RawReleaseGroup]:
    try:
        raw = RawReleaseGroup.model_validate(group)
        return raw.model_copy(update={"items": [remap_release_item(i) for i in raw.items]})
    except (ValidationError, ValueError, TypeError) as e:
        group_type = group.get("type") if isinstance(group, dict) else None
        log.warning("Dropping release group %r that could not be mapped: %s", group_type, e)
        return None


def reshape_artist_releases(artist: dict) -> dict:
    """
    Rebuild the artist page's ``releases`` list into a mapping keyed by
    release type, keeping only the types the upstream returned.

    A missing or empty list is returned untouched.
    """
    releases = artist.get("releases")
    if not isinstance(releases, list) or not releases:
        return artist

    by_type: dict[str, RawReleaseGroup] = {}
    for group in releases:
        remapped = _remap_group(group)
        if remapped is None:
            continue
        if remapped.type not in RELEASE_TYPE_VALUES:
            log.debug("Ignoring unknown release type %r", remapped.type)
            continue
        # First group of a given type wins.
        by_type.setdefault(remapped.type, remapped)

    reshaped = {
        release_type.value: {
            "has_more": by_type[release_type.value].has_more,
            "items": by_type[release_type.value].items,
        }
        for release_type in RELEASE_TYPE_ORDER
        if release_type.value in by_type
    }
    return {**artist, "releases": reshaped}


def normalize_artist_profile(payload: dict) -> ArtistProfile:
    return ArtistProfile.model_validate(reshape_artist_releases(payload))
