"""Display helpers shared by callers rendering catalog entities."""

from datetime import datetime, timezone
from typing import Union

from services.catalog_gateway.models import Album, Artist, Track

Entity = Union[Album, Track, Artist]


def parent_album(entity: Union[Album, Track]) -> Album:
    return entity.album if isinstance(entity, Track) else entity


def entity_type(entity: Entity) -> str:
    """Search tab an entity belongs to."""
    if isinstance(entity, Artist):
        return "artists"
    if isinstance(entity, Track):
        return "tracks"
    return "albums"


def format_title(entity: Entity) -> str:
    if isinstance(entity, Artist):
        return entity.name.strip()
    if entity.version:
        return f"{entity.title} ({entity.version})".strip()
    return entity.title.strip()


def format_artists(entity: Union[Album, Track], separator: str = ", ") -> str:
    album = parent_album(entity)
    if album.artists:
        return separator.join(a.name for a in album.artists)
    if isinstance(entity, Track) and entity.performer:
        return entity.performer.name
    return "Various Artists"


def format_duration(seconds: int) -> str:
    """Compact duration such as ``1h 5m`` or ``3m 12s``; seconds are hidden past an hour."""
    if not seconds:
        return "0m"
    total_minutes, remaining_seconds = divmod(int(seconds), 60)
    hours, remaining_minutes = divmod(total_minutes, 60)

    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if remaining_minutes > 0:
        parts.append(f"{remaining_minutes}m")
    if remaining_seconds > 0 and hours <= 0:
        parts.append(f"{remaining_seconds}s")
    return " ".join(parts)


def full_res_image_url(entity: Union[Album, Track]) -> str:
    """Original-resolution cover URL (``..._600.jpg`` becomes ``..._org.jpg``)."""
    large = parent_album(entity).image.large or ""
    return f"{large[:-7]}org.jpg"


def format_custom_title(template: str, entity: Union[Album, Track]) -> str:
    """Expand ``{artists}``, ``{name}``, ``{year}`` and ``{duration}`` in a naming template."""
    released_at = entity.released_at or parent_album(entity).released_at or 0
    year = datetime.fromtimestamp(released_at, tz=timezone.utc).year
    return (
        template.replace("{artists}", format_artists(entity))
        .replace("{name}", format_title(entity))
        .replace("{year}", str(year))
        .replace("{duration}", format_duration(entity.duration))
    )
