"""Recognise catalog permalinks pasted into the search box."""

import re
from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict

from services.catalog_gateway.config import DEFAULT_PERMALINK_DOMAIN


class EntityHint(str, Enum):
    ALBUM = "album"
    TRACK = "track"
    ARTIST = "artist"
    NONE = "none"

    @property
    def search_tab(self) -> Optional[str]:
        """Result tab the UI should focus for this hint."""
        if self is EntityHint.NONE:
            return None
        return f"{self.value}s"


class CatalogQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw_text: str
    region_hint: Optional[str] = None


class ClassifiedQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    resolved_term: str
    entity_hint: EntityHint = EntityHint.NONE


@lru_cache(maxsize=8)
def _permalink_patterns(domain: str) -> tuple[tuple[EntityHint, re.Pattern], ...]:
    host = rf"https://(?:play|open)\.{re.escape(domain)}"
    # Album ids are alphanumeric; track and artist ids are numeric.
    return (
        (EntityHint.ALBUM, re.compile(rf"{host}/album/([a-zA-Z0-9]+)")),
        (EntityHint.TRACK, re.compile(rf"{host}/track/(\d+)")),
        (EntityHint.ARTIST, re.compile(rf"{host}/artist/(\d+)")),
    )


def classify(raw_text: str, domain: str = DEFAULT_PERMALINK_DOMAIN) -> ClassifiedQuery:
    """Turn a permalink into its entity id, or pass free text through untouched."""
    text = raw_text.strip()
    for hint, pattern in _permalink_patterns(domain):
        match = pattern.search(text)
        if match:
            return ClassifiedQuery(resolved_term=match.group(1), entity_hint=hint)
    return ClassifiedQuery(resolved_term=raw_text, entity_hint=EntityHint.NONE)


def classify_query(query: CatalogQuery, domain: str = DEFAULT_PERMALINK_DOMAIN) -> ClassifiedQuery:
    return classify(query.raw_text, domain)
