"""
Data model for the catalog gateway.

Two families of models live here:

- normalized entities (``Album``, ``Track``, ``Artist``, ``Page`` ...) that
  callers receive, and
- ``Raw*`` shapes describing what the upstream actually sends where it
  differs from the normalized form (artist discography items, search pages).

Entities allow extra fields so upstream data the gateway does not model is
carried through instead of being silently dropped.
"""

from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from services.catalog_gateway.classifier import EntityHint

T = TypeVar("T")


class QualityTier(str, Enum):
    """Upstream ``format_id`` codes accepted by ``track/getFileUrl``."""

    MP3_320 = "5"
    CD_16_44 = "6"
    HIRES_24_96 = "7"
    HIRES_24_192 = "27"


class ReleaseType(str, Enum):
    ALBUM = "album"
    LIVE = "live"
    COMPILATION = "compilation"
    EP_SINGLE = "epSingle"


# ════════════════════════════════════════════════════════════════════
# Normalized entities
# ════════════════════════════════════════════════════════════════════

class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class ImageSet(_UpstreamModel):
    small: Optional[str] = None
    thumbnail: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None
    extralarge: Optional[str] = None
    mega: Optional[str] = None
    back: Optional[str] = None


class Genre(_UpstreamModel):
    id: int
    name: str
    color: Optional[str] = None
    path: list[int] = Field(default_factory=list)


class Label(_UpstreamModel):
    id: int
    name: str
    albums_count: int = 0


class Artist(_UpstreamModel):
    id: int
    name: str
    albums_count: int = 0
    image: Optional[ImageSet] = None


class ContributingArtist(_UpstreamModel):
    id: int
    name: str
    roles: list[str] = Field(default_factory=list)


class Performer(_UpstreamModel):
    id: int
    name: str


class Album(_UpstreamModel):
    id: str
    title: str
    version: Optional[str] = None
    artist: Artist
    artists: list[ContributingArtist] = Field(default_factory=list)
    image: ImageSet
    maximum_bit_depth: int
    maximum_sampling_rate: float
    parental_warning: bool = False
    hires: bool = False
    streamable: bool = False
    released_at: Optional[int] = None
    release_date_original: Optional[str] = None
    duration: int = 0
    tracks_count: int = 0
    label: Optional[Label] = None
    genre: Optional[Genre] = None
    upc: Optional[str] = None
    qobuz_id: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # Album ids are alphanumeric upstream, but some listings send digits as ints.
        return str(value) if isinstance(value, int) else value


class Track(_UpstreamModel):
    id: int
    title: str
    version: Optional[str] = None
    album: Album
    performer: Optional[Performer] = None
    composer: Optional[Performer] = None
    maximum_bit_depth: int
    maximum_sampling_rate: float
    duration: int = 0
    track_number: int = 0
    media_number: int = 1
    isrc: Optional[str] = None
    copyright: Optional[str] = None
    released_at: Optional[int] = None
    parental_warning: bool = False
    hires: bool = False
    streamable: bool = False


class Page(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    limit: int = 0
    offset: int = 0
    total: int = 0
    # Only set by listings that report it instead of an exact total.
    has_more: Optional[bool] = None


class SearchResultSet(BaseModel):
    query: str
    entity_hint: EntityHint = EntityHint.NONE
    albums: Page[Album] = Field(default_factory=Page[Album])
    tracks: Page[Track] = Field(default_factory=Page[Track])
    artists: Page[Artist] = Field(default_factory=Page[Artist])

    @computed_field
    @property
    def switch_to(self) -> Optional[str]:
        """Result tab to focus when the query was a permalink."""
        return self.entity_hint.search_tab


class AlbumDetail(Album):
    tracks: Page[Track] = Field(default_factory=Page[Track])


class ReleaseGroup(BaseModel):
    has_more: bool = False
    items: list[Album] = Field(default_factory=list)


class ArtistName(_UpstreamModel):
    display: str


class Biography(_UpstreamModel):
    content: Optional[str] = None
    source: Optional[str] = None
    language: Optional[str] = None


class ArtistProfile(_UpstreamModel):
    id: int
    name: ArtistName
    artist_category: Optional[str] = None
    biography: Optional[Biography] = None
    images: Optional[dict[str, Any]] = None
    top_tracks: list[dict[str, Any]] = Field(default_factory=list)
    releases: dict[ReleaseType, ReleaseGroup] = Field(default_factory=dict)

    @field_validator("releases", mode="before")
    @classmethod
    def _empty_release_list(cls, value: Any) -> Any:
        # An artist without releases comes back as an empty list, not a mapping.
        if value is None or (isinstance(value, list) and not value):
            return {}
        return value


# ════════════════════════════════════════════════════════════════════
# Raw upstream shapes
# ════════════════════════════════════════════════════════════════════

class RawPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    items: list[Any] = Field(default_factory=list)
    limit: int = 0
    offset: int = 0
    total: int = 0
    has_more: Optional[bool] = None


class RawSearchResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: Optional[str] = None
    albums: RawPage = Field(default_factory=RawPage)
    tracks: RawPage = Field(default_factory=RawPage)
    artists: RawPage = Field(default_factory=RawPage)


class RawAudioInfo(_UpstreamModel):
    maximum_bit_depth: int
    maximum_sampling_rate: float


class RawRights(_UpstreamModel):
    streamable: bool = False


class RawDates(_UpstreamModel):
    stream: Optional[str] = None
    original: Optional[str] = None


class RawReleaseItem(_UpstreamModel):
    """Album as listed on the artist page: quality, rights and dates are nested."""

    audio_info: RawAudioInfo
    rights: RawRights = Field(default_factory=RawRights)
    dates: RawDates = Field(default_factory=RawDates)


class RawReleaseGroup(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    has_more: bool = False
    items: list[dict[str, Any]] = Field(default_factory=list)


class RawFileUrl(_UpstreamModel):
    """Answer of ``track/getFileUrl``."""

    track_id: Optional[int] = None
    format_id: Optional[int] = None
    url: Optional[str] = None
    sample: bool = False
    restrictions: list[dict[str, Any]] = Field(default_factory=list)
