from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union

MediaId = int


class MediaType(str, Enum):
    MOVIE = "movie"
    TV = "tv"


class MediaScope(str, Enum):
    MOVIE = "movie"
    TV = "tv"
    ALL = "all"

    def kinds(self) -> Tuple[MediaType, ...]:
        if self is MediaScope.ALL:
            return (MediaType.MOVIE, MediaType.TV)
        return (MediaType(self.value),)


class EraBucket(str, Enum):
    MODERN = "modern"
    Y2K = "2000s"
    NINETIES = "90s"
    CLASSIC = "classic"
    ANY = "any"


class RuntimePref(str, Enum):
    SHORT = "short"
    STANDARD = "standard"
    EPIC = "epic"
    ANY = "any"


class SortKey(str, Enum):
    POPULARITY_DESC = "popularity.desc"
    POPULARITY_ASC = "popularity.asc"
    VOTE_AVERAGE_DESC = "vote_average.desc"
    VOTE_AVERAGE_ASC = "vote_average.asc"
    RELEASE_DATE_DESC = "release_date.desc"
    RELEASE_DATE_ASC = "release_date.asc"
    VOTE_COUNT_DESC = "vote_count.desc"
    VOTE_COUNT_ASC = "vote_count.asc"
    REVENUE_DESC = "revenue.desc"
    TITLE_ASC = "original_title.asc"

    @property
    def field(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def descending(self) -> bool:
        return self.value.endswith(".desc")


def _year_of(date_str: str | None) -> int | None:
    if not date_str or len(date_str) < 4:
        return None
    try:
        return int(date_str[:4])
    except ValueError:
        return None


@dataclass(frozen=True)
class MediaItem:
    """Fields every catalog record carries, whatever its kind."""

    id: MediaId
    title: str = ""
    overview: str = ""
    genre_ids: Tuple[int, ...] = ()
    popularity: float = 0.0
    vote_average: float = 0.0
    vote_count: int = 0
    release_date: str | None = None
    poster_path: str | None = None
    original_language: str | None = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    media_type = MediaType.MOVIE

    @property
    def release_year(self) -> int | None:
        return _year_of(self.release_date)

    def to_payload(self) -> Dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class Film(MediaItem):
    runtime: int | None = None

    media_type = MediaType.MOVIE

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(
            {
                "id": self.id,
                "title": self.title,
                "overview": self.overview,
                "genre_ids": list(self.genre_ids),
                "popularity": self.popularity,
                "vote_average": self.vote_average,
                "vote_count": self.vote_count,
                "release_date": self.release_date,
                "poster_path": self.poster_path,
                "original_language": self.original_language,
                "media_type": self.media_type.value,
            }
        )
        if self.runtime is not None:
            payload["runtime"] = self.runtime
        return payload


@dataclass(frozen=True)
class Series(MediaItem):
    media_type = MediaType.TV

    def to_payload(self) -> Dict[str, Any]:
        payload = dict(self.extra)
        payload.update(
            {
                "id": self.id,
                "name": self.title,
                "overview": self.overview,
                "genre_ids": list(self.genre_ids),
                "popularity": self.popularity,
                "vote_average": self.vote_average,
                "vote_count": self.vote_count,
                "first_air_date": self.release_date,
                "poster_path": self.poster_path,
                "original_language": self.original_language,
                "media_type": self.media_type.value,
            }
        )
        return payload


CandidateItem = Union[Film, Series]

_KNOWN_KEYS = {
    "id",
    "title",
    "name",
    "overview",
    "genre_ids",
    "popularity",
    "vote_average",
    "vote_count",
    "release_date",
    "first_air_date",
    "poster_path",
    "original_language",
    "runtime",
    "media_type",
}


def _genre_ids(payload: Dict[str, Any]) -> Tuple[int, ...]:
    ids = payload.get("genre_ids")
    if ids is None and isinstance(payload.get("genres"), list):
        ids = [g.get("id") for g in payload["genres"] if isinstance(g, dict)]
    return tuple(int(g) for g in (ids or []) if g is not None)


def candidate_from_payload(
    payload: Dict[str, Any], media_type: MediaType | str | None = None
) -> CandidateItem:
    """Parse an upstream catalog record into a Film or Series.

    The kind comes from ``media_type`` when given, else from the record's own
    ``media_type`` tag, else from which title field it carries.
    """
    kind = media_type or payload.get("media_type")
    if kind is None:
        kind = MediaType.MOVIE if "title" in payload else MediaType.TV
    kind = MediaType(kind)

    common = dict(
        id=int(payload["id"]),
        overview=payload.get("overview") or "",
        genre_ids=_genre_ids(payload),
        popularity=float(payload.get("popularity") or 0.0),
        vote_average=float(payload.get("vote_average") or 0.0),
        vote_count=int(payload.get("vote_count") or 0),
        poster_path=payload.get("poster_path"),
        original_language=payload.get("original_language"),
        extra={k: v for k, v in payload.items() if k not in _KNOWN_KEYS},
    )
    if kind is MediaType.MOVIE:
        runtime = payload.get("runtime")
        return Film(
            title=payload.get("title") or payload.get("name") or "",
            release_date=payload.get("release_date") or None,
            runtime=int(runtime) if runtime else None,
            **common,
        )
    return Series(
        title=payload.get("name") or payload.get("title") or "",
        release_date=payload.get("first_air_date") or payload.get("release_date") or None,
        **common,
    )
