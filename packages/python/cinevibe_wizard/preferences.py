"""
Taste profile inferred from a user's watchlist and viewing history.

History progress is a fraction in 0..1: above 0.9 counts as completed, below
0.1 as abandoned. Completed titles weigh twice as much as watchlist entries;
genres that keep showing up in abandoned titles become exclusions.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from pydantic import BaseModel, Field

from cinevibe_core.types import EraBucket, MediaItem, MediaType

log = logging.getLogger(__name__)

COMPLETED_PROGRESS = 0.9
ABANDONED_PROGRESS = 0.1
MAX_WATCHLIST_LOOKUPS = 50
MAX_COMPLETED_LOOKUPS = 30
MAX_ABANDONED_LOOKUPS = 20


class UserPreferences(BaseModel):
    genres: List[int] = Field(default_factory=list)
    decades: List[int] = Field(default_factory=list)
    avg_rating: float = 7.0
    preferred_runtimes: List[str] = Field(default_factory=lambda: ["standard"])
    excluded_genres: List[int] = Field(default_factory=list)
    preferred_media_types: List[MediaType] = Field(default_factory=lambda: [MediaType.MOVIE])


DEFAULT_PREFERENCES = UserPreferences()


def _key(row: Mapping[str, Any]) -> Tuple[int, str]:
    return int(row["tmdb_id"]), str(row.get("media_type") or "movie")


def _genres_of(details: Mapping[str, Any]) -> List[int]:
    if isinstance(details.get("genres"), list):
        return [int(g["id"]) for g in details["genres"] if isinstance(g, dict) and "id" in g]
    return [int(g) for g in details.get("genre_ids") or []]


def _year_of(details: Mapping[str, Any]) -> int | None:
    raw = details.get("release_date") or details.get("first_air_date") or ""
    try:
        return int(raw[:4]) if len(raw) >= 4 else None
    except ValueError:
        return None


def _runtime_of(details: Mapping[str, Any], media_type: str) -> float | None:
    if media_type == MediaType.MOVIE.value:
        rt = details.get("runtime")
        return float(rt) if isinstance(rt, (int, float)) and rt else None
    episodes = details.get("episode_run_time")
    if isinstance(episodes, list) and episodes:
        return float(episodes[0])
    return None


def _runtime_bucket(avg_runtime: float) -> str:
    if avg_runtime < 90:
        return "short"
    if avg_runtime < 120:
        return "standard"
    return "epic"


def _top(counter: Counter, *, min_count: int, limit: int) -> List[int]:
    ranked = sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    return [k for k, n in ranked if n >= min_count][:limit]


async def _fetch_details(
    catalog, rows: Sequence[Mapping[str, Any]]
) -> List[Tuple[str, Dict[str, Any]]]:
    """Concurrent detail lookups; a failed lookup is logged and skipped."""

    async def one(row):
        media_id, media_type = _key(row)
        return media_type, await catalog.get_details(MediaType(media_type), media_id)

    outcomes = await asyncio.gather(*(one(r) for r in rows), return_exceptions=True)
    out: List[Tuple[str, Dict[str, Any]]] = []
    for row, outcome in zip(rows, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            log.warning("Details lookup failed for %s: %s", _key(row), outcome)
            continue
        if outcome[1]:
            out.append(outcome)
    return out


async def analyze_user_preferences(
    watchlist: Iterable[Mapping[str, Any]],
    history: Iterable[Mapping[str, Any]],
    catalog,
) -> UserPreferences:
    watchlist = list(watchlist)
    history = list(history)

    completed: set = set()
    abandoned: set = set()
    for row in history:
        progress = float(row.get("progress") or 0.0)
        if progress > COMPLETED_PROGRESS:
            completed.add(_key(row))
        elif progress < ABANDONED_PROGRESS:
            abandoned.add(_key(row))

    watch_rows = [r for r in watchlist if _key(r) not in abandoned][:MAX_WATCHLIST_LOOKUPS]
    done_rows = [r for r in history if _key(r) in completed][:MAX_COMPLETED_LOOKUPS]
    dropped_rows = [r for r in history if _key(r) in abandoned][:MAX_ABANDONED_LOOKUPS]

    watch_details, done_details, dropped_details = await asyncio.gather(
        _fetch_details(catalog, watch_rows),
        _fetch_details(catalog, done_rows),
        _fetch_details(catalog, dropped_rows),
    )

    genres: Counter = Counter()
    decades: Counter = Counter()
    ratings: List[float] = []
    runtimes: List[float] = []
    media_types: List[MediaType] = []

    for weight, batch in ((1, watch_details), (2, done_details)):
        for media_type, details in batch:
            mt = MediaType(media_type)
            if mt not in media_types:
                media_types.append(mt)
            for g in _genres_of(details):
                genres[g] += weight
            year = _year_of(details)
            if year is not None:
                decades[(year // 10) * 10] += weight
            if isinstance(details.get("vote_average"), (int, float)):
                ratings.append(float(details["vote_average"]))
            runtime = _runtime_of(details, media_type)
            if runtime is not None:
                runtimes.append(runtime)

    excluded: Counter = Counter()
    for _, details in dropped_details:
        for g in _genres_of(details):
            excluded[g] += 1

    avg_runtime = sum(runtimes) / len(runtimes) if runtimes else 120.0
    return UserPreferences(
        genres=_top(genres, min_count=2, limit=10),
        decades=_top(decades, min_count=2, limit=5),
        avg_rating=sum(ratings) / len(ratings) if ratings else 7.0,
        preferred_runtimes=[_runtime_bucket(avg_runtime)],
        excluded_genres=sorted(g for g, n in excluded.items() if n >= 3),
        preferred_media_types=media_types,
    )


def _in_era(year: int, era: EraBucket, current_year: int) -> bool:
    if era is EraBucket.MODERN:
        return 2015 <= year <= current_year
    if era is EraBucket.Y2K:
        return 2000 <= year <= 2014
    if era is EraBucket.NINETIES:
        return 1990 <= year <= 1999
    if era is EraBucket.CLASSIC:
        return year < 1990
    return False


def score_for_preferences(
    item: MediaItem,
    prefs: UserPreferences,
    *,
    selected_genres: Sequence[int] | None = None,
    selected_era: EraBucket | None = None,
    current_year: int | None = None,
) -> float:
    """Personal fit of one title: genre overlap, era or decade, rating closeness."""
    score = 0.0
    item_genres = list(item.genre_ids)
    wanted = list(selected_genres) if selected_genres else prefs.genres

    if wanted and item_genres:
        overlap = len(set(item_genres) & set(wanted))
        score += overlap / max(len(item_genres), len(wanted)) * 40

    if set(item_genres) & set(prefs.excluded_genres):
        score -= 30

    year = item.release_year
    if year is not None:
        if selected_era is not None and selected_era is not EraBucket.ANY:
            if _in_era(year, selected_era, current_year or date.today().year):
                score += 20
        elif prefs.decades and (year // 10) * 10 in prefs.decades:
            score += 20

    if item.vote_average:
        score += max(0.0, 1 - abs(item.vote_average - prefs.avg_rating) / 10) * 20

    return max(0.0, score)
