"""
Filter set -> TMDB discover parameters, per content kind.

Films and series name their date fields differently on the discover
endpoints, so every date-bearing parameter goes through ``DATE_FIELDS``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from cinevibe_core.types import EraBucket, MediaType, RuntimePref, SortKey

from .schemas import DiscoverFilters

# media_type -> (date-range field, exact-year field)
DATE_FIELDS: Dict[MediaType, Tuple[str, str]] = {
    MediaType.MOVIE: ("primary_release_date", "primary_release_year"),
    MediaType.TV: ("first_air_date", "first_air_date_year"),
}

# Sort keys whose order can be recomputed client-side after a multi-kind merge.
CLIENT_SORTABLE = {
    SortKey.RELEASE_DATE_DESC,
    SortKey.RELEASE_DATE_ASC,
    SortKey.VOTE_AVERAGE_DESC,
    SortKey.VOTE_AVERAGE_ASC,
}


def _ids(values) -> str:
    return ",".join(str(v) for v in values)


def sort_param(sort_by: SortKey, media_type: MediaType) -> str:
    if media_type is MediaType.TV:
        if sort_by.field == "release_date":
            return sort_by.value.replace("release_date", "first_air_date")
        if sort_by is SortKey.TITLE_ASC:
            return "original_name.asc"
    return sort_by.value


def date_range_params(
    media_type: MediaType, gte: str | None = None, lte: str | None = None
) -> Dict[str, str]:
    field, _ = DATE_FIELDS[media_type]
    params: Dict[str, str] = {}
    if gte:
        params[f"{field}.gte"] = gte
    if lte:
        params[f"{field}.lte"] = lte
    return params


def build_discover_params(
    filters: DiscoverFilters, media_type: MediaType
) -> Dict[str, str]:
    mt = MediaType(media_type)
    params: Dict[str, str] = {
        "page": str(filters.page),
        "sort_by": sort_param(filters.sort_by, mt),
    }

    if filters.genres:
        params["with_genres"] = _ids(filters.genres)
    if filters.without_genres:
        params["without_genres"] = _ids(filters.without_genres)

    _, year_field = DATE_FIELDS[mt]
    if filters.year_from is not None and filters.year_to is not None:
        params.update(
            date_range_params(
                mt, f"{filters.year_from}-01-01", f"{filters.year_to}-12-31"
            )
        )
    elif filters.year_from is not None:
        params[year_field] = str(filters.year_from)
    elif filters.year_to is not None:
        params.update(date_range_params(mt, lte=f"{filters.year_to}-12-31"))

    if filters.rating_min is not None:
        params["vote_average.gte"] = f"{filters.rating_min:g}"
    if filters.vote_count_min is not None:
        params["vote_count.gte"] = str(filters.vote_count_min)
    if filters.language:
        params["with_original_language"] = filters.language
    if filters.runtime_min is not None:
        params["with_runtime.gte"] = str(filters.runtime_min)
    if filters.runtime_max is not None:
        params["with_runtime.lte"] = str(filters.runtime_max)

    return params


def era_date_range(era: EraBucket | None, current_year: int) -> Tuple[str | None, str | None]:
    if era is EraBucket.MODERN:
        return "2015-01-01", f"{current_year}-12-31"
    if era is EraBucket.Y2K:
        return "2000-01-01", "2014-12-31"
    if era is EraBucket.NINETIES:
        return "1990-01-01", "1999-12-31"
    if era is EraBucket.CLASSIC:
        return None, "1989-12-31"
    return None, None


def build_vibe_discover_params(
    *,
    primary_genres,
    media_type: MediaType,
    era: EraBucket | None,
    runtime: RuntimePref | None,
    hidden_gems: bool,
    current_year: int,
) -> Dict[str, str]:
    """Upstream params for the vibe wizard; ``page`` is set by the caller."""
    mt = MediaType(media_type)
    params: Dict[str, str] = {
        "sort_by": "vote_average.desc" if hidden_gems else "popularity.desc",
        "vote_count.gte": "50" if hidden_gems else "100",
        "with_genres": _ids(sorted(primary_genres)),
    }
    params.update(date_range_params(mt, *era_date_range(era, current_year)))

    # runtime bounds only exist on the movie endpoint
    if mt is MediaType.MOVIE and runtime not in (None, RuntimePref.ANY):
        if runtime is RuntimePref.SHORT:
            params["with_runtime.lte"] = "90"
        elif runtime is RuntimePref.STANDARD:
            params["with_runtime.gte"] = "90"
            params["with_runtime.lte"] = "120"
        elif runtime is RuntimePref.EPIC:
            params["with_runtime.gte"] = "120"
    return params


def tag_results(results: List[Mapping[str, Any]], media_type: MediaType) -> List[Dict[str, Any]]:
    return [{**r, "media_type": MediaType(media_type).value} for r in results]


def _date_of(item: Mapping[str, Any]) -> str:
    return item.get("release_date") or item.get("first_air_date") or ""


def merge_results(
    pages: Mapping[MediaType, Mapping[str, Any]],
    sort_by: SortKey,
    page: int,
) -> Dict[str, Any]:
    """
    Concatenate films then series, re-sorting only where a total order is
    computable here (dates, ratings). Other sort keys keep upstream order per
    kind. Totals are approximate: results are summed, pages take the max.
    """
    movie = pages.get(MediaType.MOVIE) or {}
    tv = pages.get(MediaType.TV) or {}

    combined = tag_results(movie.get("results") or [], MediaType.MOVIE) + tag_results(
        tv.get("results") or [], MediaType.TV
    )

    if sort_by in CLIENT_SORTABLE:
        if sort_by.field == "release_date":
            combined.sort(key=_date_of, reverse=sort_by.descending)
        else:
            combined.sort(
                key=lambda r: float(r.get("vote_average") or 0.0),
                reverse=sort_by.descending,
            )

    return {
        "results": combined,
        "total_results": int(movie.get("total_results") or 0)
        + int(tv.get("total_results") or 0),
        "total_pages": max(
            int(movie.get("total_pages") or 0), int(tv.get("total_pages") or 0)
        ),
        "page": page,
        "movie_count": int(movie.get("total_results") or 0),
        "tv_count": int(tv.get("total_results") or 0),
    }
