"""
Vibe scoring: a weighted sum of independent signal terms per candidate.

Every term is a pure function of the candidate and the ScoringParams; the only
randomness in this module is ``shuffle_top``, which takes its RNG from the
caller.
"""

from __future__ import annotations

import random
from typing import Dict, Iterable, List, Tuple

from cinevibe_core.types import CandidateItem, EraBucket, Film, RuntimePref

from .types import FeatureContribution, ScoreBreakdown, ScoredResult, ScoringParams, VibeProfile

DEFAULT_WEIGHTS: Dict[str, float] = dict(
    genre=35.0, era=15.0, rating=25.0, popularity=15.0, freshness=10.0, runtime=15.0
)
ANTI_GENRE_PENALTY = 40.0

RATING_PRIOR_MEAN = 7.0
RATING_FULL_CONFIDENCE_VOTES = 100

ERA_LABELS = {
    EraBucket.MODERN: "Recent release",
    EraBucket.Y2K: "2000s classic",
    EraBucket.NINETIES: "90s nostalgia",
    EraBucket.CLASSIC: "Timeless classic",
}


def _clamp01(x: float) -> float:
    return 0.0 if x <= 0.0 else 1.0 if x >= 1.0 else x


def genre_affinity(genre_ids: Iterable[int], vibe: VibeProfile) -> Tuple[float, bool]:
    """(affinity in 0..1, has_anti). Primary overlap counts fully, secondary adds at most 0.3."""
    genres = set(genre_ids)
    if not genres:
        return 0.3, False

    has_anti = bool(genres & vibe.anti_genres)
    primary = (
        len(genres & vibe.primary_genres) / len(vibe.primary_genres)
        if vibe.primary_genres
        else 0.0
    )
    secondary = min(
        0.3,
        len(genres & vibe.secondary_genres) / max(len(vibe.secondary_genres), 1) * 0.3,
    )
    return min(1.0, primary + secondary), has_anti


def era_match(year: int | None, era: EraBucket, current_year: int) -> float:
    if year is None:
        return 0.5
    if era is EraBucket.MODERN:
        return 1.0 if 2015 <= year <= current_year else 0.5 if year >= 2010 else 0.2
    if era is EraBucket.Y2K:
        return 1.0 if 2000 <= year <= 2014 else 0.5 if 1995 <= year <= 2018 else 0.2
    if era is EraBucket.NINETIES:
        return 1.0 if 1990 <= year <= 1999 else 0.5 if 1985 <= year <= 2005 else 0.2
    if era is EraBucket.CLASSIC:
        return 1.0 if year < 1990 else 0.5 if year < 2000 else 0.2
    return 0.5


def runtime_match(runtime: int, pref: RuntimePref) -> float:
    if pref is RuntimePref.SHORT:
        return 1.0 if runtime <= 90 else 0.6 if runtime <= 110 else 0.3
    if pref is RuntimePref.STANDARD:
        return 1.0 if 90 <= runtime <= 120 else 0.6 if 75 <= runtime <= 140 else 0.3
    if pref is RuntimePref.EPIC:
        return 1.0 if runtime >= 120 else 0.6 if runtime >= 100 else 0.3
    return 0.7


def normalize_rating(vote_average: float, vote_count: int) -> float:
    """Low vote counts are pulled toward the prior mean before scaling 5..9 onto 0..1."""
    if not vote_average or not vote_count:
        return 0.5
    confidence = min(1.0, vote_count / RATING_FULL_CONFIDENCE_VOTES)
    adjusted = confidence * vote_average + (1 - confidence) * RATING_PRIOR_MEAN
    return _clamp01((adjusted - 5.0) / 4.0)


def popularity_score(popularity: float) -> float:
    if not popularity:
        return 0.5
    if popularity > 200:
        return 1.0
    if popularity > 100:
        return 0.8
    if popularity > 50:
        return 0.6
    return 0.4


def hidden_gem_score(popularity: float) -> float:
    if not popularity:
        return 0.5
    if popularity < 20:
        return 1.0
    if popularity < 50:
        return 0.8
    if popularity < 100:
        return 0.5
    return 0.2


def freshness_score(year: int | None, current_year: int) -> float:
    if year is None:
        return 0.5
    age = current_year - year
    if age <= 2:
        return 1.0
    if age <= 5:
        return 0.8
    if age <= 10:
        return 0.6
    if age <= 20:
        return 0.5
    return 0.4


def _feature(name: str, value: float, weights: Dict[str, float]) -> FeatureContribution:
    w = float(weights.get(name, 0.0))
    return FeatureContribution(feature=name, value=value, weight=w, contribution=w * value)


def score_item(
    item: CandidateItem,
    params: ScoringParams,
    weights: Dict[str, float] = DEFAULT_WEIGHTS,
) -> ScoredResult:
    vibe = params.vibe
    year = item.release_year
    reasons: List[str] = []
    feats: Dict[str, FeatureContribution] = {}

    affinity, has_anti = genre_affinity(item.genre_ids, vibe)
    feats["genre"] = _feature("genre", affinity, weights)
    if has_anti:
        feats["anti_genre"] = FeatureContribution(
            feature="anti_genre", value=1.0, weight=-ANTI_GENRE_PENALTY,
            contribution=-ANTI_GENRE_PENALTY,
        )
        reasons.append(f"Outside the {vibe.display_name} vibe")
    elif affinity > 0.7:
        reasons.append(f"Strong {vibe.display_name} vibe")

    if params.era is not None and params.era is not EraBucket.ANY:
        era_value = era_match(year, params.era, params.current_year)
        feats["era"] = _feature("era", era_value, weights)
        if era_value == 1.0:
            reasons.append(ERA_LABELS[params.era])

    feats["rating"] = _feature(
        "rating", normalize_rating(item.vote_average, item.vote_count), weights
    )
    if item.vote_average >= 7.5 and item.vote_count > 500:
        reasons.append(f"Highly rated ({item.vote_average:.1f}★)")

    if params.want_hidden_gems:
        feats["popularity"] = _feature("popularity", hidden_gem_score(item.popularity), weights)
        if item.popularity < 50:
            reasons.append("Hidden gem 💎")
    else:
        feats["popularity"] = _feature("popularity", popularity_score(item.popularity), weights)

    feats["freshness"] = _feature(
        "freshness", freshness_score(year, params.current_year), weights
    )

    # series carry no per-title runtime on discover results
    if (
        isinstance(item, Film)
        and item.runtime
        and params.runtime_pref is not None
        and params.runtime_pref is not RuntimePref.ANY
    ):
        feats["runtime"] = _feature(
            "runtime", runtime_match(item.runtime, params.runtime_pref), weights
        )

    breakdown = ScoreBreakdown(features=feats)
    score = round(breakdown.total, 1)
    if not reasons and score > 30:
        reasons.append("Good match for your preferences")

    return ScoredResult(item=item, score=score, reasons=reasons[:2], breakdown=breakdown)


def rank(results: Iterable[ScoredResult]) -> List[ScoredResult]:
    return sorted(results, key=ScoredResult.sort_key)


def score_and_rank(
    items: Iterable[CandidateItem],
    params: ScoringParams,
    weights: Dict[str, float] = DEFAULT_WEIGHTS,
) -> List[ScoredResult]:
    """Drop excluded ids, dedupe by (kind, id), score, and rank."""
    seen: set[tuple] = set()
    scored: List[ScoredResult] = []
    for item in items:
        if item.id in params.exclude_ids:
            continue
        key = (item.media_type, item.id)
        if key in seen:
            continue
        seen.add(key)
        scored.append(score_item(item, params, weights))
    return rank(scored)


def shuffle_top(
    results: List[ScoredResult], n: int = 30, rng: random.Random | None = None
) -> List[ScoredResult]:
    """Permute the first ``n`` results uniformly; the remainder keeps its order."""
    if n <= 0:
        return list(results)
    rng = rng or random.Random()
    top = list(results[:n])
    rng.shuffle(top)
    return top + list(results[n:])


def paginate(results: List[ScoredResult], size: int = 20) -> List[ScoredResult]:
    if size <= 0:
        raise ValueError("page size must be positive")
    return list(results[:size])
