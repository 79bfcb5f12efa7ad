from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, FrozenSet, List

from cinevibe_core.types import CandidateItem, EraBucket, MediaType, RuntimePref


@dataclass(frozen=True)
class VibeProfile:
    id: str
    display_name: str
    primary_genres: FrozenSet[int]
    secondary_genres: FrozenSet[int] = frozenset()
    anti_genres: FrozenSet[int] = frozenset()


@dataclass(frozen=True)
class ScoringParams:
    vibe: VibeProfile
    era: EraBucket | None = None
    runtime_pref: RuntimePref | None = None
    want_hidden_gems: bool = False
    exclude_ids: FrozenSet[int] = frozenset()
    current_year: int = field(default_factory=lambda: date.today().year)


@dataclass(frozen=True)
class FeatureContribution:
    feature: str  # "genre", "anti_genre", "era", "rating", "popularity", "freshness", "runtime"
    value: float  # feature value (pre-weight, post-normalization)
    weight: float  # weight used in this run
    contribution: float  # weight * value


@dataclass(frozen=True)
class ScoreBreakdown:
    features: Dict[str, FeatureContribution]  # keyed by feature name

    @property
    def total(self) -> float:
        return sum(fc.contribution for fc in self.features.values())

    def to_dict(self) -> Dict[str, float]:
        return {name: round(fc.contribution, 3) for name, fc in self.features.items()}


@dataclass(frozen=True)
class ScoredResult:
    item: CandidateItem
    score: float
    reasons: List[str] = field(default_factory=list)
    breakdown: ScoreBreakdown | None = None

    @property
    def media_type(self) -> MediaType:
        return self.item.media_type

    def sort_key(self) -> tuple:
        # score desc, popularity desc, id asc, kind asc
        return (-self.score, -self.item.popularity, self.item.id, self.media_type.value)

    def to_dict(self, *, include_breakdown: bool = False) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "item": self.item.to_payload(),
            "score": self.score,
            "reasons": list(self.reasons),
            "media_type": self.media_type.value,
        }
        if include_breakdown and self.breakdown is not None:
            out["breakdown"] = self.breakdown.to_dict()
        return out
