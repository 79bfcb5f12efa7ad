from __future__ import annotations

import asyncio
import logging
import random
import time
from datetime import date
from typing import Any, Callable, Dict, List, Tuple

from pydantic import BaseModel, Field

from cinevibe_core.cache_keys import cache_key
from cinevibe_core.config import (
    RESULT_CACHE_BATCH,
    SURPRISE_SHUFFLE_TOP_N,
    WIZARD_FETCH_PAGES,
    WIZARD_PAGE_SIZE,
)
from cinevibe_core.errors import InvalidRequest, UpstreamUnavailable
from cinevibe_core.types import (
    CandidateItem,
    EraBucket,
    MediaScope,
    MediaType,
    RuntimePref,
    candidate_from_payload,
)
from cinevibe_discovery.query_builder import build_vibe_discover_params
from cinevibe_ranking.scoring import paginate, score_and_rank, shuffle_top
from cinevibe_ranking.types import ScoringParams
from cinevibe_ranking.vibes import get_vibe, random_vibe_id

log = logging.getLogger(__name__)


class WizardRequest(BaseModel):
    vibe_id: str | None = None
    era: EraBucket | None = None
    runtime: RuntimePref | None = None
    media_type: MediaScope = MediaScope.MOVIE
    hidden_gems: bool = False
    surprise_me: bool = False
    exclude_ids: List[int] = Field(default_factory=list)
    page: int = Field(1, ge=1, le=250)
    page_size: int = Field(WIZARD_PAGE_SIZE, ge=1, le=RESULT_CACHE_BATCH)


class VibeUsed(BaseModel):
    id: str
    name: str


class WizardResponse(BaseModel):
    results: List[Dict[str, Any]]
    vibe_used: VibeUsed
    total_scored: int
    filters: Dict[str, Any]
    from_cache: bool = False
    response_time_ms: float = 0.0


def wizard_cache_key(vibe_id: str, req: WizardRequest) -> str:
    return cache_key(
        vibe_id=vibe_id,
        era=req.era,
        runtime=req.runtime,
        media_type=req.media_type,
        hidden_gems=req.hidden_gems,
        page=req.page,
    )


class WizardRecommender:
    """
    Vibe wizard: fetch candidates for a vibe, score them, cache the ranked batch.

    One cache entry holds the top ``RESULT_CACHE_BATCH`` ranked items before any
    caller's exclusions, so callers with different ``exclude_ids`` share it.
    """

    def __init__(
        self,
        catalog,
        cache,
        *,
        rng: random.Random | None = None,
        current_year: Callable[[], int] = lambda: date.today().year,
    ):
        self.catalog = catalog
        self.cache = cache
        self.rng = rng or random.Random()
        self.current_year = current_year

    def _upstream_pages(self, page: int) -> List[int]:
        # wizard page N reads the Nth run of upstream pages
        offset = (page - 1) * len(WIZARD_FETCH_PAGES)
        return [offset + p for p in WIZARD_FETCH_PAGES]

    async def _fetch_candidates(
        self, req: WizardRequest, primary_genres, year: int
    ) -> List[CandidateItem]:
        jobs: List[Tuple[MediaType, int]] = []
        calls = []
        for mt in req.media_type.kinds():
            params = build_vibe_discover_params(
                primary_genres=primary_genres,
                media_type=mt,
                era=req.era,
                runtime=req.runtime,
                hidden_gems=req.hidden_gems,
                current_year=year,
            )
            for page in self._upstream_pages(req.page):
                jobs.append((mt, page))
                calls.append(self.catalog.discover(mt, {**params, "page": str(page)}))

        outcomes = await asyncio.gather(*calls, return_exceptions=True)

        items: List[CandidateItem] = []
        failures = 0
        for (mt, page), outcome in zip(jobs, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                failures += 1
                log.warning("Wizard fetch %s page %d failed: %s", mt.value, page, outcome)
                continue
            for payload in outcome.get("results") or []:
                if not payload.get("poster_path"):
                    continue
                items.append(candidate_from_payload(payload, mt))

        if failures == len(jobs):
            raise UpstreamUnavailable("all catalog requests failed")
        return items

    async def _ranked_batch(self, vibe, req: WizardRequest) -> Dict[str, Any]:
        year = self.current_year()
        candidates = await self._fetch_candidates(req, vibe.primary_genres, year)
        params = ScoringParams(
            vibe=vibe,
            era=req.era,
            runtime_pref=req.runtime,
            want_hidden_gems=req.hidden_gems,
            current_year=year,
        )
        ranked = score_and_rank(candidates, params)
        return {
            "vibe_used": {"id": vibe.id, "name": vibe.display_name},
            "scored_ids": [r.item.id for r in ranked],
            "results": [r.to_dict() for r in ranked[:RESULT_CACHE_BATCH]],
        }

    async def recommend(self, req: WizardRequest) -> WizardResponse:
        t0 = time.perf_counter()

        if not req.vibe_id and not req.surprise_me:
            raise InvalidRequest("vibe_id is required")
        vibe_id = random_vibe_id(self.rng) if req.surprise_me else req.vibe_id
        vibe = get_vibe(vibe_id)

        key = wizard_cache_key(vibe.id, req)
        batch = await self.cache.get(key)
        from_cache = batch is not None
        if batch is None:
            batch = await self.cache.get_or_compute(key, lambda: self._ranked_batch(vibe, req))

        excluded = set(req.exclude_ids)
        results = [r for r in batch["results"] if r["item"]["id"] not in excluded]
        if req.surprise_me:
            results = shuffle_top(results, SURPRISE_SHUFFLE_TOP_N, self.rng)

        return WizardResponse(
            results=paginate(results, req.page_size),
            vibe_used=VibeUsed(**batch["vibe_used"]),
            total_scored=sum(1 for i in batch["scored_ids"] if i not in excluded),
            filters={
                "era": req.era,
                "runtime": req.runtime,
                "media_type": req.media_type,
                "hidden_gems": req.hidden_gems,
            },
            from_cache=from_cache,
            response_time_ms=round((time.perf_counter() - t0) * 1000, 1),
        )
