from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict

from cinevibe_core.errors import UpstreamUnavailable
from cinevibe_core.types import MediaScope, MediaType

from .query_builder import build_discover_params, merge_results, tag_results
from .schemas import DiscoverFilters

log = logging.getLogger(__name__)

EMPTY_PAGE: Dict[str, Any] = {"results": [], "total_pages": 0, "total_results": 0}


class DiscoverService:
    def __init__(self, catalog):
        self.catalog = catalog

    async def _fetch_kind(self, filters: DiscoverFilters, media_type: MediaType):
        params = build_discover_params(filters, media_type)
        return await self.catalog.discover(media_type, params)

    async def discover(
        self, filters: DiscoverFilters, scope: MediaScope = MediaScope.ALL
    ) -> Dict[str, Any]:
        """
        Fetch every kind in ``scope`` concurrently. A failed kind degrades to an
        empty page; only when all of them fail is UpstreamUnavailable raised.
        """
        scope = MediaScope(scope)
        kinds = scope.kinds()
        outcomes = await asyncio.gather(
            *(self._fetch_kind(filters, mt) for mt in kinds), return_exceptions=True
        )

        pages: Dict[MediaType, Dict[str, Any]] = {}
        errors: list[str] = []
        for mt, outcome in zip(kinds, outcomes):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                log.warning("Discover %s failed: %s", mt.value, outcome)
                errors.append(f"{mt.value}: {outcome}")
                pages[mt] = dict(EMPTY_PAGE)
            else:
                pages[mt] = outcome

        if len(errors) == len(kinds):
            raise UpstreamUnavailable("; ".join(errors))

        if scope is MediaScope.ALL:
            return merge_results(pages, filters.sort_by, filters.page)

        (mt,) = kinds
        single = pages[mt]
        return {
            "results": tag_results(single.get("results") or [], mt),
            "page": int(single.get("page") or filters.page),
            "total_pages": int(single.get("total_pages") or 0),
            "total_results": int(single.get("total_results") or 0),
        }
