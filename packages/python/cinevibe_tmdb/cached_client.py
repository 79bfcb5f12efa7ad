from __future__ import annotations

from typing import Any, Dict, List

from cinevibe_core.config import DETAILS_TTL_SEC, GENRES_TTL_SEC
from cinevibe_core.types import MediaType

from .tmdb_client import TMDBClient


class CachedCatalog:
    """
    TMDBClient wrapper for slow-moving lookups (genre lists, title details).

    ``cache`` is any result cache exposing ``get_or_compute(key, compute, ttl_sec=)``;
    concurrent lookups of the same key share one upstream call.
    Discover pages are passed straight through.
    """

    def __init__(self, client: TMDBClient, cache) -> None:
        self.client = client
        self.cache = cache

    async def discover(self, media_type: MediaType, params: Dict[str, Any]) -> Dict[str, Any]:
        return await self.client.discover(media_type, params)

    async def get_genres(self, media_type: MediaType) -> List[Dict[str, Any]]:
        mt = MediaType(media_type)
        return await self.cache.get_or_compute(
            f"genres:{mt.value}",
            lambda: self.client.get_genres(mt),
            ttl_sec=GENRES_TTL_SEC,
        )

    async def get_details(self, media_type: MediaType, media_id: int) -> Dict[str, Any]:
        mt = MediaType(media_type)
        return await self.cache.get_or_compute(
            f"details:{mt.value}:{media_id}",
            lambda: self.client.get_details(mt, media_id),
            ttl_sec=DETAILS_TTL_SEC,
        )

    async def aclose(self) -> None:
        await self.client.aclose()
