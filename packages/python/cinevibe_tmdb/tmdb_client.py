import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from cinevibe_core.config import TMDB_BASE_URL
from cinevibe_core.types import MediaType

log = logging.getLogger(__name__)


class CatalogError(Exception):
    """An upstream catalog call failed after all retries."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TMDBClient:
    BASE_URL = TMDB_BASE_URL

    def __init__(
        self,
        api_key: str,
        max_connections: int = 15,
        timeout: float = 10.0,
        *,
        base_url: str | None = None,
        language: str = "en-US",
        retries: int = 2,
        retry_delay: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.language = language
        self.retries = retries
        self.retry_delay = retry_delay
        limits = httpx.Limits(
            max_connections=max_connections, max_keepalive_connections=max_connections
        )
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            limits=limits,
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self.semaphore = asyncio.Semaphore(max_connections)

    def _params(self, params: Optional[Dict[str, Any]]) -> Dict[str, str]:
        out = {k: str(v) for k, v in (params or {}).items() if v is not None}
        out["api_key"] = self.api_key
        if self.language:
            out.setdefault("language", self.language)
        return out

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}{path}"
        async with self.semaphore:
            try:
                response = await self.client.get(url, params=self._params(params))
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                log.warning("[HTTP Error] %s: %s", e.response.status_code, path)
            except httpx.RequestError as e:
                log.warning("[Request Error] %s: %s", path, e)
            except ValueError as e:
                log.warning("[Decode Error] %s: %s", path, e)
        return None

    async def get_with_retry(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        retries: int | None = None,
        delay: float | None = None,
    ):
        retries = self.retries if retries is None else retries
        delay = self.retry_delay if delay is None else delay
        for attempt in range(retries + 1):
            result = await self.get(path, params)
            if result is not None:
                return result
            if attempt < retries:
                await asyncio.sleep(delay * (2**attempt))  # Exponential backoff
        raise CatalogError(f"TMDB request failed: {path}")

    async def discover(
        self, media_type: MediaType, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        """One discover page: ``{"results", "page", "total_pages", "total_results"}``."""
        data = await self.get_with_retry(f"/discover/{MediaType(media_type).value}", params)
        return {
            "results": list(data.get("results") or []),
            "page": int(data.get("page") or params.get("page") or 1),
            "total_pages": int(data.get("total_pages") or 0),
            "total_results": int(data.get("total_results") or 0),
        }

    async def get_genres(self, media_type: MediaType) -> List[Dict[str, Any]]:
        data = await self.get_with_retry(f"/genre/{MediaType(media_type).value}/list")
        return list(data.get("genres") or [])

    async def get_details(self, media_type: MediaType, media_id: int) -> Dict[str, Any]:
        return await self.get_with_retry(f"/{MediaType(media_type).value}/{media_id}")

    async def aclose(self):
        await self.client.aclose()
