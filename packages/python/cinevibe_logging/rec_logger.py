from __future__ import annotations

import logging
import random
import uuid
from typing import Any, Literal, Mapping

import httpx
from fastapi.encoders import jsonable_encoder

log = logging.getLogger(__name__)

Endpoint = Literal["discover", "wizard/recommend"]

TABLE_QUERIES = "rec_queries"


class RecLogger:
    """
    Best-effort request telemetry written to Supabase REST (one row per request).

    Disabled when the Supabase url/key are missing or ``sample`` is 0; a failed
    write is logged and never raised to the caller.

      rec_log = RecLogger(settings.supabase_url, settings.supabase_api_key, sample=0.25)
      await rec_log.log_query(endpoint="discover", filters=..., result_count=20, ...)
    """

    def __init__(
        self,
        supabase_url: str | None,
        api_key: str | None,
        *,
        client: httpx.AsyncClient | None = None,
        sample: float = 1.0,
        timeout_s: float = 5.0,
        rng: random.Random | None = None,
    ):
        self.supabase_url = (supabase_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.client = client
        self.sample = float(max(0.0, min(1.0, sample)))
        self.timeout_s = timeout_s
        self.rng = rng or random.Random()

    def enabled(self) -> bool:
        return bool(self.supabase_url and self.api_key and self.sample > 0)

    def _sampled(self) -> bool:
        return self.sample >= 1.0 or self.rng.random() < self.sample

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Prefer": "return=minimal",
        }

    @staticmethod
    def new_query_id() -> str:
        return uuid.uuid4().hex

    async def _post(self, path: str, rows: list[dict[str, Any]]) -> None:
        url = f"{self.supabase_url}/rest/v1/{path}"
        try:
            if self.client is not None:
                r = await self.client.post(
                    url, headers=self._headers(), json=rows, timeout=self.timeout_s
                )
            else:
                async with httpx.AsyncClient() as client:
                    r = await client.post(
                        url, headers=self._headers(), json=rows, timeout=self.timeout_s
                    )
            if r.status_code not in (200, 201, 204):
                log.warning("rec_logger POST %s failed %s: %s", path, r.status_code, r.text)
        except httpx.HTTPError as e:
            log.warning("rec_logger POST %s error: %s", path, e)

    async def log_query(
        self,
        *,
        endpoint: Endpoint,
        filters: Mapping[str, Any] | Any,
        result_count: int,
        response_time_ms: float,
        from_cache: bool = False,
        media_type: str | None = None,
    ) -> str | None:
        """Insert one rec_queries row; returns the query id when a row was sent."""
        if not self.enabled() or not self._sampled():
            return None
        qid = self.new_query_id()
        row = {
            "endpoint": endpoint,
            "query_id": qid,
            "media_type": media_type,
            "query_filters": jsonable_encoder(filters, exclude_none=True),
            "from_cache": bool(from_cache),
            "result_count": int(result_count),
            "response_time_ms": float(response_time_ms),
        }
        await self._post(TABLE_QUERIES, [row])
        return qid
