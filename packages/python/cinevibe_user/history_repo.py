from __future__ import annotations

import logging
from typing import Any, Dict, List

from anyio import to_thread

log = logging.getLogger(__name__)

TABLE_WATCHLIST = "watchlist"
TABLE_HISTORY = "viewing_history"


class SupabaseHistoryRepo:
    """Reads a user's watchlist and viewing history rows (RLS-scoped client)."""

    def __init__(self, client):
        self.client = client

    # ---------- Async facade ----------
    async def fetch_watchlist(self, user_id: str, limit: int = 500) -> List[Dict[str, Any]]:
        return await to_thread.run_sync(self._select_sync, TABLE_WATCHLIST, user_id, "added_at", limit)

    async def fetch_viewing_history(self, user_id: str, limit: int = 500) -> List[Dict[str, Any]]:
        return await to_thread.run_sync(
            self._select_sync, TABLE_HISTORY, user_id, "last_watched_at", limit
        )

    # ---------- Private sync impl ----------
    def _select_sync(self, table: str, user_id: str, order_by: str, limit: int) -> List[Dict[str, Any]]:
        try:
            res = (
                self.client.table(table)
                .select("*")
                .eq("user_id", user_id)
                .order(order_by, desc=True)
                .limit(limit)
                .execute()
            )
        except Exception as exc:
            # a missing table or RLS denial reads as "no history"
            log.warning("Reading %s failed: %s", table, exc)
            return []
        return [row for row in (getattr(res, "data", None) or []) if row.get("tmdb_id") is not None]
