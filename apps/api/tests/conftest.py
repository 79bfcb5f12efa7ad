from typing import Any, Dict, List

import fnmatch
import os

import pytest
from fastapi.testclient import TestClient

from cinevibe_core.types import MediaType
from cinevibe_tmdb.tmdb_client import CatalogError


@pytest.fixture()
def anyio_backend():
    return "asyncio"


def movie(id_: int, **kw) -> Dict[str, Any]:
    row = {
        "id": id_,
        "title": f"Movie {id_}",
        "genre_ids": [],
        "popularity": 10.0,
        "vote_average": 7.0,
        "vote_count": 200,
        "release_date": "2020-01-01",
        "poster_path": f"/p{id_}.jpg",
    }
    row.update(kw)
    return row


def show(id_: int, **kw) -> Dict[str, Any]:
    row = {
        "id": id_,
        "name": f"Show {id_}",
        "genre_ids": [],
        "popularity": 10.0,
        "vote_average": 7.0,
        "vote_count": 200,
        "first_air_date": "2020-01-01",
        "poster_path": f"/s{id_}.jpg",
    }
    row.update(kw)
    return row


class FakeCatalog:
    """
    Stand-in for CachedCatalog. ``pages`` maps media type -> upstream page number
    -> raw discover page; a kind listed in ``fail`` raises CatalogError.
    """

    def __init__(self, pages=None, *, fail=(), genres=None, details=None):
        self.pages: Dict[MediaType, Dict[int, Dict[str, Any]]] = pages or {}
        self.fail = {MediaType(m) for m in fail}
        self.genres = genres or {}
        self.details = details or {}
        self.calls: List[tuple] = []
        self.closed = False

    async def discover(self, media_type, params):
        mt = MediaType(media_type)
        page = int(params.get("page", 1))
        self.calls.append((mt, dict(params)))
        if mt in self.fail:
            raise CatalogError(f"{mt.value} discover failed", status_code=503)
        data = self.pages.get(mt, {}).get(page)
        if data is None:
            return {"results": [], "page": page, "total_pages": 0, "total_results": 0}
        return {"page": page, **data}

    async def get_genres(self, media_type):
        mt = MediaType(media_type)
        if mt in self.fail:
            raise CatalogError("genres failed")
        return self.genres.get(mt, [])

    async def get_details(self, media_type, media_id):
        key = (MediaType(media_type), int(media_id))
        if key not in self.details:
            raise CatalogError(f"no details for {key}", status_code=404)
        return self.details[key]

    async def aclose(self):
        self.closed = True


class _FakeQuery:
    def __init__(self, table: str, rows: List[Dict[str, Any]], error: Exception | None = None):
        self._table = table
        self._rows = rows
        self._error = error
        self.filters: Dict[str, Any] = {}

    def select(self, _cols: str = "*"):
        return self

    def eq(self, col: str, value: Any):
        self.filters[col] = value
        return self

    def order(self, _col: str, desc: bool = False):
        return self

    def limit(self, _n: int):
        return self

    def execute(self):
        if self._error is not None:
            raise self._error

        class _Resp:
            def __init__(self, data):
                self.data = data

        return _Resp([r for r in self._rows if r.get("user_id") == self.filters.get("user_id")])


class FakeSupabaseClient:
    def __init__(self, tables: Dict[str, List[Dict[str, Any]]] | None = None, errors=None):
        self.tables = tables or {}
        self.errors: Dict[str, Exception] = errors or {}
        self.captured: Dict[str, Any] = {}

    def table(self, name: str):
        self.captured.setdefault("tables", []).append(name)
        return _FakeQuery(name, self.tables.get(name, []), self.errors.get(name))


class FakeRedis:
    """The slice of redis.asyncio.Redis the result cache touches (bytes in, bytes out)."""

    def __init__(self):
        self.store: Dict[str, bytes] = {}
        self.ttls: Dict[str, int] = {}
        self.closed = False

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.ttls[key] = ex

    async def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)
        return len(keys)

    async def scan_iter(self, match="*"):
        for k in list(self.store):
            if fnmatch.fnmatch(k, match):
                yield k

    async def aclose(self):
        self.closed = True


TEST_USER_ID = "00000000-0000-0000-0000-000000000000"


@pytest.fixture()
def test_client():
    os.environ["CINEVIBE_SKIP_CATALOG_INIT"] = "1"

    # Import after env is set so the lifespan skips real client construction
    from app.main import app  # type: ignore

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    for name in ("catalog", "discover_service", "wizard", "result_cache", "rec_logger", "rng"):
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture()
def install_catalog(test_client):
    """Wire a FakeCatalog (plus real services over it) into app.state."""
    import random

    from app.infrastructure.cache.result_cache import InMemoryResultCache
    from cinevibe_discovery.discover_service import DiscoverService
    from cinevibe_wizard.recommend import WizardRecommender

    def _install(catalog: FakeCatalog, *, seed: int = 7, year: int = 2024):
        state = test_client.app.state
        state.catalog = catalog
        state.result_cache = InMemoryResultCache()
        state.discover_service = DiscoverService(catalog)
        state.rng = random.Random(seed)
        state.wizard = WizardRecommender(
            catalog, state.result_cache, rng=state.rng, current_year=lambda: year
        )
        return catalog

    return _install
