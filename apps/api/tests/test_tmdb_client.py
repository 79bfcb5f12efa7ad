import httpx
import pytest

from app.infrastructure.cache.result_cache import InMemoryResultCache
from cinevibe_core.types import MediaType
from cinevibe_tmdb.cached_client import CachedCatalog
from cinevibe_tmdb.tmdb_client import CatalogError, TMDBClient


def _client(handler, **kw):
    kw.setdefault("retry_delay", 0)
    return TMDBClient(
        "test-key", base_url="https://tmdb.test/3", transport=httpx.MockTransport(handler), **kw
    )


@pytest.mark.anyio
async def test_discover_sends_key_and_params():
    seen = []

    def handler(request: httpx.Request):
        seen.append(request)
        return httpx.Response(
            200,
            json={"page": 2, "results": [{"id": 1}], "total_pages": 9, "total_results": 170},
        )

    client = _client(handler)
    page = await client.discover(MediaType.TV, {"page": "2", "with_genres": "18"})
    await client.aclose()

    assert page == {"results": [{"id": 1}], "page": 2, "total_pages": 9, "total_results": 170}
    (req,) = seen
    assert req.url.path == "/3/discover/tv"
    assert req.url.params["api_key"] == "test-key"
    assert req.url.params["with_genres"] == "18"
    assert req.url.params["language"] == "en-US"


@pytest.mark.anyio
async def test_retries_then_succeeds():
    attempts = []

    def handler(request):
        attempts.append(request)
        if len(attempts) < 3:
            return httpx.Response(503)
        return httpx.Response(200, json={"genres": [{"id": 28, "name": "Action"}]})

    client = _client(handler, retries=2)
    assert await client.get_genres(MediaType.MOVIE) == [{"id": 28, "name": "Action"}]
    assert len(attempts) == 3


@pytest.mark.anyio
async def test_exhausted_retries_raise_catalog_error():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    client = _client(handler, retries=1)
    with pytest.raises(CatalogError):
        await client.get_details(MediaType.MOVIE, 603)


@pytest.mark.anyio
async def test_cached_catalog_shares_detail_lookups():
    hits = []

    def handler(request):
        hits.append(request.url.path)
        return httpx.Response(200, json={"id": 603, "runtime": 136})

    catalog = CachedCatalog(_client(handler), InMemoryResultCache())
    first = await catalog.get_details(MediaType.MOVIE, 603)
    second = await catalog.get_details("movie", 603)
    await catalog.aclose()

    assert first == second == {"id": 603, "runtime": 136}
    assert hits == ["/3/movie/603"]
