from cinevibe_core.types import MediaType

from conftest import TEST_USER_ID, FakeCatalog, FakeSupabaseClient, movie


def _catalog(**kw):
    return FakeCatalog(
        {
            MediaType.MOVIE: {
                1: {"results": [movie(i, genre_ids=[28, 53]) for i in range(1, 16)]},
                2: {"results": [movie(i, genre_ids=[10749]) for i in range(16, 31)]},
            }
        },
        **kw,
    )


def test_recommend_then_cached(test_client, install_catalog):
    install_catalog(_catalog())
    first = test_client.post("/wizard/recommend", json={"vibe_id": "adrenaline"})
    assert first.status_code == 200
    body = first.json()
    assert body["vibe_used"] == {"id": "adrenaline", "name": "Adrenaline Rush"}
    assert body["total_scored"] == 30
    assert len(body["results"]) == 20
    assert body["from_cache"] is False
    assert body["filters"]["media_type"] == "movie"

    excluded = body["results"][0]["item"]["id"]
    second = test_client.post(
        "/wizard/recommend", json={"vibe_id": "adrenaline", "exclude_ids": [excluded]}
    ).json()
    assert second["from_cache"] is True
    assert excluded not in [r["item"]["id"] for r in second["results"]]
    assert second["total_scored"] == 29


def test_recommend_requires_known_vibe(test_client, install_catalog):
    install_catalog(_catalog())
    missing = test_client.post("/wizard/recommend", json={})
    assert missing.status_code == 400
    assert missing.json()["error"] == "invalid_request"
    unknown = test_client.post("/wizard/recommend", json={"vibe_id": "sleepy"})
    assert unknown.status_code == 400
    assert unknown.json()["error"] == "unknown_vibe"


def test_recommend_rejects_bad_enum_values(test_client, install_catalog):
    install_catalog(_catalog())
    res = test_client.post("/wizard/recommend", json={"vibe_id": "brain", "era": "1800s"})
    assert res.status_code == 422


def test_recommend_upstream_down_is_502(test_client, install_catalog):
    install_catalog(_catalog(fail=[MediaType.MOVIE]))
    res = test_client.post("/wizard/recommend", json={"vibe_id": "brain"})
    assert res.status_code == 502
    assert res.json()["error"] == "upstream_unavailable"


def test_surprise_me_picks_a_vibe(test_client, install_catalog):
    install_catalog(_catalog())
    res = test_client.post("/wizard/recommend", json={"surprise_me": True})
    assert res.status_code == 200
    assert res.json()["vibe_used"]["id"] in {"chill", "adrenaline", "brain", "feelgood", "dark", "epic"}


def test_genres(test_client, install_catalog):
    install_catalog(
        FakeCatalog(
            genres={
                MediaType.MOVIE: [{"id": 28, "name": "Action"}],
                MediaType.TV: [{"id": 18, "name": "Drama"}],
            }
        )
    )
    res = test_client.get("/genres")
    assert res.status_code == 200
    assert res.json() == {"movie": [{"id": 28, "name": "Action"}], "tv": [{"id": 18, "name": "Drama"}]}
    assert "max-age=3600" in res.headers["cache-control"]


def test_genres_failure_is_500_with_empty_lists(test_client, install_catalog):
    install_catalog(FakeCatalog(fail=[MediaType.TV]))
    res = test_client.get("/genres")
    assert res.status_code == 500
    assert res.json()["movie"] == [] and res.json()["tv"] == []


def test_preferences_require_bearer_token(test_client, install_catalog):
    install_catalog(_catalog())
    assert test_client.get("/wizard/preferences").status_code == 401
    res = test_client.get("/wizard/preferences", headers={"Authorization": "Token abc"})
    assert res.status_code == 401


def _override_identity(test_client, fake):
    from app.deps.supabase_client import get_current_user_id, get_supabase_client

    test_client.app.dependency_overrides[get_supabase_client] = lambda: fake
    test_client.app.dependency_overrides[get_current_user_id] = lambda: TEST_USER_ID


def test_preferences_from_history(test_client, install_catalog):
    install_catalog(
        FakeCatalog(
            details={
                (MediaType.MOVIE, 1): {"genres": [{"id": 28}], "release_date": "2019-01-01", "vote_average": 8.0, "runtime": 130},
                (MediaType.MOVIE, 2): {"genres": [{"id": 28}], "release_date": "2011-01-01", "vote_average": 7.0, "runtime": 140},
            }
        )
    )
    fake = FakeSupabaseClient(
        {
            "watchlist": [
                {"user_id": TEST_USER_ID, "tmdb_id": 1, "media_type": "movie"},
                {"user_id": TEST_USER_ID, "tmdb_id": 2, "media_type": "movie"},
            ],
            "viewing_history": [],
        }
    )
    _override_identity(test_client, fake)

    res = test_client.get("/wizard/preferences", headers={"Authorization": "Bearer t"})
    assert res.status_code == 200
    assert "no-store" in res.headers["cache-control"]
    body = res.json()
    assert body["genres"] == [28]
    assert body["decades"] == [2010]
    assert body["avg_rating"] == 7.5
    assert body["preferred_runtimes"] == ["epic"]
    assert body["preferred_media_types"] == ["movie"]


def test_preferences_failure_returns_default(test_client, install_catalog):
    class BrokenRepo:
        async def fetch_watchlist(self, user_id):
            raise RuntimeError("db down")

        async def fetch_viewing_history(self, user_id):
            return []

    from app.deps.supabase_client import get_history_repo

    install_catalog(_catalog())
    _override_identity(test_client, FakeSupabaseClient())
    test_client.app.dependency_overrides[get_history_repo] = lambda: BrokenRepo()

    res = test_client.get("/wizard/preferences", headers={"Authorization": "Bearer t"})
    assert res.status_code == 500
    body = res.json()
    assert body["error"] == "Failed to fetch preferences"
    assert body["default"]["preferred_runtimes"] == ["standard"]
    assert body["default"]["avg_rating"] == 7.0
