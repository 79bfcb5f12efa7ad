import os
import random
import time
from contextlib import asynccontextmanager

from dotenv import find_dotenv, load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from pydantic_settings import BaseSettings, SettingsConfigDict

from cinevibe_core.config import (
    RESULT_CACHE_NAMESPACE,
    RESULT_CACHE_TTL_SEC,
    TMDB_BASE_URL,
)
from app.infrastructure.cache.result_cache import make_result_cache
from .routers import all_routers


class Settings(BaseSettings):
    app_name: str = "CineVibe API"
    # credentials
    tmdb_api_key: str | None = None
    supabase_url: str | None = None
    supabase_api_key: str | None = None
    # catalog client
    tmdb_base_url: str = TMDB_BASE_URL
    tmdb_timeout: float = 10.0
    tmdb_max_connections: int = 15
    # result cache config
    use_redis_result_cache: bool = False
    redis_url: str | None = None
    result_cache_namespace: str = RESULT_CACHE_NAMESPACE
    result_cache_ttl_sec: int = RESULT_CACHE_TTL_SEC
    result_cache_max_entries: int | None = 2000
    # fraction of requests written to rec_queries
    telemetry_sample: float = 1.0
    # env config
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


def _should_init_catalog() -> bool:
    flag = os.getenv("CINEVIBE_SKIP_CATALOG_INIT", "")
    return flag.strip().lower() not in {"1", "true", "yes"}


def _init_catalog_stack(app: FastAPI) -> None:
    from cinevibe_discovery.discover_service import DiscoverService
    from cinevibe_logging.rec_logger import RecLogger
    from cinevibe_tmdb.cached_client import CachedCatalog
    from cinevibe_tmdb.tmdb_client import TMDBClient
    from cinevibe_wizard.recommend import WizardRecommender

    startup_t0 = time.perf_counter()
    settings = app.state.settings

    if not (settings.tmdb_api_key and settings.tmdb_api_key.strip()):
        raise RuntimeError("Missing API keys in environment: TMDB_API_KEY")

    client = TMDBClient(
        settings.tmdb_api_key,
        max_connections=settings.tmdb_max_connections,
        timeout=settings.tmdb_timeout,
        base_url=settings.tmdb_base_url,
    )
    app.state.result_cache = make_result_cache(
        use_redis=settings.use_redis_result_cache,
        redis_url=settings.redis_url,
        namespace=settings.result_cache_namespace,
        ttl_sec=settings.result_cache_ttl_sec,
        max_entries=settings.result_cache_max_entries,
    )
    app.state.catalog = CachedCatalog(client, app.state.result_cache)
    app.state.discover_service = DiscoverService(app.state.catalog)
    app.state.rng = random.Random()
    app.state.wizard = WizardRecommender(
        app.state.catalog, app.state.result_cache, rng=app.state.rng
    )
    app.state.rec_logger = RecLogger(
        settings.supabase_url,
        settings.supabase_api_key,
        sample=settings.telemetry_sample,
    )

    print(f"🔧 Total startup time: {time.perf_counter() - startup_t0:.2f}s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    load_dotenv(find_dotenv(), override=False)

    settings = Settings()
    app.state.settings = settings
    app.state.supabase_url = settings.supabase_url
    app.state.supabase_api_key = settings.supabase_api_key

    if _should_init_catalog():
        _init_catalog_stack(app)
    else:
        print("⚠️ Catalog client initialization skipped by CINEVIBE_SKIP_CATALOG_INIT")

    try:
        yield
    finally:
        catalog = getattr(app.state, "catalog", None)
        if catalog is not None:
            await catalog.aclose()
        cache = getattr(app.state, "result_cache", None)
        if cache is not None:
            await cache.aclose()


app = FastAPI(title="CineVibe API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    schema = get_openapi(
        title=app.title,
        version="0.1.0",
        description="CineVibe discovery and vibe wizard API",
        routes=app.routes,
    )
    components = schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["BearerAuth"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }
    for path, path_item in schema.get("paths", {}).items():
        if not path.startswith("/wizard/preferences"):
            continue
        for operation in path_item.values():
            operation.setdefault("security", []).append({"BearerAuth": []})
    app.openapi_schema = schema
    return app.openapi_schema


app.openapi = _custom_openapi


@app.get("/health")
def health():
    s = app.state.settings
    return {"status": "ok", "service": s.app_name}


@app.get("/")
def read_root():
    return {"status": "ok"}


for r in all_routers:
    app.include_router(r)
