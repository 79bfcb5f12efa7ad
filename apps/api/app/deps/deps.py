from typing import Any, TYPE_CHECKING, cast
from dataclasses import dataclass

from fastapi import HTTPException, Request, status

if TYPE_CHECKING:
    from cinevibe_discovery.discover_service import DiscoverService
    from cinevibe_logging.rec_logger import RecLogger
    from cinevibe_tmdb.cached_client import CachedCatalog
    from cinevibe_wizard.recommend import WizardRecommender
else:
    DiscoverService = Any  # type: ignore
    RecLogger = Any  # type: ignore
    CachedCatalog = Any  # type: ignore
    WizardRecommender = Any  # type: ignore


def _get_state_attr(request: Request, name: str, error_detail: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_detail,
        )
    return value


def get_settings(request: Request) -> Any:
    return _get_state_attr(request, "settings", "Settings not initialized")


def get_catalog(request: Request) -> CachedCatalog:
    return cast(
        CachedCatalog,
        _get_state_attr(request, "catalog", "Catalog client not initialized"),
    )


def get_discover_service(request: Request) -> DiscoverService:
    return cast(
        DiscoverService,
        _get_state_attr(
            request, "discover_service", "Discover service not initialized"
        ),
    )


def get_wizard(request: Request) -> WizardRecommender:
    return cast(
        WizardRecommender,
        _get_state_attr(request, "wizard", "Wizard recommender not initialized"),
    )


def get_rec_logger(request: Request) -> RecLogger | None:
    # telemetry is optional; handlers skip logging when it is absent
    return getattr(request.app.state, "rec_logger", None)


@dataclass(frozen=True)
class SupabaseCreds:
    url: str
    api_key: str


def get_supabase_creds(request: Request) -> SupabaseCreds:
    return SupabaseCreds(
        url=getattr(request.app.state, "supabase_url", "") or "",
        api_key=getattr(request.app.state, "supabase_api_key", "") or "",
    )
