import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from cinevibe_core.errors import DomainError
from cinevibe_wizard.preferences import (
    DEFAULT_PREFERENCES,
    UserPreferences,
    analyze_user_preferences,
)
from cinevibe_wizard.recommend import WizardRecommender, WizardRequest, WizardResponse

from app.deps.deps import get_catalog, get_rec_logger, get_wizard
from app.deps.supabase_client import get_current_user_id, get_history_repo

log = logging.getLogger(__name__)

router = APIRouter(prefix="/wizard", tags=["wizard"])

PRIVATE_NO_STORE = {"Cache-Control": "private, no-cache, no-store, must-revalidate"}


@router.post("/recommend", response_model=WizardResponse)
async def recommend(
    req: WizardRequest,
    background: BackgroundTasks,
    wizard: WizardRecommender = Depends(get_wizard),
    rec_logger=Depends(get_rec_logger),
):
    try:
        resp = await wizard.recommend(req)
    except DomainError as exc:
        return JSONResponse(
            {"error": exc.code, "details": str(exc)}, status_code=exc.status
        )
    except Exception as exc:
        error_id = uuid.uuid4().hex
        log.exception("Wizard recommend failed (error_id=%s)", error_id)
        return JSONResponse(
            {"error": "Recommendation failed", "details": str(exc), "error_id": error_id},
            status_code=500,
        )

    if rec_logger is not None:
        background.add_task(
            rec_logger.log_query,
            endpoint="wizard/recommend",
            filters=req,
            media_type=req.media_type.value,
            from_cache=resp.from_cache,
            result_count=len(resp.results),
            response_time_ms=resp.response_time_ms,
        )
    return resp


@router.get("/preferences", response_model=UserPreferences)
async def preferences(
    user_id: str = Depends(get_current_user_id),
    repo=Depends(get_history_repo),
    catalog=Depends(get_catalog),
):
    try:
        watchlist = await repo.fetch_watchlist(user_id)
        history = await repo.fetch_viewing_history(user_id)
        prefs = await analyze_user_preferences(watchlist, history, catalog)
    except Exception as exc:
        error_id = uuid.uuid4().hex
        log.exception("Preference analysis failed (error_id=%s)", error_id)
        return JSONResponse(
            {
                "error": "Failed to fetch preferences",
                "details": str(exc),
                "error_id": error_id,
                "default": jsonable_encoder(DEFAULT_PREFERENCES),
            },
            status_code=500,
            headers=PRIVATE_NO_STORE,
        )
    return JSONResponse(jsonable_encoder(prefs), headers=PRIVATE_NO_STORE)
