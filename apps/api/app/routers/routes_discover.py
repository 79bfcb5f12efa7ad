import logging
import time

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from cinevibe_core.errors import UpstreamUnavailable
from cinevibe_core.types import MediaScope, SortKey
from cinevibe_discovery.schemas import DiscoverError, DiscoverFilters, DiscoverPage

from app.deps.deps import get_discover_service, get_rec_logger

log = logging.getLogger(__name__)

router = APIRouter(tags=["discover"])

NO_STORE = {"Cache-Control": "no-store"}


def get_discover_filters(
    genres: str | None = Query(None, description="comma-separated genre ids", examples=["28,12"]),
    without_genres: str | None = Query(None),
    year_from: int | None = Query(None),
    year_to: int | None = Query(None),
    rating_min: float | None = Query(None),
    vote_count_min: int | None = Query(None),
    language: str | None = Query(None),
    sort_by: SortKey = Query(SortKey.POPULARITY_DESC),
    runtime_min: int | None = Query(None),
    runtime_max: int | None = Query(None),
    page: int = Query(1),
) -> DiscoverFilters:
    try:
        return DiscoverFilters(
            genres=genres,
            without_genres=without_genres,
            year_from=year_from,
            year_to=year_to,
            rating_min=rating_min,
            vote_count_min=vote_count_min,
            language=language,
            sort_by=sort_by,
            runtime_min=runtime_min,
            runtime_max=runtime_max,
            page=page,
        )
    except ValidationError as exc:
        # cross-field checks live on the model; surface them as a normal 422
        raise RequestValidationError(
            [{**e, "loc": ("query", *e["loc"])} for e in exc.errors(include_url=False, include_context=False)]
        )


@router.get("/discover", response_model=DiscoverPage)
async def discover(
    background: BackgroundTasks,
    media_type: MediaScope = Query(MediaScope.ALL),
    filters: DiscoverFilters = Depends(get_discover_filters),
    service=Depends(get_discover_service),
    rec_logger=Depends(get_rec_logger),
):
    t0 = time.perf_counter()
    try:
        page = await service.discover(filters, media_type)
    except UpstreamUnavailable as exc:
        log.warning("Discover failed for every kind: %s", exc)
        body = DiscoverError(error="Failed to fetch content", details=str(exc))
        return JSONResponse(body.model_dump(), status_code=exc.status, headers=NO_STORE)

    if rec_logger is not None:
        background.add_task(
            rec_logger.log_query,
            endpoint="discover",
            filters=filters,
            media_type=media_type.value,
            result_count=len(page["results"]),
            response_time_ms=round((time.perf_counter() - t0) * 1000, 1),
        )
    return JSONResponse(DiscoverPage(**page).model_dump(exclude_none=True), headers=NO_STORE)
