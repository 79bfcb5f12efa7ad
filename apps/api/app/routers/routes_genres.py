import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cinevibe_core.types import MediaType

from app.deps.deps import get_catalog

log = logging.getLogger(__name__)

router = APIRouter(tags=["genres"])


@router.get("/genres")
async def genres(catalog=Depends(get_catalog)):
    """Film and series genre lists, fetched together."""
    try:
        movie, tv = await asyncio.gather(
            catalog.get_genres(MediaType.MOVIE), catalog.get_genres(MediaType.TV)
        )
    except Exception as exc:
        error_id = uuid.uuid4().hex
        log.exception("Genre lookup failed (error_id=%s)", error_id)
        return JSONResponse(
            {"error": "Failed to fetch genres", "details": str(exc), "movie": [], "tv": []},
            status_code=500,
        )
    return JSONResponse(
        {"movie": movie, "tv": tv},
        headers={"Cache-Control": "public, max-age=3600"},
    )
