from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator, model_validator

from cinevibe_core.config import DISCOVER_MAX_PAGE
from cinevibe_core.types import SortKey


def _split_ids(v: Any) -> Any:
    if v is None or v == "":
        return []
    if isinstance(v, str):
        parts = [p.strip() for p in v.split(",")]
        if any(not p.isdigit() for p in parts):
            raise ValueError("genre ids must be a comma-separated list of integers")
        return [int(p) for p in parts]
    return v


class DiscoverFilters(BaseModel):
    genres: List[int] = Field(default_factory=list, examples=[[28, 12]])
    without_genres: List[int] = Field(default_factory=list)
    year_from: int | None = Field(None, ge=1874, le=2100)
    year_to: int | None = Field(None, ge=1874, le=2100)
    rating_min: float | None = Field(None, ge=0, le=10)
    vote_count_min: int | None = Field(None, ge=0)
    language: str | None = Field(None, min_length=2, max_length=3, examples=["en"])
    sort_by: SortKey = SortKey.POPULARITY_DESC
    runtime_min: int | None = Field(None, ge=0)
    runtime_max: int | None = Field(None, ge=0)
    page: int = Field(1, ge=1, le=DISCOVER_MAX_PAGE)

    @field_validator("genres", "without_genres", mode="before")
    @classmethod
    def parse_ids(cls, v):
        return _split_ids(v)

    @field_validator("language")
    @classmethod
    def validate_language(cls, v):
        if v is not None and not v.isalpha():
            raise ValueError("language must be an ISO 639-1 code")
        return v.lower() if v else v

    @model_validator(mode="after")
    def validate_ranges(self):
        if (
            self.year_from is not None
            and self.year_to is not None
            and self.year_from > self.year_to
        ):
            raise ValueError("year_from must be <= year_to")
        if (
            self.runtime_min is not None
            and self.runtime_max is not None
            and self.runtime_min > self.runtime_max
        ):
            raise ValueError("runtime_min must be <= runtime_max")
        return self


class DiscoverPage(BaseModel):
    results: List[Dict[str, Any]] = Field(default_factory=list)
    page: int = 1
    total_pages: int = 0
    total_results: int = 0
    movie_count: int | None = None
    tv_count: int | None = None


class DiscoverError(BaseModel):
    error: str
    details: str
    results: List[Dict[str, Any]] = Field(default_factory=list)
    total_results: int = 0
    total_pages: int = 0
