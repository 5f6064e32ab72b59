"""
Pydantic schemas for search pages, page requests and checkpoints
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class PageRequest(BaseModel):
    """One search request: a window of ``page_size`` results starting at ``offset``."""

    project_key: str = Field(..., min_length=1)
    offset: int = Field(0, ge=0)
    page_size: int = Field(50, gt=0)
    query: str = Field(..., min_length=1)

    def next(self) -> "PageRequest":
        return self.model_copy(update={"offset": self.offset + self.page_size})


class PageResponse(BaseModel):
    """
    Shape check for a search response.

    Only ``issues`` is required. Issues stay opaque so the raw page can be
    persisted exactly as received; a missing or non-numeric ``total`` is
    treated as unknown.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    start_at: Optional[int] = Field(None, alias="startAt")
    max_results: Optional[int] = Field(None, alias="maxResults")
    total: Optional[int] = None
    issues: List[Any]

    @field_validator("start_at", "max_results", "total", mode="before")
    @classmethod
    def drop_non_integers(cls, v):
        if isinstance(v, bool) or not isinstance(v, int):
            return None
        return v


class CheckpointState(BaseModel):
    """Persisted pagination progress for one project."""

    model_config = ConfigDict(populate_by_name=True)

    start_at: int = Field(0, ge=0, alias="startAt")


def parse_page(body: Any) -> Optional[PageResponse]:
    """Return the validated page, or None when the body lacks an issue list."""
    if not isinstance(body, dict):
        return None
    try:
        return PageResponse.model_validate(body)
    except ValidationError:
        return None


def malformed_page(payload: Any) -> Dict[str, Any]:
    """Wrap an unusable response so it can be stored and skipped later."""
    return {"malformed": True, "payload": payload}


def is_malformed_page(page: Any) -> bool:
    return isinstance(page, dict) and page.get("malformed") is True
