"""
Pydantic schemas for data validation and serialization.

Schemas:
    pages: Search page requests/responses, checkpoint state and the
           malformed-page marker
    normalized: Normalized issue records written by the transform pipeline

Usage:
    from schemas import NormalizedRecord, PageResponse

Example:
    page = parse_page({"startAt": 0, "maxResults": 50, "total": 1, "issues": []})
    assert page is not None and page.total == 1

    assert parse_page({"errorMessages": ["bad jql"]}) is None
"""

__all__ = [
    "PageRequest",
    "PageResponse",
    "CheckpointState",
    "parse_page",
    "malformed_page",
    "is_malformed_page",
    "DerivedFields",
    "NormalizedRecord",
]

from schemas.pages import (
    PageRequest,
    PageResponse,
    CheckpointState,
    parse_page,
    malformed_page,
    is_malformed_page,
)
from schemas.normalized import DerivedFields, NormalizedRecord
