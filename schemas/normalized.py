"""
Pydantic schemas for normalized issue records
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class DerivedFields(BaseModel):
    """Values computed from the normalized text."""

    summary: str = ""


class NormalizedRecord(BaseModel):
    """
    One flattened, plaintext issue as written to the JSONL output.

    Ensures:
    - issue_id is present
    - labels are unique strings in first-seen order
    - comments keep their original order
    """

    issue_id: str = Field(..., min_length=1)
    project: str = Field(..., min_length=1)

    title: str = ""
    status: Optional[str] = None
    priority: Optional[str] = None
    assignee: Optional[str] = None
    reporter: Optional[str] = None
    labels: List[str] = Field(default_factory=list)

    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    description_plaintext: str = ""
    comments_plaintext: List[str] = Field(default_factory=list)

    derived: DerivedFields = Field(default_factory=DerivedFields)

    @field_validator("labels", mode="before")
    @classmethod
    def clean_labels(cls, v):
        """Keep a set of labels while preserving their order"""
        if not isinstance(v, (list, tuple, set)):
            return []
        seen = []
        for label in v:
            if label is None:
                continue
            label = str(label).strip()
            if label and label not in seen:
                seen.append(label)
        return seen
