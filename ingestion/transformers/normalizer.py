"""
Transform raw Jira issues into normalized plaintext records with Pydantic validation
"""

from typing import Any, Dict, List, Optional

from core.config import settings
from core.exceptions import TransformationError
from ingestion.transformers.html_text import to_plain_text
from schemas.normalized import DerivedFields, NormalizedRecord
import logging

logger = logging.getLogger(__name__)


class IssueNormalizer:
    """
    Normalize Jira issues into the flat output schema.

    Handles:
    - Nested name / displayName lookups
    - HTML to plaintext for description and comments
    - Defaults for missing fields
    - Derived summary
    """

    def __init__(self, project_key: str, summary_max_length: int = settings.SUMMARY_MAX_LENGTH):
        self.project_key = project_key
        self.summary_max_length = summary_max_length

    def normalize(self, issue: Dict[str, Any]) -> NormalizedRecord:
        """
        Normalize one raw issue.

        Returns:
            Validated NormalizedRecord

        Raises:
            TransformationError: The issue has no key
        """
        if not isinstance(issue, dict) or not issue.get("key"):
            raise TransformationError(
                "Issue has no key",
                context={"project": self.project_key}
            )

        fields = issue.get("fields")
        if not isinstance(fields, dict):
            fields = {}

        description = to_plain_text(fields.get("description"))

        return NormalizedRecord(
            issue_id=str(issue["key"]),
            project=self.project_key,
            title=self._text(fields.get("summary")) or "",
            status=self._name(fields.get("status")),
            priority=self._name(fields.get("priority")),
            assignee=self._person(fields.get("assignee")),
            reporter=self._person(fields.get("reporter")),
            labels=fields.get("labels") if isinstance(fields.get("labels"), list) else [],
            created_at=self._text(fields.get("created")),
            updated_at=self._text(fields.get("updated")),
            description_plaintext=description,
            comments_plaintext=self._comments(fields.get("comment")),
            derived=DerivedFields(summary=self.summarize(description)),
        )

    def summarize(self, text: str) -> str:
        """First line of the text, truncated"""
        return text.split("\n", 1)[0][:self.summary_max_length]

    @staticmethod
    def _text(value: Any) -> Optional[str]:
        """Scalar as a string; empty values and nested objects become None"""
        if value is None or isinstance(value, (dict, list)):
            return None
        text = value if isinstance(value, str) else str(value)
        return text or None

    @classmethod
    def _name(cls, value: Any) -> Optional[str]:
        if isinstance(value, dict):
            return cls._text(value.get("name"))
        return None

    @classmethod
    def _person(cls, value: Any) -> Optional[str]:
        if isinstance(value, dict):
            return cls._text(value.get("displayName")) or cls._text(value.get("name"))
        return None

    @staticmethod
    def _comments(value: Any) -> List[str]:
        if not isinstance(value, dict) or not isinstance(value.get("comments"), list):
            return []
        comments = []
        for comment in value["comments"]:
            body = comment.get("body") if isinstance(comment, dict) else None
            comments.append(to_plain_text(body))
        return comments
