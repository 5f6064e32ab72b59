"""
Pytest configuration and fixtures
"""

import pytest
from typing import Any, Dict, List, Optional

from core.exceptions import RawPageReadError
from ingestion.stores.base import CheckpointStore, RawPageStore


class InMemoryCheckpointStore(CheckpointStore):
    """Checkpoint store kept in a dict; records every call in ``events``"""

    def __init__(self, offsets: Optional[Dict[str, int]] = None, events: Optional[List[str]] = None):
        self.offsets = dict(offsets or {})
        self.events = events if events is not None else []

    def get(self, project_key: str) -> int:
        return self.offsets.get(project_key, 0)

    def set(self, project_key: str, offset: int) -> None:
        self.events.append(f"checkpoint:{offset}")
        self.offsets[project_key] = offset


class InMemoryRawPageStore(RawPageStore):
    """Raw page store kept in a dict; records every write in ``events``"""

    def __init__(self, events: Optional[List[str]] = None):
        self.pages: Dict[tuple, Any] = {}
        self.events = events if events is not None else []

    def write(self, project_key: str, offset: int, payload: Any) -> None:
        self.events.append(f"write:{offset}")
        self.pages[(project_key, offset)] = payload

    def read(self, project_key: str, offset: int) -> Any:
        try:
            return self.pages[(project_key, offset)]
        except KeyError as e:
            raise RawPageReadError("missing page", original_exception=e)

    def list_offsets(self, project_key: str) -> List[int]:
        return sorted(offset for project, offset in self.pages if project == project_key)


class FakeJiraClient:
    """
    Scripted stand-in for JiraClient.search_issues.

    Serves ``total`` generated issues. ``script`` maps an offset to a list of
    outcomes consumed one per call: an exception instance is raised, any
    other value is returned as the response body. Offsets without a pending
    outcome get a generated page.
    """

    def __init__(self, total: int, project: str = "SPARK", script: Optional[Dict[int, list]] = None):
        self.total = total
        self.project = project
        self.script = {k: list(v) for k, v in (script or {}).items()}
        self.calls: List[int] = []
        self.queries: List[str] = []

    def page(self, start_at: int, max_results: int) -> Dict[str, Any]:
        end = min(start_at + max_results, self.total)
        return {
            "startAt": start_at,
            "maxResults": max_results,
            "total": self.total,
            "issues": [
                {"key": f"{self.project}-{i + 1}", "fields": {"summary": f"Issue {i + 1}"}}
                for i in range(start_at, end)
            ],
        }

    async def search_issues(self, jql: str, start_at: int = 0, max_results: int = 50, **kwargs):
        self.calls.append(start_at)
        self.queries.append(jql)
        pending = self.script.get(start_at)
        if pending:
            outcome = pending.pop(0)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return self.page(start_at, max_results)


class RecordingSleep:
    """Async sleep replacement that records requested waits"""

    def __init__(self):
        self.waits: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.waits.append(seconds)


@pytest.fixture
def events():
    return []


@pytest.fixture
def checkpoint_store(events):
    return InMemoryCheckpointStore(events=events)


@pytest.fixture
def raw_store(events):
    return InMemoryRawPageStore(events=events)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def sample_issue():
    """Raw Jira issue with every field the normalizer reads"""
    return {
        "key": "SPARK-1",
        "fields": {
            "summary": "Executor crashes on shuffle",
            "description": "<p>Hello <b>world</b></p><p>Second paragraph</p>",
            "comment": {
                "comments": [
                    {"body": "<p>First <i>comment</i></p>"},
                    {"body": "Second comment"},
                ]
            },
            "priority": {"name": "Major"},
            "status": {"name": "Open"},
            "assignee": {"displayName": "Jane Doe", "name": "jdoe"},
            "reporter": {"name": "rsmith"},
            "labels": ["shuffle", "executor", "shuffle"],
            "created": "2024-01-15T10:00:00.000+0000",
            "updated": "2024-01-16T11:30:00.000+0000",
        },
    }


def make_page(start_at: int, issues: List[Dict[str, Any]], total: int = 100) -> Dict[str, Any]:
    return {"startAt": start_at, "maxResults": 50, "total": total, "issues": issues}


@pytest.fixture
def fake_jira():
    """Factory for scripted Jira clients: ``fake_jira(total=120, script={...})``"""
    return FakeJiraClient


@pytest.fixture
def page_factory():
    return make_page
