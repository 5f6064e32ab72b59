"""
Abstract storage interfaces for pagination progress and raw pages
"""

from abc import ABC, abstractmethod
from typing import Any, Iterator, List, Tuple

from core.exceptions import RawPageReadError


class CheckpointStore(ABC):
    """
    Tracks pagination progress per project.

    Design:
    - One record per project
    - ``get`` never fails: missing or unreadable state means offset 0
    - ``set`` returns only after the new offset is durable
    """

    @abstractmethod
    def get(self, project_key: str) -> int:
        """Last persisted offset for the project, 0 if none"""
        pass

    @abstractmethod
    def set(self, project_key: str, offset: int) -> None:
        """Persist the next offset to fetch"""
        pass


class RawPageStore(ABC):
    """
    Stores one raw response per (project, offset).

    Writing the same key twice replaces the earlier content, so a page that
    is fetched again after a crash never duplicates stored data.
    """

    @abstractmethod
    def write(self, project_key: str, offset: int, payload: Any) -> None:
        pass

    @abstractmethod
    def read(self, project_key: str, offset: int) -> Any:
        """
        Raises:
            RawPageReadError: Page missing, unreadable or not valid JSON
        """
        pass

    @abstractmethod
    def list_offsets(self, project_key: str) -> List[int]:
        """Stored offsets in ascending order"""
        pass

    def iter_pages(self, project_key: str) -> Iterator[Tuple[int, Any]]:
        """
        Yield ``(offset, payload)`` in ascending offset order.

        Unreadable pages are yielded as ``(offset, RawPageReadError)`` so the
        consumer decides whether to skip them.
        """
        for offset in self.list_offsets(project_key):
            try:
                yield offset, self.read(project_key, offset)
            except RawPageReadError as e:
                yield offset, e
