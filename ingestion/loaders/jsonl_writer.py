"""
Append normalized records to a newline-delimited JSON file
"""

import json
from pathlib import Path
from typing import Iterable, Optional, TextIO, Union

from pydantic_core import PydanticSerializationError

from core.exceptions import StorageError, TransformationError
from ingestion.stores.files import ensure_dir
from schemas.normalized import NormalizedRecord
import logging

logger = logging.getLogger(__name__)


class JsonlWriter:
    """
    Append-only JSONL sink, one record per line.

    Existing content is never truncated; re-running a transform appends a new
    batch. Use as a context manager so the file is closed on error.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._fh: Optional[TextIO] = None
        self.records_written = 0
        self.records_skipped = 0

    def __enter__(self) -> "JsonlWriter":
        ensure_dir(self.path.parent)
        try:
            self._fh = open(self.path, "a", encoding="utf-8")
        except OSError as e:
            raise StorageError(
                f"Could not open output {self.path}",
                context={"path": str(self.path)},
                original_exception=e
            )
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    @staticmethod
    def serialize(record: NormalizedRecord) -> str:
        """
        Encode one record as a single JSON line.

        Non-ASCII text is written as ``\\uXXXX`` escapes, so strings the API
        returned with unpaired surrogates still produce valid UTF-8 output.

        Raises:
            TransformationError: The record cannot be encoded
        """
        try:
            return json.dumps(record.model_dump(mode="json")) + "\n"
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise TransformationError(
                f"Could not serialize record {record.issue_id}",
                context={"issue_id": record.issue_id},
                original_exception=e
            )

    def write(self, record: NormalizedRecord) -> None:
        if self._fh is None:
            raise StorageError("Writer is not open", context={"path": str(self.path)})
        line = self.serialize(record)
        try:
            self._fh.write(line)
        except OSError as e:
            raise StorageError(
                f"Failed to write record {record.issue_id}",
                context={"path": str(self.path), "issue_id": record.issue_id},
                original_exception=e
            )
        self.records_written += 1

    def write_all(self, records: Iterable[NormalizedRecord]) -> int:
        """
        Write every record, skipping ones that cannot be serialized.

        Returns:
            Number of records written by this call
        """
        count = 0
        for record in records:
            try:
                self.write(record)
            except TransformationError as e:
                self.records_skipped += 1
                logger.warning(f"Skipping record: {e}")
                continue
            count += 1
        logger.info(f"Appended {count} records to {self.path}")
        return count
