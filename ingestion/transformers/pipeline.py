"""
Transform pipeline: raw pages -> deduplicated normalized JSONL.

Pages are read in ascending offset order and issues in page order. The first
occurrence of an issue key wins; later copies are dropped. Duplicates are
expected because the search is ordered by creation time descending, so issues
created during a long fetch shift older issues onto later pages.

Failure handling is per unit of input:
- unreadable or invalid raw page   -> warning, page skipped
- page without an issue list       -> warning, page skipped
- issue that cannot be normalized  -> warning, issue skipped
- record that cannot be serialized -> warning, issue skipped
- output write failure             -> StorageError, run stops
"""

from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Set, Union

from pydantic import ValidationError

from core.config import settings
from core.exceptions import RawPageReadError, TransformationError
from ingestion.loaders.jsonl_writer import JsonlWriter
from ingestion.stores import FileRawPageStore, RawPageStore
from ingestion.transformers.normalizer import IssueNormalizer
from schemas.normalized import NormalizedRecord
from schemas.pages import is_malformed_page, parse_page
import logging

logger = logging.getLogger(__name__)


class TransformPipeline:
    """Build one normalized record per unique issue for a project."""

    def __init__(
        self,
        raw_pages: RawPageStore,
        output_dir: Union[str, Path] = settings.OUTPUT_DIR,
        summary_max_length: int = settings.SUMMARY_MAX_LENGTH
    ):
        self.raw_pages = raw_pages
        self.output_dir = Path(output_dir)
        self.summary_max_length = summary_max_length
        self.stats: Dict[str, int] = {}

    def output_path(self, project_key: str) -> Path:
        return self.output_dir / f"{project_key}.jsonl"

    def _reset_stats(self) -> None:
        self.stats = {
            "pages_read": 0,
            "pages_skipped": 0,
            "records_emitted": 0,
            "duplicates_skipped": 0,
            "issues_skipped": 0,
        }

    def iter_records(self, project_key: str) -> Iterator[NormalizedRecord]:
        """
        Yield deduplicated records in offset order.

        Dedup state lives for one call only.
        """
        self._reset_stats()
        normalizer = IssueNormalizer(project_key, summary_max_length=self.summary_max_length)
        seen: Set[str] = set()

        for offset, page in self.raw_pages.iter_pages(project_key):
            logger.info(f"Processing {project_key} page startAt={offset}")

            if isinstance(page, RawPageReadError):
                self.stats["pages_skipped"] += 1
                logger.warning(f"Skipping unreadable raw page: {page}")
                continue

            parsed = None if is_malformed_page(page) else parse_page(page)
            if parsed is None:
                self.stats["pages_skipped"] += 1
                logger.warning(f"Skipping malformed page file for {project_key} startAt={offset}")
                continue

            self.stats["pages_read"] += 1
            for position, issue in enumerate(parsed.issues):
                key = issue.get("key") if isinstance(issue, dict) else None
                if key and str(key) in seen:
                    self.stats["duplicates_skipped"] += 1
                    logger.debug(f"Duplicate {key} at startAt={offset} dropped")
                    continue
                record = self._normalize(normalizer, issue, offset, position)
                if record is None:
                    continue
                seen.add(record.issue_id)
                self.stats["records_emitted"] += 1
                yield record

    def _normalize(
        self,
        normalizer: IssueNormalizer,
        issue: Any,
        offset: int,
        position: int
    ) -> Optional[NormalizedRecord]:
        try:
            return normalizer.normalize(issue)
        except (TransformationError, ValidationError) as e:
            self.stats["issues_skipped"] += 1
            logger.warning(
                f"Skipping issue #{position} on page startAt={offset}: {e}"
            )
            return None

    def run(self, project_key: str) -> Dict[str, Any]:
        """
        Append the normalized records of ``project_key`` to its JSONL output.

        Raises:
            TransformationError: No raw pages exist for the project
            StorageError: Output could not be written
        """
        if not self.raw_pages.list_offsets(project_key):
            raise TransformationError(
                f"No raw files found for project {project_key}",
                context={"project": project_key}
            )

        out_path = self.output_path(project_key)
        with JsonlWriter(out_path) as writer:
            records_written = writer.write_all(self.iter_records(project_key))
        self.stats["issues_skipped"] += writer.records_skipped

        logger.info(f"Transformation complete. Output at {out_path}")

        return {
            "status": "success",
            "project": project_key,
            "output_path": str(out_path),
            "records_written": records_written,
            "pages_read": self.stats["pages_read"],
            "pages_skipped": self.stats["pages_skipped"],
            "duplicates_skipped": self.stats["duplicates_skipped"],
            "issues_skipped": self.stats["issues_skipped"],
        }


def transform_project(project_key: str) -> Dict[str, Any]:
    """Run a transform with the configured file stores."""
    pipeline = TransformPipeline(FileRawPageStore(settings.RAW_DIR), settings.OUTPUT_DIR)
    return pipeline.run(project_key)
