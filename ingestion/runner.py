# ============================================================================
# File: ingestion/runner.py
# Description: Resumable pagination runner for Jira search results
# ============================================================================
"""
Pagination Runner - fetches every search page of a project exactly once.

State machine:
    INIT      read the checkpoint for the project
    FETCHING  request the page at the current offset
    PERSIST   write the raw page (idempotent overwrite)
    ADVANCE   offset += page_size, then persist the checkpoint
    DELAY     politeness wait, back to FETCHING
    DONE      total is known and offset >= total

Guarantees:
- The checkpoint only moves after the raw page for that offset is written,
  so a crash at any point re-fetches at most one page and overwrites it
- A page without an issue list is stored under a malformed marker and
  treated as consumed
- Transport failures never move the offset; the same page is retried after
  a fixed delay
"""

import asyncio
import enum
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from core.config import settings
from core.exceptions import (
    ErrorKind,
    FetchAbortedError,
    MalformedResponseError,
    OperationCancelled,
    TransportError,
)
from ingestion.extractors.jira_client import JiraClient
from ingestion.stores import (
    CheckpointStore,
    FileCheckpointStore,
    FileRawPageStore,
    RawPageStore,
)
from ingestion.waits import cancellable_sleep, raise_if_cancelled
from schemas.pages import PageRequest, malformed_page, parse_page

logger = logging.getLogger(__name__)


class FetchState(str, enum.Enum):
    INIT = "init"
    FETCHING = "fetching"
    PERSIST = "persist"
    ADVANCE = "advance"
    DELAY = "delay"
    DONE = "done"


class PaginationRunner:
    """
    Resumable fetch-all-pages loop for one project at a time.

    Responsibilities:
    - Resume from the stored checkpoint
    - Persist every page before advancing
    - Decide per error kind whether to retry the same offset or abort
    - Stop cleanly when ``cancel_event`` is set
    """

    def __init__(
        self,
        client: JiraClient,
        checkpoints: CheckpointStore,
        raw_pages: RawPageStore,
        page_size: int = settings.JIRA_PAGE_SIZE,
        jql_template: str = settings.JQL_TEMPLATE,
        polite_delay: float = settings.POLITE_DELAY_SECONDS,
        error_retry_delay: float = settings.ERROR_RETRY_DELAY_SECONDS,
        abort_on_client_error: bool = settings.ABORT_ON_CLIENT_ERROR,
        cancel_event: Optional[asyncio.Event] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None
    ):
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self.client = client
        self.checkpoints = checkpoints
        self.raw_pages = raw_pages
        self.page_size = page_size
        self.jql_template = jql_template
        self.polite_delay = polite_delay
        self.error_retry_delay = error_retry_delay
        self.abort_on_client_error = abort_on_client_error
        self.cancel_event = cancel_event
        self._sleep = sleep or (lambda seconds: cancellable_sleep(seconds, self.cancel_event))
        self.state = FetchState.INIT

    def build_query(self, project_key: str) -> str:
        return self.jql_template.format(project=project_key)

    def _should_abort(self, error: TransportError) -> bool:
        if error.kind is ErrorKind.CLIENT_ERROR:
            return self.abort_on_client_error
        return False

    async def run(self, project_key: str) -> Dict[str, Any]:
        """
        Fetch all pages for ``project_key``.

        Returns:
            Dictionary with run statistics:
            - status: "success" or "cancelled"
            - pages_fetched / malformed_pages / failed_attempts
            - start_offset / final_offset / total

        Raises:
            FetchAbortedError: A client error surfaced and aborting is enabled
            StorageError: A raw page or checkpoint could not be written
        """
        self.state = FetchState.INIT
        request = PageRequest(
            project_key=project_key,
            offset=self.checkpoints.get(project_key),
            page_size=self.page_size,
            query=self.build_query(project_key)
        )
        start_offset = request.offset
        total: Optional[int] = None
        pages_fetched = 0
        malformed_pages = 0
        failed_attempts = 0
        status = "success"

        logger.info(f"Starting fetch for project={project_key} at startAt={start_offset}")

        try:
            while total is None or request.offset < total:
                self.state = FetchState.FETCHING
                raise_if_cancelled(self.cancel_event, project=project_key, offset=request.offset)
                logger.info(f"Fetching page for {project_key} startAt={request.offset}")

                try:
                    body = await self.client.search_issues(
                        request.query,
                        start_at=request.offset,
                        max_results=request.page_size
                    )
                    page = parse_page(body)
                    payload = body if page is not None else malformed_page(body)
                except MalformedResponseError as e:
                    page = None
                    payload = malformed_page(e.body)
                except TransportError as e:
                    failed_attempts += 1
                    logger.error(
                        f"Error fetching {project_key} at startAt={request.offset}: {e.message}",
                        extra={"error_context": e.to_dict()}
                    )
                    if self._should_abort(e):
                        raise FetchAbortedError(
                            f"Aborting fetch for {project_key} after {e.kind.value}",
                            context={
                                "project": project_key,
                                "offset": request.offset,
                                "status": e.status
                            },
                            original_exception=e
                        )
                    logger.warning(
                        f"Retrying startAt={request.offset} in {self.error_retry_delay}s"
                    )
                    await self._sleep(self.error_retry_delay)
                    continue

                self.state = FetchState.PERSIST
                self.raw_pages.write(project_key, request.offset, payload)

                if page is None:
                    malformed_pages += 1
                    logger.warning(
                        f"Malformed response at startAt={request.offset}. Saved raw and advancing."
                    )
                else:
                    pages_fetched += 1
                    if page.total is not None:
                        total = page.total
                    logger.info(f"Fetched {len(page.issues)} issues; total={total}")

                self.state = FetchState.ADVANCE
                request = request.next()
                self.checkpoints.set(project_key, request.offset)

                if total is not None and request.offset >= total:
                    break

                self.state = FetchState.DELAY
                await self._sleep(self.polite_delay)

        except OperationCancelled:
            status = "cancelled"
            logger.warning(
                f"Fetch for {project_key} cancelled; next run resumes at startAt={request.offset}"
            )
        else:
            self.state = FetchState.DONE
            logger.info(
                f"Completed fetching project={project_key}. Pages fetched: {pages_fetched}."
            )

        return {
            "status": status,
            "project": project_key,
            "pages_fetched": pages_fetched,
            "malformed_pages": malformed_pages,
            "failed_attempts": failed_attempts,
            "start_offset": start_offset,
            "final_offset": request.offset,
            "total": total
        }


async def fetch_project(
    project_key: str,
    page_size: int = settings.JIRA_PAGE_SIZE,
    cancel_event: Optional[asyncio.Event] = None
) -> Dict[str, Any]:
    """Run a fetch with the configured Jira client and file stores."""
    async with JiraClient(cancel_event=cancel_event) as client:
        runner = PaginationRunner(
            client,
            FileCheckpointStore(settings.CHECKPOINT_DIR),
            FileRawPageStore(settings.RAW_DIR),
            page_size=page_size,
            cancel_event=cancel_event
        )
        return await runner.run(project_key)
