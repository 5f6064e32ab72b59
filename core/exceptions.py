"""
Custom exceptions for the Jira corpus pipeline with structured error context.

Every exception carries a context dictionary so failures can be logged with
enough detail to resume or debug a run. Transport failures are classified by
``ErrorKind`` so callers can decide between retrying, skipping and aborting
without inspecting status codes themselves.

Exception Hierarchy:
    ETLException (base)
    ├── ExtractionError
    │   ├── TransportError (classified: kind, status, attempts)
    │   │   ├── RateLimitError      (429, retryable)
    │   │   ├── ServerError         (5xx, retryable)
    │   │   ├── NetworkError        (no status, retryable)
    │   │   └── ClientError         (other 4xx, non-retryable)
    │   ├── MalformedResponseError  (2xx body that is not usable JSON)
    │   └── FetchAbortedError
    ├── TransformationError
    │   └── TransformFileError
    │       └── RawPageReadError
    ├── StorageError (checkpoint / raw page / output I/O, fatal)
    └── OperationCancelled
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union


class ErrorKind(str, enum.Enum):
    """Classification of a failed request."""

    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK = "network"
    CLIENT_ERROR = "client_error"
    MALFORMED = "malformed"

    @property
    def retryable(self) -> bool:
        return self in (ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR, ErrorKind.NETWORK)


class ETLException(Exception):
    """
    Base exception for all pipeline errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (project, offset, url, ...)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now(timezone.utc)

        self.context["error_timestamp"] = self.timestamp.isoformat()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: "
                f"{self.original_exception}"
            )

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


# ============================================================================
# Extraction Errors
# ============================================================================

class ExtractionError(ETLException):
    """Base exception for fetch-side failures."""
    pass


class TransportError(ExtractionError):
    """
    A request that failed after classification.

    Raised by the transport once retries are exhausted, or immediately for
    non-retryable responses.

    Attributes:
        kind: ErrorKind of the last failure
        status: Last HTTP status code, or "network" when no response arrived
        attempts: Number of attempts made
    """

    kind: ErrorKind = ErrorKind.NETWORK

    def __init__(
        self,
        message: str,
        status: Union[int, str, None] = None,
        attempts: int = 1,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[BaseException] = None
    ):
        super().__init__(message, context, original_exception)
        self.status = status if status is not None else "network"
        self.attempts = attempts
        self.context.setdefault("status", self.status)
        self.context.setdefault("attempts", attempts)
        self.context.setdefault("kind", self.kind.value)

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class RateLimitError(TransportError):
    """HTTP 429. May carry the server's Retry-After hint in seconds."""

    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after
        if retry_after is not None:
            self.context["retry_after"] = retry_after


class ServerError(TransportError):
    """HTTP 5xx."""

    kind = ErrorKind.SERVER_ERROR


class NetworkError(TransportError):
    """Timeout or connection failure; no HTTP status was received."""

    kind = ErrorKind.NETWORK


class ClientError(TransportError):
    """HTTP 4xx other than 429. Never retried by the transport."""

    kind = ErrorKind.CLIENT_ERROR


class MalformedResponseError(ExtractionError):
    """
    A successful response whose body could not be decoded as JSON.

    The raw body is kept so it can be persisted verbatim.
    """

    kind = ErrorKind.MALFORMED

    def __init__(self, message: str, body: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.body = body


class FetchAbortedError(ExtractionError):
    """The pagination runner gave up on a project."""
    pass


# ============================================================================
# Transformation Errors
# ============================================================================

class TransformationError(ETLException):
    """Base exception for transform failures."""
    pass


class TransformFileError(TransformationError):
    """
    A single raw page file could not be used.

    Context should include:
        - project: Project key
        - offset: Page offset
        - path: File path (for file-backed stores)
    """
    pass


class RawPageReadError(TransformFileError):
    """Raw page missing, unreadable or not valid JSON."""
    pass


# ============================================================================
# Storage / Control
# ============================================================================

class StorageError(ETLException):
    """
    Checkpoint, raw page or output I/O failed.

    Fatal: callers propagate it and stop the run.
    """
    pass


class OperationCancelled(ETLException):
    """A cancellation signal was observed at a suspension point."""
    pass
