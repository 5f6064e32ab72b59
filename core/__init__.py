"""
Core utilities and configuration for the Jira corpus pipeline.

Modules:
    config: Application configuration and environment variable management
    exceptions: Custom exception hierarchy and request error classification
    logging: Logging configuration

Usage:
    from core.config import settings
    from core.exceptions import TransportError, ErrorKind
    from core.logging import setup_logging
"""

__all__ = [
    "settings",
    "setup_logging",
    # Exceptions
    "ErrorKind",
    "ETLException",
    "ExtractionError",
    "TransportError",
    "RateLimitError",
    "ServerError",
    "NetworkError",
    "ClientError",
    "MalformedResponseError",
    "FetchAbortedError",
    "TransformationError",
    "TransformFileError",
    "RawPageReadError",
    "StorageError",
    "OperationCancelled",
]

from core.config import settings
from core.logging import setup_logging
from core.exceptions import (
    ErrorKind,
    ETLException,
    ExtractionError,
    TransportError,
    RateLimitError,
    ServerError,
    NetworkError,
    ClientError,
    MalformedResponseError,
    FetchAbortedError,
    TransformationError,
    TransformFileError,
    RawPageReadError,
    StorageError,
    OperationCancelled,
)
