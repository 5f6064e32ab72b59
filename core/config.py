"""
Application configuration using Pydantic Settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # Jira API
    JIRA_BASE_URL: str = "https://issues.apache.org/jira/rest/api/2"
    JIRA_FIELDS: str = "summary,description,comment,priority,status,assignee,reporter,labels,created,updated"
    JIRA_PAGE_SIZE: int = 50
    JQL_TEMPLATE: str = "project={project} ORDER BY created DESC"
    REQUEST_TIMEOUT: float = 20.0
    USER_AGENT: str = "jira-corpus-etl/0.1"
    EXTRA_HEADERS: Dict[str, str] = {}

    # Retry / pacing (seconds)
    MAX_RETRY_ATTEMPTS: int = 5
    BASE_BACKOFF_SECONDS: float = 0.5
    JITTER_SECONDS: float = 0.3
    POLITE_DELAY_SECONDS: float = 0.35
    ERROR_RETRY_DELAY_SECONDS: float = 2.0
    ABORT_ON_CLIENT_ERROR: bool = False

    # Storage
    CHECKPOINT_DIR: str = "checkpoints"
    RAW_DIR: str = "raw"
    OUTPUT_DIR: str = "out"

    # Transform
    SUMMARY_MAX_LENGTH: int = 200

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"


settings = Settings()
