"""Application settings using Pydantic BaseSettings for environment variable management."""

from urllib.parse import urlparse

from loguru import logger
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_API_ROOT = "https://api.parallel.ai"


class ServiceConfig(BaseModel):
    """Immutable configuration injected into every component.

    Components never read the environment themselves; tests build a
    ServiceConfig pointing at a mock transport instead.
    """

    api_root: str = DEFAULT_API_ROOT
    api_key: str = ""

    # Bounded HTTP client
    http_timeout_ms: int = 12_000
    max_response_bytes: int = 1_000_000

    # Retry/backoff
    max_retries: int = 2
    base_backoff_ms: int = 600

    # Job polling
    task_poll_ms: int = 1500
    findall_poll_ms: int = 2000
    max_wait_ms: int = 120_000
    query_max_wait_ms: int = 90_000

    # Verification
    inter_claim_delay_ms: int = 50
    max_claims: int = 50
    max_concurrency: int = 1
    confidence_threshold: float = 0.3
    search_processor: str = "base"
    search_max_results: int = 5
    max_chars_per_result: int = 800

    # Boundary limits
    max_files: int = 5
    max_file_bytes: int = 10 * 1024 * 1024
    max_total_bytes: int = 25 * 1024 * 1024
    max_link_length: int = 2048

    model_config = {"frozen": True}

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        pws_api_key: Parallel API key (PWS_API_KEY). Empty puts search in mock mode.
        pws_base_url: Parallel API root (PWS_BASE_URL). Only https parallel.ai hosts accepted.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
        inter_claim_delay_ms: Pause between claim verifications
        max_claims: Claims verified per request
    """

    pws_api_key: str = Field(default="", description="Parallel API key")
    pws_base_url: str = Field(
        default=DEFAULT_API_ROOT,
        description="Parallel API root URL"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )
    http_timeout_ms: int = Field(default=12_000, description="Per-call timeout")
    max_response_bytes: int = Field(default=1_000_000, description="Response byte cap")
    max_retries: int = Field(default=2, description="Retries after the first attempt")
    base_backoff_ms: int = Field(default=600, description="Backoff before the first retry")
    task_poll_ms: int = Field(default=1500, description="Task run poll interval")
    findall_poll_ms: int = Field(default=2000, description="FindAll run poll interval")
    max_wait_ms: int = Field(default=120_000, description="Job deadline")
    query_max_wait_ms: int = Field(default=90_000, description="Query generation deadline")
    inter_claim_delay_ms: int = Field(default=50, description="Delay between claims")
    max_claims: int = Field(default=50, description="Claims verified per request")
    max_concurrency: int = Field(default=1, description="Claims verified at once")
    confidence_threshold: float = Field(default=0.3, description="Supported verdict threshold")
    search_processor: str = Field(default="base", description="Evidence search processor")
    search_max_results: int = Field(default=5, description="Search results kept per claim")
    max_chars_per_result: int = Field(default=800, description="Excerpt character cap per search result")
    max_files: int = Field(default=5, description="Uploaded files per request")
    max_file_bytes: int = Field(default=10 * 1024 * 1024, description="Per-file upload cap")
    max_total_bytes: int = Field(default=25 * 1024 * 1024, description="Total upload cap")
    max_link_length: int = Field(default=2048, description="Longest accepted link")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @field_validator("pws_base_url")
    @classmethod
    def restrict_base_url(cls, value: str) -> str:
        """Only https parallel.ai hosts; anything else falls back to the default.

        Version suffixes are stripped since each endpoint family picks its own.
        """
        value = (value or "").strip().rstrip("/")
        try:
            parsed = urlparse(value)
        except ValueError:
            return DEFAULT_API_ROOT
        host = (parsed.hostname or "").lower()
        if parsed.scheme != "https" or not (host == "parallel.ai" or host.endswith(".parallel.ai")):
            logger.warning("Ignoring PWS_BASE_URL outside https parallel.ai", host=host)
            return DEFAULT_API_ROOT
        for suffix in ("/v1beta", "/v1"):
            if value.endswith(suffix):
                value = value[: -len(suffix)]
        return value

    def service_config(self) -> ServiceConfig:
        """Freeze the loaded settings into the config components receive."""
        return ServiceConfig(
            api_root=self.pws_base_url,
            api_key=self.pws_api_key,
            http_timeout_ms=self.http_timeout_ms,
            max_response_bytes=self.max_response_bytes,
            max_retries=self.max_retries,
            base_backoff_ms=self.base_backoff_ms,
            task_poll_ms=self.task_poll_ms,
            findall_poll_ms=self.findall_poll_ms,
            max_wait_ms=self.max_wait_ms,
            query_max_wait_ms=self.query_max_wait_ms,
            inter_claim_delay_ms=self.inter_claim_delay_ms,
            max_claims=self.max_claims,
            max_concurrency=self.max_concurrency,
            confidence_threshold=self.confidence_threshold,
            search_processor=self.search_processor,
            search_max_results=self.search_max_results,
            max_chars_per_result=self.max_chars_per_result,
            max_files=self.max_files,
            max_file_bytes=self.max_file_bytes,
            max_total_bytes=self.max_total_bytes,
            max_link_length=self.max_link_length,
        )


# Singleton instance - import this throughout the application
settings = Settings()
