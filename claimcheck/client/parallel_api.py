"""Endpoint layout and auth headers for the Parallel API family.

Search and FindAll live under /v1beta, task runs under /v1. All calls
authenticate with the ``x-api-key`` header.
"""

from urllib.parse import quote

from claimcheck.client.bounded_http import RequestLimits
from claimcheck.client.retry import RetryPolicy
from claimcheck.config.settings import ServiceConfig
from claimcheck.errors import InternalError


class ParallelEndpoints:
    """URL builder rooted at ``ServiceConfig.api_root``."""

    def __init__(self, api_root: str) -> None:
        self.root = api_root.rstrip("/")

    @property
    def search(self) -> str:
        return f"{self.root}/v1beta/search"

    @property
    def task_runs(self) -> str:
        return f"{self.root}/v1/tasks/runs"

    def task_result(self, run_id: str) -> str:
        return f"{self.root}/v1/tasks/runs/{quote(run_id, safe='')}/result"

    @property
    def findall_ingest(self) -> str:
        return f"{self.root}/v1beta/findall/ingest"

    @property
    def findall_runs(self) -> str:
        return f"{self.root}/v1beta/findall/runs"

    def findall_run(self, findall_id: str) -> str:
        return f"{self.root}/v1beta/findall/runs/{quote(findall_id, safe='')}"


def api_headers(config: ServiceConfig) -> dict[str, str]:
    return {"Content-Type": "application/json", "x-api-key": config.api_key}


def require_api_key(config: ServiceConfig) -> None:
    """Raise before any network call when no key is configured."""
    if not config.api_key:
        raise InternalError("Missing PWS_API_KEY")


def retry_policy_for(config: ServiceConfig) -> RetryPolicy:
    return RetryPolicy(
        max_retries=config.max_retries,
        base_backoff_ms=config.base_backoff_ms,
    )


def request_limits_for(config: ServiceConfig) -> RequestLimits:
    return RequestLimits(
        timeout_ms=config.http_timeout_ms,
        max_response_bytes=config.max_response_bytes,
    )
