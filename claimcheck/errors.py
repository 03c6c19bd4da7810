"""Error taxonomy shared by the transport, job and pipeline layers.

Every failure that can reach the boundary layer is one of five kinds:

- timeout: a per-call or poll deadline was exceeded
- payload_too_large: a response or upload exceeded a configured byte cap
- upstream_error: a remote collaborator answered with a non-2xx status or
  could not be reached
- invalid_input: a malformed request or missing required content
- internal: anything unexpected

Each error carries an optional HTTP status so the retry predicate can tell
transient failures (no status, 5xx) from caller errors (4xx).
"""

from typing import Any, Optional


class ClaimCheckError(Exception):
    """Base error with a machine-readable kind and optional HTTP status."""

    kind: str = "internal"
    default_status: Optional[int] = 500

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status if status is not None else self.default_status
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Structured form for error responses. Never includes tracebacks."""
        return {"code": self.kind, "message": self.message}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status={self.status})"


class RequestTimeout(ClaimCheckError):
    """Deadline exceeded on a network call or a poll loop."""

    kind = "timeout"
    default_status = None


class PayloadTooLarge(ClaimCheckError):
    """Response or upload exceeded its byte cap."""

    kind = "payload_too_large"
    default_status = 413


class UpstreamError(ClaimCheckError):
    """Non-2xx answer from a remote collaborator; status is the remote one."""

    kind = "upstream_error"
    default_status = 502


class ConnectionFailed(UpstreamError):
    """Remote collaborator unreachable; no status, so retryable."""

    default_status = None


class InvalidInput(ClaimCheckError):
    """Malformed request or missing content."""

    kind = "invalid_input"
    default_status = 400


class InternalError(ClaimCheckError):
    """Unexpected failure, including missing configuration."""

    kind = "internal"
    default_status = 500


def status_of(exc: BaseException) -> Optional[int]:
    """HTTP status carried by an exception, if any.

    Understands the taxonomy above and ``httpx.HTTPStatusError``.
    """
    status = getattr(exc, "status", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    code = getattr(response, "status_code", None)
    if isinstance(code, int):
        return code
    return None


def http_status_for(exc: BaseException) -> int:
    """Status the boundary layer answers with for ``exc``."""
    if isinstance(exc, RequestTimeout):
        return 504
    if isinstance(exc, UpstreamError):
        return 502
    if isinstance(exc, ClaimCheckError) and exc.status is not None:
        return exc.status
    return 500


__all__ = [
    "ClaimCheckError",
    "RequestTimeout",
    "PayloadTooLarge",
    "UpstreamError",
    "ConnectionFailed",
    "InvalidInput",
    "InternalError",
    "status_of",
    "http_status_for",
]
