"""Bounded async HTTP client: per-call timeout and response byte cap.

Wraps httpx.AsyncClient so that no call can hang past its deadline and no
response body can be buffered past its cap. A declared Content-Length over
the cap fails before the body is touched; an undeclared body is streamed and
abandoned the moment the running byte count crosses the cap.

No retries here. Callers compose this with claimcheck.client.retry.

Usage:
    async with BoundedHttpClient() as http:
        data = await http.request_json("POST", url, json=body, headers=headers)
"""

import asyncio
import json as jsonlib
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

import httpx
from loguru import logger

from claimcheck.errors import ConnectionFailed, PayloadTooLarge, RequestTimeout, UpstreamError

DEFAULT_USER_AGENT = "claimcheck/0.1 (+https://github.com/claimcheck/claimcheck)"


@dataclass(frozen=True)
class RequestLimits:
    """Per-call bounds."""

    timeout_ms: int = 10_000
    max_response_bytes: int = 1_000_000


@dataclass
class BoundedResponse:
    """Fully read (and size-checked) response."""

    status_code: int
    headers: httpx.Headers
    content: bytes
    url: str = ""
    reason_phrase: str = ""
    encoding: Optional[str] = field(default=None, repr=False)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")

    def json(self) -> Any:
        return jsonlib.loads(self.content)


def is_valid_url(url: str, allowed_domains: Optional[list[str]] = None) -> bool:
    """True for well-formed https URLs, optionally restricted to a domain list."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme != "https" or not parsed.hostname:
        return False
    if allowed_domains:
        host = parsed.hostname.lower()
        return any(host == d or host.endswith(f".{d}") for d in allowed_domains)
    return True


class BoundedHttpClient:
    """
    Async HTTP client enforcing a wall-clock timeout and a response byte cap.

    Attributes:
        default_limits: Limits applied when a call passes none
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        default_limits: Optional[RequestLimits] = None,
    ) -> None:
        """
        Initialize the bounded client.

        Args:
            client: Shared httpx.AsyncClient. Created lazily if not provided;
                    a supplied client is left open by aclose().
            default_limits: Limits for calls that do not pass their own
        """
        self._client = client
        self._owns_client = client is None
        self.default_limits = default_limits or RequestLimits()
        self.logger = logger.bind(component="BoundedHttpClient")

    async def __aenter__(self) -> "BoundedHttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create async HTTP client."""
        if self._client is None or self._client.is_closed:
            # httpx's own timeout is a backstop; the wall clock below governs
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(60.0),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        json: Any = None,
        limits: Optional[RequestLimits] = None,
    ) -> BoundedResponse:
        """
        Issue one request within the timeout and byte cap.

        Returns the response whatever its status; non-2xx is not an error here.

        Raises:
            RequestTimeout: Wall-clock deadline exceeded (request cancelled)
            PayloadTooLarge: Declared or streamed body exceeds the cap
            ConnectionFailed: Connection-level failures (no status, retryable)
        """
        limits = limits or self.default_limits
        timeout_s = limits.timeout_ms / 1000.0
        try:
            return await asyncio.wait_for(
                self._send_capped(method, url, headers, json, limits.max_response_bytes),
                timeout=timeout_s,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            self.logger.warning("Request timed out", url=_redact(url), timeout_ms=limits.timeout_ms)
            raise RequestTimeout(f"Request timed out after {limits.timeout_ms}ms") from e
        except httpx.TransportError as e:
            self.logger.warning("Request failed", url=_redact(url), error=type(e).__name__)
            raise ConnectionFailed(f"Connection to {_redact(url)} failed: {type(e).__name__}") from e

    async def _send_capped(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]],
        json: Any,
        max_bytes: int,
    ) -> BoundedResponse:
        client = self._get_client()
        async with client.stream(method, url, headers=headers, json=json) as response:
            declared = response.headers.get("content-length")
            if declared is not None and declared.strip().isdigit() and int(declared) > max_bytes:
                raise PayloadTooLarge(
                    f"Response size exceeds limit ({declared} > {max_bytes} bytes)"
                )

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > max_bytes:
                    raise PayloadTooLarge(
                        f"Response size exceeds limit ({len(body)} > {max_bytes} bytes)"
                    )

            return BoundedResponse(
                status_code=response.status_code,
                headers=response.headers,
                content=bytes(body),
                url=str(response.url),
                reason_phrase=response.reason_phrase,
                encoding=response.charset_encoding,
            )

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[dict[str, str]] = None,
        json: Any = None,
        limits: Optional[RequestLimits] = None,
        error_label: str = "HTTP",
    ) -> Any:
        """
        Send and decode a JSON response.

        Raises:
            UpstreamError: Non-2xx status (status attached) or undecodable body
            RequestTimeout, PayloadTooLarge, ConnectionFailed: As send()
        """
        response = await self.send(method, url, headers=headers, json=json, limits=limits)
        if not response.is_success:
            body = response.text[:500].strip()
            raise UpstreamError(
                f"{error_label} error {response.status_code}: {body or response.reason_phrase}",
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "Invalid JSON response",
                status=response.status_code,
                details={"error": str(e)},
            ) from e


def _redact(url: str) -> str:
    """Strip the query string so keys passed as parameters never hit the logs."""
    return url.split("?", 1)[0]
