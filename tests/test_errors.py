"""Tests for the error taxonomy."""

import httpx
import pytest

from claimcheck.errors import (
    ClaimCheckError,
    ConnectionFailed,
    InternalError,
    InvalidInput,
    PayloadTooLarge,
    RequestTimeout,
    UpstreamError,
    http_status_for,
    status_of,
)


@pytest.mark.parametrize(
    "error, kind, status",
    [
        (RequestTimeout("slow"), "timeout", None),
        (PayloadTooLarge("big"), "payload_too_large", 413),
        (UpstreamError("down"), "upstream_error", 502),
        (InvalidInput("bad"), "invalid_input", 400),
        (InternalError("oops"), "internal", 500),
    ],
)
def test_kinds_and_default_statuses(error, kind, status):
    assert isinstance(error, ClaimCheckError)
    assert error.kind == kind
    assert error.status == status
    assert error.to_dict() == {"code": kind, "message": str(error)}


def test_explicit_status_overrides_default():
    assert UpstreamError("not found", status=404).status == 404


def test_status_of_reads_httpx_errors():
    request = httpx.Request("GET", "https://api.parallel.ai/x")
    exc = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(429, request=request))
    assert status_of(exc) == 429
    assert status_of(ValueError("no status")) is None
    assert status_of(UpstreamError("x", status=503)) == 503


def test_boundary_statuses():
    assert http_status_for(RequestTimeout("slow")) == 504
    assert http_status_for(UpstreamError("bad request upstream", status=400)) == 502
    assert http_status_for(InvalidInput("bad")) == 400
    assert http_status_for(PayloadTooLarge("big")) == 413
    assert http_status_for(KeyError("x")) == 500


def test_repr_has_no_traceback():
    assert repr(InvalidInput("Invalid link URL")) == "InvalidInput('Invalid link URL', status=400)"


def test_connection_failed_is_a_retryable_upstream_error():
    error = ConnectionFailed("Connection to https://api.parallel.ai failed: ConnectError")
    assert isinstance(error, UpstreamError)
    assert error.kind == "upstream_error"
    assert error.status is None
    assert status_of(error) is None
    assert http_status_for(error) == 502
