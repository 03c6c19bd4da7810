"""Boundary layer: request validation, text extraction and mode dispatch."""

from claimcheck.pipeline.schemas import (
    UploadedFile,
    VerificationMode,
    VerificationRequest,
)
from claimcheck.pipeline.verification_pipeline import (
    VerificationPipeline,
    error_response,
    resolve_mode,
)

__all__ = [
    "UploadedFile",
    "VerificationMode",
    "VerificationPipeline",
    "VerificationRequest",
    "error_response",
    "resolve_mode",
]
