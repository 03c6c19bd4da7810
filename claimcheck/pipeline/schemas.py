"""Request and response models for the verification boundary.

A request carries any mix of uploaded files and one link, plus the mode.
Each mode answers with its own response shape; all of them echo the
extracted source text.
"""

from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, Field

from claimcheck.verification.schemas import VerificationResult


class VerificationMode(str, Enum):
    """Processing mode for one request."""

    SEARCH = "search"
    DEEP_RESEARCH = "deep_research"
    TASK = "task"
    FINDALL = "findall"


class UploadedFile(BaseModel):
    """One uploaded document."""

    filename: str = Field(default="", description="Original file name")
    content: bytes = Field(default=b"", description="Raw file bytes")
    content_type: Optional[str] = Field(default=None, description="Declared MIME type")

    @property
    def size(self) -> int:
        return len(self.content)


class VerificationRequest(BaseModel):
    """Boundary input. Mode is validated by the pipeline, not by pydantic,
    so an unknown mode surfaces as an invalid_input error."""

    files: list[UploadedFile] = Field(default_factory=list)
    link: str = Field(default="", description="Page or shared conversation to scrape")
    mode: str = Field(default=VerificationMode.SEARCH.value)
    output_schema: Union[str, dict[str, Any], None] = Field(
        default=None,
        description="Output schema for task mode (JSON schema object or prose)",
    )


class SourceText(BaseModel):
    text: str


class SearchResponse(BaseModel):
    mode: VerificationMode = VerificationMode.SEARCH
    source: SourceText
    items: list[VerificationResult] = Field(default_factory=list)

    model_config = {"use_enum_values": True}


class DeepResearchResponse(BaseModel):
    mode: VerificationMode = VerificationMode.DEEP_RESEARCH
    source: SourceText
    deep_research: Any = None
    basis: list[Any] = Field(default_factory=list)
    status: Optional[str] = None
    run_id: Optional[str] = None

    model_config = {"use_enum_values": True}


class TaskResponse(BaseModel):
    mode: VerificationMode = VerificationMode.TASK
    source: SourceText
    output: Any = None
    status: Optional[str] = None
    run_id: Optional[str] = None

    model_config = {"use_enum_values": True}


class FindAllResponse(BaseModel):
    mode: VerificationMode = VerificationMode.FINDALL
    source: SourceText
    results: list[Any] = Field(default_factory=list)
    status: Optional[str] = None
    findall_id: Optional[str] = None

    model_config = {"use_enum_values": True}


VerificationResponse = Union[SearchResponse, DeepResearchResponse, TaskResponse, FindAllResponse]
