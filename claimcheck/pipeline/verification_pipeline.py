"""Boundary pipeline: request validation, text extraction and mode dispatch.

Search mode segments the text into claims and verifies each one. The job
modes hand the whole text to one remote job:

- deep_research: multi-hop research run (task run on the ultra processor)
- task: structured task run with an optional output schema
- findall: entity discovery run

Usage:
    from claimcheck.pipeline import VerificationPipeline

    async with VerificationPipeline() as pipeline:
        response = await pipeline.verify(text, mode="search")
"""

from typing import Any, Optional


from claimcheck.client.bounded_http import BoundedHttpClient, is_valid_url
from claimcheck.client.parallel_api import request_limits_for
from claimcheck.config.settings import ServiceConfig, settings
from claimcheck.errors import ClaimCheckError, InvalidInput, PayloadTooLarge, http_status_for
from claimcheck.ingest.document_extractor import DocumentExtractor
from claimcheck.ingest.page_scraper import PageScraper
from claimcheck.jobs.findall_client import FindAllClient
from claimcheck.jobs.task_client import TaskClient
from claimcheck.pipeline.schemas import (
    DeepResearchResponse,
    FindAllResponse,
    SearchResponse,
    SourceText,
    TaskResponse,
    VerificationMode,
    VerificationRequest,
    VerificationResponse,
)
from claimcheck.utils.logging import (
    bind_request_context,
    get_correlation_id,
    get_structured_logger,
)
from claimcheck.verification.schemas import VerificationResult
from claimcheck.verification.verification_agent import ProgressCallback, VerificationAgent

_MB = 1024 * 1024


def resolve_mode(mode: Any) -> VerificationMode:
    """VerificationMode for ``mode`` or InvalidInput."""
    if isinstance(mode, VerificationMode):
        return mode
    try:
        return VerificationMode(str(mode or VerificationMode.SEARCH.value))
    except ValueError:
        raise InvalidInput(f"Invalid mode: {mode}") from None


def error_response(exc: BaseException) -> tuple[int, dict[str, Any]]:
    """HTTP status and JSON body for an error reaching the boundary.

    Unknown exceptions never leak their message.
    """
    status = http_status_for(exc)
    if isinstance(exc, ClaimCheckError):
        body: dict[str, Any] = {"error": exc.to_dict()}
        if exc.details:
            body["details"] = exc.details
        return status, body
    return status, {"error": {"code": "internal", "message": "Internal Server Error"}}


class VerificationPipeline:
    """Orchestrates one request from raw input to a mode-specific response.

    Collaborators are built lazily from the ServiceConfig unless injected.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        http: Optional[BoundedHttpClient] = None,
        verification_agent: Optional[VerificationAgent] = None,
        task_client: Optional[TaskClient] = None,
        findall_client: Optional[FindAllClient] = None,
        document_extractor: Optional[DocumentExtractor] = None,
        page_scraper: Optional[PageScraper] = None,
    ) -> None:
        """Initialize VerificationPipeline.

        Args:
            config: Service configuration. Loaded from settings if None.
            http: Shared bounded HTTP client. Owned (and closed) if None.
            verification_agent: Pre-configured agent for search mode.
            task_client: Client for task and deep research modes.
            findall_client: Client for findall mode.
            document_extractor: Upload text extractor.
            page_scraper: Link text extractor.
        """
        self.config = config or settings.service_config()
        self._owns_http = http is None
        self.http = http or BoundedHttpClient(default_limits=request_limits_for(self.config))
        self._verification_agent = verification_agent
        self._task_client = task_client
        self._findall_client = findall_client
        self.document_extractor = document_extractor or DocumentExtractor()
        self.page_scraper = page_scraper or PageScraper(self.http)
        self._logger = get_structured_logger(__name__, component="VerificationPipeline")

    async def __aenter__(self) -> "VerificationPipeline":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self.http.aclose()

    def _get_task_client(self) -> TaskClient:
        if self._task_client is None:
            self._task_client = TaskClient(self.http, self.config)
        return self._task_client

    def _get_findall_client(self) -> FindAllClient:
        if self._findall_client is None:
            self._findall_client = FindAllClient(self.http, self.config)
        return self._findall_client

    def _get_agent(self) -> VerificationAgent:
        if self._verification_agent is None:
            self._verification_agent = VerificationAgent.from_config(
                self.http, self.config, task_client=self._get_task_client()
            )
        return self._verification_agent

    def validate_request(self, request: VerificationRequest) -> VerificationMode:
        """Check counts, sizes, mode and link before any work starts.

        Raises:
            PayloadTooLarge: Too many files, a file or the total over its cap.
            InvalidInput: Unknown mode or a bad link.
        """
        config = self.config
        if len(request.files) > config.max_files:
            raise PayloadTooLarge(f"Too many files ({len(request.files)} > {config.max_files})")

        mode = resolve_mode(request.mode)

        link = request.link or ""
        if link and (len(link) > config.max_link_length or not is_valid_url(link)):
            raise InvalidInput("Invalid link URL")

        total = 0
        for upload in request.files:
            total += upload.size
            if upload.size > config.max_file_bytes:
                raise PayloadTooLarge(
                    f"File too large: {upload.filename} "
                    f"({round(upload.size / _MB)}MB > {round(config.max_file_bytes / _MB)}MB)"
                )
            if total > config.max_total_bytes:
                raise PayloadTooLarge(
                    f"Total upload size exceeds limit "
                    f"({round(total / _MB)}MB > {round(config.max_total_bytes / _MB)}MB)"
                )
        return mode

    async def extract_text(self, request: VerificationRequest) -> str:
        """Concatenated text of the uploads and the scraped link."""
        text = ""
        if request.files:
            text = self.document_extractor.extract_many(request.files)
        if request.link:
            link_text = await self.page_scraper.scrape(request.link)
            if link_text:
                text = f"{text}\n\n{link_text}" if text else link_text
        return text

    async def handle(
        self,
        request: VerificationRequest,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> VerificationResponse:
        """Validate, extract and dispatch one boundary request."""
        mode = self.validate_request(request)
        text = await self.extract_text(request)
        return await self.verify(
            text,
            mode,
            request.output_schema,
            progress_callback=progress_callback,
        )

    async def verify(
        self,
        text: str,
        mode: Any = VerificationMode.SEARCH,
        output_schema: Any = None,
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> VerificationResponse:
        """Run ``text`` through the selected mode.

        Raises:
            InvalidInput: Unknown mode, or no text to work on (before any
                remote call).
            Job mode failures once retries are exhausted.
        """
        mode = resolve_mode(mode)
        if not text or not text.strip():
            raise InvalidInput("No content to verify")

        bind_request_context(get_correlation_id(), mode=mode.value)
        source = SourceText(text=text)
        self._logger.info("verification_requested", text_chars=len(text))

        if mode == VerificationMode.DEEP_RESEARCH:
            research = await self._get_task_client().run_deep_research(text)
            return DeepResearchResponse(
                source=source,
                deep_research=research.content,
                basis=research.basis,
                status=research.status,
                run_id=research.run_id,
            )

        if mode == VerificationMode.TASK:
            task = await self._get_task_client().run_task(text, output_schema=output_schema)
            return TaskResponse(
                source=source,
                output=task.output,
                status=task.status,
                run_id=task.run_id,
            )

        if mode == VerificationMode.FINDALL:
            found = await self._get_findall_client().run_findall(text)
            return FindAllResponse(
                source=source,
                results=found.results,
                status=found.status,
                findall_id=found.findall_id,
            )

        items: list[VerificationResult] = await self._get_agent().verify_text(
            text, progress_callback=progress_callback
        )
        return SearchResponse(source=source, items=items)
