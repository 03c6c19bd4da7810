"""Command line interface for claimcheck using Typer and Rich."""

import asyncio
import json
import mimetypes
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from claimcheck import __version__
from claimcheck.config.logging import get_logger
from claimcheck.config.settings import settings
from claimcheck.ingest.document_extractor import DocumentExtractor
from claimcheck.pipeline.schemas import (
    SearchResponse,
    UploadedFile,
    VerificationRequest,
)
from claimcheck.pipeline.verification_pipeline import VerificationPipeline, error_response
from claimcheck.verification.claim_segmenter import ClaimSegmenter

app = typer.Typer(
    help="claimcheck - verify factual claims and run research jobs against the Parallel API",
    add_completion=False,
)

console = Console()

logger = get_logger("cli")


def _load_upload(path: Path) -> UploadedFile:
    content_type, _ = mimetypes.guess_type(path.name)
    return UploadedFile(filename=path.name, content=path.read_bytes(), content_type=content_type)


def _read_input(text: Optional[str], file: Optional[Path]) -> str:
    if file is not None:
        upload = _load_upload(file)
        return DocumentExtractor().extract(upload.filename, upload.content, upload.content_type)
    if text:
        return text
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return ""


@app.command()
def status() -> None:
    """
    Display configuration and API readiness.

    Shows the API root, whether a key is set (never the key itself),
    polling and retry settings, and logging configuration.
    """
    logger.info("Displaying system status")
    config = settings.service_config()

    table = Table(title="claimcheck Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", width=20)
    table.add_column("Status", style="green", width=15)
    table.add_column("Details", style="yellow")

    python_version = f"Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    table.add_row("Environment", "✓ Ready", f"{python_version}, claimcheck {__version__}")

    api_status = "✓ Configured" if config.has_api_key else "⚠ Mock mode"
    table.add_row("Parallel API", api_status, f"{config.api_root} (key length: {len(config.api_key)})")

    table.add_row(
        "Retries",
        "✓ Active",
        f"max_retries={config.max_retries}, base_backoff={config.base_backoff_ms}ms",
    )
    table.add_row(
        "Job polling",
        "✓ Active",
        f"task every {config.task_poll_ms}ms, findall every {config.findall_poll_ms}ms, "
        f"deadline {config.max_wait_ms}ms",
    )
    table.add_row(
        "Verification",
        "✓ Active",
        f"max_claims={config.max_claims}, threshold={config.confidence_threshold}, "
        f"concurrency={config.max_concurrency}",
    )
    table.add_row("Logging", "✓ Active", f"Level: {settings.log_level}, Format: {settings.log_format}")

    console.print(table)


@app.command()
def segment(
    text: Optional[str] = typer.Argument(None, help="Text to segment (or use --file / stdin)"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", exists=True, dir_okay=False),
    as_json: bool = typer.Option(False, "--json", help="Print claims as a JSON array"),
) -> None:
    """Split text into the claims that search mode would verify."""
    claims = ClaimSegmenter().segment(_read_input(text, file))
    logger.info("Segmented input", claims=len(claims))

    if as_json:
        typer.echo(json.dumps(claims, ensure_ascii=False, indent=2))
        return
    if not claims:
        console.print("[yellow]No claims found[/yellow]")
        return
    for index, claim in enumerate(claims, start=1):
        console.print(f"[cyan]{index:>3}.[/cyan] {escape(claim)}")


def _print_search(response: SearchResponse) -> None:
    table = Table(title="Verification Results", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("Claim", style="white")
    table.add_column("Status", width=13)
    table.add_column("Confidence", justify="right", width=10)
    table.add_column("Top source", style="blue")

    for index, item in enumerate(response.items, start=1):
        style = "green" if item.status == "supported" else "yellow"
        source = item.evidence[0].url if item.evidence else (item.error or "")
        table.add_row(
            str(index),
            escape(item.claim),
            f"[{style}]{item.status}[/{style}]",
            f"{item.confidence:.2f}",
            source,
        )
    console.print(table)


@app.command()
def verify(
    text: Optional[str] = typer.Argument(None, help="Text to verify (or use --file / --link / stdin)"),
    files: Optional[list[Path]] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False, help="Document(s) to verify"
    ),
    link: str = typer.Option("", "--link", "-l", help="https page or shared conversation"),
    mode: str = typer.Option("search", "--mode", "-m", help="search | deep_research | task | findall"),
    output_schema: Optional[str] = typer.Option(
        None, "--output-schema", help="Output schema for task mode (JSON or prose)"
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response as JSON"),
) -> None:
    """
    Verify claims in text, documents or a link, or run a research job.

    Args:
        text: Inline text.
        files: Uploaded documents (PDF, DOCX, plain text).
        link: Page to scrape.
        mode: Processing mode.
        output_schema: Task mode output schema.
        as_json: Emit JSON instead of tables.
    """
    logger.info("Verify command invoked", mode=mode, files=len(files or []), has_link=bool(link))

    async def _run():
        async with VerificationPipeline() as pipeline:
            if files or link:
                request = VerificationRequest(
                    files=[_load_upload(path) for path in files or []],
                    link=link,
                    mode=mode,
                    output_schema=output_schema,
                )
                return await pipeline.handle(request)
            return await pipeline.verify(_read_input(text, None), mode, output_schema)

    try:
        response = asyncio.run(_run())
    except Exception as e:
        # Unknown failures render as a generic internal error, never a traceback
        status_code, body = error_response(e)
        code = body["error"]["code"]
        console.print(f"[red]✗[/red] {code}: {escape(body['error']['message'])}")
        logger.error("Verify command failed", status=status_code, code=code, error=type(e).__name__)
        raise typer.Exit(1)

    if as_json:
        typer.echo(response.model_dump_json(indent=2))
        return

    if isinstance(response, SearchResponse):
        _print_search(response)
        return

    payload = response.model_dump(exclude={"source"})
    console.print(Panel(
        json.dumps(payload, indent=2, ensure_ascii=False, default=str),
        title=f"{response.mode} result",
        border_style="green",
    ))


@app.command()
def version() -> None:
    """Display version information."""
    console.print("[bold]claimcheck[/bold]")
    console.print(f"Version: {__version__}")


if __name__ == "__main__":
    app()
