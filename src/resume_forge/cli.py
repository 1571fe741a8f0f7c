"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from resume_forge.clients.gemini_client import GeminiClient
from resume_forge.config import load_config
from resume_forge.errors import EXIT_FAILURE, ConfigError, ResumeForgeError
from resume_forge.export.pdf_renderer import PdfRenderer
from resume_forge.models.job import JobPosting
from resume_forge.parsers.jd_parser import load_jd_file, parse_jd
from resume_forge.pipeline.artifacts import ERROR_REPORT, ArtifactStore
from resume_forge.pipeline.orchestrator import PipelineOrchestrator, PipelineResult

app = typer.Typer(
    name="resume-forge",
    help="Tailor a resume to a job description with Gemini and render it to PDF.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger("resume_forge")


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # httpx logs request URLs, which carry the API key as a query parameter
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _fail(store: ArtifactStore, error: Exception, exit_code: int) -> None:
    err_console.print(f"[red]ERROR: {error}[/red]")
    store.write_error(f"{type(error).__name__}: {error}")
    raise typer.Exit(exit_code)


def _resolve(path: Path) -> Path:
    return path if path.is_absolute() else Path.cwd() / path


@app.command()
def tailor(
    job_title: str = typer.Option("Software Engineer", "--job-title", help="Target job title"),
    job_desc: str = typer.Option("", "--job-desc", "--job-description", help="Job description text"),
    job_desc_file: Path = typer.Option(None, "--job-desc-file", help="Read the job description from a text file"),
    company: str = typer.Option("Company", "--company", help="Company name"),
    resume_path: Path = typer.Option(
        Path("resumes/resume.docx"), "--resume-path", help="Resume file (DOCX/PDF/TXT/MD)"
    ),
    max_iterations: int = typer.Option(1, "--max-iterations", help="Accepted for compatibility; one pass is always run"),
    output_dir: Path = typer.Option(None, "--output-dir", "-o", help="Artifact directory (default: ./output)"),
    config_path: Path = typer.Option(None, "--config", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Tailor, critique and revise a resume, then render it to PDF."""
    _setup_logging(verbose)
    fallback_store = ArtifactStore(output_dir or Path("output"))

    try:
        config = load_config(config_path)
    except ConfigError as e:
        _fail(fallback_store, e, e.exit_code)

    if job_desc_file is not None:
        try:
            file_desc = load_jd_file(job_desc_file)
        except (OSError, UnicodeDecodeError) as e:
            _fail(fallback_store, ConfigError(f"Cannot read job description file: {e}"), EXIT_FAILURE)
        job_desc = f"{job_desc}\n\n{file_desc}" if job_desc else file_desc

    job = JobPosting(title=job_title, description=parse_jd(job_desc), company=company)
    resume = _resolve(resume_path)

    if verbose:
        console.print(f"[dim]Company: {job.company}[/dim]")
        console.print(f"[dim]Job title: {job.title}[/dim]")
        console.print(f"[dim]Job description: {len(job.description)} chars[/dim]")
        console.print(f"[dim]Resume: {resume}[/dim]")
        console.print(f"[dim]Model: {config.gemini.model}[/dim]")
    if max_iterations != 1:
        logger.debug("--max-iterations=%d ignored; running a single pass", max_iterations)

    async def _run() -> PipelineResult:
        async with GeminiClient.from_config(config.gemini) as llm:
            orchestrator = PipelineOrchestrator.from_config(llm, config, output_dir=output_dir)
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Starting...", total=None)

                def on_phase(stage, detail: str) -> None:
                    progress.update(task, description=detail)

                return await orchestrator.run(
                    resume, job, max_iterations=max_iterations, on_phase=on_phase
                )

    store = ArtifactStore(output_dir or config.pipeline.resolved_output_dir)
    store.clear_error()
    try:
        result = asyncio.run(_run())
    except ResumeForgeError as e:
        # error.txt was already written by the orchestrator
        err_console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(e.exit_code)
    except Exception as e:
        logger.debug("Unhandled failure", exc_info=True)
        err_console.print(f"[red]ERROR: {type(e).__name__}: {e}[/red]")
        # a report written during this run already names the failing stage
        if not store.path(ERROR_REPORT).exists():
            store.write_error(f"{type(e).__name__}: {e}")
        raise typer.Exit(EXIT_FAILURE)

    usage = result.token_usage
    lines = [f"{name}: {path}" for name, path in result.artifacts.items()]
    lines.append("")
    lines.append(
        f"Gaps: {len(result.critique.analysis.gaps)}"
        if result.critique.parsed
        else "Gaps: unparsed (raw text used)"
    )
    lines.append(
        f"Tokens: {usage.get('input', 0)} in / {usage.get('output', 0)} out"
        f" over {len(usage.get('calls', []))} calls"
    )
    lines.append(f"Elapsed: {result.elapsed_seconds:.1f}s")
    console.print(Panel("\n".join(lines), title="DONE"))


@app.command()
def render(
    file: Path = typer.Argument(help="Markdown resume to render"),
    output: Path = typer.Option(None, "--output", "-o", help="PDF path (default: alongside the Markdown)"),
    title: str = typer.Option("Tailored Resume", "--title", help="Document title"),
    config_path: Path = typer.Option(None, "--config", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Render an existing Markdown resume to HTML and PDF without calling Gemini."""
    _setup_logging(verbose)
    if not file.exists():
        err_console.print(f"[red]File not found: {file}[/red]")
        raise typer.Exit(EXIT_FAILURE)

    # Rendering needs no API key, so only the YAML part of the config applies
    try:
        config = load_config(config_path, require_api_key=False)
    except ConfigError as e:
        err_console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(e.exit_code)

    renderer = PdfRenderer.from_config(config.render)
    pdf_path = output or file.with_suffix(".pdf")
    try:
        asyncio.run(renderer.render(file.read_text(encoding="utf-8"), pdf_path, title=title))
    except ResumeForgeError as e:
        err_console.print(f"[red]ERROR: {e}[/red]")
        raise typer.Exit(e.exit_code)
    console.print(f"[green]PDF saved: {pdf_path}[/green]")


if __name__ == "__main__":
    app()
