"""Main pipeline orchestrator: extract → tailor → critique → revise → render."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from resume_forge.clients.gemini_client import GeminiClient
from resume_forge.errors import ResumeNotFoundError
from resume_forge.export.pdf_renderer import PdfRenderer
from resume_forge.models.critique import CritiqueResult
from resume_forge.models.job import JobPosting
from resume_forge.parsers.resume_parser import parse_resume
from resume_forge.pipeline import artifacts
from resume_forge.pipeline.artifacts import ArtifactStore
from resume_forge.pipeline.recruiter_reviewer import RecruiterReviewer
from resume_forge.pipeline.resume_writer import ResumeWriter

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    EXTRACT_TEXT = "extract_text"
    TAILOR_DRAFT = "tailor_draft"
    CRITIQUE_GAPS = "critique_gaps"
    REVISE_DRAFT = "revise_draft"
    RENDER_PDF = "render_pdf"
    DONE = "done"


@dataclass
class PipelineResult:
    """Everything a successful run produced."""

    final_markdown: str
    critique: CritiqueResult
    artifacts: dict[str, Path]
    token_usage: dict = field(default_factory=dict)
    elapsed_seconds: float = 0.0
    metadata: dict = field(default_factory=dict)


class PipelineOrchestrator:
    """Runs the four-stage tailoring pipeline strictly in sequence.

    Each stage writes its artifact before the next one starts. Any failure
    aborts the remaining stages, leaves an ``error.txt`` artifact and
    propagates the exception.
    """

    def __init__(
        self,
        llm: GeminiClient,
        renderer: PdfRenderer,
        store: ArtifactStore,
        *,
        tailor_temperature: float = 0.2,
        critique_temperature: float = 0.2,
        revise_temperature: float = 0.2,
        max_output_tokens: int | None = None,
        document_title: str = "Tailored Resume",
    ):
        self.llm = llm
        self.renderer = renderer
        self.store = store
        self.writer = ResumeWriter(
            llm,
            tailor_temperature=tailor_temperature,
            revise_temperature=revise_temperature,
            max_output_tokens=max_output_tokens,
        )
        self.reviewer = RecruiterReviewer(
            llm, temperature=critique_temperature, max_output_tokens=max_output_tokens
        )
        self.document_title = document_title

    @classmethod
    def from_config(
        cls,
        llm: GeminiClient,
        config,
        *,
        output_dir: str | Path | None = None,
    ) -> PipelineOrchestrator:
        store = ArtifactStore(output_dir or config.pipeline.resolved_output_dir)
        return cls(
            llm,
            PdfRenderer.from_config(config.render),
            store,
            tailor_temperature=config.gemini.tailor_temperature,
            critique_temperature=config.gemini.critique_temperature,
            revise_temperature=config.gemini.revise_temperature,
            max_output_tokens=config.gemini.max_output_tokens,
            document_title=config.pipeline.document_title,
        )

    async def run(
        self,
        resume_path: str | Path,
        job: JobPosting,
        *,
        max_iterations: int = 1,
        on_phase: Callable[[Stage, str], None] | None = None,
    ) -> PipelineResult:
        """Run the full pipeline.

        Args:
            resume_path: Source resume (DOCX/PDF/TXT/MD).
            job: Target job title, description and company.
            max_iterations: Recorded in the result metadata only; the
                pipeline always makes exactly one tailor/critique/revise pass.
            on_phase: Optional callback(stage, detail) for progress.
        """
        start = time.monotonic()
        resume_path = Path(resume_path)
        stage = Stage.EXTRACT_TEXT

        def _enter(next_stage: Stage, detail: str) -> None:
            nonlocal stage
            stage = next_stage
            logger.info(detail)
            if on_phase:
                on_phase(next_stage, detail)

        self.store.clear_error()
        try:
            if not resume_path.is_file():
                raise ResumeNotFoundError(resume_path)
            self.store.ensure_dir()

            _enter(Stage.EXTRACT_TEXT, "Extracting resume text...")
            resume_text = parse_resume(resume_path)

            _enter(Stage.TAILOR_DRAFT, "Stage 1: Tailoring resume...")
            tailored = await self.writer.tailor(resume_text, job)
            self.store.write_text(artifacts.TAILORED_DRAFT, tailored)

            _enter(Stage.CRITIQUE_GAPS, "Stage 2: Recruiter review...")
            critique = await self.reviewer.review(tailored, job)
            gaps_text = critique.as_prompt_text()
            self.store.write_text(artifacts.GAP_ANALYSIS, gaps_text)

            _enter(Stage.REVISE_DRAFT, "Stage 3: Fixing resume...")
            final = await self.writer.revise(tailored, gaps_text)
            self.store.write_text(artifacts.FINAL_DRAFT, final)

            _enter(Stage.RENDER_PDF, "Stage 4: Rendering PDF...")
            await self.renderer.render(
                final,
                self.store.path(artifacts.FINAL_PDF),
                title=self.document_title,
                html_path=self.store.path(artifacts.RENDERED_HTML),
            )
        except Exception as e:
            logger.error("Pipeline failed at %s: %s", stage.value, e)
            self.store.write_error(f"Stage: {stage.value}\n{type(e).__name__}: {e}")
            raise

        elapsed = time.monotonic() - start
        _enter(Stage.DONE, f"Done in {elapsed:.1f}s. Check {self.store.output_dir}/")

        return PipelineResult(
            final_markdown=final,
            critique=critique,
            artifacts={
                name: self.store.path(name)
                for name in (
                    artifacts.TAILORED_DRAFT,
                    artifacts.GAP_ANALYSIS,
                    artifacts.FINAL_DRAFT,
                    artifacts.RENDERED_HTML,
                    artifacts.FINAL_PDF,
                )
            },
            token_usage=self.llm.get_token_summary(),
            elapsed_seconds=elapsed,
            metadata={"max_iterations": max_iterations, "gaps_parsed": critique.parsed},
        )
