"""Tailor and revise stages: turn resume text into Markdown drafts."""

from __future__ import annotations

import logging

from resume_forge.clients.gemini_client import GeminiClient, GenerationOptions
from resume_forge.models.job import JobPosting
from resume_forge.pipeline.prompts import build_revision_prompt, build_tailor_prompt
from resume_forge.utils.json_parser import strip_code_fences

logger = logging.getLogger(__name__)


def unwrap_markdown(text: str) -> str:
    """Drop a ```markdown fence the model sometimes wraps the whole answer in."""
    text = text.strip()
    if text.startswith("```"):
        return strip_code_fences(text)
    return text


class ResumeWriter:
    def __init__(
        self,
        llm: GeminiClient,
        *,
        tailor_temperature: float = 0.2,
        revise_temperature: float = 0.2,
        max_output_tokens: int | None = None,
    ):
        self.llm = llm
        self.tailor_options = GenerationOptions(
            temperature=tailor_temperature, max_output_tokens=max_output_tokens
        )
        self.revise_options = GenerationOptions(
            temperature=revise_temperature, max_output_tokens=max_output_tokens
        )

    async def tailor(self, resume_text: str, job: JobPosting) -> str:
        """Stage 1: first tailored Markdown draft."""
        logger.info("Tailoring resume for %s at %s", job.title, job.company)
        response = await self.llm.generate(
            build_tailor_prompt(resume_text, job), self.tailor_options
        )
        return unwrap_markdown(response.text)

    async def revise(self, tailored_resume: str, gaps_text: str) -> str:
        """Stage 3: final draft with the recruiter's gaps addressed."""
        logger.info("Revising resume against gap analysis")
        response = await self.llm.generate(
            build_revision_prompt(tailored_resume, gaps_text), self.revise_options
        )
        return unwrap_markdown(response.text)
