"""Critique stage: a recruiter-style gap analysis of the tailored draft."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from resume_forge.clients.gemini_client import GeminiClient, GenerationOptions
from resume_forge.models.critique import CritiqueResult, GapAnalysis
from resume_forge.models.job import JobPosting
from resume_forge.pipeline.prompts import build_critique_prompt
from resume_forge.utils.json_parser import extract_json

logger = logging.getLogger(__name__)


def parse_critique(text: str) -> CritiqueResult:
    """Best-effort parse of the gap analysis; falls back to the raw text."""
    try:
        data = extract_json(text)
    except ValueError:
        logger.warning("Gap analysis is not JSON; passing raw text to revision")
        return CritiqueResult(raw_text=text)

    if isinstance(data, list):
        data = {"gaps": data}
    try:
        analysis = GapAnalysis.model_validate(data)
    except ValidationError:
        logger.warning("Gap analysis JSON has unexpected shape; passing raw text to revision")
        return CritiqueResult(raw_text=text)
    return CritiqueResult(raw_text=text, analysis=analysis)


class RecruiterReviewer:
    def __init__(
        self,
        llm: GeminiClient,
        *,
        temperature: float = 0.2,
        max_output_tokens: int | None = None,
    ):
        self.llm = llm
        self.options = GenerationOptions(
            temperature=temperature, max_output_tokens=max_output_tokens
        )

    async def review(self, tailored_resume: str, job: JobPosting) -> CritiqueResult:
        logger.info("Reviewing tailored resume as a recruiter at %s", job.company)
        response = await self.llm.generate(
            build_critique_prompt(tailored_resume, job), self.options
        )
        result = parse_critique(response.text)
        if result.parsed:
            logger.info("Recruiter found %d gaps", len(result.analysis.gaps))
        return result
