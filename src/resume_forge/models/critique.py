"""Pydantic models for the recruiter critique stage."""

from __future__ import annotations

import json

from pydantic import BaseModel, field_validator

MAX_GAPS = 10


class GapItem(BaseModel):
    issue: str = ""
    importance: str = ""
    fix: str = ""

    @field_validator("issue", "importance", "fix", mode="before")
    @classmethod
    def _coerce_text(cls, value):
        # Models sometimes answer importance as a number
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class GapAnalysis(BaseModel):
    gaps: list[GapItem] = []

    @field_validator("gaps", mode="after")
    @classmethod
    def _cap_gaps(cls, gaps: list[GapItem]) -> list[GapItem]:
        return gaps[:MAX_GAPS]


class CritiqueResult(BaseModel):
    """Gap analysis as parsed JSON when possible, raw model text otherwise."""

    raw_text: str
    analysis: GapAnalysis | None = None

    @property
    def parsed(self) -> bool:
        return self.analysis is not None

    def as_prompt_text(self) -> str:
        if self.analysis is None:
            return self.raw_text
        return json.dumps(self.analysis.model_dump(), ensure_ascii=False, indent=2)
