"""Data models for the resume forge pipeline."""

from resume_forge.models.critique import CritiqueResult, GapAnalysis, GapItem
from resume_forge.models.job import JobPosting

__all__ = [
    "CritiqueResult",
    "GapAnalysis",
    "GapItem",
    "JobPosting",
]
