"""Pydantic model for the job a resume is tailored to."""

from __future__ import annotations

from pydantic import BaseModel


class JobPosting(BaseModel):
    title: str = "Software Engineer"
    description: str = ""
    company: str = "Company"
