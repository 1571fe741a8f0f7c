"""Prompt builders for the tailor, critique and revise stages.

All builders are pure string formatting: the same inputs always give the
same prompt.
"""

from __future__ import annotations

from resume_forge.models.critique import MAX_GAPS
from resume_forge.models.job import JobPosting

SECTION_HEADINGS = ("Summary", "Skills", "Experience", "Projects", "Education")


def _headings() -> str:
    return "\n".join(f"## {h}" for h in SECTION_HEADINGS)


def build_tailor_prompt(resume_text: str, job: JobPosting) -> str:
    return f"""You are an expert resume writer. Tailor the following resume to the job role.

=== ORIGINAL RESUME ===
{resume_text}
=== END OF RESUME ===

Job title: {job.title}
Job description:
{job.description}

Create a resume in Markdown:
- Focus on measurable achievements
- Improve clarity
- Use ATS-friendly bullet points
- Keep it max 2 pages
- Use exactly these section headings, in this order (omit a section only if the original has no content for it):
{_headings()}
- Do not invent employers, titles, dates or degrees that are not in the original resume
- ONLY output the resume in Markdown.
"""


def build_critique_prompt(tailored_resume: str, job: JobPosting) -> str:
    return f"""You are a recruiter at {job.company}. Review the candidate's resume for the job: {job.title}.

Job description:
{job.description}

Candidate resume:
{tailored_resume}

List weaknesses or gaps as a single JSON object and nothing else:
{{
  "gaps": [
    {{"issue": "...", "importance": "high|medium|low", "fix": "..."}}
  ]
}}
Return at most {MAX_GAPS} gaps, most important first.
"""


def build_revision_prompt(tailored_resume: str, gaps: str) -> str:
    return f"""You are a senior resume expert. Improve the resume below using the gap analysis.

Resume:
{tailored_resume}

Gaps JSON:
{gaps}

Keep the same section headings. Only use facts present in the resume.
Return ONLY the final improved resume in Markdown.
"""
