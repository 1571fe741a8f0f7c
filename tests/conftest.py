"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from resume_forge.clients.gemini_client import GeminiClient, LLMResponse
from resume_forge.clients.response_shapes import ResponseShape
from resume_forge.models.job import JobPosting

SAMPLE_GAPS_JSON = """{
  "gaps": [
    {"issue": "No Kubernetes experience listed", "importance": "high", "fix": "Mention Docker deployments"},
    {"issue": "Summary is generic", "importance": "medium", "fix": "Lead with backend focus"}
  ]
}"""

SAMPLE_TAILORED_MD = """# Jane Doe

## Summary
Backend engineer with 5 years of Python experience.

## Experience
- Built REST APIs serving 1M requests/day
"""

SAMPLE_FINAL_MD = """# Jane Doe

## Summary
Backend engineer with 5 years of Python and Docker experience.

## Experience
- Built REST APIs serving 1M requests/day
- Shipped containerised services with Docker
"""


def _llm_response(text: str) -> LLMResponse:
    return LLMResponse(
        text=text,
        shape=ResponseShape.CANDIDATE_CONTENT_PARTS,
        input_tokens=10,
        output_tokens=20,
    )


@pytest.fixture
def make_llm_response():
    """Factory building a successful LLMResponse around the given text."""
    return _llm_response


@pytest.fixture
def sample_tailored_md() -> str:
    return SAMPLE_TAILORED_MD


@pytest.fixture
def sample_final_md() -> str:
    return SAMPLE_FINAL_MD


@pytest.fixture
def sample_resume_text() -> str:
    return "Jane Doe\nBackend engineer, Python, 5 years"


@pytest.fixture
def sample_job() -> JobPosting:
    return JobPosting(
        title="Backend Engineer",
        description="Build Python services on Kubernetes. Own REST APIs.",
        company="Acme",
    )


@pytest.fixture
def resume_file(tmp_path, sample_resume_text) -> Path:
    path = tmp_path / "resume.txt"
    path.write_text(sample_resume_text, encoding="utf-8")
    return path


@pytest.fixture
def mock_llm_client() -> GeminiClient:
    """A GeminiClient mock answering tailor → critique → revise in order."""
    client = AsyncMock(spec=GeminiClient)
    client.generate = AsyncMock(
        side_effect=[
            _llm_response(SAMPLE_TAILORED_MD),
            _llm_response(SAMPLE_GAPS_JSON),
            _llm_response(SAMPLE_FINAL_MD),
        ]
    )
    client.get_token_summary.return_value = {
        "input": 30,
        "output": 60,
        "calls": [("gemini-2.5-flash", 10, 20)] * 3,
    }
    return client


class FakePage:
    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.content: str | None = None
        self.wait_until: str | None = None
        self.pdf_kwargs: dict = {}

    async def set_content(self, html, wait_until=None):
        if self.fail_on == "set_content":
            raise RuntimeError("set_content failed")
        self.content = html
        self.wait_until = wait_until

    async def pdf(self, path=None, **kwargs):
        if self.fail_on == "pdf":
            raise RuntimeError("pdf export failed")
        self.pdf_kwargs = kwargs
        Path(path).write_bytes(b"%PDF-1.4\n% fake pdf for tests\n%%EOF\n")


class FakeBrowser:
    def __init__(self, page: FakePage):
        self.page = page
        self.closed = False

    async def new_page(self):
        return self.page

    async def close(self):
        self.closed = True


class FakeChromium:
    def __init__(self, browser: FakeBrowser, fail_launch: bool = False):
        self.browser = browser
        self.fail_launch = fail_launch
        self.launch_kwargs: dict = {}

    async def launch(self, **kwargs):
        if self.fail_launch:
            raise RuntimeError("browser launch failed")
        self.launch_kwargs = kwargs
        return self.browser


class FakePlaywright:
    def __init__(self, chromium: FakeChromium):
        self.chromium = chromium

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False


@pytest.fixture
def fake_browser(monkeypatch):
    """Patch Playwright with an in-memory browser; returns a factory.

    ``fake_browser(fail_on="pdf")`` makes the PDF export raise,
    ``fake_browser(fail_launch=True)`` makes the launch raise.
    """

    def _install(fail_on: str | None = None, fail_launch: bool = False) -> FakeBrowser:
        browser = FakeBrowser(FakePage(fail_on=fail_on))
        chromium = FakeChromium(browser, fail_launch=fail_launch)
        browser.chromium = chromium
        monkeypatch.setattr(
            "resume_forge.export.pdf_renderer.async_playwright",
            lambda: FakePlaywright(chromium),
        )
        return browser

    return _install
