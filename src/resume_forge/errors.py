"""Exception hierarchy for the resume-forge pipeline."""

from __future__ import annotations

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_RESUME_NOT_FOUND = 2


class ResumeForgeError(Exception):
    """Base class for all pipeline failures."""

    exit_code: int = EXIT_FAILURE


class ConfigError(ResumeForgeError, ValueError):
    """Missing or invalid configuration (raised before any stage runs)."""


class ResumeNotFoundError(ResumeForgeError):
    exit_code = EXIT_RESUME_NOT_FOUND

    def __init__(self, path):
        self.path = path
        super().__init__(f"Resume file not found: {path}")


class ExtractionError(ResumeForgeError):
    """The resume document could not be read or parsed."""


class GenerationError(ResumeForgeError):
    """Both the primary and the fallback generation attempts failed.

    Attributes:
        primary_body: Response body (or transport error) of the first attempt.
        fallback_body: Response body (or transport error) of the retry.
    """

    def __init__(self, primary_body: str, fallback_body: str):
        self.primary_body = primary_body
        self.fallback_body = fallback_body
        super().__init__(
            "Generation failed on both attempts.\n"
            f"Primary: {primary_body}\n"
            f"Fallback: {fallback_body}"
        )


class RenderError(ResumeForgeError):
    """The HTML could not be rendered to PDF."""
