"""Named output files written by each pipeline stage."""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

TAILORED_DRAFT = "tailored_stage1.md"
GAP_ANALYSIS = "recruiter_gaps.json"
FINAL_DRAFT = "tailored_final.md"
RENDERED_HTML = "rendered.html"
FINAL_PDF = "tailored_final.pdf"
ERROR_REPORT = "error.txt"


class ArtifactStore:
    """Writes artifacts into a single output directory, overwriting old runs."""

    def __init__(self, output_dir: str | Path):
        self.output_dir = Path(output_dir)

    def path(self, name: str) -> Path:
        return self.output_dir / name

    def ensure_dir(self) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir

    def write_text(self, name: str, content: str) -> Path:
        self.ensure_dir()
        path = self.path(name)
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s (%d chars)", path, len(content))
        return path

    def write_error(self, message: str) -> Path:
        return self.write_text(ERROR_REPORT, message.rstrip() + "\n")

    def clear_error(self) -> None:
        """Remove the error report left by a previous failed run."""
        self.path(ERROR_REPORT).unlink(missing_ok=True)
