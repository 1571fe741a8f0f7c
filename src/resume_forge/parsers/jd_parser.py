import re
from pathlib import Path


def parse_jd(text: str) -> str:
    """Clean and normalize job description text."""
    text = text.replace("\r", "")
    text = re.sub(r"\n{3,}", "\n\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(lines).strip()


def load_jd_file(file_path: str | Path) -> str:
    """Load a job description from a UTF-8 text file."""
    return parse_jd(Path(file_path).read_text(encoding="utf-8"))
