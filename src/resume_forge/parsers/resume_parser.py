import logging
import re
from pathlib import Path

from resume_forge.errors import ExtractionError

logger = logging.getLogger(__name__)


def parse_resume(file_path: str | Path) -> str:
    """Parse a resume file (DOCX, PDF, TXT, MD) and return clean plain text.

    Carriage returns are dropped and surrounding whitespace trimmed.
    Raises ExtractionError when the file is unreadable or not a valid
    document of its format.
    """
    path = Path(file_path)
    suffix = path.suffix.lower()
    logger.debug("Extracting text from %s", path)
    try:
        if suffix == ".docx":
            text = _parse_docx(path)
        elif suffix == ".pdf":
            text = _parse_pdf(path)
        elif suffix in (".txt", ".md"):
            text = clean_markdown(path.read_text(encoding="utf-8"))
        else:
            raise ExtractionError(f"Unsupported file format: {path.suffix or '(none)'}")
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Could not extract text from {path}: {e}") from e
    return normalize_text(text)


def normalize_text(text: str) -> str:
    return text.replace("\r", "").strip()


def clean_markdown(text: str) -> str:
    """Clean word-processor export artifacts from plain text resumes.

    Handles: unicode artifacts, inconsistent bullet styles, runs of spaces
    and excessive blank lines.
    """
    # BOM, zero-width spaces, soft hyphens
    text = text.lstrip("\ufeff")
    text = re.sub(r"[\u200b\u200c\u200d\u00ad\u2060\ufeff]", "", text)

    # ●, •, ◦, ◆, ■, ▪, ★, ○ → -
    text = re.sub(r"^(\s*)[●•◦◆■▪★○]\s*", r"\1- ", text, flags=re.MULTILINE)

    lines = []
    for line in text.splitlines():
        stripped = line.lstrip()
        indent = line[: len(line) - len(stripped)].replace("\t", "    ")
        stripped = re.sub(r"[ \t]{2,}", " ", stripped).rstrip()
        lines.append(f"{indent}{stripped}" if stripped else "")
    text = "\n".join(lines)

    return re.sub(r"\n{3,}", "\n\n", text)


def _parse_docx(path: Path) -> str:
    """Body paragraphs and table rows, in document order."""
    from docx import Document
    from docx.oxml.ns import qn
    from docx.table import Table
    from docx.text.paragraph import Paragraph

    doc = Document(str(path))
    parts = []
    for child in doc.element.body.iterchildren():
        if child.tag == qn("w:p"):
            text = Paragraph(child, doc).text
            if text.strip():
                parts.append(text)
        elif child.tag == qn("w:tbl"):
            for row in Table(child, doc).rows:
                cells = []
                seen = set()
                for cell in row.cells:
                    # merged cells repeat the same underlying element
                    if cell._tc in seen:
                        continue
                    seen.add(cell._tc)
                    if cell.text.strip():
                        cells.append(cell.text.strip())
                if cells:
                    parts.append(" | ".join(cells))
    return "\n".join(parts)


def _parse_pdf(path: Path) -> str:
    import fitz  # pymupdf

    doc = fitz.open(str(path))
    try:
        return "\n".join(page.get_text() for page in doc)
    finally:
        doc.close()
