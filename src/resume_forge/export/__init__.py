"""PDF export module for resume-forge."""
from resume_forge.export.pdf_renderer import DEFAULT_TEMPLATE, PACKAGED_TEMPLATE, PdfRenderer

__all__ = ["DEFAULT_TEMPLATE", "PACKAGED_TEMPLATE", "PdfRenderer"]
