from __future__ import annotations

import logging
from pathlib import Path

import markdown
from jinja2 import Environment, FileSystemLoader, Template
from markupsafe import Markup
from playwright.async_api import async_playwright

from resume_forge.errors import RenderError

logger = logging.getLogger(__name__)

PACKAGED_TEMPLATE = Path(__file__).parent / "resume_template.html"

# Used when the configured template file is missing
DEFAULT_TEMPLATE = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{{ title }}</title></head>
<body>{{ content }}</body>
</html>
"""


class PdfRenderer:
    """Markdown → HTML (Jinja2 template) → PDF (headless Chromium)."""

    def __init__(
        self,
        template_path: str | Path | None = None,
        *,
        page_format: str = "A4",
        margin: str = "12mm",
        markdown_extensions: tuple[str, ...] | list[str] = (),
    ):
        self.template_path = Path(template_path) if template_path else PACKAGED_TEMPLATE
        self.page_format = page_format
        self.margin = margin
        self.markdown_extensions = list(markdown_extensions)

    @classmethod
    def from_config(cls, render_config) -> PdfRenderer:
        return cls(
            render_config.resolved_template_path,
            page_format=render_config.page_format,
            margin=render_config.margin,
            markdown_extensions=render_config.markdown_extensions,
        )

    def _load_template(self) -> Template:
        if self.template_path.is_file():
            env = Environment(
                loader=FileSystemLoader(str(self.template_path.parent)),
                autoescape=True,
            )
            return env.get_template(self.template_path.name)
        logger.warning("Template %s not found, using built-in template", self.template_path)
        return Environment(autoescape=True).from_string(DEFAULT_TEMPLATE)

    def render_html(self, markdown_text: str, title: str = "Tailored Resume") -> str:
        """Convert Markdown to a full HTML document."""
        body = markdown.markdown(markdown_text, extensions=self.markdown_extensions)
        return self._load_template().render(title=title, content=Markup(body))

    async def render(
        self,
        markdown_text: str,
        output_path: str | Path,
        title: str = "Tailored Resume",
        *,
        html_path: str | Path | None = None,
    ) -> Path:
        """Write the filled HTML next to the PDF, then print it to ``output_path``."""
        output_path = Path(output_path)
        html_path = Path(html_path) if html_path else output_path.with_suffix(".html")
        html = self.render_html(markdown_text, title)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        html_path.parent.mkdir(parents=True, exist_ok=True)
        html_path.write_text(html, encoding="utf-8")
        logger.info("HTML written to %s", html_path)

        await self._html_to_pdf(html, output_path)
        logger.info("PDF written to %s", output_path)
        return output_path

    async def _html_to_pdf(self, html: str, output_path: Path) -> None:
        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=True, args=["--no-sandbox"])
                try:
                    page = await browser.new_page()
                    await page.set_content(html, wait_until="networkidle")
                    await page.pdf(
                        path=str(output_path),
                        format=self.page_format,
                        print_background=True,
                        margin={
                            "top": self.margin,
                            "right": self.margin,
                            "bottom": self.margin,
                            "left": self.margin,
                        },
                    )
                finally:
                    await browser.close()
        except Exception as e:
            raise RenderError(f"PDF rendering failed: {e}") from e
