"""
HTML to PDF rendering backends.

A backend is not required to be reentrant or thread-safe: RenderWorker
calls startup(), every render and teardown() from one dedicated thread.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import structlog

from ..errors import RenderError

logger = structlog.get_logger()

_MM_TO_PT = 72.0 / 25.4


@dataclass(frozen=True)
class RenderOptions:
    """Page and rendering settings, margins in millimetres."""
    page_size: str = "A4"
    orientation: str = "Portrait"
    dpi: int = 96
    margin_top: int = 10
    margin_bottom: int = 45
    margin_left: int = 5
    margin_right: int = 5
    zoom: float = 1.2
    minimum_font_size: int = 11
    disable_smart_shrinking: bool = True
    enable_local_file_access: bool = True
    grayscale: bool = False
    low_quality: bool = False


class Renderer(ABC):
    """Converts a populated HTML file into a PDF file."""

    def startup(self):
        """One-time engine initialization, called on the render thread."""

    def teardown(self):
        """Engine shutdown, called on the render thread."""

    @abstractmethod
    def render_html_file_to_pdf(
        self,
        html_path: Union[str, Path],
        pdf_path: Union[str, Path],
        options: RenderOptions,
    ) -> bool:
        """
        Render html_path into pdf_path.

        Returns:
            True on success

        Raises:
            RenderError: On engine failures the backend wants to describe
        """


class PyMuPdfRenderer(Renderer):
    """
    Renders HTML with PyMuPDF's Story layout engine.
    """

    def __init__(self):
        self._fitz = None

    def startup(self):
        import fitz  # PyMuPDF

        self._fitz = fitz
        logger.info("pymupdf_renderer_started", version=fitz.VersionBind)

    def teardown(self):
        self._fitz = None

    def _page_rect(self, options: RenderOptions):
        fitz = self._fitz
        paper = options.page_size.lower()
        if options.orientation.lower() == "landscape":
            paper = f"{paper}-l"
        return fitz.paper_rect(paper)

    def render_html_file_to_pdf(self, html_path, pdf_path, options):
        if self._fitz is None:
            raise RenderError("Renderer used before startup()")

        fitz = self._fitz
        source = Path(html_path)
        try:
            html = source.read_text(encoding='utf-8')
        except OSError as e:
            raise RenderError(f"Cannot read HTML {source}: {e}")

        css = f"* {{ font-size: {options.minimum_font_size * options.zoom:.1f}px; }}"
        archive = str(source.parent) if options.enable_local_file_access else None

        mediabox = self._page_rect(options)
        where = mediabox + (
            options.margin_left * _MM_TO_PT,
            options.margin_top * _MM_TO_PT,
            -options.margin_right * _MM_TO_PT,
            -options.margin_bottom * _MM_TO_PT,
        )

        story = fitz.Story(html=html, user_css=css, archive=archive)
        writer = fitz.DocumentWriter(str(pdf_path))
        try:
            more = True
            while more:
                device = writer.begin_page(mediabox)
                more, _ = story.place(where)
                story.draw(device)
                writer.end_page()
        finally:
            writer.close()

        return Path(pdf_path).is_file() and Path(pdf_path).stat().st_size > 0
