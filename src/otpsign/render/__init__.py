"""HTML to PDF rendering on a dedicated worker thread."""

from .backend import PyMuPdfRenderer, Renderer, RenderOptions
from .worker import RenderStats, RenderWorker

__all__ = [
    'PyMuPdfRenderer',
    'Renderer',
    'RenderOptions',
    'RenderStats',
    'RenderWorker',
]
