"""Visible signature stamping."""

from .stamper import PdfStamper, Stamper, build_stamp_lines

__all__ = [
    'PdfStamper',
    'Stamper',
    'build_stamp_lines',
]
