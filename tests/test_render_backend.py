"""
Tests for the PyMuPDF rendering backend.
"""

import os
import tempfile

import pytest
from pypdf import PdfReader

from otpsign.errors import RenderError
from otpsign.render import PyMuPdfRenderer, RenderOptions, RenderWorker


def _html(directory, body):
    path = os.path.join(directory, "agreement.html")
    with open(path, 'w', encoding='utf-8') as fh:
        fh.write(f"<html><body>{body}</body></html>")
    return path


class TestPyMuPdfRenderer:

    def test_render_through_worker(self):
        """Test that the real engine renders HTML into a readable PDF."""
        with tempfile.TemporaryDirectory() as tmpdir:
            html = _html(tmpdir, "<h1>Agreement</h1><p>Signer: Ivan Ivanovich Ivanov</p>")
            pdf = os.path.join(tmpdir, "out.pdf")

            with RenderWorker(PyMuPdfRenderer()) as worker:
                assert worker.convert_sync(html, pdf)

            reader = PdfReader(pdf)
            assert len(reader.pages) >= 1
            assert "Ivan Ivanovich Ivanov" in reader.pages[0].extract_text()

    def test_long_document_spans_pages(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            html = _html(tmpdir, "".join(f"<p>Clause {i}</p>" for i in range(300)))
            pdf = os.path.join(tmpdir, "out.pdf")

            with RenderWorker(PyMuPdfRenderer()) as worker:
                assert worker.convert_sync(html, pdf)

            assert len(PdfReader(pdf).pages) > 1

    def test_landscape(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            html = _html(tmpdir, "<p>wide</p>")
            pdf = os.path.join(tmpdir, "out.pdf")

            renderer = PyMuPdfRenderer()
            renderer.startup()
            try:
                options = RenderOptions(orientation="Landscape")
                assert renderer.render_html_file_to_pdf(html, pdf, options)
            finally:
                renderer.teardown()

            box = PdfReader(pdf).pages[0].mediabox
            assert float(box.width) > float(box.height)

    def test_requires_startup(self):
        with pytest.raises(RenderError):
            PyMuPdfRenderer().render_html_file_to_pdf("in.html", "out.pdf", RenderOptions())

    def test_missing_html_reported_as_failed_task(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with RenderWorker(PyMuPdfRenderer()) as worker:
                assert not worker.convert_sync(
                    os.path.join(tmpdir, "missing.html"), os.path.join(tmpdir, "out.pdf")
                )
                assert "Cannot read HTML" in worker.get_stats().last_error
