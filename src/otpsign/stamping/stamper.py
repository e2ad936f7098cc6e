"""
Visible signature stamp.

The stamp is drawn with reportlab onto an overlay page sized like each
target page, then merged onto that page with pypdf. Every page receives
the same stamp in its bottom-left corner.
"""

from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import structlog
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from reportlab.lib.colors import Color
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from ..models import StampPayload

logger = structlog.get_logger()

STAMP_X = 30
STAMP_Y = 15
STAMP_WIDTH = 254
CORNER_RADIUS = 5
LINE_HEIGHT = 10
PADDING_TOP = 10
PADDING_BOTTOM = 5
TEXT_INDENT = 5
TEXT_FONT_SIZE = 8
HASH_FONT_SIZE = 7
BORDER_WIDTH = 1.5
BORDER_COLOR = Color(0.0, 0.0, 1.0)

STAMP_HEADING = "Signed with a simple electronic signature"

_DEFAULT_FONT = "Helvetica"
_DEFAULT_BOLD_FONT = "Helvetica-Bold"
_CUSTOM_FONT = "OtpSignStamp"
_CUSTOM_BOLD_FONT = "OtpSignStamp-Bold"


class Stamper(ABC):
    """Applies a visible signature stamp to a PDF."""

    @abstractmethod
    def apply_stamp(
        self,
        input_pdf: Union[str, Path],
        output_pdf: Union[str, Path],
        payload: StampPayload,
    ) -> bool:
        """
        Write a stamped copy of input_pdf to output_pdf.

        Returns:
            True on success, False if the document cannot be stamped
        """


def build_stamp_lines(payload: StampPayload) -> List[Tuple[str, bool]]:
    """
    Compose the stamp text.

    Returns:
        (text, is_heading) pairs, top to bottom; the last line is the hash
    """
    identity = payload.identity
    lines = [
        (STAMP_HEADING, True),
        (identity.full_name, False),
    ]

    if identity.passport_series and identity.passport_number:
        lines.append((
            f"Passport: series {identity.passport_series} number {identity.passport_number}",
            False,
        ))
    if identity.passport_issued_by:
        lines.append((f"Issued by: {identity.passport_issued_by}", False))
    if identity.passport_issued_date and identity.passport_unite_code:
        lines.append((
            f"{identity.passport_issued_date}, subdivision code {identity.passport_unite_code}",
            False,
        ))

    lines.append((f"Phone number: {identity.phone_number}", False))
    if identity.email:
        lines.append((f"Email: {identity.email}", False))

    lines.append((f"Signing date and time: {payload.signing_time}", False))
    lines.append((
        f"SMS code {payload.confirmation_code} and document hash (SHA-256)",
        False,
    ))
    lines.append((payload.document_hash, False))
    return lines


def stamp_height(line_count: int) -> float:
    return PADDING_TOP + line_count * LINE_HEIGHT + PADDING_BOTTOM


class PdfStamper(Stamper):
    """
    reportlab + pypdf stamper.
    """

    def __init__(self, fonts_dir: Optional[Union[str, Path]] = None):
        """
        Initialize stamper.

        Args:
            fonts_dir: Directory with a TrueType font for non-Latin text;
                the standard Helvetica faces are used when absent
        """
        self.font_name = _DEFAULT_FONT
        self.bold_font_name = _DEFAULT_BOLD_FONT
        if fonts_dir:
            self._register_fonts(Path(fonts_dir))

    def _register_fonts(self, fonts_dir: Path):
        if not fonts_dir.is_dir():
            logger.warning("stamp_fonts_dir_missing", fonts_dir=str(fonts_dir))
            return

        candidates = sorted(fonts_dir.glob("*.ttf"))
        regular = [p for p in candidates if "bold" not in p.stem.lower()]
        bold = [p for p in candidates if "bold" in p.stem.lower()]
        if not regular:
            logger.warning("stamp_font_not_found", fonts_dir=str(fonts_dir))
            return

        try:
            pdfmetrics.registerFont(TTFont(_CUSTOM_FONT, str(regular[0])))
            self.font_name = _CUSTOM_FONT
            self.bold_font_name = _CUSTOM_FONT
            if bold:
                pdfmetrics.registerFont(TTFont(_CUSTOM_BOLD_FONT, str(bold[0])))
                self.bold_font_name = _CUSTOM_BOLD_FONT
        except Exception as e:
            # reportlab raises TTFError and plain exceptions for bad font files
            logger.warning("stamp_font_register_failed", font=str(regular[0]), error=str(e))
            self.font_name = _DEFAULT_FONT
            self.bold_font_name = _DEFAULT_BOLD_FONT

    def apply_stamp(self, input_pdf, output_pdf, payload):
        try:
            reader = PdfReader(str(input_pdf))
            if len(reader.pages) == 0:
                logger.warning("stamp_empty_document", input_pdf=str(input_pdf))
                return False

            lines = build_stamp_lines(payload)
            overlays: Dict[Tuple[float, float], bytes] = {}
            writer = PdfWriter(clone_from=reader)

            for page in writer.pages:
                width = float(page.mediabox.width)
                height = float(page.mediabox.height)
                key = (round(width, 1), round(height, 1))
                if key not in overlays:
                    overlays[key] = self._make_overlay(width, height, lines)
                overlay_page = PdfReader(BytesIO(overlays[key])).pages[0]
                page.merge_page(overlay_page)

            writer.add_metadata(self._metadata(payload))
            with open(output_pdf, "wb") as fh:
                writer.write(fh)
            return True
        except (OSError, PyPdfError, ValueError) as e:
            logger.error("stamp_failed", input_pdf=str(input_pdf), error=str(e))
            return False

    def _make_overlay(self, width: float, height: float, lines: List[Tuple[str, bool]]) -> bytes:
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height))

        box_height = stamp_height(len(lines))
        c.setStrokeColor(BORDER_COLOR)
        c.setLineWidth(BORDER_WIDTH)
        c.roundRect(STAMP_X, STAMP_Y, STAMP_WIDTH, box_height, CORNER_RADIUS, stroke=1, fill=0)

        text_x = STAMP_X + TEXT_INDENT
        text_y = STAMP_Y + box_height - PADDING_TOP
        last = len(lines) - 1
        for index, (text, heading) in enumerate(lines):
            if heading:
                c.setFont(self.bold_font_name, TEXT_FONT_SIZE)
            elif index == last:
                c.setFont(self.font_name, HASH_FONT_SIZE)
            else:
                c.setFont(self.font_name, TEXT_FONT_SIZE)
            c.drawString(text_x, text_y, text)
            text_y -= LINE_HEIGHT

        c.showPage()
        c.save()
        return buf.getvalue()

    @staticmethod
    def _metadata(payload: StampPayload) -> Dict[str, str]:
        identity = payload.identity
        return {
            "/Signer": identity.full_name,
            "/SignerPhone": identity.phone_number,
            "/SigningTime": payload.signing_time,
            "/DocumentHash": payload.document_hash,
            "/HashAlgorithm": "SHA-256",
        }
