"""Certificate rendering using fpdf2."""

from __future__ import annotations

import re
import unicodedata
from datetime import date
from pathlib import Path
from urllib.parse import quote

import structlog
from fpdf import FPDF

logger = structlog.get_logger()

_ORANGE = (234, 120, 35)
_NAVY = (28, 48, 92)
_GREY = (90, 90, 90)

UNICODE_FAMILY = "AcademySans"
_CORE_FAMILY = "Helvetica"


def _safe(text: str) -> str:
    """Replace unicode chars that latin-1 Helvetica can't handle."""
    text = (
        text
        .replace("\u2014", "-")   # em-dash
        .replace("\u2013", "-")   # en-dash
        .replace("\u2018", "'")
        .replace("\u2019", "'")
        .replace("\u201c", '"')
        .replace("\u201d", '"')
        .replace("\u2026", "...")
    )
    return text.encode("latin-1", "replace").decode("latin-1")


def _font_file(path: str | None) -> str | None:
    return path if path and Path(path).is_file() else None


def _register_fonts(pdf: FPDF, font_path: str | None, bold_font_path: str | None) -> str:
    """Register the Unicode TTF pair and turn on shaping; return the family to draw with.

    Without a readable regular font the core Helvetica family is used and
    text goes through ``_safe``.
    """
    regular = _font_file(font_path)
    if regular is None:
        logger.warning("certificate_font_missing", font_path=font_path)
        return _CORE_FAMILY

    bold = _font_file(bold_font_path) or regular
    pdf.add_font(UNICODE_FAMILY, "", regular)
    pdf.add_font(UNICODE_FAMILY, "B", bold)
    pdf.add_font(UNICODE_FAMILY, "I", regular)
    # Joins Arabic letters and lays out right-to-left runs.
    pdf.set_text_shaping(True)
    return UNICODE_FAMILY


def certificate_filename(student_name: str, course_name: str) -> str:
    """``Student_Name_Course_Name_Certificate.pdf``; letters of any script are kept."""
    def part(value: str, fallback: str) -> str:
        cleaned = re.sub(r"[^\w-]", "", re.sub(r"\s+", "_", value.strip()))
        cleaned = re.sub(r"_+", "_", cleaned).strip("_")
        return cleaned or fallback

    return f"{part(student_name, 'certificate')}_{part(course_name, 'course')}_Certificate.pdf"


def content_disposition(filename: str) -> str:
    """``attachment`` header value with an ASCII ``filename`` and an RFC 5987 ``filename*``."""
    ascii_name = unicodedata.normalize("NFKD", filename).encode("ascii", "ignore").decode("ascii")
    ascii_name = re.sub(r"_+", "_", ascii_name).strip("_")
    if ascii_name in ("", ".pdf"):
        ascii_name = "certificate.pdf"
    if ascii_name == filename:
        return f'attachment; filename="{filename}"'
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


def render_certificate(
    academy_name: str,
    student_name: str,
    course_name: str,
    certificate_text: str,
    certificate_date: date,
    font_path: str | None = None,
    bold_font_path: str | None = None,
) -> bytes:
    """Render a one-page landscape A4 certificate and return the PDF bytes."""
    pdf = FPDF(orientation="L", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=False)
    pdf.add_page()
    family = _register_fonts(pdf, font_path, bold_font_path)

    def text(value: str) -> str:
        return value if family == UNICODE_FAMILY else _safe(value)

    # Double frame
    pdf.set_draw_color(*_ORANGE)
    pdf.set_line_width(2)
    pdf.rect(10, 10, pdf.w - 20, pdf.h - 20)
    pdf.set_draw_color(*_NAVY)
    pdf.set_line_width(0.5)
    pdf.rect(15, 15, pdf.w - 30, pdf.h - 30)

    pdf.set_y(30)
    pdf.set_font(family, "B", 14)
    pdf.set_text_color(*_NAVY)
    pdf.cell(0, 8, text(academy_name.upper()), align="C", new_x="LMARGIN", new_y="NEXT")

    pdf.ln(6)
    pdf.set_font(family, "B", 36)
    pdf.set_text_color(*_ORANGE)
    pdf.cell(0, 16, "Certificate of Completion", align="C", new_x="LMARGIN", new_y="NEXT")

    pdf.ln(8)
    pdf.set_font(family, "", 13)
    pdf.set_text_color(*_GREY)
    pdf.cell(0, 8, "This certificate is proudly presented to", align="C", new_x="LMARGIN", new_y="NEXT")

    pdf.ln(2)
    pdf.set_font(family, "B", 28)
    pdf.set_text_color(*_NAVY)
    pdf.cell(0, 14, text(student_name), align="C", new_x="LMARGIN", new_y="NEXT")

    pdf.ln(6)
    pdf.set_font(family, "", 13)
    pdf.set_text_color(*_GREY)
    pdf.set_x(40)
    pdf.multi_cell(pdf.w - 80, 7, text(certificate_text), align="C", new_x="LMARGIN", new_y="NEXT")

    pdf.ln(10)
    pdf.set_font(family, "I", 11)
    pdf.cell(0, 6, text(f"Course: {course_name}"), align="C", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(0, 6, f"Awarded on: {certificate_date.strftime('%d %B %Y')}", align="C", new_x="LMARGIN", new_y="NEXT")

    return bytes(pdf.output())
