"""Credential document rendering.

The issuance service hands a ``RenderPayload`` to a renderer and stores the
reference it returns. ``ReportLabRenderer`` produces the bilingual A4 PDF
with a QR code linking to the public verification page; tests swap in a
fake through the ``renderer=`` argument or ``EXAM_BOARD["RENDERER"]``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from io import BytesIO
from typing import List, Optional, Tuple

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils.module_loading import import_string
from reportlab.graphics.barcode import qr
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .conf import exam_board_setting
from .exceptions import RenderingFailure

__all__ = ["RenderPayload", "SubjectLine", "DocumentRenderer", "ReportLabRenderer", "get_renderer"]

logger = logging.getLogger(__name__)

ARABIC_FONT_NAME = "ExamBoardArabic"


@dataclass(frozen=True)
class SubjectLine:
    name: str
    arabic_name: str
    score: Decimal
    max_score: Decimal


@dataclass(frozen=True)
class RenderPayload:
    kind: str
    document_number: str
    verification_url: str
    student_name: str
    student_name_en: str
    index_number: str
    grade_level: int
    school_name: str
    school_name_ar: str
    exam_year: str
    hijri_year: Optional[str]
    total_score: Decimal
    max_score: Decimal
    percentage: Decimal
    final_grade: str
    final_grade_ar: str
    issued_on: str
    subjects: List[SubjectLine] = field(default_factory=list)


class DocumentRenderer:
    """Turns a payload into a stored document and returns its reference."""

    def render(self, payload: RenderPayload) -> str:
        raise NotImplementedError

    def delete(self, reference: str) -> None:
        """Remove a stored artifact after the issuing transaction rolled back."""


def _register_arabic_font() -> Optional[str]:
    path = exam_board_setting("ARABIC_FONT_PATH")
    if not path:
        return None
    if ARABIC_FONT_NAME not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(ARABIC_FONT_NAME, path))
    return ARABIC_FONT_NAME


def _qr_drawing(text: str, size: float) -> Drawing:
    widget = qr.QrCodeWidget(text)
    bounds = widget.getBounds()
    w = bounds[2] - bounds[0]
    h = bounds[3] - bounds[1]
    d = Drawing(size, size, transform=[size / w, 0, 0, size / h, 0, 0])
    d.add(widget)
    return d


class ReportLabRenderer(DocumentRenderer):
    TITLES = {
        "certificate": ("Certificate of Completion", "شهادة إتمام"),
        "transcript": ("Academic Transcript", "كشف الدرجات"),
    }

    def build_pdf(self, payload: RenderPayload) -> bytes:
        # The built-in PDF fonts have no Arabic glyphs; Arabic lines are only
        # drawn when ARABIC_FONT_PATH points at a TTF that has them.
        arabic_font = _register_arabic_font()
        styles = getSampleStyleSheet()
        normal = styles["Normal"]
        title_style = ParagraphStyle("CredentialTitle", parent=styles["Title"], fontSize=18, spaceAfter=4)
        arabic_title = ParagraphStyle("CredentialTitleAr", parent=title_style, fontName=arabic_font or "Helvetica")
        arabic = ParagraphStyle("CredentialAr", parent=normal, fontName=arabic_font or "Helvetica", alignment=2)

        def add_arabic(text, style=arabic):
            if arabic_font and text:
                story.append(Paragraph(text, style))

        title_en, title_ar = self.TITLES.get(payload.kind, (payload.kind.title(), ""))
        story = [Paragraph(payload.school_name, styles["Heading2"])]
        add_arabic(payload.school_name_ar)
        story.append(Spacer(1, 6 * mm))
        story.append(Paragraph(title_en, title_style))
        add_arabic(title_ar, arabic_title)
        story.append(Spacer(1, 4 * mm))

        identity = [
            ["Document No.", payload.document_number, "Index No.", payload.index_number],
            ["Name", payload.student_name_en or payload.student_name, "Grade", str(payload.grade_level)],
            ["Exam year", payload.exam_year, "Hijri year", payload.hijri_year or "-"],
        ]
        info = Table(identity, colWidths=[28 * mm, 62 * mm, 25 * mm, 60 * mm])
        info.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTNAME", (2, 0), (2, -1), "Helvetica-Bold"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ]))
        story.append(info)
        add_arabic(payload.student_name)
        story.append(Spacer(1, 5 * mm))

        if payload.kind == "transcript":
            rows = [["Subject", "المادة", "Score", "Max"]]
            for line in payload.subjects:
                rows.append([line.name, line.arabic_name or "", str(line.score), str(line.max_score)])
            rows.append(["Total", "المجموع", str(payload.total_score), str(payload.max_score)])
            widths = [60 * mm, 55 * mm, 30 * mm, 30 * mm]
            if not arabic_font:
                rows = [[r[0], r[2], r[3]] for r in rows]
                widths = [115 * mm, 30 * mm, 30 * mm]
            style = [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e8e8e8")),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                ("ALIGN", (-2, 0), (-1, -1), "CENTER"),
            ]
            if arabic_font:
                style.append(("FONTNAME", (1, 0), (1, -1), arabic_font))
            tbl = Table(rows, colWidths=widths, repeatRows=1)
            tbl.setStyle(TableStyle(style))
            story.append(tbl)
            story.append(Spacer(1, 5 * mm))

        story.append(Paragraph(
            f"Percentage: <b>{payload.percentage}%</b> &nbsp; Final grade: <b>{payload.final_grade}</b>",
            normal,
        ))
        add_arabic(f"التقدير: {payload.final_grade_ar}" if payload.final_grade_ar else "")
        story.append(Spacer(1, 8 * mm))
        story.append(Paragraph(f"Issued on {payload.issued_on}", normal))
        story.append(Spacer(1, 6 * mm))
        story.append(_qr_drawing(payload.verification_url, 30 * mm))
        story.append(Paragraph(f"Verify at {payload.verification_url}", styles["Italic"]))

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=20 * mm,
            bottomMargin=20 * mm,
            title=f"{title_en} {payload.document_number}",
        )
        doc.build(story)
        pdf_bytes = buffer.getvalue()
        buffer.close()
        return pdf_bytes

    def render(self, payload: RenderPayload) -> str:
        try:
            pdf_bytes = self.build_pdf(payload)
            name = f"{exam_board_setting('CREDENTIAL_STORAGE_DIR')}/{payload.kind}/{payload.document_number}.pdf"
            reference = default_storage.save(name, ContentFile(pdf_bytes))
        except Exception as exc:
            logger.exception("Rendering %s %s failed", payload.kind, payload.document_number)
            raise RenderingFailure(
                f"Could not render {payload.kind} {payload.document_number}: {exc}",
                document_number=payload.document_number,
            ) from exc
        logger.info("Rendered %s %s -> %s", payload.kind, payload.document_number, reference)
        return reference

    def delete(self, reference: str) -> None:
        if reference and default_storage.exists(reference):
            default_storage.delete(reference)


def get_renderer() -> DocumentRenderer:
    renderer_class = import_string(exam_board_setting("RENDERER"))
    return renderer_class()
