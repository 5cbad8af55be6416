# product_research/storage/pdf_exporter.py

"""Renders a report document to PDF bytes with reportlab."""

import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import (
    Flowable,
    HRFlowable,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from product_research.config.settings import Settings
from product_research.models.report import (
    CENTERED,
    ERROR,
    HEADING,
    LINK,
    RULE,
    TABLE,
    TITLE,
    Block,
    ReportDocument,
)

logger = logging.getLogger("product_research.report")


def _register_font() -> str:
    """Register the CID font used for Japanese text (idempotent)."""
    name = Settings.REPORT_FONT
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(UnicodeCIDFont(name))
    return name


def _markup(text: str) -> str:
    """Escape text for a Paragraph, keeping line breaks."""
    return escape(text).replace("\n", "<br/>")


def _styles(font: str) -> dict[str, ParagraphStyle]:
    base = getSampleStyleSheet()
    return {
        TITLE: ParagraphStyle(
            "ReportTitle",
            parent=base["Title"],
            fontName=font,
            fontSize=18,
            textColor=colors.HexColor("#2F5496"),
            spaceAfter=10,
        ),
        CENTERED: ParagraphStyle(
            "ReportCentered",
            parent=base["Normal"],
            fontName=font,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#555555"),
        ),
        HEADING: ParagraphStyle(
            "ReportHeading",
            parent=base["Heading2"],
            fontName=font,
            fontSize=13,
            spaceAfter=4,
        ),
        LINK: ParagraphStyle(
            "ReportLink",
            parent=base["Normal"],
            fontName=font,
            fontSize=8,
            textColor=colors.HexColor("#1155CC"),
            spaceAfter=6,
        ),
        ERROR: ParagraphStyle(
            "ReportError",
            parent=base["Italic"],
            textColor=colors.HexColor("#A61C00"),
        ),
        # CID fonts have no oblique face
        "error_cjk": ParagraphStyle(
            "ReportErrorCJK",
            parent=base["Normal"],
            fontName=font,
            textColor=colors.HexColor("#A61C00"),
        ),
        "cell": ParagraphStyle(
            "ReportCell",
            parent=base["Normal"],
            fontName=font,
            fontSize=9,
            leading=12,
        ),
    }


def _table(block: Block, styles: dict[str, ParagraphStyle]) -> Table:
    data = [
        [Paragraph(_markup(key), styles["cell"]),
         Paragraph(_markup(value), styles["cell"])]
        for key, value in block.rows
    ]
    table = Table(data, colWidths=[1.4 * inch, 5.1 * inch])
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#F2F2F2")),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))
    return table


def _flowables(
    block: Block, styles: dict[str, ParagraphStyle],
) -> list[Flowable]:
    if block.kind == RULE:
        return [
            Spacer(1, 0.1 * inch),
            HRFlowable(width="100%", thickness=0.5, color=colors.grey),
            Spacer(1, 0.1 * inch),
        ]
    if block.kind == TABLE:
        return [_table(block, styles)] if block.rows else []
    if block.kind == LINK:
        href = escape(block.text, {'"': "&quot;"})
        return [Paragraph(
            f'<a href="{href}">{_markup(block.text)}</a>', styles[LINK],
        )]
    if block.kind == ERROR:
        style = styles[ERROR] if block.text.isascii() else styles["error_cjk"]
        return [Paragraph(_markup(block.text), style)]
    if block.kind in styles:
        return [Paragraph(_markup(block.text), styles[block.kind])]
    msg = f"Unknown report block kind: {block.kind}"
    raise ValueError(msg)


def render_pdf(document: ReportDocument) -> bytes:
    """Lay out *document* on A4 pages and return the PDF bytes."""
    font = _register_font()
    styles = _styles(font)
    buffer = io.BytesIO()
    pdf = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        title=document.title,
        rightMargin=0.6 * inch,
        leftMargin=0.6 * inch,
        topMargin=0.6 * inch,
        bottomMargin=0.6 * inch,
    )
    elements: list[Flowable] = []
    for block in document.blocks:
        elements.extend(_flowables(block, styles))
    pdf.build(elements)
    data = buffer.getvalue()
    logger.debug(
        "Rendered '%s': %d blocks, %d bytes",
        document.name,
        len(document.blocks),
        len(data),
    )
    return data
