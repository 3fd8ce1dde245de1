from __future__ import annotations

import io
import logging
import re
from datetime import date, datetime
from typing import Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from auditflow.engine.fetcher import LogoData, fit_logo
from auditflow.engine.layout import (
    BRAND_H,
    COL,
    FONT_BOLD,
    GLYPH_FONT,
    MARGIN,
    PAGE_H,
    PAGE_W,
    TOTAL_PAGES,
    CircleOp,
    DrawOp,
    ImageOp,
    LineOp,
    LinkOp,
    PageOps,
    PolygonOp,
    RectOp,
    TextOp,
    wrap_text,
)
from auditflow.engine.schemas import BrandConfig, parse_datetime
from auditflow.engine.scoring import RGB, RULE, WHITE

logger = logging.getLogger(__name__)

LOGO_MAX_W = 40.0
LOGO_MAX_H = BRAND_H - 6
FOOTER_GRAY: RGB = (150, 150, 150)
DATE_FORMAT = "%d %b %Y, %H:%M"


class ReportGenerationError(RuntimeError):
    pass


def format_audit_date(value: Optional[datetime]) -> str:
    return (value or datetime.now()).strftime(DATE_FORMAT)


def _slug(value: str) -> str:
    return re.sub(r"[\s/\\]+", "_", value.strip()).lower()


def build_filename(agency_name: str, client_name: str, on: date) -> str:
    client = _slug(client_name) or "audit"
    return f"{_slug(agency_name)}_audit_{client}_{on:%Y-%m-%d}.pdf"


def _pdf_safe(text: str) -> str:
    return text.encode("cp1252", "ignore").decode("cp1252")


# --- page furniture ---------------------------------------------------------


def branded_header(page: PageOps, brand: BrandConfig, logo: Optional[LogoData], total_pages: int = TOTAL_PAGES) -> None:
    page.rect(0, 0, PAGE_W, BRAND_H, brand.accent_rgb)

    name_x = MARGIN
    if logo is not None:
        width, height = fit_logo(logo.width, logo.height, LOGO_MAX_W, LOGO_MAX_H)
        if width > 0:
            page.add(ImageOp(logo.data, MARGIN, (BRAND_H - height) / 2, width, height))
            name_x = MARGIN + width + 6

    page.text(brand.agency_name, name_x, 14, 11, WHITE, bold=True)
    if brand.agency_url:
        name_width = stringWidth(_pdf_safe(brand.agency_name), FONT_BOLD, 11) / mm
        page.add(LinkOp(brand.agency_url, name_x, 9, name_width, 7))

    page.text(f"Page {page.number} of {total_pages}", PAGE_W - MARGIN, 14, 8, WHITE, align="right")


def footer(page: PageOps, brand: BrandConfig, generated: str) -> None:
    y = PAGE_H - 10
    footer_lines = wrap_text(brand.report_footer, COL * 0.65, 7)
    if footer_lines:
        page.text(footer_lines[0], MARGIN, y, 7, FOOTER_GRAY)
    page.text(f"Generated {generated}", PAGE_W - MARGIN, y, 7, FOOTER_GRAY, align="right")
    page.line(MARGIN, y - 4, PAGE_W - MARGIN, y - 4, RULE)


def decorate(page: PageOps, brand: BrandConfig, logo: Optional[LogoData], generated: str) -> PageOps:
    """Copy of the page with header and footer drawn over its content."""
    decorated = PageOps(number=page.number, title=page.title, ops=list(page.ops))
    branded_header(decorated, brand, logo)
    footer(decorated, brand, generated)
    return decorated


# --- rendering --------------------------------------------------------------


def _y(y: float) -> float:
    return (PAGE_H - y) * mm


def _rgb(color: RGB) -> tuple[float, float, float]:
    return color[0] / 255, color[1] / 255, color[2] / 255


def _draw(pdf: canvas.Canvas, op: DrawOp) -> None:
    pdf.saveState()
    if isinstance(op, RectOp):
        pdf.setFillColorRGB(*_rgb(op.fill), alpha=op.alpha)
        x, y = op.x * mm, _y(op.y + op.height)
        width, height = op.width * mm, op.height * mm
        radius = min(op.radius, op.width / 2, op.height / 2)
        if radius > 0:
            pdf.roundRect(x, y, width, height, radius * mm, stroke=0, fill=1)
        else:
            pdf.rect(x, y, width, height, stroke=0, fill=1)
    elif isinstance(op, TextOp):
        text = op.text if op.font == GLYPH_FONT else _pdf_safe(op.text)
        pdf.setFont(op.font, op.size)
        pdf.setFillColorRGB(*_rgb(op.color))
        if op.align == "right":
            pdf.drawRightString(op.x * mm, _y(op.y), text)
        elif op.align == "center":
            pdf.drawCentredString(op.x * mm, _y(op.y), text)
        else:
            pdf.drawString(op.x * mm, _y(op.y), text)
    elif isinstance(op, LineOp):
        pdf.setStrokeColorRGB(*_rgb(op.color))
        pdf.setLineWidth(op.width * mm)
        pdf.line(op.x1 * mm, _y(op.y1), op.x2 * mm, _y(op.y2))
    elif isinstance(op, CircleOp):
        pdf.setFillColorRGB(*_rgb(op.fill))
        pdf.circle(op.cx * mm, _y(op.cy), op.r * mm, stroke=0, fill=1)
    elif isinstance(op, PolygonOp):
        pdf.setFillColorRGB(*_rgb(op.fill))
        path = pdf.beginPath()
        first, *rest = op.points
        path.moveTo(first[0] * mm, _y(first[1]))
        for px, py in rest:
            path.lineTo(px * mm, _y(py))
        path.close()
        pdf.drawPath(path, stroke=0, fill=1)
    elif isinstance(op, ImageOp):
        pdf.drawImage(
            ImageReader(io.BytesIO(op.data)),
            op.x * mm,
            _y(op.y + op.height),
            width=op.width * mm,
            height=op.height * mm,
            mask="auto",
        )
    elif isinstance(op, LinkOp):
        rect = (op.x * mm, _y(op.y + op.height), (op.x + op.width) * mm, _y(op.y))
        pdf.linkURL(op.url, rect, relative=0)
    pdf.restoreState()


def emit(
    pages: list[PageOps],
    brand: BrandConfig,
    audit_date: str | datetime | None = None,
    logo: Optional[LogoData] = None,
) -> bytes:
    """Render the composed pages into one PDF. Nothing is returned unless every page renders."""
    numbers = [page.number for page in pages]
    if numbers != list(range(1, TOTAL_PAGES + 1)):
        raise ReportGenerationError(f"expected pages 1..{TOTAL_PAGES}, got {numbers}")

    generated = format_audit_date(parse_datetime(audit_date))
    buffer = io.BytesIO()
    try:
        pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
        pdf.setTitle("Website Audit Report")
        pdf.setAuthor(_pdf_safe(brand.agency_name))
        pdf.setCreator(_pdf_safe(brand.agency_name))
        for page in pages:
            for op in decorate(page, brand, logo, generated).ops:
                _draw(pdf, op)
            pdf.showPage()
        pdf.save()
    except Exception as exc:
        logger.exception("Report rendering failed")
        raise ReportGenerationError(f"could not assemble report document: {exc}") from exc

    content = buffer.getvalue()
    logger.info("Report rendered: %s pages, %s bytes", len(pages), len(content))
    return content
