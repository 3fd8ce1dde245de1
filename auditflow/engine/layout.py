from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, Sequence, TypeVar, Union

from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit

from auditflow.config import BOTTOM_SAFETY_MARGIN_MM
from auditflow.engine.scoring import GREEN, INK, MUTED, RED, RGB, TRACK, WHITE, clamp_score, score_color

# All geometry is in millimetres on an A4 page, origin top-left.
PAGE_W = 210.0
PAGE_H = 297.0
MARGIN = 18.0
COL = PAGE_W - MARGIN * 2
BRAND_H = 22.0
CONTENT_TOP = BRAND_H + 10
TOTAL_PAGES = 5

SECTION_ADVANCE = 12.0
PILL_W = 22.0
PILL_H = 8.0

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"
GLYPH_FONT = "ZapfDingbats"
CHECK_GLYPH = "4"
CROSS_GLYPH = "8"
ELLIPSIS = "…"


@dataclass(frozen=True)
class RectOp:
    x: float
    y: float
    width: float
    height: float
    fill: RGB
    radius: float = 0.0
    alpha: float = 1.0


@dataclass(frozen=True)
class TextOp:
    text: str
    x: float
    y: float
    size: float
    color: RGB
    font: str = FONT
    align: str = "left"


@dataclass(frozen=True)
class LineOp:
    x1: float
    y1: float
    x2: float
    y2: float
    color: RGB
    width: float = 0.2


@dataclass(frozen=True)
class CircleOp:
    cx: float
    cy: float
    r: float
    fill: RGB


@dataclass(frozen=True)
class PolygonOp:
    points: tuple[tuple[float, float], ...]
    fill: RGB


@dataclass(frozen=True)
class ImageOp:
    data: bytes
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class LinkOp:
    url: str
    x: float
    y: float
    width: float
    height: float


DrawOp = Union[RectOp, TextOp, LineOp, CircleOp, PolygonOp, ImageOp, LinkOp]

T = TypeVar("T")


@dataclass
class PageOps:
    """Ordered drawing operations for one physical page."""

    number: int
    title: str
    ops: list[DrawOp] = field(default_factory=list)

    def add(self, op: DrawOp) -> DrawOp:
        self.ops.append(op)
        return op

    def rect(
        self,
        x: float,
        y: float,
        width: float,
        height: float,
        fill: RGB,
        radius: float = 0.0,
        alpha: float = 1.0,
    ) -> None:
        if width <= 0 or height <= 0:
            return
        self.add(RectOp(x, y, width, height, fill, radius, alpha))

    def text(
        self,
        text: str,
        x: float,
        y: float,
        size: float,
        color: RGB = INK,
        bold: bool = False,
        align: str = "left",
    ) -> None:
        if not text:
            return
        self.add(TextOp(text, x, y, size, color, FONT_BOLD if bold else FONT, align))

    def line(self, x1: float, y1: float, x2: float, y2: float, color: RGB, width: float = 0.2) -> None:
        self.add(LineOp(x1, y1, x2, y2, color, width))

    def texts(self) -> list[str]:
        return [op.text for op in self.ops if isinstance(op, TextOp)]


@dataclass(frozen=True)
class LayoutCursor:
    """Pen position for one page. Moves return a new cursor."""

    page_number: int
    total_pages: int = TOTAL_PAGES
    x: float = MARGIN
    y: float = CONTENT_TOP
    page_width: float = PAGE_W
    page_height: float = PAGE_H
    margin: float = MARGIN
    bottom_safety_margin: float = BOTTOM_SAFETY_MARGIN_MM

    def __post_init__(self) -> None:
        if not 1 <= self.page_number <= self.total_pages:
            raise ValueError(f"page {self.page_number} outside 1..{self.total_pages}")

    @property
    def content_width(self) -> float:
        return self.page_width - self.margin * 2

    @property
    def right(self) -> float:
        return self.page_width - self.margin

    @property
    def limit(self) -> float:
        return self.page_height - self.bottom_safety_margin

    def advance(self, dy: float) -> LayoutCursor:
        return replace(self, y=self.y + dy)

    def move_to(self, y: float) -> LayoutCursor:
        return replace(self, y=y)

    def has_room(self) -> bool:
        return self.y <= self.limit


# --- text helpers -----------------------------------------------------------


def truncate(text: str, limit: int, marker: str = ELLIPSIS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def wrap_text(text: str, width: float, size: float, font: str = FONT) -> list[str]:
    if not text:
        return []
    return simpleSplit(text, font, size, width * mm)


def fmt_number(value: float) -> str:
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return f"{number:.2f}".rstrip("0").rstrip(".")


# --- primitives -------------------------------------------------------------


def section_title(page: PageOps, cursor: LayoutCursor, label: str, accent: RGB) -> LayoutCursor:
    page.rect(cursor.margin, cursor.y, 3, 6, accent)
    page.text(label, cursor.margin + 6, cursor.y + 5, 11, INK, bold=True)
    return cursor.advance(SECTION_ADVANCE)


def score_pill(page: PageOps, score: object, x: float, y: float) -> float:
    value = clamp_score(score)
    page.rect(x, y - 6, PILL_W, PILL_H, score_color(value), radius=2)
    page.text(fmt_number(value), x + PILL_W / 2, y - 0.5, 9, WHITE, bold=True, align="center")
    return x + PILL_W + 2


def label_pill(
    page: PageOps,
    label: str,
    x: float,
    y: float,
    width: float,
    height: float,
    fill: RGB,
    size: float = 8,
) -> None:
    page.rect(x, y, width, height, fill, radius=2)
    page.text(label, x + width / 2, y + height / 2 + size * 0.125, size, WHITE, bold=True, align="center")


def progress_bar(page: PageOps, score: object, x: float, y: float, width: float, height: float = 3) -> None:
    value = clamp_score(score)
    page.rect(x, y, width, height, TRACK, radius=1)
    page.rect(x, y, width * value / 100, height, score_color(value), radius=1)


def status_icon(page: PageOps, passed: bool, x: float, y: float) -> None:
    glyph, color = (CHECK_GLYPH, GREEN) if passed else (CROSS_GLYPH, RED)
    page.add(TextOp(glyph, x, y, 9, color, GLYPH_FONT))


def row_band(page: PageOps, x: float, y: float, width: float, height: float, fill: RGB) -> None:
    page.rect(x, y, width, height, fill, radius=2)


def overflow_marker(page: PageOps, cursor: LayoutCursor, hidden: int) -> None:
    if hidden <= 0:
        return
    page.text(f"+{hidden} more not shown", cursor.margin, cursor.y + 4, 7, MUTED)


def draw_list(
    page: PageOps,
    cursor: LayoutCursor,
    items: Sequence[T],
    draw_row: Callable[[PageOps, LayoutCursor, T], LayoutCursor],
) -> LayoutCursor:
    """Draw rows until one would start inside the bottom safety zone; the rest are counted, not drawn."""
    for index, item in enumerate(items):
        if not cursor.has_room():
            overflow_marker(page, cursor, len(items) - index)
            break
        cursor = draw_row(page, cursor, item)
    return cursor
