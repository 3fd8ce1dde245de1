from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from auditflow.engine.fetcher import LogoFetcher
from auditflow.engine.layout import (
    COL,
    ELLIPSIS,
    FONT_BOLD,
    MARGIN,
    PAGE_H,
    PAGE_W,
    CircleOp,
    LayoutCursor,
    PageOps,
    PolygonOp,
    draw_list,
    fmt_number,
    label_pill,
    overflow_marker,
    progress_bar,
    row_band,
    score_pill,
    section_title,
    status_icon,
    truncate,
    wrap_text,
)
from auditflow.engine.report import build_filename, emit, format_audit_date
from auditflow.engine.schemas import (
    AuditResult,
    BrandConfig,
    BrokenLink,
    Opportunity,
    as_audit_result,
    as_brand_config,
)
from auditflow.engine.scoring import (
    AMBER,
    CARD_BG,
    CYAN,
    FAIL_BG,
    GRAY,
    GREEN,
    INK,
    MUTED,
    OPPORTUNITY_BG,
    PASS_BG,
    RED,
    RGB,
    WHITE,
    classify,
    score_color,
    shade,
)

logger = logging.getLogger(__name__)

MAX_OPPORTUNITIES = 5
MAX_RECOMMENDATIONS = 4
MAX_RECOMMENDATION_LINES = 3
MAX_BROKEN_LINKS = 5
MAX_ACTIONS = 6

DESCRIPTION_LIMIT = 120
TITLE_NOTE_LIMIT = 60
NOTE_LIMIT = 50
URL_LIMIT = 70

SUBTLE: RGB = (80, 80, 80)
LABEL: RGB = (100, 100, 100)
HEADING: RGB = (60, 60, 60)


class Priority(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


PRIORITY_COLORS: dict[Priority, RGB] = {
    Priority.CRITICAL: RED,
    Priority.HIGH: AMBER,
    Priority.MEDIUM: CYAN,
    Priority.LOW: GRAY,
}

BROKEN_LINK_PILLS: dict[str, tuple[str, RGB]] = {
    "pass": ("PASS", GREEN),
    "warning": ("WARNING", AMBER),
    "fail": ("FAIL", RED),
}


@dataclass(frozen=True)
class ActionItem:
    priority: Priority
    task: str
    impact: str


@dataclass(frozen=True)
class ReportArtifact:
    content: bytes
    filename: str
    page_count: int


def build_action_plan(result: AuditResult | dict) -> list[ActionItem]:
    result = as_audit_result(result)
    actions: list[ActionItem] = []
    broken_count = result.broken_links.broken_count
    issues = result.image_optimization.issues
    structured = result.structured_data

    if not result.security.https:
        actions.append(ActionItem(Priority.CRITICAL, "Enable HTTPS / SSL certificate", "Security"))
    if broken_count > 0:
        actions.append(ActionItem(Priority.HIGH, f"Fix {broken_count} broken link(s)", "SEO + UX"))
    if issues.missing_alt_count > 0:
        actions.append(ActionItem(Priority.HIGH, "Add alt text to images", "Accessibility + SEO"))
    if not result.technical_seo.meta_description.present:
        actions.append(ActionItem(Priority.HIGH, "Write a meta description", "SEO"))
    if not structured.has_json_ld:
        actions.append(ActionItem(Priority.MEDIUM, "Implement JSON-LD structured data", "SEO visibility"))
    if not structured.has_open_graph:
        actions.append(ActionItem(Priority.MEDIUM, "Add Open Graph meta tags", "Social sharing"))
    if issues.old_format_count > 0:
        actions.append(ActionItem(Priority.LOW, "Convert images to WebP/AVIF", "Performance"))

    return actions[:MAX_ACTIONS]


def _grid_origin(index: int, cell_width: float, gap: float, top: float, row_height: float) -> tuple[float, float]:
    col, row = index % 2, index // 2
    return MARGIN + col * (cell_width + gap), top + row * row_height


def _rows_height(count: int, row_height: float) -> float:
    return math.ceil(count / 2) * row_height


# --- page 1 -----------------------------------------------------------------


def compose_cover(result: AuditResult, brand: BrandConfig) -> PageOps:
    page = PageOps(number=1, title="Cover")
    accent = brand.accent_rgb
    band_bottom = PAGE_H * 0.45

    page.rect(0, 0, PAGE_W, band_bottom, accent)
    page.add(
        PolygonOp(
            points=((0, band_bottom), (PAGE_W, PAGE_H * 0.38), (PAGE_W, band_bottom)),
            fill=shade(accent, (-15, -15, 20)),
        )
    )

    page.text("WEBSITE", MARGIN, 55, 28, WHITE, bold=True)
    page.text("AUDIT REPORT", MARGIN, 69, 28, WHITE, bold=True)

    page.rect(MARGIN, 76, COL, 10, WHITE, radius=2, alpha=0.18)
    page.text(truncate(result.url or "—", URL_LIMIT), MARGIN + 4, 82.5, 10, WHITE)

    cx, cy, radius = PAGE_W - MARGIN - 22, 60.0, 22.0
    tier, color = classify(result.overall_score)
    page.add(CircleOp(cx, cy, radius, WHITE))
    page.text(fmt_number(result.overall_score), cx, cy + 2, 22, color, bold=True, align="center")
    page.text("/ 100", cx, cy + 8, 7, SUBTLE, align="center")
    page.text(tier.value.upper(), cx, cy + 14, 8, color, align="center")

    content_y = band_bottom + 10
    page.text("Prepared for", MARGIN, content_y + 8, 10, INK, bold=True)
    page.text(brand.client_name or "Client", MARGIN, content_y + 17, 14, INK)
    if brand.prepared_by:
        page.text(f"Prepared by: {brand.prepared_by}", MARGIN, content_y + 25, 9, LABEL)
    page.text(f"Audit date: {format_audit_date(result.audited_at())}", MARGIN, content_y + 33, 9, MUTED)

    grid_y = content_y + 48
    categories = list(result.lighthouse.categories.items())
    if categories:
        page.text("LIGHTHOUSE SCORES", MARGIN, grid_y, 8, HEADING, bold=True)

    cell_w = COL / 2 - 4
    for index, (key, category) in enumerate(categories):
        cell_x, cell_y = _grid_origin(index, cell_w, 8, grid_y + 6, 18)
        cursor = LayoutCursor(page_number=1, y=cell_y)
        if not cursor.has_room():
            overflow_marker(page, cursor, len(categories) - index)
            break
        cat_color = score_color(category.score)
        row_band(page, cell_x, cell_y, cell_w, 14, CARD_BG)
        page.rect(cell_x, cell_y, 3, 14, cat_color, radius=1)
        page.text(category.title or key, cell_x + 6, cell_y + 5, 7, INK)
        page.text(fmt_number(category.score), cell_x + 6, cell_y + 11, 11, cat_color, bold=True)

    return page


# --- page 2 -----------------------------------------------------------------


def _opportunity_row(page: PageOps, cursor: LayoutCursor, opportunity: Opportunity) -> LayoutCursor:
    y = cursor.y
    row_band(page, MARGIN, y, COL, 13, OPPORTUNITY_BG)
    title_lines = wrap_text(opportunity.title, COL - 40, 8, FONT_BOLD)
    if title_lines:
        page.text(title_lines[0], MARGIN + 4, y + 5, 8, (40, 40, 40), bold=True)
    saved = opportunity.saved_ms
    if saved:
        page.text(f"Save ~{math.floor(saved + 0.5)}ms", PAGE_W - MARGIN - 2, y + 5, 8, (180, 100, 0), align="right")
    description = wrap_text(opportunity.description[:DESCRIPTION_LIMIT], COL - 8, 8)
    if description:
        page.text(description[0], MARGIN + 4, y + 10, 8, SUBTLE)
    return cursor.advance(16)


def compose_performance(result: AuditResult, brand: BrandConfig) -> PageOps:
    page = PageOps(number=2, title="Performance")
    accent = brand.accent_rgb
    cursor = section_title(page, LayoutCursor(page_number=2), "Performance", accent)

    metrics = result.lighthouse.metrics
    vitals = metrics.core_web_vitals
    card_w = (COL - 8) / 3
    y = cursor.y
    for index, (label, metric) in enumerate(
        [
            ("Largest Contentful Paint", vitals.lcp),
            ("Cumulative Layout Shift", vitals.layout_shift),
            ("Total Blocking Time", vitals.tbt),
        ]
    ):
        if metric is None:
            continue
        card_x = MARGIN + index * (card_w + 4)
        color = score_color(metric.percent)
        page.rect(card_x, y, card_w, 28, CARD_BG, radius=3)
        page.rect(card_x, y, card_w, 2.5, color, radius=1)
        page.text(label, card_x + 5, y + 8, 7, LABEL)
        page.text(metric.display_value or "—", card_x + 5, y + 18, 14, color, bold=True)
        page.text(metric.rating.replace("-", " ").upper(), card_x + 5, y + 24, 7, MUTED)
    cursor = cursor.advance(34)

    performance = metrics.performance
    secondary = [
        ("First Contentful Paint", performance.fcp),
        ("Speed Index", performance.speed_index),
        ("Time to Interactive", performance.tti),
    ]
    for index, (label, metric) in enumerate(secondary):
        if metric is None or not metric.display_value:
            continue
        mx, my = _grid_origin(index, COL / 2, 4, cursor.y, 12)
        page.text(label, mx, my, 9, (90, 90, 90))
        page.text(metric.display_value, mx + COL / 2 - 4, my, 9, INK, bold=True, align="right")
    cursor = cursor.advance(_rows_height(len(secondary), 12) + 10)

    opportunities = result.lighthouse.opportunities[:MAX_OPPORTUNITIES]
    if opportunities:
        cursor = section_title(page, cursor, "Top Opportunities", accent)
        draw_list(page, cursor, opportunities, _opportunity_row)

    return page


# --- page 3 -----------------------------------------------------------------


def _recommendation_row(page: PageOps, cursor: LayoutCursor, text: str) -> LayoutCursor:
    lines = wrap_text(text, COL - 10, 8)
    if len(lines) > MAX_RECOMMENDATION_LINES:
        lines = lines[:MAX_RECOMMENDATION_LINES]
        lines[-1] = lines[-1].rstrip() + ELLIPSIS
    page.text("•", MARGIN + 2, cursor.y, 8, SUBTLE)
    for offset, line in enumerate(lines):
        page.text(line, MARGIN + 8, cursor.y + offset * 4.5, 8, SUBTLE)
    return cursor.advance(max(len(lines), 1) * 4.5 + 2)


def compose_seo(result: AuditResult, brand: BrandConfig) -> PageOps:
    page = PageOps(number=3, title="SEO & Structured Data")
    accent = brand.accent_rgb
    cursor = section_title(page, LayoutCursor(page_number=3), "Technical SEO", accent)

    seo = result.technical_seo
    h1_count = seo.headings.get("h1", 0)
    checks = [
        ("Title Tag", seo.title.present, truncate(seo.title.content, TITLE_NOTE_LIMIT)),
        ("Meta Description", seo.meta_description.present, f"{seo.meta_description.length} chars"),
        ("Canonical URL", seo.canonical.present, ""),
        ("Robots.txt", seo.robots_txt, ""),
        ("Sitemap.xml", seo.sitemap_xml, ""),
        ("H1 Tag", h1_count == 1, f"{h1_count} found"),
    ]
    for label, passed, note in checks:
        y = cursor.y
        row_band(page, MARGIN, y, COL, 10, PASS_BG if passed else FAIL_BG)
        status_icon(page, passed, MARGIN + 4, y + 7)
        page.text(label, MARGIN + 11, y + 7, 9, INK, bold=not passed)
        page.text(note, PAGE_W - MARGIN - 2, y + 7, 7, MUTED, align="right")
        cursor = cursor.advance(13)

    cursor = section_title(page, cursor.advance(6), "Structured Data", accent)
    structured = result.structured_data
    score_pill(page, structured.score, MARGIN, cursor.y + 5)
    page.text(f"Status: {structured.status or '—'}", MARGIN + 28, cursor.y + 2, 8, SUBTLE)
    cursor = cursor.advance(12)

    formats = [
        ("JSON-LD", structured.has_json_ld, ", ".join(structured.json_ld_types)),
        ("Open Graph", structured.has_open_graph, ", ".join(structured.open_graph_properties)),
        ("Twitter Card", structured.has_twitter_card, structured.twitter_card_type),
        ("Microdata", structured.has_microdata, ""),
    ]
    for label, passed, note in formats:
        y = cursor.y
        row_band(page, MARGIN, y, COL, 9, CARD_BG)
        status_icon(page, passed, MARGIN + 4, y + 6.5)
        page.text(label, MARGIN + 11, y + 6.5, 8, INK)
        page.text(truncate(note, NOTE_LIMIT), PAGE_W - MARGIN - 2, y + 6.5, 7, MUTED, align="right")
        cursor = cursor.advance(11)

    recommendations = structured.recommendations[:MAX_RECOMMENDATIONS]
    if recommendations:
        cursor = cursor.advance(4)
        page.text("Recommendations", MARGIN, cursor.y, 8, HEADING, bold=True)
        draw_list(page, cursor.advance(6), recommendations, _recommendation_row)

    return page


# --- page 4 -----------------------------------------------------------------


def compose_content(result: AuditResult, brand: BrandConfig) -> PageOps:
    page = PageOps(number=4, title="Content Quality & Images")
    accent = brand.accent_rgb
    cursor = section_title(page, LayoutCursor(page_number=4), "Content Quality", accent)

    content = result.content_quality
    score_pill(page, content.score, MARGIN, cursor.y + 5)
    page.text(content.reading_level or "—", MARGIN + 28, cursor.y + 2, 8, SUBTLE)
    page.text(f"{content.word_count} words", MARGIN + 28, cursor.y + 8, 8, SUBTLE)
    cursor = cursor.advance(16)

    progress_bar(page, content.score, MARGIN, cursor.y, COL, 4)
    cursor = cursor.advance(10)

    h1_count = content.heading_structure.get("h1", 0)
    h2_count = content.heading_structure.get("h2", 0)
    stats = [
        ("Word Count", str(content.word_count), content.word_count >= 500),
        ("Sentences", str(content.sentence_count), True),
        ("Avg Sentence Length", f"{fmt_number(content.avg_sentence_length)} words", content.avg_sentence_length <= 20),
        ("Avg Paragraph Length", f"{fmt_number(content.avg_paragraph_length)} words", content.avg_paragraph_length <= 100),
        ("Content / Code Ratio", f"{fmt_number(content.content_to_code_ratio)}%", content.content_to_code_ratio >= 15),
        ("Flesch Reading Ease", fmt_number(content.reading_ease_score), content.reading_ease_score >= 60),
        ("H1 Headings", str(h1_count), h1_count == 1),
        ("H2 Headings", str(h2_count), h2_count > 0),
    ]
    half_w = (COL - 6) / 2
    for index, (label, value, good) in enumerate(stats):
        cell_x, cell_y = _grid_origin(index, half_w, 6, cursor.y, 12)
        row_band(page, cell_x, cell_y, half_w, 10, CARD_BG)
        page.rect(cell_x, cell_y, 2.5, 10, GREEN if good else RED, radius=1)
        page.text(label, cell_x + 5, cell_y + 6.5, 7, LABEL)
        page.text(value, cell_x + half_w - 3, cell_y + 6.5, 7, INK, bold=True, align="right")
    cursor = cursor.advance(_rows_height(len(stats), 12) + 10)

    cursor = section_title(page, cursor, "Image Optimization", accent)
    images = result.image_optimization
    score_pill(page, images.score, MARGIN, cursor.y + 5)
    page.text(f"{images.total_images} images found", MARGIN + 28, cursor.y + 5, 8, SUBTLE)
    cursor = cursor.advance(14)

    issues = images.issues
    rows = [
        ("Missing Alt Text", issues.missing_alt_count, issues.missing_alt_count > 0),
        ("Missing Dimensions", issues.missing_dimensions_count, issues.missing_dimensions_count > 0),
        ("No Lazy Loading", issues.no_lazy_loading_count, issues.no_lazy_loading_count > 3),
        ("Old Format (JPG/PNG)", issues.old_format_count, issues.old_format_count > 0),
    ]
    for label, value, bad in rows:
        flagged = bad and value > 0
        y = cursor.y
        row_band(page, MARGIN, y, COL, 9, FAIL_BG if flagged else CARD_BG)
        page.text(label, MARGIN + 4, y + 6.5, 8, (180, 40, 40) if flagged else (60, 40, 40))
        page.text(str(value), PAGE_W - MARGIN - 2, y + 6.5, 8, RED if flagged else GREEN, bold=True, align="right")
        cursor = cursor.advance(11)

    return page


# --- page 5 -----------------------------------------------------------------


def _broken_link_row(page: PageOps, cursor: LayoutCursor, link: BrokenLink) -> LayoutCursor:
    y = cursor.y
    row_band(page, MARGIN, y, COL, 9, FAIL_BG)
    page.text(truncate(link.url, URL_LIMIT), MARGIN + 4, y + 6, 7, SUBTLE)
    page.text(link.status_code or "Error", PAGE_W - MARGIN - 2, y + 6, 7, RED, align="right")
    return cursor.advance(11)


def _action_row(page: PageOps, cursor: LayoutCursor, action: ActionItem) -> LayoutCursor:
    y = cursor.y
    row_band(page, MARGIN, y, COL, 10, CARD_BG)
    label_pill(page, action.priority.value.upper(), MARGIN, y, 18, 10, PRIORITY_COLORS[action.priority], size=6)
    page.text(action.task, MARGIN + 22, y + 4, 8, INK)
    page.text(action.impact, MARGIN + 22, y + 9, 7, MUTED)
    return cursor.advance(13)


def compose_security(result: AuditResult, brand: BrandConfig) -> PageOps:
    page = PageOps(number=5, title="Security & Action Plan")
    accent = brand.accent_rgb
    cursor = section_title(page, LayoutCursor(page_number=5), "Security", accent)

    security = result.security
    headers = security.security_headers
    checks = [
        ("HTTPS / SSL", security.https),
        ("HSTS Header", headers.strict_transport_security),
        ("X-Frame-Options", headers.x_frame_options),
        ("X-Content-Type-Options", headers.x_content_type_options),
        ("Content-Security-Policy", headers.content_security_policy),
    ]
    half_w = (COL - 6) / 2
    for index, (label, passed) in enumerate(checks):
        cell_x, cell_y = _grid_origin(index, half_w, 6, cursor.y, 12)
        row_band(page, cell_x, cell_y, half_w, 10, PASS_BG if passed else FAIL_BG)
        status_icon(page, passed, cell_x + 4, cell_y + 7)
        page.text(label, cell_x + 11, cell_y + 7, 7.5, INK)
    cursor = cursor.advance(_rows_height(len(checks), 12) + 8)

    cursor = section_title(page, cursor, "Broken Links", accent)
    links = result.broken_links
    pill_label, pill_color = BROKEN_LINK_PILLS.get(links.status, ("N/A", GRAY))
    label_pill(page, pill_label, MARGIN, cursor.y, 22, 8, pill_color)
    page.text(
        f"{links.total_checked} links checked — {links.broken_count} broken",
        MARGIN + 26,
        cursor.y + 5.5,
        8,
        HEADING,
    )
    cursor = cursor.advance(14)

    if links.broken_count > 0 and links.broken_links:
        page.text("BROKEN LINKS", MARGIN, cursor.y, 7, LABEL, bold=True)
        cursor = draw_list(page, cursor.advance(5), links.broken_links[:MAX_BROKEN_LINKS], _broken_link_row)

    cursor = cursor.advance(8)
    actions = build_action_plan(result)
    if not cursor.has_room():
        overflow_marker(page, cursor, len(actions))
        return page

    cursor = section_title(page, cursor, "Recommended Action Plan", accent)
    if not actions:
        page.text("No priority actions: every key check passed.", MARGIN, cursor.y + 4, 8, MUTED)
    draw_list(page, cursor, actions, _action_row)

    return page


PAGE_COMPOSERS = (compose_cover, compose_performance, compose_seo, compose_content, compose_security)


def build_pages(result: AuditResult | dict, brand: BrandConfig | dict | None = None) -> list[PageOps]:
    audit = as_audit_result(result)
    branding = as_brand_config(brand)
    return [compose(audit, branding) for compose in PAGE_COMPOSERS]


async def generate_report_async(
    result: AuditResult | dict,
    brand: BrandConfig | dict | None = None,
    fetcher: Optional[LogoFetcher] = None,
) -> ReportArtifact:
    audit = as_audit_result(result)
    branding = as_brand_config(brand)

    logo = await (fetcher or LogoFetcher()).fetch_logo(branding.agency_logo)
    pages = build_pages(audit, branding)
    audited_at = audit.audited_at()
    content = emit(pages, branding, audited_at, logo)

    # Filename date is the audit date, not the render date.
    filename = build_filename(branding.agency_name, branding.client_name, (audited_at or datetime.now()).date())
    logger.info("Report ready for %s: %s", audit.url or "unknown url", filename)
    return ReportArtifact(content=content, filename=filename, page_count=len(pages))


def generate_report(
    result: AuditResult | dict,
    brand: BrandConfig | dict | None = None,
) -> ReportArtifact:
    return asyncio.run(generate_report_async(result, brand))
