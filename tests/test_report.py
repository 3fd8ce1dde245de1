from __future__ import annotations

import asyncio
import base64
import io
import re
from datetime import date, datetime, timezone

import httpx
import pytest
from PIL import Image

from auditflow.engine.fetcher import LogoData, LogoFetcher
from auditflow.engine.layout import ImageOp, LinkOp, PageOps
from auditflow.engine.report import (
    LOGO_MAX_H,
    LOGO_MAX_W,
    ReportGenerationError,
    build_filename,
    decorate,
    emit,
)
from auditflow.engine.report_generator import build_pages, generate_report, generate_report_async
from auditflow.engine.schemas import BrandConfig

PAGE_MARKER = re.compile(rb"/Type\s*/Page\b")


def _png(width: int, height: int) -> bytes:
    out = io.BytesIO()
    Image.new("RGB", (width, height), (20, 120, 220)).save(out, format="PNG")
    return out.getvalue()


def test_filename_uses_agency_client_and_audit_day():
    assert build_filename("Acme Digital", "Client Co", date(2024, 1, 5)) == "acme_digital_audit_client_co_2024-01-05.pdf"
    assert build_filename("AuditFlow", "", date(2024, 1, 5)) == "auditflow_audit_audit_2024-01-05.pdf"
    assert build_filename("A/B  Studio", "Shop\\One", date(2023, 12, 31)) == "a_b_studio_audit_shop_one_2023-12-31.pdf"


def test_empty_result_renders_five_page_pdf():
    artifact = generate_report({})
    assert artifact.content.startswith(b"%PDF")
    assert artifact.page_count == 5
    assert len(PAGE_MARKER.findall(artifact.content)) == 5
    assert artifact.filename.startswith("auditflow_audit_audit_")


def test_fixture_report(audit_result, brand):
    artifact = generate_report(audit_result, brand)
    assert artifact.filename == "acme_digital_audit_client_co_2024-01-05.pdf"
    assert len(PAGE_MARKER.findall(artifact.content)) == 5


def test_same_input_gives_same_bytes(audit_result, brand):
    assert generate_report(audit_result, brand).content == generate_report(audit_result, brand).content


def test_decorate_adds_header_and_footer(brand):
    page = PageOps(number=2, title="Performance")
    logo = LogoData(data=_png(200, 50), width=200, height=50)
    decorated = decorate(page, BrandConfig.model_validate(brand), logo, "05 Jan 2024, 10:30")

    assert page.ops == []
    texts = decorated.texts()
    assert "Acme Digital" in texts
    assert "Page 2 of 5" in texts
    assert "Generated 05 Jan 2024, 10:30" in texts
    assert "Confidential report" in texts

    image = next(op for op in decorated.ops if isinstance(op, ImageOp))
    assert image.width <= LOGO_MAX_W and image.height <= LOGO_MAX_H
    assert image.width / image.height == pytest.approx(4)

    link = next(op for op in decorated.ops if isinstance(op, LinkOp))
    assert link.url == "https://acme.example"


def test_header_without_logo_or_url():
    decorated = decorate(PageOps(number=1, title="Cover"), BrandConfig(), None, "05 Jan 2024, 10:30")
    assert not any(isinstance(op, (ImageOp, LinkOp)) for op in decorated.ops)
    assert "AuditFlow" in decorated.texts()


def test_emit_requires_every_page():
    pages = build_pages({})
    with pytest.raises(ReportGenerationError):
        emit(pages[:4], BrandConfig())
    with pytest.raises(ReportGenerationError):
        emit(list(reversed(pages)), BrandConfig())


def test_emit_wraps_render_failures():
    pages = build_pages({})
    pages[2].add(ImageOp(b"not an image", 10, 40, 20, 10))
    with pytest.raises(ReportGenerationError):
        emit(pages, BrandConfig(), datetime(2024, 1, 5, tzinfo=timezone.utc))


def test_logo_is_embedded(audit_result, brand):
    logo_ref = "data:image/png;base64," + base64.b64encode(_png(120, 40)).decode("ascii")
    artifact = generate_report(audit_result, {**brand, "agencyLogo": logo_ref})
    assert re.search(rb"/Subtype\s*/Image", artifact.content)


def test_unreachable_logo_falls_back_to_text_header(audit_result, brand):
    fetcher = LogoFetcher(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    artifact = asyncio.run(
        generate_report_async(audit_result, {**brand, "agencyLogo": "https://cdn.acme.example/logo.png"}, fetcher)
    )
    assert artifact.content.startswith(b"%PDF")
    assert not re.search(rb"/Subtype\s*/Image", artifact.content)
