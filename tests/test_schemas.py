from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from auditflow.engine.schemas import AuditResult, BrandConfig, as_brand_config


def test_empty_result_resolves_to_safe_defaults():
    result = AuditResult.model_validate({})
    assert result.overall_score == 0
    assert result.lighthouse.categories == {}
    assert result.lighthouse.opportunities == []
    assert result.lighthouse.metrics.core_web_vitals.lcp is None
    assert result.broken_links.status == "unknown"
    assert result.broken_links.broken_count == 0
    assert result.image_optimization.issues.missing_alt_count == 0
    assert result.structured_data.has_json_ld is False
    assert result.content_quality.heading_structure == {}
    assert result.technical_seo.meta_description.present is False
    assert result.security.security_headers.content_security_policy is False
    assert result.audited_at() is None


def test_nulls_fall_back_to_defaults():
    result = AuditResult.model_validate(
        {
            "overall_score": None,
            "lighthouse": None,
            "broken_links": {"broken_count": None, "broken_links": None},
            "structured_data": {"twitter_card_type": None, "json_ld_types": None},
            "security": {"https": None, "security_headers": None},
        }
    )
    assert result.overall_score == 0
    assert result.lighthouse.opportunities == []
    assert result.broken_links.broken_links == []
    assert result.structured_data.twitter_card_type == ""
    assert result.security.https is False


def test_fixture_is_normalized(audit_result):
    result = AuditResult.model_validate(audit_result)
    vitals = result.lighthouse.metrics.core_web_vitals
    assert vitals.layout_shift is not None
    assert vitals.layout_shift.display_value == "0.02"
    assert vitals.lcp.percent == 54
    assert result.lighthouse.metrics.performance.speed_index.display_value == "4.2 s"
    assert [o.saved_ms for o in result.lighthouse.opportunities] == [1234.4, 870, None]
    assert result.broken_links.broken_links[0].status_code == "404"
    assert result.broken_links.broken_links[1].status_code is None
    assert result.security.security_headers.strict_transport_security is True
    assert result.security.security_headers.content_security_policy is False
    assert result.audited_at() == datetime(2024, 1, 5, 10, 30, tzinfo=timezone.utc)


def test_scores_are_clamped_on_input():
    result = AuditResult.model_validate(
        {"overall_score": 140, "lighthouse": {"categories": {"seo": {"title": "SEO", "score": -3}}}}
    )
    assert result.overall_score == 100
    assert result.lighthouse.categories["seo"].score == 0
    assert AuditResult.model_validate({"overall_score": 89.6}).overall_score == 89.6


def test_unknown_broken_link_status_is_normalized():
    assert AuditResult.model_validate({"broken_links": {"status": "FAIL"}}).broken_links.status == "fail"
    assert AuditResult.model_validate({"broken_links": {"status": "skipped"}}).broken_links.status == "unknown"


def test_presence_objects_count_as_flags():
    result = AuditResult.model_validate({"technical_seo": {"robots_txt": {"present": True}, "sitemap_xml": {}}})
    assert result.technical_seo.robots_txt is True
    assert result.technical_seo.sitemap_xml is False


def test_brand_accepts_wire_keys_and_normalizes_color(brand):
    config = BrandConfig.model_validate({**brand, "accentColor": "8766ff", "agencyLogo": "  "})
    assert config.agency_name == "Acme Digital"
    assert config.accent_color == "#8766FF"
    assert config.accent_rgb == (135, 102, 255)
    assert config.agency_logo is None
    assert config.client_name == "Client Co"


def test_brand_defaults():
    config = as_brand_config(None)
    assert config.agency_name == "AuditFlow"
    assert config.accent_color == "#0075FF"
    assert config.client_name == ""


@pytest.mark.parametrize("payload", [{"agencyName": "   "}, {"accentColor": "#12345"}, {"accentColor": "blue"}])
def test_brand_rejects_invalid_values(payload):
    with pytest.raises(ValidationError):
        BrandConfig.model_validate(payload)
