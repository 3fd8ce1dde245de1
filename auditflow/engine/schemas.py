from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from auditflow.engine.scoring import RGB, clamp_score, hex_to_rgb

DEFAULT_AGENCY_NAME = "AuditFlow"
DEFAULT_ACCENT_COLOR = "#0075FF"
DEFAULT_REPORT_FOOTER = "Confidential — prepared exclusively for the client named above."

BROKEN_LINK_STATUSES = {"pass", "warning", "fail"}
HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")

Score = Annotated[float, BeforeValidator(clamp_score)]


def _truthy(value: Any) -> bool:
    if isinstance(value, dict):
        return bool(value.get("present"))
    return bool(value)


Flag = Annotated[bool, BeforeValidator(_truthy)]


def parse_datetime(value: str | datetime | None) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    text = (value or "").strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class _Record(BaseModel):
    """Base for every input record: nulls fall back to the field default, unknown keys are ignored."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


# --- lighthouse -------------------------------------------------------------


class Category(_Record):
    title: str = ""
    score: Score = 0.0


class VitalMetric(_Record):
    score: float = 0.0
    display_value: str = Field("", alias="displayValue")
    rating: str = ""

    @property
    def percent(self) -> int:
        return math.floor(clamp_score(self.score * 100) + 0.5)


class DisplayMetric(_Record):
    display_value: str = Field("", alias="displayValue")


class CoreWebVitals(_Record):
    lcp: Optional[VitalMetric] = None
    layout_shift: Optional[VitalMetric] = Field(None, alias="cls")
    tbt: Optional[VitalMetric] = None


class PerformanceMetrics(_Record):
    fcp: Optional[DisplayMetric] = None
    speed_index: Optional[DisplayMetric] = Field(None, alias="speedIndex")
    tti: Optional[DisplayMetric] = None


class Metrics(_Record):
    core_web_vitals: CoreWebVitals = Field(default_factory=CoreWebVitals, alias="coreWebVitals")
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)


class Savings(_Record):
    ms: Optional[float] = None


class Opportunity(_Record):
    title: str = ""
    description: str = ""
    savings_ms: Optional[float] = None
    savings: Optional[Savings] = None

    @property
    def saved_ms(self) -> Optional[float]:
        if self.savings_ms:
            return self.savings_ms
        if self.savings and self.savings.ms:
            return self.savings.ms
        return None


class Lighthouse(_Record):
    categories: dict[str, Category] = Field(default_factory=dict)
    metrics: Metrics = Field(default_factory=Metrics)
    opportunities: list[Opportunity] = Field(default_factory=list)


# --- site checks ------------------------------------------------------------


class BrokenLink(_Record):
    url: str = ""
    status_code: Optional[str] = None
    type: str = ""


class BrokenLinks(_Record):
    status: str = "unknown"
    total_checked: int = 0
    broken_count: int = 0
    broken_links: list[BrokenLink] = Field(default_factory=list)

    @field_validator("status", mode="before")
    @classmethod
    def _known_status(cls, value: Any) -> str:
        text = str(value).strip().lower()
        return text if text in BROKEN_LINK_STATUSES else "unknown"


class ImageIssues(_Record):
    missing_alt_count: int = 0
    missing_dimensions_count: int = 0
    old_format_count: int = 0
    no_lazy_loading_count: int = 0


class ImageOptimization(_Record):
    score: Score = 0.0
    total_images: int = 0
    issues: ImageIssues = Field(default_factory=ImageIssues)


class StructuredData(_Record):
    score: Score = 0.0
    status: str = ""
    has_json_ld: Flag = False
    has_open_graph: Flag = False
    has_twitter_card: Flag = False
    has_microdata: Flag = False
    json_ld_types: list[str] = Field(default_factory=list)
    open_graph_properties: list[str] = Field(default_factory=list)
    twitter_card_type: str = ""
    recommendations: list[str] = Field(default_factory=list)


class ContentQuality(_Record):
    score: Score = 0.0
    word_count: int = 0
    sentence_count: int = 0
    avg_sentence_length: float = 0.0
    avg_paragraph_length: float = 0.0
    content_to_code_ratio: float = 0.0
    reading_ease_score: float = 0.0
    reading_level: str = ""
    heading_structure: dict[str, int] = Field(default_factory=dict)


class TitleTag(_Record):
    present: Flag = False
    content: str = ""


class MetaDescription(_Record):
    present: Flag = False
    length: int = 0


class Presence(_Record):
    present: Flag = False


class TechnicalSeo(_Record):
    title: TitleTag = Field(default_factory=TitleTag)
    meta_description: MetaDescription = Field(default_factory=MetaDescription)
    canonical: Presence = Field(default_factory=Presence)
    robots_txt: Flag = False
    sitemap_xml: Flag = False
    headings: dict[str, int] = Field(default_factory=dict)


class SecurityHeaders(_Record):
    strict_transport_security: Flag = False
    x_frame_options: Flag = False
    x_content_type_options: Flag = False
    content_security_policy: Flag = False


class Security(_Record):
    https: Flag = False
    security_headers: SecurityHeaders = Field(default_factory=SecurityHeaders)


class AuditResult(_Record):
    url: str = ""
    audit_date: str = ""
    overall_score: Score = 0.0
    lighthouse: Lighthouse = Field(default_factory=Lighthouse)
    broken_links: BrokenLinks = Field(default_factory=BrokenLinks)
    image_optimization: ImageOptimization = Field(default_factory=ImageOptimization)
    structured_data: StructuredData = Field(default_factory=StructuredData)
    content_quality: ContentQuality = Field(default_factory=ContentQuality)
    technical_seo: TechnicalSeo = Field(default_factory=TechnicalSeo)
    security: Security = Field(default_factory=Security)

    @field_validator("audit_date", mode="before")
    @classmethod
    def _date_to_text(cls, value: Any) -> str:
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    def audited_at(self) -> Optional[datetime]:
        return parse_datetime(self.audit_date)


# --- branding ---------------------------------------------------------------


class BrandConfig(_Record):
    agency_name: str = Field(DEFAULT_AGENCY_NAME, alias="agencyName")
    agency_logo: Optional[str] = Field(None, alias="agencyLogo")
    agency_url: str = Field("", alias="agencyUrl")
    accent_color: str = Field(DEFAULT_ACCENT_COLOR, alias="accentColor")
    report_footer: str = Field(DEFAULT_REPORT_FOOTER, alias="reportFooter")
    prepared_by: str = Field("", alias="preparedBy")
    client_name: str = Field("", alias="clientName")

    @field_validator("agency_name")
    @classmethod
    def _require_agency_name(cls, value: str) -> str:
        clean = value.strip()
        if not clean:
            raise ValueError("agencyName must not be empty")
        return clean

    @field_validator("accent_color")
    @classmethod
    def _normalize_accent(cls, value: str) -> str:
        match = HEX_COLOR.match(value.strip())
        if not match:
            raise ValueError("accentColor must be a 6-digit hex color")
        return f"#{match.group(1).upper()}"

    @field_validator("agency_logo")
    @classmethod
    def _blank_logo(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        clean = value.strip()
        return clean or None

    @property
    def accent_rgb(self) -> RGB:
        return hex_to_rgb(self.accent_color)


def as_audit_result(value: AuditResult | dict | None) -> AuditResult:
    if isinstance(value, AuditResult):
        return value
    return AuditResult.model_validate(value or {})


def as_brand_config(value: BrandConfig | dict | None) -> BrandConfig:
    if isinstance(value, BrandConfig):
        return value
    return BrandConfig.model_validate(value or {})
