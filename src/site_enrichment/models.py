"""
Pydantic models for the website enrichment pipeline.

- Page / RawCaptureBundle: what the crawler captured for one business
- ExtractedData: flat output of the extraction engine
- ExtractedFactBundle: the nested fact document persisted next to the raw capture
- JobInput / FilterRule: job parameters
- Business: an eligible business record
- ScrapeMetrics: per-run aggregate counters
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FetchTier(str, Enum):
    """Fetch tier that supplied a page."""
    HTTP = "http"
    RENDER = "render"
    RENDER_IDLE = "render_idle"


class ScrapeStatus(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"
    FAILED = "failed"


# ============================================================================
# CAPTURE
# ============================================================================

class Page(BaseModel):
    """A single captured page. Immutable once captured."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Final URL of the page")
    title: str = Field("", description="Document title")
    html: str = Field("", description="Raw HTML")
    text_content: str = Field("", description="Visible text with whitespace collapsed")
    links: List[str] = Field(default_factory=list, description="Absolute links found on the page")
    status_code: int = Field(200, description="HTTP status code")
    scraped_at: datetime = Field(default_factory=utc_now)


class RawCaptureBundle(BaseModel):
    """Everything fetched for one business in one run."""
    place_id: str
    website_uri: str
    scraped_at: datetime = Field(default_factory=utc_now)
    method: FetchTier = FetchTier.HTTP
    duration_ms: int = 0
    pages: List[Page] = Field(default_factory=list)


# ============================================================================
# EXTRACTED FACTS
# ============================================================================

class SocialLinks(BaseModel):
    linkedin: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    twitter: Optional[str] = None


class TeamMember(BaseModel):
    name: str
    title: str
    source_url: str


class NewHireMention(BaseModel):
    text: str
    source_url: str


class AcquisitionSignal(BaseModel):
    text: str
    signal_type: Literal[
        "acquired", "sold", "merger", "new_ownership", "parent_company", "rebranded"
    ]
    date_mentioned: Optional[str] = None
    source_url: str


class HistorySnippet(BaseModel):
    text: str
    source_url: str


class ContactFacts(BaseModel):
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    contact_page_url: Optional[str] = None
    social: SocialLinks = Field(default_factory=SocialLinks)


class TeamFacts(BaseModel):
    members: List[TeamMember] = Field(default_factory=list)
    headcount_estimate: Optional[int] = None
    headcount_source: Optional[str] = None
    new_hire_mentions: List[NewHireMention] = Field(default_factory=list)


class AcquisitionFacts(BaseModel):
    signals: List[AcquisitionSignal] = Field(default_factory=list)
    has_signal: bool = False
    summary: Optional[str] = None


class HistoryFacts(BaseModel):
    founded_year: Optional[int] = None
    founded_source: Optional[str] = None
    years_in_business: Optional[int] = None
    snippets: List[HistorySnippet] = Field(default_factory=list)


class ExtractedData(BaseModel):
    """Flat result of running every extractor over a page set."""
    emails: List[str] = Field(default_factory=list)
    phones: List[str] = Field(default_factory=list)
    contact_page_url: Optional[str] = None
    social: SocialLinks = Field(default_factory=SocialLinks)

    team_members: List[TeamMember] = Field(default_factory=list)
    headcount_estimate: Optional[int] = None
    headcount_source: Optional[str] = None
    new_hire_mentions: List[NewHireMention] = Field(default_factory=list)

    acquisition_signals: List[AcquisitionSignal] = Field(default_factory=list)
    has_acquisition_signal: bool = False
    acquisition_summary: Optional[str] = None

    founded_year: Optional[int] = None
    founded_source: Optional[str] = None
    years_in_business: Optional[int] = None
    history_snippets: List[HistorySnippet] = Field(default_factory=list)


class ExtractedFactBundle(BaseModel):
    """Derived facts for one business, persisted beside the raw capture."""
    place_id: str
    website_uri: str
    extracted_at: datetime = Field(default_factory=utc_now)
    contacts: ContactFacts = Field(default_factory=ContactFacts)
    team: TeamFacts = Field(default_factory=TeamFacts)
    acquisition: AcquisitionFacts = Field(default_factory=AcquisitionFacts)
    history: HistoryFacts = Field(default_factory=HistoryFacts)


# ============================================================================
# JOB INPUT
# ============================================================================

class FilterRule(BaseModel):
    field: str = Field(..., description="Record attribute the rule inspects")
    operator: Literal["EXISTS", "NOT_EXISTS", "EQUALS", "NOT_EQUALS"]
    value: Optional[Any] = None


class JobInput(BaseModel):
    """Job parameters. Accepts both camelCase (wire) and snake_case names."""
    model_config = ConfigDict(populate_by_name=True)

    job_id: Optional[str] = Field(None, alias="jobId")
    max_pages_per_site: int = Field(10, alias="maxPagesPerSite")
    concurrency: Optional[int] = Field(None, description="Explicit concurrency override")
    filter_rules: List[FilterRule] = Field(default_factory=list, alias="filterRules")
    skip_if_done: bool = Field(True, alias="skipIfDone")
    force_rescrape: bool = Field(False, alias="forceRescrape")
    place_ids: Optional[List[str]] = Field(None, alias="placeIds")
    fast_mode: bool = Field(False, alias="fastMode")
    early_exit: bool = Field(False, alias="earlyExit")

    @field_validator("max_pages_per_site", mode="before")
    @classmethod
    def _default_max_pages(cls, v):
        return 10 if v is None else v

    @field_validator("skip_if_done", mode="before")
    @classmethod
    def _default_skip_if_done(cls, v):
        # Only an explicit false disables skipping
        return v is not False

    @field_validator("force_rescrape", "fast_mode", "early_exit", mode="before")
    @classmethod
    def _default_false(cls, v):
        return False if v is None else v

    @field_validator("filter_rules", mode="before")
    @classmethod
    def _default_rules(cls, v):
        return [] if v is None else v


# ============================================================================
# BUSINESS
# ============================================================================

class Business(BaseModel):
    place_id: str
    business_name: Optional[str] = None
    website_uri: Optional[str] = None
    phone: Optional[str] = None
    international_phone: Optional[str] = None
    record: Dict[str, Any] = Field(default_factory=dict, description="Raw stored record")

    @classmethod
    def from_record(cls, record: Dict[str, Any], place_id: Optional[str] = None) -> "Business":
        return cls(
            place_id=record.get("place_id") or place_id or "",
            business_name=record.get("business_name"),
            website_uri=record.get("website_uri") or None,
            phone=record.get("phone"),
            international_phone=record.get("international_phone"),
            record=dict(record),
        )

    @property
    def known_phones(self) -> List[str]:
        return [p for p in (self.phone, self.international_phone) if p]


# ============================================================================
# METRICS
# ============================================================================

class ScrapeMetrics(BaseModel):
    processed: int = 0
    failed: int = 0
    filtered: int = 0
    http_count: int = 0
    render_count: int = 0
    render_idle_count: int = 0
    total_pages: int = 0
    total_bytes: int = 0

    def record_tier(self, tier: FetchTier, count: int = 1) -> None:
        if tier == FetchTier.HTTP:
            self.http_count += count
        elif tier == FetchTier.RENDER:
            self.render_count += count
        else:
            self.render_idle_count += count
