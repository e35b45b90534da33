"""
Extraction engine.

Turns the pages captured for one business into ExtractedData. Pages are
processed in priority order (about/contact/team first) so first-match-wins
fields favor the most reliable pages. Every sub-extraction is isolated: one
failing step leaves its field empty and never blocks the others.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, List, Optional, TypeVar

from ..config import (
    MAX_ACQUISITION_SIGNALS,
    MAX_EMAILS,
    MAX_HISTORY_SNIPPETS,
    MAX_NEW_HIRES,
    MAX_PHONES,
)
from ..html import SchemaOrgData, extract_schema_org
from ..models import (
    AcquisitionFacts,
    AcquisitionSignal,
    ContactFacts,
    ExtractedData,
    ExtractedFactBundle,
    HistoryFacts,
    HistorySnippet,
    NewHireMention,
    Page,
    SocialLinks,
    TeamFacts,
    TeamMember,
)
from ..patterns import EXTRACTION_PRIORITY
from .acquisition import extract_acquisition_signals, summarize_signals
from .contact import extract_emails, extract_phones, find_contact_page_url, is_new_phone, is_valid_email
from .history import extract_founded_year, extract_history_snippets, years_in_business
from .phone import normalize_phone
from .social import extract_social_links, merge_social, social_from_urls
from .team import (
    dedupe_team_members,
    extract_headcount,
    extract_new_hires,
    extract_team_members,
    is_plausible_headcount,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA_SOURCE = "Schema.org JSON-LD"


def _safe(step: str, url: str, fn: Callable[[], T], default: T) -> T:
    try:
        return fn()
    except Exception as e:
        logger.warning(f"⚠️  Extraction step '{step}' failed on {url}: {e}")
        return default


def sort_pages_by_priority(pages: List[Page]) -> List[Page]:
    """Stable sort: pages whose URL mentions about, contact, team, staff or leadership come first."""
    def key(page: Page):
        url = page.url.lower()
        return tuple(0 if keyword in url else 1 for keyword in EXTRACTION_PRIORITY)
    return sorted(pages, key=key)


def extract_all_data(pages: List[Page], known_phones: Iterable[str] = ()) -> ExtractedData:
    """
    Run every extractor over a page set.

    Args:
        pages: Pages captured for one business
        known_phones: Phone numbers already on the business record

    Returns:
        ExtractedData (never raises; missing facts are None/empty)
    """
    known = {normalize_phone(p) for p in known_phones if p}

    emails: List[str] = []
    phones: List[str] = []
    social = SocialLinks()
    team_members: List[TeamMember] = []
    new_hires: List[NewHireMention] = []
    signals: List[AcquisitionSignal] = []
    snippets: List[HistorySnippet] = []
    founded_year: Optional[int] = None
    founded_source: Optional[str] = None
    headcount: Optional[int] = None
    headcount_source: Optional[str] = None
    schema: Optional[SchemaOrgData] = None

    ordered = sort_pages_by_priority(pages)
    logger.debug(f"  [Extraction] Processing {len(ordered)} pages...")

    for page in ordered:
        text = page.text_content
        url = page.url

        # First page carrying business JSON-LD wins
        if schema is None:
            schema = _safe("schema_org", url, lambda: extract_schema_org(page.html, url), None)
            if schema is not None:
                if schema.email and is_valid_email(schema.email):
                    emails.append(schema.email)
                if schema.telephone:
                    phone = normalize_phone(schema.telephone)
                    if is_new_phone(phone, known):
                        phones.append(phone)
                if schema.founding_year and founded_year is None:
                    founded_year, founded_source = schema.founding_year, SCHEMA_SOURCE
                if headcount is None and is_plausible_headcount(schema.number_of_employees):
                    headcount, headcount_source = schema.number_of_employees, SCHEMA_SOURCE
                if schema.same_as:
                    merge_social(social, social_from_urls(schema.same_as))
                if schema.founder:
                    team_members.append(TeamMember(name=schema.founder, title="Founder", source_url=url))

        emails.extend(_safe("emails", url, lambda: extract_emails(text), []))
        phones.extend(_safe("phones", url, lambda: extract_phones(text, known), []))
        merge_social(social, _safe("social", url, lambda: extract_social_links(page.html), SocialLinks()))

        if founded_year is None:
            founded_year, founded_source = _safe(
                "founded_year", url, lambda: extract_founded_year(text), (None, None)
            )

        if headcount is None:
            headcount, headcount_source = _safe(
                "headcount", url, lambda: extract_headcount(text), (None, None)
            )

        team_members.extend(_safe("team", url, lambda: extract_team_members(text, url, page.html), []))
        new_hires.extend(_safe("new_hires", url, lambda: extract_new_hires(text, url), []))
        signals.extend(_safe("acquisition", url, lambda: extract_acquisition_signals(text, url), []))
        snippets.extend(_safe("history", url, lambda: extract_history_snippets(text, url), []))

    signals = signals[:MAX_ACQUISITION_SIGNALS]
    data = ExtractedData(
        emails=list(dict.fromkeys(emails))[:MAX_EMAILS],
        phones=list(dict.fromkeys(phones))[:MAX_PHONES],
        contact_page_url=_safe("contact_page", "", lambda: find_contact_page_url(pages), None),
        social=social,
        team_members=dedupe_team_members(team_members),
        headcount_estimate=headcount,
        headcount_source=headcount_source,
        new_hire_mentions=new_hires[:MAX_NEW_HIRES],
        acquisition_signals=signals,
        has_acquisition_signal=bool(signals),
        acquisition_summary=summarize_signals(signals),
        founded_year=founded_year,
        founded_source=founded_source,
        years_in_business=years_in_business(founded_year),
        history_snippets=snippets[:MAX_HISTORY_SNIPPETS],
    )
    log_extraction_summary(data, schema)
    return data


def log_extraction_summary(data: ExtractedData, schema: Optional[SchemaOrgData] = None) -> None:
    logger.info("  [Extraction Summary]")
    if schema is not None:
        logger.info(f"    Schema.org: ✓ ({'/'.join(schema.types)})")
    logger.info(f"    Emails: {', '.join(data.emails) or 'none'}")
    logger.info(f"    Phones: {', '.join(data.phones) or 'none'}")
    profiles = ", ".join(f"{k}: {v}" for k, v in data.social.model_dump().items() if v)
    logger.info(f"    Social: {profiles or 'none'}")
    if data.team_members:
        logger.info(f"    Team members ({len(data.team_members)}):")
        for member in data.team_members[:5]:
            logger.info(f"      - {member.name} ({member.title})")
    else:
        logger.info("    Team members: none")
    source = f' (from: "{data.headcount_source}")' if data.headcount_source else ""
    logger.info(f"    Headcount: {data.headcount_estimate or 'unknown'}{source}")
    source = f' (from: "{data.founded_source}")' if data.founded_source else ""
    logger.info(f"    Founded: {data.founded_year or 'unknown'}{source}")
    logger.info(f"    Acquisition signals: {len(data.acquisition_signals)}")
    logger.info(f"    History snippets: {len(data.history_snippets)}")


def build_fact_bundle(
    place_id: str,
    website_uri: str,
    data: ExtractedData,
    extracted_at: Optional[datetime] = None,
) -> ExtractedFactBundle:
    """Nest ExtractedData into the persisted fact bundle shape."""
    bundle = ExtractedFactBundle(
        place_id=place_id,
        website_uri=website_uri,
        contacts=ContactFacts(
            emails=data.emails,
            phones=data.phones,
            contact_page_url=data.contact_page_url,
            social=data.social,
        ),
        team=TeamFacts(
            members=data.team_members,
            headcount_estimate=data.headcount_estimate,
            headcount_source=data.headcount_source,
            new_hire_mentions=data.new_hire_mentions,
        ),
        acquisition=AcquisitionFacts(
            signals=data.acquisition_signals,
            has_signal=data.has_acquisition_signal,
            summary=data.acquisition_summary,
        ),
        history=HistoryFacts(
            founded_year=data.founded_year,
            founded_source=data.founded_source,
            years_in_business=data.years_in_business,
            snippets=data.history_snippets,
        ),
    )
    if extracted_at is not None:
        bundle.extracted_at = extracted_at
    return bundle


__all__ = [
    "build_fact_bundle",
    "extract_all_data",
    "sort_pages_by_priority",
]
