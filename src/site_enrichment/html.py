"""
HTML helpers: text, title and link extraction, client-render detection,
anti-bot challenge detection and Schema.org JSON-LD lookup.
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import extruct
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field

from .config import MIN_TEXT_FOR_STATIC

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")

SPA_PATTERNS = [
    re.compile(r"<div\s+id=[\"']root[\"'][^>]*>\s*</div>", re.IGNORECASE),
    re.compile(r"<div\s+id=[\"']app[\"'][^>]*>\s*</div>", re.IGNORECASE),
    re.compile(r"<div\s+id=[\"']__next[\"'][^>]*>\s*</div>", re.IGNORECASE),
    re.compile(r"Loading\.\.\.", re.IGNORECASE),
    re.compile(r"<noscript[^>]*>.*(?:enable|requires?)\s+JavaScript", re.IGNORECASE),
]

CHALLENGE_MARKERS = (
    "Just a moment",
    "cf-browser-verification",
    "cf_chl_opt",
    "challenge-platform",
    "__cf_chl_f_tk",
    "Enable JavaScript and cookies",
    "Checking your browser",
    "cf-spinner",
)

SCHEMA_TYPES_OF_INTEREST = frozenset({
    "LocalBusiness", "Organization", "Corporation", "HomeAndConstructionBusiness",
    "ProfessionalService", "FinancialService", "InsuranceAgency", "RealEstateAgent",
    "LegalService", "Dentist", "Physician", "Store", "Restaurant", "AutoRepair",
    "Plumber", "Electrician", "HVACBusiness", "RoofingContractor", "GeneralContractor",
})


def _title_from_soup(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return ""


def _links_from_soup(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Absolute hrefs in document order, skipping anchors, javascript:, mailto: and tel:."""
    links: List[str] = []
    for element in soup.find_all(href=True):
        href = element.get("href", "").strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        try:
            links.append(urljoin(base_url, href))
        except ValueError:
            continue
    return list(dict.fromkeys(links))


def _text_from_soup(soup: BeautifulSoup) -> str:
    # Mutates the soup: run after title and link extraction
    for tag in soup(["script", "style", "template"]):
        tag.decompose()
    return _WHITESPACE_RE.sub(" ", soup.get_text(separator=" ")).strip()


def extract_text_content(html: str) -> str:
    """Visible text of a document with whitespace collapsed."""
    if not html:
        return ""
    return _text_from_soup(BeautifulSoup(html, "lxml"))


def parse_page(html: str, base_url: str) -> Dict[str, Any]:
    """Title, visible text and links from a single parse of the document."""
    if not html:
        return {"title": "", "text_content": "", "links": []}
    soup = BeautifulSoup(html, "lxml")
    title = _title_from_soup(soup)
    links = _links_from_soup(soup, base_url)
    return {"title": title, "text_content": _text_from_soup(soup), "links": links}


def needs_render(html: str, text_content: Optional[str] = None) -> bool:
    """True when the markup looks client-rendered (thin text or an empty app shell)."""
    if text_content is None:
        text_content = extract_text_content(html)
    if len(text_content) < MIN_TEXT_FOR_STATIC:
        return True
    return any(pattern.search(html) for pattern in SPA_PATTERNS)


def is_challenge_page(html: str) -> bool:
    """Detect anti-bot interstitials (Cloudflare style "Just a moment...")."""
    if not html:
        return False
    return any(marker in html for marker in CHALLENGE_MARKERS)


# ============================================================================
# SCHEMA.ORG
# ============================================================================

class SchemaOrgData(BaseModel):
    """Business facts published as Schema.org JSON-LD."""
    types: List[str] = Field(default_factory=list)
    name: Optional[str] = None
    email: Optional[str] = None
    telephone: Optional[str] = None
    founding_year: Optional[int] = None
    same_as: List[str] = Field(default_factory=list)
    number_of_employees: Optional[int] = None
    founder: Optional[str] = None


def _iter_jsonld_items(data: List[Any]):
    for entry in data:
        if not isinstance(entry, dict):
            continue
        graph = entry.get("@graph")
        if isinstance(graph, list):
            for item in graph:
                if isinstance(item, dict):
                    yield item
        else:
            yield entry


def _as_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def _parse_schema_item(item: Dict[str, Any], types: List[str]) -> Optional[SchemaOrgData]:
    result: Dict[str, Any] = {}

    if item.get("name"):
        result["name"] = str(item["name"])
    if item.get("email"):
        result["email"] = re.sub(r"^mailto:", "", str(item["email"]), flags=re.IGNORECASE)
    if item.get("telephone"):
        result["telephone"] = str(item["telephone"])

    founding = item.get("foundingDate")
    if founding:
        try:
            year = int(str(founding)[:4])
        except ValueError:
            year = None
        if year is not None and 1800 <= year <= datetime.now().year:
            result["founding_year"] = year

    same_as = item.get("sameAs")
    if same_as:
        same_as = same_as if isinstance(same_as, list) else [same_as]
        result["same_as"] = [u for u in same_as if isinstance(u, str) and u.startswith("http")]

    employees = item.get("numberOfEmployees")
    if isinstance(employees, dict):
        # QuantitativeValue
        count = _as_number(employees.get("value")) or _as_number(employees.get("minValue"))
    else:
        count = _as_number(employees)
    if count:
        result["number_of_employees"] = count

    founder = item.get("founder")
    if isinstance(founder, list) and founder:
        founder = founder[0]
    if isinstance(founder, str) and founder.strip():
        result["founder"] = founder.strip()
    elif isinstance(founder, dict) and founder.get("name"):
        result["founder"] = str(founder["name"]).strip()

    if not result:
        return None
    return SchemaOrgData(types=types, **result)


def extract_schema_org(html: str, url: str = "") -> Optional[SchemaOrgData]:
    """
    Find the first business/organization JSON-LD node in the document.

    Args:
        html: Page HTML
        url: Page URL, used by extruct to resolve relative references

    Returns:
        SchemaOrgData for the first relevant node, or None
    """
    if not html or "application/ld+json" not in html:
        return None
    try:
        data = extruct.extract(html, base_url=url or None, syntaxes=["json-ld"], errors="ignore")
    except Exception as e:
        logger.debug(f"JSON-LD extraction error: {e}")
        return None

    for item in _iter_jsonld_items(data.get("json-ld", [])):
        item_type = item.get("@type")
        types = item_type if isinstance(item_type, list) else [item_type]
        types = [t for t in types if isinstance(t, str)]
        if not any(t in SCHEMA_TYPES_OF_INTEREST for t in types):
            continue
        parsed = _parse_schema_item(item, types)
        if parsed is not None:
            logger.debug(f"[Schema.org] Found {'/'.join(types)} on {url}")
            return parsed
    return None
