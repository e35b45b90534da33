"""
Pattern library.

Regular expressions and reference word sets shared by the URL filter and the
extractors. Everything here is immutable module-level data.
"""

import re
from pathlib import Path
from typing import FrozenSet

# ============================================================================
# CONTACT
# ============================================================================

EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

PHONE_RE = re.compile(r"(?:\+1[-.\s]?)?\(?[2-9]\d{2}\)?[-.\s]?\d{3}[-.\s]?\d{4}")

INVALID_EMAIL_MARKERS = ("example.com", "domain.com", "email.com", "yourdomain.com", "sentry")
INVALID_EMAIL_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg")

CONTACT_PAGE_RE = re.compile(r"/(?:contact(?:-us)?|get-in-touch|reach-us)/?$", re.IGNORECASE)

# ============================================================================
# SOCIAL
# ============================================================================

SOCIAL_PATTERNS = {
    "linkedin": re.compile(r"https?://(?:www\.)?linkedin\.com/(?:company|in)/[a-zA-Z0-9_-]+/?"),
    "facebook": re.compile(r"https?://(?:www\.)?facebook\.com/[a-zA-Z0-9._-]+/?"),
    "instagram": re.compile(r"https?://(?:www\.)?instagram\.com/[a-zA-Z0-9._-]+/?"),
    "twitter": re.compile(r"https?://(?:www\.)?(?:twitter\.com|x\.com)/[a-zA-Z0-9_]+/?"),
}

# Path segments that are widgets or share links, not profiles
SOCIAL_NON_PROFILE_SEGMENTS = frozenset({
    "sharer", "sharer.php", "share", "intent", "plugins", "dialog", "tr",
    "home", "login", "hashtag", "search", "explore", "p", "watch", "sharearticle",
})

# ============================================================================
# HISTORY
# ============================================================================

FOUNDED_YEAR_RE = re.compile(r"(?:founded|established|since|est\.?)\s*(?:in\s*)?(\d{4})", re.IGNORECASE)
YEARS_IN_BUSINESS_RE = re.compile(
    r"(\d+)\+?\s*years?\s*(?:in\s*business|of\s*experience|serving)", re.IGNORECASE
)
ANNIVERSARY_RE = re.compile(r"celebrating\s+(\d+)\s*years?", re.IGNORECASE)
FAMILY_OWNED_RE = re.compile(r"family[- ]owned\s+(?:since\s+)?(\d{4})?", re.IGNORECASE)

MIN_FOUNDED_YEAR = 1800

HISTORY_KEYWORDS = (
    "history", "story", "founded", "established", "began", "started",
    "heritage", "tradition", "legacy",
)
SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")

# ============================================================================
# TEAM
# ============================================================================

_ROLE = (
    r"CEO|Owner|President|Co-Founder|Founder|Director|General\s+Manager|Manager"
    r"|Chief\s+[A-Z][a-z]+\s+Officer|Vice\s+President|VP\s+of\s+[A-Z][a-z]+"
    r"|Partner|Principal|Broker|Agent"
)
# Role words never start a name token
_NOT_ROLE = r"(?!(?:Chief|Vice|General|VP|CEO|Owner|President|Founder|Director|Manager|Partner|Principal|Broker|Agent)\b)"
_NAME_TOKEN = (
    _NOT_ROLE
    + r"(?:(?:O'|Mc|Mac)[A-Z][a-z]{1,20}|[A-Z][a-z]{1,20}(?:-[A-Z][a-z]{1,20})?|[A-Z]\.?)"
)

TEAM_MEMBER_RE = re.compile(
    r"\b(" + _NAME_TOKEN + r"(?:[ \t]+" + _NAME_TOKEN + r"){1,3})"
    r"[\s,\-–|:]+(?:is\s+(?:the|our)\s+)?(" + _ROLE + r")\b"
)

# Bare names (no title) are only trusted on team/about style pages
TEAM_PAGE_URL_RE = re.compile(
    r"\b(?:about|team|staff|people|leadership|our-team|meet|who-we-are|management)\b", re.IGNORECASE
)
STANDALONE_NAME_RE = re.compile(
    r"(?:^|>)\s*([A-Za-z]{2,15}(?:\s+[A-Z]\.?)?\s+[A-Za-z]{2,20})\s*(?:<|$)", re.MULTILINE
)
STANDALONE_TITLE = "Team Member"

NEW_HIRE_RE = re.compile(
    r"(?:welcome|joins?(?:\s+(?:us|our|the)\s+team)?|new\s+(?:team\s+)?member|recently\s+hired)\s+([^.!?]+)",
    re.IGNORECASE,
)
NEW_HIRE_MIN_LENGTH = 10
NEW_HIRE_MAX_LENGTH = 200

_COUNT_QUALIFIER = r"(?:over\s+|more\s+than\s+|approximately\s+|about\s+|around\s+)?"

HEADCOUNT_PATTERNS = (
    ("direct", re.compile(
        r"(\d{1,5})\+?\s*(?:employees?|staff(?:\s+members?)?|team\s+members?|professionals?|technicians?|workers?|specialists?)",
        re.IGNORECASE,
    )),
    ("team-of", re.compile(r"(?:team|staff|workforce|crew)\s+of\s+" + _COUNT_QUALIFIER + r"(\d{1,5})\+?", re.IGNORECASE)),
    ("employs", re.compile(r"(?:we\s+)?employ(?:s|ing)?\s+" + _COUNT_QUALIFIER + r"(\d{1,5})\+?", re.IGNORECASE)),
    ("over", re.compile(
        r"(?:over|more\s+than|approximately|about|around|nearly)\s+(\d{1,5})\+?\s*(?:employees?|staff|team\s+members?|professionals?)",
        re.IGNORECASE,
    )),
    ("person-team", re.compile(r"(\d{1,5})\s*-?\s*(?:person|member|man|woman)\s+(?:team|staff|crew|operation)", re.IGNORECASE)),
)
HEADCOUNT_RANGE_RE = re.compile(
    r"(\d{1,5})\s*(?:-|–|to)\s*(\d{1,5})\s*(?:employees?|staff|team\s+members?|professionals?)",
    re.IGNORECASE,
)
MIN_HEADCOUNT = 2
MAX_HEADCOUNT = 10000

# ============================================================================
# ACQUISITION
# ============================================================================

ACQUISITION_PATTERNS = (
    ("acquired", re.compile(r"acquired\s+by\s+([^,.]+)", re.IGNORECASE)),
    ("sold", re.compile(r"sold\s+to\s+([^,.]+)", re.IGNORECASE)),
    ("merger", re.compile(r"merger\s+with\s+([^,.]+)", re.IGNORECASE)),
    ("new_ownership", re.compile(r"(?:under\s+)?new\s+(?:ownership|management)", re.IGNORECASE)),
    ("parent_company", re.compile(r"(?:parent\s+company|subsidiary\s+of)\s+([^,.]+)", re.IGNORECASE)),
    ("rebranded", re.compile(r"(?:formerly\s+known\s+as|rebranded\s+(?:from|to))\s+([^,.]+)", re.IGNORECASE)),
)
YEAR_RE = re.compile(r"\b(20\d{2}|19\d{2})\b")
YEAR_WINDOW = 50

# ============================================================================
# PAGE PRIORITY
# ============================================================================

EXTRACTION_PRIORITY = ("about", "contact", "team", "staff", "leadership")

# ============================================================================
# NAMES
# ============================================================================

NAME_BLACKLIST: FrozenSet[str] = frozenset({
    "home", "business", "service", "services", "company", "inc", "llc", "corp",
    "the", "and", "for", "our", "your", "with", "from", "that", "this", "have",
    "been", "was", "are", "were", "being",
    "colorado", "california", "texas", "florida", "new", "york", "chicago", "los", "angeles",
    "property", "properties", "real", "estate", "construction", "plumbing", "heating",
    "cooling", "electric", "electrical", "roofing", "painting", "cleaning", "maintenance",
    "repair", "repairs",
    "give", "giving", "providing", "offers", "offer", "plugin", "website", "contact",
    "about", "concerns", "concern", "regarding", "information", "details", "more",
    "learn", "read", "click", "here", "page", "site", "web", "online", "today", "now",
    "call", "email",
    "north", "south", "east", "west", "central", "metro", "area", "region", "county", "city",
})


def _load_first_names() -> FrozenSet[str]:
    path = Path(__file__).parent / "data" / "first_names.txt"
    with open(path, "r", encoding="utf-8") as f:
        return frozenset(line.strip().lower() for line in f if line.strip())


FIRST_NAMES: FrozenSet[str] = _load_first_names()
