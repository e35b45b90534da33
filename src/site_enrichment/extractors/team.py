"""Team members, headcount and new-hire mentions."""

import logging
import re
from collections import Counter
from typing import List, NamedTuple, Optional, Tuple

from ..config import MAX_NEW_HIRES, MAX_TEAM_MEMBERS
from ..models import NewHireMention, TeamMember
from ..patterns import (
    HEADCOUNT_PATTERNS,
    HEADCOUNT_RANGE_RE,
    MAX_HEADCOUNT,
    MIN_HEADCOUNT,
    NEW_HIRE_MAX_LENGTH,
    NEW_HIRE_MIN_LENGTH,
    NEW_HIRE_RE,
    STANDALONE_NAME_RE,
    STANDALONE_TITLE,
    TEAM_MEMBER_RE,
    TEAM_PAGE_URL_RE,
)
from .names import is_valid_person_name, normalize_name, resolve_person_name

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


class HeadcountCandidate(NamedTuple):
    count: int
    source: str
    pattern: str


# ============================================================================
# TEAM MEMBERS
# ============================================================================

def extract_team_members(text: str, source_url: str, html: Optional[str] = None) -> List[TeamMember]:
    """
    Find team members on one page.

    "Name, Title" pairs are taken from the text of any page. On team/about
    style URLs, names standing alone in their own element (e.g. a heading
    on a staff card) are also kept, titled "Team Member".
    """
    members: List[TeamMember] = []
    seen = set()

    for match in TEAM_MEMBER_RE.finditer(text):
        name = resolve_person_name(match.group(1))
        if not name:
            continue
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        title = _WHITESPACE_RE.sub(" ", match.group(2).strip())
        members.append(TeamMember(name=name, title=title, source_url=source_url))

    if html and TEAM_PAGE_URL_RE.search(source_url):
        for match in STANDALONE_NAME_RE.finditer(html):
            name = normalize_name(_WHITESPACE_RE.sub(" ", match.group(1)))
            if not is_valid_person_name(name):
                continue
            key = name.lower()
            if key in seen:
                continue
            seen.add(key)
            members.append(TeamMember(name=name, title=STANDALONE_TITLE, source_url=source_url))

    members = members[:MAX_TEAM_MEMBERS]
    if members:
        preview = ", ".join(f"{m.name} ({m.title})" for m in members[:3])
        logger.debug(f"    [Extract:Team] Found {len(members)} members: {preview}")
    return members


def dedupe_team_members(members: List[TeamMember]) -> List[TeamMember]:
    seen = set()
    unique: List[TeamMember] = []
    for member in members:
        key = member.name.lower()
        if key not in seen:
            seen.add(key)
            unique.append(member)
    return unique[:MAX_TEAM_MEMBERS]


# ============================================================================
# HEADCOUNT
# ============================================================================

def is_plausible_headcount(count: Optional[int]) -> bool:
    return count is not None and MIN_HEADCOUNT <= count <= MAX_HEADCOUNT


def headcount_candidates(text: str) -> List[HeadcountCandidate]:
    candidates: List[HeadcountCandidate] = []
    for name, pattern in HEADCOUNT_PATTERNS:
        for match in pattern.finditer(text):
            count = int(match.group(1))
            if is_plausible_headcount(count):
                candidates.append(HeadcountCandidate(count, match.group(0).strip(), name))

    # Ranges contribute their upper bound
    for match in HEADCOUNT_RANGE_RE.finditer(text):
        low, high = int(match.group(1)), int(match.group(2))
        if is_plausible_headcount(high) and high > low:
            candidates.append(HeadcountCandidate(high, match.group(0).strip(), "range"))
    return candidates


def select_headcount(candidates: List[HeadcountCandidate]) -> Optional[HeadcountCandidate]:
    """
    Most frequent count wins, ties go to the larger count. The stable sort keeps
    the first source string seen for the winning count.
    """
    if not candidates:
        return None
    frequency = Counter(c.count for c in candidates)
    ranked = sorted(candidates, key=lambda c: (-frequency[c.count], -c.count))
    return ranked[0]


def extract_headcount(text: str) -> Tuple[Optional[int], Optional[str]]:
    best = select_headcount(headcount_candidates(text))
    if best is None:
        return None, None
    logger.debug(f'    [Extract:Headcount] ~{best.count} employees from: "{best.source}" ({best.pattern})')
    return best.count, best.source


# ============================================================================
# NEW HIRES
# ============================================================================

def extract_new_hires(text: str, source_url: str) -> List[NewHireMention]:
    mentions = []
    for match in NEW_HIRE_RE.finditer(text):
        context = match.group(0).strip()
        if NEW_HIRE_MIN_LENGTH < len(context) < NEW_HIRE_MAX_LENGTH:
            mentions.append(NewHireMention(text=context, source_url=source_url))
    return mentions[:MAX_NEW_HIRES]
