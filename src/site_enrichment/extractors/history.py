"""Founding year and history snippets."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ..config import MAX_HISTORY_SNIPPETS, MAX_SNIPPET_LENGTH
from ..models import HistorySnippet
from ..patterns import (
    ANNIVERSARY_RE,
    FAMILY_OWNED_RE,
    FOUNDED_YEAR_RE,
    HISTORY_KEYWORDS,
    MIN_FOUNDED_YEAR,
    SENTENCE_SPLIT_RE,
    YEARS_IN_BUSINESS_RE,
)

logger = logging.getLogger(__name__)


def current_year() -> int:
    return datetime.now().year


def extract_founded_year(text: str) -> Tuple[Optional[int], Optional[str]]:
    """
    Resolve the founding year from text.

    Phrasings are tried in a fixed order and the first hit wins:
    founded/established/since YYYY, N years in business, celebrating N years,
    family-owned since YYYY.

    Returns:
        (year, matched text) or (None, None)
    """
    this_year = current_year()

    for match in FOUNDED_YEAR_RE.finditer(text):
        year = int(match.group(1))
        if MIN_FOUNDED_YEAR <= year <= this_year:
            return year, match.group(0).strip()

    for pattern in (YEARS_IN_BUSINESS_RE, ANNIVERSARY_RE):
        for match in pattern.finditer(text):
            years = int(match.group(1))
            if 0 < years < 200:
                return this_year - years, match.group(0).strip()

    for match in FAMILY_OWNED_RE.finditer(text):
        if match.group(1):
            year = int(match.group(1))
            if MIN_FOUNDED_YEAR <= year <= this_year:
                return year, match.group(0).strip()

    return None, None


def years_in_business(founded_year: Optional[int]) -> Optional[int]:
    if founded_year is None:
        return None
    return current_year() - founded_year


def extract_history_snippets(text: str, source_url: str) -> List[HistorySnippet]:
    snippets = []
    for sentence in SENTENCE_SPLIT_RE.split(text):
        sentence = sentence.strip()
        if len(sentence) <= 20:
            continue
        lowered = sentence.lower()
        if any(keyword in lowered for keyword in HISTORY_KEYWORDS):
            snippets.append(HistorySnippet(text=sentence[:MAX_SNIPPET_LENGTH], source_url=source_url))
            if len(snippets) >= MAX_HISTORY_SNIPPETS:
                break
    return snippets
