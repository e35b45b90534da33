"""Email, phone and contact-page extraction."""

import logging
from typing import Iterable, List, Optional
from urllib.parse import urlsplit

from ..config import MAX_EMAILS, MAX_PHONES
from ..models import Page
from ..patterns import (
    CONTACT_PAGE_RE,
    EMAIL_RE,
    INVALID_EMAIL_MARKERS,
    INVALID_EMAIL_SUFFIXES,
    PHONE_RE,
)
from .phone import is_fake_phone, normalize_phone

logger = logging.getLogger(__name__)


def is_valid_email(email: str) -> bool:
    lowered = email.lower()
    if any(marker in lowered for marker in INVALID_EMAIL_MARKERS):
        return False
    return not lowered.endswith(INVALID_EMAIL_SUFFIXES)


def extract_emails(text: str) -> List[str]:
    """Emails in the text, placeholders and image filenames removed."""
    emails = [e for e in EMAIL_RE.findall(text) if is_valid_email(e)]
    emails = list(dict.fromkeys(emails))[:MAX_EMAILS]
    if emails:
        logger.debug(f"    [Extract:Emails] Found {len(emails)}: {', '.join(emails[:3])}")
    return emails


def is_new_phone(phone: str, known: Iterable[str]) -> bool:
    """A normalized phone worth reporting: 10 digits, real, not already known."""
    return len(phone) == 10 and phone not in known and not is_fake_phone(phone)


def extract_phones(text: str, known_phones: Iterable[str] = ()) -> List[str]:
    """
    Extract US phone numbers as 10 bare digits.

    Numbers already known for the business and fake/test numbers are dropped.
    """
    known = {normalize_phone(p) for p in known_phones}
    normalized = [normalize_phone(match) for match in PHONE_RE.findall(text)]
    phones = [p for p in dict.fromkeys(normalized) if is_new_phone(p, known)][:MAX_PHONES]
    if phones:
        logger.debug(f"    [Extract:Phones] Found {len(phones)}: {', '.join(phones[:3])}")
    return phones


def find_contact_page_url(pages: List[Page]) -> Optional[str]:
    for page in pages:
        try:
            path = urlsplit(page.url).path
        except ValueError:
            continue
        if CONTACT_PAGE_RE.search(path):
            return page.url
    return None
