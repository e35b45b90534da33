"""Social profile links."""

import logging
from typing import Iterable, Optional
from urllib.parse import urlsplit

from ..models import SocialLinks
from ..patterns import SOCIAL_NON_PROFILE_SEGMENTS, SOCIAL_PATTERNS

logger = logging.getLogger(__name__)

PLATFORM_DOMAINS = (
    ("linkedin", ("linkedin.com",)),
    ("facebook", ("facebook.com",)),
    ("instagram", ("instagram.com",)),
    ("twitter", ("twitter.com", "x.com")),
)


def is_profile_url(url: str) -> bool:
    """Share buttons, intents and tracking pixels are not profiles."""
    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    segments = [s for s in path.split("/") if s]
    if not segments:
        return False
    return segments[0].lower() not in SOCIAL_NON_PROFILE_SEGMENTS


def _first_profile(html: str, platform: str) -> Optional[str]:
    for match in SOCIAL_PATTERNS[platform].finditer(html):
        if is_profile_url(match.group(0)):
            return match.group(0)
    return None


def extract_social_links(html: str) -> SocialLinks:
    """First profile link per platform found in the page markup."""
    social = SocialLinks(**{platform: _first_profile(html, platform) for platform in SOCIAL_PATTERNS})
    found = {k: v for k, v in social.model_dump().items() if v}
    if found:
        logger.debug(f"    [Extract:Social] Found: {found}")
    return social


def social_from_urls(urls: Iterable[str]) -> SocialLinks:
    """Classify Schema.org sameAs URLs by platform, first per platform wins."""
    social = SocialLinks()
    for url in urls:
        try:
            host = (urlsplit(url).hostname or "").lower()
        except ValueError:
            continue
        if host.startswith("www."):
            host = host[4:]
        for platform, domains in PLATFORM_DOMAINS:
            if host in domains or any(host.endswith("." + d) for d in domains):
                if getattr(social, platform) is None:
                    setattr(social, platform, url)
                break
    return social


def merge_social(target: SocialLinks, source: SocialLinks) -> None:
    """Fill platforms still missing in target."""
    for platform in SOCIAL_PATTERNS:
        if getattr(target, platform) is None and getattr(source, platform):
            setattr(target, platform, getattr(source, platform))
