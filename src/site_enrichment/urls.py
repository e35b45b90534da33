"""
URL helpers for the crawl frontier: normalization, same-site checks,
the deny-list of non-content URL shapes and priority ordering.
"""

import re
from typing import List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset({
    "utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content",
    "gclid", "fbclid", "msclkid",
})

# ============================================================================
# DENY-LIST
# ============================================================================

SKIP_PATTERNS = [re.compile(p, re.IGNORECASE) for p in (
    # WordPress internals and feeds
    r"/wp-json/",
    r"/wp-includes/",
    r"/wp-content/(?:plugins|themes|uploads)/",
    r"/wp-admin/",
    r"/xmlrpc\.php",
    r"/wp-login\.php",
    r"/feed/?$",
    r"/comments/feed/",
    r"/trackback/",

    # Static assets
    r"\.(?:css|js|woff2?|ttf|ico|svg|png|jpe?g|gif|webp)(?:\?.*)?$",
    # Documents and media
    r"\.(?:pdf|docx?|xlsx?|zip|rar|exe|dmg|mp3|mp4|wav|avi|mov|wmv|json|xml)$",

    # Site-builder junk
    r"/copy-of-",
    r"/_api/",
    r"/wix-",
    r"/api/",
    r"/static/",

    # Low value or duplicate content
    r"/cdn-cgi/",
    r"/oembed",
    r"\?replytocom=",
    r"/attachment/",
    r"/author/",
    r"/tag/",
    r"/category/",
    r"/page/\d+",
    r"\?share=",
    r"\?print=",
    r"/print/",
    r"/amp/?$",
    r"/embed/?$",

    # Accounts, commerce and search (whole path segments only)
    r"/login(?:[/?.]|$)",
    r"/register(?:[/?.]|$)",
    r"/cart(?:[/?.]|$)",
    r"/checkout(?:[/?.]|$)",
    r"/my-account(?:[/?.]|$)",
    r"/search(?:[/?.]|$)",
    r"\?s=",
    r"\?p=\d+",
    r"/calendar/",
    r"/events/",
    r"/rss/?$",
)]

PRIORITY_PATHS = [
    "/about", "/about-us", "/about-us/", "/about/",
    "/contact", "/contact-us", "/contact-us/", "/contact/",
    "/team", "/our-team", "/staff", "/leadership", "/people",
    "/news", "/blog", "/press",
]


def _hostname(url: str) -> Optional[str]:
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    if not host:
        return None
    return host[4:] if host.startswith("www.") else host


def normalize_url(url: str) -> Optional[str]:
    """
    Normalize a URL for frontier bookkeeping.

    Drops the fragment and tracking query parameters, lower-cases the host
    and gives bare hosts a "/" path.

    Returns:
        Normalized URL, or None if the URL is not a valid http(s) URL
    """
    if not url:
        return None
    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not host:
        return None

    # Credentials in the netloc keep their case
    netloc = parts.netloc if "@" in parts.netloc else parts.netloc.lower()

    query = parts.query
    if query:
        params = parse_qsl(query, keep_blank_values=True)
        kept = [(k, v) for k, v in params if k not in TRACKING_PARAMS]
        if len(kept) != len(params):
            query = urlencode(kept)

    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, query, ""))


def is_same_domain(url: str, other: str) -> bool:
    """True when both URLs share a hostname, ignoring a leading 'www.'."""
    host_a = _hostname(url)
    host_b = _hostname(other)
    return host_a is not None and host_a == host_b


def should_skip_url(url: str) -> bool:
    return any(pattern.search(url) for pattern in SKIP_PATTERNS)


def _priority_score(url: str) -> int:
    try:
        path = urlsplit(url).path.lower()
    except ValueError:
        return len(PRIORITY_PATHS)
    for index, prefix in enumerate(PRIORITY_PATHS):
        if prefix in path:
            return index
    return len(PRIORITY_PATHS)


def sort_by_priority(urls: List[str]) -> List[str]:
    """Stable sort putting about/contact/team pages first."""
    return sorted(urls, key=_priority_score)
