"""
Crawl frontier.

Breadth-first crawl of a single business website. Each crawl owns its own
visited/queued state; nothing is shared between businesses.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, Dict, List, Optional, Set

from pydantic import BaseModel, Field

from .config import (
    DEFAULT_MAX_PAGES,
    EARLY_EXIT_MIN_PAGES,
    MIN_TEXT_FOR_LINKS,
    PACING_DELAY,
)
from .fetcher import FetchStrategyResolver, ScrapeError
from .models import FetchTier, Page
from .patterns import EMAIL_RE
from .urls import is_same_domain, normalize_url, should_skip_url, sort_by_priority

logger = logging.getLogger(__name__)


class CrawlFrontier:
    """Per-business URL queue with visited and queued bookkeeping."""

    def __init__(self, seed_url: str, max_pages: int = DEFAULT_MAX_PAGES):
        self.seed_url = seed_url
        self.max_pages = max_pages
        self.visited: Set[str] = set()
        self.queued: Set[str] = set()
        self.to_visit: Deque[str] = deque([seed_url])
        self.queued.add(normalize_url(seed_url) or seed_url)

    def is_allowed(self, url: str) -> bool:
        return is_same_domain(url, self.seed_url) and not should_skip_url(url)

    def next_url(self) -> Optional[str]:
        """
        Pop the next crawlable URL and mark it visited.

        Returns None once the queue is exhausted.
        """
        while self.to_visit:
            normalized = normalize_url(self.to_visit.popleft())
            if not normalized or normalized in self.visited:
                continue
            if not self.is_allowed(normalized):
                continue
            self.visited.add(normalized)
            return normalized
        return None

    def enqueue_links(self, links: List[str]) -> int:
        """Queue same-site, non-denied, unseen links in priority order."""
        candidates = []
        for link in links:
            normalized = normalize_url(link)
            if not normalized or not self.is_allowed(normalized):
                continue
            if normalized in self.visited or normalized in self.queued:
                continue
            candidates.append(normalized)

        added = 0
        for link in sort_by_priority(list(dict.fromkeys(candidates))):
            self.queued.add(link)
            self.to_visit.append(link)
            added += 1
        return added


class CrawlResult(BaseModel):
    pages: List[Page] = Field(default_factory=list)
    tier_counts: Dict[FetchTier, int] = Field(
        default_factory=lambda: {tier: 0 for tier in FetchTier}
    )
    errors: List[ScrapeError] = Field(default_factory=list)
    failed_urls: List[str] = Field(default_factory=list)
    early_exit: bool = False

    @property
    def method(self) -> FetchTier:
        """Tier that supplied the most pages (HTTP on ties)."""
        best = FetchTier.HTTP
        for tier in FetchTier:
            if self.tier_counts[tier] > self.tier_counts[best]:
                best = tier
        return best

    @property
    def total_bytes(self) -> int:
        return sum(len(page.html.encode("utf-8")) for page in self.pages)


def has_key_data(pages: List[Page], min_pages: int = EARLY_EXIT_MIN_PAGES) -> bool:
    """Enough captured to stop early: min_pages pages and at least one email."""
    if len(pages) < min_pages:
        return False
    return any(EMAIL_RE.search(page.text_content) for page in pages)


def ensure_scheme(url: str) -> str:
    url = url.strip()
    if "://" not in url:
        return f"https://{url}"
    return url


async def crawl_website(
    website_uri: str,
    resolver: FetchStrategyResolver,
    max_pages: int = DEFAULT_MAX_PAGES,
    pacing_delay: float = PACING_DELAY,
    early_exit: bool = False,
) -> CrawlResult:
    """
    Crawl one website breadth-first up to the page budget.

    Links are only followed from pages with substantive text. A URL that no
    fetch tier can retrieve is recorded and skipped.

    Args:
        website_uri: Seed URL (the business homepage)
        resolver: Fetch strategy resolver for this run
        max_pages: Page budget
        pacing_delay: Seconds to wait between successive fetches
        early_exit: Stop once key data (an email) has been captured

    Returns:
        CrawlResult with captured pages, per-tier counts and failures
    """
    frontier = CrawlFrontier(ensure_scheme(website_uri), max_pages=max_pages)
    result = CrawlResult()
    fetched = 0

    while len(result.pages) < max_pages:
        url = frontier.next_url()
        if url is None:
            break

        if fetched and pacing_delay:
            await asyncio.sleep(pacing_delay)
        outcome = await resolver.fetch(url)
        fetched += 1

        if outcome.page is not None:
            page = outcome.page
            result.pages.append(page)
            result.tier_counts[outcome.tier] += 1

            if len(page.text_content) > MIN_TEXT_FOR_LINKS:
                frontier.enqueue_links(page.links)

            if early_exit and has_key_data(result.pages):
                logger.info(f"  [Early exit] Found key data after {len(result.pages)} pages")
                result.early_exit = True
                break
        else:
            error = outcome.error or ScrapeError(type="unknown", message="no tier succeeded")
            logger.info(f"  [{error.label}] {url} - skipped")
            result.errors.append(error)
            result.failed_urls.append(url)

    return result
