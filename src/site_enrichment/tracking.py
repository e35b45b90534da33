"""
Run-level failure and per-domain bookkeeping used for the end-of-run summary.
"""

import logging
from collections import Counter
from typing import Dict, List
from urllib.parse import urlsplit

from pydantic import BaseModel, Field

from .fetcher import ScrapeError

logger = logging.getLogger(__name__)


class DomainStats(BaseModel):
    domain: str
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: Dict[str, int] = Field(default_factory=dict)


def domain_of(url: str) -> str:
    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        host = ""
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


class DomainTracker:
    """Success and failure counts per site."""

    def __init__(self):
        self._stats: Dict[str, DomainStats] = {}

    def _get(self, url: str) -> DomainStats:
        domain = domain_of(url)
        if domain not in self._stats:
            self._stats[domain] = DomainStats(domain=domain)
        return self._stats[domain]

    def record_crawl(self, website_uri: str, succeeded: int, errors: List[ScrapeError]) -> None:
        """Fold one finished crawl into the per-domain counts."""
        stat = self._get(website_uri)
        stat.attempted += succeeded + len(errors)
        stat.succeeded += succeeded
        stat.failed += len(errors)
        for error in errors:
            stat.errors[error.type] = stat.errors.get(error.type, 0) + 1

    def get_stats(self) -> List[DomainStats]:
        return list(self._stats.values())

    def problem_domains(self, limit: int = 5) -> List[DomainStats]:
        failing = [s for s in self.get_stats() if s.failed > 0]
        return sorted(failing, key=lambda s: s.failed, reverse=True)[:limit]

    def log_summary(self, limit: int = 5) -> None:
        stats = self.get_stats()
        problems = self.problem_domains(limit)
        failing = sum(1 for s in stats if s.failed > 0)
        logger.info(f"Domains crawled: {len(stats)} ({failing} with failures)")
        if not problems:
            return
        logger.info("Problem domains:")
        for stat in problems:
            errors = ", ".join(f"{t}={c}" for t, c in sorted(stat.errors.items(), key=lambda x: -x[1]))
            logger.info(f"  {stat.domain}: {stat.failed}/{stat.attempted} failed ({errors})")


class FailureBreakdown(BaseModel):
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)
    by_code: Dict[str, int] = Field(default_factory=dict)


class FailureTracker:
    """Collects classified fetch errors across a crawl or a whole run."""

    def __init__(self):
        self.failures: List[ScrapeError] = []

    def record_all(self, errors: List[ScrapeError]) -> None:
        self.failures.extend(errors)

    def get_breakdown(self) -> FailureBreakdown:
        by_type: Counter = Counter()
        by_code: Counter = Counter()
        for error in self.failures:
            by_type[error.type] += 1
            if error.code:
                by_code[error.code] += 1
            if error.status_code:
                by_code[f"HTTP_{error.status_code}"] += 1
        return FailureBreakdown(total=len(self.failures), by_type=dict(by_type), by_code=dict(by_code))

    def log_summary(self) -> None:
        breakdown = self.get_breakdown()
        if breakdown.total == 0:
            return
        logger.info(f"Failure breakdown: {breakdown.total} total failures")
        for error_type, count in sorted(breakdown.by_type.items(), key=lambda x: -x[1]):
            logger.info(f"  {error_type}: {count}")
        if breakdown.by_code:
            logger.info("  By code:")
            for code, count in sorted(breakdown.by_code.items(), key=lambda x: -x[1])[:5]:
                logger.info(f"    {code}: {count}")
