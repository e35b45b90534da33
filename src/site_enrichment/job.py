"""
Website scrape job.

Pulls the eligible businesses once, crawls them in waves of `concurrency`
parallel tasks, extracts facts from every captured page set and writes the
raw capture, the fact bundle and the flattened record update.

Usage:
    site-enrichment-scrape --job-input '{"jobId": "abc", "maxPagesPerSite": 5}'
    JOB_INPUT='{"fastMode": true}' site-enrichment-scrape --verbose
"""

import argparse
import asyncio
import json
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from .cloud_logging import CloudLoggingClient, get_cloud_logging_client
from .concurrency import resolve_concurrency
from .config import (
    CAMPAIGN_DATA_BUCKET,
    DEFAULT_MAX_PAGES,
    PACING_DELAY,
    TASK_CPU_UNITS,
    TASK_MEMORY_MIB,
)
from .extractors import build_fact_bundle, extract_all_data
from .fetcher import BrowserHandle, FetchStrategyResolver, ScrapeError
from .frontier import crawl_website
from .models import Business, FetchTier, JobInput, RawCaptureBundle, ScrapeMetrics, ScrapeStatus
from .storage import BusinessStore, CaptureStore, build_business_update
from .tracking import DomainTracker, FailureTracker

logger = logging.getLogger(__name__)


def parse_job_input(raw: Union[str, Dict[str, Any], None]) -> JobInput:
    """
    Parse job parameters from a JSON string or dict.

    Unparseable input falls back to defaults with a warning.
    """
    if not raw:
        logger.info("No job input provided, using defaults")
        return JobInput()

    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        job_input = JobInput.model_validate(data)
    except (json.JSONDecodeError, ValidationError, TypeError) as e:
        logger.warning(f"Could not parse job input, using defaults: {e}")
        return JobInput()

    logger.info(f"Parsed job input: {job_input.model_dump_json(by_alias=True, exclude_none=True)}")
    return job_input


class BusinessOutcome(BaseModel):
    """What happened to one business in this run."""
    place_id: str
    status: ScrapeStatus
    pages_count: int = 0
    total_bytes: int = 0
    duration_ms: int = 0
    tier_counts: Dict[FetchTier, int] = Field(default_factory=dict)
    errors: List[ScrapeError] = Field(default_factory=list)
    early_exit: bool = False
    raw_key: Optional[str] = None
    extracted_key: Optional[str] = None
    message: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status != ScrapeStatus.FAILED


async def scrape_business(
    business: Business,
    resolver: FetchStrategyResolver,
    capture_store: CaptureStore,
    business_store: BusinessStore,
    max_pages: int = DEFAULT_MAX_PAGES,
    early_exit: bool = False,
    pacing_delay: float = PACING_DELAY,
) -> BusinessOutcome:
    """
    Crawl, extract and persist one business.

    Never raises: any failure is reported as a failed outcome so the other
    tasks of the wave are unaffected. Extraction and storage writes run on
    the resolver's thread pool so they do not stall the event loop.
    """
    start = time.time()
    name = business.business_name or business.place_id
    logger.info(f"Scraping: {name} ({business.website_uri})")

    try:
        crawl = await crawl_website(
            business.website_uri,
            resolver,
            max_pages=max_pages,
            pacing_delay=pacing_delay,
            early_exit=early_exit,
        )

        if not crawl.pages:
            logger.info(f"  ✗ No pages scraped for {name}")
            await resolver.run_blocking(business_store.mark_business_scrape_failed, business.place_id)
            return BusinessOutcome(
                place_id=business.place_id,
                status=ScrapeStatus.FAILED,
                duration_ms=int((time.time() - start) * 1000),
                errors=crawl.errors,
                message="no pages scraped",
            )

        extracted = await resolver.run_blocking(extract_all_data, crawl.pages, business.known_phones)
        duration_ms = int((time.time() - start) * 1000)
        total_bytes = crawl.total_bytes

        raw = RawCaptureBundle(
            place_id=business.place_id,
            website_uri=business.website_uri,
            method=crawl.method,
            duration_ms=duration_ms,
            pages=crawl.pages,
        )
        facts = build_fact_bundle(business.place_id, business.website_uri, extracted)
        raw_key, extracted_key = await resolver.run_blocking(
            capture_store.write_bundles, raw, facts, int(time.time() * 1000)
        )

        update = build_business_update(
            raw_key,
            extracted_key,
            method=crawl.method,
            pages_count=len(crawl.pages),
            total_bytes=total_bytes,
            duration_ms=duration_ms,
            errors=len(crawl.errors),
            extracted=extracted,
            scraped_at=raw.scraped_at,
        )
        await resolver.run_blocking(business_store.update_business_with_scrape_data, business.place_id, update)

        exit_note = " [early]" if crawl.early_exit else ""
        logger.info(
            f"  ✓ Scraped {len(crawl.pages)} pages{exit_note} "
            f"(http: {crawl.tier_counts[FetchTier.HTTP]}, render: {crawl.tier_counts[FetchTier.RENDER]}, "
            f"render_idle: {crawl.tier_counts[FetchTier.RENDER_IDLE]}), "
            f"{len(extracted.emails)} emails, {len(extracted.team_members)} team members"
        )
        return BusinessOutcome(
            place_id=business.place_id,
            status=ScrapeStatus(update["web_scrape_status"]),
            pages_count=len(crawl.pages),
            total_bytes=total_bytes,
            duration_ms=duration_ms,
            tier_counts=dict(crawl.tier_counts),
            errors=crawl.errors,
            early_exit=crawl.early_exit,
            raw_key=raw_key,
            extracted_key=extracted_key,
        )

    except Exception as e:
        logger.error(f"  ✗ Failed for {name}: {e}")
        return BusinessOutcome(
            place_id=business.place_id,
            status=ScrapeStatus.FAILED,
            duration_ms=int((time.time() - start) * 1000),
            message=str(e),
        )


def log_run_summary(
    metrics: ScrapeMetrics,
    early_exits: int,
    total_duration_s: float,
    business_count: int,
) -> None:
    avg_ms = round(total_duration_s * 1000 / business_count) if business_count else 0
    early_pct = round(100 * early_exits / metrics.processed) if metrics.processed else 0
    logger.info("=" * 60)
    logger.info("SCRAPE JOB COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Duration: {total_duration_s:.1f}s ({avg_ms}ms avg per business)")
    logger.info(f"Processed: {metrics.processed}")
    logger.info(f"Failed: {metrics.failed}")
    logger.info(f"Early exits: {early_exits} ({early_pct}%)")
    logger.info(f"Total pages scraped: {metrics.total_pages}")
    logger.info(
        f"Tiers - http: {metrics.http_count}, render: {metrics.render_count}, "
        f"render_idle: {metrics.render_idle_count}"
    )
    logger.info(f"Total bytes: {metrics.total_bytes / 1024 / 1024:.2f} MB")


async def run_scrape_job(
    job_input: JobInput,
    business_store: BusinessStore,
    capture_store: CaptureStore,
    memory_mib: int = TASK_MEMORY_MIB,
    cpu_units: int = TASK_CPU_UNITS,
    launch_browser: bool = True,
    cloud_logger: Optional[CloudLoggingClient] = None,
    pacing_delay: float = PACING_DELAY,
) -> ScrapeMetrics:
    """
    Run one scrape job end to end.

    Args:
        job_input: Parsed job parameters
        business_store: Source of eligible businesses and sink for record updates
        capture_store: Sink for raw and extracted bundles
        memory_mib: Memory available to the task
        cpu_units: CPU units available to the task (1024 = one vCPU)
        launch_browser: Launch the shared headless browser unless fast mode
        cloud_logger: Structured summary sink (defaults to the global client)
        pacing_delay: Seconds between fetches within one business

    Returns:
        ScrapeMetrics aggregated over the run
    """
    logger.info(f"Job: {job_input.job_id or 'ad-hoc'}")
    logger.info(f"Max pages per site: {job_input.max_pages_per_site}")
    logger.info(f"Skip if already scraped: {job_input.skip_if_done}")
    logger.info(f"Force re-scrape: {job_input.force_rescrape}")
    logger.info(f"Fast mode (no browser): {job_input.fast_mode}")
    logger.info(f"Early exit enabled: {job_input.early_exit}")
    if job_input.filter_rules:
        rules = json.dumps([r.model_dump() for r in job_input.filter_rules])
        logger.info(f"Filter rules: {rules}")
    if job_input.place_ids is not None:
        preview = ", ".join(job_input.place_ids[:5])
        more = "..." if len(job_input.place_ids) > 5 else ""
        logger.info(f"Place IDs filter: {len(job_input.place_ids)} IDs: {preview}{more}")

    businesses = business_store.get_businesses_to_scrape(
        place_ids=job_input.place_ids,
        filter_rules=job_input.filter_rules,
        skip_if_done=job_input.skip_if_done,
        force_rescrape=job_input.force_rescrape,
    )

    concurrency = resolve_concurrency(job_input.concurrency, memory_mib, cpu_units, job_input.fast_mode)
    metrics = ScrapeMetrics()
    failure_tracker = FailureTracker()
    domain_tracker = DomainTracker()
    early_exits = 0
    start = time.time()

    if not businesses:
        logger.info("No businesses need scraping")

    use_browser = launch_browser and not job_input.fast_mode and bool(businesses)
    if job_input.fast_mode:
        logger.info("Fast mode enabled, skipping the headless browser")

    browser = BrowserHandle() if use_browser else None
    executor = ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="scrape")
    try:
        if browser is not None:
            await browser.start()
        resolver = FetchStrategyResolver(browser=browser, executor=executor)

        for i in range(0, len(businesses), concurrency):
            wave = businesses[i:i + concurrency]
            outcomes = await asyncio.gather(*[
                scrape_business(
                    business,
                    resolver,
                    capture_store,
                    business_store,
                    max_pages=job_input.max_pages_per_site,
                    early_exit=job_input.early_exit,
                    pacing_delay=pacing_delay,
                )
                for business in wave
            ])

            for business, outcome in zip(wave, outcomes):
                failure_tracker.record_all(outcome.errors)
                domain_tracker.record_crawl(business.website_uri, outcome.pages_count, outcome.errors)
                if not outcome.succeeded:
                    metrics.failed += 1
                    continue
                metrics.processed += 1
                metrics.total_pages += outcome.pages_count
                metrics.total_bytes += outcome.total_bytes
                for tier, count in outcome.tier_counts.items():
                    metrics.record_tier(tier, count)
                if outcome.early_exit:
                    early_exits += 1

            logger.info(f"Progress: {metrics.processed + metrics.failed}/{len(businesses)}")
    finally:
        if browser is not None:
            await browser.close()
        executor.shutdown(wait=True)

    duration_s = time.time() - start
    log_run_summary(metrics, early_exits, duration_s, len(businesses))
    failure_tracker.log_summary()
    domain_tracker.log_summary(limit=10)

    business_store.update_job_metrics(job_input.job_id, metrics)

    cloud_logger = cloud_logger or get_cloud_logging_client()
    cloud_logger.log_job_summary(
        job_input.job_id,
        metrics,
        failures=failure_tracker.get_breakdown(),
        concurrency=concurrency,
        duration_s=round(duration_s, 1),
    )
    return metrics


def main():
    """CLI entry"""
    parser = argparse.ArgumentParser(description="Website enrichment scrape job")
    parser.add_argument('--job-input', type=str, default=None, help='Job input JSON (defaults to $JOB_INPUT)')
    parser.add_argument('--verbose', action='store_true', help='Enable verbose logging')

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s | %(levelname)s | %(message)s')
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("=== Website Scrape Task ===")
    logger.info(f"Bucket: {CAMPAIGN_DATA_BUCKET}")
    logger.info(f"Task resources: {TASK_MEMORY_MIB}MB memory, {TASK_CPU_UNITS} CPU units")

    job_input = parse_job_input(args.job_input or os.getenv("JOB_INPUT"))

    try:
        asyncio.run(run_scrape_job(
            job_input,
            BusinessStore(),
            CaptureStore(CAMPAIGN_DATA_BUCKET),
            memory_mib=TASK_MEMORY_MIB,
            cpu_units=TASK_CPU_UNITS,
        ))
    except Exception as e:
        logger.exception(f"Task failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
