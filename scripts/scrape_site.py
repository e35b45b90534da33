#!/usr/bin/env python3
"""
Scrape Site CLI

Crawls a single website and prints the extracted fact bundle without
touching GCS or Firestore. Useful for checking extractor output on a
real site.

Usage:
    python scripts/scrape_site.py https://example-plumbing.com
    python scripts/scrape_site.py example.com --max-pages 5 --render --raw-out raw.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from site_enrichment.exceptions import FetchError
from site_enrichment.extractors import build_fact_bundle, extract_all_data
from site_enrichment.fetcher import BrowserHandle, FetchStrategyResolver
from site_enrichment.frontier import crawl_website
from site_enrichment.models import RawCaptureBundle

logger = logging.getLogger(__name__)


async def scrape_site(url: str, max_pages: int, render: bool, early_exit: bool):
    """Crawl and extract one site. Raises FetchError if nothing was captured."""
    browser = BrowserHandle() if render else None
    try:
        if browser is not None:
            await browser.start()
        resolver = FetchStrategyResolver(browser=browser)
        crawl = await crawl_website(url, resolver, max_pages=max_pages, early_exit=early_exit)
    finally:
        if browser is not None:
            await browser.close()

    if not crawl.pages:
        raise FetchError(url, crawl.errors[0] if crawl.errors else None)

    extracted = extract_all_data(crawl.pages)
    raw = RawCaptureBundle(place_id="local", website_uri=url, method=crawl.method, pages=crawl.pages)
    return raw, build_fact_bundle("local", url, extracted)


def main():
    parser = argparse.ArgumentParser(description="Crawl one website and print extracted facts")
    parser.add_argument("url", help="Website to crawl")
    parser.add_argument("--max-pages", type=int, default=10, help="Page budget (default: 10)")
    parser.add_argument("--render", action="store_true", help="Enable the headless browser tiers")
    parser.add_argument("--early-exit", action="store_true", help="Stop once an email has been found")
    parser.add_argument("--raw-out", type=Path, help="Also write the raw capture bundle to this file")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s | %(levelname)s | %(message)s')
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        raw, facts = asyncio.run(scrape_site(args.url, args.max_pages, args.render, args.early_exit))
    except FetchError as e:
        logger.error(f"❌ Nothing captured: {e}")
        sys.exit(1)

    if args.raw_out:
        args.raw_out.write_text(raw.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"💾 Raw capture: {args.raw_out}")

    print(json.dumps(facts.model_dump(mode="json"), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
