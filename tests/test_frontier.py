"""
Unit tests for the crawl frontier and the per-business crawl loop.

The network is replaced by an in-memory site served through a fake
resolver.
"""

import pytest

from site_enrichment.extractors import extract_all_data
from site_enrichment.extractors.history import current_year
from site_enrichment.fetcher import FetchOutcome, FetchState, HttpResponse, ScrapeError, build_page
from site_enrichment.frontier import CrawlFrontier, CrawlResult, crawl_website, ensure_scheme, has_key_data
from site_enrichment.models import FetchTier, Page

BASE = "https://example-plumbing.com"

FILLER = "We install, repair and maintain residential plumbing across the metro area. " * 8

SITE = {
    f"{BASE}/": f"""
        <html><head><title>Example Plumbing</title></head><body>
        <nav>
          <a href="/services">Services</a>
          <a href="/about">About</a>
          <a href="/about#team">Team</a>
          <a href="/about?utm_source=nav">About us</a>
          <a href="/contact">Contact</a>
          <a href="/blog/first-post">Blog</a>
          <a href="/missing">Old page</a>
          <a href="/wp-content/uploads/logo.png">Logo</a>
          <a href="https://www.facebook.com/exampleplumbing">Facebook</a>
        </nav>
        <p>{FILLER}</p>
        </body></html>
    """,
    f"{BASE}/about": """
        <html><body><h1>About us</h1>
        <p>Example Plumbing was founded in 1998 in Denver. Reach us at info@example-plumbing.com.</p>
        </body></html>
    """,
    f"{BASE}/contact": "<html><body><p>Call (303) 555-0199 for service.</p></body></html>",
    f"{BASE}/blog/first-post": "<html><body><p>Five tips for winterizing your pipes.</p></body></html>",
    f"{BASE}/services": "<html><body><p>Drain cleaning and water heaters.</p></body></html>",
}


class FakeResolver:
    """Serves SITE; unknown URLs fail with a 404."""

    def __init__(self, site=None):
        self.site = SITE if site is None else site
        self.calls = []

    async def fetch(self, url):
        self.calls.append(url)
        html = self.site.get(url)
        if html is None:
            error = ScrapeError(type="http", status_code=404, message="HTTP 404")
            return FetchOutcome(url=url, state=FetchState.FAILED, error=error)
        page = build_page(url, HttpResponse(200, html, url))
        return FetchOutcome(url=url, state=FetchState.FETCHED, page=page, tier=FetchTier.HTTP)


# ============================================================================
# FRONTIER
# ============================================================================

class TestCrawlFrontier:
    """Test frontier bookkeeping."""

    def test_seed_is_first(self):
        frontier = CrawlFrontier(f"{BASE}/")
        assert frontier.next_url() == f"{BASE}/"
        assert frontier.next_url() is None

    def test_enqueue_filters_and_orders(self):
        frontier = CrawlFrontier(f"{BASE}/")
        frontier.next_url()
        added = frontier.enqueue_links([
            f"{BASE}/services",
            f"{BASE}/about",
            f"{BASE}/about#team",
            f"{BASE}/",
            f"{BASE}/cart",
            "https://other-site.com/about",
        ])
        assert added == 2
        assert list(frontier.to_visit) == [f"{BASE}/about", f"{BASE}/services"]

    def test_already_queued_not_requeued(self):
        frontier = CrawlFrontier(f"{BASE}/")
        frontier.enqueue_links([f"{BASE}/about"])
        assert frontier.enqueue_links([f"{BASE}/about?utm_campaign=x"]) == 0

    def test_ensure_scheme(self):
        assert ensure_scheme(" example-plumbing.com ") == "https://example-plumbing.com"
        assert ensure_scheme("http://example-plumbing.com") == "http://example-plumbing.com"


class TestCrawlResult:
    """Test crawl result helpers."""

    def test_method_is_most_used_tier(self):
        result = CrawlResult()
        result.tier_counts[FetchTier.HTTP] = 1
        result.tier_counts[FetchTier.RENDER_IDLE] = 2
        assert result.method == FetchTier.RENDER_IDLE

    def test_method_defaults_to_http(self):
        assert CrawlResult().method == FetchTier.HTTP

    def test_has_key_data(self):
        pages = [Page(url=f"{BASE}/{i}", text_content="mail info@example-plumbing.com") for i in range(2)]
        assert not has_key_data(pages)
        assert has_key_data(pages + [Page(url=f"{BASE}/x")])


# ============================================================================
# CRAWL LOOP
# ============================================================================

class TestCrawlWebsite:
    """Test the breadth-first crawl loop."""

    @pytest.mark.asyncio
    async def test_example_plumbing_end_to_end(self):
        """Five-page crawl of a small site followed by extraction."""
        resolver = FakeResolver()
        result = await crawl_website("example-plumbing.com", resolver, max_pages=5, pacing_delay=0)

        urls = [p.url for p in result.pages]
        assert len(urls) == 5
        assert urls[0] == f"{BASE}/"
        assert urls[1] == f"{BASE}/about"
        assert len(set(urls)) == len(urls)
        assert all(u.startswith(BASE) for u in urls)
        assert f"{BASE}/wp-content/uploads/logo.png" not in resolver.calls
        assert result.tier_counts[FetchTier.HTTP] == 5
        assert result.errors == []

        data = extract_all_data(result.pages)
        assert data.founded_year == 1998
        assert data.emails == ["info@example-plumbing.com"]
        assert data.contact_page_url == f"{BASE}/contact"
        assert data.phones == ["3035550199"]

    @pytest.mark.asyncio
    async def test_plain_http_homepage_scenario(self):
        """Founded year and email on the homepage, /about fetched second."""
        base = "http://example-plumbing.com"
        site = {
            f"{base}/": f"""
                <html><body>
                <a href="/services">Services</a> <a href="/about">About</a>
                <p>Founded in 1998. Email jane.doe@example-plumbing.com for a quote.</p>
                <p>{FILLER}</p>
                </body></html>
            """,
            f"{base}/about": "<html><body><h1>About us</h1><p>Family plumbing in Denver.</p></body></html>",
            f"{base}/services": "<html><body><p>Drain cleaning and water heaters.</p></body></html>",
        }
        result = await crawl_website(base, FakeResolver(site), max_pages=5, pacing_delay=0)

        assert [p.url for p in result.pages] == [f"{base}/", f"{base}/about", f"{base}/services"]
        data = extract_all_data(result.pages)
        assert data.founded_year == 1998
        assert data.years_in_business == current_year() - 1998
        assert data.emails == ["jane.doe@example-plumbing.com"]

    @pytest.mark.asyncio
    async def test_crawl_is_deterministic(self):
        first = await crawl_website(BASE, FakeResolver(), max_pages=10, pacing_delay=0)
        second = await crawl_website(BASE, FakeResolver(), max_pages=10, pacing_delay=0)
        assert [p.url for p in first.pages] == [p.url for p in second.pages]

    @pytest.mark.asyncio
    async def test_failed_url_recorded_and_skipped(self):
        resolver = FakeResolver()
        result = await crawl_website(BASE, resolver, max_pages=10, pacing_delay=0)

        assert len(result.pages) == 5
        assert result.failed_urls == [f"{BASE}/missing"]
        assert result.errors[0].status_code == 404
        assert resolver.calls.count(f"{BASE}/missing") == 1

    @pytest.mark.asyncio
    async def test_early_exit(self):
        result = await crawl_website(BASE, FakeResolver(), max_pages=10, pacing_delay=0, early_exit=True)
        assert result.early_exit is True
        assert len(result.pages) == 3

    @pytest.mark.asyncio
    async def test_thin_pages_not_followed(self):
        site = {f"{BASE}/": '<html><body><a href="/about">About</a><p>Short.</p></body></html>'}
        resolver = FakeResolver(site)
        result = await crawl_website(BASE, resolver, max_pages=10, pacing_delay=0)
        assert resolver.calls == [f"{BASE}/"]
        assert len(result.pages) == 1

    @pytest.mark.asyncio
    async def test_unreachable_site(self):
        result = await crawl_website(BASE, FakeResolver({}), max_pages=10, pacing_delay=0)
        assert result.pages == []
        assert result.failed_urls == [f"{BASE}/"]
