"""
Unit tests for URL normalization, filtering and priority ordering.
"""

import pytest

from site_enrichment.urls import is_same_domain, normalize_url, should_skip_url, sort_by_priority


class TestNormalizeUrl:
    """Test frontier URL normalization."""

    def test_fragment_and_tracking_params_removed(self):
        url = "HTTPS://Example.com/About?utm_source=news&id=2&gclid=abc#team"
        assert normalize_url(url) == "https://example.com/About?id=2"

    def test_bare_host_gets_root_path(self):
        assert normalize_url("https://example.com") == "https://example.com/"

    def test_untouched_query_preserved(self):
        assert normalize_url("https://example.com/list?b=2&a=1") == "https://example.com/list?b=2&a=1"

    @pytest.mark.parametrize("url", ["", "mailto:info@example.com", "ftp://example.com/file", "not a url"])
    def test_invalid_urls(self, url):
        assert normalize_url(url) is None

    def test_idempotent(self):
        once = normalize_url("https://Example.com/team/?fbclid=x")
        assert normalize_url(once) == once


class TestIsSameDomain:
    """Test same-site checks."""

    def test_www_ignored(self):
        assert is_same_domain("https://www.example.com/about", "https://example.com/")

    def test_subdomain_and_other_site(self):
        assert not is_same_domain("https://shop.example.com/", "https://example.com/")
        assert not is_same_domain("https://facebook.com/example", "https://example.com/")


class TestShouldSkipUrl:
    """Test the deny-list of non-content URLs."""

    @pytest.mark.parametrize("url", [
        "https://example.com/wp-admin/options.php",
        "https://example.com/wp-content/uploads/logo.png",
        "https://example.com/brochure.pdf",
        "https://example.com/cart",
        "https://example.com/blog/page/3",
        "https://example.com/feed/",
        "https://example.com/tag/plumbing",
        "https://example.com/search?q=drains",
        "https://example.com/shop/cart/",
        "https://example.com/my-account",
    ])
    def test_skipped(self, url):
        assert should_skip_url(url)

    @pytest.mark.parametrize("url", [
        "https://example.com/",
        "https://example.com/about",
        "https://example.com/services/water-heaters",
        "https://example.com/searchlight-team",
        "https://example.com/cartography",
        "https://example.com/research/case-studies",
    ])
    def test_kept(self, url):
        assert not should_skip_url(url)


class TestSortByPriority:
    """Test about/contact/team-first ordering."""

    def test_priority_order(self):
        urls = [
            "https://example.com/blog/post",
            "https://example.com/services",
            "https://example.com/contact",
            "https://example.com/about",
        ]
        assert sort_by_priority(urls) == [
            "https://example.com/about",
            "https://example.com/contact",
            "https://example.com/blog/post",
            "https://example.com/services",
        ]

    def test_stable_for_unranked(self):
        urls = ["https://example.com/b", "https://example.com/a", "https://example.com/c"]
        assert sort_by_priority(urls) == urls
