"""
Unit tests for the extraction engine.

Covers contacts, social links, team members, headcount, founding year,
acquisition signals and the combined extract_all_data pass.
"""

import json
from unittest.mock import patch

import pytest

import site_enrichment.extractors as extractors

from site_enrichment.extractors import build_fact_bundle, extract_all_data, sort_pages_by_priority
from site_enrichment.extractors.acquisition import extract_acquisition_signals, summarize_signals
from site_enrichment.extractors.contact import extract_emails, extract_phones, find_contact_page_url
from site_enrichment.extractors.history import (
    current_year,
    extract_founded_year,
    extract_history_snippets,
    years_in_business,
)
from site_enrichment.extractors.social import extract_social_links, social_from_urls
from site_enrichment.extractors.team import (
    HeadcountCandidate,
    extract_headcount,
    extract_new_hires,
    extract_team_members,
    select_headcount,
)
from site_enrichment.models import Page

URL = "https://example-plumbing.com/about"


def make_page(url, text="", html=None):
    return Page(url=url, html=html if html is not None else f"<html><body><p>{text}</p></body></html>", text_content=text)


# ============================================================================
# CONTACTS
# ============================================================================

class TestContacts:
    """Test email, phone and contact page extraction."""

    def test_emails_filter_placeholders_and_images(self):
        text = "Email info@example-plumbing.com, test@example.com or see logo@2x.png. info@example-plumbing.com"
        assert extract_emails(text) == ["info@example-plumbing.com"]

    def test_emails_capped(self):
        text = " ".join(f"person{i}@acmeplumbing.net" for i in range(15))
        assert len(extract_emails(text)) == 10

    def test_phones_exclude_known_and_duplicates(self):
        text = "Call (303) 555-0199 or 303-555-0199. Main office 212 555 1234."
        assert extract_phones(text, known_phones=["+1 212-555-1234"]) == ["3035550199"]

    def test_phones_exclude_fake(self):
        assert extract_phones("Call 123-456-7890 or (555) 555-5555") == []

    def test_contact_page_found_in_crawl_order(self):
        pages = [
            make_page("https://example-plumbing.com/"),
            make_page("https://example-plumbing.com/contact-us"),
            make_page("https://example-plumbing.com/contact"),
        ]
        assert find_contact_page_url(pages) == "https://example-plumbing.com/contact-us"

    def test_no_contact_page(self):
        assert find_contact_page_url([make_page("https://example-plumbing.com/services")]) is None


class TestSocialLinks:
    """Test social profile detection."""

    def test_share_links_skipped(self):
        html = (
            '<a href="https://www.facebook.com/sharer/sharer.php?u=x">Share</a>'
            '<a href="https://www.facebook.com/exampleplumbing">Facebook</a>'
            '<a href="https://twitter.com/intent/tweet?text=hi">Tweet</a>'
            '<a href="https://x.com/exampleplumb">X</a>'
            '<a href="https://www.linkedin.com/company/example-plumbing">LinkedIn</a>'
        )
        social = extract_social_links(html)
        assert social.facebook == "https://www.facebook.com/exampleplumbing"
        assert social.twitter == "https://x.com/exampleplumb"
        assert social.linkedin == "https://www.linkedin.com/company/example-plumbing"
        assert social.instagram is None

    def test_same_as_urls(self):
        social = social_from_urls([
            "https://www.instagram.com/exampleplumbing",
            "https://www.yelp.com/biz/example-plumbing",
        ])
        assert social.instagram == "https://www.instagram.com/exampleplumbing"
        assert social.facebook is None


# ============================================================================
# TEAM
# ============================================================================

class TestTeamMembers:
    """Test name/title pair extraction."""

    def test_business_name_is_not_a_person(self):
        assert extract_team_members("Houston Plumbing Services Inc is the best", URL) == []

    def test_name_title_pairs(self):
        text = "John Smith, Owner. Jane Doe is the President of the company."
        members = extract_team_members(text, URL)
        assert [(m.name, m.title) for m in members] == [("John Smith", "Owner"), ("Jane Doe", "President")]
        assert all(m.source_url == URL for m in members)

    def test_duplicate_names_collapsed(self):
        text = "John Smith, Owner. Later on, John Smith - Owner again."
        assert len(extract_team_members(text, URL)) == 1

    def test_standalone_names_on_team_page(self):
        html = (
            "<div class=\"card\"><h3>Jane Doe</h3><p>Jane runs dispatch.</p></div>"
            "<div class=\"card\"><h3>mike kremer</h3></div>"
            "<div class=\"card\"><h3>Our Story</h3></div>"
        )
        members = extract_team_members("Jane Doe Jane runs dispatch. mike kremer", "https://example-plumbing.com/our-team", html)
        assert [(m.name, m.title) for m in members] == [("Jane Doe", "Team Member"), ("Mike Kremer", "Team Member")]

    def test_standalone_names_ignored_elsewhere(self):
        html = "<h3>Jane Doe</h3>"
        assert extract_team_members("Jane Doe", "https://example-plumbing.com/services", html) == []

    def test_titled_match_wins_over_standalone(self):
        html = "<h3>John Smith</h3><p>Owner since 2001</p>"
        members = extract_team_members("John Smith Owner since 2001", "https://example-plumbing.com/team", html)
        assert [(m.name, m.title) for m in members] == [("John Smith", "Owner")]


class TestHeadcount:
    """Test headcount candidate selection."""

    def test_most_frequent_count_wins(self):
        candidates = [HeadcountCandidate(50, "50 employees", "direct")] * 3 + [
            HeadcountCandidate(40, "40 employees", "direct"),
            HeadcountCandidate(60, "60 employees", "direct"),
        ]
        assert select_headcount(candidates).count == 50

    def test_tie_goes_to_larger_count(self):
        candidates = [
            HeadcountCandidate(12, "12 staff", "direct"),
            HeadcountCandidate(30, "team of 30", "team-of"),
        ]
        assert select_headcount(candidates).count == 30

    def test_no_candidates(self):
        assert select_headcount([]) is None
        assert extract_headcount("We fix pipes.") == (None, None)

    def test_extract_from_text(self):
        count, source = extract_headcount("Our team of 25 licensed plumbers serves Denver.")
        assert count == 25
        assert source == "team of 25"

    def test_out_of_range_ignored(self):
        assert extract_headcount("1 employee") == (None, None)

    def test_range_uses_upper_bound(self):
        count, _ = extract_headcount("We are 10-20 employees strong")
        assert count == 20


class TestNewHires:
    """Test new hire mention extraction."""

    def test_welcome_mention(self):
        mentions = extract_new_hires("Please welcome Sarah Lee to our service department!", URL)
        assert len(mentions) == 1
        assert mentions[0].text.startswith("welcome Sarah Lee")


# ============================================================================
# HISTORY AND ACQUISITION
# ============================================================================

class TestFoundedYear:
    """Test founding year resolution."""

    def test_founded_phrase(self):
        assert extract_founded_year("Proudly founded in 1998 by two brothers.") == (1998, "founded in 1998")

    @pytest.mark.parametrize("text", ["Serving since 1750", "Established 2999", "No dates here"])
    def test_out_of_bounds_or_missing(self, text):
        assert extract_founded_year(text) == (None, None)

    def test_years_in_business_phrase(self):
        year, source = extract_founded_year("With 25 years in business we know pipes.")
        assert year == current_year() - 25
        assert source == "25 years in business"

    def test_years_in_business_derived(self):
        assert years_in_business(None) is None
        assert years_in_business(2000) == current_year() - 2000


class TestHistorySnippets:
    """Test history sentence selection."""

    def test_keyword_sentences(self):
        text = "Our story began in a small garage in Denver. We fix leaks. The tradition continues with the next generation."
        snippets = extract_history_snippets(text, URL)
        assert [s.text for s in snippets] == [
            "Our story began in a small garage in Denver",
            "The tradition continues with the next generation",
        ]

    def test_snippets_capped(self):
        text = ". ".join(f"Our history chapter number {i} is long enough" for i in range(8))
        assert len(extract_history_snippets(text, URL)) == 5


class TestAcquisitionSignals:
    """Test ownership change detection."""

    def test_acquired_with_year(self):
        text = "In 2019 the company was acquired by Acme Holdings, a regional group."
        signals = extract_acquisition_signals(text, URL)
        assert len(signals) == 1
        assert signals[0].signal_type == "acquired"
        assert signals[0].text == "acquired by Acme Holdings"
        assert signals[0].date_mentioned == "2019"
        assert summarize_signals(signals) == "acquired by Acme Holdings (2019)"

    def test_new_ownership(self):
        signals = extract_acquisition_signals("Now under new ownership!", URL)
        assert [s.signal_type for s in signals] == ["new_ownership"]
        assert signals[0].date_mentioned is None

    def test_no_signals(self):
        assert extract_acquisition_signals("Family plumbing done right.", URL) == []
        assert summarize_signals([]) is None


# ============================================================================
# COMBINED
# ============================================================================

SCHEMA_HTML = """
<html><head>
<script type="application/ld+json">
{"@context": "https://schema.org", "@type": "Plumber", "name": "Example Plumbing",
 "email": "mailto:office@example-plumbing.com", "telephone": "+1-303-555-0142",
 "foundingDate": "1998-03-01", "numberOfEmployees": {"@type": "QuantitativeValue", "value": 25},
 "founder": {"@type": "Person", "name": "John Smith"},
 "sameAs": ["https://www.linkedin.com/company/example-plumbing"]}
</script>
</head><body><p>Welcome to Example Plumbing.</p></body></html>
"""


class TestExtractAllData:
    """Test the combined extraction pass."""

    def test_schema_org_takes_priority(self):
        pages = [
            Page(url="https://example-plumbing.com/", html=SCHEMA_HTML, text_content="Welcome to Example Plumbing."),
            make_page("https://example-plumbing.com/services", "Established 2005. We have 40 employees."),
        ]
        data = extract_all_data(pages)

        assert data.founded_year == 1998
        assert data.founded_source == "Schema.org JSON-LD"
        assert data.headcount_estimate == 25
        assert data.headcount_source == "Schema.org JSON-LD"
        assert "office@example-plumbing.com" in data.emails
        assert "3035550142" in data.phones
        assert data.social.linkedin == "https://www.linkedin.com/company/example-plumbing"
        assert any(m.name == "John Smith" and m.title == "Founder" for m in data.team_members)

    def test_implausible_schema_headcount_ignored(self):
        html = SCHEMA_HTML.replace('"value": 25', '"value": 50000')
        pages = [
            Page(url="https://example-plumbing.com/", html=html, text_content="Welcome to Example Plumbing."),
            make_page("https://example-plumbing.com/services", "We have 40 employees."),
        ]
        data = extract_all_data(pages)
        assert data.headcount_estimate == 40
        assert data.headcount_source == "40 employees"

    def test_failing_extractor_does_not_block_others(self):
        pages = [make_page(URL, "Founded in 1998. John Smith, Owner. Email info@example-plumbing.com.")]
        with patch.object(extractors, "extract_team_members", side_effect=ValueError("bad markup")):
            data = extract_all_data(pages)

        assert data.team_members == []
        assert data.founded_year == 1998
        assert data.emails == ["info@example-plumbing.com"]

    def test_priority_pages_win_first_match(self):
        pages = [
            make_page("https://example-plumbing.com/", "Serving Denver since 2010."),
            make_page(URL, "Founded in 1998 by the Smith family."),
        ]
        assert [p.url for p in sort_pages_by_priority(pages)] == [URL, "https://example-plumbing.com/"]
        data = extract_all_data(pages)
        assert data.founded_year == 1998
        assert data.years_in_business == current_year() - 1998

    def test_known_phone_excluded(self):
        pages = [make_page(URL, "Call (303) 555-0199 or (720) 555-0111.")]
        data = extract_all_data(pages, known_phones=["(303) 555-0199"])
        assert data.phones == ["7205550111"]

    def test_idempotent(self):
        pages = [
            make_page(URL, "Founded in 1998. John Smith, Owner. Email info@example-plumbing.com. Acquired by Acme Holdings in 2020."),
            make_page("https://example-plumbing.com/contact", "Call (303) 555-0199."),
        ]
        assert extract_all_data(pages) == extract_all_data(pages)

    def test_empty_pages(self):
        data = extract_all_data([])
        assert data.emails == []
        assert data.founded_year is None
        assert data.years_in_business is None
        assert data.has_acquisition_signal is False

    def test_fact_bundle_shape(self):
        data = extract_all_data([make_page(URL, "Founded in 1998. Acquired by Acme Holdings in 2020.")])
        bundle = build_fact_bundle("place-1", "https://example-plumbing.com", data)
        dumped = json.loads(bundle.model_dump_json())

        assert set(dumped) == {"place_id", "website_uri", "extracted_at", "contacts", "team", "acquisition", "history"}
        assert dumped["history"]["founded_year"] == 1998
        assert dumped["acquisition"]["has_signal"] is True
        assert dumped["acquisition"]["signals"][0]["signal_type"] == "acquired"
