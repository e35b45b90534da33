"""
Unit tests for run-level failure tracking and the Cloud Logging summary sink.
"""

import logging
from unittest.mock import MagicMock, patch

import site_enrichment.cloud_logging as cloud_logging_module
from site_enrichment.cloud_logging import CloudLoggingClient
from site_enrichment.fetcher import ScrapeError
from site_enrichment.models import ScrapeMetrics
from site_enrichment.tracking import DomainTracker, FailureTracker, domain_of


class TestFailureTracker:
    """Test failure breakdowns."""

    def test_breakdown(self):
        tracker = FailureTracker()
        tracker.record_all([ScrapeError(type="timeout", code="ETIMEDOUT")])
        tracker.record_all([
            ScrapeError(type="http", status_code=404),
            ScrapeError(type="timeout", code="ETIMEDOUT"),
        ])
        breakdown = tracker.get_breakdown()

        assert breakdown.total == 3
        assert breakdown.by_type == {"timeout": 2, "http": 1}
        assert breakdown.by_code == {"ETIMEDOUT": 2, "HTTP_404": 1}

    def test_empty(self):
        assert FailureTracker().get_breakdown().total == 0


class TestDomainTracker:
    """Test per-domain statistics."""

    def test_domain_of(self):
        assert domain_of("https://www.Example-Plumbing.com/about") == "example-plumbing.com"
        assert domain_of("not a url") == "unknown"

    def test_record_crawl(self):
        tracker = DomainTracker()
        tracker.record_crawl("https://example-plumbing.com", 4, [ScrapeError(type="http", status_code=404)])
        tracker.record_crawl("https://www.example-plumbing.com/", 1, [])
        tracker.record_crawl("https://fine.com", 3, [])

        stat = tracker.get_stats()[0]
        assert (stat.attempted, stat.succeeded, stat.failed) == (6, 5, 1)
        assert stat.errors == {"http": 1}
        assert [s.domain for s in tracker.problem_domains()] == ["example-plumbing.com"]
        assert len(tracker.get_stats()) == 2

    def test_log_summary_reports_domain_counts(self, caplog):
        tracker = DomainTracker()
        tracker.record_crawl("https://example-plumbing.com", 4, [ScrapeError(type="http", status_code=404)])
        tracker.record_crawl("https://fine.com", 3, [])
        with caplog.at_level(logging.INFO, logger="site_enrichment.tracking"):
            tracker.log_summary()

        assert "Domains crawled: 2 (1 with failures)" in caplog.text
        assert "example-plumbing.com: 1/5 failed (http=1)" in caplog.text


class TestCloudLoggingClient:
    """Test the structured run summary sink."""

    def test_disabled(self):
        client = CloudLoggingClient(enabled=False, project_id="proj")
        assert client.enabled is False
        assert client.log_job_summary("job-1", ScrapeMetrics()) is False

    def test_requires_project(self):
        client = CloudLoggingClient(enabled=True, project_id=None)
        assert client.enabled is False

    def test_log_job_summary(self):
        with patch.object(cloud_logging_module, "load_credentials", return_value=None), \
             patch.object(cloud_logging_module.cloud_logging, "Client") as client_cls:
            client = CloudLoggingClient(enabled=True, project_id="proj", log_name="website-scrape")
            ok = client.log_job_summary("job-1", ScrapeMetrics(processed=2, failed=1), concurrency=4)

        assert ok is True
        client_cls.assert_called_once_with(project="proj")
        client_cls.return_value.logger.assert_called_once_with("website-scrape")
        payload = client_cls.return_value.logger.return_value.log_struct.call_args[0][0]
        assert payload["job_id"] == "job-1"
        assert payload["metrics"]["processed"] == 2
        assert payload["concurrency"] == 4

    def test_write_failure_returns_false(self):
        with patch.object(cloud_logging_module, "load_credentials", return_value=None), \
             patch.object(cloud_logging_module.cloud_logging, "Client") as client_cls:
            client_cls.return_value.logger.return_value.log_struct.side_effect = RuntimeError("quota")
            client = CloudLoggingClient(enabled=True, project_id="proj")
            assert client.log_job_summary("job-1", ScrapeMetrics()) is False
