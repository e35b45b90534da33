"""
Google Cloud Logging integration for scrape run summaries.

Structured entries are only written when ENABLE_CLOUD_LOGGING is "true" and
PROJECT_ID is set. Otherwise every call is a no-op returning False.
"""

import logging
from typing import Any, Dict, Optional

from google.cloud import logging as cloud_logging

from .config import CLOUD_LOG_NAME, ENABLE_CLOUD_LOGGING, PROJECT_ID
from .models import ScrapeMetrics, utc_now
from .storage.gcs import find_credentials_file, load_credentials
from .tracking import FailureBreakdown

logger = logging.getLogger(__name__)


class CloudLoggingClient:
    """Client for writing run summaries to Google Cloud Logging."""

    def __init__(
        self,
        enabled: bool = ENABLE_CLOUD_LOGGING,
        project_id: Optional[str] = PROJECT_ID,
        log_name: str = CLOUD_LOG_NAME,
    ):
        self.client: Optional[Any] = None
        self.logger: Optional[Any] = None
        self.enabled = False
        self.project_id = project_id
        self.log_name = log_name

        self._initialize(enabled)

    def _initialize(self, enabled: bool) -> None:
        if not enabled:
            logger.info("Cloud Logging disabled (ENABLE_CLOUD_LOGGING not set to 'true')")
            return

        if not self.project_id:
            logger.warning("PROJECT_ID not set. Cloud Logging disabled.")
            return

        try:
            credentials = load_credentials()
            if credentials is not None:
                self.client = cloud_logging.Client(project=self.project_id, credentials=credentials)
                logger.info(f"Cloud Logging client initialized with credentials from {find_credentials_file()}")
            else:
                # Application Default Credentials (Cloud Run / Composer)
                self.client = cloud_logging.Client(project=self.project_id)
                logger.info("Cloud Logging client initialized with Application Default Credentials")

            self.logger = self.client.logger(self.log_name)
            self.enabled = True
            logger.info(f"Cloud Logging enabled for project: {self.project_id}, log: {self.log_name}")

        except Exception as e:
            logger.error(f"Failed to initialize Cloud Logging: {e}")
            self.enabled = False
            self.client = None
            self.logger = None

    def log_job_summary(
        self,
        job_id: Optional[str],
        metrics: ScrapeMetrics,
        failures: Optional[FailureBreakdown] = None,
        concurrency: Optional[int] = None,
        duration_s: Optional[float] = None,
        severity: str = "INFO",
    ) -> bool:
        """
        Write one structured entry describing a finished scrape run.

        Args:
            job_id: Job identifier (may be None for ad-hoc runs)
            metrics: Aggregate run counters
            failures: Failure breakdown by type and code
            concurrency: Concurrency used for the run
            duration_s: Wall-clock duration in seconds
            severity: Log severity level

        Returns:
            True if logged successfully, False otherwise
        """
        if not self.enabled or not self.logger:
            return False

        try:
            payload: Dict[str, Any] = {
                "job_id": job_id,
                "timestamp": utc_now().isoformat(),
                "metrics": metrics.model_dump(),
                "concurrency": concurrency,
                "duration_s": duration_s,
            }
            if failures is not None:
                payload["failures"] = failures.model_dump()

            self.logger.log_struct(
                payload,
                severity=severity,
                labels={
                    "component": "website_scrape",
                    "job_id": job_id or "none",
                    "processed": str(metrics.processed),
                    "failed": str(metrics.failed),
                },
            )
            logger.debug(f"Run summary logged to Cloud Logging for job {job_id}")
            return True

        except Exception as e:
            logger.error(f"Failed to log run summary to Cloud Logging: {e}")
            return False


# Global Cloud Logging client instance
_cloud_logging_client: Optional[CloudLoggingClient] = None


def get_cloud_logging_client() -> CloudLoggingClient:
    """Get or create the global Cloud Logging client."""
    global _cloud_logging_client
    if _cloud_logging_client is None:
        _cloud_logging_client = CloudLoggingClient()
    return _cloud_logging_client
