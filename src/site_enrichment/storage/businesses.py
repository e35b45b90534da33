"""
Firestore access for business records and job metrics.

Business documents are keyed by place_id. Eligibility is decided by pure
functions so it can be tested without a database.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from google.cloud import firestore

from ..config import BUSINESSES_COLLECTION, JOBS_COLLECTION, PROJECT_ID
from ..models import Business, ExtractedData, FetchTier, FilterRule, ScrapeMetrics, ScrapeStatus, utc_now
from .gcs import load_credentials

logger = logging.getLogger(__name__)


# ============================================================================
# ELIGIBILITY
# ============================================================================

def _has_value(record: Dict[str, Any], field: str) -> bool:
    return record.get(field) is not None


def matches_filter_rule(record: Dict[str, Any], rule: FilterRule) -> bool:
    """
    Evaluate one filter rule against a stored record.

    EXISTS/NOT_EXISTS treat a null attribute as absent. EQUALS/NOT_EQUALS
    compare as case-insensitive strings so "true" matches True.
    """
    if rule.operator == "EXISTS":
        return _has_value(record, rule.field)
    if rule.operator == "NOT_EXISTS":
        return not _has_value(record, rule.field)

    actual = record.get(rule.field)
    equal = actual is not None and str(actual).lower() == str(rule.value).lower()
    if rule.operator == "EQUALS":
        return equal
    return not equal


def matches_filter_rules(record: Dict[str, Any], rules: Iterable[FilterRule]) -> bool:
    return all(matches_filter_rule(record, rule) for rule in rules)


def is_eligible(
    record: Dict[str, Any],
    place_ids: Optional[List[str]] = None,
    filter_rules: Iterable[FilterRule] = (),
    skip_if_done: bool = True,
    force_rescrape: bool = False,
) -> bool:
    """Decide whether a business record should be scraped in this run."""
    if place_ids is not None and record.get("place_id") not in place_ids:
        return False
    if not record.get("website_uri"):
        return False
    if skip_if_done and not force_rescrape and record.get("web_scraped"):
        return False
    return matches_filter_rules(record, filter_rules)


# ============================================================================
# RECORD UPDATE
# ============================================================================

def _json_or_none(items: List[Any]) -> Optional[str]:
    if not items:
        return None
    return json.dumps([item.model_dump(mode="json") for item in items], ensure_ascii=False)


def build_business_update(
    raw_key: str,
    extracted_key: str,
    method: FetchTier,
    pages_count: int,
    total_bytes: int,
    duration_ms: int,
    errors: int,
    extracted: ExtractedData,
    scraped_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Flatten a scrape result into the attributes written to the business record.

    Every attribute is present; facts that were not found are None.
    """
    status = ScrapeStatus.COMPLETE if errors == 0 else ScrapeStatus.PARTIAL
    social = extracted.social
    return {
        "web_scraped": True,
        "web_scraped_at": (scraped_at or utc_now()).isoformat(),
        "web_raw_gcs_key": raw_key,
        "web_extracted_gcs_key": extracted_key,

        "web_pages_count": pages_count,
        "web_scrape_method": method.value,
        "web_total_bytes": total_bytes,
        "web_scrape_duration_ms": duration_ms,
        "web_scrape_errors": errors,
        "web_scrape_status": status.value,

        "web_emails": list(extracted.emails),
        "web_phones": list(extracted.phones),
        "web_contact_page": extracted.contact_page_url,
        "web_social_linkedin": social.linkedin,
        "web_social_facebook": social.facebook,
        "web_social_instagram": social.instagram,
        "web_social_twitter": social.twitter,

        "web_team_members": _json_or_none(extracted.team_members),
        "web_team_count": len(extracted.team_members),
        "web_headcount_estimate": extracted.headcount_estimate,
        "web_headcount_source": extracted.headcount_source,
        "web_new_hires": _json_or_none(extracted.new_hire_mentions),
        "web_has_team_page": bool(extracted.team_members),

        "web_acquisition_signals": _json_or_none(extracted.acquisition_signals),
        "web_has_acquisition_signal": extracted.has_acquisition_signal,
        "web_ownership_note": extracted.acquisition_summary,

        "web_founded_year": extracted.founded_year,
        "web_founded_source": extracted.founded_source,
        "web_years_in_business": extracted.years_in_business,
        "web_history_snippets": _json_or_none(extracted.history_snippets),

        "pipeline_status": "scraped",
    }


# ============================================================================
# STORE
# ============================================================================

def get_firestore_client() -> firestore.Client:
    credentials = load_credentials()
    if credentials is not None:
        return firestore.Client(project=PROJECT_ID, credentials=credentials)
    return firestore.Client(project=PROJECT_ID)


class BusinessStore:
    """Reads eligible businesses and writes scrape results back."""

    def __init__(
        self,
        client: Optional[firestore.Client] = None,
        collection: str = BUSINESSES_COLLECTION,
        jobs_collection: Optional[str] = JOBS_COLLECTION,
    ):
        self._client = client
        self.collection = collection
        self.jobs_collection = jobs_collection

    @property
    def client(self) -> firestore.Client:
        if self._client is None:
            self._client = get_firestore_client()
        return self._client

    def _records(self, place_ids: Optional[List[str]]) -> Iterable[Dict[str, Any]]:
        collection = self.client.collection(self.collection)
        if place_ids is not None:
            refs = [collection.document(pid) for pid in dict.fromkeys(place_ids)]
            snapshots = self.client.get_all(refs) if refs else []
        else:
            snapshots = collection.stream()
        for snapshot in snapshots:
            if not snapshot.exists:
                continue
            record = snapshot.to_dict() or {}
            record.setdefault("place_id", snapshot.id)
            yield record

    def get_businesses_to_scrape(
        self,
        place_ids: Optional[List[str]] = None,
        filter_rules: Iterable[FilterRule] = (),
        skip_if_done: bool = True,
        force_rescrape: bool = False,
    ) -> List[Business]:
        """
        Load the businesses eligible for this run.

        Args:
            place_ids: Restrict to these ids (fetched directly) when given
            filter_rules: AND-combined filter rules
            skip_if_done: Exclude already-scraped records
            force_rescrape: Override skip_if_done

        Returns:
            Eligible businesses in store order
        """
        rules = list(filter_rules)
        businesses = [
            Business.from_record(record)
            for record in self._records(place_ids)
            if is_eligible(record, place_ids, rules, skip_if_done, force_rescrape)
        ]
        logger.info(f"Found {len(businesses)} businesses to scrape")
        return businesses

    def update_business_with_scrape_data(self, place_id: str, update: Dict[str, Any]) -> None:
        """Write a successful scrape. Raises on failure."""
        try:
            self.client.collection(self.collection).document(place_id).update(update)
            logger.info(f"  [Firestore] Updated {place_id} with {len(update)} fields")
        except Exception as e:
            logger.error(f"  [Firestore ERROR] Failed to update {place_id}: {e}")
            raise

    def mark_business_scrape_failed(self, place_id: str) -> None:
        """Flag a business as scraped with failed status. Never raises."""
        try:
            self.client.collection(self.collection).document(place_id).update({
                "web_scraped": True,
                "web_scrape_status": ScrapeStatus.FAILED.value,
                "web_scraped_at": utc_now().isoformat(),
            })
            logger.info(f"  Updated {place_id} with failed status")
        except Exception as e:
            logger.error(f"  Failed to update failed status for {place_id}: {e}")

    def update_job_metrics(self, job_id: Optional[str], metrics: ScrapeMetrics) -> None:
        """Set metrics.scrape on the job document. Failures are only logged."""
        if not job_id:
            logger.info("No job id, skipping metrics update")
            return
        if not self.jobs_collection:
            logger.warning("Jobs collection not configured, skipping metrics update")
            return
        try:
            self.client.collection(self.jobs_collection).document(job_id).update(
                {"metrics.scrape": metrics.model_dump()}
            )
            logger.info(f"Updated job metrics for {job_id}")
        except Exception as e:
            logger.error(f"Failed to update job metrics: {e}")
