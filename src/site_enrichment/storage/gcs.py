"""
GCS storage for capture bundles.

Each business scrape writes two gzip-compressed JSON objects:

    scraped-data/{place_id}/{timestamp_ms}/raw.json.gz
    scraped-data/{place_id}/{timestamp_ms}/extracted.json.gz
"""

import gzip
import json
import logging

from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from google.cloud import storage
from google.cloud.exceptions import NotFound

from ..config import PROJECT_ID
from ..exceptions import PersistenceError
from ..models import ExtractedFactBundle, RawCaptureBundle

logger = logging.getLogger(__name__)

CAPTURE_PREFIX = "scraped-data"

# Cache the client to avoid re-initialization
_gcs_client = None


def find_credentials_file() -> Optional[Path]:
    """Service account key mounted for local or Airflow runs, if any."""
    candidates = [
        Path("/opt/airflow/config/gcp.json"),
        Path(__file__).resolve().parents[3] / "config" / "gcp.json",
    ]
    for path in candidates:
        if path.exists():
            return path
    return None


def load_credentials():
    """
    Service account credentials from config/gcp.json, or None to use
    Application Default Credentials.
    """
    path = find_credentials_file()
    if path is None:
        return None
    try:
        from google.oauth2 import service_account
        return service_account.Credentials.from_service_account_file(str(path))
    except Exception as e:
        logger.warning(f"⚠️  Failed to load credentials from {path}: {e}, using default credentials")
        return None


def get_gcs_client() -> storage.Client:
    """
    Get a GCS client instance.

    Returns:
        storage.Client: Initialized (and cached) GCS client
    """
    global _gcs_client

    if _gcs_client is not None:
        return _gcs_client

    project_id = PROJECT_ID
    credentials = load_credentials()
    if credentials is not None:
        _gcs_client = storage.Client(project=project_id, credentials=credentials)
        logger.info("✅ GCS client initialized with service account credentials")
    else:
        _gcs_client = storage.Client(project=project_id)
        logger.info("✅ GCS client initialized with Application Default Credentials")
    return _gcs_client


def capture_keys(place_id: str, timestamp_ms: int) -> Tuple[str, str]:
    """Deterministic object keys for one business capture."""
    base = f"{CAPTURE_PREFIX}/{place_id}/{timestamp_ms}"
    return f"{base}/raw.json.gz", f"{base}/extracted.json.gz"


def save_gzipped_json_to_gcs(
    bucket_name: str,
    data: Dict[str, Any],
    gcs_blob_path: str,
    client: Optional[storage.Client] = None,
) -> bool:
    """
    Serialize a dict as gzip-compressed JSON and upload it.

    Args:
        bucket_name: Name of the GCS bucket
        data: JSON-serializable dict
        gcs_blob_path: Destination path in GCS
        client: Optional client (defaults to the cached one)

    Returns:
        bool: True if successful, False otherwise
    """
    try:
        client = client or get_gcs_client()
        payload = gzip.compress(json.dumps(data, ensure_ascii=False).encode("utf-8"))
        blob = client.bucket(bucket_name).blob(gcs_blob_path)
        blob.upload_from_string(payload, content_type="application/gzip")
        logger.debug(f"Uploaded {len(payload)} bytes to gs://{bucket_name}/{gcs_blob_path}")
        return True
    except Exception as e:
        logger.error(f"Failed to upload gs://{bucket_name}/{gcs_blob_path}: {e}")
        return False


def load_gzipped_json_from_gcs(
    bucket_name: str,
    gcs_blob_path: str,
    client: Optional[storage.Client] = None,
) -> Optional[Dict[str, Any]]:
    """
    Download and decode a gzip-compressed JSON object.

    Returns:
        Decoded dict, or None if missing or unreadable
    """
    try:
        client = client or get_gcs_client()
        blob = client.bucket(bucket_name).blob(gcs_blob_path)
        return json.loads(gzip.decompress(blob.download_as_bytes()).decode("utf-8"))
    except NotFound:
        logger.warning(f"File not found in GCS: gs://{bucket_name}/{gcs_blob_path}")
        return None
    except Exception as e:
        logger.error(f"Failed to load gs://{bucket_name}/{gcs_blob_path}: {e}")
        return None


class CaptureStore:
    """Writes the raw and extracted bundles for a business."""

    def __init__(self, bucket_name: str, client: Optional[storage.Client] = None):
        self.bucket_name = bucket_name
        self._client = client

    @property
    def client(self) -> storage.Client:
        if self._client is None:
            self._client = get_gcs_client()
        return self._client

    def write_bundles(
        self,
        raw: RawCaptureBundle,
        extracted: ExtractedFactBundle,
        timestamp_ms: int,
    ) -> Tuple[str, str]:
        """
        Persist both bundles.

        Returns:
            (raw_key, extracted_key)

        Raises:
            PersistenceError: if either write fails
        """
        raw_key, extracted_key = capture_keys(raw.place_id, timestamp_ms)
        for key, bundle in ((raw_key, raw), (extracted_key, extracted)):
            if not save_gzipped_json_to_gcs(self.bucket_name, bundle.model_dump(mode="json"), key, self.client):
                raise PersistenceError(f"Failed to write gs://{self.bucket_name}/{key}")
        return raw_key, extracted_key
