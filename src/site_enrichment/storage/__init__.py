"""Durable storage: GCS capture objects and Firestore business/job records."""

from .businesses import BusinessStore, build_business_update, is_eligible, matches_filter_rule
from .gcs import CaptureStore, capture_keys

__all__ = [
    "BusinessStore",
    "CaptureStore",
    "build_business_update",
    "capture_keys",
    "is_eligible",
    "matches_filter_rule",
]
