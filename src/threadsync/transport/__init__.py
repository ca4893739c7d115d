"""Transport layer: threads API client and failure classification."""

from threadsync.transport.classifier import classify, is_retry_eligible, unwrap_envelope
from threadsync.transport.client import ThreadApiClient

__all__ = [
    "ThreadApiClient",
    "classify",
    "is_retry_eligible",
    "unwrap_envelope",
]
