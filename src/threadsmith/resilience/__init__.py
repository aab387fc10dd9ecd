"""Retry with backoff for calls to the external content generator."""

from threadsmith.resilience.retry import raise_external_call_failure, resilient_api_call

__all__ = [
    "raise_external_call_failure",
    "resilient_api_call",
]
