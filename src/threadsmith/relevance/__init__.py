"""Thread relevance odds and classification."""

from threadsmith.relevance.classifier import evaluate_thread_relevance, get_thread_odds

__all__ = [
    "evaluate_thread_relevance",
    "get_thread_odds",
]
