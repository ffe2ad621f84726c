"""
Metrics Module
Track suggestion request counts, reply outcomes and errors.
"""
import threading
from typing import Dict, Any, Optional

# Thread-safe metrics storage
_lock = threading.Lock()


def _empty_metrics() -> Dict[str, Any]:
    return {
        "total_requests": 0,
        "parsed_replies": 0,
        "fallback_replies": 0,
        "requests_by_provider": {},
        "errors": 0
    }


_metrics = _empty_metrics()


def increment_request(provider: str, outcome: Optional[str] = None, error: bool = False):
    """
    Record a suggestion request in metrics.

    Args:
        provider: LLM provider used
        outcome: "parsed" or "fallback" for completed requests
        error: Whether request failed
    """
    with _lock:
        _metrics["total_requests"] += 1

        if outcome == "parsed":
            _metrics["parsed_replies"] += 1
        elif outcome == "fallback":
            _metrics["fallback_replies"] += 1

        if provider:
            _metrics["requests_by_provider"][provider] = _metrics["requests_by_provider"].get(provider, 0) + 1

        if error:
            _metrics["errors"] += 1


def get_metrics() -> Dict[str, Any]:
    """Get current metrics snapshot."""
    with _lock:
        completed = _metrics["parsed_replies"] + _metrics["fallback_replies"]

        return {
            "total_requests": _metrics["total_requests"],
            "parsed_replies": _metrics["parsed_replies"],
            "fallback_replies": _metrics["fallback_replies"],
            "fallback_ratio": round(_metrics["fallback_replies"] / completed, 3) if completed > 0 else 0.0,
            "requests_by_provider": dict(_metrics["requests_by_provider"]),
            "errors": _metrics["errors"]
        }


def reset_metrics():
    """Reset all metrics (for testing)."""
    global _metrics
    with _lock:
        _metrics = _empty_metrics()
