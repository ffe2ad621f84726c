"""
Request Logger
One JSON line per outfit suggestion request, written to logs/requests.log.

Entries never contain the prompt, item names or credentials; only ids,
timings and outcomes.
"""
import os
import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional

LOGS_DIR = Path(os.getenv("WARDROBE_LOG_DIR", Path(__file__).parent.parent.parent / "logs"))
REQUEST_LOG_FILE = LOGS_DIR / "requests.log"

request_logger = logging.getLogger("wardrobe.requests")
request_logger.setLevel(logging.INFO)
request_logger.propagate = False


def _ensure_handler() -> None:
    """Attach the file handler on first use."""
    if any(getattr(handler, "baseFilename", None) == str(REQUEST_LOG_FILE.resolve())
           for handler in request_logger.handlers):
        return

    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(REQUEST_LOG_FILE, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    request_logger.addHandler(handler)


def log_request(
    request_id: str,
    provider_used: str,
    model: str,
    latency_ms: int,
    status: str,
    outcome: Optional[str] = None,
    item_count: int = 0,
    error: Optional[str] = None
):
    """
    Append a suggestion request entry.

    Args:
        request_id: Unique request identifier
        provider_used: openai or gemini
        model: Model name
        latency_ms: Time spent in the model call and parsing
        status: success or fail
        outcome: parsed or fallback (successful requests only)
        item_count: Number of items offered to the model
        error: Error message if failed
    """
    if not is_logging_enabled():
        return

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "provider": provider_used,
        "model": model,
        "latency_ms": latency_ms,
        "status": status,
        "item_count": item_count,
    }

    if outcome:
        entry["outcome"] = outcome
    if error:
        entry["error"] = error

    _ensure_handler()
    request_logger.info(json.dumps(entry))


def is_logging_enabled() -> bool:
    """WARDROBE_LOGGING_ENABLED, default true."""
    return os.getenv("WARDROBE_LOGGING_ENABLED", "true").lower() == "true"
