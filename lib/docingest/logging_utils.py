"""
Log helpers for crawl and indexing runs.

Crawl settings carry request headers and cookies; those are masked before
the settings reach a log line. Runs end with one structured summary dict.
"""

from collections.abc import Mapping
from typing import Any

MASK = "***"
MAX_SUMMARY_ERROR = 500

# Header names containing any of these are credentials.
CREDENTIAL_HEADER_PARTS = ("authorization", "cookie", "token", "api-key", "apikey", "secret")


def is_credential_header(name: str) -> bool:
    normalized = name.lower().replace("_", "-")
    return any(part in normalized for part in CREDENTIAL_HEADER_PARTS)


def mask_value(value: Any) -> str:
    """Mask a credential, keeping a short prefix of long strings for debugging."""
    if isinstance(value, str) and len(value) > 20:
        return f"{value[:6]}...({len(value)} chars)"
    return MASK


def mask_headers(headers: Mapping[str, Any]) -> dict[str, Any]:
    return {name: mask_value(value) if is_credential_header(name) else value for name, value in headers.items()}


def safe_log_event(event: Mapping[str, Any]) -> dict[str, Any]:
    """
    Copy crawl settings for logging.

    ``headers`` are masked per header name, every ``cookies`` value is masked
    (names stay visible), and top-level keys that look like credentials are
    masked too. The input is not modified.
    """
    safe: dict[str, Any] = {}
    for key, value in event.items():
        if key == "cookies" and isinstance(value, Mapping):
            safe[key] = {name: MASK for name in value}
        elif key == "headers" and isinstance(value, Mapping):
            safe[key] = mask_headers(value)
        elif is_credential_header(key):
            safe[key] = mask_value(value)
        else:
            safe[key] = value
    return safe


def log_summary(
    operation: str,
    *,
    success: bool = True,
    duration_ms: float | None = None,
    item_count: int | None = None,
    error: str | None = None,
    **counters: int | None,
) -> dict[str, Any]:
    """Build the end-of-run summary: operation outcome, timing and counters."""
    summary: dict[str, Any] = {"operation": operation, "success": success}
    if duration_ms is not None:
        summary["duration_ms"] = round(duration_ms, 2)
    if item_count is not None:
        summary["item_count"] = item_count
    if error:
        summary["error"] = error[:MAX_SUMMARY_ERROR]
    summary.update({name: count for name, count in counters.items() if count is not None})
    return summary
