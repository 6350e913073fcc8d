"""Runtime settings for docingest.

Settings are read from environment variables:

- UPSTASH_VECTOR_REST_URL / UPSTASH_VECTOR_REST_TOKEN: vector store (required
  for indexing and search, not for dry runs)
- BATCH_SIZE, UPSERT_CONCURRENCY: indexing batch size and parallel upserts
- MAX_REQUESTS, MAX_CONCURRENCY: crawl request budget and parallel fetches
- REQUEST_DELAY_MS, REQUEST_TIMEOUT: per-request delay and timeout
- CRAWL_HEADERS: JSON object of request header overrides
- LOG_LEVEL: logging level name
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from docingest import constants
from docingest.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class IndexerSettings:
    """Effective settings for one CLI invocation."""

    vector_url: str | None = None
    vector_token: str | None = None
    batch_size: int = constants.BATCH_SIZE
    upsert_concurrency: int | None = None
    max_requests: int = constants.MAX_REQUESTS
    max_concurrency: int = constants.MAX_CONCURRENCY
    request_delay_ms: int = 0
    request_timeout: float = constants.REQUEST_TIMEOUT
    crawl_headers: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "IndexerSettings":
        """
        Build settings from environment variables.

        Raises:
            ConfigurationError: If a numeric setting or CRAWL_HEADERS does not parse
        """
        env = os.environ if environ is None else environ
        upsert_concurrency = env.get("UPSERT_CONCURRENCY")

        return cls(
            vector_url=env.get("UPSTASH_VECTOR_REST_URL") or None,
            vector_token=env.get("UPSTASH_VECTOR_REST_TOKEN") or None,
            batch_size=_int(env, "BATCH_SIZE", constants.BATCH_SIZE),
            upsert_concurrency=_int(env, "UPSERT_CONCURRENCY", 0) if upsert_concurrency else None,
            max_requests=_int(env, "MAX_REQUESTS", constants.MAX_REQUESTS),
            max_concurrency=_int(env, "MAX_CONCURRENCY", constants.MAX_CONCURRENCY),
            request_delay_ms=_int(env, "REQUEST_DELAY_MS", 0, minimum=0),
            request_timeout=_float(env, "REQUEST_TIMEOUT", constants.REQUEST_TIMEOUT),
            crawl_headers=_headers(env.get("CRAWL_HEADERS")),
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    def require_vector_store(self) -> tuple[str, str]:
        """
        Return the vector store URL and token.

        Raises:
            ConfigurationError: If either is missing
        """
        if not self.vector_url or not self.vector_token:
            raise ConfigurationError(
                "Vector store not configured. "
                "Set UPSTASH_VECTOR_REST_URL and UPSTASH_VECTOR_REST_TOKEN environment variables."
            )
        return self.vector_url, self.vector_token


def _int(env: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigurationError(f"{name} must be at least {minimum}, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _headers(raw: str | None) -> dict[str, str]:
    if not raw:
        return {}
    try:
        headers = json.loads(raw)
    except ValueError as e:
        raise ConfigurationError(f"CRAWL_HEADERS must be a JSON object: {e}") from e
    if not isinstance(headers, dict):
        raise ConfigurationError("CRAWL_HEADERS must be a JSON object")
    return {str(k): str(v) for k, v in headers.items()}
