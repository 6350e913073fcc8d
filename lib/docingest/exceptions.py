"""
Custom exceptions for the docingest pipeline.

Per-item failures (a single fetch or upsert) are recorded and reported,
not raised; these exceptions cover run-level failures and the capability
adapters.
"""


class DocIngestError(Exception):
    """Base exception for ingestion errors."""


class ConfigurationError(DocIngestError):
    """Required setting is missing or malformed."""


class PolicyFeedError(DocIngestError):
    """Policy feed is unreachable or has an unexpected shape."""


class VectorStoreError(DocIngestError):
    """Vector store rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
