"""docingest

Crawls documentation sites and the policy feed into a vector index.
"""

from docingest import constants
from docingest.config import IndexerSettings
from docingest.logging_utils import log_summary, safe_log_event

__all__ = [
    "IndexerSettings",
    "constants",
    "log_summary",
    "safe_log_event",
]
