"""
Constants used throughout the docingest pipeline.

Centralizes limits and source endpoints so crawl and indexing runs
can be tuned in one place.
"""

# =============================================================================
# Vector Store Limits
# =============================================================================

# Maximum payload size per document accepted by the vector store (1 MiB)
MAX_DATA_SIZE = 1024 * 1024

# Documents upserted together per batch
BATCH_SIZE = 100


# =============================================================================
# Crawl Limits
# =============================================================================

# Maximum number of requests issued per crawl run
MAX_REQUESTS = 300

# Maximum number of in-flight fetches
MAX_CONCURRENCY = 10

# Request timeout in seconds
REQUEST_TIMEOUT = 30.0


# =============================================================================
# Content Extraction
# =============================================================================

# Trailing feedback footer on help-center articles; everything after it is dropped
BOILERPLATE_MARKER = r"Was this helpful\?"


# =============================================================================
# Policy Feed
# =============================================================================

POLICY_FEED_URL = "https://chromeenterprise.google/static/json/policy_templates_en-US.json"

POLICY_PAGE_URL = "https://chromeenterprise.google/policies/"

POLICY_SOURCE = "chrome-enterprise-policies"

# Keywords taken from a policy description
MAX_DESC_KEYWORDS = 10

# Shortest word kept as a keyword
MIN_KEYWORD_LENGTH = 4


# =============================================================================
# Search
# =============================================================================

DEFAULT_SEARCH_RESULTS = 3
MAX_SEARCH_RESULTS = 100
