"""Global pytest configuration for all tests."""

import os
import sys
from pathlib import Path

LIB_DIR = Path(__file__).resolve().parent.parent / "lib"


def pytest_configure(config):
    """Set environment variables before any test collection or execution."""
    if str(LIB_DIR) not in sys.path:
        sys.path.insert(0, str(LIB_DIR))

    # Unit tests never reach a real index
    for name in ("UPSTASH_VECTOR_REST_URL", "UPSTASH_VECTOR_REST_TOKEN", "CRAWL_HEADERS"):
        os.environ.pop(name, None)
    os.environ.setdefault("LOG_LEVEL", "INFO")
