"""
Knowledge base search over indexed articles and policies.

Maps vector store hits to result records; ranking is the store's.
"""

from dataclasses import asdict, dataclass
from typing import Any

from docingest import constants
from docingest.vector_store import VectorStore


@dataclass
class ArticleSearchResult:
    """A documentation article hit."""

    resource_id: str
    rank: int
    title: str | None
    article_type: str | None
    article_id: str | None
    content: str
    score: float
    url: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PolicySearchResult:
    """A policy reference hit."""

    resource_id: str
    rank: int
    title: str | None
    policy_name: str | None
    content: str
    score: float
    url: str | None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _clamp(limit: int) -> int:
    return max(1, min(limit, constants.MAX_SEARCH_RESULTS))


def search_articles(
    store: VectorStore, query: str, limit: int = constants.DEFAULT_SEARCH_RESULTS
) -> list[ArticleSearchResult]:
    """Search for documentation articles."""
    hits = store.query(query, top_k=_clamp(limit), include_metadata=True)
    return [
        ArticleSearchResult(
            resource_id=hit.id,
            rank=rank,
            title=hit.metadata.get("title"),
            article_type=hit.metadata.get("articleType"),
            article_id=hit.metadata.get("articleId"),
            content=hit.text,
            score=hit.score,
            url=hit.metadata.get("url"),
        )
        for rank, hit in enumerate(hits, start=1)
    ]


def search_policies(
    store: VectorStore, query: str, limit: int = constants.DEFAULT_SEARCH_RESULTS
) -> list[PolicySearchResult]:
    """Search for policy references."""
    hits = store.query(query, top_k=_clamp(limit), include_metadata=True)
    return [
        PolicySearchResult(
            resource_id=hit.id,
            rank=rank,
            title=hit.metadata.get("title"),
            policy_name=hit.metadata.get("policyName"),
            content=hit.text,
            score=hit.score,
            url=hit.metadata.get("url"),
        )
        for rank, hit in enumerate(hits, start=1)
    ]
