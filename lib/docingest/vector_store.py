"""
Vector store capability.

The pipeline only needs ``upsert(id, text, metadata)`` and
``query(text, top_k)``; embedding and ranking happen inside the store.
UpstashVectorStore implements both over the Upstash Vector REST API.

Usage:
    with UpstashVectorStore(url, token) as store:
        store.upsert("doc-1", "# Title\\n\\nBody", {"kind": "cloud-docs"})
        hits = store.query("how do I configure X", top_k=3)
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from docingest import constants
from docingest.exceptions import VectorStoreError

logger = logging.getLogger(__name__)


@dataclass
class QueryHit:
    """A ranked hit returned by the vector store."""

    id: str
    score: float
    text: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)


class VectorStore(Protocol):
    """Capability consumed by the indexer and the search helpers."""

    def upsert(self, id: str, text: str, metadata: dict[str, Any]) -> None: ...

    def query(self, text: str, top_k: int, include_metadata: bool = True) -> list[QueryHit]: ...


class UpstashVectorStore:
    """Upstash Vector index accessed over REST with a bearer token."""

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = constants.REQUEST_TIMEOUT,
        client: httpx.Client | None = None,
    ):
        """
        Args:
            url: Index REST URL (UPSTASH_VECTOR_REST_URL)
            token: Index REST token (UPSTASH_VECTOR_REST_TOKEN)
            timeout: Request timeout in seconds
            client: Optional preconfigured client (for testing)
        """
        self.url = url.rstrip("/")
        self.client = client or httpx.Client(
            base_url=self.url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {token}"},
        )

    def upsert(self, id: str, text: str, metadata: dict[str, Any]) -> None:
        """
        Insert or replace one document; the store embeds ``text``.

        Raises:
            VectorStoreError: If the request fails or the store reports an error
        """
        self._post("/upsert-data", {"id": id, "data": text, "metadata": metadata})

    def query(self, text: str, top_k: int, include_metadata: bool = True) -> list[QueryHit]:
        """
        Return up to ``top_k`` hits ordered by score.

        Raises:
            VectorStoreError: If the request fails or the store reports an error
        """
        result = self._post(
            "/query-data",
            {
                "data": text,
                "topK": top_k,
                "includeMetadata": include_metadata,
                "includeData": True,
            },
        )
        return [
            QueryHit(
                id=str(hit.get("id", "")),
                score=float(hit.get("score") or 0.0),
                text=hit.get("data") or "",
                metadata=hit.get("metadata") or {},
            )
            for hit in result or []
        ]

    def _post(self, path: str, payload: dict[str, Any]) -> Any:
        try:
            response = self.client.post(path, json=payload)
        except httpx.RequestError as e:
            raise VectorStoreError(f"Vector store request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error or (isinstance(body, dict) and body.get("error")):
            message = body.get("error") if isinstance(body, dict) else None
            raise VectorStoreError(
                f"Vector store error ({response.status_code}): {message or response.text[:200]}",
                status_code=response.status_code,
            )

        return body.get("result") if isinstance(body, dict) else None

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "UpstashVectorStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
