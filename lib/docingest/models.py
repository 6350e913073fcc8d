"""
Data models for the ingestion pipeline.

A Document is the canonical unit persisted to the vector store. Its
metadata depends on the document kind and is flattened into a single
key/value mapping before upsert.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class DocumentKind(str, Enum):
    """Document families stored in the index."""

    ADMIN_DOCS = "admin-docs"  # Help-center articles
    CLOUD_DOCS = "cloud-docs"  # General product documentation
    POLICY = "chrome-enterprise-policy"  # Policy reference records


class ArticleType(str, Enum):
    """Help-center article shapes, derived from the URL."""

    ANSWER = "answer"
    TOPIC = "topic"


@dataclass
class ArticleMetadata:
    """Typed fields derived from a help-center article URL."""

    article_type: ArticleType | None = None
    article_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.article_type:
            data["articleType"] = self.article_type.value
        if self.article_id:
            data["articleId"] = self.article_id
        return data


@dataclass
class PolicyMetadata:
    """
    Attributes of a policy reference record.

    Every feature flag is always present and defaults to False; absence
    in the feed is the negative case, not an error.
    """

    policy_name: str
    policy_id: int | str | None = None
    deprecated: bool = False
    device_only: bool = False
    supported_platforms: list[str] = field(default_factory=list)
    supported_platforms_text: str = "Not specified"
    min_version: int | None = None
    policy_type: str | None = None
    tags: list[str] = field(default_factory=list)
    has_example: bool = False
    policy_groups: list[str] = field(default_factory=list)
    source: str = ""
    dynamic_refresh: bool = False
    per_profile: bool = False
    can_be_recommended: bool = False
    can_be_mandatory: bool = False
    cloud_only: bool = False
    user_only: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "policyName": self.policy_name,
            "deprecated": self.deprecated,
            "deviceOnly": self.device_only,
            "supportedPlatforms": list(self.supported_platforms),
            "supportedPlatformsText": self.supported_platforms_text,
            "tags": list(self.tags),
            "hasExample": self.has_example,
            "policyGroups": list(self.policy_groups),
            "source": self.source,
            "dynamicRefresh": self.dynamic_refresh,
            "perProfile": self.per_profile,
            "canBeRecommended": self.can_be_recommended,
            "canBeMandatory": self.can_be_mandatory,
            "cloudOnly": self.cloud_only,
            "userOnly": self.user_only,
        }
        if self.policy_id is not None:
            data["policyId"] = self.policy_id
        if self.min_version is not None:
            data["minVersion"] = self.min_version
        if self.policy_type:
            data["policyType"] = self.policy_type
        return data


@dataclass
class Document:
    """
    Canonical document persisted to the vector store.

    Attributes:
        id: Stable identity (canonical URL or policy key); re-crawls reuse it
        content: Converted markdown body
        kind: Document family
        url: Canonical source URL
        title: Human-readable label
        metadata: Kind-specific attributes
    """

    id: str
    content: str
    kind: DocumentKind
    url: str
    title: str
    metadata: ArticleMetadata | PolicyMetadata | None = None

    def to_vector_metadata(self) -> dict[str, Any]:
        """Flatten identity fields and kind-specific metadata into one mapping."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "title": self.title,
            "url": self.url,
        }
        if self.metadata is not None:
            data.update(self.metadata.to_dict())
        return data


@dataclass
class IndexFailure:
    """A single document that could not be upserted."""

    document_id: str
    title: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"document_id": self.document_id, "title": self.title, "error": self.error}


@dataclass
class IndexReport:
    """
    Outcome of an indexing run.

    This is the authoritative success/failure summary for ingestion.
    """

    attempted: int = 0
    succeeded: int = 0
    failures: list[IndexFailure] = field(default_factory=list)
    batches: int = 0
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "attempted": self.attempted,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "batches": self.batches,
            "failures": [f.to_dict() for f in self.failures],
            "started_at": self.started_at.isoformat(),
        }
        if self.finished_at:
            data["finished_at"] = self.finished_at.isoformat()
        return data
