"""
Policy reference documents from the structured policy feed.

The feed is a single JSON document:

    {
        "policy_definitions": [PolicyDef, ...],
        "policy_atomic_group_definitions": [PolicyGroup, ...]   # optional
    }

Each named definition becomes one Document with Markdown content and
flattened PolicyMetadata. Missing optional fields fall back to defaults;
a missing or malformed ``policy_definitions`` list is fatal for the run.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from docingest import constants
from docingest.crawler.fetcher import HttpFetcher
from docingest.exceptions import PolicyFeedError
from docingest.models import Document, DocumentKind, PolicyMetadata

logger = logging.getLogger(__name__)

POLICY_TYPE_NAMES = {
    "main": "Boolean",
    "string": "String",
    "int": "Integer",
    "int-enum": "Integer Enum",
    "string-enum": "String Enum",
    "list": "List",
    "dict": "Dictionary",
    "external": "External Data Reference",
}

PLATFORM_NAMES = {
    "chrome_os": "ChromeOS",
    "chrome": "Chrome",
    "android": "Android",
    "ios": "iOS",
    "mac": "macOS",
    "win": "Windows",
    "linux": "Linux",
    "webview_android": "Android WebView",
    "fuchsia": "Fuchsia",
}

DEFAULT_STOP_WORDS = frozenset(
    {
        "this",
        "that",
        "with",
        "from",
        "have",
        "will",
        "your",
        "when",
        "what",
        "which",
        "their",
        "would",
        "there",
        "could",
        "should",
        "about",
        "after",
        "before",
    }
)


@dataclass
class PolicyDefinition:
    """A single policy record from the feed."""

    name: str
    id: int | str | None = None
    caption: str | None = None
    desc: str | None = None
    type: str | None = None
    deprecated: bool = False
    device_only: bool = False
    features: dict[str, Any] = field(default_factory=dict)
    supported_on: list[str] = field(default_factory=list)
    items: list[dict[str, Any]] = field(default_factory=list)
    schema: Any = None
    example_value: Any = None
    has_example_value: bool = False
    note: str | None = None
    tags: list[str] = field(default_factory=list)

    def feature(self, flag: str) -> bool:
        """Feature flag value; absent flags are False."""
        return bool(self.features.get(flag, False))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyDefinition":
        features = data.get("features")
        return cls(
            name=str(data.get("name") or ""),
            id=data.get("id"),
            caption=data.get("caption"),
            desc=data.get("desc"),
            type=data.get("type"),
            deprecated=bool(data.get("deprecated", False)),
            device_only=bool(data.get("device_only", False)),
            features=features if isinstance(features, dict) else {},
            supported_on=[str(s) for s in data.get("supported_on") or []],
            items=[item for item in data.get("items") or [] if isinstance(item, dict)],
            schema=data.get("schema"),
            example_value=data.get("example_value"),
            has_example_value="example_value" in data,
            note=data.get("note"),
            tags=[str(t) for t in data.get("tags") or []],
        )


@dataclass
class PolicyGroup:
    """An atomic group of related policies."""

    name: str | None = None
    caption: str | None = None
    policies: list[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        return self.caption or self.name or ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolicyGroup":
        return cls(
            name=data.get("name"),
            caption=data.get("caption"),
            policies=[str(p) for p in data.get("policies") or []],
        )


@dataclass
class PolicyFeed:
    """Parsed policy feed."""

    definitions: list[PolicyDefinition] = field(default_factory=list)
    groups: list[PolicyGroup] = field(default_factory=list)


@dataclass
class SupportedOn:
    """Platforms and version requirements parsed from ``supported_on``."""

    platforms: list[str] = field(default_factory=list)
    min_version: int | None = None
    version_info: str | None = None


# =============================================================================
# Feed loading
# =============================================================================


def parse_policy_feed(data: Any) -> PolicyFeed:
    """
    Validate the feed's top-level shape and parse its records.

    Raises:
        PolicyFeedError: If ``policy_definitions`` is missing or not a list
    """
    if not isinstance(data, dict) or not isinstance(data.get("policy_definitions"), list):
        raise PolicyFeedError("Unexpected templates JSON shape: missing policy_definitions")

    definitions = []
    for entry in data["policy_definitions"]:
        if not isinstance(entry, dict):
            logger.warning(f"Skipping malformed policy definition: {str(entry)[:80]}")
            continue
        definitions.append(PolicyDefinition.from_dict(entry))

    groups = [
        PolicyGroup.from_dict(entry)
        for entry in data.get("policy_atomic_group_definitions") or []
        if isinstance(entry, dict)
    ]

    return PolicyFeed(definitions=definitions, groups=groups)


def fetch_policy_feed(
    url: str = constants.POLICY_FEED_URL,
    fetcher: HttpFetcher | None = None,
) -> PolicyFeed:
    """
    Fetch and parse the policy feed.

    Raises:
        PolicyFeedError: If the feed is unreachable, not JSON, or malformed
    """
    fetcher = fetcher or HttpFetcher(headers={"Accept": "application/json"})
    logger.info(f"Fetching policy definitions from {url}")

    result = fetcher.fetch(url)
    if result.error:
        raise PolicyFeedError(f"Policy feed unreachable: {result.error}")

    try:
        data = json.loads(result.content)
    except ValueError as e:
        raise PolicyFeedError(f"Policy feed is not valid JSON: {e}") from e

    feed = parse_policy_feed(data)
    logger.info(f"Found {len(feed.definitions)} policies to process")
    return feed


# =============================================================================
# Field parsing
# =============================================================================


def parse_supported_on(entries: list[str]) -> SupportedOn:
    """
    Parse ``"platform:version-constraint"`` entries.

    Examples: "chrome_os:29-", "chrome.*:87-", "android:83-". The platform
    loses a trailing ".*" wildcard (or a leading "chrome." qualifier); the
    version's leading integer counts toward the minimum version. Entries
    whose version does not parse contribute the platform only.
    """
    platforms: list[str] = []
    min_version: int | None = None
    version_details: list[str] = []

    for entry in entries:
        platform, _, version_str = entry.partition(":")
        platform = platform.strip()
        if platform.endswith(".*"):
            platform = platform[:-2]
        elif platform.startswith("chrome."):
            platform = platform[len("chrome.") :]
        if not platform:
            continue

        if platform not in platforms:
            platforms.append(platform)

        version_match = re.match(r"(\d+)", version_str.strip())
        if not version_match:
            continue

        version = int(version_match.group(1))
        if min_version is None or version < min_version:
            min_version = version
        version_details.append(f"{platform.replace('_', ' ')} v{version}+")

    return SupportedOn(
        platforms=platforms,
        min_version=min_version,
        version_info=", ".join(version_details) if version_details else None,
    )


def extract_keywords(
    text: str,
    min_length: int = constants.MIN_KEYWORD_LENGTH,
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS,
) -> list[str]:
    """Lowercased, de-duplicated words of at least ``min_length`` chars, minus stop words."""
    words = re.sub(r"[^a-z0-9\s]", " ", text.lower()).split()
    keywords: list[str] = []
    for word in words:
        if len(word) < min_length or word in stop_words or word in keywords:
            continue
        keywords.append(word)
    return keywords


# =============================================================================
# Markdown rendering
# =============================================================================


def format_policy_markdown(policy: PolicyDefinition) -> str:
    """
    Render a policy as Markdown.

    Section order: title, deprecation warning, description, details,
    allowed values, schema, example value, note, tags. Sections without
    source data are omitted.
    """
    lines: list[str] = [f"# Policy: {policy.name}"]
    if policy.caption:
        lines.append(f"\n**{policy.caption}**")

    if policy.deprecated:
        lines.append(
            "\n⚠️ **DEPRECATED POLICY**: This policy may no longer be supported or has been "
            "replaced. Please check official documentation for alternatives.\n"
        )

    if policy.desc:
        lines.append("\n## Description\n")
        paragraphs = [line.strip() for line in policy.desc.strip().split("\n") if line.strip()]
        lines.append("\n\n".join(paragraphs))

    lines.append("\n## Details\n")
    lines.extend(_format_details(policy))

    if policy.items:
        lines.append("\n## Allowed Values\n")
        for item in policy.items:
            value = item.get("value")
            rendered = f"`{json.dumps(value, ensure_ascii=False)}`" if value is not None else "`Not Set`"
            name = f" ({item['name']})" if item.get("name") else ""
            caption = item.get("caption") or "No description"
            lines.append(f"* {rendered}{name}: {caption}")

    if policy.schema and policy.type in ("dict", "list"):
        lines.append("\n## Schema\n")
        lines.extend(_format_schema(policy.schema))

    if policy.example_value is not None:
        lines.append("\n## Example Value\n")
        example = (
            policy.example_value
            if isinstance(policy.example_value, str)
            else json.dumps(policy.example_value, indent=2, ensure_ascii=False)
        )
        lines.append(f"```json\n{example}\n```")

    if policy.note:
        lines.append("\n## Note\n")
        lines.append(policy.note)

    if policy.tags:
        lines.append("\n## Tags\n")
        lines.append(", ".join(f"`{tag}`" for tag in policy.tags))

    return "\n".join(lines)


def _format_details(policy: PolicyDefinition) -> list[str]:
    details: list[str] = []

    if policy.type:
        details.append(f"* **Policy Type**: {POLICY_TYPE_NAMES.get(policy.type, policy.type)}")

    if policy.device_only:
        details.append("* **Device Only**: Yes (applies to entire device, not per-user)")

    if policy.feature("dynamic_refresh"):
        details.append("* **Dynamic Refresh**: Yes (changes apply without restart)")
    if policy.feature("per_profile"):
        details.append("* **Per Profile**: Yes (can be set differently for each user profile)")
    if policy.feature("can_be_recommended"):
        details.append(
            "* **Can Be Recommended**: Yes (can be set as a recommendation rather than mandatory)"
        )
    if policy.feature("can_be_mandatory"):
        details.append("* **Can Be Mandatory**: Yes (can be enforced as mandatory)")

    if policy.supported_on:
        supported = parse_supported_on(policy.supported_on)
        names = [PLATFORM_NAMES.get(p, p) for p in supported.platforms]
        details.append(f"* **Supported On**: {', '.join(names)}")
        if supported.version_info:
            details.append(f"* **Version Requirements**: {supported.version_info}")

    return details


def _format_schema(schema: Any) -> list[str]:
    properties = schema.get("properties") if isinstance(schema, dict) else None
    if not isinstance(properties, dict):
        return [f"```json\n{json.dumps(schema, indent=2, ensure_ascii=False)}\n```"]

    lines = ["Properties:"]
    required = set(schema.get("required") or [])
    for key, prop in properties.items():
        prop = prop if isinstance(prop, dict) else {}
        marker = " (required)" if key in required else ""
        lines.append(f"* `{key}`: {prop.get('type', 'unknown')}{marker}")
        if prop.get("description"):
            lines.append(f"  - {prop['description']}")
    return lines


# =============================================================================
# Documents
# =============================================================================


def build_policy_metadata(policy: PolicyDefinition) -> PolicyMetadata:
    """Derive flat, filterable metadata; every feature flag defaults to False."""
    supported = parse_supported_on(policy.supported_on)

    keywords: list[str] = []
    if policy.caption:
        keywords.extend(extract_keywords(policy.caption))
    if policy.desc:
        keywords.extend(extract_keywords(policy.desc)[: constants.MAX_DESC_KEYWORDS])

    return PolicyMetadata(
        policy_name=policy.name,
        policy_id=policy.id,
        deprecated=policy.deprecated,
        device_only=policy.device_only,
        supported_platforms=sorted(set(supported.platforms)),
        supported_platforms_text=supported.version_info or "Not specified",
        min_version=supported.min_version,
        policy_type=policy.type,
        tags=sorted(set(policy.tags) | set(keywords)),
        has_example=policy.has_example_value,
        source=constants.POLICY_SOURCE,
        dynamic_refresh=policy.feature("dynamic_refresh"),
        per_profile=policy.feature("per_profile"),
        can_be_recommended=policy.feature("can_be_recommended"),
        can_be_mandatory=policy.feature("can_be_mandatory"),
        cloud_only=policy.feature("cloud_only"),
        user_only=policy.feature("user_only"),
    )


def policy_document_id(policy: PolicyDefinition) -> str:
    key = policy.id if policy.id is not None else policy.name
    return f"chrome-policy-{key}"


def build_policy_document(policy: PolicyDefinition) -> Document:
    """Build the Document for one named policy definition."""
    return Document(
        id=policy_document_id(policy),
        content=format_policy_markdown(policy),
        kind=DocumentKind.POLICY,
        url=f"{constants.POLICY_PAGE_URL}#{policy.name}",
        title=policy.caption or policy.name,
        metadata=build_policy_metadata(policy),
    )


def build_policy_documents(feed: PolicyFeed) -> list[Document]:
    """
    Build one Document per named, unique policy and attach group membership.

    Definitions without a name, or whose name or id repeats an earlier
    definition, are skipped.
    """
    documents: list[Document] = []
    seen_names: set[str] = set()
    seen_ids: set[str] = set()

    for policy in feed.definitions:
        if not policy.name:
            continue

        doc_id = policy_document_id(policy)
        if policy.name in seen_names or doc_id in seen_ids:
            logger.warning(f"Skipping duplicate policy definition: {policy.name}")
            continue
        seen_names.add(policy.name)
        seen_ids.add(doc_id)

        documents.append(build_policy_document(policy))
        logger.debug(f"✓ Processed: {policy.name}")

    if feed.groups:
        enrich_with_policy_groups(documents, feed.groups)

    return documents


def enrich_with_policy_groups(documents: list[Document], groups: list[PolicyGroup]) -> None:
    """Append group membership to each member policy's content and metadata."""
    policy_to_groups: dict[str, list[str]] = {}
    for group in groups:
        if not group.label:
            continue
        for policy_name in group.policies:
            policy_to_groups.setdefault(policy_name, []).append(group.label)

    for doc in documents:
        if not isinstance(doc.metadata, PolicyMetadata):
            continue
        labels = policy_to_groups.get(doc.metadata.policy_name)
        if labels:
            doc.content += f"\n\n## Policy Groups\n\nThis policy is part of: {', '.join(labels)}"
            doc.metadata.policy_groups = list(labels)


def summarize_policies(documents: list[Document]) -> dict[str, Any]:
    """Counts and distinct values across policy documents."""
    metadata = [d.metadata for d in documents if isinstance(d.metadata, PolicyMetadata)]
    return {
        "total_policies": len(metadata),
        "deprecated_policies": sum(1 for m in metadata if m.deprecated),
        "device_only_policies": sum(1 for m in metadata if m.device_only),
        "per_profile_policies": sum(1 for m in metadata if m.per_profile),
        "platforms": sorted({p for m in metadata for p in m.supported_platforms}),
        "policy_types": sorted({m.policy_type for m in metadata if m.policy_type}),
    }
