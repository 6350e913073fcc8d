"""Unit tests for policy feed parsing, formatting and enrichment."""

import copy
import json
from unittest.mock import MagicMock

import pytest

from docingest.crawler.fetcher import FetchResult
from docingest.exceptions import PolicyFeedError
from docingest.models import DocumentKind, PolicyMetadata
from docingest.policies import (
    PolicyDefinition,
    PolicyFeed,
    PolicyGroup,
    build_policy_document,
    build_policy_documents,
    build_policy_metadata,
    enrich_with_policy_groups,
    extract_keywords,
    fetch_policy_feed,
    format_policy_markdown,
    parse_policy_feed,
    parse_supported_on,
    summarize_policies,
)

SAMPLE_FEED = {
    "policy_definitions": [
        {
            "name": "HomepageLocation",
            "id": 1,
            "caption": "Configure the home page URL",
            "desc": "Configures the default home page URL in the browser.",
            "type": "string",
            "supported_on": ["chrome.*:8-", "chrome_os:11-"],
            "features": {"dynamic_refresh": True, "per_profile": True},
            "example_value": "https://www.example.com",
            "tags": ["homepage"],
        },
        {
            "name": "ExtensionInstallBlocklist",
            "id": 2,
            "caption": "Configure extension installation blocklist",
            "desc": "Specify which extensions users cannot install.",
            "type": "list",
            "supported_on": ["chrome_os:29-", "win:87-"],
            "device_only": True,
        },
        {"caption": "Nameless entries are skipped"},
    ],
    "policy_atomic_group_definitions": [
        {
            "name": "Homepage",
            "caption": "Home page",
            "policies": ["HomepageLocation", "HomepageIsNewTabPage"],
        },
    ],
}


def make_policy(**kwargs):
    data = {"name": "TestPolicy", "id": 100, "caption": "Test policy caption"}
    data.update(kwargs)
    return PolicyDefinition.from_dict(data)


class TestParseSupportedOn:
    """Tests for parse_supported_on function."""

    def test_platforms_and_min_version(self):
        supported = parse_supported_on(["chrome_os:29-", "win:87-"])
        assert set(supported.platforms) == {"chrome_os", "win"}
        assert supported.min_version == 29
        assert supported.version_info == "chrome os v29+, win v87+"

    def test_strips_wildcard_suffix(self):
        supported = parse_supported_on(["chrome.*:87-"])
        assert supported.platforms == ["chrome"]
        assert supported.min_version == 87

    def test_strips_chrome_prefix(self):
        assert parse_supported_on(["chrome.linux:50-"]).platforms == ["linux"]

    def test_unparseable_version_contributes_platform_only(self):
        supported = parse_supported_on(["android:latest", "ios:"])
        assert supported.platforms == ["android", "ios"]
        assert supported.min_version is None
        assert supported.version_info is None

    def test_version_range(self):
        assert parse_supported_on(["win:87-120"]).min_version == 87

    def test_empty(self):
        supported = parse_supported_on([])
        assert supported.platforms == []
        assert supported.min_version is None


class TestExtractKeywords:
    """Tests for extract_keywords function."""

    def test_filters_short_and_stop_words(self):
        keywords = extract_keywords("Configure the home page URL with this setting")
        assert keywords == ["configure", "home", "page", "setting"]

    def test_deduplicates_and_lowercases(self):
        assert extract_keywords("Proxy proxy PROXY server") == ["proxy", "server"]

    def test_parameters_override_defaults(self):
        keywords = extract_keywords("block all apps now", min_length=3, stop_words=frozenset({"all"}))
        assert keywords == ["block", "apps", "now"]


class TestPolicyDefinition:
    """Tests for PolicyDefinition parsing."""

    def test_missing_features_are_false(self):
        policy = make_policy()
        assert policy.feature("dynamic_refresh") is False
        assert policy.feature("per_profile") is False
        assert policy.feature("can_be_recommended") is False

    def test_non_dict_features_ignored(self):
        policy = make_policy(features=["dynamic_refresh"])
        assert policy.features == {}

    def test_example_presence_tracked(self):
        assert make_policy(example_value=False).has_example_value
        assert not make_policy().has_example_value


class TestFormatPolicyMarkdown:
    """Tests for format_policy_markdown function."""

    def test_section_order(self):
        policy = make_policy(
            desc="First line.\nSecond line.",
            type="int-enum",
            deprecated=True,
            supported_on=["win:90-"],
            items=[{"value": 1, "name": "Allow", "caption": "Allow it"}],
            example_value=1,
            note="Requires restart.",
            tags=["security"],
        )
        md = format_policy_markdown(policy)

        headings = [
            "# Policy: TestPolicy",
            "**Test policy caption**",
            "DEPRECATED POLICY",
            "## Description",
            "## Details",
            "## Allowed Values",
            "## Example Value",
            "## Note",
            "## Tags",
        ]
        positions = [md.index(h) for h in headings]
        assert positions == sorted(positions)

    def test_details(self):
        policy = make_policy(
            type="main",
            device_only=True,
            supported_on=["chrome_os:29-", "win:87-"],
            features={"dynamic_refresh": True, "can_be_mandatory": True},
        )
        md = format_policy_markdown(policy)
        assert "* **Policy Type**: Boolean" in md
        assert "* **Device Only**: Yes" in md
        assert "* **Dynamic Refresh**: Yes" in md
        assert "* **Can Be Mandatory**: Yes" in md
        assert "Per Profile" not in md
        assert "* **Supported On**: ChromeOS, Windows" in md
        assert "* **Version Requirements**: chrome os v29+, win v87+" in md

    def test_allowed_values(self):
        policy = make_policy(items=[{"value": None, "caption": "Unset"}, {"value": "block"}])
        md = format_policy_markdown(policy)
        assert "* `Not Set`: Unset" in md
        assert '* `"block"`: No description' in md

    def test_schema_for_dict_policies_only(self):
        schema = {
            "type": "object",
            "properties": {"url": {"type": "string", "description": "Target URL"}},
            "required": ["url"],
        }
        assert "## Schema" in format_policy_markdown(make_policy(type="dict", schema=schema))
        assert "## Schema" not in format_policy_markdown(make_policy(type="string", schema=schema))

        md = format_policy_markdown(make_policy(type="dict", schema=schema))
        assert "* `url`: string (required)" in md
        assert "  - Target URL" in md

    def test_example_value_rendered_as_json(self):
        md = format_policy_markdown(make_policy(example_value={"a": 1}))
        assert '```json\n{\n  "a": 1\n}\n```' in md

    def test_non_ascii_values_stay_readable(self):
        policy = make_policy(
            items=[{"value": "über", "caption": "Umlaut"}],
            example_value={"greeting": "こんにちは"},
            type="list",
            schema=["é"],
        )
        md = format_policy_markdown(policy)
        assert '* `"über"`: Umlaut' in md
        assert '"greeting": "こんにちは"' in md
        assert '"é"' in md
        assert "\\u" not in md

    def test_optional_sections_omitted(self):
        md = format_policy_markdown(PolicyDefinition(name="Bare"))
        assert md.startswith("# Policy: Bare")
        assert "## Description" not in md
        assert "## Tags" not in md


class TestBuildPolicyDocument:
    """Tests for policy Document construction."""

    def test_document_fields(self):
        doc = build_policy_document(make_policy(caption="Configure X"))
        assert doc.id == "chrome-policy-100"
        assert doc.kind == DocumentKind.POLICY
        assert doc.url == "https://chromeenterprise.google/policies/#TestPolicy"
        assert doc.title == "Configure X"

    def test_id_falls_back_to_name(self):
        doc = build_policy_document(PolicyDefinition(name="NoId"))
        assert doc.id == "chrome-policy-NoId"
        assert doc.title == "NoId"

    def test_metadata(self):
        policy = make_policy(
            supported_on=["win:87-", "chrome_os:29-"],
            tags=["security"],
            type="list",
            features={"per_profile": True},
        )
        metadata = build_policy_metadata(policy)
        assert metadata.supported_platforms == ["chrome_os", "win"]
        assert metadata.min_version == 29
        assert metadata.per_profile is True
        assert metadata.dynamic_refresh is False
        assert metadata.cloud_only is False
        assert "security" in metadata.tags
        assert "caption" in metadata.tags
        assert metadata.tags == sorted(metadata.tags)
        assert metadata.source == "chrome-enterprise-policies"

    def test_unspecified_platforms(self):
        metadata = build_policy_metadata(make_policy())
        assert metadata.supported_platforms == []
        assert metadata.supported_platforms_text == "Not specified"


class TestBuildPolicyDocuments:
    """Tests for build_policy_documents function."""

    def test_builds_named_policies_with_groups(self):
        documents = build_policy_documents(parse_policy_feed(SAMPLE_FEED))

        assert [d.metadata.policy_name for d in documents] == [
            "HomepageLocation",
            "ExtensionInstallBlocklist",
        ]
        homepage = documents[0]
        assert homepage.metadata.policy_groups == ["Home page"]
        assert homepage.content.endswith("## Policy Groups\n\nThis policy is part of: Home page")
        assert documents[1].metadata.policy_groups == []

    def test_skips_duplicate_names_and_ids(self):
        feed = PolicyFeed(
            definitions=[
                PolicyDefinition(name="A", id=1),
                PolicyDefinition(name="A", id=2),
                PolicyDefinition(name="B", id=1),
                PolicyDefinition(name="C", id=3),
            ]
        )
        documents = build_policy_documents(feed)
        assert [d.id for d in documents] == ["chrome-policy-1", "chrome-policy-3"]

    def test_summary(self):
        documents = build_policy_documents(parse_policy_feed(SAMPLE_FEED))
        summary = summarize_policies(documents)
        assert summary["total_policies"] == 2
        assert summary["device_only_policies"] == 1
        assert summary["per_profile_policies"] == 1
        assert summary["platforms"] == ["chrome", "chrome_os", "win"]
        assert summary["policy_types"] == ["list", "string"]


class TestEnrichWithPolicyGroups:
    """Tests for enrich_with_policy_groups function."""

    def test_is_idempotent_over_fresh_documents(self):
        feed = parse_policy_feed(SAMPLE_FEED)
        first = build_policy_documents(feed)
        second = build_policy_documents(parse_policy_feed(copy.deepcopy(SAMPLE_FEED)))
        assert [(d.content, d.metadata.to_dict()) for d in first] == [
            (d.content, d.metadata.to_dict()) for d in second
        ]

    def test_lists_all_groups(self):
        doc = build_policy_document(PolicyDefinition(name="Shared"))
        groups = [
            PolicyGroup(name="One", policies=["Shared"]),
            PolicyGroup(name="Two", caption="Second group", policies=["Shared"]),
        ]
        enrich_with_policy_groups([doc], groups)
        assert doc.content.endswith("This policy is part of: One, Second group")
        assert doc.metadata.policy_groups == ["One", "Second group"]

    def test_ignores_non_policy_documents(self):
        doc = build_policy_document(PolicyDefinition(name="Other"))
        doc.metadata = None
        enrich_with_policy_groups([doc], [PolicyGroup(name="G", policies=["Other"])])
        assert "Policy Groups" not in doc.content


class TestParsePolicyFeed:
    """Tests for feed validation."""

    def test_missing_definitions_raises(self):
        with pytest.raises(PolicyFeedError):
            parse_policy_feed({"policy_atomic_group_definitions": []})

    def test_non_list_definitions_raises(self):
        with pytest.raises(PolicyFeedError):
            parse_policy_feed({"policy_definitions": {"name": "A"}})

    def test_non_dict_payload_raises(self):
        with pytest.raises(PolicyFeedError):
            parse_policy_feed(["not", "a", "feed"])

    def test_malformed_entries_skipped(self):
        feed = parse_policy_feed({"policy_definitions": ["junk", {"name": "A"}]})
        assert [d.name for d in feed.definitions] == ["A"]
        assert feed.groups == []


class TestFetchPolicyFeed:
    """Tests for fetch_policy_feed function."""

    def _fetcher(self, content="", error=None):
        fetcher = MagicMock()
        fetcher.fetch.return_value = FetchResult(
            url="https://feed.example.com/policies.json",
            status_code=200 if error is None else 503,
            content=content,
            content_type="application/json",
            is_html=False,
            error=error,
        )
        return fetcher

    def test_parses_feed(self):
        fetcher = self._fetcher(json.dumps(SAMPLE_FEED))
        feed = fetch_policy_feed("https://feed.example.com/policies.json", fetcher)
        assert len(feed.definitions) == 3
        assert len(feed.groups) == 1
        fetcher.fetch.assert_called_once_with("https://feed.example.com/policies.json")

    def test_unreachable_feed_raises(self):
        with pytest.raises(PolicyFeedError, match="unreachable"):
            fetch_policy_feed("https://feed.example.com/policies.json", self._fetcher(error="HTTP 503"))

    def test_invalid_json_raises(self):
        with pytest.raises(PolicyFeedError, match="not valid JSON"):
            fetch_policy_feed("https://feed.example.com/policies.json", self._fetcher("<html>"))


def test_policy_metadata_type():
    doc = build_policy_document(make_policy())
    assert isinstance(doc.metadata, PolicyMetadata)
