"""Tests for the policy store."""

import pytest

from policygate.exceptions import ConfigError
from policygate.policy.models import PolicyRecord
from policygate.policy.store import PolicyStore


def _make_policy(tool_name: str, contains=("x",)) -> dict:
    return {
        "toolName": tool_name,
        "responseFilter": {"path": "$.items[*]", "contains": list(contains)},
    }


class TestLookup:
    def test_find_by_tool(self, store):
        policy = store.find_by_tool("search")
        assert policy is not None
        assert policy.response_filter.path == "$.items[*].title"

    def test_find_missing_returns_none(self, store):
        assert store.find_by_tool("unknown") is None

    def test_has_policy(self, store):
        assert store.has_policy("search")
        assert not store.has_policy("Search")

    def test_container_protocol(self, store):
        assert len(store) == 1
        assert "search" in store
        assert [p.tool_name for p in store] == ["search"]
        assert store.tool_names == ["search"]


class TestFromRecords:
    def test_none_gives_empty_store(self):
        assert len(PolicyStore.from_records(None)) == 0

    def test_accepts_records_and_mappings(self):
        record = PolicyRecord.model_validate(_make_policy("a"))
        store = PolicyStore.from_records([record, _make_policy("b")])
        assert store.tool_names == ["a", "b"]
        assert store.find_by_tool("a") is record

    def test_accepts_generator(self):
        store = PolicyStore.from_records(_make_policy(n) for n in ("a", "b"))
        assert len(store) == 2

    @pytest.mark.parametrize("data", ["policies", {"toolName": "a"}, 42])
    def test_non_list_rejected(self, data):
        with pytest.raises(ConfigError):
            PolicyStore.from_records(data)

    def test_non_object_entry_rejected(self):
        with pytest.raises(ConfigError) as exc_info:
            PolicyStore.from_records([_make_policy("a"), "b"])
        assert exc_info.value.details["index"] == 1

    def test_malformed_entry_names_field(self):
        with pytest.raises(ConfigError) as exc_info:
            PolicyStore.from_records([{"toolName": "a"}], source="config.json")
        message = str(exc_info.value)
        assert "config.json" in message
        assert "policy #0" in message
        assert "responseFilter" in message or "response_filter" in message

    def test_duplicate_tool_rejected(self):
        with pytest.raises(ConfigError, match="duplicate policy for tool 'a'"):
            PolicyStore.from_records([_make_policy("a"), _make_policy("a")])

    def test_duplicate_in_constructor_rejected(self):
        record = PolicyRecord.model_validate(_make_policy("a"))
        with pytest.raises(ConfigError):
            PolicyStore([record, record])

    def test_empty_contains_allowed_by_default(self):
        store = PolicyStore.from_records([_make_policy("a", contains=())])
        assert store.find_by_tool("a").response_filter.contains == ()

    def test_require_contains(self):
        with pytest.raises(ConfigError, match="empty contains"):
            PolicyStore.from_records([_make_policy("a", contains=())], require_contains=True)


class TestImmutability:
    def test_records_are_frozen(self, store):
        with pytest.raises(Exception):
            store.find_by_tool("search").tool_name = "other"

    def test_table_cannot_be_modified(self, store):
        with pytest.raises(TypeError):
            store._policies["x"] = None

    def test_overrides_are_read_only(self, store):
        overrides = store.find_by_tool("search").params_filter
        with pytest.raises(TypeError):
            overrides["visibility"] = "private"
        assert overrides == {"visibility": "public"}

    def test_nested_overrides_are_read_only(self):
        policy = dict(_make_policy("a"), paramsFilter={"opts": {"safe": True}, "tags": ["x"]})
        overrides = PolicyStore.from_records([policy]).find_by_tool("a").params_filter
        with pytest.raises(TypeError):
            overrides["opts"]["safe"] = False
        with pytest.raises(AttributeError):
            overrides["tags"].append("y")

    def test_source_data_changes_do_not_reach_store(self):
        policy = dict(_make_policy("a"), paramsFilter={"opts": {"safe": True}})
        store = PolicyStore.from_records([policy])
        policy["paramsFilter"]["opts"]["safe"] = False
        assert store.find_by_tool("a").params_filter["opts"]["safe"] is True
