"""Tests for the policy models."""

import pytest
from pydantic import ValidationError

from policygate.policy.models import (
    ContentItem,
    ConvertMode,
    InvocationRequest,
    PolicyRecord,
    ResponseFilter,
)


class TestResponseFilter:
    def test_config_keys(self):
        rf = ResponseFilter.model_validate({
            "jsonPath": "$.items[*]",
            "contains": ["a"],
            "convertResults": "htmlToText",
        })
        assert rf.path == "$.items[*]"
        assert rf.contains == ("a",)
        assert rf.convert_results == ConvertMode.HTML_TO_TEXT

    def test_snake_case_and_path_keys(self):
        rf = ResponseFilter(path="$.x", convert_results="none")
        assert rf.convert_results == ConvertMode.NONE
        assert rf.contains == ()

    @pytest.mark.parametrize("name", ["htmlToMarkdown", "html_to_text", "html_to_markdown"])
    def test_legacy_convert_names(self, name):
        rf = ResponseFilter(path="$", convert_results=name)
        assert rf.convert_results == ConvertMode.HTML_TO_TEXT

    def test_null_convert_means_none(self):
        assert ResponseFilter(path="$", convert_results=None).convert_results == ConvertMode.NONE

    def test_unknown_convert_mode_rejected(self):
        with pytest.raises(ValidationError):
            ResponseFilter(path="$", convert_results="pdf")

    def test_bare_string_contains_rejected(self):
        with pytest.raises(ValidationError):
            ResponseFilter(path="$", contains="urgent")

    def test_empty_path_rejected(self):
        with pytest.raises(ValidationError):
            ResponseFilter(path="")

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            ResponseFilter.model_validate({"path": "$", "contain": ["x"]})

    def test_serializes_with_config_keys(self):
        data = ResponseFilter(path="$.a", contains=["x"]).model_dump(mode="json", by_alias=True)
        assert data == {"jsonPath": "$.a", "contains": ["x"], "convertResults": "none"}


class TestPolicyRecord:
    def test_from_config_shape(self, search_policy):
        record = PolicyRecord.model_validate(search_policy)
        assert record.tool_name == "search"
        assert record.params_filter == {"visibility": "public"}
        assert record.response_filter.contains == ("urgent",)

    def test_params_filter_defaults_empty(self):
        record = PolicyRecord.model_validate({"toolName": "t", "responseFilter": {"path": "$"}})
        assert record.params_filter == {}

    def test_overrides_serialize_as_plain_json(self):
        record = PolicyRecord.model_validate({
            "toolName": "t",
            "paramsFilter": {"opts": {"safe": True}, "tags": ["a"]},
            "responseFilter": {"path": "$"},
        })
        data = record.model_dump(mode="json", by_alias=True)
        assert data["paramsFilter"] == {"opts": {"safe": True}, "tags": ["a"]}
        assert type(data["paramsFilter"]["opts"]) is dict

    def test_response_filter_required(self):
        with pytest.raises(ValidationError):
            PolicyRecord.model_validate({"toolName": "t"})

    def test_frozen(self, search_policy):
        record = PolicyRecord.model_validate(search_policy)
        with pytest.raises(ValidationError):
            record.tool_name = "other"


class TestContentItem:
    def test_wire_shape(self):
        assert ContentItem(text="hi").to_wire() == {"type": "text", "text": "hi"}

    def test_accepts_wire_shape(self):
        assert ContentItem.model_validate({"type": "text", "text": "x"}).text == "x"

    def test_only_text_kind(self):
        with pytest.raises(ValidationError):
            ContentItem.model_validate({"type": "image", "text": "x"})


class TestInvocationRequest:
    def test_name_aliases(self):
        assert InvocationRequest.model_validate({"name": "search"}).tool_name == "search"
        assert InvocationRequest.model_validate({"toolName": "search"}).arguments == {}

    def test_null_arguments_are_empty(self):
        assert InvocationRequest.model_validate({"name": "t", "arguments": None}).arguments == {}

    def test_arguments_must_be_object(self):
        with pytest.raises(ValidationError):
            InvocationRequest.model_validate({"name": "t", "arguments": [1]})
