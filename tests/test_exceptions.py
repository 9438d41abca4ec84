"""Tests for the policygate exception hierarchy."""

import pytest

from policygate.exceptions import (
    ConfigError,
    DownstreamError,
    ExtractionTypeError,
    PolicyError,
    PolicyGateError,
    ToolNotAllowedError,
)


class TestHierarchy:
    @pytest.mark.parametrize("error", [
        ConfigError("bad"),
        PolicyError("search", "$[", "unclosed '['"),
        ExtractionTypeError("search", "object"),
        DownstreamError("srv", "search", "crashed"),
        ToolNotAllowedError("search"),
    ])
    def test_all_inherit_from_base(self, error):
        assert isinstance(error, PolicyGateError)
        assert isinstance(error.details, dict)

    def test_extraction_type_error_is_type_error(self):
        assert isinstance(ExtractionTypeError("t", "null"), TypeError)

    def test_base_details_default_empty(self):
        assert PolicyGateError("x").details == {}


class TestMessages:
    def test_config_error(self):
        err = ConfigError("policy #0 is malformed", source="config.json", details={"index": 0})
        assert str(err) == "Invalid configuration: config.json: policy #0 is malformed"
        assert err.details == {"source": "config.json", "index": 0}

    def test_config_error_without_source(self):
        assert str(ConfigError("bad")) == "Invalid configuration: bad"

    def test_policy_error(self):
        err = PolicyError("search", "$[", "unclosed '['")
        assert str(err) == "Invalid path expression in policy 'search': '$[': unclosed '['"
        assert err.details["expression"] == "$["

    def test_policy_error_without_tool(self):
        assert str(PolicyError("", "$.", "x")).startswith("Invalid path expression in path:")

    def test_extraction_type_error(self):
        err = ExtractionTypeError("search", "object")
        assert "tool 'search'" in str(err)
        assert "object" in str(err)
        assert err.value_type == "object"

    def test_downstream_error(self):
        err = DownstreamError("srv", "search", "crashed")
        assert str(err) == "Downstream tool 'search' on server 'srv' failed: crashed"
        assert err.details == {"server": "srv", "tool_name": "search"}

    def test_downstream_error_without_tool(self):
        assert str(DownstreamError("srv", "", "x")) == "Downstream server 'srv' failed: x"

    def test_tool_not_allowed(self):
        err = ToolNotAllowedError("rm")
        assert str(err) == "Tool 'rm' is not available"
        assert err.tool_name == "rm"
