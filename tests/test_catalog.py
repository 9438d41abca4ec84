"""Tests for the allow-listed tool catalog."""

from conftest import FakeToolClient

from policygate.gateway.catalog import ToolCatalog, normalize_input_schema
from policygate.gateway.models import ToolDescriptor


class TestDiscover:
    async def test_all_tools_without_allow_list(self):
        client = FakeToolClient("s1", ["a", "b"])
        catalog = await ToolCatalog.discover([client])
        assert [t.name for t in catalog.tools()] == ["a", "b"]
        assert catalog.owner("a") is client

    async def test_allow_list_hides_other_tools(self):
        client = FakeToolClient("s1", ["a", "b", "c"])
        catalog = await ToolCatalog.discover([client], allowed_tools=["c", "a", "missing"])
        assert [t.name for t in catalog.tools()] == ["a", "c"]
        assert "b" not in catalog
        assert catalog.owner("b") is None

    async def test_empty_allow_list_hides_everything(self):
        catalog = await ToolCatalog.discover([FakeToolClient("s1", ["a"])], allowed_tools=[])
        assert len(catalog) == 0

    async def test_first_server_wins_on_duplicate(self):
        first = FakeToolClient("s1", ["shared"])
        second = FakeToolClient("s2", ["shared", "own"])
        catalog = await ToolCatalog.discover([first, second])
        assert catalog.owner("shared") is first
        assert catalog.owner("own") is second
        assert len(catalog) == 2

    async def test_descriptor_keeps_server_and_description(self):
        catalog = await ToolCatalog.discover([FakeToolClient("s1", ["a"])])
        tool = catalog.get("a")
        assert tool.server == "s1"
        assert tool.description == "Test tool: a"


class TestAllowList:
    def test_none_allows_everything(self):
        assert ToolCatalog().is_allowed("anything")

    def test_list_is_exact(self):
        catalog = ToolCatalog(["search"])
        assert catalog.is_allowed("search")
        assert not catalog.is_allowed("Search")


class TestNormalizeInputSchema:
    def test_non_dict_gives_empty_object_schema(self):
        assert normalize_input_schema(None) == {"type": "object", "properties": {}}

    def test_keeps_json_types(self):
        schema = {
            "type": "object",
            "properties": {
                "q": {"type": "string", "description": "query"},
                "n": {"type": "integer", "minimum": 1},
                "tags": {"type": ["array", "null"]},
            },
            "required": ["q"],
        }
        assert normalize_input_schema(schema) == schema

    def test_datetime_becomes_date_time_string(self):
        out = normalize_input_schema({"properties": {"when": {"type": "datetime"}}})
        assert out["properties"]["when"] == {"type": "string", "format": "date-time"}

    def test_unknown_type_is_dropped(self):
        out = normalize_input_schema({"properties": {"x": {"type": "uuid", "title": "X"}}})
        assert out["properties"]["x"] == {"title": "X"}

    def test_required_limited_to_known_properties(self):
        out = normalize_input_schema({"properties": {"a": {}}, "required": ["a", "b"]})
        assert out["required"] == ["a"]

    def test_definitions_are_kept(self):
        schema = {
            "properties": {"a": {"$ref": "#/$defs/A"}},
            "$defs": {"A": {"type": "string"}},
            "additionalProperties": False,
        }
        out = normalize_input_schema(schema)
        assert out["$defs"] == {"A": {"type": "string"}}
        assert out["additionalProperties"] is False

    async def test_catalog_stores_normalized_copy(self):
        class OddClient(FakeToolClient):
            async def list_tools(self):
                return [ToolDescriptor(name="t", input_schema={"properties": {"d": {"type": "datetime"}}})]

        catalog = await ToolCatalog.discover([OddClient("s", [])])
        assert catalog.get("t").input_schema["properties"]["d"]["type"] == "string"
