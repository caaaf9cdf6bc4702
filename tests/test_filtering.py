"""Tests for tool filtering."""

from umbraco_hosted_mcp.config import Settings
from umbraco_hosted_mcp.tools.filtering import (
    CollectionConfiguration,
    create_tool_annotations,
    expand_modes_to_collections,
    load_collection_config,
    should_include_tool,
)


class TestShouldIncludeTool:
    def test_no_filters_includes_everything(self):
        assert should_include_tool("get-document-by-id", ["read"], "document", CollectionConfiguration())

    def test_tool_exclusion_wins_over_inclusion(self):
        config = CollectionConfiguration(enabled_tools=["a"], disabled_tools=["a"])
        assert not should_include_tool("a", ["read"], "document", config)

    def test_tool_inclusion_short_circuits_later_checks(self):
        config = CollectionConfiguration(enabled_tools=["a"], disabled_slices=["read"], disabled_collections=["document"])
        assert should_include_tool("a", ["read"], "document", config)
        assert not should_include_tool("b", ["read"], "document", config)

    def test_slice_exclusion(self):
        config = CollectionConfiguration(disabled_slices=["delete"])
        assert not should_include_tool("rm", ["delete"], "document", config)
        assert should_include_tool("get", ["read"], "document", config)

    def test_slice_inclusion(self):
        config = CollectionConfiguration(enabled_slices=["read"])
        assert should_include_tool("get", ["read"], "document", config)
        assert not should_include_tool("list", ["list"], "document", config)

    def test_slice_less_tools_count_as_other(self):
        assert should_include_tool("misc", [], "document", CollectionConfiguration(enabled_slices=["other"]))
        assert not should_include_tool("misc", [], "document", CollectionConfiguration(enabled_slices=["read"]))

    def test_collection_exclusion_and_inclusion(self):
        assert not should_include_tool(
            "get", ["read"], "document", CollectionConfiguration(disabled_collections=["document"])
        )
        config = CollectionConfiguration(enabled_collections=["user"])
        assert should_include_tool("me", ["read"], "user", config)
        assert not should_include_tool("get", ["read"], "document", config)


class TestLoadCollectionConfig:
    def test_modes_expand_to_collections(self):
        assert expand_modes_to_collections(["content", "users", "content"]) == ["document", "user"]

    def test_unknown_modes_and_slices_are_ignored(self, caplog):
        settings = Settings(
            _env_file=None,
            umbraco_tool_modes="content,media",
            umbraco_include_slices="read,publish",
        )
        config = load_collection_config(settings)
        assert config.enabled_collections == ["document"]
        assert config.enabled_slices == ["read"]
        assert "media" in caplog.text
        assert "publish" in caplog.text

    def test_readonly_disables_write_slices(self):
        config = load_collection_config(Settings(_env_file=None, umbraco_readonly=True))
        assert config.disabled_slices == ["create", "update", "delete"]
        assert not should_include_tool("rm", ["delete"], "document", config)


class TestToolAnnotations:
    def test_read_tool(self):
        annotations = create_tool_annotations("Get", ["read"])
        assert annotations.readOnlyHint is True
        assert annotations.destructiveHint is False

    def test_delete_tool(self):
        annotations = create_tool_annotations("Remove", ["delete"])
        assert annotations.readOnlyHint is False
        assert annotations.destructiveHint is True
