"""Unit tests for the TypeScript host-integration plugin."""

from unittest.mock import patch

import pytest

from explicit_return.config import Settings
from explicit_return.models.error import ErrorRecord
from explicit_return.plugins import TypeScriptPlugin


@pytest.fixture
def plugin():
    """TypeScript plugin with default configuration."""
    return TypeScriptPlugin(settings=Settings(_env_file=None))


def test_plugin_properties(plugin):
    """Test plugin metadata comes from config.yaml."""
    assert plugin.language_name == "TypeScript"
    assert plugin.file_extensions == [".ts", ".tsx"]
    assert plugin.parsers == ["typescript"]
    assert plugin.errors == []


def test_plugin_configures_logging_from_settings():
    """Test the configured log level is applied when the plugin starts."""
    with patch("explicit_return.plugins.typescript.plugin.setup_logging") as setup:
        TypeScriptPlugin(settings=Settings(_env_file=None, log_level="debug"))

    setup.assert_called_once_with("DEBUG")


def test_dialect_for(plugin):
    """Test the grammar dialect is chosen by file extension."""
    assert plugin.dialect_for("src/app.ts") == "typescript"
    assert plugin.dialect_for("src/App.tsx") == "tsx"
    assert plugin.dialect_for("src/types.d.ts") == "typescript"
    assert plugin.dialect_for(None) == "typescript"


def test_preprocess_annotates(plugin):
    """Test preprocess inserts return types."""
    source = "function sum(a: number, b: number) {\n  return a + b;\n}\n"

    output = plugin.preprocess(source, {"filepath": "src/math.ts"})

    assert output == "function sum(a: number, b: number): number {\n  return a + b;\n}\n"
    assert plugin.errors == []


def test_preprocess_without_options(plugin):
    """Test preprocess works without host options."""
    assert plugin.preprocess("const f = () => 1;") == "const f = (): number => 1;"


def test_preprocess_tsx(plugin):
    """Test .tsx files are parsed with JSX support."""
    source = "const App = () => <div>hello</div>;\n"

    output = plugin.preprocess(source, {"filepath": "src/App.tsx"})

    assert output == "const App = (): JSX.Element => <div>hello</div>;\n"


def test_preprocess_returns_original_on_syntax_error(plugin):
    """Test unparsable input is returned unchanged and recorded."""
    source = "function broken( {"

    output = plugin.preprocess(source, {"filepath": "src/broken.ts"})

    assert output == source
    [record] = plugin.errors
    assert isinstance(record, ErrorRecord)
    assert record.phase == "preprocess"
    assert record.error_type == "SourceParseError"
    assert record.file_path == "src/broken.ts"
    assert "broken.ts" in record.message
    assert "Traceback" in record.stack_trace


def test_preprocess_returns_original_on_unexpected_error(plugin):
    """Test any failure inside the rewrite falls back to the original text."""
    source = "function f() { return 1; }"

    with patch("explicit_return.plugins.typescript.plugin.rewrite", side_effect=RuntimeError("boom")):
        output = plugin.preprocess(source, {"filepath": "src/f.ts"})

    assert output == source
    assert plugin.errors[0].error_type == "RuntimeError"
    assert plugin.errors[0].message == "boom"


def test_error_records_are_bounded(tmp_path):
    """Test only the most recent failures are kept."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text("""
name: TypeScript
version: 1.0.0
file_extensions: [.ts]
parsers: [typescript]
max_error_records: 2
""")
    plugin = TypeScriptPlugin(config_path=config_path, settings=Settings(_env_file=None))

    for name in ("a.ts", "b.ts", "c.ts"):
        plugin.preprocess("function (", {"filepath": name})

    assert [r.file_path for r in plugin.errors] == ["b.ts", "c.ts"]


def test_errors_property_is_a_copy(plugin):
    """Test callers cannot change the recorded failures."""
    plugin.preprocess("function (", {"filepath": "x.ts"})

    plugin.errors.clear()

    assert len(plugin.errors) == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
