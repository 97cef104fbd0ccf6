"""Unit tests for PluginManager."""

import pytest
from pathlib import Path
from typing import Any, Dict, List, Optional

from explicit_return.plugins import LanguagePlugin, PluginManager


class MockTypeScriptPlugin(LanguagePlugin):
    """Mock TypeScript plugin for testing."""

    def __init__(self):
        self.calls = []

    @property
    def language_name(self) -> str:
        return "typescript"

    @property
    def file_extensions(self) -> List[str]:
        return [".ts", ".tsx"]

    @property
    def parsers(self) -> List[str]:
        return ["typescript"]

    def preprocess(self, text: str, options: Optional[Dict[str, Any]] = None) -> str:
        self.calls.append(options)
        return text.upper()


class MockJavaScriptPlugin(LanguagePlugin):
    """Mock JavaScript plugin for testing."""

    @property
    def language_name(self) -> str:
        return "javascript"

    @property
    def file_extensions(self) -> List[str]:
        return [".js"]

    @property
    def parsers(self) -> List[str]:
        return ["babel"]

    def preprocess(self, text: str, options: Optional[Dict[str, Any]] = None) -> str:
        return text


class TestPluginManager:
    """Test cases for PluginManager."""

    def test_register_plugin(self):
        """Test plugin registration."""
        manager = PluginManager()
        plugin = MockJavaScriptPlugin()

        manager.register_plugin(plugin)

        assert manager.get_plugin("javascript") is plugin
        assert manager.get_plugin_for_file("main.js") is plugin

    def test_get_plugin_for_file(self):
        """Test getting plugin by file extension."""
        manager = PluginManager()
        manager.register_plugin(MockJavaScriptPlugin())
        manager.register_plugin(MockTypeScriptPlugin())

        plugin = manager.get_plugin_for_file("src/index.js")
        assert plugin is not None
        assert plugin.language_name == "javascript"

        plugin = manager.get_plugin_for_file("src/app.ts")
        assert plugin is not None
        assert plugin.language_name == "typescript"

        plugin = manager.get_plugin_for_file("src/Component.tsx")
        assert plugin is not None
        assert plugin.language_name == "typescript"

        assert manager.get_plugin_for_file("src/script.py") is None

    def test_get_plugin_by_name(self):
        """Test getting plugin by language name."""
        manager = PluginManager()
        manager.register_plugin(MockJavaScriptPlugin())

        retrieved = manager.get_plugin("javascript")
        assert retrieved is not None
        assert retrieved.language_name == "javascript"

        assert manager.get_plugin("python") is None

    def test_preprocess_file(self):
        """Test files are routed to the plugin for their extension."""
        manager = PluginManager()
        plugin = MockTypeScriptPlugin()
        manager.register_plugin(plugin)

        assert manager.preprocess_file("src/app.ts", "const a = 1;") == "CONST A = 1;"
        assert plugin.calls == [{"filepath": "src/app.ts"}]

    def test_preprocess_file_without_plugin(self):
        """Test files without a plugin are returned unchanged."""
        manager = PluginManager()

        assert manager.preprocess_file("README.md", "# Title") == "# Title"

    def test_multiple_extensions_same_language(self):
        """Test plugin with multiple file extensions."""
        manager = PluginManager()
        manager.register_plugin(MockTypeScriptPlugin())

        plugin_ts = manager.get_plugin_for_file("file.ts")
        plugin_tsx = manager.get_plugin_for_file("file.tsx")

        assert plugin_ts is plugin_tsx
        assert plugin_ts.language_name == "typescript"

    def test_plugin_override(self):
        """Test that registering a plugin twice keeps the second one."""
        manager = PluginManager()
        plugin1 = MockJavaScriptPlugin()
        plugin2 = MockJavaScriptPlugin()

        manager.register_plugin(plugin1)
        manager.register_plugin(plugin2)

        assert manager.get_plugin("javascript") is plugin2

    def test_extension_claimed_by_later_plugin(self):
        """Test an extension maps to the plugin registered last."""

        class MockTsxPlugin(MockJavaScriptPlugin):
            @property
            def language_name(self) -> str:
                return "tsx"

            @property
            def file_extensions(self) -> List[str]:
                return [".tsx"]

        manager = PluginManager()
        manager.register_plugin(MockTypeScriptPlugin())
        manager.register_plugin(MockTsxPlugin())

        assert manager.get_plugin_for_file("App.tsx").language_name == "tsx"
        assert manager.get_plugin_for_file("app.ts").language_name == "typescript"

    def test_load_bundled_plugin_config(self):
        """Test the bundled TypeScript plugin configuration is valid."""
        import explicit_return.plugins.typescript as typescript_package

        manager = PluginManager()
        config = manager.load_plugin_config(Path(typescript_package.__file__).parent)

        assert config["name"] == "TypeScript"
        assert config["file_extensions"] == [".ts", ".tsx"]
        assert config["dialects"][".tsx"] == "tsx"

    def test_load_plugin_config(self, tmp_path):
        """Test loading plugin configuration from YAML."""
        manager = PluginManager()
        plugin_dir = tmp_path / "test_plugin"
        plugin_dir.mkdir()

        (plugin_dir / "config.yaml").write_text("""
name: test
version: 1.0.0
file_extensions:
  - .test
parsers:
  - test-parser
max_error_records: 5
""")

        config = manager.load_plugin_config(plugin_dir)

        assert config["name"] == "test"
        assert config["version"] == "1.0.0"
        assert ".test" in config["file_extensions"]
        assert config["parsers"] == ["test-parser"]
        assert config["max_error_records"] == 5

    def test_load_plugin_config_is_cached(self, tmp_path):
        """Test a configuration is read from disk only once."""
        manager = PluginManager()
        plugin_dir = tmp_path / "cached"
        plugin_dir.mkdir()
        config_file = plugin_dir / "config.yaml"
        config_file.write_text("name: a\nversion: 1.0.0\nfile_extensions: [.a]\nparsers: [a]\n")

        first = manager.load_plugin_config(plugin_dir)
        config_file.write_text("name: b\nversion: 2.0.0\nfile_extensions: [.b]\nparsers: [b]\n")

        assert manager.load_plugin_config(plugin_dir) is first

    def test_load_plugin_config_missing_file(self, tmp_path):
        """Test loading config from directory without config.yaml."""
        manager = PluginManager()
        plugin_dir = tmp_path / "no_config"
        plugin_dir.mkdir()

        with pytest.raises(FileNotFoundError):
            manager.load_plugin_config(plugin_dir)

    def test_load_plugin_config_invalid_yaml(self, tmp_path):
        """Test loading invalid YAML configuration."""
        manager = PluginManager()
        plugin_dir = tmp_path / "bad_config"
        plugin_dir.mkdir()
        (plugin_dir / "config.yaml").write_text("invalid: yaml: content: [")

        with pytest.raises(Exception):  # yaml.YAMLError
            manager.load_plugin_config(plugin_dir)

    def test_load_plugin_config_missing_required_fields(self, tmp_path):
        """Test loading config with missing required fields."""
        manager = PluginManager()
        plugin_dir = tmp_path / "incomplete_config"
        plugin_dir.mkdir()
        (plugin_dir / "config.yaml").write_text("""
name: test
# Missing version, file_extensions and parsers
""")

        with pytest.raises(ValueError):
            manager.load_plugin_config(plugin_dir)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
