"""
Plugin Manager for host-pipeline plugins.

Registers plugins, selects one by file extension and loads plugin configuration.
"""

import logging
from pathlib import Path
from typing import Dict, Optional

import yaml

from explicit_return.plugins.base import LanguagePlugin

logger = logging.getLogger(__name__)


class PluginManager:
    """Manages plugin registration and selection."""

    def __init__(self):
        """Initialize the plugin manager."""
        self._plugins: Dict[str, LanguagePlugin] = {}
        self._extension_map: Dict[str, str] = {}
        self._config_cache: Dict[str, Dict] = {}

    def register_plugin(self, plugin: LanguagePlugin) -> None:
        """
        Register a plugin.

        Args:
            plugin: LanguagePlugin instance to register
        """
        language_name = plugin.language_name

        if language_name in self._plugins:
            logger.warning(f"Plugin for language '{language_name}' already registered, overwriting")

        self._plugins[language_name] = plugin

        for ext in plugin.file_extensions:
            if ext in self._extension_map:
                logger.warning(
                    f"Extension '{ext}' already mapped to '{self._extension_map[ext]}', "
                    f"overwriting with '{language_name}'"
                )
            self._extension_map[ext] = language_name

        logger.info(
            f"Registered plugin for language '{language_name}' "
            f"with extensions: {plugin.file_extensions}"
        )

    def get_plugin_for_file(self, file_path: str) -> Optional[LanguagePlugin]:
        """
        Get appropriate plugin based on file extension.

        Args:
            file_path: Path to the file

        Returns:
            LanguagePlugin instance if found, None otherwise
        """
        ext = Path(file_path).suffix
        language = self._extension_map.get(ext)

        if language:
            return self._plugins.get(language)

        logger.debug(f"No plugin found for file extension '{ext}' (file: {file_path})")
        return None

    def get_plugin(self, language_name: str) -> Optional[LanguagePlugin]:
        return self._plugins.get(language_name)

    def preprocess_file(self, file_path: str, text: str) -> str:
        """
        Run the plugin registered for a file's extension over its text.

        Files without a plugin are returned unchanged.
        """
        plugin = self.get_plugin_for_file(file_path)
        if plugin is None:
            return text
        return plugin.preprocess(text, {"filepath": file_path})

    def load_plugin_config(self, plugin_dir: Path) -> Dict:
        """
        Load plugin configuration from YAML file.

        Args:
            plugin_dir: Directory containing the plugin and config.yaml

        Returns:
            Dictionary containing plugin configuration

        Raises:
            FileNotFoundError: If config.yaml is not found
            ValueError: If a required field is missing
            yaml.YAMLError: If config.yaml is malformed
        """
        config_path = plugin_dir / "config.yaml"

        cache_key = str(config_path)
        if cache_key in self._config_cache:
            return self._config_cache[cache_key]

        if not config_path.exists():
            raise FileNotFoundError(f"Plugin configuration not found: {config_path}")

        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)

            required_fields = ['name', 'version', 'file_extensions', 'parsers']
            for field in required_fields:
                if field not in config:
                    raise ValueError(f"Missing required field '{field}' in {config_path}")

            self._config_cache[cache_key] = config

            logger.info(f"Loaded plugin configuration from {config_path}")
            return config

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse plugin configuration {config_path}: {e}")
            raise

