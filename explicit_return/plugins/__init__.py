"""
Host integration plugins.

This package provides the preprocessing hook used by host formatting
pipelines, the base plugin interface and the plugin manager.
"""

from explicit_return.plugins.base import LanguagePlugin
from explicit_return.plugins.manager import PluginManager
from explicit_return.plugins.typescript.plugin import TypeScriptPlugin

__all__ = ['LanguagePlugin', 'PluginManager', 'TypeScriptPlugin']
