"""TypeScript preprocessing plugin."""

from explicit_return.plugins.typescript.plugin import TypeScriptPlugin

__all__ = ['TypeScriptPlugin']
