"""
Base interface for host-pipeline plugins.

A plugin is the boundary between a host formatting pipeline and the
rewriter: the host hands it a file's text before its own parse and print
cycle and feeds the returned text to its parser.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class LanguagePlugin(ABC):
    """Base interface for language preprocessing plugins."""

    @property
    @abstractmethod
    def language_name(self) -> str:
        """Return the language name (e.g., 'TypeScript')."""
        pass

    @property
    @abstractmethod
    def file_extensions(self) -> List[str]:
        """Return supported file extensions (e.g., ['.ts', '.tsx'])."""
        pass

    @property
    @abstractmethod
    def parsers(self) -> List[str]:
        """Return the host parser names this plugin preprocesses for."""
        pass

    @abstractmethod
    def preprocess(self, text: str, options: Optional[Dict[str, Any]] = None) -> str:
        """
        Transform file text before the host parses it.

        Implementations must never raise: on any failure they return the
        original text unchanged.

        Args:
            text: Original file text
            options: Host options; ``filepath`` selects the grammar dialect

        Returns:
            Text for the host parser
        """
        pass
