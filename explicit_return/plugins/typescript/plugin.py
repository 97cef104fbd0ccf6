"""
TypeScript host-integration plugin.

Runs the return-type rewriter as a preprocessing hook. The hook never
raises: any failure is logged with its stack trace, recorded, and the
original text is returned so the host always receives valid input.
"""

import logging
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from explicit_return.config import Settings, settings as default_settings
from explicit_return.models.error import ErrorRecord
from explicit_return.plugins.base import LanguagePlugin
from explicit_return.services.annotator import rewrite
from explicit_return.utils.logging import log_error_with_context, setup_logging

logger = logging.getLogger(__name__)


class TypeScriptPlugin(LanguagePlugin):
    """Return-type annotation plugin for TypeScript and TSX files."""

    def __init__(self, config_path: Optional[Path] = None, settings: Optional[Settings] = None):
        """
        Initialize the TypeScript plugin.

        Args:
            config_path: Path to config.yaml file. If None, uses default location.
            settings: Rewriter settings; the module-level settings by default
        """
        if config_path is None:
            config_path = Path(__file__).parent / "config.yaml"

        with open(config_path, 'r') as f:
            self._config = yaml.safe_load(f)

        self.settings = settings or default_settings
        self._errors: List[ErrorRecord] = []
        setup_logging(self.settings.log_level.upper())

        logger.info("TypeScript plugin initialized successfully")

    @property
    def language_name(self) -> str:
        return self._config.get('name', 'TypeScript')

    @property
    def file_extensions(self) -> List[str]:
        return self._config.get('file_extensions', ['.ts', '.tsx'])

    @property
    def parsers(self) -> List[str]:
        return self._config.get('parsers', ['typescript'])

    @property
    def errors(self) -> List[ErrorRecord]:
        """Failures recorded by preprocess calls, oldest first."""
        return list(self._errors)

    def dialect_for(self, file_path: Optional[str]) -> str:
        dialects = self._config.get('dialects', {})
        default = dialects.get('default', 'typescript')
        if not file_path:
            return default
        return dialects.get(Path(file_path).suffix, default)

    def preprocess(self, text: str, options: Optional[Dict[str, Any]] = None) -> str:
        """
        Annotate the return types of a file, or return it unchanged on failure.

        Args:
            text: Original file text
            options: Host options; ``filepath`` selects the TSX grammar for .tsx files

        Returns:
            Annotated text, or ``text`` itself when rewriting failed
        """
        options = options or {}
        file_path = options.get('filepath')
        try:
            return rewrite(
                text,
                dialect=self.dialect_for(file_path),
                settings=self.settings,
                file_name=Path(file_path).name if file_path else None,
            )
        except Exception as e:
            log_error_with_context(
                logger,
                "Failed to infer types",
                e,
                file_name=file_path or self.settings.file_name,
                phase="preprocess",
            )
            self._record_error(e, file_path)
            return text

    def _record_error(self, error: Exception, file_path: Optional[str]) -> None:
        self._errors.append(ErrorRecord(
            phase="preprocess",
            error_type=type(error).__name__,
            message=str(error),
            file_path=file_path,
            stack_trace="".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
            timestamp=datetime.now(timezone.utc),
        ))
        max_records = self._config.get('max_error_records', 100)
        if len(self._errors) > max_records:
            del self._errors[:len(self._errors) - max_records]
