"""
Program Context: an in-memory, single-file compilation unit.

A context parses one source text together with the bundled ambient
declarations and exposes a type checker over the result. Contexts are built
fresh for every rewrite and never shared.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

import tree_sitter
import tree_sitter_typescript

from explicit_return.analyzers.binder import Binder
from explicit_return.analyzers.checker import TypeChecker
from explicit_return.config import Settings, settings as default_settings
from explicit_return.errors import SourceParseError
from explicit_return.utils.syntax import find_error_node

logger = logging.getLogger(__name__)

LIB_PATH = Path(__file__).with_name("lib.d.ts")

DIALECTS = ("typescript", "tsx")


@lru_cache(maxsize=None)
def get_language(dialect: str = "typescript") -> tree_sitter.Language:
    """
    Load a tree-sitter grammar.

    Args:
        dialect: 'typescript' or 'tsx'

    Returns:
        The compiled grammar

    Raises:
        ValueError: If the dialect is unknown
    """
    if dialect == "typescript":
        return tree_sitter.Language(tree_sitter_typescript.language_typescript())
    if dialect == "tsx":
        return tree_sitter.Language(tree_sitter_typescript.language_tsx())
    raise ValueError(f"Unknown TypeScript dialect: {dialect!r} (expected one of {DIALECTS})")


def create_parser(dialect: str = "typescript") -> tree_sitter.Parser:
    return tree_sitter.Parser(get_language(dialect))


class ProgramContext:
    """
    Parsed and bound view of one source file.

    Args:
        source_text: Complete text of the file
        dialect: Grammar used to parse it
        settings: Checker settings; the module-level settings by default
        file_name: Name reported in parse errors and logs

    Raises:
        SourceParseError: If the source text does not parse cleanly
    """

    def __init__(
        self,
        source_text: str,
        dialect: str = "typescript",
        settings: Optional[Settings] = None,
        file_name: Optional[str] = None,
    ):
        self.settings = settings or default_settings
        self.dialect = dialect
        self.file_name = file_name or self.settings.file_name
        self.source_text = source_text
        self.source_bytes = source_text.encode("utf8")

        parser = create_parser(dialect)
        self.tree = parser.parse(self.source_bytes)
        error = find_error_node(self.tree.root_node)
        if error is not None:
            line, column = error.start_point
            raise SourceParseError(self.file_name, line + 1, column + 1)

        # The ambient declarations are plain TypeScript; they always use the base grammar.
        self.lib_tree = create_parser("typescript").parse(LIB_PATH.read_bytes())
        self.binder = Binder(self.lib_tree.root_node)
        self._checker: Optional[TypeChecker] = None

        logger.debug(
            f"Created program context for {self.file_name}",
            extra={"file_name": self.file_name, "dialect": dialect},
        )

    @property
    def root_node(self) -> tree_sitter.Node:
        return self.tree.root_node

    def get_type_checker(self) -> TypeChecker:
        if self._checker is None:
            self._checker = TypeChecker(self.binder, self.settings)
        return self._checker
