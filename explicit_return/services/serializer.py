"""
Serializer.

Renders a rewrite result back to source text. Every byte of the original
text is kept except at the insertion points of return-type annotations;
line endings are normalised to a single convention.
"""

import logging
import re
from typing import List, Optional, Tuple

from explicit_return.config import Settings, settings as default_settings
from explicit_return.models.function_node import ArrowFunctionNode, FunctionLike
from explicit_return.models.rewrite import RewriteResult

logger = logging.getLogger(__name__)

_LINE_ENDING_RE = re.compile(r"\r\n?|\n")

# (start, end, replacement) in byte offsets of the source text
Edit = Tuple[int, int, bytes]


class Serializer:
    """Splices annotations into the source text of a rewrite result."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.new_line = self.settings.new_line

    def serialize(self, result: RewriteResult) -> str:
        """
        Render a rewrite result.

        Args:
            result: Source text and updated function-like nodes

        Returns:
            The annotated source text
        """
        source = result.source_text.encode("utf8")
        edits = sorted(
            (self.edit_for(node) for node in result.updated_nodes),
            key=lambda edit: edit[0],
        )
        parts: List[bytes] = []
        position = 0
        for start, end, replacement in edits:
            parts.append(source[position:start])
            parts.append(replacement)
            position = end
        parts.append(source[position:])
        text = b"".join(parts).decode("utf8")
        return self.normalize_line_endings(text)

    def edit_for(self, node: FunctionLike) -> Edit:
        """Return the text edit that attaches ``node``'s return type."""
        annotation = f": {node.return_type.render()}"
        span = node.parameters_span
        if isinstance(node, ArrowFunctionNode) and not node.parenthesized:
            return span.start, span.end, f"({node.parameters}){annotation}".encode("utf8")
        return span.end, span.end, annotation.encode("utf8")

    def normalize_line_endings(self, text: str) -> str:
        return _LINE_ENDING_RE.sub(lambda _: self.new_line, text)
