"""
Return-Type Inferencer.

Reads the inferred return type of a function-like node from the Program
Context's type checker and renders it as canonical type text.
"""

import logging
from typing import Optional

import tree_sitter

from explicit_return.analyzers.program import ProgramContext
from explicit_return.analyzers.types import SignatureKind, Type, TypeFormatFlags
from explicit_return.errors import TypeResolutionError

logger = logging.getLogger(__name__)

DECLARATION_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "method_definition",
})

EXPRESSION_TYPES = frozenset({
    "arrow_function",
    "function_expression",
    "function",
    "generator_function",
})


class ReturnTypeInferencer:
    """Computes return type text for function-like nodes of one Program Context."""

    def __init__(self, context: ProgramContext):
        self.context = context
        self.checker = context.get_type_checker()

    def infer(self, node: tree_sitter.Node) -> Optional[str]:
        """
        Infer the return type of a function-like node.

        Args:
            node: Function declaration, method, arrow function or function
                expression

        Returns:
            The full, untruncated type text, or None when the type cannot be
            resolved
        """
        try:
            return_type = self._get_return_type(node)
            return self.checker.type_to_string(return_type, TypeFormatFlags.NO_TRUNCATION)
        except Exception as e:
            logger.warning(
                f"Could not infer return type at line {node.start_point[0] + 1}: {e}",
                extra={"node_kind": node.type},
            )
            return None

    def _get_return_type(self, node: tree_sitter.Node) -> Type:
        if node.type in DECLARATION_TYPES:
            signature = self.checker.get_signature_from_declaration(node)
            return self.checker.get_return_type_of_signature(signature)
        if node.type in EXPRESSION_TYPES:
            function_type = self.checker.get_type_at_location(node)
            signatures = self.checker.get_signatures_of_type(function_type, SignatureKind.CALL)
            if not signatures:
                raise TypeResolutionError(f"No call signature for {node.type}")
            return self.checker.get_return_type_of_signature(signatures[0])
        raise TypeResolutionError(f"Not a function-like node: {node.type}")
