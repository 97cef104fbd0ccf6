"""
Annotation Rewriter.

Walks the syntax tree depth-first in pre-order and attaches an inferred
return type to every function-like node that has none. The input tree is
never modified: each qualifying node is lifted into a function-like model
and the updated models are collected for the serializer.
"""

from typing import Iterator, List, Optional

import tree_sitter

from explicit_return.analyzers.program import ProgramContext
from explicit_return.models.function_node import (
    ArrowFunctionNode,
    FunctionDeclarationNode,
    FunctionExpressionNode,
    FunctionLike,
    MethodDeclarationNode,
    Span,
)
from explicit_return.models.rewrite import RewriteResult
from explicit_return.services.inferencer import ReturnTypeInferencer
from explicit_return.services.type_builder import build_type_node
from explicit_return.utils.logging import LogContext, get_logger, log_annotation_added
from explicit_return.utils.syntax import has_child_token, node_text

logger = get_logger(__name__)

FUNCTION_DECLARATION_TYPES = frozenset({"function_declaration", "generator_function_declaration"})
FUNCTION_EXPRESSION_TYPES = frozenset({"function_expression", "function", "generator_function"})

_ACCESSOR_TOKENS = ("get", "set")


def iter_preorder(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _span(node: tree_sitter.Node) -> Span:
    return Span(start=node.start_byte, end=node.end_byte)


def _optional_span(node: Optional[tree_sitter.Node]) -> Optional[Span]:
    return _span(node) if node is not None else None


def _optional_text(node: Optional[tree_sitter.Node]) -> Optional[str]:
    return node_text(node) if node is not None else None


def _leading_modifiers(node: tree_sitter.Node, name: tree_sitter.Node) -> List[str]:
    return [
        node_text(child) for child in node.children
        if child.end_byte <= name.start_byte
        and child.type not in ("decorator", "comment", "function", "*")
    ]


def lift_function_like(node: tree_sitter.Node) -> Optional[FunctionLike]:
    """
    Lift a qualifying function-like syntax node into its model.

    Returns None for nodes of other kinds, for nodes that already declare a
    return type, and for constructors and accessors.
    """
    kind = node.type
    if kind not in FUNCTION_DECLARATION_TYPES and kind not in FUNCTION_EXPRESSION_TYPES \
            and kind not in ("arrow_function", "method_definition"):
        return None
    if node.child_by_field_name("return_type") is not None:
        return None

    name = node.child_by_field_name("name")
    parameters = node.child_by_field_name("parameters")
    common = dict(
        span=_span(node),
        start_line=node.start_point[0] + 1,
        type_parameters=_optional_text(node.child_by_field_name("type_parameters")),
        body_span=_optional_span(node.child_by_field_name("body")),
        is_async=has_child_token(node, "async"),
    )

    if kind == "arrow_function":
        single = node.child_by_field_name("parameter")
        parameters = parameters if parameters is not None else single
        if parameters is None:
            return None
        return ArrowFunctionNode(
            parameters=node_text(parameters),
            parameters_span=_span(parameters),
            parenthesized=single is None,
            **common,
        )
    if parameters is None:
        return None
    common.update(parameters=node_text(parameters), parameters_span=_span(parameters))

    if kind in FUNCTION_DECLARATION_TYPES:
        if name is None:
            return None
        return FunctionDeclarationNode(
            name=node_text(name),
            modifiers=_leading_modifiers(node, name),
            asterisk=has_child_token(node, "*"),
            **common,
        )
    if kind == "method_definition":
        if name is None or node_text(name) == "constructor":
            return None
        if any(_token_before(node, token, name) for token in _ACCESSOR_TOKENS):
            return None
        return MethodDeclarationNode(
            name=node_text(name),
            modifiers=_leading_modifiers(node, name),
            asterisk=has_child_token(node, "*"),
            optional=any(
                not c.is_named and c.type == "?" and c.start_byte >= name.end_byte
                for c in node.children
            ),
            **common,
        )
    return FunctionExpressionNode(
        name=_optional_text(name),
        asterisk=has_child_token(node, "*"),
        **common,
    )


def _token_before(node: tree_sitter.Node, token: str, name: tree_sitter.Node) -> bool:
    return any(
        not c.is_named and c.type == token and c.end_byte <= name.start_byte
        for c in node.children
    )


class AnnotationRewriter:
    """
    Collects return-type annotations for one Program Context.

    Args:
        context: Parsed and bound source file
        inferencer: Return-type inferencer; one over ``context`` by default
    """

    def __init__(self, context: ProgramContext, inferencer: Optional[ReturnTypeInferencer] = None):
        self.context = context
        self.inferencer = inferencer or ReturnTypeInferencer(context)

    def rewrite(self) -> RewriteResult:
        """
        Visit every node of the tree once.

        Returns:
            The source text and the updated function-like nodes in source order
        """
        result = RewriteResult(source_text=self.context.source_text, dialect=self.context.dialect)
        with LogContext(logger, file_name=self.context.file_name, phase="rewrite"):
            for node in iter_preorder(self.context.root_node):
                function_like = lift_function_like(node)
                if function_like is None:
                    continue
                updated = self.visit_function_like(node, function_like)
                if updated is None:
                    result.skipped_count += 1
                else:
                    result.updated_nodes.append(updated)
        return result

    def visit_function_like(self, node: tree_sitter.Node,
                            function_like: FunctionLike) -> Optional[FunctionLike]:
        type_text = self.inferencer.infer(node)
        if type_text is None:
            return None
        updated = function_like.with_return_type(build_type_node(type_text, self.context.dialect))
        log_annotation_added(logger, function_like.kind, function_like.display_name, type_text)
        return updated
