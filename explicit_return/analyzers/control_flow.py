"""
Syntactic control-flow facts used by return-type inference.
"""

from typing import Iterator, List

import tree_sitter

from explicit_return.analyzers.binder import CLASS_LIKE_TYPES, FUNCTION_LIKE_TYPES
from explicit_return.utils.syntax import named_children, node_text

_LOOP_TYPES = frozenset({"while_statement", "do_statement", "for_statement", "for_in_statement"})


def iter_function_body(node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Yield every node of a function body without entering nested functions or classes."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.type in FUNCTION_LIKE_TYPES or current.type in CLASS_LIKE_TYPES:
            continue
        stack.extend(reversed(current.children))


def collect_return_statements(body: tree_sitter.Node) -> List[tree_sitter.Node]:
    return [n for n in iter_function_body(body) if n.type == "return_statement"]


def collect_yield_expressions(body: tree_sitter.Node) -> List[tree_sitter.Node]:
    return [n for n in iter_function_body(body) if n.type == "yield_expression"]


def can_complete_normally(statement: tree_sitter.Node) -> bool:
    """
    Check whether execution can fall off the end of a statement.

    Only the shapes that matter for return-type inference are recognised:
    return and throw, blocks, exhaustive if/else, try statements, and
    unconditional loops without a break.
    """
    kind = statement.type
    if kind in ("return_statement", "throw_statement", "break_statement", "continue_statement"):
        return False
    if kind == "statement_block":
        return statements_complete_normally(named_children(statement))
    if kind == "if_statement":
        alternative = statement.child_by_field_name("alternative")
        if alternative is None:
            return True
        consequence = statement.child_by_field_name("consequence")
        return can_complete_normally(consequence) or can_complete_normally(alternative)
    if kind == "else_clause":
        children = named_children(statement)
        return not children or can_complete_normally(children[0])
    if kind == "try_statement":
        finalizer = statement.child_by_field_name("finalizer")
        if finalizer is not None and not _finalizer_completes(finalizer):
            return False
        body = statement.child_by_field_name("body")
        handler = statement.child_by_field_name("handler")
        if handler is None:
            return can_complete_normally(body)
        handler_body = handler.child_by_field_name("body")
        return can_complete_normally(body) or can_complete_normally(handler_body)
    if kind in ("while_statement", "do_statement"):
        condition = statement.child_by_field_name("condition")
        return not (_is_true_literal(condition) and not _has_break(statement))
    if kind == "for_statement":
        condition = statement.child_by_field_name("condition")
        unconditional = condition is None or node_text(condition).strip() in ("", ";")
        return not (unconditional and not _has_break(statement))
    if kind == "labeled_statement":
        return True
    return True


def statements_complete_normally(statements: List[tree_sitter.Node]) -> bool:
    return all(can_complete_normally(s) for s in statements)


def _finalizer_completes(finalizer: tree_sitter.Node) -> bool:
    body = finalizer.child_by_field_name("body")
    return body is None or can_complete_normally(body)


def _is_true_literal(node) -> bool:
    if node is None:
        return False
    if node.type == "parenthesized_expression":
        children = named_children(node)
        return len(children) == 1 and _is_true_literal(children[0])
    return node.type == "true"


def _has_break(loop: tree_sitter.Node) -> bool:
    stack = list(loop.children)
    while stack:
        current = stack.pop()
        if current.type == "break_statement":
            # A labelled break may leave an outer loop; treat it as leaving this one.
            return True
        if current.type in _LOOP_TYPES or current.type == "switch_statement":
            if current.type == "switch_statement":
                stack.extend(
                    c for c in _iter_subtree(current)
                    if c.type == "break_statement" and named_children(c)
                )
            continue
        if current.type in FUNCTION_LIKE_TYPES or current.type in CLASS_LIKE_TYPES:
            continue
        stack.extend(current.children)
    return False


def _iter_subtree(node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(current.children)
