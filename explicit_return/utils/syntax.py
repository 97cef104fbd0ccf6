"""
Helpers for working with tree-sitter syntax nodes and TypeScript literals.
"""

import re
from decimal import Decimal
from typing import List, Optional, Tuple, Union

import tree_sitter

_SIMPLE_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}

_ESCAPE_RE = re.compile(
    r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])"
)


def node_text(node: tree_sitter.Node) -> str:
    """Return the source text spanned by a node."""
    return node.text.decode("utf8")


def named_children(node: tree_sitter.Node) -> List[tree_sitter.Node]:
    """Return the named children of a node, without comments."""
    return [child for child in node.named_children if child.type != "comment"]


def same_node(a: Optional[tree_sitter.Node], b: Optional[tree_sitter.Node]) -> bool:
    return a is not None and b is not None and a.id == b.id


def contains_node(outer: tree_sitter.Node, inner: tree_sitter.Node) -> bool:
    return outer.start_byte <= inner.start_byte and inner.end_byte <= outer.end_byte


def has_child_token(node: tree_sitter.Node, token: str) -> bool:
    """Check whether an anonymous token (e.g. 'async', '*', '?') is a direct child."""
    return any(not child.is_named and child.type == token for child in node.children)


def find_error_node(node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """Return the first ERROR or MISSING node in a subtree, if any."""
    if node.type == "ERROR" or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = find_error_node(child)
        if found is not None:
            return found
    return node


def _decode_escape(match: re.Match) -> str:
    escape = match.group(1)
    if escape in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
        # Line continuation
        return ""
    if escape in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[escape]
    if escape.startswith("u{"):
        return chr(int(escape[2:-1], 16))
    if escape.startswith("u") and len(escape) == 5:
        return chr(int(escape[1:], 16))
    if escape.startswith("x") and len(escape) == 3:
        return chr(int(escape[1:], 16))
    return escape


def decode_string_literal(node: tree_sitter.Node) -> str:
    """
    Decode the value of a string literal node.

    Args:
        node: A `string` node (quoted with ' or ")

    Returns:
        The literal's value with escape sequences resolved
    """
    raw = node_text(node)
    if len(raw) >= 2 and raw[0] in "'\"`" and raw[-1] == raw[0]:
        raw = raw[1:-1]
    return _ESCAPE_RE.sub(_decode_escape, raw)


def parse_numeric_literal(text: str) -> Tuple[Union[float, int], str]:
    """
    Parse a numeric literal's source text.

    Args:
        text: Literal text, e.g. '42', '0x1F', '1_000', '1e3', '10n'

    Returns:
        Tuple of (value, kind) where kind is 'number' or 'bigint'
    """
    text = text.replace("_", "")
    if text.endswith("n"):
        return int(text[:-1], 0), "bigint"
    lowered = text.lower()
    if lowered.startswith(("0x", "0o", "0b")):
        return float(int(lowered, 0)), "number"
    if len(lowered) > 1 and lowered.startswith("0") and lowered.isdigit():
        # Legacy octal literal
        return float(int(lowered, 8)), "number"
    return float(lowered), "number"


def format_number(value: Union[float, int]) -> str:
    """Format a number the way JavaScript's Number#toString does."""
    value = float(value)
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    magnitude = abs(value)
    if 1e-6 <= magnitude < 1e21:
        return format(Decimal(repr(value)), "f")
    mantissa, exponent = repr(value).split("e")
    sign = "-" if exponent.startswith("-") else "+"
    return f"{mantissa}e{sign}{int(exponent.lstrip('+-'))}"
