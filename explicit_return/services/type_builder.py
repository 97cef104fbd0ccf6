"""
Type-Expression Builder and Cloner.

Turns rendered type text back into detached type expression models. The
text is parsed as the definition of a synthetic type alias and the alias's
definition subtree is copied into models that keep no link to the parse
tree.
"""

import logging
from typing import List, Optional

import tree_sitter

from explicit_return.analyzers.program import create_parser
from explicit_return.errors import TypeTextParseError
from explicit_return.models.type_node import (
    ArrayTypeNode,
    GenericChild,
    GenericTypeNode,
    IntersectionTypeNode,
    KeywordTypeNode,
    LiteralTypeNode,
    PropertySignature,
    TypeLiteralNode,
    TypeNode,
    TypeReferenceNode,
    UnionTypeNode,
)
from explicit_return.utils.syntax import decode_string_literal, named_children, node_text

logger = logging.getLogger(__name__)

ALIAS_NAME = "_"


def clone_type_node(node: Optional[tree_sitter.Node]) -> Optional[TypeNode]:
    """
    Copy a type syntax node into detached models.

    Union, intersection, literal, reference, keyword, array and object
    literal types get dedicated models. Anything else is copied structurally,
    child by child, so every type syntax is supported.

    Args:
        node: A tree-sitter type node, or None

    Returns:
        The detached copy, or None when ``node`` is None
    """
    if node is None:
        return None
    kind = node.type
    if kind in ("union_type", "intersection_type"):
        members = [clone_type_node(m) for m in _flatten_chain(node, kind)]
        if kind == "union_type":
            return UnionTypeNode(types=members)
        return IntersectionTypeNode(types=members)
    if kind == "literal_type":
        return _clone_literal(node)
    if kind == "predefined_type":
        return KeywordTypeNode(keyword=node_text(node))
    if kind in ("type_identifier", "nested_type_identifier"):
        return TypeReferenceNode(type_name=node_text(node))
    if kind == "generic_type":
        name = node.child_by_field_name("name")
        arguments = node.child_by_field_name("type_arguments")
        return TypeReferenceNode(
            type_name=node_text(name),
            type_arguments=[clone_type_node(a) for a in named_children(arguments)]
            if arguments is not None else [],
        )
    if kind == "array_type":
        return ArrayTypeNode(element_type=clone_type_node(named_children(node)[0]))
    if kind == "object_type":
        return TypeLiteralNode(members=[
            _clone_property_signature(m) if m.type == "property_signature" else _clone_generic(m)
            for m in named_children(node)
        ])
    return _clone_generic(node)


def _flatten_chain(node: tree_sitter.Node, kind: str) -> List[tree_sitter.Node]:
    members = []
    for child in named_children(node):
        if child.type == kind:
            members.extend(_flatten_chain(child, kind))
        else:
            members.append(child)
    return members


def _clone_literal(node: tree_sitter.Node) -> TypeNode:
    literal = node.named_children[0] if node.named_children else node
    if literal.type == "string":
        return LiteralTypeNode(literal_kind="string", value=decode_string_literal(literal))
    if literal.type in ("true", "false"):
        return LiteralTypeNode(literal_kind="boolean", value=literal.type)
    if literal.type in ("null", "undefined"):
        return KeywordTypeNode(keyword=literal.type)
    if literal.type in ("number", "unary_expression"):
        return LiteralTypeNode(literal_kind="number", value=node_text(literal).replace(" ", ""))
    return _clone_generic(node)


def _clone_property_signature(member: tree_sitter.Node) -> PropertySignature:
    name = member.child_by_field_name("name")
    annotation = member.child_by_field_name("type")
    modifiers = []
    for child in member.children:
        if child.start_byte >= name.start_byte:
            break
        modifiers.append(node_text(child))
    type_node = None
    if annotation is not None:
        inner = named_children(annotation)
        type_node = clone_type_node(inner[0]) if inner else None
    return PropertySignature(
        name=node_text(name),
        modifiers=modifiers,
        optional=any(
            not c.is_named and c.type == "?" for c in member.children
            if c.start_byte >= name.end_byte
        ),
        type=type_node,
    )


def _clone_generic(node: tree_sitter.Node) -> GenericTypeNode:
    if node.child_count == 0:
        return GenericTypeNode(node_type=node.type, text=node_text(node))
    children = []
    previous_end = node.start_byte
    for child in node.children:
        if child.type == "comment":
            continue
        children.append(GenericChild(
            node=clone_type_node(child),
            space_before=child.start_byte > previous_end,
        ))
        previous_end = child.end_byte
    return GenericTypeNode(node_type=node.type, children=children)


def build_type_node(text: str, dialect: str = "typescript") -> TypeNode:
    """
    Build a detached type expression from type text.

    Text that cannot be parsed as a type yields a bare type reference whose
    name is the raw text; that output is not validated.

    Args:
        text: Rendered type text, e.g. ``Promise<number>``
        dialect: Grammar used to parse the synthetic alias

    Returns:
        The type expression
    """
    try:
        return clone_type_node(_parse_alias_definition(text, dialect))
    except TypeTextParseError as e:
        logger.debug(f"Falling back to a bare type reference: {e}")
        return TypeReferenceNode(type_name=text)


def _parse_alias_definition(text: str, dialect: str) -> tree_sitter.Node:
    source = f"type {ALIAS_NAME} = {text};"
    tree = create_parser(dialect).parse(source.encode("utf8"))
    root = tree.root_node
    if root.has_error:
        raise TypeTextParseError(f"Type text does not parse: {text!r}")
    statements = named_children(root)
    if len(statements) != 1 or statements[0].type != "type_alias_declaration":
        raise TypeTextParseError(f"Type text is not a single type: {text!r}")
    definition = statements[0].child_by_field_name("value")
    if definition is None:
        raise TypeTextParseError(f"Type alias has no definition: {text!r}")
    return definition
