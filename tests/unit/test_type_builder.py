"""Unit tests for the type-expression builder and cloner."""

import pytest
from pydantic import ValidationError

from explicit_return.models.type_node import (
    ArrayTypeNode,
    GenericTypeNode,
    IntersectionTypeNode,
    KeywordTypeNode,
    LiteralTypeNode,
    PropertySignature,
    TypeLiteralNode,
    TypeReferenceNode,
    UnionTypeNode,
)
from explicit_return.services.type_builder import build_type_node, clone_type_node


def test_keyword_type():
    """Test primitive keywords become keyword nodes."""
    node = build_type_node("number")

    assert node == KeywordTypeNode(keyword="number")
    assert node.render() == "number"


@pytest.mark.parametrize("text", ["void", "any", "never", "unknown", "string", "boolean"])
def test_keyword_types_render_verbatim(text):
    """Test every keyword renders as written."""
    assert build_type_node(text).render() == text


def test_literal_union():
    """Test literal unions keep member order and literal kinds."""
    node = build_type_node('1 | "string"')

    assert isinstance(node, UnionTypeNode)
    assert node.types == [
        LiteralTypeNode(literal_kind="number", value="1"),
        LiteralTypeNode(literal_kind="string", value="string"),
    ]
    assert node.render() == '1 | "string"'


def test_union_chain_is_flattened():
    """Test nested union syntax becomes one flat union."""
    node = build_type_node("string | number | boolean | undefined")

    assert isinstance(node, UnionTypeNode)
    assert [t.render() for t in node.types] == ["string", "number", "boolean", "undefined"]


def test_intersection():
    """Test intersections of references."""
    node = build_type_node("Named & Sized")

    assert node == IntersectionTypeNode(types=[
        TypeReferenceNode(type_name="Named"),
        TypeReferenceNode(type_name="Sized"),
    ])
    assert node.render() == "Named & Sized"


def test_boolean_and_negative_literals():
    """Test boolean and negative numeric literal types."""
    assert build_type_node("true") == LiteralTypeNode(literal_kind="boolean", value="true")
    assert build_type_node("-1") == LiteralTypeNode(literal_kind="number", value="-1")


def test_string_literal_escapes():
    """Test string literal values are decoded and re-quoted."""
    node = build_type_node('"say \\"hi\\""')

    assert node == LiteralTypeNode(literal_kind="string", value='say "hi"')
    assert node.render() == '"say \\"hi\\""'


def test_generic_reference():
    """Test generic references keep their type arguments."""
    node = build_type_node("Promise<Response>")

    assert node == TypeReferenceNode(
        type_name="Promise",
        type_arguments=[TypeReferenceNode(type_name="Response")],
    )
    assert node.render() == "Promise<Response>"


def test_nested_generic_reference():
    """Test references nested inside type arguments."""
    node = build_type_node("Map<string, number[]>")

    assert node.type_arguments[1] == ArrayTypeNode(element_type=KeywordTypeNode(keyword="number"))
    assert node.render() == "Map<string, number[]>"


def test_qualified_reference():
    """Test qualified names are kept whole."""
    assert build_type_node("JSX.Element") == TypeReferenceNode(type_name="JSX.Element")


def test_array_of_union():
    """Test parenthesized array elements render unchanged."""
    node = build_type_node("(string | number)[]")

    assert isinstance(node, ArrayTypeNode)
    assert node.render() == "(string | number)[]"


def test_type_literal():
    """Test object type literals get property signature members."""
    node = build_type_node("{ x: number; y?: string; }")

    assert isinstance(node, TypeLiteralNode)
    assert node.members == [
        PropertySignature(name="x", type=KeywordTypeNode(keyword="number")),
        PropertySignature(name="y", optional=True, type=KeywordTypeNode(keyword="string")),
    ]
    assert node.render() == "{ x: number; y?: string; }"


def test_empty_type_literal():
    """Test the empty object type."""
    assert build_type_node("{}").render() == "{}"


@pytest.mark.parametrize("text", [
    "(x: number) => void",
    "[string, number]",
    "(() => void) | string",
    "typeof Calculator",
])
def test_other_syntax_is_cloned_structurally(text):
    """Test syntax without a dedicated model still renders as written."""
    assert build_type_node(text).render() == text


def test_function_type_is_generic_node():
    """Test function types are copied child by child."""
    node = build_type_node("(x: number) => void")

    assert isinstance(node, GenericTypeNode)
    assert node.node_type == "function_type"


def test_unparsable_text_falls_back_to_reference():
    """Test text that does not parse becomes a bare reference with the raw text."""
    node = build_type_node("{ a: ")

    assert node == TypeReferenceNode(type_name="{ a: ")
    assert node.render() == "{ a: "


def test_multiple_statements_fall_back_to_reference():
    """Test text that would define more than one alias is not spliced as syntax."""
    text = "number; type B = string"

    assert build_type_node(text) == TypeReferenceNode(type_name=text)


def test_clone_none():
    """Test cloning an absent node."""
    assert clone_type_node(None) is None


def test_type_nodes_are_frozen():
    """Test built nodes cannot be mutated."""
    node = build_type_node("number")

    with pytest.raises(ValidationError):
        node.keyword = "string"


def test_tsx_dialect():
    """Test type text also builds with the tsx grammar."""
    assert build_type_node("Array<string>", dialect="tsx").render() == "Array<string>"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
