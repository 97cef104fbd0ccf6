"""Unit tests for the annotation rewriter and serializer."""

from unittest.mock import Mock

import pytest

from explicit_return.analyzers.program import ProgramContext, create_parser
from explicit_return.config import Settings
from explicit_return.models.function_node import (
    ArrowFunctionNode,
    FunctionDeclarationNode,
    FunctionExpressionNode,
    MethodDeclarationNode,
    Span,
)
from explicit_return.models.rewrite import RewriteResult
from explicit_return.models.type_node import KeywordTypeNode, TypeReferenceNode
from explicit_return.services.rewriter import AnnotationRewriter, iter_preorder, lift_function_like
from explicit_return.services.serializer import Serializer


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(_env_file=None)


def lift_all(source):
    """Lift every qualifying function-like node of a source text."""
    tree = create_parser().parse(source.encode("utf8"))
    lifted = (lift_function_like(node) for node in iter_preorder(tree.root_node))
    return [node for node in lifted if node is not None]


def test_iter_preorder_visits_parents_first():
    """Test nodes are yielded before their children, in source order."""
    tree = create_parser().parse(b"function a() {}\nfunction b() {}\n")
    names = [
        node.child_by_field_name("name").text.decode()
        for node in iter_preorder(tree.root_node)
        if node.type == "function_declaration"
    ]

    assert names == ["a", "b"]


def test_lift_function_declaration():
    """Test function declarations keep their name, modifiers and parameters."""
    source = "export async function load(url: string) {\n  return url;\n}\n"
    [node] = lift_all(source)

    assert isinstance(node, FunctionDeclarationNode)
    assert node.name == "load"
    assert node.is_async is True
    assert node.modifiers == ["async"]
    assert node.parameters == "(url: string)"
    assert source.encode()[node.parameters_span.start:node.parameters_span.end] == b"(url: string)"
    assert node.start_line == 1
    assert node.return_type is None


def test_lift_generator_declaration():
    """Test generator declarations record their asterisk."""
    [node] = lift_all("function* ids() { yield 1; }")

    assert isinstance(node, FunctionDeclarationNode)
    assert node.asterisk is True
    assert node.modifiers == []


def test_lift_arrow_functions():
    """Test parenthesized and bare arrow parameter lists."""
    nodes = lift_all("const a = (x: number) => x;\nconst b = y => y;\n")

    assert [type(n) for n in nodes] == [ArrowFunctionNode, ArrowFunctionNode]
    assert nodes[0].parenthesized is True
    assert nodes[0].parameters == "(x: number)"
    assert nodes[1].parenthesized is False
    assert nodes[1].parameters == "y"


def test_lift_function_expression():
    """Test function expressions may be anonymous."""
    [node] = lift_all("const f = function (e: string) { return e; };")

    assert isinstance(node, FunctionExpressionNode)
    assert node.name is None
    assert node.display_name is None


def test_lift_methods_skips_constructors_and_accessors():
    """Test only plain methods qualify inside a class body."""
    source = (
        "class Box {\n"
        "  constructor(private value: number) {}\n"
        "  get size() { return 1; }\n"
        "  set size(v: number) {}\n"
        "  static create() { return new Box(1); }\n"
        "  open?() { return true; }\n"
        "}\n"
    )
    nodes = lift_all(source)

    assert [n.name for n in nodes] == ["create", "open"]
    assert all(isinstance(n, MethodDeclarationNode) for n in nodes)
    assert nodes[0].modifiers == ["static"]
    assert nodes[1].optional is True


def test_lift_skips_annotated_functions():
    """Test nodes that already declare a return type are not lifted."""
    assert lift_all("function done(): void {}\nconst g = (): number => 1;\n") == []


def test_with_return_type_copies():
    """Test attaching a return type leaves the original node untouched."""
    [node] = lift_all("function f() { return 1; }")
    updated = node.with_return_type(KeywordTypeNode(keyword="number"))

    assert node.return_type is None
    assert updated.return_type == KeywordTypeNode(keyword="number")
    assert updated.parameters_span == node.parameters_span


def test_rewriter_collects_nodes_in_source_order(settings):
    """Test nested functions are visited after their parents."""
    source = (
        "function outer() {\n"
        "  const inner = () => 1;\n"
        "  return inner();\n"
        "}\n"
    )
    result = AnnotationRewriter(ProgramContext(source, settings=settings)).rewrite()

    assert [n.kind for n in result.updated_nodes] == ["function_declaration", "arrow_function"]
    assert [n.return_type.render() for n in result.updated_nodes] == ["number", "number"]
    assert result.skipped_count == 0
    assert result.source_text == source


def test_rewriter_counts_skipped_nodes(settings):
    """Test nodes the inferencer cannot type are left alone and counted."""
    context = ProgramContext("function a() {}\nfunction b() {}\n", settings=settings)
    inferencer = Mock()
    inferencer.infer.side_effect = ["void", None]

    result = AnnotationRewriter(context, inferencer=inferencer).rewrite()

    assert result.annotation_count == 1
    assert result.skipped_count == 1
    assert result.updated_nodes[0].name == "a"


def test_rewriter_does_not_modify_tree(settings):
    """Test the parse tree is unchanged after a rewrite."""
    context = ProgramContext("function f() { return 1; }", settings=settings)
    before = str(context.root_node)

    AnnotationRewriter(context).rewrite()

    assert str(context.root_node) == before


def _declaration(source, return_type):
    [node] = lift_all(source)
    return node.with_return_type(return_type)


def test_serializer_inserts_after_parameters(settings):
    """Test the annotation lands right after the parameter list."""
    source = "function f(a: number) {\n  return a;\n}\n"
    result = RewriteResult(
        source_text=source,
        updated_nodes=[_declaration(source, KeywordTypeNode(keyword="number"))],
    )

    assert Serializer(settings).serialize(result) == "function f(a: number): number {\n  return a;\n}\n"


def test_serializer_parenthesizes_bare_arrow_parameter(settings):
    """Test a bare arrow parameter gets parentheses with its annotation."""
    source = "const id = x => x;"
    result = RewriteResult(
        source_text=source,
        updated_nodes=[_declaration(source, KeywordTypeNode(keyword="any"))],
    )

    assert Serializer(settings).serialize(result) == "const id = (x): any => x;"


def test_serializer_applies_edits_in_offset_order(settings):
    """Test edits supplied out of order are spliced by position."""
    source = "function a() {}\nfunction b() {}\n"
    first, second = lift_all(source)
    result = RewriteResult(source_text=source, updated_nodes=[
        second.with_return_type(TypeReferenceNode(type_name="B")),
        first.with_return_type(TypeReferenceNode(type_name="A")),
    ])

    assert Serializer(settings).serialize(result) == "function a(): A {}\nfunction b(): B {}\n"


def test_serializer_handles_multibyte_text(settings):
    """Test byte offsets stay correct after non-ASCII text."""
    source = "const s = \"héllo\";\nfunction f() { return s; }\n"
    result = RewriteResult(
        source_text=source,
        updated_nodes=[_declaration(source, KeywordTypeNode(keyword="string"))],
    )

    assert Serializer(settings).serialize(result) == (
        "const s = \"héllo\";\nfunction f(): string { return s; }\n"
    )


def test_serializer_normalizes_line_endings():
    """Test every line ending is rewritten to the configured one."""
    serializer = Serializer(Settings(_env_file=None, new_line="\r\n"))

    assert serializer.normalize_line_endings("a\nb\r\nc\rd") == "a\r\nb\r\nc\r\nd"


def test_serializer_edit_for_uses_span():
    """Test the edit of a parenthesized node is a pure insertion."""
    node = FunctionDeclarationNode(
        name="f",
        span=Span(start=0, end=20),
        start_line=1,
        parameters="()",
        parameters_span=Span(start=10, end=12),
        return_type=KeywordTypeNode(keyword="void"),
    )

    assert Serializer(Settings(_env_file=None)).edit_for(node) == (12, 12, b": void")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
