"""Unit tests for the rewrite entry point."""

import pytest

from explicit_return import annotate, rewrite
from explicit_return.config import Settings
from explicit_return.errors import SourceParseError


@pytest.fixture
def settings():
    """Settings isolated from the environment."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_source():
    """Mixed sample covering every function-like kind."""
    return '''// Function declaration without return type
function sum(a: number, b: number) {
  return a + b;
}

// Function with explicit return type
function testVoid(): void {
  console.log("testVoid");
}

const multiply = (a: number, b: number) => {
  return a * b;
};

async function fetchData(url: string) {
  return fetch(url);
}

class Calculator {
  add(a: number, b: number) {
    return a + b;
  }
}

const handler = function (event: string) {
  return event.length;
};

console.log(sum(1, 2));
'''


def test_function_declaration(settings):
    """Test a function declaration gets its inferred return type."""
    output = rewrite("function sum(a: number, b: number) {\n  return a + b;\n}\n", settings=settings)

    assert output == "function sum(a: number, b: number): number {\n  return a + b;\n}\n"


def test_explicit_return_type_is_kept(settings):
    """Test functions with an explicit return type are left unchanged."""
    source = 'function testVoid(): void {\n  console.log("testVoid");\n}\n'
    output = rewrite(source, settings=settings)

    assert output == source
    assert output.count(": void") == 1


def test_async_function(settings):
    """Test async functions get a Promise return type."""
    output = rewrite("async function fetchData(url: string) {\n  return fetch(url);\n}\n", settings=settings)

    assert "async function fetchData(url: string): Promise<Response> {" in output


def test_arrow_function_block_body(settings):
    """Test arrow functions get the annotation before the arrow."""
    output = rewrite("const multiply = (a: number, b: number) => {\n  return a * b;\n};\n", settings=settings)

    assert "const multiply = (a: number, b: number): number => {" in output


def test_arrow_function_implicit_return(settings):
    """Test arrow functions with expression bodies."""
    output = rewrite("const divide = (a: number, b: number) => a / b;", settings=settings)

    assert output == "const divide = (a: number, b: number): number => a / b;"


def test_bare_arrow_parameter_is_parenthesized(settings):
    """Test a single unparenthesized parameter gets parentheses."""
    output = rewrite("const twice = x => x * 2;", settings=settings)

    assert output == "const twice = (x): number => x * 2;"


def test_class_method(settings):
    """Test class methods get their return type."""
    source = "class Calculator {\n  add(a: number, b: number) {\n    return a + b;\n  }\n}\n"

    assert "add(a: number, b: number): number {" in rewrite(source, settings=settings)


def test_function_expression(settings):
    """Test function expressions get their return type."""
    source = "const handler = function (event: string) {\n  return event.length;\n};\n"

    assert "function (event: string): number {" in rewrite(source, settings=settings)


def test_void_return(settings):
    """Test functions without a return value get void."""
    output = rewrite("function logMessage(msg: string) {\n  console.log(msg);\n}\n", settings=settings)

    assert "function logMessage(msg: string): void {" in output


def test_literal_union(settings):
    """Test returns of different literals keep the literal union."""
    source = (
        "function pick(flag: boolean) {\n"
        "  if (flag) {\n"
        "    return 1;\n"
        "  }\n"
        "  return \"string\";\n"
        "}\n"
    )

    assert 'function pick(flag: boolean): 1 | "string" {' in rewrite(source, settings=settings)


def test_constructors_and_accessors_are_skipped(settings):
    """Test constructors and accessors never get an annotation."""
    source = (
        "class Box {\n"
        "  constructor() {}\n"
        "  get size() {\n"
        "    return 1;\n"
        "  }\n"
        "}\n"
    )

    assert rewrite(source, settings=settings) == source


def test_sample_file(settings, sample_source):
    """Test the mixed sample end to end."""
    output = rewrite(sample_source, settings=settings)

    assert "function sum(a: number, b: number): number {" in output
    assert "function testVoid(): void {" in output
    assert output.count(": void") == 1
    assert "const multiply = (a: number, b: number): number => {" in output
    assert "async function fetchData(url: string): Promise<Response> {" in output
    assert "add(a: number, b: number): number {" in output
    assert "const handler = function (event: string): number {" in output
    assert "console.log(sum(1, 2));" in output
    assert "// Function declaration without return type\n" in output


def test_rewrite_is_idempotent(settings, sample_source):
    """Test rewriting annotated output changes nothing."""
    once = rewrite(sample_source, settings=settings)

    assert rewrite(once, settings=settings) == once


def test_comments_are_preserved(settings):
    """Test comments around and inside functions survive."""
    source = (
        "/** Adds numbers. */\n"
        "function add(a: number, /* second */ b: number) { // trailing\n"
        "  return a + b; // sum\n"
        "}\n"
    )
    output = rewrite(source, settings=settings)

    assert output == source.replace("b: number) {", "b: number): number {")


def test_line_endings_are_normalized(settings):
    """Test CRLF input is written with the configured line ending."""
    output = rewrite("function f() {\r\n  return 1;\r\n}\r\n", settings=settings)

    assert output == "function f(): number {\n  return 1;\n}\n"


def test_custom_new_line():
    """Test the configured line ending is used for every line."""
    crlf = Settings(_env_file=None, new_line="\r\n")

    assert rewrite("function f() {\n  return 1;\n}\n", settings=crlf) == (
        "function f(): number {\r\n  return 1;\r\n}\r\n"
    )


def test_tsx_dialect(settings):
    """Test JSX-returning arrows in tsx files."""
    output = rewrite("const App = () => <div>hello</div>;\n", dialect="tsx", settings=settings)

    assert output == "const App = (): JSX.Element => <div>hello</div>;\n"


def test_syntax_error_is_raised(settings):
    """Test source that does not parse raises SourceParseError."""
    with pytest.raises(SourceParseError) as excinfo:
        rewrite("function (", settings=settings, file_name="bad.ts")

    assert excinfo.value.file_name == "bad.ts"
    assert "bad.ts" in str(excinfo.value)


def test_empty_source(settings):
    """Test an empty file is returned unchanged."""
    assert rewrite("", settings=settings) == ""


def test_annotate_reports_counts(settings, sample_source):
    """Test annotate returns the updated nodes without serializing."""
    result = annotate(sample_source, settings=settings)

    assert result.source_text == sample_source
    assert result.annotation_count == 5
    assert result.skipped_count == 0
    assert [n.display_name for n in result.updated_nodes] == [
        "sum", None, "fetchData", "add", None,
    ]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
