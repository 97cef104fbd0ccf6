"""Unit tests for the program context, type checker and return-type inferencer."""

import pytest

from explicit_return.analyzers.program import ProgramContext, create_parser, get_language
from explicit_return.analyzers.types import NUMBER, ObjectType, SignatureKind
from explicit_return.config import Settings
from explicit_return.errors import SourceParseError
from explicit_return.services.inferencer import ReturnTypeInferencer
from explicit_return.services.rewriter import iter_preorder


def infer_first(source, node_type, settings=None):
    """Infer the return type text of the first node of ``node_type``."""
    context = ProgramContext(source, settings=settings or Settings(_env_file=None))
    node = next(n for n in iter_preorder(context.root_node) if n.type == node_type)
    return ReturnTypeInferencer(context).infer(node)


def test_get_language_rejects_unknown_dialect():
    """Test only the typescript and tsx grammars are available."""
    with pytest.raises(ValueError):
        get_language("flow")


def test_create_parser_parses_tsx():
    """Test the tsx dialect accepts JSX syntax."""
    tree = create_parser("tsx").parse(b"const el = <div>hi</div>;")

    assert not tree.root_node.has_error


def test_program_context_reports_syntax_errors():
    """Test unparsable source raises SourceParseError with a position."""
    with pytest.raises(SourceParseError) as excinfo:
        ProgramContext("function broken( {\n", file_name="broken.ts")

    assert excinfo.value.file_name == "broken.ts"
    assert excinfo.value.line >= 1
    assert excinfo.value.column >= 1


def test_program_context_uses_settings_file_name():
    """Test the default compilation unit name comes from settings."""
    context = ProgramContext("let a = 1;", settings=Settings(_env_file=None, file_name="unit.ts"))

    assert context.file_name == "unit.ts"
    assert context.get_type_checker() is context.get_type_checker()


def test_infer_arithmetic_return():
    """Test a sum of numbers returns number."""
    source = "function sum(a: number, b: number) {\n  return a + b;\n}\n"

    assert infer_first(source, "function_declaration") == "number"


def test_infer_string_concatenation():
    """Test string concatenation returns string."""
    source = "function greet(name: string) { return 'Hello ' + name; }"

    assert infer_first(source, "function_declaration") == "string"


def test_infer_void_without_return():
    """Test a body without return statements returns void."""
    source = "function logMessage(msg: string) {\n  console.log(msg);\n}\n"

    assert infer_first(source, "function_declaration") == "void"


def test_infer_single_literal_is_widened():
    """Test a lone literal return widens to its primitive."""
    assert infer_first("function one() { return 1; }", "function_declaration") == "number"
    assert infer_first("function name() { return 'x'; }", "function_declaration") == "string"


def test_infer_literal_union_is_kept():
    """Test several literal returns keep their literal union."""
    source = (
        "function pick(flag: boolean) {\n"
        "  if (flag) {\n"
        "    return 1;\n"
        "  }\n"
        "  return \"string\";\n"
        "}\n"
    )

    assert infer_first(source, "function_declaration") == '1 | "string"'


def test_infer_null_return_is_any_without_strict_null_checks():
    """Test a lone null return widens to any in the default mode."""
    assert infer_first("function nothing() { return null; }", "function_declaration") == "any"


def test_infer_implicit_undefined_with_strict_null_checks():
    """Test a reachable end adds undefined under strict null checks."""
    source = "function maybe(flag: boolean) {\n  if (flag) {\n    return 1;\n  }\n}\n"
    settings = Settings(_env_file=None, strict_null_checks=True)

    assert infer_first(source, "function_declaration", settings) == "1 | undefined"


def test_infer_async_fetch():
    """Test async functions wrap the awaited return type in Promise."""
    source = "async function fetchData(url: string) {\n  return fetch(url);\n}\n"

    assert infer_first(source, "function_declaration") == "Promise<Response>"


def test_infer_async_without_return():
    """Test async functions without return statements return Promise<void>."""
    source = "async function wait() {\n  await fetch('/');\n}\n"

    assert infer_first(source, "function_declaration") == "Promise<void>"


def test_infer_generator():
    """Test generator functions return Generator<yield, return, unknown>."""
    source = "function* counter() {\n  yield 1;\n}\n"

    assert infer_first(source, "generator_function_declaration") == "Generator<number, void, unknown>"


def test_infer_arrow_expression_body():
    """Test arrow functions with expression bodies."""
    source = "const divide = (a: number, b: number) => a / b;"

    assert infer_first(source, "arrow_function") == "number"


def test_infer_throwing_arrow_is_never():
    """Test an arrow function that cannot complete returns never."""
    source = "const fail = () => {\n  throw new Error('boom');\n};\n"

    assert infer_first(source, "arrow_function") == "never"


def test_infer_throwing_declaration_is_void():
    """Test a function declaration that cannot complete still returns void."""
    source = "function fail() {\n  throw new Error('boom');\n}\n"

    assert infer_first(source, "function_declaration") == "void"


def test_infer_function_expression_property_access():
    """Test property access through the String wrapper members."""
    source = "const handler = function (event: string) {\n  return event.length;\n};\n"

    assert infer_first(source, "function_expression") == "number"


def test_infer_class_method():
    """Test method declarations are inferred like functions."""
    source = "class Calculator {\n  add(a: number, b: number) {\n    return a + b;\n  }\n}\n"

    assert infer_first(source, "method_definition") == "number"


def test_infer_object_literal():
    """Test object literal returns widen their property types."""
    source = "function point() {\n  return { x: 1, y: 'a' };\n}\n"

    assert infer_first(source, "function_declaration") == "{ x: number; y: string; }"


def test_infer_array_literal():
    """Test array literal returns widen their element type."""
    assert infer_first("function list() { return [1, 2]; }", "function_declaration") == "number[]"


def test_infer_type_parameter():
    """Test a returned type parameter prints by name."""
    source = "function identity<T>(value: T) {\n  return value;\n}\n"

    assert infer_first(source, "function_declaration") == "T"


def test_infer_recursion_is_any():
    """Test a return type depending on itself resolves to any."""
    source = "function loop(n: number) {\n  return loop(n - 1);\n}\n"

    assert infer_first(source, "function_declaration") == "any"


def test_infer_call_of_local_function():
    """Test calls to local functions use their inferred return type."""
    source = (
        "function sum(a: number, b: number) {\n  return a + b;\n}\n"
        "function twice(a: number) {\n  return sum(a, a);\n}\n"
    )
    context = ProgramContext(source, settings=Settings(_env_file=None))
    declarations = [n for n in iter_preorder(context.root_node) if n.type == "function_declaration"]

    assert ReturnTypeInferencer(context).infer(declarations[1]) == "number"


def test_signature_of_arrow_function():
    """Test arrow functions have exactly one call signature."""
    context = ProgramContext("const f = (x: number) => x;", settings=Settings(_env_file=None))
    checker = context.get_type_checker()
    arrow = next(n for n in iter_preorder(context.root_node) if n.type == "arrow_function")

    function_type = checker.get_type_at_location(arrow)
    signatures = checker.get_signatures_of_type(function_type, SignatureKind.CALL)

    assert isinstance(function_type, ObjectType)
    assert len(signatures) == 1
    assert checker.get_return_type_of_signature(signatures[0]) == NUMBER
    assert checker.get_signatures_of_type(function_type, SignatureKind.CONSTRUCT) == []



@pytest.mark.parametrize("expression, expected", [
    ("new Date()", "Date"),
    ("new Map<string, number>()", "Map<string, number>"),
    ("new Set([1])", "Set<number>"),
    ("new Error('x').message", "string"),
    ("new Promise<number>((resolve) => resolve(1))", "Promise<number>"),
])
def test_infer_new_builtin(expression, expected):
    """Test constructing library classes returns their instance types."""
    source = f"function f() {{ return {expression}; }}"

    assert infer_first(source, "function_declaration") == expected


def test_infer_object_entries():
    """Test Object.entries reads the value type of an object literal."""
    source = "function f() { return Object.entries({ a: 1 }); }"

    assert infer_first(source, "function_declaration") == "[string, number][]"


@pytest.mark.parametrize("source", [
    "function f(a: string | number) { if (typeof a === 'number') return a; return 0; }",
    "function f(e: Error | number) { if (e instanceof Error) return 1; return e; }",
    "function head(v: number | number[]) { return Array.isArray(v) ? v[0] : v; }",
    (
        "type Shape = { k: 'a'; v: number } | { k: 'b'; v: string };\n"
        "function f(s: Shape) { if (s.k === 'a') return s.v; return 0; }"
    ),
    (
        "type Action = { type: 'add'; amount: number } | { type: 'reset' };\n"
        "function apply(a: Action) {\n"
        "  switch (a.type) {\n"
        "    case 'add':\n"
        "      return a.amount;\n"
        "    default:\n"
        "      return 0;\n"
        "  }\n"
        "}\n"
    ),
])
def test_infer_narrowed_to_number(source):
    """Test type guards narrow the returned reference."""
    assert infer_first(source, "function_declaration") == "number"


def test_infer_typeof_narrowing_after_early_return():
    """Test an early return removes the guarded type from later statements."""
    source = (
        "function first(v: string | string[]) {\n"
        "  if (typeof v === 'string') {\n"
        "    return v;\n"
        "  }\n"
        "  return v[0];\n"
        "}\n"
    )

    assert infer_first(source, "function_declaration") == "string"


def test_infer_instanceof_narrowing_to_class():
    """Test instanceof narrows a union of classes to the tested class."""
    source = (
        "class Dog { bark() { return 'woof'; } }\n"
        "class Cat { meow() { return 1; } }\n"
        "function speak(p: Dog | Cat) { if (p instanceof Dog) { return p.bark(); } return 'quiet'; }\n"
    )

    assert infer_first(source, "function_declaration") == "string"


def test_infer_instanceof_narrowing_of_error():
    """Test instanceof Error narrows to the library Error type."""
    source = "function f(e: Error | string) { if (e instanceof Error) return e.message; return e; }"

    assert infer_first(source, "function_declaration") == "string"


def test_infer_truthiness_narrowing_with_strict_null_checks():
    """Test a truthiness check removes undefined."""
    source = "function f(s: string | undefined) { if (s) { return s; } return 'none'; }"
    settings = Settings(_env_file=None, strict_null_checks=True)

    assert infer_first(source, "function_declaration", settings) == "string"


def test_infer_typeof_narrowing_in_conditional_expression():
    """Test both branches of a conditional expression are narrowed."""
    source = "const f = (x: string | number) => typeof x === 'string' ? x.length : x;"

    assert infer_first(source, "arrow_function") == "number"


def test_infer_declared_union_narrowed_by_initializer():
    """Test a union-annotated variable takes the type of its initializer."""
    source = "function f() { let v: string | number = 'a'; return v; }"

    assert infer_first(source, "function_declaration") == "string"


@pytest.mark.parametrize("source, expected", [
    ("function f() { const o = { a: 1 } as const; return o; }", "{ readonly a: 1; }"),
    ("function f() { return { get size() { return 1; } }; }", "{ readonly size: number; }"),
    (
        "function f() { return { get v() { return 1; }, set v(x: number) {} }; }",
        "{ v: number; }",
    ),
    ("function f() { return { [Symbol.iterator]: 2 }; }", "{ [Symbol.iterator]: number; }"),
    ("const key = 'id';\nfunction f() { return { [key]: 1 }; }", "{ id: number; }"),
    ("function f(k: string) { return { [k]: 1 }; }", "{ [x: string]: number; }"),
])
def test_infer_object_literal_members(source, expected):
    """Test const assertions, accessors and computed keys of object literals."""
    assert infer_first(source, "function_declaration") == expected


def test_infer_const_array_is_readonly_tuple():
    """Test `as const` arrays become readonly tuples of literals."""
    source = "function f() { return [1, 'a'] as const; }"

    assert infer_first(source, "function_declaration") == "readonly [1, \"a\"]"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
