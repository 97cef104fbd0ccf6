"""Unit tests for checker types, union construction and type printing."""

import pytest

from explicit_return.analyzers.type_printer import TypePrinter, format_property_name
from explicit_return.analyzers.types import (
    ANY,
    BOOLEAN,
    FALSE,
    NEVER,
    NULL,
    NUMBER,
    STRING,
    TRUE,
    UNDEFINED,
    UNKNOWN,
    VOID,
    ArrayType,
    LiteralType,
    ObjectType,
    Parameter,
    Property,
    Signature,
    TupleType,
    TypeFormatFlags,
    UnionType,
    get_union_type,
    get_widened_type,
    widen_literal_type,
)


@pytest.fixture
def printer():
    """Printer that reads declared return types as is."""
    return TypePrinter(lambda signature: signature.return_type)


def test_union_keywords_come_first():
    """Test primitive keywords are ordered before other members."""
    one = LiteralType(1, "number")
    result = get_union_type([one, NUMBER, STRING], strict_null_checks=True)

    # 1 is absorbed by number
    assert result == UnionType((STRING, NUMBER))


def test_union_nullish_members_last():
    """Test null and undefined sort after every other member."""
    result = get_union_type([UNDEFINED, NUMBER, NULL, STRING], strict_null_checks=True)

    assert result == UnionType((STRING, NUMBER, UNDEFINED, NULL))


def test_union_keeps_first_occurrence_order_of_literals():
    """Test non-keyword members keep their first-occurrence order."""
    one = LiteralType(1, "number")
    text = LiteralType("string", "string")

    assert get_union_type([one, text, one]) == UnionType((one, text))


def test_union_non_strict_absorbs_nullish():
    """Test null and undefined disappear next to other members without strict null checks."""
    assert get_union_type([NUMBER, UNDEFINED], strict_null_checks=False) == NUMBER
    assert get_union_type([NULL, UNDEFINED], strict_null_checks=False) == UnionType((NULL, UNDEFINED))


def test_union_true_and_false_is_boolean():
    """Test true | false collapses to boolean."""
    assert get_union_type([TRUE, FALSE]) == BOOLEAN


def test_union_edge_cases():
    """Test empty, single and top-type unions."""
    assert get_union_type([]) == NEVER
    assert get_union_type([NEVER, STRING]) == STRING
    assert get_union_type([STRING, ANY]) == ANY
    assert get_union_type([STRING, UNKNOWN]) == UNKNOWN


def test_widen_fresh_literal():
    """Test only fresh literals widen to their primitive."""
    fresh = LiteralType(1, "number", fresh=True)
    regular = LiteralType(1, "number")

    assert widen_literal_type(fresh) == NUMBER
    assert widen_literal_type(regular) == regular


def test_widened_nullish_is_any_without_strict_null_checks():
    """Test a lone nullish type widens to any in the default mode."""
    assert get_widened_type(NULL, strict_null_checks=False) == ANY
    assert get_widened_type(NULL, strict_null_checks=True) == NULL


def test_print_literal_union(printer):
    """Test literal unions print in member order with quoted strings."""
    union = UnionType((LiteralType(1, "number"), LiteralType("string", "string")))

    assert printer.type_to_string(union) == '1 | "string"'


def test_print_arrays_and_tuples(printer):
    """Test array element unions are parenthesized."""
    assert printer.type_to_string(ArrayType(NUMBER)) == "number[]"
    assert printer.type_to_string(ArrayType(UnionType((STRING, NUMBER)))) == "(string | number)[]"
    assert printer.type_to_string(TupleType((STRING, NUMBER))) == "[string, number]"
    assert printer.type_to_string(
        ArrayType(STRING), TypeFormatFlags.WRITE_ARRAY_AS_GENERIC_TYPE
    ) == "Array<string>"


def test_print_object_literal(printer):
    """Test object types print their properties in declaration order."""
    t = ObjectType(properties=(
        Property("a", NUMBER),
        Property("b c", STRING, optional=True),
    ))

    assert printer.type_to_string(t) == '{ a: number; "b c"?: string; }'


def test_print_function_type(printer):
    """Test single call signature objects print as arrow types."""
    signature = Signature(parameters=(Parameter("x", NUMBER),), return_type=VOID)
    t = ObjectType(call_signatures=(signature,))

    assert printer.type_to_string(t) == "(x: number) => void"


def test_print_truncation():
    """Test long output is elided unless NO_TRUNCATION is set."""
    printer = TypePrinter(lambda signature: signature.return_type, max_truncation_length=20)
    t = ObjectType(properties=tuple(Property(f"field{i}", NUMBER) for i in range(5)))

    truncated = printer.type_to_string(t)
    full = printer.type_to_string(t, TypeFormatFlags.NO_TRUNCATION)

    assert len(truncated) == 20
    assert truncated.endswith("...")
    assert full.startswith("{ field0: number;")
    assert full.endswith("field4: number; }")


def test_format_property_name():
    """Test property names are quoted only when needed."""
    assert format_property_name("name") == "name"
    assert format_property_name("0") == "0"
    assert format_property_name("data-id") == '"data-id"'


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
