"""
Checker-internal type representation.

These are the semantic types the checker computes, as opposed to the
syntactic type expressions in explicit_return.models.type_node. Value-like
types are frozen dataclasses compared structurally; declarations that carry
identity (named interfaces and classes, type parameters, enums, signatures)
are compared by identity.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntFlag
from typing import Any, Dict, List, Optional, Tuple, Union


class SignatureKind(str, Enum):
    """Kind of signature requested from a type."""

    CALL = "call"
    CONSTRUCT = "construct"


class TypeFormatFlags(IntFlag):
    """Flags controlling type-to-text rendering."""

    NONE = 0
    NO_TRUNCATION = 1
    WRITE_ARRAY_AS_GENERIC_TYPE = 2


class Type:
    """Base class for all checker types."""

    __slots__ = ()


@dataclass(frozen=True)
class AliasInfo:
    """Name under which an anonymous type was declared (``type X<A> = ...``)."""

    name: str
    type_arguments: Tuple[Type, ...] = ()


@dataclass(frozen=True)
class IntrinsicType(Type):
    name: str


ANY = IntrinsicType("any")
UNKNOWN = IntrinsicType("unknown")
NEVER = IntrinsicType("never")
VOID = IntrinsicType("void")
UNDEFINED = IntrinsicType("undefined")
NULL = IntrinsicType("null")
STRING = IntrinsicType("string")
NUMBER = IntrinsicType("number")
BOOLEAN = IntrinsicType("boolean")
BIGINT = IntrinsicType("bigint")
SYMBOL = IntrinsicType("symbol")
NON_PRIMITIVE = IntrinsicType("object")

INTRINSICS: Dict[str, IntrinsicType] = {
    t.name: t
    for t in (ANY, UNKNOWN, NEVER, VOID, UNDEFINED, NULL, STRING, NUMBER,
              BOOLEAN, BIGINT, SYMBOL, NON_PRIMITIVE)
}

PRIMITIVES = (STRING, NUMBER, BOOLEAN, BIGINT, SYMBOL)

_KEYWORD_ORDER = [STRING, NUMBER, BIGINT, BOOLEAN, SYMBOL, VOID, NON_PRIMITIVE]


@dataclass(frozen=True)
class LiteralType(Type):
    """A literal type: ``1``, ``"a"``, ``true``, ``10n``.

    Fresh literals come straight from literal expressions and widen to their
    primitive in mutable locations; regular literals do not.
    """

    value: Union[str, float, int, bool]
    kind: str  # 'number' | 'string' | 'boolean' | 'bigint'
    fresh: bool = field(default=False, compare=False)

    @property
    def base(self) -> IntrinsicType:
        return {"number": NUMBER, "string": STRING, "boolean": BOOLEAN, "bigint": BIGINT}[self.kind]


TRUE = LiteralType(True, "boolean")
FALSE = LiteralType(False, "boolean")


@dataclass(frozen=True)
class UnionType(Type):
    types: Tuple[Type, ...]
    alias: Optional[AliasInfo] = field(default=None, compare=False)


@dataclass(frozen=True)
class IntersectionType(Type):
    types: Tuple[Type, ...]
    alias: Optional[AliasInfo] = field(default=None, compare=False)


@dataclass(frozen=True)
class ArrayType(Type):
    element: Type
    readonly: bool = False


@dataclass(frozen=True)
class TupleType(Type):
    elements: Tuple[Type, ...]
    readonly: bool = False


@dataclass(frozen=True)
class Parameter:
    name: str
    type: Type
    optional: bool = False
    rest: bool = False


@dataclass(eq=False)
class TypeParameter(Type):
    """A type parameter declared on a function, class, interface or alias."""

    name: str
    declaration: Any = None
    constraint: Optional[Type] = None
    default: Optional[Type] = None

    def __repr__(self) -> str:
        return f"TypeParameter({self.name})"


@dataclass(eq=False)
class Signature:
    """A call or construct signature.

    ``return_type`` is None while the return type still has to be inferred
    from ``declaration``; ``mapper`` is then applied to the inferred type.
    """

    parameters: Tuple[Parameter, ...]
    return_type: Optional[Type] = None
    type_parameters: Tuple[TypeParameter, ...] = ()
    declaration: Any = None
    mapper: Optional[Dict[TypeParameter, Type]] = None

    @property
    def min_argument_count(self) -> int:
        count = 0
        for index, param in enumerate(self.parameters):
            if not param.optional and not param.rest:
                count = index + 1
        return count

    @property
    def has_rest(self) -> bool:
        return bool(self.parameters) and self.parameters[-1].rest


@dataclass(frozen=True)
class Property:
    name: str
    type: Type
    optional: bool = False
    readonly: bool = False
    is_method: bool = False


@dataclass(frozen=True)
class ObjectType(Type):
    """An anonymous object type: object literals, type literals, function types."""

    properties: Tuple[Property, ...] = ()
    call_signatures: Tuple[Signature, ...] = ()
    construct_signatures: Tuple[Signature, ...] = ()
    string_index: Optional[Type] = None
    number_index: Optional[Type] = None
    alias: Optional[AliasInfo] = field(default=None, compare=False)

    def get_property(self, name: str) -> Optional[Property]:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None


@dataclass(eq=False)
class NamedTypeInfo:
    """An interface or class declaration, possibly merged from several declarations."""

    name: str
    kind: str  # 'interface' | 'class'
    declarations: List[Any]
    type_parameters: Tuple[TypeParameter, ...] = ()
    symbol: Any = None

    def __repr__(self) -> str:
        return f"NamedTypeInfo({self.kind} {self.name})"


@dataclass(frozen=True)
class TypeReference(Type):
    """An instance of a named interface or class, e.g. ``Promise<Response>``."""

    target: NamedTypeInfo
    type_arguments: Tuple[Type, ...] = ()


@dataclass(frozen=True)
class ClassConstructorType(Type):
    """The value side of a class declaration, printed as ``typeof Name``."""

    target: NamedTypeInfo


@dataclass(eq=False)
class EnumInfo:
    name: str
    declaration: Any
    members: Dict[str, Union[str, float]] = field(default_factory=dict)


@dataclass(frozen=True)
class EnumType(Type):
    enum: EnumInfo


@dataclass(frozen=True)
class EnumLiteralType(Type):
    enum: EnumInfo
    member: str
    value: Union[str, float]
    fresh: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class EnumObjectType(Type):
    """The value side of an enum declaration, printed as ``typeof Name``."""

    enum: EnumInfo


TypeMapper = Dict[TypeParameter, Type]


# ---------------------------------------------------------------------------
# Type constructors and relations shared by the checker components
# ---------------------------------------------------------------------------

# Escaped property name of a well-known symbol member such as `[Symbol.iterator]`.
WELL_KNOWN_SYMBOL_PREFIX = "__@"


def well_known_symbol_name(name: str) -> str:
    return WELL_KNOWN_SYMBOL_PREFIX + name


def is_nullish(t: Type) -> bool:
    return t is NULL or t is UNDEFINED or t == NULL or t == UNDEFINED


def is_function_type(t: Type) -> bool:
    return isinstance(t, ObjectType) and bool(t.call_signatures) and not t.properties \
        and not t.construct_signatures


def is_unit_type(t: Type) -> bool:
    return isinstance(t, (LiteralType, EnumLiteralType)) or is_nullish(t)


def is_fresh_literal(t: Type) -> bool:
    return isinstance(t, (LiteralType, EnumLiteralType)) and t.fresh


def union_members(t: Type) -> Tuple[Type, ...]:
    if isinstance(t, UnionType):
        return t.types
    return (t,)


def _flatten(types, out: List[Type]) -> None:
    for t in types:
        if isinstance(t, UnionType):
            _flatten(t.types, out)
        else:
            out.append(t)


def get_union_type(
    types,
    strict_null_checks: bool = True,
    alias: Optional[AliasInfo] = None
) -> Type:
    """
    Build a union with subtype reduction of literal members.

    Args:
        types: Member types, possibly unions themselves
        strict_null_checks: When False, null and undefined are absorbed by
            any other member
        alias: Alias name to attach to the resulting union

    Returns:
        The reduced type; a single member is returned as is, no members
        yields ``never``
    """
    flat: List[Type] = []
    _flatten(types, flat)

    if any(t == ANY for t in flat):
        return ANY
    if any(t == UNKNOWN for t in flat):
        return UNKNOWN

    members: List[Type] = []
    for t in flat:
        if t == NEVER:
            continue
        if t in members:
            continue
        members.append(t)

    primitives = {m for m in members if isinstance(m, IntrinsicType)}
    enums = {m.enum for m in members if isinstance(m, EnumType)}
    reduced: List[Type] = []
    for m in members:
        if isinstance(m, LiteralType) and m.base in primitives:
            continue
        if isinstance(m, EnumLiteralType) and m.enum in enums:
            continue
        reduced.append(m)

    # true | false is boolean
    if TRUE in reduced and FALSE in reduced:
        position = min(reduced.index(TRUE), reduced.index(FALSE))
        reduced = [m for m in reduced if m != TRUE and m != FALSE]
        reduced.insert(position, BOOLEAN)

    if not strict_null_checks:
        non_null = [m for m in reduced if not is_nullish(m)]
        if non_null:
            reduced = non_null

    # Primitive keywords first in declaration order, nullish members last.
    keywords = sorted(
        (m for m in reduced if m in _KEYWORD_ORDER), key=_KEYWORD_ORDER.index
    )
    others = [m for m in reduced if m not in _KEYWORD_ORDER and not is_nullish(m)]
    reduced = keywords + others + [m for m in reduced if is_nullish(m)]

    if not reduced:
        return NEVER
    if len(reduced) == 1:
        return reduced[0]
    return UnionType(tuple(reduced), alias=alias)


def get_intersection_type(types, alias: Optional[AliasInfo] = None) -> Type:
    members: List[Type] = []
    for t in types:
        for m in (t.types if isinstance(t, IntersectionType) else (t,)):
            if m == ANY:
                return ANY
            if m == NEVER:
                return NEVER
            if m == UNKNOWN or m in members:
                continue
            members.append(m)
    if not members:
        return UNKNOWN
    if len(members) == 1:
        return members[0]
    return IntersectionType(tuple(members), alias=alias)


def get_regular_type(t: Type) -> Type:
    """Strip freshness so const bindings keep their literal type."""
    if isinstance(t, LiteralType) and t.fresh:
        return LiteralType(t.value, t.kind)
    if isinstance(t, EnumLiteralType) and t.fresh:
        return EnumLiteralType(t.enum, t.member, t.value)
    if isinstance(t, UnionType):
        return UnionType(tuple(get_regular_type(m) for m in t.types), alias=t.alias)
    return t


def widen_literal_type(t: Type, strict_null_checks: bool = True) -> Type:
    """Widen fresh literal types to their primitive."""
    if isinstance(t, LiteralType) and t.fresh:
        return t.base
    if isinstance(t, EnumLiteralType) and t.fresh:
        return EnumType(t.enum)
    if isinstance(t, UnionType):
        if not any(is_fresh_literal(m) for m in t.types):
            return t
        return get_union_type([widen_literal_type(m) for m in t.types], strict_null_checks)
    return t


def get_widened_type(t: Type, strict_null_checks: bool = True) -> Type:
    """Widen a type for a mutable location (let/var bindings, properties)."""
    t = widen_literal_type(t, strict_null_checks)
    if not strict_null_checks and is_nullish(t):
        return ANY
    if isinstance(t, ArrayType) and not strict_null_checks and is_nullish(t.element):
        return ArrayType(ANY, t.readonly)
    return t


def remove_nullish(t: Type) -> Type:
    if isinstance(t, UnionType):
        return get_union_type([m for m in t.types if not is_nullish(m)])
    return t


def substitute(t: Type, mapper: Optional[TypeMapper]) -> Type:
    """Instantiate type parameters in ``t`` according to ``mapper``."""
    if not mapper:
        return t
    if isinstance(t, TypeParameter):
        return mapper.get(t, t)
    if isinstance(t, UnionType):
        alias = t.alias
        if alias is not None:
            alias = AliasInfo(alias.name, tuple(substitute(a, mapper) for a in alias.type_arguments))
        return get_union_type([substitute(m, mapper) for m in t.types], alias=alias)
    if isinstance(t, IntersectionType):
        return get_intersection_type([substitute(m, mapper) for m in t.types], alias=t.alias)
    if isinstance(t, ArrayType):
        return ArrayType(substitute(t.element, mapper), t.readonly)
    if isinstance(t, TupleType):
        return TupleType(tuple(substitute(e, mapper) for e in t.elements), t.readonly)
    if isinstance(t, TypeReference):
        if not t.type_arguments:
            return t
        return TypeReference(t.target, tuple(substitute(a, mapper) for a in t.type_arguments))
    if isinstance(t, ObjectType):
        alias = t.alias
        if alias is not None:
            alias = AliasInfo(alias.name, tuple(substitute(a, mapper) for a in alias.type_arguments))
        return ObjectType(
            properties=tuple(
                Property(p.name, substitute(p.type, mapper), p.optional, p.readonly, p.is_method)
                for p in t.properties
            ),
            call_signatures=tuple(instantiate_signature(s, mapper) for s in t.call_signatures),
            construct_signatures=tuple(
                instantiate_signature(s, mapper) for s in t.construct_signatures
            ),
            string_index=substitute(t.string_index, mapper) if t.string_index is not None else None,
            number_index=substitute(t.number_index, mapper) if t.number_index is not None else None,
            alias=alias,
        )
    return t


def instantiate_signature(signature: Signature, mapper: Optional[TypeMapper]) -> Signature:
    """Return a copy of ``signature`` with ``mapper`` applied to every type in it."""
    if not mapper:
        return signature
    # A lazily inferred return type is mapped through the previous mapper first.
    composed = {key: substitute(value, mapper) for key, value in (signature.mapper or {}).items()}
    for key, value in mapper.items():
        composed.setdefault(key, value)
    return Signature(
        parameters=tuple(
            Parameter(p.name, substitute(p.type, mapper), p.optional, p.rest)
            for p in signature.parameters
        ),
        return_type=(
            substitute(signature.return_type, mapper) if signature.return_type is not None else None
        ),
        # The signature's own type parameters stay free unless explicitly mapped.
        type_parameters=tuple(tp for tp in signature.type_parameters if tp not in mapper),
        declaration=signature.declaration,
        mapper=composed,
    )


def contains_type_parameter(t: Type, params) -> bool:
    if isinstance(t, TypeParameter):
        return t in params
    if isinstance(t, (UnionType, IntersectionType)):
        return any(contains_type_parameter(m, params) for m in t.types)
    if isinstance(t, ArrayType):
        return contains_type_parameter(t.element, params)
    if isinstance(t, TupleType):
        return any(contains_type_parameter(e, params) for e in t.elements)
    if isinstance(t, TypeReference):
        return any(contains_type_parameter(a, params) for a in t.type_arguments)
    if isinstance(t, ObjectType):
        if any(contains_type_parameter(p.type, params) for p in t.properties):
            return True
        for sig in t.call_signatures + t.construct_signatures:
            if any(contains_type_parameter(p.type, params) for p in sig.parameters):
                return True
            if sig.return_type is not None and contains_type_parameter(sig.return_type, params):
                return True
    return False
