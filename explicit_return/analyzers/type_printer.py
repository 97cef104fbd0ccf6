"""
Canonical rendering of checker types as TypeScript type text.

The rendering is designed to be parsed back by the type-expression builder,
so every form produced here is valid type syntax.
"""

import json
import logging
import re
from typing import Callable, List, Optional, Set

from explicit_return.analyzers.types import (
    WELL_KNOWN_SYMBOL_PREFIX,
    ArrayType,
    ClassConstructorType,
    EnumLiteralType,
    EnumObjectType,
    EnumType,
    IntersectionType,
    IntrinsicType,
    LiteralType,
    ObjectType,
    Parameter,
    Property,
    Signature,
    TupleType,
    Type,
    TypeFormatFlags,
    TypeParameter,
    TypeReference,
    UnionType,
    is_function_type,
)
from explicit_return.utils.syntax import format_number

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_NUMERIC_NAME_RE = re.compile(r"^\d+$")


def format_property_name(name: str) -> str:
    """Quote a property name unless it is a valid identifier or array index."""
    if name.startswith(WELL_KNOWN_SYMBOL_PREFIX):
        return f"[Symbol.{name[len(WELL_KNOWN_SYMBOL_PREFIX):]}]"
    if _IDENTIFIER_RE.match(name) or _NUMERIC_NAME_RE.match(name):
        return name
    return json.dumps(name, ensure_ascii=False)


def format_literal(t: LiteralType) -> str:
    if t.kind == "string":
        return json.dumps(t.value, ensure_ascii=False)
    if t.kind == "boolean":
        return "true" if t.value else "false"
    if t.kind == "bigint":
        return f"{t.value}n"
    return format_number(t.value)


class TypePrinter:
    """
    Renders checker types to text.

    Signatures whose return type is still pending are resolved through
    ``resolve_return_type`` so that inferred return types print in full.
    """

    def __init__(
        self,
        resolve_return_type: Callable[[Signature], Type],
        max_truncation_length: int = 160
    ):
        self._resolve_return_type = resolve_return_type
        self._max_truncation_length = max_truncation_length
        self._visiting: Set[int] = set()
        self._flags = TypeFormatFlags.NONE

    def type_to_string(self, t: Type, flags: TypeFormatFlags = TypeFormatFlags.NONE) -> str:
        """
        Render a type.

        Args:
            t: Type to render
            flags: Formatting flags; without NO_TRUNCATION long output is
                elided with "..."

        Returns:
            Type text
        """
        self._flags = flags
        self._visiting = set()
        text = self._write(t)
        if not flags & TypeFormatFlags.NO_TRUNCATION and len(text) > self._max_truncation_length:
            return text[:self._max_truncation_length - 3] + "..."
        return text

    def signature_to_string(self, signature: Signature) -> str:
        self._visiting = set()
        return self._write_signature(signature, arrow=True)

    # ------------------------------------------------------------------

    def _write(self, t: Type) -> str:
        if isinstance(t, IntrinsicType):
            return t.name
        if isinstance(t, LiteralType):
            return format_literal(t)
        if isinstance(t, UnionType):
            if t.alias is not None:
                return self._write_alias(t.alias.name, t.alias.type_arguments)
            return " | ".join(self._write_member(m, in_union=True) for m in t.types)
        if isinstance(t, IntersectionType):
            if t.alias is not None:
                return self._write_alias(t.alias.name, t.alias.type_arguments)
            return " & ".join(self._write_member(m, in_union=False) for m in t.types)
        if isinstance(t, ArrayType):
            if self._flags & TypeFormatFlags.WRITE_ARRAY_AS_GENERIC_TYPE:
                name = "ReadonlyArray" if t.readonly else "Array"
                return f"{name}<{self._write(t.element)}>"
            element = self._write_member(t.element, in_union=False)
            return f"readonly {element}[]" if t.readonly else f"{element}[]"
        if isinstance(t, TupleType):
            text = "[" + ", ".join(self._write(e) for e in t.elements) + "]"
            return f"readonly {text}" if t.readonly else text
        if isinstance(t, TypeReference):
            return self._write_alias(t.target.name, t.type_arguments)
        if isinstance(t, TypeParameter):
            return t.name
        if isinstance(t, ClassConstructorType):
            return f"typeof {t.target.name}"
        if isinstance(t, EnumObjectType):
            return f"typeof {t.enum.name}"
        if isinstance(t, EnumType):
            return t.enum.name
        if isinstance(t, EnumLiteralType):
            return f"{t.enum.name}.{t.member}"
        if isinstance(t, ObjectType):
            if t.alias is not None:
                return self._write_alias(t.alias.name, t.alias.type_arguments)
            return self._write_object(t)
        logger.debug(f"No rendering for type {t!r}, writing any")
        return "any"

    def _write_alias(self, name: str, type_arguments) -> str:
        if not type_arguments:
            return name
        return f"{name}<" + ", ".join(self._write(a) for a in type_arguments) + ">"

    def _write_member(self, t: Type, in_union: bool) -> str:
        text = self._write(t)
        needs_parens = is_function_type(t) and (
            not isinstance(t, ObjectType) or t.alias is None
        )
        if isinstance(t, UnionType) and t.alias is None:
            needs_parens = True
        if isinstance(t, IntersectionType) and t.alias is None and not in_union:
            needs_parens = True
        if isinstance(t, ObjectType) and t.construct_signatures and not t.properties \
                and not t.call_signatures and t.alias is None:
            needs_parens = True
        return f"({text})" if needs_parens else text

    def _write_object(self, t: ObjectType) -> str:
        if is_function_type(t) and len(t.call_signatures) == 1 \
                and t.string_index is None and t.number_index is None:
            return self._write_signature(t.call_signatures[0], arrow=True)
        if len(t.construct_signatures) == 1 and not t.call_signatures and not t.properties \
                and t.string_index is None and t.number_index is None:
            return "new " + self._write_signature(t.construct_signatures[0], arrow=True)

        members: List[str] = []
        for sig in t.call_signatures:
            members.append(self._write_signature(sig, arrow=False) + ";")
        for sig in t.construct_signatures:
            members.append("new " + self._write_signature(sig, arrow=False) + ";")
        if t.string_index is not None:
            members.append(f"[x: string]: {self._write(t.string_index)};")
        if t.number_index is not None:
            members.append(f"[x: number]: {self._write(t.number_index)};")
        for prop in t.properties:
            members.append(self._write_property(prop))
        if not members:
            return "{}"
        return "{ " + " ".join(members) + " }"

    def _write_property(self, prop: Property) -> str:
        prefix = "readonly " if prop.readonly else ""
        name = format_property_name(prop.name)
        optional = "?" if prop.optional else ""
        if prop.is_method and isinstance(prop.type, ObjectType) and prop.type.call_signatures:
            return " ".join(
                f"{name}{optional}" + self._write_signature(sig, arrow=False) + ";"
                for sig in prop.type.call_signatures
            )
        return f"{prefix}{name}{optional}: {self._write(prop.type)};"

    def _write_signature(self, signature: Signature, arrow: bool) -> str:
        key = id(signature.declaration) if signature.declaration is not None else id(signature)
        if key in self._visiting:
            # Recursive reference to a function being printed.
            name = _declaration_name(signature.declaration)
            return f"typeof {name}" if name and arrow else "any"
        self._visiting.add(key)
        try:
            type_params = ""
            if signature.type_parameters:
                type_params = "<" + ", ".join(
                    self._write_type_parameter(tp) for tp in signature.type_parameters
                ) + ">"
            params = "(" + ", ".join(self._write_parameter(p) for p in signature.parameters) + ")"
            return_type = self._write(self._resolve_return_type(signature))
        finally:
            self._visiting.discard(key)
        if arrow:
            return f"{type_params}{params} => {return_type}"
        return f"{type_params}{params}: {return_type}"

    def _write_type_parameter(self, tp: TypeParameter) -> str:
        text = tp.name
        if tp.constraint is not None:
            text += f" extends {self._write(tp.constraint)}"
        return text

    def _write_parameter(self, param: Parameter) -> str:
        prefix = "..." if param.rest else ""
        optional = "?" if param.optional and not param.rest else ""
        return f"{prefix}{param.name}{optional}: {self._write(param.type)}"


def _declaration_name(declaration) -> Optional[str]:
    if declaration is None:
        return None
    name_node = declaration.child_by_field_name("name")
    if name_node is None or name_node.type not in ("identifier", "property_identifier"):
        return None
    return name_node.text.decode("utf8")
