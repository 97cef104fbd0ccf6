"""
Declared types: type annotations, named types and their members.

The resolver turns type syntax (annotations, interface and class bodies,
type aliases, enums) into checker types. Expression typing lives in the
checker, which the resolver calls back into for initializers, signatures and
``typeof`` queries.
"""

import dataclasses
import logging
from typing import Dict, List, Optional, Set, Tuple

import tree_sitter

from explicit_return.analyzers.binder import CLASS_LIKE_TYPES, Symbol, SymbolFlags
from explicit_return.analyzers.types import (
    ANY,
    BIGINT,
    BOOLEAN,
    FALSE,
    INTRINSICS,
    NEVER,
    NON_PRIMITIVE,
    NULL,
    NUMBER,
    STRING,
    SYMBOL,
    TRUE,
    UNDEFINED,
    VOID,
    AliasInfo,
    ArrayType,
    ClassConstructorType,
    EnumInfo,
    EnumLiteralType,
    EnumType,
    IntersectionType,
    LiteralType,
    NamedTypeInfo,
    ObjectType,
    Property,
    Signature,
    SignatureKind,
    TupleType,
    Type,
    TypeParameter,
    TypeReference,
    UnionType,
    instantiate_signature,
    get_intersection_type,
    get_union_type,
    remove_nullish,
    substitute,
    union_members,
)
from explicit_return.utils.syntax import (
    decode_string_literal,
    format_number,
    has_child_token,
    named_children,
    node_text,
    parse_numeric_literal,
)

logger = logging.getLogger(__name__)

_ANNOTATION_TYPES = frozenset({
    "type_annotation", "opting_type_annotation", "omitting_type_annotation",
    "constraint", "default_type",
})

_MAPPED_UTILITIES = frozenset({"Partial", "Required", "Readonly"})


def property_name(node: Optional[tree_sitter.Node]) -> Optional[str]:
    """Return the static name of a property name node, or None when computed."""
    if node is None:
        return None
    if node.type in ("property_identifier", "identifier", "private_property_identifier",
                     "type_identifier", "shorthand_property_identifier"):
        return node_text(node)
    if node.type == "string":
        return decode_string_literal(node)
    if node.type == "number":
        value, kind = parse_numeric_literal(node_text(node))
        return str(value) if kind == "bigint" else format_number(value)
    if node.type == "computed_property_name":
        inner = named_children(node)
        if len(inner) == 1 and inner[0].type in ("string", "number"):
            return property_name(inner[0])
    return None


def with_alias(t: Type, alias: AliasInfo) -> Type:
    """Attach an alias name to an anonymous union, intersection or object type."""
    if isinstance(t, (UnionType, IntersectionType, ObjectType)) and t.alias is None:
        return dataclasses.replace(t, alias=alias)
    return t


class _MemberTable:
    """Accumulates the members of one object type in declaration order."""

    def __init__(self):
        self.properties: Dict[str, Property] = {}
        self.methods: Dict[str, List[Signature]] = {}
        self.method_flags: Dict[str, bool] = {}
        self.call_signatures: List[Signature] = []
        self.construct_signatures: List[Signature] = []
        self.string_index: Optional[Type] = None
        self.number_index: Optional[Type] = None

    def add_property(self, prop: Property) -> None:
        self.methods.pop(prop.name, None)
        self.properties.pop(prop.name, None)
        self.properties[prop.name] = prop

    def add_method(self, name: str, signature: Signature, optional: bool = False) -> None:
        if name in self.properties and not self.properties[name].is_method:
            del self.properties[name]
        self.methods.setdefault(name, []).append(signature)
        self.method_flags[name] = optional
        self.properties[name] = Property(name, ANY, optional, is_method=True)

    def merge(self, other: ObjectType) -> None:
        for prop in other.properties:
            self.properties[prop.name] = prop
            self.methods.pop(prop.name, None)
        self.call_signatures.extend(other.call_signatures)
        self.construct_signatures.extend(other.construct_signatures)
        if other.string_index is not None:
            self.string_index = other.string_index
        if other.number_index is not None:
            self.number_index = other.number_index

    def to_type(self) -> ObjectType:
        properties = []
        for name, prop in self.properties.items():
            signatures = self.methods.get(name)
            if signatures:
                prop = Property(
                    name, ObjectType(call_signatures=tuple(signatures)),
                    self.method_flags.get(name, False), is_method=True,
                )
            properties.append(prop)
        return ObjectType(
            properties=tuple(properties),
            call_signatures=tuple(self.call_signatures),
            construct_signatures=tuple(self.construct_signatures),
            string_index=self.string_index,
            number_index=self.number_index,
        )


class TypeResolver:
    """Resolves type syntax and named declarations to checker types."""

    def __init__(self, checker):
        self.checker = checker
        self.binder = checker.binder
        self._infos: Dict[int, NamedTypeInfo] = {}
        self._type_parameters: Dict[int, TypeParameter] = {}
        self._aliases: Dict[int, Type] = {}
        self._resolving_aliases: Set[int] = set()
        self._members: Dict[int, ObjectType] = {}
        self._static_members: Dict[int, ObjectType] = {}
        self._resolving_members: Set[int] = set()
        self._enums: Dict[int, EnumInfo] = {}

    @property
    def strict_null_checks(self) -> bool:
        return self.checker.strict_null_checks

    # ------------------------------------------------------------------
    # Type syntax
    # ------------------------------------------------------------------

    def get_type_from_type_node(self, node: Optional[tree_sitter.Node]) -> Type:
        """
        Resolve a type expression node.

        Args:
            node: A type node, or a type annotation wrapping one

        Returns:
            The denoted type; unsupported or unresolvable syntax yields any
        """
        if node is None:
            return ANY
        kind = node.type
        if kind in _ANNOTATION_TYPES:
            children = named_children(node)
            return self.get_type_from_type_node(children[0]) if children else ANY
        if kind == "type_predicate_annotation" or kind == "type_predicate":
            return BOOLEAN
        if kind == "asserts_annotation" or kind == "asserts":
            return VOID
        if kind == "predefined_type":
            return INTRINSICS.get(node_text(node), ANY)
        if kind == "type_identifier":
            return self._resolve_type_name(node_text(node), node, ())
        if kind == "nested_type_identifier":
            return self._resolve_qualified_type_name(node_text(node), node, ())
        if kind == "generic_type":
            return self._resolve_generic_type(node)
        if kind == "union_type":
            return get_union_type(
                [self.get_type_from_type_node(c) for c in named_children(node)],
                self.strict_null_checks,
            )
        if kind == "intersection_type":
            return get_intersection_type(
                [self.get_type_from_type_node(c) for c in named_children(node)]
            )
        if kind == "parenthesized_type":
            children = named_children(node)
            return self.get_type_from_type_node(children[0]) if children else ANY
        if kind == "array_type":
            children = named_children(node)
            return ArrayType(self.get_type_from_type_node(children[0]) if children else ANY)
        if kind == "readonly_type":
            inner = self.get_type_from_type_node(named_children(node)[0])
            if isinstance(inner, ArrayType):
                return ArrayType(inner.element, readonly=True)
            if isinstance(inner, TupleType):
                return TupleType(inner.elements, readonly=True)
            return inner
        if kind == "tuple_type":
            return TupleType(tuple(self._tuple_element(c) for c in named_children(node)))
        if kind == "literal_type":
            return self._literal_type(named_children(node)[0])
        if kind == "object_type":
            return self.get_members_of_body(node)
        if kind == "function_type":
            return ObjectType(call_signatures=(self.checker.get_signature_from_declaration(node),))
        if kind == "constructor_type":
            return ObjectType(
                construct_signatures=(self.checker.get_signature_from_declaration(node),)
            )
        if kind == "type_query":
            children = named_children(node)
            return self.checker.get_type_of_entity_name(children[0]) if children else ANY
        if kind == "index_type_query":
            return self._key_of(self.get_type_from_type_node(named_children(node)[0]))
        if kind == "lookup_type":
            children = named_children(node)
            object_type = self.get_type_from_type_node(children[0])
            index_type = self.get_type_from_type_node(children[1])
            return self._indexed_access(object_type, index_type)
        if kind == "this_type":
            return self.checker.get_this_type(node)
        if kind == "template_literal_type":
            return STRING
        if kind == "conditional_type":
            return self._conditional_type(node)
        if kind in ("undefined", "null"):
            return UNDEFINED if kind == "undefined" else NULL
        logger.debug(f"Unsupported type syntax {kind}, using any")
        return ANY

    def _tuple_element(self, node: tree_sitter.Node) -> Type:
        if node.type in ("optional_type", "rest_type"):
            return self.get_type_from_type_node(named_children(node)[0])
        if node.type in ("named_tuple_member", "optional_tuple_parameter",
                         "rest_tuple_parameter"):
            type_node = node.child_by_field_name("type")
            return self.get_type_from_type_node(type_node)
        return self.get_type_from_type_node(node)

    def _literal_type(self, node: tree_sitter.Node) -> Type:
        if node.type == "string":
            return LiteralType(decode_string_literal(node), "string")
        if node.type == "number":
            value, kind = parse_numeric_literal(node_text(node))
            return LiteralType(value, kind)
        if node.type == "true":
            return TRUE
        if node.type == "false":
            return FALSE
        if node.type == "null":
            return NULL
        if node.type == "undefined":
            return UNDEFINED
        if node.type == "unary_expression":
            argument = node.child_by_field_name("argument")
            if argument is not None and argument.type == "number":
                value, kind = parse_numeric_literal(node_text(argument))
                sign = node_text(node.child_by_field_name("operator"))
                return LiteralType(-value if sign == "-" else value, kind)
        return ANY

    def _conditional_type(self, node: tree_sitter.Node) -> Type:
        check = self.get_type_from_type_node(node.child_by_field_name("left"))
        extends = self.get_type_from_type_node(node.child_by_field_name("right"))
        consequence = self.get_type_from_type_node(node.child_by_field_name("consequence"))
        alternative = self.get_type_from_type_node(node.child_by_field_name("alternative"))
        if isinstance(check, TypeParameter) or isinstance(extends, TypeParameter):
            return get_union_type([consequence, alternative], self.strict_null_checks)
        if self.checker.relations.is_type_assignable_to(check, extends):
            return consequence
        return alternative

    def _key_of(self, t: Type) -> Type:
        members = self.get_apparent_members(t)
        if members is None or t == ANY:
            return get_union_type([STRING, NUMBER, SYMBOL])
        if members.string_index is not None:
            return get_union_type([STRING, NUMBER])
        names = [LiteralType(p.name, "string") for p in members.properties]
        return get_union_type(names) if names else NEVER

    def _indexed_access(self, object_type: Type, index_type: Type) -> Type:
        results = []
        for key in union_members(index_type):
            if isinstance(key, LiteralType) and key.kind == "string":
                results.append(self.checker.get_type_of_property(object_type, key.value))
            elif isinstance(object_type, ArrayType):
                results.append(object_type.element)
            elif isinstance(object_type, TupleType):
                if isinstance(key, LiteralType) and key.kind == "number" \
                        and 0 <= int(key.value) < len(object_type.elements):
                    results.append(object_type.elements[int(key.value)])
                else:
                    results.append(get_union_type(object_type.elements))
            else:
                members = self.get_apparent_members(object_type)
                if members is not None and members.string_index is not None:
                    results.append(members.string_index)
                else:
                    results.append(ANY)
        return get_union_type(results, self.strict_null_checks)

    # ------------------------------------------------------------------
    # Named types
    # ------------------------------------------------------------------

    def get_type_arguments(self, node: Optional[tree_sitter.Node]) -> Tuple[Type, ...]:
        if node is None:
            return ()
        return tuple(self.get_type_from_type_node(c) for c in named_children(node))

    def _resolve_generic_type(self, node: tree_sitter.Node) -> Type:
        name_node = node.child_by_field_name("name")
        args = self.get_type_arguments(node.child_by_field_name("type_arguments"))
        if name_node is None:
            return ANY
        if name_node.type == "nested_type_identifier":
            return self._resolve_qualified_type_name(node_text(name_node), node, args)
        return self._resolve_type_name(node_text(name_node), node, args)

    def _resolve_type_name(self, name: str, location: tree_sitter.Node,
                           args: Tuple[Type, ...]) -> Type:
        symbol = self.binder.resolve(name, location, SymbolFlags.TYPE)
        if symbol is None:
            return self._utility_type(name, args)
        return self.get_declared_type_of_symbol(symbol, args)

    def _resolve_qualified_type_name(self, text: str, location: tree_sitter.Node,
                                     args: Tuple[Type, ...]) -> Type:
        parts = [part.strip() for part in text.split(".")]
        symbol = self.binder.resolve(parts[0], location, SymbolFlags.NAMESPACE | SymbolFlags.VALUE)
        for part in parts[1:]:
            if symbol is None:
                return ANY
            symbol = symbol.exports.get(part)
        if symbol is None or not symbol.flags & SymbolFlags.TYPE:
            return ANY
        return self.get_declared_type_of_symbol(symbol, args)

    def get_declared_type_of_symbol(self, symbol: Symbol, args: Tuple[Type, ...] = ()) -> Type:
        """Return the type a symbol denotes in a type position."""
        flags = symbol.flags
        if flags & SymbolFlags.TYPE_PARAMETER:
            return self.get_type_parameter(symbol.declarations[0])
        if flags & (SymbolFlags.CLASS | SymbolFlags.INTERFACE):
            return self.create_type_reference(self.get_named_type_info(symbol), args)
        if flags & SymbolFlags.TYPE_ALIAS:
            declaration = symbol.declarations_of("type_alias_declaration")[0]
            return self._get_alias_type(declaration, args)
        if flags & SymbolFlags.ENUM:
            return EnumType(self.get_enum_info(symbol))
        return ANY

    def get_named_type_info(self, symbol: Symbol) -> NamedTypeInfo:
        info = self._infos.get(id(symbol))
        if info is not None:
            return info
        declarations = symbol.declarations_of(
            "interface_declaration", "class_declaration", "abstract_class_declaration", "class",
        )
        kind = "interface" if all(d.type == "interface_declaration" for d in declarations) \
            else "class"
        info = NamedTypeInfo(symbol.qualified_name, kind, declarations, symbol=symbol)
        self._infos[id(symbol)] = info
        for declaration in declarations:
            type_parameters = declaration.child_by_field_name("type_parameters")
            if type_parameters is not None:
                info.type_parameters = tuple(
                    self.get_type_parameter(p) for p in named_children(type_parameters)
                )
                break
        return info

    def get_class_info(self, node: tree_sitter.Node) -> NamedTypeInfo:
        """Return the type info of a class declaration or class expression node."""
        name_node = node.child_by_field_name("name")
        if name_node is not None and node.parent is not None:
            symbol = self.binder.resolve(node_text(name_node), node.parent, SymbolFlags.CLASS)
            if symbol is not None and any(d.id == node.id for d in symbol.declarations):
                return self.get_named_type_info(symbol)
        info = self._infos.get(node.id)
        if info is None:
            name = node_text(name_node) if name_node is not None else "(Anonymous class)"
            info = NamedTypeInfo(name, "class", [node])
            type_parameters = node.child_by_field_name("type_parameters")
            if type_parameters is not None:
                info.type_parameters = tuple(
                    self.get_type_parameter(p) for p in named_children(type_parameters)
                )
            self._infos[node.id] = info
        return info

    def get_class_instance_type(self, node: tree_sitter.Node) -> Type:
        info = self.get_class_info(node)
        return TypeReference(info, info.type_parameters)

    def get_global_info(self, name: str) -> Optional[NamedTypeInfo]:
        symbol = self.binder.globals.get(name)
        if symbol is None or not symbol.flags & (SymbolFlags.INTERFACE | SymbolFlags.CLASS):
            return None
        return self.get_named_type_info(symbol)

    def get_global_type(self, name: str, args: Tuple[Type, ...] = ()) -> Type:
        info = self.get_global_info(name)
        if info is None:
            return ANY
        return self.create_type_reference(info, args)

    def create_type_reference(self, info: NamedTypeInfo, args: Tuple[Type, ...]) -> Type:
        filled: List[Type] = []
        mapper: Dict[TypeParameter, Type] = {}
        for index, param in enumerate(info.type_parameters):
            if index < len(args):
                arg = args[index]
            elif param.default is not None:
                arg = substitute(param.default, mapper)
            else:
                arg = ANY
            mapper[param] = arg
            filled.append(arg)
        if info is self.get_global_info("Array") and filled:
            return ArrayType(filled[0])
        return TypeReference(info, tuple(filled))

    def get_type_parameter(self, node: tree_sitter.Node) -> TypeParameter:
        param = self._type_parameters.get(node.id)
        if param is not None:
            return param
        name = node.child_by_field_name("name")
        param = TypeParameter(node_text(name) if name is not None else "T", node)
        self._type_parameters[node.id] = param
        constraint = node.child_by_field_name("constraint")
        if constraint is not None:
            param.constraint = self.get_type_from_type_node(constraint)
        default = node.child_by_field_name("value")
        if default is not None:
            param.default = self.get_type_from_type_node(default)
        return param

    def _get_alias_type(self, declaration: tree_sitter.Node, args: Tuple[Type, ...]) -> Type:
        key = declaration.id
        base = self._aliases.get(key)
        if base is None:
            if key in self._resolving_aliases:
                return ANY
            self._resolving_aliases.add(key)
            try:
                base = self.get_type_from_type_node(declaration.child_by_field_name("value"))
            finally:
                self._resolving_aliases.discard(key)
            self._aliases[key] = base

        name = node_text(declaration.child_by_field_name("name"))
        type_parameters = declaration.child_by_field_name("type_parameters")
        if type_parameters is None:
            return with_alias(base, AliasInfo(name))
        params = [self.get_type_parameter(p) for p in named_children(type_parameters)]
        mapper: Dict[TypeParameter, Type] = {}
        for index, param in enumerate(params):
            if index < len(args):
                mapper[param] = args[index]
            elif param.default is not None:
                mapper[param] = substitute(param.default, mapper)
            else:
                mapper[param] = ANY
        return with_alias(substitute(base, mapper), AliasInfo(name, tuple(mapper.values())))

    def get_enum_info(self, symbol: Symbol) -> EnumInfo:
        info = self._enums.get(id(symbol))
        if info is not None:
            return info
        declaration = symbol.declarations_of("enum_declaration")[0]
        info = EnumInfo(symbol.qualified_name, declaration)
        self._enums[id(symbol)] = info
        body = declaration.child_by_field_name("body")
        next_value = 0.0
        for member in named_children(body) if body is not None else []:
            if member.type == "enum_assignment":
                name = property_name(member.child_by_field_name("name"))
                value_node = member.child_by_field_name("value")
                value = self._enum_value(value_node, info)
            else:
                name = property_name(member)
                value = next_value
            if name is None:
                continue
            info.members[name] = value
            if isinstance(value, float):
                next_value = value + 1
        return info

    def _enum_value(self, node: Optional[tree_sitter.Node], info: EnumInfo):
        if node is None:
            return 0.0
        if node.type == "string":
            return decode_string_literal(node)
        if node.type == "number":
            return float(parse_numeric_literal(node_text(node))[0])
        if node.type == "unary_expression":
            argument = node.child_by_field_name("argument")
            if argument is not None and argument.type == "number":
                value = float(parse_numeric_literal(node_text(argument))[0])
                return -value if node_text(node).startswith("-") else value
        if node.type == "identifier" and node_text(node) in info.members:
            return info.members[node_text(node)]
        return 0.0

    def get_enum_member_type(self, info: EnumInfo, name: str) -> Type:
        if name not in info.members:
            return ANY
        return EnumLiteralType(info, name, info.members[name], fresh=True)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def get_members_of_body(self, body: tree_sitter.Node) -> ObjectType:
        """Build an anonymous object type from an object type or interface body."""
        table = _MemberTable()
        for member in named_children(body):
            self._add_member(member, table, infer_initializers=True, static=False)
        return table.to_type()

    def get_declared_members(self, info: NamedTypeInfo) -> ObjectType:
        """Return the instance members of an interface or class, bases included."""
        key = id(info)
        members = self._members.get(key)
        if members is not None:
            return members
        if key in self._resolving_members:
            return self._build_members(info, infer_initializers=False)
        self._resolving_members.add(key)
        try:
            members = self._build_members(info, infer_initializers=True)
        finally:
            self._resolving_members.discard(key)
        self._members[key] = members
        return members

    def _declaration_mapper(self, info: NamedTypeInfo,
                            declaration: tree_sitter.Node) -> Dict[TypeParameter, Type]:
        type_parameters = declaration.child_by_field_name("type_parameters")
        if type_parameters is None or not info.type_parameters:
            return {}
        own = [self.get_type_parameter(p) for p in named_children(type_parameters)]
        return {
            param: target for param, target in zip(own, info.type_parameters)
            if param is not target
        }

    def _build_members(self, info: NamedTypeInfo, infer_initializers: bool) -> ObjectType:
        table = _MemberTable()
        for base in self.get_base_types(info):
            base_members = self.get_apparent_members(base)
            if base_members is not None:
                table.merge(ObjectType(
                    properties=base_members.properties,
                    call_signatures=base_members.call_signatures,
                    string_index=base_members.string_index,
                    number_index=base_members.number_index,
                ))
        for declaration in info.declarations:
            mapper = self._declaration_mapper(info, declaration)
            own = _MemberTable()
            body = declaration.child_by_field_name("body")
            if body is not None:
                for member in named_children(body):
                    self._add_member(member, own, infer_initializers, static=False)
            if declaration.type in CLASS_LIKE_TYPES:
                self._add_parameter_properties(body, own)
            table.merge(substitute(own.to_type(), mapper))
        return table.to_type()

    def get_base_types(self, info: NamedTypeInfo) -> List[Type]:
        bases: List[Type] = []
        for declaration in info.declarations:
            mapper = self._declaration_mapper(info, declaration)
            for child in named_children(declaration):
                if child.type == "extends_type_clause":
                    for base in named_children(child):
                        bases.append(substitute(self.get_type_from_type_node(base), mapper))
                elif child.type == "class_heritage":
                    base = self.get_base_class_type(declaration)
                    if base is not None:
                        bases.append(base)
        return bases

    def get_base_class_type(self, class_node: tree_sitter.Node) -> Optional[Type]:
        """Return the instance type of the class a class node extends."""
        for child in named_children(class_node):
            if child.type != "class_heritage":
                continue
            for clause in named_children(child):
                if clause.type != "extends_clause":
                    continue
                value = clause.child_by_field_name("value")
                args = self.get_type_arguments(clause.child_by_field_name("type_arguments"))
                if value is None:
                    return None
                constructor = self.checker.get_type_of_expression(value)
                if isinstance(constructor, ClassConstructorType):
                    return self.create_type_reference(constructor.target, args)
                signatures = self.checker.get_signatures_of_type(
                    constructor, SignatureKind.CONSTRUCT
                )
                if signatures:
                    return self.checker.get_return_type_of_signature(signatures[0])
                return None
        return None

    def get_static_members(self, info: NamedTypeInfo) -> ObjectType:
        key = id(info)
        members = self._static_members.get(key)
        if members is not None:
            return members
        table = _MemberTable()
        for declaration in info.declarations:
            base = self.get_base_class_type(declaration) \
                if declaration.type in CLASS_LIKE_TYPES else None
            if isinstance(base, TypeReference) and base.target.kind == "class":
                table.merge(self.get_static_members(base.target))
            body = declaration.child_by_field_name("body")
            if body is not None:
                for member in named_children(body):
                    self._add_member(member, table, infer_initializers=True, static=True)
        members = table.to_type()
        self._static_members[key] = members
        return members

    def get_construct_signatures(self, info: NamedTypeInfo) -> List[Signature]:
        instance = TypeReference(info, info.type_parameters)
        signatures = []
        for declaration in info.declarations:
            body = declaration.child_by_field_name("body")
            if body is None:
                continue
            constructors = [
                m for m in named_children(body)
                if m.type in ("method_definition", "method_signature")
                and property_name(m.child_by_field_name("name")) == "constructor"
            ]
            overloads = [m for m in constructors if m.type == "method_signature"]
            for constructor in overloads or constructors:
                signature = self.checker.get_signature_from_declaration(constructor)
                signatures.append(Signature(
                    parameters=signature.parameters,
                    return_type=instance,
                    type_parameters=info.type_parameters + signature.type_parameters,
                    declaration=constructor,
                ))
            if signatures:
                return signatures
        for declaration in info.declarations:
            base = self.get_base_class_type(declaration) \
                if declaration.type in CLASS_LIKE_TYPES else None
            if isinstance(base, TypeReference) and base.target.kind == "class":
                mapper = dict(zip(base.target.type_parameters, base.type_arguments))
                return [
                    _inherit_constructor(instantiate_signature(s, mapper), instance, info)
                    for s in self.get_construct_signatures(base.target)
                ]
        return [Signature(parameters=(), return_type=instance,
                          type_parameters=info.type_parameters)]

    def _add_parameter_properties(self, body: Optional[tree_sitter.Node],
                                  table: _MemberTable) -> None:
        if body is None:
            return
        for member in named_children(body):
            if member.type != "method_definition" \
                    or property_name(member.child_by_field_name("name")) != "constructor":
                continue
            signature = self.checker.get_signature_from_declaration(member)
            parameters = member.child_by_field_name("parameters")
            nodes = [p for p in named_children(parameters) if _is_parameter_node(p)]
            for node, param in zip(nodes, signature.parameters):
                is_property = any(
                    c.type == "accessibility_modifier" or c.type == "override_modifier"
                    for c in node.named_children
                ) or has_child_token(node, "readonly")
                if is_property:
                    table.add_property(Property(
                        param.name, param.type, param.optional,
                        readonly=has_child_token(node, "readonly"),
                    ))

    def _add_member(self, member: tree_sitter.Node, table: _MemberTable,
                    infer_initializers: bool, static: bool) -> None:
        kind = member.type
        if kind in ("public_field_definition", "method_definition", "method_signature",
                    "abstract_method_signature"):
            if has_child_token(member, "static") != static:
                return
        elif static:
            return

        if kind == "property_signature":
            name = property_name(member.child_by_field_name("name"))
            if name is None:
                return
            table.add_property(Property(
                name,
                self.get_type_from_type_node(member.child_by_field_name("type")),
                optional=has_child_token(member, "?"),
                readonly=has_child_token(member, "readonly"),
            ))
        elif kind == "public_field_definition":
            name = property_name(member.child_by_field_name("name"))
            if name is None:
                return
            readonly = has_child_token(member, "readonly")
            type_node = member.child_by_field_name("type")
            value = member.child_by_field_name("value")
            if type_node is not None:
                field_type = self.get_type_from_type_node(type_node)
            elif value is not None and infer_initializers:
                field_type = self.checker.get_type_of_initializer(value, keep_literals=readonly)
            else:
                field_type = ANY
            table.add_property(Property(
                name, field_type, optional=has_child_token(member, "?"), readonly=readonly,
            ))
        elif kind in ("method_signature", "abstract_method_signature", "method_definition"):
            name = property_name(member.child_by_field_name("name"))
            if name is None or name == "constructor":
                return
            signature = self.checker.get_signature_from_declaration(member)
            accessor = _accessor_kind(member)
            if accessor == "get":
                return_type = self.checker.get_return_type_of_signature(signature)
                table.add_property(Property(name, return_type, readonly=True))
            elif accessor == "set":
                existing = table.properties.get(name)
                if existing is not None and not existing.is_method:
                    table.add_property(Property(name, existing.type))
                else:
                    param_type = signature.parameters[0].type if signature.parameters else ANY
                    table.add_property(Property(name, param_type))
            else:
                if kind == "method_definition" and self._has_overload_signatures(member, name):
                    return
                table.add_method(name, signature, optional=has_child_token(member, "?"))
        elif kind == "call_signature":
            table.call_signatures.append(self.checker.get_signature_from_declaration(member))
        elif kind == "construct_signature":
            table.construct_signatures.append(self.checker.get_signature_from_declaration(member))
        elif kind == "index_signature":
            self._add_index_signature(member, table)

    def _has_overload_signatures(self, method: tree_sitter.Node, name: str) -> bool:
        body = method.parent
        if body is None:
            return False
        return any(
            m.type == "method_signature"
            and property_name(m.child_by_field_name("name")) == name
            for m in named_children(body)
        )

    def _add_index_signature(self, member: tree_sitter.Node, table: _MemberTable) -> None:
        value_type = self.get_type_from_type_node(member.child_by_field_name("type"))
        index_type = member.child_by_field_name("index_type")
        if index_type is not None and node_text(index_type) == "number":
            table.number_index = value_type
        else:
            table.string_index = value_type

    # ------------------------------------------------------------------
    # Apparent members
    # ------------------------------------------------------------------

    def get_apparent_members(self, t: Type) -> Optional[ObjectType]:
        """
        Return the members visible on a value of type ``t``.

        Primitives resolve to their wrapper interfaces and arrays to
        ``Array<T>``; named references are instantiated with their type
        arguments.
        """
        if isinstance(t, ObjectType):
            return t
        if isinstance(t, TypeReference):
            members = self.get_declared_members(t.target)
            mapper = dict(zip(t.target.type_parameters, t.type_arguments))
            return substitute(members, mapper) if mapper else members
        if isinstance(t, ArrayType):
            return self._wrapper_members("Array", (t.element,))
        if isinstance(t, TupleType):
            element = get_union_type(t.elements, self.strict_null_checks)
            return self._wrapper_members("Array", (element,))
        if t == STRING or (isinstance(t, LiteralType) and t.kind == "string"):
            return self._wrapper_members("String")
        if t == NUMBER or (isinstance(t, LiteralType) and t.kind == "number"):
            return self._wrapper_members("Number")
        if isinstance(t, (EnumType, EnumLiteralType)):
            return self._wrapper_members("Number")
        if t == BOOLEAN or (isinstance(t, LiteralType) and t.kind == "boolean"):
            return self._wrapper_members("Boolean")
        if t == BIGINT or (isinstance(t, LiteralType) and t.kind == "bigint"):
            return self._wrapper_members("BigInt")
        if t == SYMBOL:
            return self._wrapper_members("Symbol")
        if t == NON_PRIMITIVE:
            return self._wrapper_members("Object")
        if isinstance(t, TypeParameter):
            return self.get_apparent_members(t.constraint) if t.constraint is not None else None
        if isinstance(t, ClassConstructorType):
            static = self.get_static_members(t.target)
            return dataclasses.replace(
                static, construct_signatures=tuple(self.get_construct_signatures(t.target))
            )
        if isinstance(t, IntersectionType):
            table = _MemberTable()
            for member in t.types:
                members = self.get_apparent_members(member)
                if members is not None:
                    table.merge(members)
            return table.to_type()
        return None

    def _wrapper_members(self, name: str, args: Tuple[Type, ...] = ()) -> Optional[ObjectType]:
        info = self.get_global_info(name)
        if info is None:
            return None
        members = self.get_declared_members(info)
        mapper = dict(zip(info.type_parameters, args))
        return substitute(members, mapper) if mapper else members

    # ------------------------------------------------------------------
    # Utility types
    # ------------------------------------------------------------------

    def _utility_type(self, name: str, args: Tuple[Type, ...]) -> Type:
        first = args[0] if args else ANY
        if name == "ReadonlyArray":
            return ArrayType(first, readonly=True)
        if name == "Record" and len(args) == 2:
            return with_alias(self._record_type(args[0], args[1]), AliasInfo(name, args))
        if name in _MAPPED_UTILITIES and args:
            return self._mapped_utility(name, first)
        if name in ("Pick", "Omit") and len(args) == 2:
            return self._pick_or_omit(name, args)
        if name == "NonNullable":
            if isinstance(first, TypeParameter):
                return first
            return NEVER if first in (NULL, UNDEFINED) else remove_nullish(first)
        if name == "Awaited":
            return self.checker.get_awaited_type(first)
        if name == "ReturnType":
            signatures = self.checker.get_signatures_of_type(first, SignatureKind.CALL)
            if not signatures:
                return ANY
            return self.checker.get_return_type_of_signature(signatures[-1])
        if name == "Parameters":
            signatures = self.checker.get_signatures_of_type(first, SignatureKind.CALL)
            if not signatures:
                return ANY
            return TupleType(tuple(p.type for p in signatures[-1].parameters))
        if name == "InstanceType":
            signatures = self.checker.get_signatures_of_type(first, SignatureKind.CONSTRUCT)
            if not signatures:
                return ANY
            return self.checker.get_return_type_of_signature(signatures[-1])
        if name in ("Exclude", "Extract") and len(args) == 2:
            keep = name == "Extract"
            return get_union_type(
                [
                    m for m in union_members(args[0])
                    if self.checker.relations.is_type_assignable_to(m, args[1]) == keep
                ],
                self.strict_null_checks,
            )
        if name in ("Uppercase", "Lowercase", "Capitalize", "Uncapitalize"):
            return STRING
        logger.debug(f"Cannot resolve type name {name}, using any")
        return ANY

    def _record_type(self, keys: Type, value: Type) -> ObjectType:
        names = []
        for key in union_members(keys):
            if isinstance(key, LiteralType) and key.kind in ("string", "number"):
                names.append(key.value if key.kind == "string" else format_number(key.value))
            elif isinstance(key, EnumLiteralType):
                names.append(str(key.value))
            elif key == NUMBER:
                return ObjectType(number_index=value)
            else:
                return ObjectType(string_index=value)
        return ObjectType(properties=tuple(Property(n, value) for n in names))

    def _mapped_utility(self, name: str, target: Type) -> Type:
        alias = AliasInfo(name, (target,))
        if isinstance(target, TypeParameter) or target == ANY:
            return with_alias(ObjectType(), alias)
        members = self.get_apparent_members(target)
        if members is None:
            return target
        properties = []
        for prop in members.properties:
            properties.append(Property(
                prop.name, prop.type,
                optional=True if name == "Partial" else False if name == "Required"
                else prop.optional,
                readonly=True if name == "Readonly" else prop.readonly,
                is_method=prop.is_method,
            ))
        return ObjectType(
            properties=tuple(properties),
            call_signatures=members.call_signatures,
            string_index=members.string_index,
            number_index=members.number_index,
            alias=alias,
        )

    def _pick_or_omit(self, name: str, args: Tuple[Type, ...]) -> Type:
        alias = AliasInfo(name, args)
        members = self.get_apparent_members(args[0])
        if members is None:
            return with_alias(ObjectType(), alias)
        keys = {
            str(k.value) for k in union_members(args[1])
            if isinstance(k, LiteralType) and k.kind == "string"
        }
        keep = name == "Pick"
        properties = tuple(p for p in members.properties if (p.name in keys) == keep)
        return ObjectType(properties=properties, alias=alias)


def _inherit_constructor(signature: Signature, return_type: Type,
                         info: NamedTypeInfo) -> Signature:
    return Signature(
        parameters=signature.parameters,
        return_type=return_type,
        type_parameters=info.type_parameters,
        declaration=signature.declaration,
    )


def _accessor_kind(member: tree_sitter.Node) -> Optional[str]:
    name = member.child_by_field_name("name")
    for child in member.children:
        if name is not None and child.id == name.id:
            break
        if child.type in ("get", "set"):
            return child.type
    return None


def _is_parameter_node(node: tree_sitter.Node) -> bool:
    if node.type not in ("required_parameter", "optional_parameter"):
        return False
    pattern = node.child_by_field_name("pattern")
    return pattern is None or pattern.type != "this"
