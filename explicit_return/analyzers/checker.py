"""
Semantic type checker.

Computes the types of expressions, declarations and signatures over one
bound compilation unit. The public surface mirrors a compiler checker:
signatures are resolved from declarations, return types are inferred lazily
from function bodies, and types are rendered to text through the type
printer.
"""

import logging
from typing import Dict, List, Optional, Sequence, Set, Union

import tree_sitter

from explicit_return.analyzers.binder import (
    CLASS_LIKE_TYPES,
    FUNCTION_LIKE_TYPES,
    SIGNATURE_LIKE_TYPES,
    Binder,
    Symbol,
    SymbolFlags,
)
from explicit_return.analyzers.control_flow import (
    collect_return_statements,
    collect_yield_expressions,
    statements_complete_normally,
)
from explicit_return.analyzers.inference import TypeArgumentInferrer, TypeRelations
from explicit_return.analyzers.narrowing import ReferenceNarrower
from explicit_return.analyzers.type_printer import TypePrinter, format_literal
from explicit_return.analyzers.type_resolver import TypeResolver, property_name
from explicit_return.analyzers.types import (
    ANY,
    BIGINT,
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
    ClassConstructorType,
    EnumLiteralType,
    EnumObjectType,
    EnumType,
    IntersectionType,
    LiteralType,
    ObjectType,
    Parameter,
    Property,
    Signature,
    SignatureKind,
    TupleType,
    Type,
    TypeFormatFlags,
    TypeMapper,
    TypeReference,
    UnionType,
    get_regular_type,
    get_union_type,
    get_widened_type,
    instantiate_signature,
    is_nullish,
    is_unit_type,
    remove_nullish,
    substitute,
    union_members,
    well_known_symbol_name,
    widen_literal_type,
)
from explicit_return.config import Settings, settings as default_settings
from explicit_return.utils.syntax import (
    contains_node,
    decode_string_literal,
    format_number,
    has_child_token,
    named_children,
    node_text,
    parse_numeric_literal,
    same_node,
)

logger = logging.getLogger(__name__)

FUNCTION_EXPRESSION_TYPES = frozenset({
    "arrow_function", "function_expression", "function", "generator_function",
})

_PARAMETER_TYPES = frozenset({"required_parameter", "optional_parameter"})

# Signatures whose result type sits in the ``type`` field.
_TYPE_FIELD_SIGNATURES = frozenset({"construct_signature", "constructor_type"})

_ARITHMETIC_OPERATORS = frozenset({
    "-", "*", "/", "%", "**", "&", "|", "^", "<<", ">>", ">>>",
})

_RELATIONAL_OPERATORS = frozenset({
    "<", ">", "<=", ">=", "==", "!=", "===", "!==", "in", "instanceof",
})


def parameters_node(declaration: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    """Return the formal parameter list of a function-like or signature node."""
    parameters = declaration.child_by_field_name("parameters")
    if parameters is not None:
        return parameters
    for child in declaration.named_children:
        if child.type == "formal_parameters":
            return child
    return None


def type_parameters_node(declaration: tree_sitter.Node) -> Optional[tree_sitter.Node]:
    type_parameters = declaration.child_by_field_name("type_parameters")
    if type_parameters is not None:
        return type_parameters
    for child in declaration.named_children:
        if child.type == "type_parameters":
            return child
    return None


def parameter_nodes(declaration: tree_sitter.Node) -> List[tree_sitter.Node]:
    """Return the parameter nodes of a declaration, without a ``this`` parameter."""
    parameters = parameters_node(declaration)
    if parameters is None:
        return []
    result = []
    for param in named_children(parameters):
        if param.type not in _PARAMETER_TYPES:
            continue
        pattern = param.child_by_field_name("pattern")
        if pattern is None or pattern.type == "this":
            continue
        result.append(param)
    return result


class TypeChecker:
    """
    Type checker over a user file and the ambient library declarations.

    Every result is cached for the lifetime of the checker, which is the
    lifetime of one Program Context.
    """

    def __init__(self, binder: Binder, settings: Optional[Settings] = None):
        self.binder = binder
        self.settings = settings or default_settings
        self.strict_null_checks = self.settings.strict_null_checks
        self.resolver = TypeResolver(self)
        self.relations = TypeRelations(self)
        self.printer = TypePrinter(
            self.get_return_type_of_signature,
            max_truncation_length=self.settings.max_truncation_length,
        )
        self._expression_types: Dict[int, Type] = {}
        self._resolving_expressions: Set[int] = set()
        self._symbol_types: Dict[int, Type] = {}
        self._resolving_symbols: Set[int] = set()
        self._signatures: Dict[int, Signature] = {}
        self._resolving_signatures: Set[int] = set()
        self._return_types: Dict[int, Type] = {}
        self._resolving_returns: Set[int] = set()
        self._resolved_calls: Dict[int, Optional[Signature]] = {}
        self._contextual_calls: Dict[int, Optional[Signature]] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_signature_from_declaration(self, node: tree_sitter.Node) -> Signature:
        """
        Build the signature declared by a function-like or signature node.

        Unannotated parameters of function expressions take their types from
        the contextual signature; an absent return annotation leaves the
        return type to be inferred from the body.
        """
        cached = self._signatures.get(node.id)
        if cached is not None:
            return cached
        contextual = None
        if node.id not in self._resolving_signatures and node.type in FUNCTION_EXPRESSION_TYPES \
                and self.is_context_sensitive(node):
            self._resolving_signatures.add(node.id)
            try:
                contextual = self._get_contextual_signature(node)
            finally:
                self._resolving_signatures.discard(node.id)

        type_parameters = type_parameters_node(node)
        return_type_node = node.child_by_field_name("return_type")
        if return_type_node is None and node.type in _TYPE_FIELD_SIGNATURES:
            return_type_node = node.child_by_field_name("type")
        if return_type_node is not None:
            return_type = self.resolver.get_type_from_type_node(return_type_node)
        elif node.type in SIGNATURE_LIKE_TYPES:
            return_type = ANY
        else:
            return_type = None
        signature = Signature(
            parameters=self._get_parameters(node, contextual),
            return_type=return_type,
            type_parameters=tuple(
                self.resolver.get_type_parameter(p) for p in named_children(type_parameters)
            ) if type_parameters is not None else (),
            declaration=node,
        )
        self._signatures[node.id] = signature
        return signature

    def get_return_type_of_signature(self, signature: Signature) -> Type:
        if signature.return_type is not None:
            return signature.return_type
        if signature.declaration is None:
            return ANY
        inferred = self._get_inferred_return_type(signature.declaration)
        if signature.mapper:
            return substitute(inferred, signature.mapper)
        return inferred

    def get_type_at_location(self, node: tree_sitter.Node) -> Type:
        """Return the type of the entity or expression at a node."""
        if node.type in FUNCTION_LIKE_TYPES:
            return self.get_type_of_function(node)
        if node.type in CLASS_LIKE_TYPES:
            return ClassConstructorType(self.resolver.get_class_info(node))
        if node.type == "property_identifier" and node.parent is not None \
                and node.parent.type == "member_expression":
            return self.get_type_of_expression(node.parent)
        return self.get_type_of_expression(node)

    def get_signatures_of_type(self, t: Type, kind: SignatureKind = SignatureKind.CALL
                               ) -> List[Signature]:
        construct = kind == SignatureKind.CONSTRUCT
        if isinstance(t, UnionType):
            with_signatures = [
                s for s in (self.get_signatures_of_type(m, kind) for m in t.types
                            if not is_nullish(m)) if s
            ]
            return with_signatures[0] if with_signatures else []
        if isinstance(t, IntersectionType):
            result: List[Signature] = []
            for member in t.types:
                result.extend(self.get_signatures_of_type(member, kind))
            return result
        if isinstance(t, ClassConstructorType):
            return self.resolver.get_construct_signatures(t.target) if construct else []
        if isinstance(t, ObjectType):
            return list(t.construct_signatures if construct else t.call_signatures)
        members = self.resolver.get_apparent_members(t)
        if members is None:
            return []
        return list(members.construct_signatures if construct else members.call_signatures)

    def type_to_string(self, t: Type, flags: TypeFormatFlags = TypeFormatFlags.NONE) -> str:
        return self.printer.type_to_string(t, flags)

    # ------------------------------------------------------------------
    # Declarations
    # ------------------------------------------------------------------

    def get_type_of_function(self, node: tree_sitter.Node) -> Type:
        return ObjectType(call_signatures=(self.get_signature_from_declaration(node),))

    def _get_parameters(self, node: tree_sitter.Node,
                        contextual: Optional[Signature]) -> tuple:
        single = node.child_by_field_name("parameter")
        if single is not None:
            return (Parameter(node_text(single), self._contextual_parameter_type(contextual, 0)),)
        parameters = []
        for index, param in enumerate(parameter_nodes(node)):
            pattern = param.child_by_field_name("pattern")
            rest = pattern.type == "rest_pattern"
            name_node = named_children(pattern)[0] if rest and named_children(pattern) else pattern
            name = node_text(name_node) if name_node.type == "identifier" else f"__{index}"
            type_node = param.child_by_field_name("type")
            value = param.child_by_field_name("value")
            if type_node is not None:
                param_type = self.resolver.get_type_from_type_node(type_node)
            elif value is not None:
                param_type = get_widened_type(self.get_type_of_expression(value),
                                              self.strict_null_checks)
            else:
                param_type = self._contextual_parameter_type(contextual, index, rest)
            parameters.append(Parameter(
                name, param_type,
                optional=param.type == "optional_parameter" or value is not None,
                rest=rest,
            ))
        return tuple(parameters)

    def _contextual_parameter_type(self, contextual: Optional[Signature], index: int,
                                   rest: bool = False) -> Type:
        if contextual is None:
            return ArrayType(ANY) if rest else ANY
        if rest:
            remaining = contextual.parameters[index:]
            if len(remaining) == 1 and remaining[0].rest:
                return remaining[0].type
            return ArrayType(get_union_type([p.type for p in remaining])) if remaining \
                else ArrayType(ANY)
        param_type = self.parameter_type_at(contextual, index)
        return param_type if param_type is not None else ANY

    def parameter_type_at(self, signature: Signature, index: int) -> Optional[Type]:
        params = signature.parameters
        if index < len(params) and not params[index].rest:
            return params[index].type
        if params and params[-1].rest and index >= len(params) - 1:
            return self.get_element_type(params[-1].type)
        return None

    def get_element_type(self, t: Type) -> Type:
        if isinstance(t, ArrayType):
            return t.element
        if isinstance(t, TupleType):
            return get_union_type(t.elements, self.strict_null_checks)
        return ANY

    def get_type_of_symbol(self, symbol: Symbol) -> Type:
        key = id(symbol)
        cached = self._symbol_types.get(key)
        if cached is not None:
            return cached
        if key in self._resolving_symbols:
            return ANY
        self._resolving_symbols.add(key)
        try:
            t = self._compute_type_of_symbol(symbol)
        finally:
            self._resolving_symbols.discard(key)
        self._symbol_types[key] = t
        return t

    def _compute_type_of_symbol(self, symbol: Symbol) -> Type:
        flags = symbol.flags
        if flags & SymbolFlags.VARIABLE:
            declaration = next(
                (d for d in symbol.declarations
                 if d.type in ("variable_declarator", "identifier",
                               "shorthand_property_identifier_pattern")),
                None,
            )
            if declaration is not None:
                return self._get_type_of_variable(declaration, symbol.is_const)
        if flags & SymbolFlags.FUNCTION:
            declarations = symbol.declarations_of(
                "function_declaration", "generator_function_declaration", "function_signature",
                "function_expression", "function", "generator_function",
            )
            if declarations and declarations[0].type in FUNCTION_EXPRESSION_TYPES:
                return self.get_type_of_expression(declarations[0])
            overloads = [d for d in declarations if d.type == "function_signature"]
            implementations = [d for d in declarations if d.type != "function_signature"]
            chosen = overloads if overloads and implementations else declarations
            return ObjectType(call_signatures=tuple(
                self.get_signature_from_declaration(d) for d in chosen
            ))
        if flags & SymbolFlags.CLASS:
            declaration = symbol.declarations_of(*CLASS_LIKE_TYPES)[0]
            return ClassConstructorType(self.resolver.get_class_info(declaration))
        if flags & SymbolFlags.ENUM:
            return EnumObjectType(self.resolver.get_enum_info(symbol))
        if flags & SymbolFlags.PARAMETER:
            return self._get_type_of_binding_identifier(symbol.declarations[0], is_const=False)
        if flags & SymbolFlags.NAMESPACE:
            return ObjectType(properties=tuple(
                Property(name, self.get_type_of_symbol(export))
                for name, export in symbol.exports.items()
                if export.flags & SymbolFlags.VALUE
            ))
        return ANY

    def _get_type_of_variable(self, declaration: tree_sitter.Node, is_const: bool) -> Type:
        if declaration.type != "variable_declarator":
            return self._get_type_of_binding_identifier(declaration, is_const)
        type_node = declaration.child_by_field_name("type")
        if type_node is not None:
            return self.resolver.get_type_from_type_node(type_node)
        value = declaration.child_by_field_name("value")
        if value is None:
            return ANY
        return self.get_type_of_initializer(value, keep_literals=is_const)

    def get_type_of_initializer(self, value: tree_sitter.Node, keep_literals: bool) -> Type:
        """Type an initializer the way a binding or field declared with it is typed."""
        t = self.get_type_of_expression(value)
        if keep_literals:
            t = get_regular_type(t)
            return ANY if not self.strict_null_checks and is_nullish(t) else t
        return get_widened_type(t, self.strict_null_checks)

    def _get_type_of_binding_identifier(self, identifier: tree_sitter.Node,
                                        is_const: bool) -> Type:
        parent = identifier.parent
        if parent is not None and parent.type == "arrow_function" \
                and same_node(parent.child_by_field_name("parameter"), identifier):
            return self.get_signature_from_declaration(parent).parameters[0].type
        node = parent
        while node is not None:
            if node.type == "variable_declarator":
                pattern = node.child_by_field_name("name")
                type_node = node.child_by_field_name("type")
                value = node.child_by_field_name("value")
                if type_node is not None:
                    root = self.resolver.get_type_from_type_node(type_node)
                elif value is not None:
                    root = self.get_type_of_expression(value)
                else:
                    root = ANY
                return self._finish_binding(self._get_binding_type(pattern, identifier, root),
                                            is_const)
            if node.type == "for_in_statement":
                left = node.child_by_field_name("left")
                right = node.child_by_field_name("right")
                operator = node.child_by_field_name("operator")
                if operator is not None and node_text(operator) == "in":
                    return STRING
                iterated = self.get_iterated_type(
                    self.get_type_of_expression(right), has_child_token(node, "await")
                ) if right is not None else ANY
                return self._finish_binding(self._get_binding_type(left, identifier, iterated),
                                            is_const)
            if node.type == "catch_clause":
                return ANY
            if node.type in _PARAMETER_TYPES:
                function = node.parent.parent if node.parent is not None else None
                if function is None:
                    return ANY
                nodes = parameter_nodes(function)
                index = next((i for i, p in enumerate(nodes) if p.id == node.id), None)
                signature = self.get_signature_from_declaration(function)
                if index is None or index >= len(signature.parameters):
                    return ANY
                pattern = node.child_by_field_name("pattern")
                param_type = signature.parameters[index].type
                if pattern.type == "rest_pattern":
                    pattern = named_children(pattern)[0]
                return self._get_binding_type(pattern, identifier, param_type)
            node = node.parent
        return ANY

    def _finish_binding(self, t: Type, is_const: bool) -> Type:
        if is_const:
            t = get_regular_type(t)
            return ANY if not self.strict_null_checks and is_nullish(t) else t
        return get_widened_type(t, self.strict_null_checks)

    def _get_binding_type(self, pattern: tree_sitter.Node, target: tree_sitter.Node,
                          t: Type) -> Type:
        """Type of the identifier ``target`` bound inside ``pattern`` matched against ``t``."""
        if same_node(pattern, target):
            return t
        kind = pattern.type
        if kind == "object_pattern":
            for child in named_children(pattern):
                if not contains_node(child, target):
                    continue
                if child.type == "shorthand_property_identifier_pattern":
                    return self.get_type_of_property(t, node_text(child))
                if child.type == "pair_pattern":
                    key = property_name(child.child_by_field_name("key"))
                    property_type = self.get_type_of_property(t, key) if key is not None else ANY
                    return self._get_binding_type(child.child_by_field_name("value"), target,
                                                  property_type)
                if child.type == "object_assignment_pattern":
                    left = child.child_by_field_name("left")
                    property_type = self.get_type_of_property(t, node_text(left))
                    return self._with_default(property_type, child.child_by_field_name("right"))
                return ANY
        if kind == "array_pattern":
            for index, child in enumerate(named_children(pattern)):
                if not contains_node(child, target):
                    continue
                if child.type == "rest_pattern":
                    return ArrayType(self._element_type_at(t, index))
                return self._get_binding_type(child, target, self._element_type_at(t, index))
        if kind == "assignment_pattern":
            left = pattern.child_by_field_name("left")
            combined = self._with_default(t, pattern.child_by_field_name("right"))
            return self._get_binding_type(left, target, combined)
        if kind == "rest_pattern":
            inner = named_children(pattern)
            return self._get_binding_type(inner[0], target, t) if inner else ANY
        return ANY

    def _with_default(self, t: Type, default: Optional[tree_sitter.Node]) -> Type:
        if default is None:
            return t
        default_type = get_widened_type(self.get_type_of_expression(default),
                                        self.strict_null_checks)
        if t == ANY:
            return default_type
        return get_union_type([remove_nullish(t), default_type], self.strict_null_checks)

    def _element_type_at(self, t: Type, index: int) -> Type:
        if isinstance(t, TupleType):
            return t.elements[index] if index < len(t.elements) else UNDEFINED
        if isinstance(t, ArrayType):
            return t.element
        return self.get_iterated_type(t)

    # ------------------------------------------------------------------
    # Return type inference
    # ------------------------------------------------------------------

    def _get_inferred_return_type(self, declaration: tree_sitter.Node) -> Type:
        key = declaration.id
        cached = self._return_types.get(key)
        if cached is not None:
            return cached
        if key in self._resolving_returns:
            logger.debug("Return type of a function depends on itself, using any")
            return ANY
        self._resolving_returns.add(key)
        try:
            t = self._infer_return_type_from_body(declaration)
        finally:
            self._resolving_returns.discard(key)
        self._return_types[key] = t
        return t

    def _infer_return_type_from_body(self, declaration: tree_sitter.Node) -> Type:
        body = declaration.child_by_field_name("body")
        if body is None:
            return ANY
        is_async = has_child_token(declaration, "async")
        is_generator = has_child_token(declaration, "*") \
            or declaration.type in ("generator_function", "generator_function_declaration")

        if body.type != "statement_block":
            t = self.get_type_of_expression(body)
            if is_async:
                t = self.get_awaited_type(t)
            return self._wrap_async(self._widen_return_type(t), is_async)

        returns = collect_return_statements(body)
        types: List[Type] = []
        has_empty_return = False
        for statement in returns:
            values = named_children(statement)
            if not values:
                has_empty_return = True
                continue
            t = self.get_type_of_expression(values[0])
            types.append(self.get_awaited_type(t) if is_async else t)
        end_reachable = statements_complete_normally(named_children(body))

        if is_generator:
            return self._get_generator_return_type(body, types, is_async)
        if not types:
            if not returns and not end_reachable \
                    and declaration.type in FUNCTION_EXPRESSION_TYPES:
                return self._wrap_async(NEVER, is_async)
            return self._wrap_async(VOID, is_async)
        if has_empty_return or end_reachable:
            types.append(UNDEFINED)
        union = get_union_type(types, self.strict_null_checks)
        return self._wrap_async(self._widen_return_type(union), is_async)

    def _widen_return_type(self, t: Type) -> Type:
        # A lone literal widens to its primitive; literal unions are kept.
        if is_unit_type(t):
            t = widen_literal_type(t, self.strict_null_checks)
        t = get_regular_type(t)
        if not self.strict_null_checks and is_nullish(t):
            return ANY
        return t

    def _wrap_async(self, t: Type, is_async: bool) -> Type:
        if not is_async:
            return t
        return self.resolver.get_global_type("Promise", (t,))

    def _get_generator_return_type(self, body: tree_sitter.Node, return_types: List[Type],
                                   is_async: bool) -> Type:
        yield_types = []
        for expression in collect_yield_expressions(body):
            values = named_children(expression)
            if not values:
                yield_types.append(UNDEFINED)
                continue
            t = self.get_type_of_expression(values[0])
            if has_child_token(expression, "*"):
                t = self.get_iterated_type(t, is_async)
            elif is_async:
                t = self.get_awaited_type(t)
            yield_types.append(t)
        yield_type = self._widen_return_type(
            get_union_type(yield_types, self.strict_null_checks)
        ) if yield_types else NEVER
        return_type = self._widen_return_type(
            get_union_type(return_types, self.strict_null_checks)
        ) if return_types else VOID
        name = "AsyncGenerator" if is_async else "Generator"
        return self.resolver.get_global_type(name, (yield_type, return_type, UNKNOWN))

    def get_awaited_type(self, t: Type, depth: int = 0) -> Type:
        """Unwrap promise-like types the way ``await`` does."""
        if depth > 8 or t == ANY:
            return t
        if isinstance(t, UnionType):
            return get_union_type([self.get_awaited_type(m, depth + 1) for m in t.types],
                                  self.strict_null_checks)
        info = self.resolver.get_global_info("PromiseLike")
        if info is not None and isinstance(t, TypeReference):
            base = self.relations.get_base_reference(t, info)
            if base is not None and base.type_arguments:
                return self.get_awaited_type(base.type_arguments[0], depth + 1)
        return t

    def get_iterated_type(self, t: Type, is_async: bool = False) -> Type:
        if isinstance(t, (ArrayType, TupleType)):
            element = self.get_element_type(t)
            return self.get_awaited_type(element) if is_async else element
        if t == STRING or (isinstance(t, LiteralType) and t.kind == "string"):
            return STRING
        for name in (("AsyncIterable", "Iterable") if is_async else ("Iterable",)):
            info = self.resolver.get_global_info(name)
            if info is None:
                continue
            base = self.relations.get_base_reference(t, info)
            if base is not None and base.type_arguments:
                return base.type_arguments[0]
        return ANY

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def get_type_of_expression(self, node: tree_sitter.Node) -> Type:
        key = node.id
        cached = self._expression_types.get(key)
        if cached is not None:
            return cached
        if key in self._resolving_expressions:
            return ANY
        self._resolving_expressions.add(key)
        try:
            t = self._check_expression(node)
        finally:
            self._resolving_expressions.discard(key)
        self._expression_types[key] = t
        return t

    def _check_expression(self, node: tree_sitter.Node) -> Type:
        kind = node.type
        if kind == "number":
            value, literal_kind = parse_numeric_literal(node_text(node))
            return LiteralType(value, literal_kind, fresh=True)
        if kind == "string":
            return LiteralType(decode_string_literal(node), "string", fresh=True)
        if kind == "template_string":
            if any(c.type == "template_substitution" for c in node.named_children):
                return STRING
            return LiteralType(decode_string_literal(node), "string", fresh=True)
        if kind == "true":
            return LiteralType(True, "boolean", fresh=True)
        if kind == "false":
            return LiteralType(False, "boolean", fresh=True)
        if kind == "null":
            return NULL
        if kind == "undefined":
            return UNDEFINED
        if kind == "regex":
            return self.resolver.get_global_type("RegExp")
        if kind in ("identifier", "shorthand_property_identifier"):
            return self._check_identifier(node)
        if kind == "this":
            return self.get_this_type(node)
        if kind == "super":
            base = self._get_enclosing_base_class(node)
            return base if base is not None else ANY
        if kind == "parenthesized_expression":
            children = named_children(node)
            return self.get_type_of_expression(children[-1]) if children else ANY
        if kind == "member_expression":
            return self._check_member_expression(node)
        if kind == "subscript_expression":
            return self._check_subscript_expression(node)
        if kind == "call_expression":
            return self._check_call_expression(node)
        if kind == "new_expression":
            return self._check_new_expression(node)
        if kind == "await_expression":
            children = named_children(node)
            return self.get_awaited_type(self.get_type_of_expression(children[0])) \
                if children else ANY
        if kind == "unary_expression":
            return self._check_unary_expression(node)
        if kind == "update_expression":
            return NUMBER
        if kind == "binary_expression":
            return self._check_binary_expression(node)
        if kind == "ternary_expression":
            return get_union_type([
                self.get_type_of_expression(node.child_by_field_name("consequence")),
                self.get_type_of_expression(node.child_by_field_name("alternative")),
            ], self.strict_null_checks)
        if kind == "assignment_expression":
            return self.get_type_of_expression(node.child_by_field_name("right"))
        if kind == "augmented_assignment_expression":
            return get_widened_type(
                self.get_type_of_expression(node.child_by_field_name("left")),
                self.strict_null_checks,
            )
        if kind == "sequence_expression":
            children = named_children(node)
            return self.get_type_of_expression(children[-1]) if children else ANY
        if kind == "as_expression":
            return self._check_as_expression(node)
        if kind == "satisfies_expression":
            return self.get_type_of_expression(named_children(node)[0])
        if kind == "type_assertion":
            children = named_children(node)
            type_arguments = children[0]
            return self.resolver.get_type_from_type_node(named_children(type_arguments)[0])
        if kind == "non_null_expression":
            return remove_nullish(self.get_type_of_expression(named_children(node)[0]))
        if kind in FUNCTION_EXPRESSION_TYPES:
            return self.get_type_of_function(node)
        if kind == "class":
            return ClassConstructorType(self.resolver.get_class_info(node))
        if kind == "object":
            return self._check_object_literal(node)
        if kind == "array":
            return self._check_array_literal(node)
        if kind in ("jsx_element", "jsx_self_closing_element", "jsx_fragment"):
            return self._get_jsx_element_type(node)
        if kind == "spread_element":
            return self.get_type_of_expression(named_children(node)[0])
        logger.debug(f"No typing rule for expression {kind}, using any")
        return ANY

    def _check_identifier(self, node: tree_sitter.Node) -> Type:
        name = node_text(node)
        if name == "undefined":
            return UNDEFINED
        symbol = self.binder.resolve(name, node, SymbolFlags.VALUE)
        if symbol is None:
            if name == "arguments":
                return self.resolver.get_global_type("IArguments")
            return ANY
        declared = self.get_type_of_symbol(symbol)
        if symbol.flags & (SymbolFlags.VARIABLE | SymbolFlags.PARAMETER) \
                and not symbol.flags & SymbolFlags.FUNCTION \
                and self.binder.globals.get(name) is not symbol:
            return ReferenceNarrower(self, symbol).get_narrowed_type(node, declared)
        return declared

    def get_type_of_entity_name(self, node: tree_sitter.Node) -> Type:
        """Type of the entity named in a ``typeof`` type query."""
        if node.type == "nested_identifier":
            parts = [part.strip() for part in node_text(node).split(".")]
            symbol = self.binder.resolve(parts[0], node, SymbolFlags.VALUE)
            t = self.get_type_of_symbol(symbol) if symbol is not None else ANY
            for part in parts[1:]:
                t = self.get_type_of_property(t, part)
            return t
        return self.get_type_of_expression(node)

    def get_this_type(self, node: tree_sitter.Node) -> Type:
        current = node.parent
        while current is not None:
            kind = current.type
            if kind in ("function_declaration", "generator_function_declaration",
                        "function_expression", "function", "generator_function"):
                return ANY
            if kind in ("method_definition", "public_field_definition"):
                container = current.parent
                if container is None or container.type != "class_body":
                    return ANY
                info = self.resolver.get_class_info(container.parent)
                if has_child_token(current, "static"):
                    return ClassConstructorType(info)
                return TypeReference(info, info.type_parameters)
            if kind == "class_body":
                return self.resolver.get_class_instance_type(current.parent)
            if kind == "interface_declaration":
                name = node_text(current.child_by_field_name("name"))
                symbol = self.binder.resolve(name, current, SymbolFlags.INTERFACE)
                if symbol is None:
                    return ANY
                info = self.resolver.get_named_type_info(symbol)
                return TypeReference(info, info.type_parameters)
            current = current.parent
        return ANY

    def _get_enclosing_base_class(self, node: tree_sitter.Node) -> Optional[Type]:
        current = node.parent
        while current is not None:
            if current.type in CLASS_LIKE_TYPES:
                return self.resolver.get_base_class_type(current)
            current = current.parent
        return None

    def _check_member_expression(self, node: tree_sitter.Node) -> Type:
        object_node = node.child_by_field_name("object")
        property_node = node.child_by_field_name("property")
        if object_node is None or property_node is None:
            return ANY
        object_type = self.get_type_of_expression(object_node)
        return self.get_type_of_property(object_type, node_text(property_node))

    def get_type_of_property(self, t: Type, name: Optional[str]) -> Type:
        """Type of reading property ``name`` from a value of type ``t``."""
        if name is None or t in (ANY, UNKNOWN, NEVER):
            return ANY
        if isinstance(t, UnionType):
            return get_union_type(
                [self.get_type_of_property(m, name) for m in t.types if not is_nullish(m)],
                self.strict_null_checks,
            )
        if isinstance(t, EnumObjectType):
            return self.resolver.get_enum_member_type(t.enum, name)
        if isinstance(t, ClassConstructorType) and name == "prototype":
            return TypeReference(t.target, tuple(ANY for _ in t.target.type_parameters))
        members = self.resolver.get_apparent_members(t)
        if members is not None:
            prop = members.get_property(name)
            if prop is not None:
                return prop.type
            if members.string_index is not None:
                return members.string_index
            if members.call_signatures or members.construct_signatures:
                function_members = self.resolver.get_apparent_members(
                    self.resolver.get_global_type("Function")
                )
                if function_members is not None:
                    prop = function_members.get_property(name)
                    if prop is not None:
                        return prop.type
        object_members = self.resolver.get_apparent_members(
            self.resolver.get_global_type("Object")
        )
        if object_members is not None:
            prop = object_members.get_property(name)
            if prop is not None:
                return prop.type
        return ANY

    def _check_subscript_expression(self, node: tree_sitter.Node) -> Type:
        object_type = self.get_type_of_expression(node.child_by_field_name("object"))
        index_node = node.child_by_field_name("index")
        index_type = self.get_type_of_expression(index_node) if index_node is not None else ANY
        if isinstance(object_type, TupleType) and isinstance(index_type, LiteralType) \
                and index_type.kind == "number":
            index = int(index_type.value)
            if 0 <= index < len(object_type.elements):
                return object_type.elements[index]
            return UNDEFINED
        if isinstance(index_type, LiteralType) and index_type.kind == "string":
            return self.get_type_of_property(object_type, index_type.value)
        if isinstance(object_type, (ArrayType, TupleType)):
            return self.get_element_type(object_type)
        if object_type == STRING:
            return STRING
        members = self.resolver.get_apparent_members(object_type)
        if members is None:
            return ANY
        numeric = index_type == NUMBER or (isinstance(index_type, LiteralType)
                                           and index_type.kind == "number")
        if numeric and members.number_index is not None:
            return members.number_index
        if members.string_index is not None:
            return members.string_index
        return ANY

    def _check_unary_expression(self, node: tree_sitter.Node) -> Type:
        operator = node_text(node.child_by_field_name("operator"))
        argument = node.child_by_field_name("argument")
        if operator in ("!", "delete"):
            return BOOLEAN
        if operator == "typeof":
            return STRING
        if operator == "void":
            return UNDEFINED
        operand = self.get_type_of_expression(argument)
        if operator in ("-", "+") and isinstance(operand, LiteralType) \
                and operand.kind in ("number", "bigint") and argument.type == "number":
            if operator == "+" and operand.kind == "bigint":
                return ANY
            value = -operand.value if operator == "-" else operand.value
            return LiteralType(value, operand.kind, fresh=True)
        if self._is_bigint_like(operand) and operator != "+":
            return BIGINT
        return NUMBER

    def _is_bigint_like(self, t: Type) -> bool:
        return t == BIGINT or (isinstance(t, LiteralType) and t.kind == "bigint")

    def _is_string_like(self, t: Type) -> bool:
        return all(
            m == STRING or (isinstance(m, LiteralType) and m.kind == "string")
            or (isinstance(m, EnumLiteralType) and isinstance(m.value, str))
            for m in union_members(t)
        )

    def _is_number_like(self, t: Type) -> bool:
        return all(
            m == NUMBER or (isinstance(m, LiteralType) and m.kind == "number")
            or isinstance(m, EnumType)
            or (isinstance(m, EnumLiteralType) and not isinstance(m.value, str))
            for m in union_members(t)
        )

    def _check_binary_expression(self, node: tree_sitter.Node) -> Type:
        operator = node_text(node.child_by_field_name("operator"))
        left = self.get_type_of_expression(node.child_by_field_name("left"))
        right = self.get_type_of_expression(node.child_by_field_name("right"))
        if operator in _RELATIONAL_OPERATORS:
            return BOOLEAN
        if operator == "&&":
            if self.strict_null_checks:
                nullish = [m for m in union_members(left) if is_nullish(m)]
                return get_union_type(nullish + [right], self.strict_null_checks)
            return right
        if operator in ("||", "??"):
            kept = remove_nullish(left) if operator == "??" else get_union_type(
                [m for m in union_members(left) if not is_nullish(m) and m != FALSE],
                self.strict_null_checks,
            )
            if isinstance(kept, LiteralType) and kept == TRUE and operator == "||":
                return kept
            return get_union_type([kept, right], self.strict_null_checks)
        if operator == "+":
            if self._is_string_like(left) or self._is_string_like(right):
                return STRING
            if left == ANY or right == ANY:
                return ANY
            if self._is_bigint_like(left) and self._is_bigint_like(right):
                return BIGINT
            if self._is_number_like(left) and self._is_number_like(right):
                return NUMBER
            return ANY
        if operator in _ARITHMETIC_OPERATORS:
            if self._is_bigint_like(left) and self._is_bigint_like(right):
                return BIGINT
            return NUMBER
        return ANY

    def _check_as_expression(self, node: tree_sitter.Node) -> Type:
        children = named_children(node)
        expression = children[0]
        if len(children) == 1:
            # `as const`; nested literals read their const context themselves.
            return get_regular_type(self.get_type_of_expression(expression))
        return self.resolver.get_type_from_type_node(children[1])

    def is_const_context(self, node: tree_sitter.Node) -> bool:
        """Whether a literal sits, possibly nested, under an ``as const`` assertion."""
        parent = node.parent
        while parent is not None:
            kind = parent.type
            if kind == "as_expression":
                return len(named_children(parent)) == 1
            if kind == "pair":
                if not same_node(parent.child_by_field_name("value"), node):
                    return False
                node = parent.parent
            elif kind in ("parenthesized_expression", "array"):
                node = parent
            else:
                return False
            if node is None:
                return False
            parent = node.parent
        return False

    def _literal_member_type(self, value: tree_sitter.Node, const: bool) -> Type:
        t = self.get_type_of_expression(value)
        if const:
            return get_regular_type(t)
        return get_widened_type(t, self.strict_null_checks)

    def _computed_member_key(self, key: tree_sitter.Node) -> Union[str, Type]:
        """Name of a computed member, or the index type it declares."""
        inner = named_children(key)
        if len(inner) != 1:
            return ANY
        expression = inner[0]
        if expression.type == "member_expression":
            target = expression.child_by_field_name("object")
            member = expression.child_by_field_name("property")
            if target is not None and member is not None and node_text(target) == "Symbol" \
                    and self.binder.resolve("Symbol", expression, SymbolFlags.VALUE) is not None:
                return well_known_symbol_name(node_text(member))
        key_type = get_regular_type(self.get_type_of_expression(expression))
        if isinstance(key_type, LiteralType) and key_type.kind == "string":
            return key_type.value
        if isinstance(key_type, LiteralType) and key_type.kind == "number":
            return format_literal(key_type)
        if isinstance(key_type, EnumLiteralType):
            return str(key_type.value) if isinstance(key_type.value, str) \
                else format_number(key_type.value)
        return NUMBER if self._is_number_like(key_type) else STRING

    def _check_object_literal(self, node: tree_sitter.Node) -> Type:
        const = self.is_const_context(node)
        properties: Dict[str, Property] = {}
        setters: Set[str] = set()
        index_types: Dict[Type, List[Type]] = {STRING: [], NUMBER: []}
        for member in named_children(node):
            kind = member.type
            if kind == "pair":
                key = member.child_by_field_name("key")
                value_type = self._literal_member_type(member.child_by_field_name("value"), const)
                name = property_name(key)
                if name is None and key.type == "computed_property_name":
                    name = self._computed_member_key(key)
                    if isinstance(name, Type):
                        index_types[NUMBER if name == NUMBER else STRING].append(value_type)
                        continue
                if name is None:
                    continue
                properties[name] = Property(name, value_type, readonly=const)
            elif kind == "shorthand_property_identifier":
                name = node_text(member)
                properties[name] = Property(
                    name, self._literal_member_type(member, const), readonly=const,
                )
            elif kind == "method_definition":
                key = member.child_by_field_name("name")
                name = property_name(key)
                if name is None and key is not None and key.type == "computed_property_name":
                    name = self._computed_member_key(key)
                if name is None or isinstance(name, Type):
                    continue
                signature = self.get_signature_from_declaration(member)
                accessor = next((c.type for c in member.children
                                 if not c.is_named and c.type in ("get", "set")), None)
                if accessor == "get":
                    # Getter-only members are readonly.
                    properties[name] = Property(
                        name, self.get_return_type_of_signature(signature),
                        readonly=name not in setters,
                    )
                elif accessor == "set":
                    setters.add(name)
                    existing = properties.get(name)
                    if existing is not None and not existing.is_method:
                        properties[name] = Property(name, existing.type)
                    else:
                        param = signature.parameters[0].type if signature.parameters else ANY
                        properties[name] = Property(name, param)
                else:
                    properties[name] = Property(
                        name, ObjectType(call_signatures=(signature,)), is_method=True,
                    )
            elif kind == "spread_element":
                spread = self.resolver.get_apparent_members(
                    self.get_type_of_expression(named_children(member)[0])
                )
                if spread is not None:
                    for prop in spread.properties:
                        properties[prop.name] = prop
        string_index = index_types[STRING] + index_types[NUMBER]
        return ObjectType(
            properties=tuple(properties.values()),
            string_index=get_union_type(
                string_index + [p.type for p in properties.values()], self.strict_null_checks,
            ) if index_types[STRING] else None,
            number_index=get_union_type(index_types[NUMBER], self.strict_null_checks)
            if index_types[NUMBER] and not index_types[STRING] else None,
        )

    def _check_array_literal(self, node: tree_sitter.Node) -> Type:
        if self.is_const_context(node):
            return TupleType(
                tuple(get_regular_type(self.get_type_of_expression(e))
                      for e in named_children(node)),
                readonly=True,
            )
        element_types = []
        for element in named_children(node):
            if element.type == "spread_element":
                spread = self.get_type_of_expression(named_children(element)[0])
                element_types.append(self.get_iterated_type(spread))
            else:
                element_types.append(self.get_type_of_expression(element))
        if not element_types:
            return ArrayType(NEVER if self.strict_null_checks else ANY)
        element = get_widened_type(
            get_union_type(element_types, self.strict_null_checks), self.strict_null_checks,
        )
        return ArrayType(element)

    def _get_jsx_element_type(self, node: tree_sitter.Node) -> Type:
        namespace = self.binder.resolve("JSX", node, SymbolFlags.NAMESPACE)
        if namespace is None:
            return ANY
        element = namespace.exports.get("Element")
        if element is None:
            return ANY
        return self.resolver.get_declared_type_of_symbol(element)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def _check_call_expression(self, node: tree_sitter.Node) -> Type:
        callee = node.child_by_field_name("function")
        if callee is None:
            return ANY
        if callee.type == "import":
            return self.resolver.get_global_type("Promise", (ANY,))
        if callee.type == "super":
            return VOID
        signature = self.resolve_call(node)
        if signature is None:
            return ANY
        return self.get_return_type_of_signature(signature)

    def _check_new_expression(self, node: tree_sitter.Node) -> Type:
        signature = self.resolve_call(node)
        if signature is None:
            return ANY
        return self.get_return_type_of_signature(signature)

    def resolve_call(self, node: tree_sitter.Node) -> Optional[Signature]:
        """Resolve the signature a call or ``new`` expression invokes."""
        if node.id in self._resolved_calls:
            return self._resolved_calls[node.id]
        signature = self._resolve_call(node, full=True)
        self._resolved_calls[node.id] = signature
        return signature

    def _resolve_call(self, node: tree_sitter.Node, full: bool) -> Optional[Signature]:
        if node.type == "new_expression":
            callee = node.child_by_field_name("constructor")
            kind = SignatureKind.CONSTRUCT
        else:
            callee = node.child_by_field_name("function")
            kind = SignatureKind.CALL
        if callee is None:
            return None
        callee_type = self.get_type_of_expression(callee)
        if callee_type == ANY:
            return None
        signatures = self.get_signatures_of_type(callee_type, kind)
        if not signatures and kind == SignatureKind.CONSTRUCT:
            signatures = self.get_signatures_of_type(callee_type, SignatureKind.CALL)
        if not signatures:
            return None
        arguments = node.child_by_field_name("arguments")
        argument_nodes = named_children(arguments) \
            if arguments is not None and arguments.type == "arguments" else []
        type_arguments = self.resolver.get_type_arguments(node.child_by_field_name("type_arguments"))
        return self._choose_signature(signatures, argument_nodes, type_arguments, full)

    def _choose_signature(self, signatures: Sequence[Signature],
                          arguments: List[tree_sitter.Node], type_arguments: tuple,
                          full: bool) -> Signature:
        count = len(arguments)
        has_spread = any(a.type == "spread_element" for a in arguments)
        candidates = [
            s for s in signatures
            if has_spread or (s.min_argument_count <= count
                              and (s.has_rest or count <= len(s.parameters)))
        ] or list(signatures)
        sensitive = [self.is_context_sensitive(a) for a in arguments]
        for candidate in candidates:
            instantiated = self._instantiate_candidate(candidate, arguments, type_arguments,
                                                       sensitive, full)
            if self._arguments_match(instantiated, arguments, sensitive):
                return instantiated
        return self._instantiate_candidate(candidates[0], arguments, type_arguments,
                                           sensitive, full)

    def _instantiate_candidate(self, signature: Signature, arguments: List[tree_sitter.Node],
                               type_arguments: tuple, sensitive: List[bool],
                               full: bool) -> Signature:
        if not signature.type_parameters:
            return signature
        if type_arguments:
            mapper: TypeMapper = {}
            for index, param in enumerate(signature.type_parameters):
                if index < len(type_arguments):
                    mapper[param] = type_arguments[index]
                else:
                    mapper[param] = param.default if param.default is not None else UNKNOWN
            return instantiate_signature(signature, mapper)
        inferrer = TypeArgumentInferrer(self, signature.type_parameters)
        for index, argument in enumerate(arguments):
            if sensitive[index] and not full:
                continue
            param_type = self.parameter_type_at(signature, index)
            if param_type is None:
                continue
            argument_type = self.get_type_of_expression(argument)
            if argument.type == "spread_element":
                argument_type = self.get_element_type(argument_type)
            inferrer.infer(argument_type, param_type)
        mapper = inferrer.get_mapper(self.get_return_type_of_signature(signature))
        return instantiate_signature(signature, mapper)

    def _arguments_match(self, signature: Signature, arguments: List[tree_sitter.Node],
                         sensitive: List[bool]) -> bool:
        for index, argument in enumerate(arguments):
            if sensitive[index] or argument.type == "spread_element":
                continue
            param_type = self.parameter_type_at(signature, index)
            if param_type is None:
                return False
            if not self.relations.is_type_assignable_to(
                    self.get_type_of_expression(argument), param_type):
                return False
        return True

    # ------------------------------------------------------------------
    # Contextual typing
    # ------------------------------------------------------------------

    def is_context_sensitive(self, node: tree_sitter.Node) -> bool:
        """A function expression with an unannotated parameter, or a literal holding one."""
        if node.type in FUNCTION_EXPRESSION_TYPES:
            if node.child_by_field_name("parameter") is not None:
                return True
            return any(
                p.child_by_field_name("type") is None for p in parameter_nodes(node)
            )
        if node.type == "parenthesized_expression":
            children = named_children(node)
            return bool(children) and self.is_context_sensitive(children[-1])
        if node.type == "object":
            for member in named_children(node):
                if member.type == "pair" and self.is_context_sensitive(
                        member.child_by_field_name("value")):
                    return True
        return False

    def _get_contextual_signature(self, node: tree_sitter.Node) -> Optional[Signature]:
        contextual = self.get_contextual_type(node)
        if contextual is None:
            return None
        signatures: List[Signature] = []
        for member in union_members(contextual):
            if not is_nullish(member):
                signatures.extend(self.get_signatures_of_type(member, SignatureKind.CALL))
        return signatures[0] if len(signatures) == 1 else None

    def get_contextual_type(self, node: tree_sitter.Node) -> Optional[Type]:
        """The type an expression's position expects, when one is known."""
        parent = node.parent
        if parent is None:
            return None
        kind = parent.type
        if kind in ("parenthesized_expression", "ternary_expression") \
                and not same_node(parent.child_by_field_name("condition"), node):
            return self.get_contextual_type(parent)
        if kind == "arguments":
            call = parent.parent
            if call is None or call.type not in ("call_expression", "new_expression"):
                return None
            index = next(i for i, a in enumerate(named_children(parent)) if a.id == node.id)
            signature = self._resolve_contextual_call(call)
            return self.parameter_type_at(signature, index) if signature is not None else None
        if kind in ("variable_declarator", "public_field_definition") \
                or kind in _PARAMETER_TYPES:
            if not same_node(parent.child_by_field_name("value"), node):
                return None
            type_node = parent.child_by_field_name("type")
            return self.resolver.get_type_from_type_node(type_node) \
                if type_node is not None else None
        if kind == "pair" and same_node(parent.child_by_field_name("value"), node):
            container = self.get_contextual_type(parent.parent)
            if container is None:
                return None
            name = property_name(parent.child_by_field_name("key"))
            members = self.resolver.get_apparent_members(container)
            prop = members.get_property(name) if members is not None and name else None
            return prop.type if prop is not None else None
        if kind == "array":
            container = self.get_contextual_type(parent)
            return self.get_element_type(container) if container is not None else None
        if kind == "return_statement" or (kind == "arrow_function"
                                          and same_node(parent.child_by_field_name("body"), node)):
            function = parent if kind == "arrow_function" else self._enclosing_function(parent)
            return self._get_declared_return_type(function) if function is not None else None
        if kind in ("assignment_expression", "augmented_assignment_expression") \
                and same_node(parent.child_by_field_name("right"), node):
            return self.get_type_of_expression(parent.child_by_field_name("left"))
        if kind in ("as_expression", "satisfies_expression"):
            children = named_children(parent)
            return self.resolver.get_type_from_type_node(children[1]) \
                if len(children) > 1 else None
        if kind == "binary_expression":
            operator = node_text(parent.child_by_field_name("operator"))
            if operator in ("||", "??"):
                return self.get_contextual_type(parent)
        return None

    def _resolve_contextual_call(self, call: tree_sitter.Node) -> Optional[Signature]:
        if call.id in self._contextual_calls:
            return self._contextual_calls[call.id]
        self._contextual_calls[call.id] = None
        signature = self._resolve_call(call, full=False)
        self._contextual_calls[call.id] = signature
        return signature

    def _enclosing_function(self, node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
        current = node.parent
        while current is not None:
            if current.type in FUNCTION_LIKE_TYPES:
                return current
            current = current.parent
        return None

    def _get_declared_return_type(self, function: tree_sitter.Node) -> Optional[Type]:
        return_type = function.child_by_field_name("return_type")
        if return_type is None:
            return None
        t = self.resolver.get_type_from_type_node(return_type)
        return self.get_awaited_type(t) if has_child_token(function, "async") else t
