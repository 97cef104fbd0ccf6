"""
Control-flow narrowing of identifier references.

A reference to a variable or parameter is narrowed by the conditions that
guard it: the test of an enclosing ``if``, ``while`` or ``?:``, the left
operand of ``&&`` and ``||``, a ``case`` label, and earlier ``if``
statements of the same block that leave the block. Walking back from the
reference stops at its declaration, at an assignment to it, and at the
enclosing function unless the binding is const.
"""

import logging
from typing import List, Optional, Tuple

import tree_sitter

from explicit_return.analyzers.binder import CLASS_LIKE_TYPES, FUNCTION_LIKE_TYPES, Symbol
from explicit_return.analyzers.control_flow import (
    can_complete_normally,
    iter_function_body,
    statements_complete_normally,
)
from explicit_return.analyzers.types import (
    ANY,
    BIGINT,
    BOOLEAN,
    FALSE,
    NEVER,
    NON_PRIMITIVE,
    NULL,
    NUMBER,
    STRING,
    SYMBOL,
    TRUE,
    UNDEFINED,
    UNKNOWN,
    VOID,
    ArrayType,
    ClassConstructorType,
    EnumLiteralType,
    EnumObjectType,
    EnumType,
    IntrinsicType,
    LiteralType,
    ObjectType,
    SignatureKind,
    TupleType,
    Type,
    TypeParameter,
    TypeReference,
    UnionType,
    get_regular_type,
    get_union_type,
    is_nullish,
    is_unit_type,
    substitute,
    union_members,
)
from explicit_return.utils.syntax import (
    contains_node,
    decode_string_literal,
    named_children,
    node_text,
    same_node,
)

logger = logging.getLogger(__name__)

_BLOCK_TYPES = frozenset({"program", "statement_block", "switch_case", "switch_default"})

_LOOP_TYPES = frozenset({"while_statement", "do_statement", "for_statement", "for_in_statement"})

_ASSIGNMENT_TYPES = frozenset({"assignment_expression", "augmented_assignment_expression"})

_TYPEOF_RESULTS = {
    "string": STRING,
    "number": NUMBER,
    "bigint": BIGINT,
    "boolean": BOOLEAN,
    "symbol": SYMBOL,
    "undefined": UNDEFINED,
}

_INTRINSIC_TYPEOF = {
    STRING: "string",
    NUMBER: "number",
    BIGINT: "bigint",
    BOOLEAN: "boolean",
    SYMBOL: "symbol",
    UNDEFINED: "undefined",
    VOID: "undefined",
    NULL: "object",
}

# (condition, outcome) or (case clause, True)
Guard = Tuple[tree_sitter.Node, bool]


def skip_parentheses(node: tree_sitter.Node) -> tree_sitter.Node:
    while node.type == "parenthesized_expression":
        children = named_children(node)
        if len(children) != 1:
            break
        node = children[0]
    return node


class ReferenceNarrower:
    """Narrows the declared type of one symbol at its references."""

    def __init__(self, checker, symbol: Symbol):
        self.checker = checker
        self.symbol = symbol

    @property
    def strict_null_checks(self) -> bool:
        return self.checker.strict_null_checks

    def _union(self, types: List[Type]) -> Type:
        return get_union_type(types, self.strict_null_checks)

    # ------------------------------------------------------------------
    # Walking the guards of a reference
    # ------------------------------------------------------------------

    def get_narrowed_type(self, reference: tree_sitter.Node, declared: Type) -> Type:
        """
        Type of ``reference`` after the guards that dominate it.

        Args:
            reference: Identifier node reading the symbol
            declared: Declared type of the symbol

        Returns:
            The narrowed type, ``declared`` when nothing applies
        """
        guards: List[Guard] = []
        base = declared
        child = reference
        parent = reference.parent
        while parent is not None:
            kind = parent.type
            if kind in FUNCTION_LIKE_TYPES or kind in CLASS_LIKE_TYPES:
                if not self.symbol.is_const:
                    break
            elif kind == "if_statement":
                condition = parent.child_by_field_name("condition")
                if same_node(parent.child_by_field_name("consequence"), child):
                    guards.append((condition, True))
                elif same_node(parent.child_by_field_name("alternative"), child):
                    guards.append((condition, False))
            elif kind == "ternary_expression":
                condition = parent.child_by_field_name("condition")
                if same_node(parent.child_by_field_name("consequence"), child):
                    guards.append((condition, True))
                elif same_node(parent.child_by_field_name("alternative"), child):
                    guards.append((condition, False))
            elif kind == "binary_expression":
                operator = node_text(parent.child_by_field_name("operator"))
                if operator in ("&&", "||") \
                        and same_node(parent.child_by_field_name("right"), child):
                    guards.append((parent.child_by_field_name("left"), operator == "&&"))
            elif kind in _LOOP_TYPES:
                if self._find_assignment(parent) is not None:
                    break
                if kind == "while_statement" \
                        and same_node(parent.child_by_field_name("body"), child):
                    guards.append((parent.child_by_field_name("condition"), True))
            elif kind in _BLOCK_TYPES:
                if kind == "switch_case" \
                        and not same_node(parent.child_by_field_name("value"), child):
                    guards.append((parent, True))
                stop, base = self._scan_preceding_statements(parent, child, declared, guards)
                if stop:
                    break
            child = parent
            parent = parent.parent

        t = base
        for node, outcome in reversed(guards):
            if node is None:
                continue
            if node.type == "switch_case":
                t = self._narrow_by_case(t, node)
            else:
                t = self.narrow(t, node, outcome)
        return t

    def _scan_preceding_statements(self, block: tree_sitter.Node, child: tree_sitter.Node,
                                   declared: Type, guards: List[Guard]
                                   ) -> Tuple[bool, Type]:
        label = block.child_by_field_name("value") if block.type == "switch_case" else None
        preceding = [
            s for s in named_children(block)
            if s.end_byte <= child.start_byte and not same_node(s, label)
        ]
        for statement in reversed(preceding):
            if any(contains_node(statement, d) for d in self.symbol.declarations):
                return True, self._get_initial_type(statement, declared)
            assignment = self._find_assignment(statement)
            if assignment is not None:
                direct = statement.type == "expression_statement" \
                    and same_node(named_children(statement)[0], assignment) \
                    and assignment.type == "assignment_expression"
                if direct:
                    assigned = self.checker.get_type_of_expression(
                        assignment.child_by_field_name("right")
                    )
                    return True, self._get_assignment_reduced_type(declared, assigned)
                return True, declared
            if statement.type == "if_statement":
                outcome = self._get_fallthrough_outcome(statement)
                if outcome is not None:
                    guards.append((statement.child_by_field_name("condition"), outcome))
        return False, declared

    @staticmethod
    def _get_fallthrough_outcome(statement: tree_sitter.Node) -> Optional[bool]:
        """Outcome of the condition under which an ``if`` statement is left normally."""
        consequence = statement.child_by_field_name("consequence")
        alternative = statement.child_by_field_name("alternative")
        consequence_completes = can_complete_normally(consequence)
        if alternative is None:
            return None if consequence_completes else False
        alternative_completes = can_complete_normally(alternative)
        if consequence_completes == alternative_completes:
            return None
        return consequence_completes

    def _get_initial_type(self, statement: tree_sitter.Node, declared: Type) -> Type:
        for declaration in self.symbol.declarations:
            if declaration.type != "variable_declarator" \
                    or not contains_node(statement, declaration):
                continue
            value = declaration.child_by_field_name("value")
            if value is None or declaration.child_by_field_name("type") is None:
                return declared
            return self._get_assignment_reduced_type(
                declared, self.checker.get_type_of_expression(value)
            )
        return declared

    def _get_assignment_reduced_type(self, declared: Type, assigned: Type) -> Type:
        if not isinstance(declared, UnionType):
            return declared
        relations = self.checker.relations
        sources = union_members(get_regular_type(assigned))
        kept = [
            m for m in declared.types
            if any(relations.is_type_assignable_to(s, m) for s in sources)
        ]
        return self._union(kept) if kept else declared

    def _find_assignment(self, node: tree_sitter.Node) -> Optional[tree_sitter.Node]:
        for current in iter_function_body(node):
            if current.type in _ASSIGNMENT_TYPES:
                target = current.child_by_field_name("left")
            elif current.type == "update_expression":
                target = current.child_by_field_name("argument")
            else:
                continue
            if target is not None and self.is_reference(target):
                return current
        return None

    def is_reference(self, node: tree_sitter.Node) -> bool:
        node = skip_parentheses(node)
        if node.type != "identifier" or node_text(node) != self.symbol.name:
            return False
        return self.checker.binder.resolve(self.symbol.name, node) is self.symbol

    # ------------------------------------------------------------------
    # Applying conditions
    # ------------------------------------------------------------------

    def narrow(self, t: Type, condition: tree_sitter.Node, assume_true: bool) -> Type:
        """Narrow ``t`` by ``condition`` evaluating to ``assume_true``."""
        condition = skip_parentheses(condition)
        if self.is_reference(condition):
            return self._narrow_by_truthiness(t, assume_true)
        kind = condition.type
        if kind == "unary_expression":
            operator = node_text(condition.child_by_field_name("operator"))
            if operator == "!":
                return self.narrow(t, condition.child_by_field_name("argument"), not assume_true)
            return t
        if kind == "binary_expression":
            return self._narrow_by_binary_expression(t, condition, assume_true)
        if kind == "call_expression":
            return self._narrow_by_call(t, condition, assume_true)
        return t

    def _narrow_by_binary_expression(self, t: Type, condition: tree_sitter.Node,
                                     assume_true: bool) -> Type:
        operator = node_text(condition.child_by_field_name("operator"))
        left = condition.child_by_field_name("left")
        right = condition.child_by_field_name("right")
        if operator == "&&":
            if assume_true:
                return self.narrow(self.narrow(t, left, True), right, True)
            return self._union([
                self.narrow(t, left, False),
                self.narrow(self.narrow(t, left, True), right, False),
            ])
        if operator == "||":
            if assume_true:
                return self._union([
                    self.narrow(t, left, True),
                    self.narrow(self.narrow(t, left, False), right, True),
                ])
            return self.narrow(self.narrow(t, left, False), right, False)
        if operator in ("===", "==", "!==", "!="):
            equal = assume_true if operator in ("===", "==") else not assume_true
            loose = operator in ("==", "!=")
            return self._narrow_by_equality(t, left, right, equal, loose)
        if operator == "instanceof" and self.is_reference(left):
            return self._narrow_by_instanceof(t, right, assume_true)
        if operator == "in" and self.is_reference(right):
            key = skip_parentheses(left)
            if key.type == "string":
                return self._narrow_by_property_presence(t, decode_string_literal(key),
                                                         assume_true)
        return t

    def _narrow_by_equality(self, t: Type, left: tree_sitter.Node, right: tree_sitter.Node,
                            equal: bool, loose: bool) -> Type:
        for subject, other in ((left, right), (right, left)):
            subject = skip_parentheses(subject)
            other = skip_parentheses(other)
            if subject.type == "unary_expression" \
                    and node_text(subject.child_by_field_name("operator")) == "typeof" \
                    and self.is_reference(subject.child_by_field_name("argument")):
                if other.type != "string":
                    return t
                return self._narrow_by_typeof(t, decode_string_literal(other), equal)
            if self.is_reference(subject):
                value = self.checker.get_type_of_expression(other)
                return self.narrow_to_value(t, value, equal, loose)
            if subject.type == "member_expression" \
                    and self.is_reference(subject.child_by_field_name("object")):
                value = self.checker.get_type_of_expression(other)
                name = node_text(subject.child_by_field_name("property"))
                return self._narrow_by_discriminant(t, name, value, equal, loose)
        return t

    def narrow_to_value(self, t: Type, value: Type, equal: bool, loose: bool = False) -> Type:
        """Narrow ``t`` by comparison with a value of unit type ``value``."""
        value = get_regular_type(value)
        if not is_unit_type(value):
            return t
        if is_nullish(value):
            if not self.strict_null_checks:
                return t
            values = [NULL, UNDEFINED] if loose else [value]
        else:
            values = [value]
        if t == ANY:
            return t
        if t == UNKNOWN:
            return self._union(values) if equal else t
        kept: List[Type] = []
        for member in union_members(t):
            if equal:
                for v in values:
                    if member == v or (isinstance(v, LiteralType) and member == v.base) \
                            or (member == VOID and v == UNDEFINED) \
                            or (isinstance(member, EnumType) and isinstance(v, EnumLiteralType)
                                and v.enum is member.enum):
                        kept.append(v)
                if isinstance(member, TypeParameter):
                    kept.append(member)
            elif member == BOOLEAN and values[0] in (TRUE, FALSE):
                kept.append(FALSE if values[0] == TRUE else TRUE)
            elif member not in values:
                kept.append(member)
        return self._union(kept)

    def _narrow_by_discriminant(self, t: Type, name: str, value: Type, equal: bool,
                                loose: bool) -> Type:
        if not isinstance(t, UnionType):
            return t
        kept = []
        for member in t.types:
            property_type = get_regular_type(self.checker.get_type_of_property(member, name))
            if self.narrow_to_value(property_type, value, equal, loose) != NEVER:
                kept.append(member)
        return self._union(kept)

    def _narrow_by_typeof(self, t: Type, tag: str, equal: bool) -> Type:
        if t in (ANY, UNKNOWN):
            if not equal:
                return t
            if tag in _TYPEOF_RESULTS:
                return _TYPEOF_RESULTS[tag]
            if t == UNKNOWN and tag == "object":
                return self._union([NON_PRIMITIVE, NULL])
            if t == UNKNOWN and tag == "function":
                return self.checker.resolver.get_global_type("Function")
            return t
        kept = []
        for member in union_members(t):
            member_tag = self.get_typeof_tag(member)
            if member_tag is None or (member_tag == tag) == equal:
                kept.append(member)
        return self._union(kept)

    def get_typeof_tag(self, t: Type) -> Optional[str]:
        """The ``typeof`` result of values of type ``t``, or None when it varies."""
        if isinstance(t, IntrinsicType):
            return _INTRINSIC_TYPEOF.get(t)
        if isinstance(t, LiteralType):
            return t.kind
        if isinstance(t, EnumLiteralType):
            return "string" if isinstance(t.value, str) else "number"
        if isinstance(t, EnumType):
            kinds = {isinstance(v, str) for v in t.enum.members.values()}
            if len(kinds) != 1:
                return None
            return "string" if kinds.pop() else "number"
        if isinstance(t, ClassConstructorType):
            return "function"
        if isinstance(t, EnumObjectType):
            return "object"
        if isinstance(t, ObjectType):
            return "function" if t.call_signatures or t.construct_signatures else "object"
        if isinstance(t, (ArrayType, TupleType)):
            return "object"
        if isinstance(t, TypeReference):
            members = self.checker.resolver.get_apparent_members(t)
            if members is not None and (members.call_signatures or members.construct_signatures):
                return "function"
            return "object"
        return None

    def _narrow_by_instanceof(self, t: Type, constructor: tree_sitter.Node,
                              assume_true: bool) -> Type:
        instance = self._get_instance_type(self.checker.get_type_of_expression(constructor))
        if instance is None:
            return t
        if t in (ANY, UNKNOWN):
            return instance if assume_true else t
        relations = self.checker.relations
        members = union_members(t)
        if assume_true:
            kept = [
                m for m in members
                if not self._is_primitive(m) and relations.is_type_assignable_to(m, instance)
            ]
            if kept:
                return self._union(kept)
            if any(relations.is_type_assignable_to(instance, m) for m in members):
                return instance
            return NEVER
        return self._union([
            m for m in members
            if self._is_primitive(m) or not relations.is_type_assignable_to(m, instance)
        ])

    def _get_instance_type(self, constructor: Type) -> Optional[Type]:
        if isinstance(constructor, ClassConstructorType):
            info = constructor.target
            return TypeReference(info, tuple(ANY for _ in info.type_parameters))
        signatures = self.checker.get_signatures_of_type(constructor, SignatureKind.CONSTRUCT)
        if not signatures:
            return None
        signature = signatures[0]
        instance = self.checker.get_return_type_of_signature(signature)
        return substitute(instance, {tp: ANY for tp in signature.type_parameters})

    @staticmethod
    def _is_primitive(t: Type) -> bool:
        return isinstance(t, (LiteralType, EnumLiteralType, EnumType)) \
            or (isinstance(t, IntrinsicType) and t not in (ANY, UNKNOWN, NON_PRIMITIVE))

    def _narrow_by_property_presence(self, t: Type, name: str, assume_true: bool) -> Type:
        if not isinstance(t, UnionType):
            return t
        kept = []
        for member in t.types:
            members = self.checker.resolver.get_apparent_members(member)
            prop = members.get_property(name) if members is not None else None
            if assume_true:
                if prop is not None or members is None:
                    kept.append(member)
            elif prop is None or prop.optional:
                kept.append(member)
        return self._union(kept)

    def _narrow_by_call(self, t: Type, call: tree_sitter.Node, assume_true: bool) -> Type:
        callee = call.child_by_field_name("function")
        arguments = call.child_by_field_name("arguments")
        if callee is None or arguments is None or arguments.type != "arguments":
            return t
        values = named_children(arguments)
        if "".join(node_text(callee).split()) != "Array.isArray" \
                or len(values) != 1 or not self.is_reference(values[0]):
            return t
        if t in (ANY, UNKNOWN):
            return ArrayType(ANY) if assume_true else t
        return self._union([m for m in union_members(t) if self._is_array(m) == assume_true])

    def _is_array(self, t: Type) -> bool:
        if isinstance(t, (ArrayType, TupleType)):
            return True
        if not isinstance(t, TypeReference):
            return False
        info = self.checker.resolver.get_global_info("Array")
        return info is not None and self.checker.relations.get_base_reference(t, info) is not None

    def _narrow_by_truthiness(self, t: Type, assume_true: bool) -> Type:
        if t in (ANY, UNKNOWN):
            return t
        kept = []
        for member in union_members(t):
            narrowed = self._truthy_part(member) if assume_true else self._falsy_part(member)
            if narrowed is not None:
                kept.append(narrowed)
        return self._union(kept)

    @staticmethod
    def _truthy_part(t: Type) -> Optional[Type]:
        if is_nullish(t) or t == VOID:
            return None
        if t == BOOLEAN:
            return TRUE
        if isinstance(t, (LiteralType, EnumLiteralType)) and not t.value:
            return None
        return t

    def _falsy_part(self, t: Type) -> Optional[Type]:
        if t == BOOLEAN:
            return FALSE
        if isinstance(t, (LiteralType, EnumLiteralType)):
            return None if t.value else t
        if t in (STRING, NUMBER, BIGINT, NULL, UNDEFINED, VOID) \
                or isinstance(t, (EnumType, TypeParameter)):
            return t
        # Object types are never falsy once null and undefined are tracked separately.
        return None if self.strict_null_checks else t

    def _narrow_by_case(self, t: Type, clause: tree_sitter.Node) -> Type:
        statement = clause.parent.parent if clause.parent is not None else None
        if statement is None or statement.type != "switch_statement":
            return t
        subject = statement.child_by_field_name("value")
        if subject is None:
            return t
        labels = [clause]
        previous = clause.prev_named_sibling
        while previous is not None and previous.type == "switch_case" \
                and _falls_through(previous):
            labels.append(previous)
            previous = previous.prev_named_sibling
        narrowed = []
        for label in labels:
            value = label.child_by_field_name("value")
            if value is None:
                return t
            narrowed.append(self._narrow_by_equality(t, subject, value, True, False))
        return self._union(narrowed)


def _falls_through(clause: tree_sitter.Node) -> bool:
    label = clause.child_by_field_name("value")
    statements = [s for s in named_children(clause) if not same_node(s, label)]
    if not statements:
        return True
    if statements[-1].type == "break_statement":
        return False
    return statements_complete_normally(statements)
