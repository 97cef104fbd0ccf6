"""
Type relations and type-argument inference.

Assignability is used to pick between overloads and to evaluate conditional
and filtering utility types; it is deliberately permissive where the checker
has no precise answer, since its only consumer is call resolution.
"""

import logging
from typing import Dict, Iterable, List, Optional

from explicit_return.analyzers.types import (
    ANY,
    BOOLEAN,
    NEVER,
    NON_PRIMITIVE,
    NUMBER,
    STRING,
    UNDEFINED,
    UNKNOWN,
    VOID,
    ArrayType,
    ClassConstructorType,
    EnumLiteralType,
    EnumType,
    IntersectionType,
    IntrinsicType,
    LiteralType,
    NamedTypeInfo,
    ObjectType,
    SignatureKind,
    TupleType,
    Type,
    TypeMapper,
    TypeParameter,
    TypeReference,
    UnionType,
    get_union_type,
    is_nullish,
    substitute,
    union_members,
    widen_literal_type,
)

logger = logging.getLogger(__name__)

MAX_RELATION_DEPTH = 4


class TypeRelations:
    """Assignability between checker types."""

    def __init__(self, checker):
        self.checker = checker

    @property
    def resolver(self):
        return self.checker.resolver

    def get_base_reference(self, source: Type, info: NamedTypeInfo,
                           depth: int = 0) -> Optional[TypeReference]:
        """
        Find ``info`` among the base types of ``source``.

        Args:
            source: An array or named type reference
            info: The interface or class to look for

        Returns:
            ``source`` viewed as an instance of ``info``, or None
        """
        if depth > MAX_RELATION_DEPTH:
            return None
        if isinstance(source, TypeReference) and source.target is info:
            return source
        if isinstance(source, (ArrayType, TupleType)):
            array_info = self.resolver.get_global_info("Array")
            if array_info is None:
                return None
            element = source.element if isinstance(source, ArrayType) \
                else get_union_type(source.elements)
            source = TypeReference(array_info, (element,))
            if array_info is info:
                return source
        if not isinstance(source, TypeReference):
            return None
        mapper = dict(zip(source.target.type_parameters, source.type_arguments))
        for base in self.resolver.get_base_types(source.target):
            found = self.get_base_reference(substitute(base, mapper), info, depth + 1)
            if found is not None:
                return found
        return None

    def is_type_assignable_to(self, source: Type, target: Type, depth: int = 0) -> bool:
        if source == target:
            return True
        if target in (ANY, UNKNOWN) or source in (ANY, NEVER):
            return True
        if depth > MAX_RELATION_DEPTH:
            return True
        strict = self.checker.strict_null_checks
        if is_nullish(source):
            if not strict:
                return True
            return any(m == source or (source == UNDEFINED and m == VOID)
                       for m in union_members(target))

        if isinstance(source, UnionType):
            return all(self.is_type_assignable_to(m, target, depth) for m in source.types)
        if isinstance(target, UnionType):
            return any(self.is_type_assignable_to(source, m, depth) for m in target.types)
        if isinstance(target, IntersectionType):
            return all(self.is_type_assignable_to(source, m, depth) for m in target.types)
        if isinstance(source, IntersectionType):
            return any(self.is_type_assignable_to(m, target, depth) for m in source.types)

        if isinstance(source, TypeParameter):
            if isinstance(target, TypeParameter):
                return False
            constraint = source.constraint if source.constraint is not None else UNKNOWN
            return constraint != UNKNOWN and self.is_type_assignable_to(constraint, target, depth)
        if isinstance(target, TypeParameter):
            return False

        if isinstance(source, LiteralType):
            if isinstance(target, LiteralType):
                return source.kind == target.kind and source.value == target.value
            if target == source.base:
                return True
        if isinstance(source, EnumLiteralType):
            if isinstance(target, EnumType):
                return target.enum is source.enum
            if isinstance(target, EnumLiteralType):
                return target.enum is source.enum and target.member == source.member
            return target == (STRING if isinstance(source.value, str) else NUMBER)
        if isinstance(source, EnumType):
            return target == NUMBER

        if isinstance(target, IntrinsicType):
            if target == VOID:
                return source == UNDEFINED
            if target == NON_PRIMITIVE:
                return not isinstance(source, (IntrinsicType, LiteralType, EnumLiteralType))
            if target == BOOLEAN:
                return isinstance(source, LiteralType) and source.kind == "boolean"
            return False
        if isinstance(target, LiteralType):
            return False
        if isinstance(target, (EnumType, EnumLiteralType)):
            return False

        if isinstance(target, ArrayType):
            if isinstance(source, ArrayType):
                return self.is_type_assignable_to(source.element, target.element, depth + 1)
            if isinstance(source, TupleType):
                return all(self.is_type_assignable_to(e, target.element, depth + 1)
                           for e in source.elements)
            reference = self._as_reference(source, "Array")
            if reference is not None:
                return self.is_type_assignable_to(reference.type_arguments[0], target.element,
                                                  depth + 1)
            return False
        if isinstance(target, TupleType):
            if not isinstance(source, TupleType) or len(source.elements) != len(target.elements):
                return False
            return all(self.is_type_assignable_to(s, t, depth + 1)
                       for s, t in zip(source.elements, target.elements))

        if isinstance(target, TypeReference):
            base = self.get_base_reference(source, target.target)
            if base is not None:
                return all(self.is_type_assignable_to(s, t, depth + 1)
                           for s, t in zip(base.type_arguments, target.type_arguments))
            if isinstance(source, TypeReference) and target.target.kind == "class":
                return False

        return self._is_structurally_assignable(source, target, depth)

    def _as_reference(self, source: Type, name: str) -> Optional[TypeReference]:
        info = self.resolver.get_global_info(name)
        return self.get_base_reference(source, info) if info is not None else None

    def _is_structurally_assignable(self, source: Type, target: Type, depth: int) -> bool:
        target_members = self.resolver.get_apparent_members(target)
        if target_members is None:
            return False
        source_members = self.resolver.get_apparent_members(source)
        if source_members is None:
            return False
        if target_members.call_signatures and not source_members.call_signatures:
            return False
        if target_members.construct_signatures and not source_members.construct_signatures \
                and not isinstance(source, ClassConstructorType):
            return False
        if target_members.string_index is not None and source_members.string_index is None:
            # Only anonymous object types satisfy an index signature implicitly.
            if not isinstance(source, ObjectType):
                return False
            if not all(self.is_type_assignable_to(p.type, target_members.string_index, depth + 1)
                       for p in source_members.properties):
                return False
        for prop in target_members.properties:
            if prop.optional:
                continue
            source_prop = source_members.get_property(prop.name)
            if source_prop is None:
                return False
            if not self.is_type_assignable_to(source_prop.type, prop.type, depth + 1):
                return False
        return True


class TypeArgumentInferrer:
    """
    Collects inference candidates for a set of type parameters by matching
    argument types against parameter types.
    """

    def __init__(self, checker, type_parameters: Iterable[TypeParameter]):
        self.checker = checker
        self.type_parameters = list(type_parameters)
        self.candidates: Dict[TypeParameter, List[Type]] = {tp: [] for tp in self.type_parameters}
        self.top_level: Dict[TypeParameter, bool] = {tp: True for tp in self.type_parameters}

    @property
    def relations(self) -> TypeRelations:
        return self.checker.relations

    def infer(self, source: Type, target: Type, depth: int = 0) -> None:
        """Record inferences for type parameters that occur in ``target``."""
        if depth > 2 * MAX_RELATION_DEPTH:
            return
        if isinstance(target, TypeParameter):
            if target in self.candidates:
                if source not in self.candidates[target]:
                    self.candidates[target].append(source)
                if depth > 0:
                    self.top_level[target] = False
            return
        if isinstance(target, UnionType):
            self._infer_to_union(source, target, depth)
            return
        if isinstance(target, IntersectionType):
            for member in target.types:
                self.infer(source, member, depth)
            return
        if isinstance(source, UnionType):
            for member in source.types:
                self.infer(member, target, depth)
            return

        if isinstance(target, ArrayType):
            if isinstance(source, ArrayType):
                self.infer(source.element, target.element, depth + 1)
            elif isinstance(source, TupleType):
                for element in source.elements:
                    self.infer(element, target.element, depth + 1)
            return
        if isinstance(target, TupleType):
            if isinstance(source, TupleType):
                for s, t in zip(source.elements, target.elements):
                    self.infer(s, t, depth + 1)
            return
        if isinstance(target, TypeReference):
            base = self.relations.get_base_reference(source, target.target)
            if base is not None:
                for s, t in zip(base.type_arguments, target.type_arguments):
                    self.infer(s, t, depth + 1)
            return
        if isinstance(target, ObjectType):
            self._infer_from_object(source, target, depth)

    def _infer_to_union(self, source: Type, target: UnionType, depth: int) -> None:
        naked = [m for m in target.types if isinstance(m, TypeParameter) and m in self.candidates]
        others = [m for m in target.types if m not in naked]
        unmatched = []
        for member in union_members(source):
            matched = False
            for other in others:
                if self._closely_matches(member, other):
                    self.infer(member, other, depth)
                    matched = True
            if not matched:
                unmatched.append(member)
        if len(naked) == 1 and unmatched:
            self.infer(get_union_type(unmatched), naked[0], depth)
        elif not naked:
            for member in unmatched:
                for other in others:
                    self.infer(member, other, depth)

    def _closely_matches(self, source: Type, target: Type) -> bool:
        if is_nullish(source) or is_nullish(target):
            return source == target
        if isinstance(target, TypeReference):
            return self.relations.get_base_reference(source, target.target) is not None
        if isinstance(target, (ArrayType, TupleType)):
            return isinstance(source, (ArrayType, TupleType))
        if isinstance(target, ObjectType) and target.call_signatures:
            return isinstance(source, ObjectType) and bool(source.call_signatures)
        return False

    def _infer_from_object(self, source: Type, target: ObjectType, depth: int) -> None:
        if target.call_signatures:
            source_signatures = self.checker.get_signatures_of_type(source, SignatureKind.CALL)
            if source_signatures:
                source_signature = source_signatures[-1]
                target_signature = target.call_signatures[-1]
                for s, t in zip(source_signature.parameters, target_signature.parameters):
                    self.infer(s.type, t.type, depth + 1)
                if target_signature.return_type is not None:
                    self.infer(
                        self.checker.get_return_type_of_signature(source_signature),
                        target_signature.return_type,
                        depth + 1,
                    )
            return
        members = self.relations.resolver.get_apparent_members(source)
        if members is None:
            return
        for prop in target.properties:
            source_prop = members.get_property(prop.name)
            if source_prop is not None:
                self.infer(source_prop.type, prop.type, depth + 1)
        if target.string_index is not None:
            if members.string_index is not None:
                self.infer(members.string_index, target.string_index, depth + 1)
            elif isinstance(source, ObjectType) and members.properties:
                # Anonymous object types carry an implicit index signature.
                self.infer(
                    get_union_type([p.type for p in members.properties],
                                   self.checker.strict_null_checks),
                    target.string_index,
                    depth + 1,
                )

    def get_mapper(self, return_type: Optional[Type] = None,
                   fallback: Type = UNKNOWN) -> TypeMapper:
        """
        Fix the inferred type arguments.

        Literal candidates are widened unless the type parameter occurs at the
        top level of the return type, so ``identity(1)`` is ``1`` while
        ``Promise.resolve(1)`` is ``Promise<number>``.
        """
        mapper: TypeMapper = {}
        for tp in self.type_parameters:
            candidates = self.candidates[tp]
            if not candidates:
                if tp.default is not None:
                    mapper[tp] = substitute(tp.default, mapper)
                else:
                    mapper[tp] = fallback
                continue
            keep_literals = return_type is not None and self._is_top_level(tp, return_type) \
                and self.top_level[tp]
            if tp.constraint is not None and _is_primitive_constraint(tp.constraint):
                keep_literals = True
            inferred = get_union_type(candidates, self.checker.strict_null_checks)
            if not keep_literals:
                inferred = widen_literal_type(inferred, self.checker.strict_null_checks)
            mapper[tp] = inferred
        return mapper

    def _is_top_level(self, tp: TypeParameter, t: Type) -> bool:
        if t is tp:
            return True
        if isinstance(t, (UnionType, IntersectionType)):
            return any(self._is_top_level(tp, m) for m in t.types)
        return False


def _is_primitive_constraint(t: Type) -> bool:
    return any(
        m in (STRING, NUMBER, BOOLEAN) or isinstance(m, (LiteralType, EnumLiteralType))
        for m in union_members(t)
    )
