"""
Scopes and symbol resolution over tree-sitter syntax trees.

Symbol tables are built lazily, one per scope-introducing node, and cached
for the lifetime of the Program Context that owns the binder.
"""

import logging
from enum import IntFlag
from typing import Dict, Iterator, List, Optional

import tree_sitter

from explicit_return.utils.syntax import named_children, node_text

logger = logging.getLogger(__name__)


class SymbolFlags(IntFlag):
    NONE = 0
    VARIABLE = 1
    PARAMETER = 2
    FUNCTION = 4
    CLASS = 8
    INTERFACE = 16
    TYPE_ALIAS = 32
    ENUM = 64
    NAMESPACE = 128
    IMPORT = 256
    TYPE_PARAMETER = 512

    VALUE = VARIABLE | PARAMETER | FUNCTION | CLASS | ENUM | NAMESPACE | IMPORT
    TYPE = CLASS | INTERFACE | TYPE_ALIAS | ENUM | TYPE_PARAMETER | IMPORT | NAMESPACE


FUNCTION_LIKE_TYPES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "function_expression",
    "function",
    "generator_function",
    "arrow_function",
    "method_definition",
})

SIGNATURE_LIKE_TYPES = frozenset({
    "function_signature",
    "method_signature",
    "abstract_method_signature",
    "call_signature",
    "construct_signature",
    "function_type",
    "constructor_type",
})

CLASS_LIKE_TYPES = frozenset({"class_declaration", "abstract_class_declaration", "class"})

_BLOCK_TYPES = frozenset({"program", "statement_block", "switch_body", "class_static_block"})


class Symbol:
    """A named entity with one or more declarations."""

    def __init__(self, name: str, flags: SymbolFlags, parent: Optional["Symbol"] = None):
        self.name = name
        self.flags = flags
        self.declarations: List[tree_sitter.Node] = []
        self.parent = parent
        self.exports: Dict[str, "Symbol"] = {}
        self.is_const = False

    @property
    def qualified_name(self) -> str:
        if self.parent is not None:
            return f"{self.parent.qualified_name}.{self.name}"
        return self.name

    def declarations_of(self, *node_types: str) -> List[tree_sitter.Node]:
        return [d for d in self.declarations if d.type in node_types]

    def __repr__(self) -> str:
        return f"Symbol({self.name}, {self.flags!r})"


SymbolTable = Dict[str, Symbol]


def _add(table: SymbolTable, name: str, flags: SymbolFlags, declaration: tree_sitter.Node,
         parent: Optional[Symbol] = None) -> Symbol:
    symbol = table.get(name)
    if symbol is None:
        symbol = Symbol(name, flags, parent)
        table[name] = symbol
    else:
        symbol.flags |= flags
    symbol.declarations.append(declaration)
    return symbol


def binding_identifiers(pattern: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Yield every identifier bound by a (possibly destructuring) pattern."""
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        yield pattern
        return
    if pattern.type == "pair_pattern":
        value = pattern.child_by_field_name("value")
        if value is not None:
            yield from binding_identifiers(value)
        return
    if pattern.type in ("assignment_pattern", "object_assignment_pattern"):
        left = pattern.child_by_field_name("left")
        if left is not None:
            yield from binding_identifiers(left)
        return
    if pattern.type in ("object_pattern", "array_pattern", "rest_pattern"):
        for child in named_children(pattern):
            yield from binding_identifiers(child)


class Binder:
    """
    Resolves names to symbols.

    Resolution walks from a location up through its enclosing scopes to the
    file's top level and finally to the ambient (lib) globals.
    """

    def __init__(self, lib_root: Optional[tree_sitter.Node] = None):
        self._tables: Dict[int, SymbolTable] = {}
        self._globals: SymbolTable = {}
        if lib_root is not None:
            self._globals = self.locals_of(lib_root)

    @property
    def globals(self) -> SymbolTable:
        return self._globals

    def resolve(
        self,
        name: str,
        location: tree_sitter.Node,
        meaning: SymbolFlags = SymbolFlags.VALUE
    ) -> Optional[Symbol]:
        """
        Resolve a name visible at a location.

        Args:
            name: Identifier text
            location: Node where the name is used
            meaning: VALUE or TYPE (or a combination)

        Returns:
            The innermost matching symbol, or None
        """
        node = location
        while node is not None:
            if self._is_scope(node):
                symbol = self.locals_of(node).get(name)
                if symbol is not None and symbol.flags & meaning:
                    return symbol
            node = node.parent
        symbol = self._globals.get(name)
        if symbol is not None and symbol.flags & meaning:
            return symbol
        return None

    def locals_of(self, scope: tree_sitter.Node) -> SymbolTable:
        table = self._tables.get(scope.id)
        if table is None:
            table = {}
            self._tables[scope.id] = table
            self._bind_scope(scope, table)
        return table

    # ------------------------------------------------------------------

    def _is_scope(self, node: tree_sitter.Node) -> bool:
        return (
            node.type in _BLOCK_TYPES
            or node.type in FUNCTION_LIKE_TYPES
            or node.type in SIGNATURE_LIKE_TYPES
            or node.type in CLASS_LIKE_TYPES
            or node.type in (
                "interface_declaration", "type_alias_declaration", "for_statement",
                "for_in_statement", "catch_clause",
            )
        )

    def _bind_scope(self, scope: tree_sitter.Node, table: SymbolTable) -> None:
        kind = scope.type
        if kind in _BLOCK_TYPES:
            self._bind_statements(self._block_statements(scope), table)
            return

        self._bind_type_parameters(scope, table)

        if kind in FUNCTION_LIKE_TYPES or kind in SIGNATURE_LIKE_TYPES:
            if kind in ("function_expression", "function", "generator_function"):
                name = scope.child_by_field_name("name")
                if name is not None:
                    _add(table, node_text(name), SymbolFlags.FUNCTION, scope)
            parameter = scope.child_by_field_name("parameter")
            if parameter is not None:
                _add(table, node_text(parameter), SymbolFlags.PARAMETER, parameter)
            parameters = scope.child_by_field_name("parameters")
            if parameters is not None:
                self._bind_parameters(parameters, table)
        elif kind in CLASS_LIKE_TYPES:
            if kind == "class":
                name = scope.child_by_field_name("name")
                if name is not None:
                    _add(table, node_text(name), SymbolFlags.CLASS, scope)
        elif kind == "for_statement":
            initializer = scope.child_by_field_name("initializer")
            if initializer is not None:
                self._bind_statements([initializer], table)
        elif kind == "for_in_statement":
            left = scope.child_by_field_name("left")
            if left is not None:
                for identifier in binding_identifiers(left):
                    symbol = _add(table, node_text(identifier), SymbolFlags.VARIABLE, identifier)
                    symbol.is_const = any(
                        not c.is_named and c.type == "const" for c in scope.children
                    )
        elif kind == "catch_clause":
            parameter = scope.child_by_field_name("parameter")
            if parameter is not None:
                for identifier in binding_identifiers(parameter):
                    _add(table, node_text(identifier), SymbolFlags.VARIABLE, identifier)

    def _block_statements(self, block: tree_sitter.Node) -> List[tree_sitter.Node]:
        if block.type == "switch_body":
            statements = []
            for case in named_children(block):
                statements.extend(
                    child for child in named_children(case)
                    if child != case.child_by_field_name("value")
                )
            return statements
        return named_children(block)

    def _bind_type_parameters(self, node: tree_sitter.Node, table: SymbolTable) -> None:
        type_parameters = node.child_by_field_name("type_parameters")
        if type_parameters is None:
            return
        for param in named_children(type_parameters):
            name = param.child_by_field_name("name")
            if name is not None:
                _add(table, node_text(name), SymbolFlags.TYPE_PARAMETER, param)

    def _bind_parameters(self, parameters: tree_sitter.Node, table: SymbolTable) -> None:
        for param in named_children(parameters):
            pattern = param.child_by_field_name("pattern")
            if pattern is None or pattern.type == "this":
                continue
            for identifier in binding_identifiers(pattern):
                _add(table, node_text(identifier), SymbolFlags.PARAMETER, identifier)

    def _bind_statements(
        self,
        statements: List[tree_sitter.Node],
        table: SymbolTable,
        parent: Optional[Symbol] = None
    ) -> None:
        for statement in statements:
            self._bind_statement(statement, table, parent)

    def _bind_statement(
        self,
        statement: tree_sitter.Node,
        table: SymbolTable,
        parent: Optional[Symbol]
    ) -> None:
        kind = statement.type
        if kind in ("lexical_declaration", "variable_declaration"):
            is_const = any(not c.is_named and c.type == "const" for c in statement.children)
            for declarator in named_children(statement):
                if declarator.type != "variable_declarator":
                    continue
                name = declarator.child_by_field_name("name")
                if name is None:
                    continue
                for identifier in binding_identifiers(name):
                    decl = declarator if identifier == name else identifier
                    symbol = _add(table, node_text(identifier), SymbolFlags.VARIABLE, decl, parent)
                    symbol.is_const = is_const
        elif kind in ("function_declaration", "generator_function_declaration", "function_signature"):
            name = statement.child_by_field_name("name")
            if name is not None:
                _add(table, node_text(name), SymbolFlags.FUNCTION, statement, parent)
        elif kind in ("class_declaration", "abstract_class_declaration"):
            name = statement.child_by_field_name("name")
            if name is not None:
                _add(table, node_text(name), SymbolFlags.CLASS, statement, parent)
        elif kind == "interface_declaration":
            name = statement.child_by_field_name("name")
            if name is not None:
                _add(table, node_text(name), SymbolFlags.INTERFACE, statement, parent)
        elif kind == "type_alias_declaration":
            name = statement.child_by_field_name("name")
            if name is not None:
                _add(table, node_text(name), SymbolFlags.TYPE_ALIAS, statement, parent)
        elif kind == "enum_declaration":
            name = statement.child_by_field_name("name")
            if name is not None:
                _add(table, node_text(name), SymbolFlags.ENUM, statement, parent)
        elif kind in ("internal_module", "module"):
            self._bind_namespace(statement, table, parent)
        elif kind == "expression_statement":
            for child in named_children(statement):
                if child.type in ("internal_module", "module"):
                    self._bind_namespace(child, table, parent)
        elif kind in ("ambient_declaration", "export_statement"):
            declaration = statement.child_by_field_name("declaration")
            children = [declaration] if declaration is not None else named_children(statement)
            for child in children:
                if child.type == "statement_block":
                    # declare global { ... }
                    self._bind_statements(named_children(child), table, parent)
                else:
                    self._bind_statement(child, table, parent)
        elif kind == "import_statement":
            for clause in named_children(statement):
                if clause.type == "import_clause":
                    for identifier in self._import_identifiers(clause):
                        _add(table, node_text(identifier), SymbolFlags.IMPORT, identifier, parent)
        elif kind == "import_alias":
            # import x = require("...") / import x = NS.y
            for child in named_children(statement):
                if child.type == "identifier":
                    _add(table, node_text(child), SymbolFlags.IMPORT, child, parent)
                    break

    def _import_identifiers(self, clause: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
        for child in named_children(clause):
            if child.type == "identifier":
                yield child
            elif child.type == "namespace_import":
                for identifier in named_children(child):
                    if identifier.type == "identifier":
                        yield identifier
            elif child.type == "named_imports":
                for specifier in named_children(child):
                    alias = specifier.child_by_field_name("alias")
                    name = alias if alias is not None else specifier.child_by_field_name("name")
                    if name is not None and name.type == "identifier":
                        yield name

    def _bind_namespace(
        self,
        node: tree_sitter.Node,
        table: SymbolTable,
        parent: Optional[Symbol]
    ) -> None:
        name = node.child_by_field_name("name")
        if name is None or name.type == "string":
            return
        parts = node_text(name).split(".")
        symbol = _add(table, parts[0].strip(), SymbolFlags.NAMESPACE, node, parent)
        for part in parts[1:]:
            symbol = _add(symbol.exports, part.strip(), SymbolFlags.NAMESPACE, node, symbol)
        body = node.child_by_field_name("body")
        if body is not None:
            self._bind_statements(named_children(body), symbol.exports, symbol)
