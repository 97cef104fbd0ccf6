"""Parsing, binding and type checking of TypeScript sources."""

from explicit_return.analyzers.checker import TypeChecker
from explicit_return.analyzers.program import ProgramContext, create_parser, get_language

__all__ = ["ProgramContext", "TypeChecker", "create_parser", "get_language"]
