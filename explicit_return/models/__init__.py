"""Data models for the return-type rewriter."""

from .error import ErrorRecord
from .function_node import (
    ArrowFunctionNode,
    FunctionDeclarationNode,
    FunctionExpressionNode,
    FunctionLike,
    MethodDeclarationNode,
    Span,
)
from .rewrite import RewriteResult
from .type_node import (
    ArrayTypeNode,
    GenericChild,
    GenericTypeNode,
    IntersectionTypeNode,
    KeywordTypeNode,
    LiteralTypeNode,
    PropertySignature,
    TypeLiteralNode,
    TypeNode,
    TypeReferenceNode,
    UnionTypeNode,
)

__all__ = [
    # Type expression models
    "TypeNode",
    "KeywordTypeNode",
    "LiteralTypeNode",
    "TypeReferenceNode",
    "ArrayTypeNode",
    "UnionTypeNode",
    "IntersectionTypeNode",
    "TypeLiteralNode",
    "PropertySignature",
    "GenericTypeNode",
    "GenericChild",
    # Function-like models
    "Span",
    "FunctionLike",
    "FunctionDeclarationNode",
    "ArrowFunctionNode",
    "MethodDeclarationNode",
    "FunctionExpressionNode",
    # Rewrite models
    "RewriteResult",
    # Error models
    "ErrorRecord",
]
