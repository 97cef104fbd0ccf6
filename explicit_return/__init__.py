"""
Return-type annotation rewriter for TypeScript.

Infers the return type of every function-like construct that lacks one and
inserts it as an explicit annotation.
"""

from explicit_return.errors import (
    RewriteError,
    SourceParseError,
    TypeResolutionError,
    TypeTextParseError,
)
from explicit_return.services.annotator import annotate, rewrite

__version__ = "1.0.0"

__all__ = [
    "rewrite",
    "annotate",
    "RewriteError",
    "SourceParseError",
    "TypeResolutionError",
    "TypeTextParseError",
]
