"""
Error taxonomy for the return-type rewriter.

Only SourceParseError escapes a rewrite call. The other errors are raised and
recovered inside the component that owns them.
"""


class RewriteError(Exception):
    """Base class for rewriter failures."""
    pass


class SourceParseError(RewriteError):
    """Raised when the source text being rewritten does not parse cleanly."""

    def __init__(self, file_name: str, line: int, column: int):
        self.file_name = file_name
        self.line = line
        self.column = column
        super().__init__(f"Syntax error in {file_name} at line {line}, column {column}")


class TypeResolutionError(RewriteError):
    """Raised when a signature or type cannot be resolved for a node."""
    pass


class TypeTextParseError(RewriteError):
    """Raised when inferred type text cannot be parsed into a type expression."""
    pass
