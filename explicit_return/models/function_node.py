"""Function-like node data models."""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from explicit_return.models.type_node import TypeNode


class Span(BaseModel):
    """Byte range in the source text."""

    model_config = ConfigDict(frozen=True)

    start: int
    end: int


class FunctionLikeBase(BaseModel):
    """Fields shared by all four function-like variants."""

    model_config = ConfigDict(frozen=True)

    span: Span = Field(..., description="Whole node")
    start_line: int = Field(..., description="Line of the node (1-indexed)")
    type_parameters: Optional[str] = Field(None, description="Type parameter list as written")
    parameters: str = Field(..., description="Parameter list as written")
    parameters_span: Span
    body_span: Optional[Span] = None
    is_async: bool = False
    return_type: Optional[TypeNode] = None

    @property
    def display_name(self) -> Optional[str]:
        return getattr(self, "name", None)

    def with_return_type(self, return_type: TypeNode) -> "FunctionLike":
        """Return a copy of this node with only the return type set."""
        return self.model_copy(update={"return_type": return_type})


class FunctionDeclarationNode(FunctionLikeBase):
    """Named function declaration."""

    kind: Literal["function_declaration"] = "function_declaration"
    name: str
    modifiers: List[str] = []
    asterisk: bool = False


class ArrowFunctionNode(FunctionLikeBase):
    """
    Arrow function.

    ``parenthesized`` is False for the bare single-parameter form ``x => x``,
    which needs parentheses once a return type is attached.
    """

    kind: Literal["arrow_function"] = "arrow_function"
    parenthesized: bool = True


class MethodDeclarationNode(FunctionLikeBase):
    """Method of a class body or an object literal."""

    kind: Literal["method_declaration"] = "method_declaration"
    name: str
    modifiers: List[str] = []
    asterisk: bool = False
    optional: bool = False


class FunctionExpressionNode(FunctionLikeBase):
    """Function expression, possibly anonymous."""

    kind: Literal["function_expression"] = "function_expression"
    name: Optional[str] = None
    asterisk: bool = False


FunctionLike = Annotated[
    Union[
        FunctionDeclarationNode,
        ArrowFunctionNode,
        MethodDeclarationNode,
        FunctionExpressionNode,
    ],
    Field(discriminator="kind"),
]
