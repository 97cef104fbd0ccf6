"""Rewrite result data models."""

from typing import List

from pydantic import BaseModel, Field

from explicit_return.models.function_node import FunctionLike


class RewriteResult(BaseModel):
    """Source text together with the function-like nodes that received a return type."""

    source_text: str = Field(..., description="Text the tree was parsed from")
    dialect: str = "typescript"
    updated_nodes: List[FunctionLike] = Field(
        default_factory=list,
        description="Updated nodes in source order",
    )
    skipped_count: int = Field(0, description="Qualifying nodes left unannotated")

    @property
    def annotation_count(self) -> int:
        return len(self.updated_nodes)
