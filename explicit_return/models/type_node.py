"""Type expression data models."""

import json
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class TypeNodeBase(BaseModel):
    """Detached type expression; holds no reference into any syntax tree."""

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        raise NotImplementedError


class KeywordTypeNode(TypeNodeBase):
    """Primitive keyword type such as ``number`` or ``void``."""

    kind: Literal["keyword"] = "keyword"
    keyword: str

    def render(self) -> str:
        return self.keyword


class LiteralTypeNode(TypeNodeBase):
    """Numeric, string or boolean literal type."""

    kind: Literal["literal"] = "literal"
    literal_kind: Literal["number", "string", "boolean"]
    value: str = Field(..., description="Textual value; string literals are unquoted")

    def render(self) -> str:
        if self.literal_kind == "string":
            return json.dumps(self.value, ensure_ascii=False)
        return self.value


class TypeReferenceNode(TypeNodeBase):
    """Named type reference with optional generic arguments."""

    kind: Literal["reference"] = "reference"
    type_name: str
    type_arguments: List["TypeNode"] = []

    def render(self) -> str:
        if not self.type_arguments:
            return self.type_name
        return f"{self.type_name}<" + ", ".join(a.render() for a in self.type_arguments) + ">"


class ArrayTypeNode(TypeNodeBase):
    kind: Literal["array"] = "array"
    element_type: "TypeNode"

    def render(self) -> str:
        element = self.element_type.render()
        if isinstance(self.element_type, (UnionTypeNode, IntersectionTypeNode)):
            element = f"({element})"
        return f"{element}[]"


class UnionTypeNode(TypeNodeBase):
    kind: Literal["union"] = "union"
    types: List["TypeNode"]

    def render(self) -> str:
        return " | ".join(t.render() for t in self.types)


class IntersectionTypeNode(TypeNodeBase):
    kind: Literal["intersection"] = "intersection"
    types: List["TypeNode"]

    def render(self) -> str:
        return " & ".join(
            f"({t.render()})" if isinstance(t, UnionTypeNode) else t.render()
            for t in self.types
        )


class PropertySignature(TypeNodeBase):
    """Property member of a type literal."""

    kind: Literal["property_signature"] = "property_signature"
    name: str = Field(..., description="Property name as written, quotes included")
    modifiers: List[str] = []
    optional: bool = False
    type: Optional["TypeNode"] = None

    def render(self) -> str:
        prefix = "".join(f"{m} " for m in self.modifiers)
        optional = "?" if self.optional else ""
        if self.type is None:
            return f"{prefix}{self.name}{optional}"
        return f"{prefix}{self.name}{optional}: {self.type.render()}"


class GenericChild(BaseModel):
    """Child slot of a structurally cloned node."""

    model_config = ConfigDict(frozen=True)

    node: "TypeNode"
    space_before: bool = False


class GenericTypeNode(TypeNodeBase):
    """
    Structural copy of any type syntax without a dedicated model.

    Leaves keep their token text; inner nodes keep their children and
    whether whitespace separated each child from the previous one.
    """

    kind: Literal["generic"] = "generic"
    node_type: str
    text: Optional[str] = None
    children: List[GenericChild] = []

    def render(self) -> str:
        if self.text is not None:
            return self.text
        parts = []
        for index, child in enumerate(self.children):
            if index > 0 and child.space_before:
                parts.append(" ")
            parts.append(child.node.render())
        return "".join(parts)


class TypeLiteralNode(TypeNodeBase):
    """Object type literal; non-property members are cloned structurally."""

    kind: Literal["type_literal"] = "type_literal"
    members: List[Union[PropertySignature, GenericTypeNode]] = []

    def render(self) -> str:
        if not self.members:
            return "{}"
        return "{ " + " ".join(f"{m.render()};" for m in self.members) + " }"


TypeNode = Annotated[
    Union[
        KeywordTypeNode,
        LiteralTypeNode,
        TypeReferenceNode,
        ArrayTypeNode,
        UnionTypeNode,
        IntersectionTypeNode,
        TypeLiteralNode,
        PropertySignature,
        GenericTypeNode,
    ],
    Field(discriminator="kind"),
]

# Enable forward references for recursive models
for _model in (
    TypeReferenceNode,
    ArrayTypeNode,
    UnionTypeNode,
    IntersectionTypeNode,
    PropertySignature,
    GenericChild,
    GenericTypeNode,
    TypeLiteralNode,
):
    _model.model_rebuild()
