"""Wire shapes exchanged with the repository API and the rendering surface.

Input entries are validated one at a time so a single malformed entry is
dropped without aborting the rest of the payload.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from commit_graph_layout.types import Point, RenderEdge, RenderModel, RenderNode


def _strip_required(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError("must be a non-empty string")
    return value.strip()


# ─── Input (repository API) ───────────────────────────────────────────────────


class RawNode(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    label: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def check_id(cls, value: Any) -> str:
        return _strip_required(value)

    @field_validator("label", mode="before")
    @classmethod
    def label_or_empty(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class RawEdge(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: str
    target: str

    @field_validator("source", "target", mode="before")
    @classmethod
    def check_endpoints(cls, value: Any) -> str:
        return _strip_required(value)


class RawRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    target: str
    label: Optional[str] = None
    type: Optional[str] = None

    @field_validator("name", "target", mode="before")
    @classmethod
    def check_required(cls, value: Any) -> str:
        return _strip_required(value)

    @field_validator("label", "type", mode="before")
    @classmethod
    def optional_text(cls, value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None


class RawGraph(BaseModel):
    """Whole payload; entries stay untyped until the normalizer checks them."""

    model_config = ConfigDict(extra="ignore")

    nodes: list[Any] = Field(default_factory=list)
    edges: list[Any] = Field(default_factory=list)
    refs: list[Any] = Field(default_factory=list)

    @field_validator("nodes", "edges", "refs", mode="before")
    @classmethod
    def list_or_empty(cls, value: Any) -> list[Any]:
        return list(value) if isinstance(value, (list, tuple)) else []


# ─── Output (rendering surface) ───────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class PointOut(_CamelModel):
    x: float
    y: float


class RenderNodeOut(_CamelModel):
    id: str
    kind: str
    label: str
    rank: int
    x: float
    y: float
    width: float
    height: float
    style_hint: str = Field(alias="styleHint")

    @classmethod
    def from_node(cls, node: RenderNode) -> RenderNodeOut:
        return cls(
            id=node.id,
            kind=node.kind.value,
            label=node.label,
            rank=node.rank,
            x=node.x,
            y=node.y,
            width=node.width,
            height=node.height,
            style_hint=node.style_hint,
        )


class RenderEdgeOut(_CamelModel):
    id: str
    source: str
    target: str
    style_hint: str = Field(alias="styleHint")
    points: list[PointOut] = Field(default_factory=list)
    source_position: str = Field("bottom", alias="sourcePosition")
    target_position: str = Field("top", alias="targetPosition")

    @classmethod
    def from_edge(cls, edge: RenderEdge) -> RenderEdgeOut:
        return cls(
            id=edge.id,
            source=edge.source,
            target=edge.target,
            style_hint=edge.style_hint,
            points=[_point(p) for p in edge.points],
            source_position=edge.source_position,
            target_position=edge.target_position,
        )


class RenderModelOut(_CamelModel):
    nodes: list[RenderNodeOut] = Field(default_factory=list)
    edges: list[RenderEdgeOut] = Field(default_factory=list)

    @classmethod
    def from_model(cls, model: RenderModel) -> RenderModelOut:
        return cls(
            nodes=[RenderNodeOut.from_node(n) for n in model.nodes],
            edges=[RenderEdgeOut.from_edge(e) for e in model.edges],
        )


def _point(p: Point) -> PointOut:
    return PointOut(x=p.x, y=p.y)
