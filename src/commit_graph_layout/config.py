"""Layout configuration: node sizes, gaps and sweep count."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from commit_graph_layout.types import Direction, NodeKind


class LayoutConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    direction: Direction = Direction.VERTICAL

    # Commit cards are sized for a sha line, an author line and a wrapped summary.
    commit_width: float = Field(210, gt=0)
    commit_height: float = Field(85, gt=0)

    # Ref pills grow with their label: len(label) * ref_char_width + ref_padding.
    ref_height: float = Field(32, gt=0)
    ref_char_width: float = Field(9, gt=0)
    ref_padding: float = Field(30, gt=0)

    # Cross-axis lane reserved where a long edge passes through a rank.
    dummy_extent: float = Field(10, gt=0)

    node_gap: float = Field(45, ge=0)
    rank_gap: float = Field(85, ge=0)

    crossing_passes: int = Field(4, ge=0)

    @field_validator("direction", mode="before")
    @classmethod
    def coerce_direction(cls, value: Direction | str) -> Direction:
        return Direction.coerce(value)

    def node_size(self, kind: NodeKind, label: str = "") -> tuple[float, float]:
        """(width, height) for a node of the given kind."""
        if kind == NodeKind.COMMIT:
            return (self.commit_width, self.commit_height)
        if kind == NodeKind.REF:
            return (len(label) * self.ref_char_width + self.ref_padding, self.ref_height)
        return (self.dummy_extent, self.dummy_extent)


DEFAULT_CONFIG = LayoutConfig()
