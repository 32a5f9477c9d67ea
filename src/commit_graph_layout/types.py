"""Core data types shared by every stage of the commit-graph pipeline.

Stages:
  1. Normalization     → GraphPayload (CommitNode / Edge / RefPointer)
  2. Rank assignment   → ranks per node id
  3. Layout            → PositionedNode + RoutedEdge
  4. Projection        → RenderModel
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

NO_MESSAGE = "(No message)"
ABBREV_LEN = 7


class NodeKind(str, Enum):
    COMMIT = "commit"
    REF = "ref"
    DUMMY = "dummy"  # virtual node carrying a long edge through a rank


class RefKind(str, Enum):
    BRANCH = "branch"
    TAG = "tag"
    HEAD = "head"


class EdgeKind(str, Enum):
    PARENT = "parent"  # commit → parent commit
    REF = "ref"  # ref → target commit


class Direction(str, Enum):
    VERTICAL = "vertical"
    HORIZONTAL = "horizontal"

    @classmethod
    def coerce(cls, value: Direction | str) -> Direction:
        """Accept a Direction or its string value (plus the TB/LR shorthands)."""
        if isinstance(value, Direction):
            return value
        aliases = {"tb": cls.VERTICAL, "td": cls.VERTICAL, "lr": cls.HORIZONTAL}
        key = str(value).strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unknown layout direction: {value!r}") from None


# ─── Normalized Graph ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CommitNode:
    """A commit as received from the repository API.

    The API label is ``"sha\\nauthor\\nmessage"``; ``abbrev`` holds the first
    line, ``author_line`` the second and ``full_message`` everything after.
    """

    id: str
    abbrev: str
    summary_line: str
    author_line: str
    full_message: str

    @classmethod
    def from_label(cls, commit_id: str, label: str | None) -> CommitNode:
        parts = (label or "").split("\n", 2)
        abbrev = parts[0].strip() or commit_id[:ABBREV_LEN]
        author = parts[1].strip() if len(parts) > 1 else ""
        message = parts[2].strip() if len(parts) > 2 else ""
        summary = message.split("\n", 1)[0].strip() if message else NO_MESSAGE
        return cls(
            id=commit_id,
            abbrev=abbrev,
            summary_line=summary,
            author_line=author,
            full_message=message,
        )

    @property
    def label(self) -> str:
        return "\n".join(line for line in (self.abbrev, self.author_line, self.summary_line) if line)


@dataclass(frozen=True)
class RefPointer:
    """A named pointer (branch, tag or HEAD) bound to exactly one commit."""

    name: str
    display_label: str
    kind: RefKind
    target_commit_id: str


@dataclass(frozen=True)
class Edge:
    """Directed edge: child → parent, or ref → target commit."""

    source_id: str
    target_id: str
    kind: EdgeKind = EdgeKind.PARENT

    @property
    def key(self) -> tuple[str, str]:
        return (self.source_id, self.target_id)


@dataclass
class GraphPayload:
    """Normalizer output: commits keyed by id (input order kept), edges and refs."""

    nodes: dict[str, CommitNode] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    refs: list[RefPointer] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.nodes


# ─── Ranked / Positioned Nodes ────────────────────────────────────────────────


@dataclass
class RankedNode:
    """A commit or ref placed in a rank, with its position inside the rank."""

    id: str
    kind: NodeKind
    label: str
    rank: int
    order_in_rank: int = 0
    ref_kind: RefKind | None = None


@dataclass
class PositionedNode:
    """A ranked node with concrete coordinates (top-left corner + size)."""

    id: str
    kind: NodeKind
    label: str
    rank: int
    order_in_rank: int
    x: float
    y: float
    width: float
    height: float
    ref_kind: RefKind | None = None

    @property
    def center(self) -> Point:
        return Point(x=self.x + self.width / 2, y=self.y + self.height / 2)


@dataclass
class Point:
    """A 2D point in layout coordinates."""

    x: float
    y: float


@dataclass
class RoutedEdge:
    """An edge with a polyline route.

    ``points`` starts on the source border, passes through the centres of any
    dummy nodes, and ends on the target border.
    """

    source_id: str
    target_id: str
    kind: EdgeKind
    points: list[Point]
    source_position: str
    target_position: str
    ref_kind: RefKind | None = None


# ─── Render Model ─────────────────────────────────────────────────────────────


@dataclass
class RenderNode:
    id: str
    kind: NodeKind
    label: str
    rank: int
    x: float
    y: float
    width: float
    height: float
    style_hint: str


@dataclass
class RenderEdge:
    id: str
    source: str
    target: str
    style_hint: str
    points: list[Point] = field(default_factory=list)
    source_position: str = "bottom"
    target_position: str = "top"


@dataclass
class RenderModel:
    """The shape consumed by the rendering surface."""

    nodes: list[RenderNode] = field(default_factory=list)
    edges: list[RenderEdge] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize to the rendering surface's camelCase JSON shape."""
        from commit_graph_layout.schema import RenderModelOut

        return RenderModelOut.from_model(self).model_dump(by_alias=True)
