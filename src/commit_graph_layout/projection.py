"""Render projection: positioned layout → rendering-surface model."""

from __future__ import annotations

from commit_graph_layout.types import (
    EdgeKind,
    NodeKind,
    PositionedNode,
    RenderEdge,
    RenderModel,
    RenderNode,
    RoutedEdge,
)

COMMIT_STYLE = "commit"
PARENT_EDGE_STYLE = "parent"

# style hint → (fill, stroke) colours used by the web client.
STYLE_PALETTE: dict[str, tuple[str, str]] = {
    COMMIT_STYLE: ("#ffffff", "#bbbbbb"),
    PARENT_EDGE_STYLE: ("none", "#aaaaaa"),
    "branch": ("#e0f7fa", "#00bcd4"),
    "tag": ("#fff9c4", "#ffeb3b"),
    "head": ("#e8f5e9", "#4caf50"),
    "ref-branch": ("none", "#00bcd4"),
    "ref-tag": ("none", "#ffc107"),
    "ref-head": ("none", "#4caf50"),
}


def edge_id(source: str, target: str) -> str:
    return f"e-{source}-{target}"


def node_style_hint(node: PositionedNode) -> str:
    if node.kind == NodeKind.REF and node.ref_kind is not None:
        return node.ref_kind.value
    return COMMIT_STYLE


def edge_style_hint(edge: RoutedEdge) -> str:
    if edge.kind == EdgeKind.REF and edge.ref_kind is not None:
        return f"ref-{edge.ref_kind.value}"
    return PARENT_EDGE_STYLE


def project(positioned_nodes: list[PositionedNode], edges: list[RoutedEdge]) -> RenderModel:
    """Wrap positioned nodes and routed edges in the rendering surface's shape.

    Dummy nodes are skipped, and so is any edge whose endpoints were not both
    projected. Edge ids are ``e-{source}-{target}``, suffixed ``~n`` when ids
    containing ``-`` would otherwise collide.
    """
    nodes: list[RenderNode] = []
    for node in positioned_nodes:
        if node.kind == NodeKind.DUMMY:
            continue
        nodes.append(
            RenderNode(
                id=node.id,
                kind=node.kind,
                label=node.label,
                rank=node.rank,
                x=node.x,
                y=node.y,
                width=node.width,
                height=node.height,
                style_hint=node_style_hint(node),
            )
        )

    present = {n.id for n in nodes}
    used: set[str] = set()
    render_edges: list[RenderEdge] = []
    for edge in edges:
        if edge.source_id not in present or edge.target_id not in present:
            continue
        render_edges.append(
            RenderEdge(
                id=_unique_edge_id(edge.source_id, edge.target_id, used),
                source=edge.source_id,
                target=edge.target_id,
                style_hint=edge_style_hint(edge),
                points=list(edge.points),
                source_position=edge.source_position,
                target_position=edge.target_position,
            )
        )
    return RenderModel(nodes=nodes, edges=render_edges)


def _unique_edge_id(source: str, target: str, used: set[str]) -> str:
    # "a" -> "b-c" and "a-b" -> "c" share a plain id; later ones get a suffix.
    base = edge_id(source, target)
    candidate, n = base, 1
    while candidate in used:
        candidate = f"{base}~{n}"
        n += 1
    used.add(candidate)
    return candidate
