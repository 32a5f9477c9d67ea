"""Layout module: ranked commit graph → positioned nodes + routed edges.

Phases:
  1. Dummy node insertion (long edges become chains through every rank)
  2. Crossing minimization (barycenter heuristic, bounded sweeps)
  3. Coordinate assignment (left-aligned ranks)
  4. Edge routing (polylines through dummy lanes)

Crossing minimization is NP-hard; a fixed number of barycenter sweeps is
used and the best ordering seen is kept.
"""

from __future__ import annotations

import bisect
import copy
from dataclasses import dataclass, field

import networkx as nx

from commit_graph_layout.config import DEFAULT_CONFIG, LayoutConfig
from commit_graph_layout.types import (
    Direction,
    Edge,
    EdgeKind,
    NodeKind,
    Point,
    PositionedNode,
    RankedNode,
    RefKind,
    RoutedEdge,
)

# ─── Dummy Node Insertion ──────────────────────────────────────────────────────


@dataclass
class DummyChain:
    """The dummy nodes standing in for one edge that spans several ranks.

    An edge u → v with rank[v] - rank[u] = k > 1 is replaced by
    u → d₁ → … → dₖ₋₁ → v, one dummy per intermediate rank.
    """

    edge: Edge
    dummy_ids: list[str]


@dataclass
class AugmentedGraph:
    """Working graph where every edge joins adjacent ranks.

    Nodes carry ``kind``, ``label``, ``rank`` and ``ref_kind`` attributes.
    Refs that share their target's rank are held apart in ``attached`` (ref
    name → target id) and never enter the crossing sweeps.
    """

    graph: nx.DiGraph
    ranks: dict[str, int]
    rank_count: int
    chains: list[DummyChain] = field(default_factory=list)
    attached: dict[str, str] = field(default_factory=dict)

    def kind(self, node_id: str) -> NodeKind:
        return self.graph.nodes[node_id]["kind"]


def build_augmented_graph(ranked_nodes: list[RankedNode], edges: list[Edge]) -> AugmentedGraph:
    """Build the working graph and split long edges into dummy chains.

    Raises ValueError for a node with a negative rank.
    """
    g: nx.DiGraph = nx.DiGraph()
    ranks: dict[str, int] = {}
    for node in ranked_nodes:
        if node.rank < 0:
            raise ValueError(f"negative rank {node.rank} for node {node.id!r}")
        g.add_node(node.id, kind=node.kind, label=node.label, rank=node.rank, ref_kind=node.ref_kind)
        ranks[node.id] = node.rank

    chains: list[DummyChain] = []
    attached: dict[str, str] = {}

    for edge in edges:
        src, tgt = edge.source_id, edge.target_id
        if src not in ranks or tgt not in ranks or src == tgt:
            continue
        span = ranks[tgt] - ranks[src]

        if span == 0 and edge.kind == EdgeKind.REF:
            attached[src] = tgt
            continue
        if span <= 1:
            # Adjacent-rank edge, copied as-is.
            g.add_edge(src, tgt, edge=edge)
            continue

        chain_index = len(chains)
        dummy_ids: list[str] = []
        prev = src
        for step in range(span - 1):
            dummy_id = f"dummy:{chain_index}:{step}"
            while dummy_id in ranks:
                dummy_id += "'"
            g.add_node(dummy_id, kind=NodeKind.DUMMY, label="", rank=ranks[src] + step + 1, ref_kind=None)
            ranks[dummy_id] = ranks[src] + step + 1
            g.add_edge(prev, dummy_id, edge=edge)
            dummy_ids.append(dummy_id)
            prev = dummy_id
        g.add_edge(prev, tgt, edge=edge)
        chains.append(DummyChain(edge=edge, dummy_ids=dummy_ids))

    rank_count = (max(ranks.values()) + 1) if ranks else 0
    return AugmentedGraph(graph=g, ranks=ranks, rank_count=rank_count, chains=chains, attached=attached)


# ─── Crossing Minimization (Barycenter) ───────────────────────────────────────


def initial_ordering(aug: AugmentedGraph) -> list[list[str]]:
    """Group nodes by rank in insertion order (commits, refs, then dummies)."""
    ordering: list[list[str]] = [[] for _ in range(aug.rank_count)]
    for node_id in aug.graph.nodes:
        if node_id in aug.attached:
            continue
        ordering[aug.ranks[node_id]].append(node_id)
    return ordering


def minimise_crossings(aug: AugmentedGraph, passes: int = DEFAULT_CONFIG.crossing_passes) -> list[list[str]]:
    """Reduce edge crossings with down/up barycenter sweeps.

    Each pass sorts rank r by the mean position of its neighbours in rank r-1
    (top-down), then by its neighbours in rank r+1 (bottom-up). Python's
    sort is stable, so ties keep the previous order. The ordering with the
    fewest crossings over all passes is returned, with attached refs placed
    right after their targets.
    """
    ordering = initial_ordering(aug)
    best = copy.deepcopy(ordering)
    best_count = count_crossings(ordering, aug.graph)

    for _pass in range(passes):
        if best_count == 0:
            break

        for rank in range(1, aug.rank_count):
            prev = {nid: float(i) for i, nid in enumerate(ordering[rank - 1])}
            _sort_rank(ordering[rank], aug.graph, prev, "incoming")

        for rank in range(aug.rank_count - 2, -1, -1):
            nxt = {nid: float(i) for i, nid in enumerate(ordering[rank + 1])}
            _sort_rank(ordering[rank], aug.graph, nxt, "outgoing")

        count = count_crossings(ordering, aug.graph)
        if count < best_count:
            best_count = count
            best = copy.deepcopy(ordering)

    return _insert_attached(best, aug)


def _sort_rank(
    rank_ids: list[str],
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
) -> None:
    current = {nid: float(i) for i, nid in enumerate(rank_ids)}
    keys = {nid: _barycenter(nid, graph, neighbor_pos, direction, current[nid]) for nid in rank_ids}
    rank_ids.sort(key=lambda nid: keys[nid])


def _barycenter(
    node_id: str,
    graph: nx.DiGraph,
    neighbor_pos: dict[str, float],
    direction: str,
    fallback: float,
) -> float:
    """Mean position of a node's neighbours in the adjacent rank.

    direction: "incoming" to look at predecessors, "outgoing" for successors.
    A node with no neighbour there keeps ``fallback`` (its current position).
    """
    neighbors = graph.predecessors(node_id) if direction == "incoming" else graph.successors(node_id)
    positions = [neighbor_pos[nb] for nb in neighbors if nb in neighbor_pos]
    if not positions:
        return fallback
    return sum(positions) / len(positions)


def _insert_attached(ordering: list[list[str]], aug: AugmentedGraph) -> list[list[str]]:
    if not aug.attached:
        return ordering
    by_target: dict[str, list[str]] = {}
    for ref_id, target_id in aug.attached.items():
        by_target.setdefault(target_id, []).append(ref_id)

    result: list[list[str]] = []
    for rank_ids in ordering:
        merged: list[str] = []
        for node_id in rank_ids:
            merged.append(node_id)
            merged.extend(by_target.get(node_id, []))
        result.append(merged)
    return result


def count_crossings(ordering: list[list[str]], graph: nx.DiGraph) -> int:
    """Count edge crossings between consecutive ranks.

    Two edges cross when their source and target orders disagree. With the
    edges of one rank pair sorted by (source, target) position, that is the
    number of inversions in the target sequence, found with a bisect pass.
    """
    total = 0
    for rank in range(len(ordering) - 1):
        tgt_pos: dict[str, int] = {nid: i for i, nid in enumerate(ordering[rank + 1])}
        edges: list[tuple[int, int]] = []
        for sp, src_id in enumerate(ordering[rank]):
            if src_id in graph:
                edges.extend((sp, tgt_pos[nb]) for nb in graph.successors(src_id) if nb in tgt_pos)
        edges.sort()
        seen: list[int] = []
        for _, tp in edges:
            # Earlier entries with the same source sort below tp, so only
            # strictly earlier sources can land above it.
            total += len(seen) - bisect.bisect_right(seen, tp)
            bisect.insort(seen, tp)
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


@dataclass
class _Box:
    node_id: str
    rank: int
    order: int
    x: float
    y: float
    width: float
    height: float

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2


def rank_pitch(aug: AugmentedGraph, config: LayoutConfig) -> tuple[float, float]:
    """(max extent along the layout axis, distance between rank origins)."""
    vertical = config.direction == Direction.VERTICAL
    extents = []
    for node_id, attrs in aug.graph.nodes(data=True):
        if attrs["kind"] == NodeKind.DUMMY:
            continue
        width, height = config.node_size(attrs["kind"], attrs["label"])
        extents.append(height if vertical else width)
    max_extent = max(extents, default=config.commit_height if vertical else config.commit_width)
    return max_extent, max_extent + config.rank_gap


def assign_coordinates(ordering: list[list[str]], aug: AugmentedGraph, config: LayoutConfig) -> dict[str, _Box]:
    """Place every node, dummies included.

    Along the layout axis a rank starts at rank * (max_extent + rank_gap).
    Across it, nodes are packed left-aligned from 0 with ``node_gap`` between
    siblings. Vertical layouts run ranks down the y axis, horizontal ones
    along x. Node width and height are never swapped.
    """
    vertical = config.direction == Direction.VERTICAL
    _, pitch = rank_pitch(aug, config)

    boxes: dict[str, _Box] = {}
    for rank, rank_ids in enumerate(ordering):
        along = rank * pitch
        cursor = 0.0
        for order, node_id in enumerate(rank_ids):
            attrs = aug.graph.nodes[node_id]
            width, height = config.node_size(attrs["kind"], attrs["label"])
            if vertical:
                boxes[node_id] = _Box(node_id, rank, order, x=cursor, y=along, width=width, height=height)
                cursor += width + config.node_gap
            else:
                boxes[node_id] = _Box(node_id, rank, order, x=along, y=cursor, width=width, height=height)
                cursor += height + config.node_gap
    return boxes


# ─── Edge Routing ─────────────────────────────────────────────────────────────


def route_edges(
    edges: list[Edge],
    boxes: dict[str, _Box],
    aug: AugmentedGraph,
    config: LayoutConfig,
) -> list[RoutedEdge]:
    """Route every edge as a polyline.

    Vertical: exit at the source's bottom centre, pass each dummy lane from the
    top of its rank band to the bottom, enter at the target's top centre.
    Horizontal is the same with axes exchanged. A ref sharing its target's
    rank sits after the target (and after any earlier ref on that target),
    so its edge runs straight across the gap to the facing side of the node
    just before it.
    """
    vertical = config.direction == Direction.VERTICAL
    max_extent, _ = rank_pitch(aug, config)
    chain_map: dict[tuple[str, str], list[str]] = {c.edge.key: c.dummy_ids for c in aug.chains}
    slots = {(box.rank, box.order): box for box in boxes.values()}
    predecessor = {
        ref_id: slots[(boxes[ref_id].rank, boxes[ref_id].order - 1)]
        for ref_id in aug.attached
        if ref_id in boxes and boxes[ref_id].order > 0
    }

    routes: list[RoutedEdge] = []
    for edge in edges:
        src = boxes.get(edge.source_id)
        tgt = boxes.get(edge.target_id)
        if src is None or tgt is None:
            continue
        ref_kind: RefKind | None = aug.graph.nodes[edge.source_id].get("ref_kind")

        if src.rank == tgt.rank:
            # Refs stacked on one target chain left to right, each edge
            # spanning only the gap to its immediate predecessor.
            near = predecessor.get(edge.source_id, tgt)
            if vertical:
                y = min(max(src.cy, near.y), near.y + near.height)
                points = [Point(src.x, y), Point(near.x + near.width, y)]
                positions = ("left", "right")
            else:
                x = min(max(src.cx, near.x), near.x + near.width)
                points = [Point(x, src.y), Point(x, near.y + near.height)]
                positions = ("top", "bottom")
        else:
            points = [Point(src.cx, src.y + src.height) if vertical else Point(src.x + src.width, src.cy)]
            for dummy_id in chain_map.get(edge.key, []):
                lane = boxes[dummy_id]
                if vertical:
                    points.append(Point(lane.cx, lane.y))
                    points.append(Point(lane.cx, lane.y + max_extent))
                else:
                    points.append(Point(lane.x, lane.cy))
                    points.append(Point(lane.x + max_extent, lane.cy))
            points.append(Point(tgt.cx, tgt.y) if vertical else Point(tgt.x, tgt.cy))
            positions = ("bottom", "top") if vertical else ("right", "left")

        routes.append(
            RoutedEdge(
                source_id=edge.source_id,
                target_id=edge.target_id,
                kind=edge.kind,
                points=points,
                source_position=positions[0],
                target_position=positions[1],
                ref_kind=ref_kind if edge.kind == EdgeKind.REF else None,
            )
        )
    return routes


# ─── Full Layout Pipeline ──────────────────────────────────────────────────────


@dataclass
class LayoutResult:
    nodes: list[PositionedNode]
    edges: list[RoutedEdge]
    ordering: list[list[str]]
    crossings: int


def layout(
    ranked_nodes: list[RankedNode],
    edges: list[Edge],
    direction: Direction | str | None = None,
    config: LayoutConfig | None = None,
) -> LayoutResult:
    """Position ranked nodes and route their edges.

    ``direction`` overrides ``config.direction`` when given. Returned nodes
    keep the order of ``ranked_nodes``; dummy nodes are not returned.
    """
    config = config or DEFAULT_CONFIG
    if direction is not None:
        config = config.model_copy(update={"direction": Direction.coerce(direction)})

    aug = build_augmented_graph(ranked_nodes, edges)
    ordering = minimise_crossings(aug, config.crossing_passes)
    boxes = assign_coordinates(ordering, aug, config)

    real_ordering = [[nid for nid in rank_ids if aug.kind(nid) != NodeKind.DUMMY] for rank_ids in ordering]
    order_in_rank = {nid: i for rank_ids in real_ordering for i, nid in enumerate(rank_ids)}

    positioned: list[PositionedNode] = []
    for node in ranked_nodes:
        box = boxes.get(node.id)
        if box is None:
            continue
        positioned.append(
            PositionedNode(
                id=node.id,
                kind=node.kind,
                label=node.label,
                rank=node.rank,
                order_in_rank=order_in_rank[node.id],
                x=box.x,
                y=box.y,
                width=box.width,
                height=box.height,
                ref_kind=node.ref_kind,
            )
        )

    return LayoutResult(
        nodes=positioned,
        edges=route_edges(edges, boxes, aug, config),
        ordering=real_ordering,
        crossings=count_crossings(ordering, aug.graph),
    )
