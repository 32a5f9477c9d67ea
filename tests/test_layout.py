"""Tests for layout.py: dummy insertion, crossing minimization, coordinates, routing.

Covers:
  - build_augmented_graph (dummy chains, attached refs)
  - count_crossings (inversion count)
  - minimise_crossings (barycenter heuristic)
  - assign_coordinates (vertical + horizontal, no overlap, rank spacing)
  - route_edges via layout()
"""

from __future__ import annotations

import networkx as nx
import pytest

from commit_graph_layout.config import LayoutConfig
from commit_graph_layout.layout import (
    AugmentedGraph,
    assign_coordinates,
    build_augmented_graph,
    count_crossings,
    initial_ordering,
    layout,
    minimise_crossings,
    rank_pitch,
)
from commit_graph_layout.types import Direction, Edge, EdgeKind, NodeKind, RankedNode, RefKind

# ─── Helpers ──────────────────────────────────────────────────────────────────


def commit(node_id: str, rank: int) -> RankedNode:
    return RankedNode(id=node_id, kind=NodeKind.COMMIT, label=node_id, rank=rank)


def ref(name: str, rank: int, kind: RefKind = RefKind.BRANCH, label: str | None = None) -> RankedNode:
    return RankedNode(id=name, kind=NodeKind.REF, label=label or name, rank=rank, ref_kind=kind)


def parent_edges(*pairs: tuple[str, str]) -> list[Edge]:
    return [Edge(source_id=s, target_id=t, kind=EdgeKind.PARENT) for s, t in pairs]


def ref_edge(name: str, target: str) -> Edge:
    return Edge(source_id=name, target_id=target, kind=EdgeKind.REF)


def make_augmented_graph(edges: list[tuple[str, str]], ranks: dict[str, int]) -> AugmentedGraph:
    """Commit-only augmented graph from (src, tgt) pairs and explicit ranks."""
    nodes = [commit(nid, r) for nid, r in ranks.items()]
    return build_augmented_graph(nodes, parent_edges(*edges))


def assert_no_overlap(nodes, direction: Direction, gap: float) -> None:
    by_rank: dict[int, list] = {}
    for n in nodes:
        by_rank.setdefault(n.rank, []).append(n)
    for rank, members in by_rank.items():
        if direction == Direction.VERTICAL:
            spans = sorted((n.x, n.x + n.width, n.id) for n in members)
        else:
            spans = sorted((n.y, n.y + n.height, n.id) for n in members)
        for (_, end, left), (start, _, right) in zip(spans, spans[1:]):
            assert end + gap <= start, f"{left} and {right} overlap in rank {rank}"


# ─── build_augmented_graph Tests ─────────────────────────────────────────────


class TestAugmentedGraph:
    def test_adjacent_edges_copied(self):
        aug = make_augmented_graph([("a", "b")], {"a": 0, "b": 1})
        assert list(aug.graph.edges()) == [("a", "b")]
        assert aug.chains == []
        assert aug.rank_count == 2

    def test_long_edge_split_into_dummy_chain(self):
        aug = make_augmented_graph([("a", "d")], {"a": 0, "d": 3})
        (chain,) = aug.chains
        assert len(chain.dummy_ids) == 2
        assert [aug.ranks[d] for d in chain.dummy_ids] == [1, 2]
        assert all(aug.kind(d) == NodeKind.DUMMY for d in chain.dummy_ids)
        assert nx.has_path(aug.graph, "a", "d")
        assert not aug.graph.has_edge("a", "d")

    def test_dummy_id_never_collides_with_commit(self):
        aug = make_augmented_graph([("a", "c")], {"a": 0, "dummy:0:0": 1, "c": 2})
        (chain,) = aug.chains
        assert chain.dummy_ids[0] != "dummy:0:0"
        assert aug.kind("dummy:0:0") == NodeKind.COMMIT

    def test_same_rank_ref_is_attached(self):
        aug = build_augmented_graph([commit("c1", 0), ref("branch_main", 0)], [ref_edge("branch_main", "c1")])
        assert aug.attached == {"branch_main": "c1"}
        assert aug.graph.number_of_edges() == 0
        assert initial_ordering(aug) == [["c1"]]

    def test_edges_with_unknown_endpoints_skipped(self):
        aug = build_augmented_graph([commit("a", 0)], parent_edges(("a", "ghost")))
        assert aug.graph.number_of_edges() == 0


# ─── count_crossings Tests ────────────────────────────────────────────────────


class TestCountCrossings:
    def test_no_crossings_simple_chain(self):
        aug = make_augmented_graph([("A", "B")], {"A": 0, "B": 1})
        assert count_crossings([["A"], ["B"]], aug.graph) == 0

    def test_no_crossings_parallel(self):
        aug = make_augmented_graph([("A", "C"), ("B", "D")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 0

    def test_one_crossing(self):
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 1
        assert count_crossings([["A", "B"], ["D", "C"]], aug.graph) == 0

    def test_empty_graph_no_crossings(self):
        assert count_crossings([], nx.DiGraph()) == 0

    def test_reversed_matching(self):
        top, bottom = list("abcd"), list("wxyz")
        aug = make_augmented_graph(list(zip(top, reversed(bottom))), {**dict.fromkeys(top, 0), **dict.fromkeys(bottom, 1)})
        assert count_crossings([top, bottom], aug.graph) == 6

    def test_complete_bipartite(self):
        top, bottom = list("abc"), list("xyz")
        edges = [(s, t) for s in top for t in bottom]
        aug = make_augmented_graph(edges, {**dict.fromkeys(top, 0), **dict.fromkeys(bottom, 1)})
        assert count_crossings([top, bottom], aug.graph) == 9

    def test_shared_endpoints_do_not_cross(self):
        aug = make_augmented_graph([("A", "C"), ("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert count_crossings([["A", "B"], ["C", "D"]], aug.graph) == 1
        assert count_crossings([["B", "A"], ["C", "D"]], aug.graph) == 0


# ─── minimise_crossings Tests ─────────────────────────────────────────────────


class TestMinimiseCrossings:
    def test_returns_all_nodes_in_their_rank(self):
        ranks = {"A": 0, "B": 1, "C": 1, "D": 2}
        aug = make_augmented_graph([("A", "B"), ("A", "C"), ("B", "D"), ("C", "D")], ranks)
        result = minimise_crossings(aug)
        assert len(result) == aug.rank_count
        for node_id, rank in ranks.items():
            assert node_id in result[rank]

    def test_resolves_simple_crossing(self):
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        result = minimise_crossings(aug)
        assert count_crossings(result, aug.graph) == 0
        assert result == [["A", "B"], ["D", "C"]]

    def test_zero_passes_keeps_input_order(self):
        aug = make_augmented_graph([("A", "D"), ("B", "C")], {"A": 0, "B": 0, "C": 1, "D": 1})
        assert minimise_crossings(aug, passes=0) == [["A", "B"], ["C", "D"]]

    def test_never_worse_than_initial(self):
        edges = [("a", "f"), ("b", "e"), ("c", "d"), ("a", "d"), ("c", "f")]
        ranks = {"a": 0, "b": 0, "c": 0, "d": 1, "e": 1, "f": 1}
        aug = make_augmented_graph(edges, ranks)
        before = count_crossings(initial_ordering(aug), aug.graph)
        after = count_crossings(minimise_crossings(aug), aug.graph)
        assert after <= before

    def test_attached_refs_follow_their_target(self):
        nodes = [commit("c1", 0), commit("c2", 0), ref("branch_a", 0), ref("HEAD", 0, RefKind.HEAD)]
        edges = [ref_edge("branch_a", "c2"), ref_edge("HEAD", "c1")]
        aug = build_augmented_graph(nodes, edges)
        assert minimise_crossings(aug) == [["c1", "HEAD", "c2", "branch_a"]]


# ─── Coordinate Tests ─────────────────────────────────────────────────────────


class TestAssignCoordinates:
    def test_vertical_rank_spacing(self):
        cfg = LayoutConfig()
        aug = make_augmented_graph([("a", "b")], {"a": 0, "b": 1})
        boxes = assign_coordinates([["a"], ["b"]], aug, cfg)
        assert boxes["a"].y == 0
        assert boxes["b"].y == cfg.commit_height + cfg.rank_gap
        assert boxes["b"].y - (boxes["a"].y + boxes["a"].height) >= cfg.rank_gap

    def test_vertical_left_aligned_siblings(self):
        cfg = LayoutConfig()
        aug = make_augmented_graph([], {"a": 0, "b": 0, "c": 0})
        boxes = assign_coordinates([["a", "b", "c"]], aug, cfg)
        assert [boxes[n].x for n in "abc"] == [0, 255, 510]
        assert all(boxes[n].y == 0 for n in "abc")

    def test_horizontal_swaps_axes_not_sizes(self):
        cfg = LayoutConfig(direction="horizontal")
        aug = make_augmented_graph([("a", "b")], {"a": 0, "b": 1, "c": 1})
        boxes = assign_coordinates([["a"], ["b", "c"]], aug, cfg)
        assert boxes["b"].x == cfg.commit_width + cfg.rank_gap
        assert boxes["c"].y == cfg.commit_height + cfg.node_gap
        assert (boxes["a"].width, boxes["a"].height) == (cfg.commit_width, cfg.commit_height)

    def test_ref_pill_width_from_label(self):
        cfg = LayoutConfig()
        aug = build_augmented_graph([ref("branch_main", 0, label="main"), commit("c", 1)], [ref_edge("branch_main", "c")])
        boxes = assign_coordinates([["branch_main"], ["c"]], aug, cfg)
        assert boxes["branch_main"].width == 4 * cfg.ref_char_width + cfg.ref_padding
        assert boxes["branch_main"].height == cfg.ref_height

    def test_rank_pitch_uses_tallest_real_node(self):
        cfg = LayoutConfig(commit_height=50, ref_height=60, rank_gap=10)
        aug = build_augmented_graph([ref("r", 0), commit("c", 1)], [ref_edge("r", "c")])
        assert rank_pitch(aug, cfg) == (60, 70)


# ─── Full layout() Tests ──────────────────────────────────────────────────────


class TestLayout:
    def test_diamond_no_overlap(self):
        nodes = [commit("m", 0), commit("a", 1), commit("b", 1), commit("r", 2)]
        edges = parent_edges(("m", "a"), ("m", "b"), ("a", "r"), ("b", "r"))
        result = layout(nodes, edges)
        cfg = LayoutConfig()
        assert_no_overlap(result.nodes, Direction.VERTICAL, cfg.node_gap)
        assert {n.id for n in result.nodes} == {"m", "a", "b", "r"}

    def test_horizontal_no_overlap(self):
        nodes = [commit("m", 0), commit("a", 1), commit("b", 1), ref("tag_x", 0, RefKind.TAG)]
        edges = parent_edges(("m", "a"), ("m", "b")) + [ref_edge("tag_x", "a")]
        result = layout(nodes, edges, direction="horizontal")
        assert_no_overlap(result.nodes, Direction.HORIZONTAL, LayoutConfig().node_gap)

    def test_dummies_not_returned_but_route_through_lane(self):
        nodes = [commit("a", 0), commit("b", 1), commit("c", 2)]
        edges = parent_edges(("a", "b"), ("b", "c"), ("a", "c"))
        result = layout(nodes, edges)
        assert [n.id for n in result.nodes] == ["a", "b", "c"]
        long_edge = next(e for e in result.edges if (e.source_id, e.target_id) == ("a", "c"))
        xs = [(p.x, p.y) for p in long_edge.points]
        assert xs == [(105, 85), (260, 170), (260, 255), (105, 340)]
        assert long_edge.source_position == "bottom"
        assert long_edge.target_position == "top"

    def test_attached_ref_routed_sideways(self):
        nodes = [commit("c1", 0), ref("branch_main", 0, label="main")]
        result = layout(nodes, [ref_edge("branch_main", "c1")])
        pos = {n.id: n for n in result.nodes}
        assert pos["branch_main"].x == 210 + 45
        assert pos["branch_main"].order_in_rank == 1
        (edge,) = result.edges
        assert (edge.source_position, edge.target_position) == ("left", "right")
        assert edge.points[0].x == pos["branch_main"].x
        assert edge.points[-1].x == pos["c1"].x + pos["c1"].width
        assert edge.ref_kind == RefKind.BRANCH

    def test_horizontal_routes_right_to_left(self):
        result = layout([commit("a", 0), commit("b", 1)], parent_edges(("a", "b")), direction=Direction.HORIZONTAL)
        (edge,) = result.edges
        assert (edge.source_position, edge.target_position) == ("right", "left")
        assert (edge.points[0].x, edge.points[0].y) == (210, 42.5)
        assert (edge.points[-1].x, edge.points[-1].y) == (295, 42.5)

    def test_idempotent(self):
        nodes = [commit(n, r) for n, r in [("a", 0), ("b", 1), ("c", 1), ("d", 2), ("e", 3)]]
        edges = parent_edges(("a", "c"), ("a", "b"), ("b", "d"), ("c", "e"), ("d", "e"), ("a", "e"))
        first = layout(nodes, edges)
        second = layout(nodes, edges)
        assert first == second

    def test_empty(self):
        result = layout([], [])
        assert result.nodes == []
        assert result.edges == []
        assert result.crossings == 0

    def test_unknown_direction_rejected(self):
        with pytest.raises(ValueError):
            layout([commit("a", 0)], [], direction="diagonal")

    def test_negative_rank_rejected(self):
        with pytest.raises(ValueError):
            layout([commit("a", -1)], [])


class TestStackedRefs:
    """HEAD and a branch both pointing at the rank-0 tip."""

    NODES = [
        commit("c1", 0),
        commit("c2", 1),
        ref("HEAD", 0, RefKind.HEAD),
        ref("branch_main", 0, label="main"),
    ]
    EDGES = parent_edges(("c1", "c2")) + [ref_edge("HEAD", "c1"), ref_edge("branch_main", "c1")]

    @staticmethod
    def assert_no_edge_through_nodes(result) -> None:
        for edge in result.edges:
            for a, b in zip(edge.points, edge.points[1:]):
                for node in result.nodes:
                    for step in range(51):
                        t = step / 50
                        x = a.x + (b.x - a.x) * t
                        y = a.y + (b.y - a.y) * t
                        inside = node.x < x < node.x + node.width and node.y < y < node.y + node.height
                        assert not inside, f"{edge.source_id}->{edge.target_id} passes through {node.id}"

    def test_vertical_chain(self):
        result = layout(self.NODES, self.EDGES)
        assert result.ordering[0] == ["c1", "HEAD", "branch_main"]
        routes = {e.source_id: e for e in result.edges}
        assert [(p.x, p.y) for p in routes["HEAD"].points] == [(255, 16), (210, 16)]
        assert [(p.x, p.y) for p in routes["branch_main"].points] == [(366, 16), (321, 16)]
        assert routes["branch_main"].target_id == "c1"
        self.assert_no_edge_through_nodes(result)

    def test_horizontal_chain(self):
        result = layout(self.NODES, self.EDGES, direction=Direction.HORIZONTAL)
        routes = {e.source_id: e for e in result.edges}
        assert [(p.x, p.y) for p in routes["HEAD"].points] == [(33, 130), (33, 85)]
        assert [(p.x, p.y) for p in routes["branch_main"].points] == [(33, 207), (33, 162)]
        assert (routes["branch_main"].source_position, routes["branch_main"].target_position) == ("top", "bottom")
        self.assert_no_edge_through_nodes(result)
