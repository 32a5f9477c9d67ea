"""Rank assignment: longest-path layering of the commit DAG.

Edges point child → parent. Commits nothing points to (the newest ones) get
rank 0 and ranks grow towards older commits, so every retained edge u → v
satisfies rank[u] < rank[v].

A topological order comes from one iterative depth-first pass. An edge into a
node that is still on the DFS stack closes a cycle; that edge is dropped and
reported, and the traversal carries on with the node's other edges. Each node
and each edge is visited at most once, so malformed input cannot loop.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

import networkx as nx

from commit_graph_layout.diagnostics import Diagnostic, DiagnosticCode, DiagnosticLog
from commit_graph_layout.types import Edge, RefPointer


class _Visit(Enum):
    IN_PROGRESS = 1
    DONE = 2


@dataclass
class RankAssignment:
    """Result of rank assignment.

    Attributes:
        ranks: Maps commit id → rank (0 = newest).
        edges: Edges that survived cycle breaking, in input order.
        dropped_edges: Back-edges removed to break cycles.
        diagnostics: One aggregated cycle diagnostic when edges were dropped.
    """

    ranks: dict[str, int] = field(default_factory=dict)
    edges: list[Edge] = field(default_factory=list)
    dropped_edges: list[Edge] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def has_cycle(self) -> bool:
        return bool(self.dropped_edges)

    @property
    def rank_count(self) -> int:
        return (max(self.ranks.values()) + 1) if self.ranks else 0


def build_digraph(node_ids: Iterable[str], edges: Iterable[Edge]) -> nx.DiGraph:
    """Fresh working graph; node and successor order follow input order."""
    graph: nx.DiGraph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    for edge in edges:
        if edge.source_id in graph and edge.target_id in graph and edge.source_id != edge.target_id:
            graph.add_edge(edge.source_id, edge.target_id, edge=edge)
    return graph


def topological_order(graph: nx.DiGraph) -> tuple[list[str], list[tuple[str, str]]]:
    """Depth-first topological sort that prunes back-edges.

    Returns (order, back_edges). ``order`` lists every node with sources
    before their targets once ``back_edges`` are ignored. Roots are tried in
    node insertion order and successors in edge insertion order, so the result
    is stable for identical input.
    """
    state: dict[str, _Visit] = {}
    postorder: list[str] = []
    back_edges: list[tuple[str, str]] = []

    for root in graph.nodes:
        if root in state:
            continue
        state[root] = _Visit.IN_PROGRESS
        stack = [(root, iter(graph.successors(root)))]
        while stack:
            node, successors = stack[-1]
            for succ in successors:
                visit = state.get(succ)
                if visit is None:
                    state[succ] = _Visit.IN_PROGRESS
                    stack.append((succ, iter(graph.successors(succ))))
                    break
                if visit is _Visit.IN_PROGRESS:
                    back_edges.append((node, succ))
            else:
                state[node] = _Visit.DONE
                postorder.append(node)
                stack.pop()

    postorder.reverse()
    return postorder, back_edges


def assign_ranks(nodes: Iterable[str] | Mapping[str, object], edges: Iterable[Edge]) -> RankAssignment:
    """Assign a rank to every commit using longest-path layering.

    ``nodes`` may be a commit map (its keys are used) or any iterable of ids.
    Never raises; an empty graph yields empty ranks.
    """
    node_ids = list(nodes.keys()) if isinstance(nodes, Mapping) else list(nodes)
    edge_list = list(edges)
    graph = build_digraph(node_ids, edge_list)

    order, back_edges = topological_order(graph)

    log = DiagnosticLog()
    dropped = set(back_edges)
    for src, tgt in back_edges:
        log.record(DiagnosticCode.CYCLE, f"{src}->{tgt}")
    graph.remove_edges_from(back_edges)

    ranks: dict[str, int] = {node_id: 0 for node_id in graph.nodes}
    for node_id in order:
        next_rank = ranks[node_id] + 1
        for succ in graph.successors(node_id):
            if ranks[succ] < next_rank:
                ranks[succ] = next_rank

    kept = [e for e in edge_list if e.key not in dropped and graph.has_edge(*e.key)]
    removed = [e for e in edge_list if e.key in dropped]

    return RankAssignment(ranks=ranks, edges=kept, dropped_edges=removed, diagnostics=log.summarize())


def bind_ref_ranks(refs: Iterable[RefPointer], ranks: Mapping[str, int]) -> dict[str, int]:
    """Place each ref one rank before its target commit, clamped at rank 0.

    A clamped ref shares its target's rank and is laid out beside it. Refs whose
    target has no rank are skipped.
    """
    bound: dict[str, int] = {}
    for ref in refs:
        target_rank = ranks.get(ref.target_commit_id)
        if target_rank is None:
            continue
        bound[ref.name] = max(target_rank - 1, 0)
    return bound
