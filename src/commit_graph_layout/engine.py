"""Full pipeline: raw payload → normalize → rank → layout → project."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from commit_graph_layout.config import DEFAULT_CONFIG, LayoutConfig
from commit_graph_layout.diagnostics import Diagnostic
from commit_graph_layout.layout import layout
from commit_graph_layout.normalize import normalize
from commit_graph_layout.projection import project
from commit_graph_layout.ranking import assign_ranks, bind_ref_ranks
from commit_graph_layout.schema import RawGraph
from commit_graph_layout.types import (
    Direction,
    Edge,
    EdgeKind,
    GraphPayload,
    NodeKind,
    RankedNode,
    RenderModel,
)

logger = logging.getLogger(__name__)


@dataclass
class GraphLayout:
    """Output of one pipeline run."""

    model: RenderModel
    diagnostics: list[Diagnostic] = field(default_factory=list)
    ranks: dict[str, int] = field(default_factory=dict)
    dropped_edges: list[Edge] = field(default_factory=list)
    crossings: int = 0

    @property
    def messages(self) -> list[str]:
        return [str(d) for d in self.diagnostics]


def ranked_nodes_for(payload: GraphPayload, ranks: Mapping[str, int], ref_ranks: Mapping[str, int]) -> list[RankedNode]:
    """Commits in input order, followed by refs in input order."""
    nodes = [
        RankedNode(id=commit.id, kind=NodeKind.COMMIT, label=commit.label, rank=ranks[commit.id])
        for commit in payload.nodes.values()
    ]
    for ref in payload.refs:
        if ref.name not in ref_ranks:
            continue
        nodes.append(
            RankedNode(
                id=ref.name,
                kind=NodeKind.REF,
                label=ref.display_label,
                rank=ref_ranks[ref.name],
                ref_kind=ref.kind,
            )
        )
    return nodes


def ref_edges_for(payload: GraphPayload) -> list[Edge]:
    return [Edge(source_id=ref.name, target_id=ref.target_commit_id, kind=EdgeKind.REF) for ref in payload.refs]


def build_render_model(
    raw: RawGraph | Mapping[str, Any] | None,
    config: LayoutConfig | None = None,
    direction: Direction | str | None = None,
) -> GraphLayout:
    """Run the whole pipeline on one payload snapshot.

    Never raises on payload data; problems are reported in ``diagnostics``.
    """
    config = config or DEFAULT_CONFIG

    normalized = normalize(raw)
    payload = normalized.payload
    if payload.is_empty():
        return GraphLayout(model=RenderModel(), diagnostics=normalized.diagnostics)

    ranking = assign_ranks(payload.nodes, payload.edges)
    ref_ranks = bind_ref_ranks(payload.refs, ranking.ranks)

    nodes = ranked_nodes_for(payload, ranking.ranks, ref_ranks)
    edges = ranking.edges + ref_edges_for(payload)
    result = layout(nodes, edges, direction=direction, config=config)

    diagnostics = normalized.diagnostics + ranking.diagnostics
    logger.debug(
        "laid out %d commits, %d refs, %d edges in %d ranks (%d crossings, %d diagnostics)",
        len(payload.nodes),
        len(payload.refs),
        len(edges),
        ranking.rank_count,
        result.crossings,
        len(diagnostics),
    )

    all_ranks = dict(ranking.ranks)
    all_ranks.update(ref_ranks)
    return GraphLayout(
        model=project(result.nodes, result.edges),
        diagnostics=diagnostics,
        ranks=all_ranks,
        dropped_edges=ranking.dropped_edges,
        crossings=result.crossings,
    )
