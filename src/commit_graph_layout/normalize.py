"""Graph data normalizer: raw API payload → clean commit/edge/ref sets.

Order of checks:
  1. Commits: entries without a usable id are dropped; repeated ids keep the
     first occurrence.
  2. Edges: malformed entries, self-loops, repeated pairs and edges whose
     endpoints are not both known commits are dropped.
  3. Refs: malformed entries, unknown kinds, repeated names and refs whose
     target is not a known commit are dropped.

Nothing here raises on payload data. Every drop is recorded in the returned
diagnostics. Acyclicity is not checked; ranking repairs cycles.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from commit_graph_layout.diagnostics import Diagnostic, DiagnosticCode, DiagnosticLog
from commit_graph_layout.schema import RawEdge, RawGraph, RawNode, RawRef
from commit_graph_layout.types import CommitNode, Edge, EdgeKind, GraphPayload, RefKind, RefPointer

# Name conventions the backend uses for ref node ids. Only consulted when an
# entry carries no explicit type.
_REF_NAME_PREFIXES: tuple[tuple[str, RefKind], ...] = (
    ("branch_", RefKind.BRANCH),
    ("tag_", RefKind.TAG),
    ("HEAD", RefKind.HEAD),
)


@dataclass
class NormalizeResult:
    payload: GraphPayload
    diagnostics: list[Diagnostic] = field(default_factory=list)


def normalize(raw: RawGraph | Mapping[str, Any] | None) -> NormalizeResult:
    """Validate and clean a raw graph payload."""
    graph = _coerce_graph(raw)
    log = DiagnosticLog()

    nodes = _collect_commits(graph.nodes, log)
    edges = _collect_edges(graph.edges, nodes, log)
    refs = _collect_refs(graph.refs, nodes, log)

    return NormalizeResult(
        payload=GraphPayload(nodes=nodes, edges=edges, refs=refs),
        diagnostics=log.summarize(),
    )


def _coerce_graph(raw: RawGraph | Mapping[str, Any] | None) -> RawGraph:
    if isinstance(raw, RawGraph):
        return raw
    if not isinstance(raw, Mapping):
        return RawGraph()
    return RawGraph.model_validate(dict(raw))


def _entry_repr(entry: Any) -> str:
    if isinstance(entry, Mapping):
        for key in ("id", "name", "source"):
            value = entry.get(key)
            if isinstance(value, str) and value:
                return value
    return repr(entry)


def _collect_commits(entries: list[Any], log: DiagnosticLog) -> dict[str, CommitNode]:
    nodes: dict[str, CommitNode] = {}
    for entry in entries:
        try:
            raw_node = RawNode.model_validate(entry)
        except ValidationError:
            log.record(DiagnosticCode.MALFORMED_NODE, _entry_repr(entry))
            continue
        if raw_node.id in nodes:
            log.record(DiagnosticCode.DUPLICATE_NODE, raw_node.id)
            continue
        nodes[raw_node.id] = CommitNode.from_label(raw_node.id, raw_node.label)
    return nodes


def _collect_edges(entries: list[Any], nodes: dict[str, CommitNode], log: DiagnosticLog) -> list[Edge]:
    edges: list[Edge] = []
    seen: set[tuple[str, str]] = set()
    for entry in entries:
        try:
            raw_edge = RawEdge.model_validate(entry)
        except ValidationError:
            log.record(DiagnosticCode.MALFORMED_EDGE, _entry_repr(entry))
            continue

        key = (raw_edge.source, raw_edge.target)
        subject = f"{raw_edge.source}->{raw_edge.target}"
        if raw_edge.source == raw_edge.target:
            log.record(DiagnosticCode.SELF_LOOP, subject)
        elif raw_edge.source not in nodes or raw_edge.target not in nodes:
            log.record(DiagnosticCode.DANGLING_EDGE, subject)
        elif key in seen:
            log.record(DiagnosticCode.DUPLICATE_EDGE, subject)
        else:
            seen.add(key)
            edges.append(Edge(source_id=raw_edge.source, target_id=raw_edge.target, kind=EdgeKind.PARENT))
    return edges


def ref_kind_for(name: str, declared: str | None) -> RefKind | None:
    """Resolve a ref's kind from its declared type, else from its name.

    Returns None when neither gives a known kind.
    """
    if declared is not None:
        try:
            return RefKind(declared.lower())
        except ValueError:
            return None
    for prefix, kind in _REF_NAME_PREFIXES:
        if name.startswith(prefix):
            return kind
    return None


def _collect_refs(entries: list[Any], nodes: dict[str, CommitNode], log: DiagnosticLog) -> list[RefPointer]:
    refs: list[RefPointer] = []
    names: set[str] = set()
    for entry in entries:
        try:
            raw_ref = RawRef.model_validate(entry)
        except ValidationError:
            log.record(DiagnosticCode.MALFORMED_REF, _entry_repr(entry))
            continue

        kind = ref_kind_for(raw_ref.name, raw_ref.type)
        if kind is None:
            log.record(DiagnosticCode.MALFORMED_REF, raw_ref.name)
            continue
        if raw_ref.target not in nodes:
            log.record(DiagnosticCode.DANGLING_REF, f"{raw_ref.name}->{raw_ref.target}")
            continue
        if raw_ref.name in names or raw_ref.name in nodes:
            log.record(DiagnosticCode.DUPLICATE_REF, raw_ref.name)
            continue

        names.add(raw_ref.name)
        refs.append(
            RefPointer(
                name=raw_ref.name,
                display_label=raw_ref.label or raw_ref.name,
                kind=kind,
                target_commit_id=raw_ref.target,
            )
        )
    return refs
