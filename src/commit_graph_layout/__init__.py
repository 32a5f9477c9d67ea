"""Commit graph construction and layered layout."""

from commit_graph_layout.config import LayoutConfig
from commit_graph_layout.diagnostics import Diagnostic, DiagnosticCode
from commit_graph_layout.engine import GraphLayout, build_render_model
from commit_graph_layout.layout import layout
from commit_graph_layout.normalize import normalize
from commit_graph_layout.projection import project
from commit_graph_layout.ranking import assign_ranks, bind_ref_ranks
from commit_graph_layout.types import (
    CommitNode,
    Direction,
    Edge,
    EdgeKind,
    NodeKind,
    RefKind,
    RefPointer,
    RenderModel,
)

__all__ = [
    "CommitNode",
    "Diagnostic",
    "DiagnosticCode",
    "Direction",
    "Edge",
    "EdgeKind",
    "GraphLayout",
    "LayoutConfig",
    "NodeKind",
    "RefKind",
    "RefPointer",
    "RenderModel",
    "assign_ranks",
    "bind_ref_ranks",
    "build_render_model",
    "layout",
    "normalize",
    "project",
]
