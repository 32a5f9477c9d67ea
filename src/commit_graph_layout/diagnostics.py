"""Non-fatal diagnostics collected while normalizing and ranking a graph.

Nothing in the pipeline raises on bad payload data. Dropped entities are
recorded here instead and returned next to the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class DiagnosticCode(str, Enum):
    MALFORMED_NODE = "malformed_node"
    MALFORMED_EDGE = "malformed_edge"
    MALFORMED_REF = "malformed_ref"
    DUPLICATE_NODE = "duplicate_node"
    SELF_LOOP = "self_loop"
    DUPLICATE_EDGE = "duplicate_edge"
    DANGLING_EDGE = "dangling_edge"
    DUPLICATE_REF = "duplicate_ref"
    DANGLING_REF = "dangling_ref"
    CYCLE = "cycle"


# code → (entity noun, reason)
_REASONS: dict[DiagnosticCode, tuple[str, str]] = {
    DiagnosticCode.MALFORMED_NODE: ("node", "missing or invalid id"),
    DiagnosticCode.MALFORMED_EDGE: ("edge", "missing or invalid source/target"),
    DiagnosticCode.MALFORMED_REF: ("ref", "missing name, target or kind"),
    DiagnosticCode.DUPLICATE_NODE: ("node", "duplicate id, first occurrence kept"),
    DiagnosticCode.SELF_LOOP: ("edge", "self-loop"),
    DiagnosticCode.DUPLICATE_EDGE: ("edge", "duplicate source/target pair"),
    DiagnosticCode.DANGLING_EDGE: ("edge", "endpoint not in commit set"),
    DiagnosticCode.DUPLICATE_REF: ("ref", "duplicate name, first occurrence kept"),
    DiagnosticCode.DANGLING_REF: ("ref", "target commit not in commit set"),
    DiagnosticCode.CYCLE: ("edge", "back-edge closing a cycle"),
}

_WARNING_CODES = {DiagnosticCode.DANGLING_EDGE, DiagnosticCode.DANGLING_REF, DiagnosticCode.CYCLE}


@dataclass(frozen=True)
class Diagnostic:
    code: DiagnosticCode
    message: str
    subjects: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.subjects)

    def __str__(self) -> str:
        return self.message


@dataclass
class DiagnosticLog:
    """Collects dropped entities per code, in first-seen order."""

    _entries: dict[DiagnosticCode, list[str]] = field(default_factory=dict)

    def record(self, code: DiagnosticCode, subject: str) -> None:
        level = logging.WARNING if code in _WARNING_CODES else logging.DEBUG
        noun, reason = _REASONS[code]
        logger.log(level, "dropping %s %s: %s", noun, subject, reason)
        self._entries.setdefault(code, []).append(subject)

    def __bool__(self) -> bool:
        return bool(self._entries)

    def summarize(self) -> list[Diagnostic]:
        """One diagnostic per code, carrying the count and the reason."""
        out: list[Diagnostic] = []
        for code, subjects in self._entries.items():
            noun, reason = _REASONS[code]
            message = f"dropped {len(subjects)} {noun}(s): {reason} ({', '.join(subjects)})"
            out.append(Diagnostic(code=code, message=message, subjects=tuple(subjects)))
        return out
