"""Structural and mass-balance checks for flow graphs.

The validator inspects a graph and returns a ``ValidationReport``. It never
raises on a malformed graph and never stops at the first problem, so one
report lists everything a caller needs to show.
"""

from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .config import EngineConfig
from .model import FlowGraph, NodeRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationReport:
    is_valid: bool
    errors: Tuple[str, ...]
    warnings: Tuple[str, ...]
    source_total: float
    destination_total: float

    @property
    def mass_balance_ratio(self) -> float:
        """Relative source/destination mismatch (0 when both sides are empty)."""
        return _relative_gap(self.source_total, self.destination_total)


def _relative_gap(a: float, b: float) -> float:
    denom = max(abs(a), abs(b))
    if denom == 0:
        return 0.0
    return abs(a - b) / denom


def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def validate_flow_graph(graph: FlowGraph, config: Optional[EngineConfig] = None) -> ValidationReport:
    config = config or EngineConfig()
    errors: List[str] = []
    warnings: List[str] = []

    # ---------- Structure ----------
    id_counts = Counter(n.id for n in graph.nodes)
    for node_id, count in id_counts.items():
        if count > 1:
            errors.append(f"Duplicate node id {node_id!r} appears {count} times")

    node_ids = set(id_counts)
    source_ids = {n.id for n in graph.nodes if n.role == NodeRole.SOURCE}
    destination_ids = {n.id for n in graph.nodes if n.role == NodeRole.DESTINATION}

    linked = set()
    for e in graph.edges:
        linked.add(e.source_node_id)
        linked.add(e.target_node_id)

    for node in graph.nodes:
        if node.id not in linked:
            warnings.append(f"Orphan node {node.id!r} ({node.display_label}) has no edges")

    # ---------- Weights ----------
    weights = np.array([_as_float(e.kilograms) for e in graph.edges], dtype=float)
    finite = np.isfinite(weights) if len(weights) else np.array([], dtype=bool)

    # Per-node lists, summed node by node so totals match the builder's own sums
    source_parts = defaultdict(list)
    destination_parts = defaultdict(list)
    for i, e in enumerate(graph.edges):
        missing = [x for x in (e.source_node_id, e.target_node_id) if x not in node_ids]
        if missing:
            errors.append(
                f"Dangling edge {e.source_node_id!r} -> {e.target_node_id!r}: "
                f"unknown node {', '.join(repr(m) for m in missing)}"
            )

        kg = weights[i]
        if not finite[i]:
            errors.append(f"Edge {e.source_node_id!r} -> {e.target_node_id!r} has non-numeric weight {e.kilograms!r}")
            continue
        if kg < 0:
            errors.append(f"Edge {e.source_node_id!r} -> {e.target_node_id!r} has negative weight {kg}")
        elif kg == 0:
            warnings.append(f"Edge {e.source_node_id!r} -> {e.target_node_id!r} has zero weight")

        if e.source_node_id in source_ids:
            source_parts[e.source_node_id].append(float(kg))
        if e.target_node_id in destination_ids:
            destination_parts[e.target_node_id].append(float(kg))

    # ---------- Mass balance ----------
    source_total = math.fsum(math.fsum(v) for v in source_parts.values())
    destination_total = math.fsum(math.fsum(v) for v in destination_parts.values())

    gap = _relative_gap(source_total, destination_total)
    if gap > config.mass_balance_tolerance:
        errors.append(
            f"Mass balance mismatch: source {source_total:.2f} kg vs destination "
            f"{destination_total:.2f} kg ({gap * 100:.2f}% > {config.mass_balance_tolerance * 100:.2f}%)"
        )

    report = ValidationReport(
        is_valid=not errors,
        errors=tuple(errors),
        warnings=tuple(warnings),
        source_total=source_total,
        destination_total=destination_total,
    )
    if errors:
        logger.warning("Flow graph failed validation with %d error(s): %s", len(errors), errors[0])
    return report
