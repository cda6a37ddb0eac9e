"""
One-call period report: build, validate and score a reporting period.

A host passes the period's records (and optionally a graph it has edited
itself) and gets back one dict with the graph, the validation report, the
diversion figures, certification flags and plain-language notes.
"""

import math
from typing import Mapping, Optional

from .config import EngineConfig, LabelConfig
from .metrics import certification_flags, diversion_from_breakdown, diversion_from_graph
from .model import FlowGraph, normalize_buckets, build_flow_graph, flows_table, to_sankey_inputs
from .records import DispositionClass
from .validation import validate_flow_graph


def _class_totals(buckets):
    totals = {cls: 0.0 for cls in DispositionClass}
    for cls, records in buckets.items():
        totals[cls] = math.fsum(r.kilograms for r in records)
    return totals


def _target_messages(diversion, flags, config):
    if flags["certified"]:
        return [f"Diversion of {diversion.diversion_rate_percent:.1f}% meets the "
                f"{config.certification_threshold:.0f}% certification target."]
    if diversion.total_generated > 0:
        return [f"{flags['gap_to_target']:.1f} percentage points short of the "
                f"{config.certification_threshold:.0f}% certification target."]
    return []


def build_period_report(records_by_class: Mapping, period: str = "", labels: Optional[LabelConfig] = None,
                        config: Optional[EngineConfig] = None, material_breakdown: bool = False,
                        graph: Optional[FlowGraph] = None) -> dict:
    """Build, validate and score one reporting period.

    ``graph`` replaces the built graph when the host has adjusted routes by
    hand; the records still provide the raw class totals. When the graph
    fails validation the diversion figures fall back to those raw totals and
    the graph is marked as not renderable.
    """
    config = config or EngineConfig()
    buckets = normalize_buckets(records_by_class)
    assumptions = []

    # ---------- Graph ----------
    if graph is None:
        graph = build_flow_graph(buckets, labels, material_breakdown=material_breakdown)
    validation = validate_flow_graph(graph, config)

    # ---------- Assumptions ----------
    if graph.is_empty:
        assumptions.append("No waste recorded for this period; all totals are 0 kg.")

    zero_records = [r.label for recs in buckets.values() for r in recs if r.kilograms == 0]
    if zero_records:
        assumptions.append(f"{len(zero_records)} record(s) with 0 kg kept but not drawn: {', '.join(zero_records[:5])}")

    # ---------- Diversion ----------
    if validation.is_valid:
        diversion = diversion_from_graph(graph, config)
    else:
        totals = _class_totals(buckets)
        diversion = diversion_from_breakdown(
            totals[DispositionClass.RECYCLING],
            totals[DispositionClass.COMPOST],
            totals[DispositionClass.REUSE],
            totals[DispositionClass.LANDFILL],
            config,
        )
        assumptions.append("Flow graph failed validation; diversion computed from raw class totals.")

    flags = certification_flags(diversion, config)

    return {
        "period": period,
        "graph": graph,
        "validation": validation,
        "renderable": validation.is_valid and not graph.is_empty,
        "diversion": diversion,
        "flags": flags,
        "flows_table": flows_table(graph) if validation.is_valid else None,
        "sankey": to_sankey_inputs(graph) if validation.is_valid else None,
        "messages": _target_messages(diversion, flags, config),
        "assumptions": assumptions,
        "warnings": list(validation.warnings),
        "errors": list(validation.errors),
    }
