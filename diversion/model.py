"""Flow graph model: generation source -> disposition category -> destination.

``build_flow_graph`` aggregates weight records into an immutable
``FlowGraph``. ``to_sankey_inputs`` and ``flows_table`` turn a graph into the
plain index lists / DataFrame a chart or export layer consumes.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from .config import LabelConfig
from .errors import InvalidInputError, StructuralGraphError
from .records import DispositionClass, WeightRecord, normalize_material

logger = logging.getLogger(__name__)

SOURCE_ID = "source_total"


class NodeRole(str, Enum):
    SOURCE = "source"
    PROCESS = "process"
    DESTINATION = "destination"


@dataclass(frozen=True)
class FlowNode:
    id: str
    display_label: str
    role: NodeRole


@dataclass(frozen=True)
class FlowEdge:
    source_node_id: str
    target_node_id: str
    kilograms: float


@dataclass(frozen=True)
class FlowGraph:
    nodes: Tuple[FlowNode, ...] = ()
    edges: Tuple[FlowEdge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def get_node(self, node_id: str) -> FlowNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise StructuralGraphError(f"No node with id {node_id!r} in flow graph")

    def nodes_with_role(self, role) -> List[FlowNode]:
        role = NodeRole(role)
        return [n for n in self.nodes if n.role == role]

    def outflow(self, node_id: str) -> float:
        self.get_node(node_id)
        return math.fsum(e.kilograms for e in self.edges if e.source_node_id == node_id)

    def inflow(self, node_id: str) -> float:
        self.get_node(node_id)
        return math.fsum(e.kilograms for e in self.edges if e.target_node_id == node_id)


def process_id(cls: DispositionClass) -> str:
    return f"process_{cls.value}"


def destination_id(cls: DispositionClass) -> str:
    return f"destination_{cls.value}"


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", normalize_material(text)).strip("_") or "material"


def _material_totals(records: List[WeightRecord]) -> List[Tuple[str, float]]:
    """(display label, kg) per material, first-appearance order, positive totals only."""
    if not records:
        return []
    df = pd.DataFrame({
        "key": [normalize_material(r.label) for r in records],
        "label": [r.label for r in records],
        "kg": [r.kilograms for r in records],
    })
    grouped = df.groupby("key", sort=False).agg(label=("label", "first"), kg=("kg", "sum"))
    return [(row.label, float(row.kg)) for row in grouped.itertuples() if row.kg > 0]


def normalize_buckets(records_by_class) -> Dict[DispositionClass, List[WeightRecord]]:
    out: Dict[DispositionClass, List[WeightRecord]] = {}
    for key, records in (records_by_class or {}).items():
        cls = DispositionClass.parse(key)
        bucket = out.setdefault(cls, [])
        for rec in records or []:
            if not isinstance(rec, WeightRecord):
                raise InvalidInputError(f"Expected WeightRecord in {cls.value!r} bucket, got {type(rec).__name__}")
            if rec.disposition_class is not cls:
                raise InvalidInputError(
                    f"Record {rec.label!r} is tagged {rec.disposition_class.value!r} but was filed under {cls.value!r}"
                )
            bucket.append(rec)
    return out


def build_flow_graph(
    records_by_class: Mapping,
    labels: Optional[LabelConfig] = None,
    material_breakdown: bool = False,
) -> FlowGraph:
    """Aggregate records into a source -> process -> destination graph.

    Classes with no mass produce no nodes. With ``material_breakdown`` each
    material gets its own process node between the category and the
    destination; the category total is the sum of those material flows.
    """
    labels = labels or LabelConfig()
    buckets = normalize_buckets(records_by_class)

    nodes: List[FlowNode] = []
    edges: List[FlowEdge] = []
    used_ids = set()

    def add_node(node_id, label, role):
        if node_id not in used_ids:
            used_ids.add(node_id)
            nodes.append(FlowNode(node_id, label, role))

    for cls in DispositionClass:
        materials = _material_totals(buckets.get(cls, []))
        total = math.fsum(kg for _, kg in materials)
        if total <= 0:
            continue

        add_node(SOURCE_ID, labels.source, NodeRole.SOURCE)
        add_node(process_id(cls), labels.process_label(cls), NodeRole.PROCESS)
        edges.append(FlowEdge(SOURCE_ID, process_id(cls), total))

        if material_breakdown:
            for label, kg in materials:
                base = f"material_{cls.value}_{_slug(label)}"
                node_id, n = base, 2
                while node_id in used_ids:
                    node_id = f"{base}_{n}"
                    n += 1
                add_node(node_id, label, NodeRole.PROCESS)
                edges.append(FlowEdge(process_id(cls), node_id, kg))
                edges.append(FlowEdge(node_id, destination_id(cls), kg))
        else:
            edges.append(FlowEdge(process_id(cls), destination_id(cls), total))

        add_node(destination_id(cls), labels.destination_label(cls), NodeRole.DESTINATION)

    graph = FlowGraph(nodes=tuple(nodes), edges=tuple(edges))
    if graph.is_empty:
        logger.debug("No waste mass in input; returning empty flow graph")
    else:
        logger.debug("Built flow graph with %d nodes and %d edges", len(nodes), len(edges))
    return graph


def _edge_kind(source: FlowNode, target: FlowNode) -> str:
    if source.role == NodeRole.SOURCE:
        return "generation"
    if target.role == NodeRole.DESTINATION:
        return "disposition"
    return "material"


def flows_table(graph: FlowGraph) -> pd.DataFrame:
    """One row per edge: from / to display labels, kg and flow kind."""
    rows = []
    for e in graph.edges:
        src = graph.get_node(e.source_node_id)
        dst = graph.get_node(e.target_node_id)
        rows.append({"from": src.display_label, "to": dst.display_label, "kg": e.kilograms, "kind": _edge_kind(src, dst)})
    return pd.DataFrame(rows, columns=["from", "to", "kg", "kind"])


def to_sankey_inputs(graph: FlowGraph) -> Dict[str, list]:
    """Index-based node/link lists for a Sankey chart."""
    idx = {node_id: i for i, node_id in enumerate(graph.node_ids())}
    sources, targets, values = [], [], []
    for e in graph.edges:
        for node_id in (e.source_node_id, e.target_node_id):
            if node_id not in idx:
                raise StructuralGraphError(f"Edge references unknown node {node_id!r}")
        sources.append(idx[e.source_node_id])
        targets.append(idx[e.target_node_id])
        values.append(float(e.kilograms))
    return {
        "labels": [n.display_label for n in graph.nodes],
        "ids": graph.node_ids(),
        "sources": sources,
        "targets": targets,
        "values": values,
    }


def merge_record_sets(record_sets: Iterable[Mapping]) -> Dict[DispositionClass, List[WeightRecord]]:
    """Concatenate several periods' class buckets into one input for a combined graph."""
    merged: Dict[DispositionClass, List[WeightRecord]] = {}
    for rs in record_sets:
        for cls, records in normalize_buckets(rs).items():
            merged.setdefault(cls, []).extend(records)
    return merged
