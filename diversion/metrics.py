"""Diversion rate calculations.

Rates are always derived from absolute kilogram totals. Combining periods
sums the totals and recomputes the rate; percentages are never averaged.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Union

import pandas as pd

from .config import EngineConfig
from .errors import InvalidInputError
from .model import FlowGraph, FlowNode, NodeRole
from .records import DispositionClass, check_weight

logger = logging.getLogger(__name__)

BREAKDOWN_KEYS = ("recycled", "composted", "reused", "landfilled")

CLASS_TO_KEY = {
    DispositionClass.RECYCLING: "recycled",
    DispositionClass.COMPOST: "composted",
    DispositionClass.REUSE: "reused",
    DispositionClass.LANDFILL: "landfilled",
}

# Fallback for destination nodes whose id does not follow destination_<class>.
# Landfill is checked first so "recycling residue to landfill" stays landfilled.
DESTINATION_KEYWORDS = (
    ("landfill", DispositionClass.LANDFILL),
    ("recycl", DispositionClass.RECYCLING),
    ("compost", DispositionClass.COMPOST),
    ("reuse", DispositionClass.REUSE),
    ("donation", DispositionClass.REUSE),
)

# "non-recyclable", "not compostable", "no reuse"
NEGATED_WORD = re.compile(r"\b(?:non-?|not\s+|no\s+)\w+")


@dataclass(frozen=True)
class Breakdown:
    recycled: float = 0.0
    composted: float = 0.0
    reused: float = 0.0
    landfilled: float = 0.0

    @property
    def diverted(self) -> float:
        return self.recycled + self.composted + self.reused

    @property
    def total(self) -> float:
        return self.recycled + self.composted + self.reused + self.landfilled

    def as_dict(self) -> Dict[str, float]:
        return {k: getattr(self, k) for k in BREAKDOWN_KEYS}


@dataclass(frozen=True)
class DiversionResult:
    total_generated: float
    total_diverted: float
    diversion_rate_percent: float
    breakdown: Breakdown


def _rate(diverted: float, generated: float) -> float:
    return diverted / generated * 100.0 if generated > 0 else 0.0


def result_from_breakdown(breakdown: Breakdown, config: Optional[EngineConfig]) -> DiversionResult:
    config = config or EngineConfig()
    generated = breakdown.total
    diverted = breakdown.diverted
    return DiversionResult(
        total_generated=generated,
        total_diverted=diverted,
        diversion_rate_percent=round(_rate(diverted, generated), config.display_decimals),
        breakdown=breakdown,
    )


def diversion_from_breakdown(recycled, composted, reused, landfilled,
                             config: Optional[EngineConfig] = None) -> DiversionResult:
    breakdown = Breakdown(
        recycled=check_weight(recycled, "recycled"),
        composted=check_weight(composted, "composted"),
        reused=check_weight(reused, "reused"),
        landfilled=check_weight(landfilled, "landfilled"),
    )
    return result_from_breakdown(breakdown, config)


def _keyword_class(text: str) -> Optional[DispositionClass]:
    text = NEGATED_WORD.sub(" ", text.lower().replace("_", " "))
    for keyword, cls in DESTINATION_KEYWORDS:
        if keyword in text:
            return cls
    return None


def destination_class(node: FlowNode) -> Optional[DispositionClass]:
    """Disposition class encoded in a destination node's id, else its id/label keywords.

    Negated words ("non-recyclable", "not compostable") never count toward a
    diverted class.
    """
    prefix = "destination_"
    if node.id.startswith(prefix):
        try:
            return DispositionClass.parse(node.id[len(prefix):])
        except InvalidInputError:
            pass
    for text in (node.id, str(node.display_label)):
        cls = _keyword_class(text)
        if cls is not None:
            return cls
    return None


def diversion_from_graph(graph: FlowGraph, config: Optional[EngineConfig] = None) -> DiversionResult:
    """Sum edges entering destination nodes, bucketed by disposition class.

    Destinations that cannot be classified count as landfilled.
    """
    destinations = {n.id: n for n in graph.nodes if n.role == NodeRole.DESTINATION}
    sums: Dict[str, list] = {k: [] for k in BREAKDOWN_KEYS}
    unclassified = set()

    for e in graph.edges:
        node = destinations.get(e.target_node_id)
        if node is None:
            continue
        try:
            kg = float(e.kilograms)
        except (TypeError, ValueError):
            continue
        if not math.isfinite(kg):
            continue
        cls = destination_class(node)
        if cls is None:
            unclassified.add(node.id)
            cls = DispositionClass.LANDFILL
        sums[CLASS_TO_KEY[cls]].append(kg)

    if unclassified:
        logger.warning("Counting unclassified destination(s) %s as landfill", sorted(unclassified))

    breakdown = Breakdown(**{k: max(math.fsum(v), 0.0) for k, v in sums.items()})
    return result_from_breakdown(breakdown, config)


def compute_diversion(data: Union[FlowGraph, Breakdown, Mapping[str, float]],
                      config: Optional[EngineConfig] = None) -> DiversionResult:
    if isinstance(data, FlowGraph):
        return diversion_from_graph(data, config)
    if isinstance(data, Breakdown):
        values = data.as_dict()
    elif isinstance(data, Mapping):
        unknown = set(data) - set(BREAKDOWN_KEYS)
        if unknown:
            raise InvalidInputError(f"Unknown breakdown keys: {sorted(unknown)}")
        values = {k: data.get(k, 0.0) for k in BREAKDOWN_KEYS}
    else:
        raise InvalidInputError(f"Cannot compute diversion from {type(data).__name__}")
    return diversion_from_breakdown(config=config, **values)


def combine_results(results: Iterable[DiversionResult], config: Optional[EngineConfig] = None) -> DiversionResult:
    """Merge several periods by summing their kilogram totals."""
    parts: Dict[str, list] = {k: [] for k in BREAKDOWN_KEYS}
    for r in results:
        for k, v in r.breakdown.as_dict().items():
            parts[k].append(v)
    return result_from_breakdown(Breakdown(**{k: math.fsum(v) for k, v in parts.items()}), config)


def is_certified(result: DiversionResult, config: Optional[EngineConfig] = None) -> bool:
    config = config or EngineConfig()
    return result.diversion_rate_percent >= config.certification_threshold


def certification_flags(result: DiversionResult, config: Optional[EngineConfig] = None) -> Dict[str, object]:
    config = config or EngineConfig()
    rate = result.diversion_rate_percent
    return {
        "certified": rate >= config.certification_threshold,
        "excellent": rate >= config.excellence_threshold,
        "gap_to_target": round(max(config.certification_threshold - rate, 0.0), config.display_decimals),
    }


def period_table(results_by_period: Mapping[str, DiversionResult],
                 config: Optional[EngineConfig] = None) -> pd.DataFrame:
    """One row per period plus a ``Total`` row recomputed from summed kilograms."""
    columns = ["period", *BREAKDOWN_KEYS, "total_generated", "total_diverted", "diversion_rate_percent"]
    rows = []
    for period, r in results_by_period.items():
        rows.append({"period": period, **r.breakdown.as_dict(), "total_generated": r.total_generated,
                     "total_diverted": r.total_diverted, "diversion_rate_percent": r.diversion_rate_percent})
    total = combine_results(results_by_period.values(), config)
    rows.append({"period": "Total", **total.breakdown.as_dict(), "total_generated": total.total_generated,
                 "total_diverted": total.total_diverted, "diversion_rate_percent": total.diversion_rate_percent})
    return pd.DataFrame(rows, columns=columns)
