"""Quartering-audit extrapolation.

A quartering audit weighs the whole waste pile, halves/quarters it until a
manageable sample remains, then sorts and weighs that sample by material.
Scaling each material by ``total / remaining`` estimates the population,
which then goes through the same diversion calculation as metered data.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .config import EngineConfig
from .metrics import BREAKDOWN_KEYS, CLASS_TO_KEY, Breakdown, DiversionResult, result_from_breakdown, certification_flags
from .records import ClassificationTable, DispositionClass, WeightRecord, check_weight, default_classification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditSample:
    total_weight_before_quartering: float
    remaining_weight_after_quartering: float
    sampled_materials: Tuple[WeightRecord, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "total_weight_before_quartering",
                           check_weight(self.total_weight_before_quartering, "Total weight before quartering"))
        object.__setattr__(self, "remaining_weight_after_quartering",
                           check_weight(self.remaining_weight_after_quartering, "Remaining weight after quartering"))
        object.__setattr__(self, "sampled_materials", tuple(self.sampled_materials))

    @property
    def characterized_weight(self) -> float:
        return math.fsum(r.kilograms for r in self.sampled_materials)


@dataclass(frozen=True)
class ExtrapolatedRecord(WeightRecord):
    divertible: bool = False
    sample_kilograms: float = 0.0


def compute_extrapolation_factor(sample: AuditSample) -> float:
    """``total / remaining``; 1 when nothing remains, since an empty sample carries no scale."""
    if sample.remaining_weight_after_quartering == 0:
        return 1.0
    return sample.total_weight_before_quartering / sample.remaining_weight_after_quartering


def extrapolate(sample: AuditSample, table: Optional[ClassificationTable] = None) -> List[ExtrapolatedRecord]:
    table = table if table is not None else default_classification()
    factor = compute_extrapolation_factor(sample)
    return [
        ExtrapolatedRecord(
            label=r.label,
            kilograms=r.kilograms * factor,
            disposition_class=r.disposition_class,
            divertible=table.is_divertible(r.label),
            sample_kilograms=r.kilograms,
        )
        for r in sample.sampled_materials
    ]


extrapolate_audit = extrapolate


def diversion_from_extrapolation(records: Sequence[ExtrapolatedRecord],
                                 config: Optional[EngineConfig] = None) -> DiversionResult:
    """Divertible records count toward their class; the rest is landfilled."""
    parts: Dict[str, list] = {k: [] for k in BREAKDOWN_KEYS}
    for r in records:
        cls = r.disposition_class if r.divertible else DispositionClass.LANDFILL
        parts[CLASS_TO_KEY[cls]].append(r.kilograms)
    return result_from_breakdown(Breakdown(**{k: math.fsum(v) for k, v in parts.items()}), config)


def sample_fraction(sample):
    total = sample.total_weight_before_quartering
    return sample.remaining_weight_after_quartering / total if total > 0 else 0.0


def is_sample_adequate(sample: AuditSample, config: Optional[EngineConfig] = None) -> bool:
    config = config or EngineConfig()
    return (sample.remaining_weight_after_quartering >= config.min_sample_kg
            or sample_fraction(sample) >= config.min_sample_fraction)


def sample_percentage(sample):
    """Characterized (sorted and weighed) sample as a percentage of the pile."""
    total = sample.total_weight_before_quartering
    return sample.characterized_weight / total * 100.0 if total > 0 else 0.0


def audit_warnings(sample: AuditSample, table: Optional[ClassificationTable] = None,
                   config: Optional[EngineConfig] = None) -> List[str]:
    config = config or EngineConfig()
    table = table if table is not None else default_classification()
    total = sample.total_weight_before_quartering
    remaining = sample.remaining_weight_after_quartering
    warnings = []

    if total < remaining:
        warnings.append(f"Remaining sample ({remaining:,.1f} kg) exceeds the weight before quartering ({total:,.1f} kg).")
    if not is_sample_adequate(sample, config):
        warnings.append(
            f"Sample too small: {remaining:,.1f} kg is under {config.min_sample_kg:,.0f} kg "
            f"and {sample_fraction(sample) * 100:.1f}% is under {config.min_sample_fraction * 100:.0f}% of the pile."
        )
    if remaining > 0 and sample.characterized_weight > remaining:
        warnings.append(
            f"Characterized materials ({sample.characterized_weight:,.1f} kg) weigh more than the remaining sample."
        )
    for name in table.unknown(r.label for r in sample.sampled_materials):
        warnings.append(f"Material '{name}' is not in the classification table; counted as non-divertible.")
    return warnings


def composition_table(records: Sequence[ExtrapolatedRecord]) -> pd.DataFrame:
    """Extrapolated kg per material, largest first."""
    columns = ["material", "disposition_class", "sample_kg", "extrapolated_kg", "divertible"]
    df = pd.DataFrame(
        [{"material": r.label, "disposition_class": r.disposition_class.value, "sample_kg": r.sample_kilograms,
          "extrapolated_kg": r.kilograms, "divertible": r.divertible} for r in records],
        columns=columns,
    )
    return df.sort_values("extrapolated_kg", ascending=False, kind="mergesort").reset_index(drop=True)


def composition_by_class(records):
    """Extrapolated kg and material count per disposition class."""
    df = composition_table(records)
    out = (df.groupby("disposition_class", sort=False)
             .agg(extrapolated_kg=("extrapolated_kg", "sum"), materials=("material", "count"))
             .reset_index())
    return out.sort_values("extrapolated_kg", ascending=False, kind="mergesort").reset_index(drop=True)


@dataclass(frozen=True, eq=False)
class AuditSummary:
    extrapolation_factor: float
    records: Tuple[ExtrapolatedRecord, ...]
    result: DiversionResult
    is_sample_adequate: bool
    sample_percentage: float
    warnings: Tuple[str, ...]
    flags: Dict[str, object] = field(default_factory=dict)
    composition: Optional[pd.DataFrame] = None
    by_class: Optional[pd.DataFrame] = None


def summarize_audit(sample: AuditSample, table: Optional[ClassificationTable] = None,
                    config: Optional[EngineConfig] = None) -> AuditSummary:
    config = config or EngineConfig()
    records = extrapolate(sample, table)
    result = diversion_from_extrapolation(records, config)
    warnings = audit_warnings(sample, table, config)
    if warnings:
        logger.info("Audit produced %d warning(s)", len(warnings))
    return AuditSummary(
        extrapolation_factor=compute_extrapolation_factor(sample),
        records=tuple(records),
        result=result,
        is_sample_adequate=is_sample_adequate(sample, config),
        sample_percentage=sample_percentage(sample),
        warnings=tuple(warnings),
        flags=certification_flags(result, config),
        composition=composition_table(records),
        by_class=composition_by_class(records),
    )
