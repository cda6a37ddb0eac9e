"""
Tests for audit.py - quartering-audit extrapolation and sample adequacy.
"""

import pytest

from diversion.audit import (
    AuditSample,
    ExtrapolatedRecord,
    audit_warnings,
    composition_by_class,
    compute_extrapolation_factor,
    diversion_from_extrapolation,
    extrapolate,
    extrapolate_audit,
    is_sample_adequate,
    sample_percentage,
    summarize_audit,
)
from diversion.config import EngineConfig
from diversion.errors import InvalidInputError
from diversion.records import ClassificationTable, DispositionClass, WeightRecord


@pytest.fixture
def table():
    return ClassificationTable({"paper": "recycling", "food": "compost", "mixed": "landfill"})


@pytest.fixture
def sample():
    return AuditSample(
        total_weight_before_quartering=200,
        remaining_weight_after_quartering=50,
        sampled_materials=[
            WeightRecord("paper", 10, DispositionClass.RECYCLING),
            WeightRecord("mixed", 15, DispositionClass.LANDFILL),
        ],
    )


class TestExtrapolationFactor:

    def test_ratio(self, sample):
        assert compute_extrapolation_factor(sample) == 4.0

    def test_zero_remaining_gives_one(self):
        s = AuditSample(total_weight_before_quartering=500, remaining_weight_after_quartering=0)
        assert compute_extrapolation_factor(s) == 1

    def test_negative_weights_rejected(self):
        with pytest.raises(InvalidInputError):
            AuditSample(total_weight_before_quartering=-1, remaining_weight_after_quartering=5)
        with pytest.raises(InvalidInputError):
            AuditSample(total_weight_before_quartering=10, remaining_weight_after_quartering=-5)


class TestExtrapolate:

    def test_scenario(self, sample, table):
        records = extrapolate(sample, table)
        assert [(r.label, r.kilograms) for r in records] == [("paper", 40.0), ("mixed", 60.0)]
        assert records[0].disposition_class is DispositionClass.RECYCLING
        assert records[0].divertible
        assert not records[1].divertible
        assert records[0].sample_kilograms == 10

    def test_records_are_weight_records(self, sample, table):
        assert all(isinstance(r, WeightRecord) for r in extrapolate_audit(sample, table))

    def test_unknown_material_is_non_divertible(self, table):
        s = AuditSample(100, 20, [WeightRecord("styrofoam", 5, DispositionClass.RECYCLING)])
        (rec,) = extrapolate(s, table)
        assert rec.divertible is False

    def test_empty_sample(self, table):
        s = AuditSample(300, 60)
        assert extrapolate(s, table) == []
        result = diversion_from_extrapolation([])
        assert result.total_generated == 0
        assert result.diversion_rate_percent == 0

    def test_default_table_used_when_none_given(self, sample):
        records = extrapolate(sample)
        assert records[0].divertible


class TestDiversionFromExtrapolation:

    def test_scenario_rate(self, sample, table):
        result = diversion_from_extrapolation(extrapolate(sample, table))
        assert result.total_generated == 100
        assert result.breakdown.recycled == 40
        assert result.breakdown.landfilled == 60
        assert result.diversion_rate_percent == 40.0

    def test_non_divertible_recycling_goes_to_landfill(self):
        records = [ExtrapolatedRecord("foam", 8, DispositionClass.RECYCLING, divertible=False)]
        result = diversion_from_extrapolation(records)
        assert result.breakdown.landfilled == 8
        assert result.breakdown.recycled == 0

    def test_divertible_landfill_record_stays_landfilled(self):
        records = [ExtrapolatedRecord("wood", 8, DispositionClass.LANDFILL, divertible=True)]
        assert diversion_from_extrapolation(records).total_diverted == 0


class TestSampleAdequacy:

    def test_small_sample_flag(self):
        s = AuditSample(total_weight_before_quartering=300, remaining_weight_after_quartering=20)
        assert is_sample_adequate(s) is False

    def test_heavy_sample_is_adequate(self):
        assert is_sample_adequate(AuditSample(10_000, 50))

    def test_large_fraction_is_adequate(self):
        assert is_sample_adequate(AuditSample(100, 10))

    def test_zero_total(self):
        assert not is_sample_adequate(AuditSample(0, 0))

    def test_thresholds_configurable(self):
        s = AuditSample(300, 20)
        assert is_sample_adequate(s, EngineConfig(min_sample_kg=20))
        assert is_sample_adequate(s, EngineConfig(min_sample_fraction=0.05))


class TestAuditWarnings:

    def test_clean_sample_has_no_warnings(self, sample, table):
        assert audit_warnings(sample, table) == []

    def test_remaining_exceeds_total(self, table):
        warnings = audit_warnings(AuditSample(40, 60), table)
        assert any("exceeds" in w for w in warnings)

    def test_small_sample(self, table):
        warnings = audit_warnings(AuditSample(300, 20), table)
        assert any("too small" in w for w in warnings)

    def test_overweight_characterization(self, table):
        s = AuditSample(200, 50, [WeightRecord("paper", 60, DispositionClass.RECYCLING)])
        assert any("weigh more" in w for w in audit_warnings(s, table))

    def test_unknown_material(self, table):
        s = AuditSample(200, 50, [WeightRecord("foam", 5, DispositionClass.LANDFILL)])
        warnings = audit_warnings(s, table)
        assert any("'foam'" in w for w in warnings)


class TestSummary:

    def test_summarize(self, sample, table):
        summary = summarize_audit(sample, table)
        assert summary.extrapolation_factor == 4.0
        assert summary.is_sample_adequate
        assert summary.sample_percentage == pytest.approx(12.5)
        assert summary.result.diversion_rate_percent == 40.0
        assert summary.flags["certified"] is False
        assert list(summary.composition["material"]) == ["mixed", "paper"]
        assert summary.warnings == ()

    def test_by_class(self, sample, table):
        df = composition_by_class(extrapolate(sample, table))
        assert list(df["disposition_class"]) == ["landfill", "recycling"]
        assert list(df["extrapolated_kg"]) == [60.0, 40.0]

    def test_empty_sample_summary(self, table):
        summary = summarize_audit(AuditSample(0, 0), table)
        assert summary.records == ()
        assert summary.result.total_generated == 0
        assert summary.composition.empty
        assert sample_percentage(AuditSample(0, 0)) == 0
