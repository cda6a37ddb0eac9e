import pytest

from diversion.records import DispositionClass, WeightRecord


@pytest.fixture
def balanced_records():
    """Paper 100 kg, food 50 kg, no reuse, mixed 150 kg."""
    return {
        DispositionClass.RECYCLING: [WeightRecord("paper", 100, DispositionClass.RECYCLING)],
        DispositionClass.COMPOST: [WeightRecord("food", 50, DispositionClass.COMPOST)],
        DispositionClass.REUSE: [],
        DispositionClass.LANDFILL: [WeightRecord("mixed", 150, DispositionClass.LANDFILL)],
    }


@pytest.fixture
def monthly_records():
    """A month with several materials per class, including a zero entry."""
    R, C, U, L = (DispositionClass.RECYCLING, DispositionClass.COMPOST,
                  DispositionClass.REUSE, DispositionClass.LANDFILL)
    return {
        R: [
            WeightRecord("Cardboard", 120.5, R),
            WeightRecord("PET", 30.25, R),
            WeightRecord("cardboard", 9.5, R),
            WeightRecord("Aluminum", 0, R),
            WeightRecord("Glass", 44, R),
        ],
        C: [WeightRecord("Food", 310.75, C), WeightRecord("Green waste", 80, C)],
        U: [WeightRecord("Glass donation", 12, U)],
        L: [WeightRecord("Mixed", 95.5, L)],
    }
