"""Weight records, disposition classes and the material classification table."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Union

from .errors import InvalidInputError


class DispositionClass(str, Enum):
    RECYCLING = "recycling"
    COMPOST = "compost"
    REUSE = "reuse"
    LANDFILL = "landfill"

    @property
    def is_diverted(self) -> bool:
        return self is not DispositionClass.LANDFILL

    @classmethod
    def parse(cls, value) -> "DispositionClass":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        raise InvalidInputError(f"Unknown disposition class: {value!r}")


def check_weight(value, what: str = "weight") -> float:
    """Return ``value`` as a float, rejecting negative and non-finite numbers."""
    try:
        kg = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{what} is not a number: {value!r}") from None
    if math.isnan(kg) or math.isinf(kg):
        raise InvalidInputError(f"{what} must be finite, got {value!r}")
    if kg < 0:
        raise InvalidInputError(f"{what} must be >= 0 kg, got {kg}")
    return kg


@dataclass(frozen=True)
class WeightRecord:
    label: str
    kilograms: float
    disposition_class: DispositionClass

    def __post_init__(self):
        object.__setattr__(self, "kilograms", check_weight(self.kilograms, f"Weight of {self.label!r}"))
        object.__setattr__(self, "disposition_class", DispositionClass.parse(self.disposition_class))


def group_records(records: Iterable[WeightRecord]) -> Dict[DispositionClass, List[WeightRecord]]:
    """Bucket a flat record list by disposition class, in enum order."""
    grouped: Dict[DispositionClass, List[WeightRecord]] = {cls: [] for cls in DispositionClass}
    for rec in records:
        grouped[rec.disposition_class].append(rec)
    return grouped


def normalize_material(name: str) -> str:
    return re.sub(r"\s+", " ", str(name)).strip().lower()


ClassificationValue = Union[DispositionClass, str, bool]


class ClassificationTable:
    """Material name -> disposition class (or a bare divertible flag).

    Names are matched case- and whitespace-insensitively. Materials missing
    from the table are treated as non-divertible.
    """

    def __init__(self, entries: Optional[Mapping[str, ClassificationValue]] = None):
        self._classes: Dict[str, Optional[DispositionClass]] = {}
        self._divertible: Dict[str, bool] = {}
        for name, value in (entries or {}).items():
            key = normalize_material(name)
            if isinstance(value, bool):
                self._classes[key] = None
                self._divertible[key] = value
            else:
                cls = DispositionClass.parse(value)
                self._classes[key] = cls
                self._divertible[key] = cls.is_diverted

    def __contains__(self, name) -> bool:
        return normalize_material(name) in self._divertible

    def __len__(self):
        return len(self._divertible)

    def is_divertible(self, name: str) -> bool:
        return self._divertible.get(normalize_material(name), False)

    def disposition_for(self, name: str) -> Optional[DispositionClass]:
        return self._classes.get(normalize_material(name))

    def unknown(self, names: Iterable[str]) -> List[str]:
        seen = []
        for name in names:
            if name not in self and name not in seen:
                seen.append(name)
        return seen


DEFAULT_MATERIALS = {
    "mixed paper": DispositionClass.RECYCLING,
    "office paper": DispositionClass.RECYCLING,
    "paper": DispositionClass.RECYCLING,
    "magazines": DispositionClass.RECYCLING,
    "newspaper": DispositionClass.RECYCLING,
    "cardboard": DispositionClass.RECYCLING,
    "pet": DispositionClass.RECYCLING,
    "hdpe": DispositionClass.RECYCLING,
    "rigid plastic": DispositionClass.RECYCLING,
    "tin can": DispositionClass.RECYCLING,
    "aluminum": DispositionClass.RECYCLING,
    "glass": DispositionClass.RECYCLING,
    "food": DispositionClass.COMPOST,
    "organics": DispositionClass.COMPOST,
    "green waste": DispositionClass.COMPOST,
    "glass donation": DispositionClass.REUSE,
    "donations": DispositionClass.REUSE,
    "mixed": DispositionClass.LANDFILL,
    "sanitary": DispositionClass.LANDFILL,
    "inorganic": DispositionClass.LANDFILL,
}


def default_classification() -> ClassificationTable:
    return ClassificationTable(DEFAULT_MATERIALS)
