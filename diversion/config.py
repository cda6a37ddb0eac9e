"""Engine thresholds and flow-graph labels.

The sample-adequacy rule, mass-balance tolerance and certification targets
come from the certification body's audit methodology, so they are read from
configuration instead of being baked into the calculations.

Example YAML::

    mass_balance_tolerance: 0.01
    min_sample_kg: 50
    min_sample_fraction: 0.10
    certification_threshold: 90
    labels:
      source: "Events & Facilities"
      process:
        recycling: "Recyclables"
    materials:
      paper: recycling
      mixed: landfill
    logging:
      level: DEBUG
      file: logs/diversion.log
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError
from .logging_config import configure_logging
from .records import ClassificationTable, DispositionClass


@dataclass(frozen=True)
class EngineConfig:
    mass_balance_tolerance: float = 0.01
    min_sample_kg: float = 50.0
    min_sample_fraction: float = 0.10
    certification_threshold: float = 90.0
    excellence_threshold: float = 95.0
    display_decimals: int = 2

    def __post_init__(self):
        if not 0 < self.mass_balance_tolerance < 1:
            raise ConfigError(f"mass_balance_tolerance must be in (0, 1), got {self.mass_balance_tolerance}")
        if self.min_sample_kg < 0:
            raise ConfigError(f"min_sample_kg must be >= 0, got {self.min_sample_kg}")
        if not 0 <= self.min_sample_fraction <= 1:
            raise ConfigError(f"min_sample_fraction must be in [0, 1], got {self.min_sample_fraction}")
        for name in ("certification_threshold", "excellence_threshold"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ConfigError(f"{name} must be a percentage, got {value}")
        if self.display_decimals < 0:
            raise ConfigError(f"display_decimals must be >= 0, got {self.display_decimals}")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "EngineConfig":
        data = data or {}
        base = cls()
        return cls(
            mass_balance_tolerance=float(data.get("mass_balance_tolerance", base.mass_balance_tolerance)),
            min_sample_kg=float(data.get("min_sample_kg", base.min_sample_kg)),
            min_sample_fraction=float(data.get("min_sample_fraction", base.min_sample_fraction)),
            certification_threshold=float(data.get("certification_threshold", base.certification_threshold)),
            excellence_threshold=float(data.get("excellence_threshold", base.excellence_threshold)),
            display_decimals=int(data.get("display_decimals", base.display_decimals)),
        )


DEFAULT_PROCESS_LABELS = {
    DispositionClass.RECYCLING: "Recyclables",
    DispositionClass.COMPOST: "Organics",
    DispositionClass.REUSE: "Reuse",
    DispositionClass.LANDFILL: "Inorganics",
}

DEFAULT_DESTINATION_LABELS = {
    DispositionClass.RECYCLING: "Recycling Facility",
    DispositionClass.COMPOST: "Composting Facility",
    DispositionClass.REUSE: "Donation Center",
    DispositionClass.LANDFILL: "Landfill",
}


@dataclass(frozen=True)
class LabelConfig:
    """Display labels for the flow graph. Ids never depend on these."""

    source: str = "Total Generated"
    process: Mapping[DispositionClass, str] = field(default_factory=lambda: dict(DEFAULT_PROCESS_LABELS))
    destination: Mapping[DispositionClass, str] = field(default_factory=lambda: dict(DEFAULT_DESTINATION_LABELS))

    def process_label(self, cls: DispositionClass) -> str:
        return self.process.get(cls, DEFAULT_PROCESS_LABELS[cls])

    def destination_label(self, cls: DispositionClass) -> str:
        return self.destination.get(cls, DEFAULT_DESTINATION_LABELS[cls])

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "LabelConfig":
        data = data or {}
        labels = cls()
        process = dict(labels.process)
        process.update(_class_keys(data.get("process")))
        destination = dict(labels.destination)
        destination.update(_class_keys(data.get("destination")))
        return replace(labels, source=str(data.get("source", labels.source)),
                       process=process, destination=destination)


def _class_keys(section) -> Dict[DispositionClass, str]:
    return {DispositionClass.parse(k): str(v) for k, v in (section or {}).items()}


@dataclass(frozen=True)
class LoadedConfig:
    engine: EngineConfig
    labels: LabelConfig
    materials: ClassificationTable
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def configure_logging(self):
        return configure_logging(self.log_level, self.log_file)


def load_config(path) -> LoadedConfig:
    """Read engine thresholds, labels and the material table from a YAML file."""
    text = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    log_section = data.get("logging") or {}
    if not isinstance(log_section, dict):
        raise ConfigError(f"{path}: the logging section must be a mapping")
    return LoadedConfig(
        engine=EngineConfig.from_mapping(data),
        labels=LabelConfig.from_mapping(data.get("labels")),
        materials=ClassificationTable(data.get("materials") or {}),
        log_level=str(log_section.get("level", "INFO")),
        log_file=log_section.get("file"),
    )
