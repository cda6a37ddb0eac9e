"""
diversion: Waste Diversion Analytics Engine

This package contains:
- weight records, disposition classes and the material classification table
- flow graph builder (source -> category -> destination) + Sankey inputs
- flow graph validator (structure + mass balance)
- diversion rate calculator, period combination, certification flags
- quartering-audit extrapolation
- DataFrame ingestion and a one-call period report
"""

from .audit import AuditSample, ExtrapolatedRecord, compute_extrapolation_factor, extrapolate_audit
from .config import EngineConfig, LabelConfig, load_config
from .errors import ConfigError, EngineError, InvalidInputError, StructuralGraphError
from .ingest import records_from_frame
from .logging_config import configure_logging
from .metrics import Breakdown, DiversionResult, compute_diversion
from .model import FlowEdge, FlowGraph, FlowNode, NodeRole, build_flow_graph
from .records import ClassificationTable, DispositionClass, WeightRecord
from .report import build_period_report
from .validation import ValidationReport, validate_flow_graph

__all__ = [
    "AuditSample",
    "Breakdown",
    "ClassificationTable",
    "ConfigError",
    "DispositionClass",
    "DiversionResult",
    "EngineConfig",
    "EngineError",
    "ExtrapolatedRecord",
    "FlowEdge",
    "FlowGraph",
    "FlowNode",
    "InvalidInputError",
    "LabelConfig",
    "NodeRole",
    "StructuralGraphError",
    "ValidationReport",
    "WeightRecord",
    "build_flow_graph",
    "build_period_report",
    "compute_diversion",
    "compute_extrapolation_factor",
    "configure_logging",
    "extrapolate_audit",
    "load_config",
    "records_from_frame",
    "validate_flow_graph",
]
