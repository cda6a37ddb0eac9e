"""
Tests for validation.py - structural and mass-balance checks.
"""

import logging
import math

import pytest

from diversion.config import EngineConfig
from diversion.model import FlowEdge, FlowGraph, FlowNode, NodeRole, build_flow_graph
from diversion.records import WeightRecord
from diversion.validation import validate_flow_graph


def _chain(source_kg, destination_kg):
    """source -> process -> destination with independently set edge weights."""
    return FlowGraph(
        nodes=[
            FlowNode("source_total", "Total", NodeRole.SOURCE),
            FlowNode("process_recycling", "Recyclables", NodeRole.PROCESS),
            FlowNode("destination_recycling", "Recycling Facility", NodeRole.DESTINATION),
        ],
        edges=[
            FlowEdge("source_total", "process_recycling", source_kg),
            FlowEdge("process_recycling", "destination_recycling", destination_kg),
        ],
    )


class TestValidGraphs:

    def test_built_graph_is_valid(self, balanced_records):
        report = validate_flow_graph(build_flow_graph(balanced_records))
        assert report.is_valid
        assert report.errors == ()
        assert report.warnings == ()
        assert report.source_total == 300
        assert report.destination_total == 300

    def test_breakdown_graph_is_valid(self, monthly_records):
        report = validate_flow_graph(build_flow_graph(monthly_records, material_breakdown=True))
        assert report.is_valid
        assert report.mass_balance_ratio == 0

    def test_empty_graph_is_trivially_balanced(self):
        report = validate_flow_graph(FlowGraph())
        assert report.is_valid
        assert report.source_total == 0
        assert report.destination_total == 0


class TestStructuralChecks:

    def test_dangling_edge(self):
        graph = FlowGraph(
            nodes=[FlowNode("process_recycling", "Recyclables", NodeRole.PROCESS)],
            edges=[FlowEdge("ghost", "process_recycling", 10)],
        )
        report = validate_flow_graph(graph)
        assert not report.is_valid
        dangling = [e for e in report.errors if "dangling" in e.lower()]
        assert len(dangling) == 1
        assert "ghost" in dangling[0]
        assert len(report.errors) == 1

    def test_orphan_node_is_warning(self):
        graph = _chain(10, 10)
        graph = FlowGraph(nodes=graph.nodes + (FlowNode("destination_reuse", "Donation", NodeRole.DESTINATION),),
                          edges=graph.edges)
        report = validate_flow_graph(graph)
        assert report.is_valid
        assert len(report.warnings) == 1
        assert "destination_reuse" in report.warnings[0]

    def test_duplicate_node_id(self):
        graph = _chain(10, 10)
        graph = FlowGraph(nodes=graph.nodes + (graph.nodes[1],), edges=graph.edges)
        report = validate_flow_graph(graph)
        assert not report.is_valid
        assert any("duplicate" in e.lower() for e in report.errors)


class TestWeightChecks:

    def test_negative_weight(self):
        report = validate_flow_graph(_chain(-5, -5))
        assert not report.is_valid
        assert sum("negative" in e for e in report.errors) == 2

    def test_nan_weight(self):
        report = validate_flow_graph(_chain(10, math.nan))
        assert not report.is_valid
        assert any("non-numeric" in e for e in report.errors)

    def test_none_weight_does_not_raise(self):
        report = validate_flow_graph(_chain(10, None))
        assert not report.is_valid

    def test_zero_weight_edge_is_warning(self):
        graph = _chain(10, 10)
        graph = FlowGraph(nodes=graph.nodes,
                          edges=graph.edges + (FlowEdge("source_total", "process_recycling", 0),))
        report = validate_flow_graph(graph)
        assert report.is_valid
        assert any("zero weight" in w for w in report.warnings)


class TestMassBalance:

    def test_within_tolerance_is_silent(self):
        report = validate_flow_graph(_chain(100, 99.5))
        assert report.is_valid
        assert report.errors == ()

    def test_over_tolerance_is_error(self):
        report = validate_flow_graph(_chain(100, 90))
        assert not report.is_valid
        assert len(report.errors) == 1
        assert "mass balance" in report.errors[0].lower()
        assert report.mass_balance_ratio == pytest.approx(0.10)

    def test_tolerance_is_configurable(self):
        report = validate_flow_graph(_chain(100, 90), EngineConfig(mass_balance_tolerance=0.2))
        assert report.is_valid

    def test_builder_totals_match_exactly(self):
        records = {
            "recycling": [WeightRecord("a", 0.1, "recycling"), WeightRecord("b", 0.2, "recycling"),
                          WeightRecord("c", 0.3, "recycling")],
            "landfill": [WeightRecord("x", 1e-9, "landfill")],
        }
        report = validate_flow_graph(build_flow_graph(records, material_breakdown=True))
        assert report.is_valid
        assert report.source_total == report.destination_total
        assert report.mass_balance_ratio == 0

    def test_collects_every_problem(self):
        graph = FlowGraph(
            nodes=[FlowNode("source_total", "Total", NodeRole.SOURCE),
                   FlowNode("destination_landfill", "Landfill", NodeRole.DESTINATION)],
            edges=[FlowEdge("source_total", "ghost", 100), FlowEdge("ghost", "destination_landfill", -3)],
        )
        report = validate_flow_graph(graph)
        # two dangling edges, one negative weight, one mass balance mismatch
        assert len(report.errors) == 4

    def test_logs_invalid_report(self, caplog):
        with caplog.at_level(logging.WARNING, logger="diversion.validation"):
            validate_flow_graph(_chain(100, 50))
        assert "failed validation" in caplog.text


class TestPurity:

    def test_graph_unchanged(self, balanced_records):
        graph = build_flow_graph(balanced_records)
        before = (graph.nodes, graph.edges)
        validate_flow_graph(graph)
        assert (graph.nodes, graph.edges) == before
