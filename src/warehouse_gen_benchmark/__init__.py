"""Benchmark GEN1 vs GEN2 warehouses: timings, credit estimates and comparison reports."""

__version__ = "1.0.0"

from .benchmark import WarehouseGenerationBenchmark, Workload
from .rates import RateTable, estimate_cost, estimate_costs
from .record import BASELINE, CANDIDATE, ExecutionRecord
from .report import ComparisonRow, compare, summarize
from .store import ResultsStore

__all__ = [
    "BASELINE",
    "CANDIDATE",
    "ComparisonRow",
    "ExecutionRecord",
    "RateTable",
    "ResultsStore",
    "WarehouseGenerationBenchmark",
    "Workload",
    "compare",
    "estimate_cost",
    "estimate_costs",
    "summarize",
]
