"""Comparison and summary reports over recorded executions.

Everything here works on already-fetched ExecutionRecords and performs no
I/O apart from the ``print_*`` helpers.
"""

import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .record import BASELINE, CANDIDATE, GENERATIONS, VARIANTS, ExecutionRecord

logger = logging.getLogger(__name__)

NOT_APPLICABLE = "not applicable"

# Dollars per credit
DEFAULT_CREDIT_PRICE = 2.00


def percent_reduction(baseline: Optional[float], candidate: Optional[float]) -> Optional[float]:
    """(baseline - candidate) / baseline * 100, or None when undefined."""
    if baseline is None or candidate is None or baseline == 0:
        return None
    return (baseline - candidate) / baseline * 100


def format_pct(value: Optional[float]) -> str:
    return NOT_APPLICABLE if value is None else f"{value:.1f}%"


def pct_value(value: Optional[float]) -> object:
    """Percentage for file output: rounded to one place, or 'not applicable'."""
    return NOT_APPLICABLE if value is None else round(value, 1)


def _winner(baseline: Optional[float], candidate: Optional[float], better: str, same: str) -> str:
    if baseline is None or candidate is None:
        return NOT_APPLICABLE
    if candidate < baseline:
        return f"Gen2 {better}"
    if candidate > baseline:
        return f"Gen1 {better}"
    return same


@dataclass(frozen=True)
class ComparisonRow:
    """Baseline vs candidate execution of one workload."""

    workload: str
    baseline: ExecutionRecord
    candidate: ExecutionRecord
    speed_improvement_pct: Optional[float]
    cost_reduction_pct: Optional[float]

    @property
    def performance_winner(self) -> str:
        return _winner(
            self.baseline.elapsed_seconds, self.candidate.elapsed_seconds, "Faster", "Same Speed"
        )

    @property
    def cost_winner(self) -> str:
        return _winner(self.baseline.credits, self.candidate.credits, "Cheaper", "Same Cost")

    def to_dict(self) -> Dict[str, object]:
        return {
            "workload": self.workload,
            "gen1_seconds": self.baseline.elapsed_seconds,
            "gen2_seconds": self.candidate.elapsed_seconds,
            "speed_improvement_pct": pct_value(self.speed_improvement_pct),
            "gen1_credits": self.baseline.credits,
            "gen2_credits": self.candidate.credits,
            "cost_reduction_pct": pct_value(self.cost_reduction_pct),
            "performance_winner": self.performance_winner,
            "cost_winner": self.cost_winner,
        }


@dataclass(frozen=True)
class VariantSummary:
    variant: str
    test_count: int
    avg_elapsed_seconds: float
    avg_credits: Optional[float]
    total_elapsed_seconds: float
    total_credits: float
    estimated_total_cost: float

    @property
    def generation(self) -> str:
        return GENERATIONS[self.variant]

    def to_dict(self) -> Dict[str, object]:
        return {
            "variant": self.variant,
            "generation": self.generation,
            "test_count": self.test_count,
            "avg_elapsed_seconds": round(self.avg_elapsed_seconds, 2),
            "avg_credits": None if self.avg_credits is None else round(self.avg_credits, 6),
            "total_elapsed_seconds": round(self.total_elapsed_seconds, 2),
            "total_credits": round(self.total_credits, 6),
            "estimated_total_cost": round(self.estimated_total_cost, 4),
        }


@dataclass(frozen=True)
class OverallComparison:
    baseline_seconds: float
    candidate_seconds: float
    baseline_credits: float
    candidate_credits: float

    @property
    def speed_improvement_pct(self) -> Optional[float]:
        return percent_reduction(self.baseline_seconds, self.candidate_seconds)

    @property
    def cost_reduction_pct(self) -> Optional[float]:
        return percent_reduction(self.baseline_credits, self.candidate_credits)

    def to_dict(self) -> Dict[str, object]:
        return {
            "gen1_total_seconds": round(self.baseline_seconds, 2),
            "gen2_total_seconds": round(self.candidate_seconds, 2),
            "speed_improvement_pct": pct_value(self.speed_improvement_pct),
            "gen1_total_credits": round(self.baseline_credits, 6),
            "gen2_total_credits": round(self.candidate_credits, 6),
            "cost_reduction_pct": pct_value(self.cost_reduction_pct),
        }


# ------------------------------------------------------------------
# Record selection
# ------------------------------------------------------------------

def latest_records(records: Iterable[ExecutionRecord]) -> Dict[Tuple[str, str], ExecutionRecord]:
    """Keep one record per (workload, variant); the most recent run wins.

    "Most recent" is the latest end_time. On equal end_times the record seen
    last wins.
    """
    selected: Dict[Tuple[str, str], ExecutionRecord] = {}
    for record in records:
        key = (record.workload, record.variant)
        current = selected.get(key)
        if current is None:
            selected[key] = record
            continue
        logger.warning(
            "Duplicate %s record for %s (ends %s and %s); keeping the most recent",
            record.variant, record.workload, current.end_time, record.end_time,
        )
        if record.end_time >= current.end_time:
            selected[key] = record
    return selected


# ------------------------------------------------------------------
# Reports
# ------------------------------------------------------------------

def compare(records: Iterable[ExecutionRecord]) -> List[ComparisonRow]:
    """Pair baseline and candidate runs per workload, fastest gain first.

    Workloads recorded for only one variant are left out. Rows whose speed
    delta is not applicable sort last.
    """
    selected = latest_records(records)
    workloads = sorted({workload for workload, _ in selected})

    rows = []
    for workload in workloads:
        baseline = selected.get((workload, BASELINE))
        candidate = selected.get((workload, CANDIDATE))
        if baseline is None or candidate is None:
            continue
        rows.append(ComparisonRow(
            workload=workload,
            baseline=baseline,
            candidate=candidate,
            speed_improvement_pct=percent_reduction(baseline.elapsed_seconds, candidate.elapsed_seconds),
            cost_reduction_pct=percent_reduction(baseline.credits, candidate.credits),
        ))

    rows.sort(key=lambda r: (r.speed_improvement_pct is None, -(r.speed_improvement_pct or 0.0)))
    return rows


def summarize(
    records: Iterable[ExecutionRecord],
    credit_price: float = DEFAULT_CREDIT_PRICE,
) -> List[VariantSummary]:
    """Per-variant roll-up of elapsed time and credits.

    Records without a credit estimate count towards elapsed figures only.
    """
    by_variant: Dict[str, List[ExecutionRecord]] = defaultdict(list)
    for record in latest_records(records).values():
        by_variant[record.variant].append(record)

    summaries = []
    for variant in VARIANTS:
        group = by_variant.get(variant)
        if not group:
            continue
        elapsed = [r.elapsed_seconds for r in group]
        credits = [r.credits for r in group if r.credits is not None]
        total_credits = sum(credits)
        summaries.append(VariantSummary(
            variant=variant,
            test_count=len(group),
            avg_elapsed_seconds=statistics.fmean(elapsed),
            avg_credits=statistics.fmean(credits) if credits else None,
            total_elapsed_seconds=sum(elapsed),
            total_credits=total_credits,
            estimated_total_cost=total_credits * credit_price,
        ))
    return summaries


def overall_comparison(records: Iterable[ExecutionRecord]) -> OverallComparison:
    totals = {variant: [0.0, 0.0] for variant in VARIANTS}
    for record in latest_records(records).values():
        totals[record.variant][0] += record.elapsed_seconds
        totals[record.variant][1] += record.credits or 0.0
    return OverallComparison(
        baseline_seconds=totals[BASELINE][0],
        candidate_seconds=totals[CANDIDATE][0],
        baseline_credits=totals[BASELINE][1],
        candidate_credits=totals[CANDIDATE][1],
    )


def detailed_listing(
    records: Iterable[ExecutionRecord], credit_price: float = DEFAULT_CREDIT_PRICE,
) -> List[Dict[str, object]]:
    """Every raw record, duplicates included, with throughput and dollar cost."""
    listing = []
    for record in sorted(records, key=lambda r: (r.workload, r.generation, r.end_time)):
        elapsed = record.elapsed_seconds
        row = record.to_dict()
        row["rows_per_second"] = round(record.rows_processed / elapsed) if elapsed > 0 else None
        row["credits_per_hour"] = (
            round(record.credits / elapsed * 3600, 4)
            if elapsed > 0 and record.credits is not None else None
        )
        row["estimated_cost"] = (
            round(record.credits * credit_price, 4) if record.credits is not None else None
        )
        listing.append(row)
    return listing


def results_overview(records: Iterable[ExecutionRecord]) -> Dict[str, object]:
    records = list(records)
    first: Optional[datetime] = min((r.start_time for r in records), default=None)
    last: Optional[datetime] = max((r.end_time for r in records), default=None)
    return {
        "total_tests_run": len(records),
        "unique_test_types": len({r.workload for r in records}),
        "first_test_time": first.isoformat() if first else None,
        "last_test_time": last.isoformat() if last else None,
    }


def comparison_frame(rows: Iterable[ComparisonRow]) -> pd.DataFrame:
    """Comparison rows as a DataFrame, one row per workload."""
    return pd.DataFrame(
        [row.to_dict() for row in rows],
        columns=[
            "workload", "gen1_seconds", "gen2_seconds", "speed_improvement_pct",
            "gen1_credits", "gen2_credits", "cost_reduction_pct",
            "performance_winner", "cost_winner",
        ],
    )


# ------------------------------------------------------------------
# Console output
# ------------------------------------------------------------------

def print_report(
    records: List[ExecutionRecord],
    credit_price: float = DEFAULT_CREDIT_PRICE,
) -> None:
    overview = results_overview(records)
    print(f"\n{'=' * 78}")
    print("GEN2 VS GEN1 WAREHOUSE COMPARISON")
    print(f"{'=' * 78}")
    print(
        f"Tests run: {overview['total_tests_run']}  |  "
        f"Workloads: {overview['unique_test_types']}  |  "
        f"{overview['first_test_time']} -> {overview['last_test_time']}"
    )

    print(f"\n{'─' * 78}")
    print(f"{'Workload':<28} {'Gen1 (s)':>9} {'Gen2 (s)':>9} {'Speed':>15} {'Cost':>15}")
    print(f"{'─' * 78}")
    for row in compare(records):
        print(
            f"{row.workload:<28} {row.baseline.elapsed_seconds:>9.3f} "
            f"{row.candidate.elapsed_seconds:>9.3f} "
            f"{format_pct(row.speed_improvement_pct):>15} {format_pct(row.cost_reduction_pct):>15}"
        )

    print(f"\n{'─' * 78}")
    print(f"{'Generation':<12} {'Tests':>6} {'Avg (s)':>9} {'Total (s)':>10} {'Credits':>12} {'Cost ($)':>10}")
    print(f"{'─' * 78}")
    for summary in summarize(records, credit_price=credit_price):
        print(
            f"{summary.generation:<12} {summary.test_count:>6} {summary.avg_elapsed_seconds:>9.2f} "
            f"{summary.total_elapsed_seconds:>10.2f} {summary.total_credits:>12.6f} "
            f"{summary.estimated_total_cost:>10.4f}"
        )

    overall = overall_comparison(records)
    print(f"\n{'=' * 78}")
    print(
        f"Overall: speed {format_pct(overall.speed_improvement_pct)}, "
        f"credits {format_pct(overall.cost_reduction_pct)}"
    )
    print(f"{'=' * 78}")
