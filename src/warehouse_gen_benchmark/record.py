"""Execution record dataclass."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Any, Dict, Optional

BASELINE = "baseline"
CANDIDATE = "candidate"
VARIANTS = (BASELINE, CANDIDATE)

GENERATIONS = {BASELINE: "GEN1", CANDIDATE: "GEN2"}


@dataclass(frozen=True)
class ExecutionRecord:
    """One run of one workload against one warehouse."""

    test_id: str            # e.g. "DML_UPDATE_TEST_2025-06-01"
    warehouse_name: str     # e.g. "TEST_GEN1_MEDIUM"
    warehouse_size: str     # "X-Small" .. "4X-Large"
    variant: str            # "baseline" or "candidate"
    workload: str           # e.g. "Customer_Update_DML"
    start_time: datetime
    end_time: datetime
    rows_processed: int     # author estimate, not an exact count
    test_date: date
    notes: str = ""
    credits: Optional[float] = None  # None until estimated

    def __post_init__(self):
        if self.variant not in VARIANTS:
            raise ValueError(f"Unknown variant {self.variant!r}, expected one of {VARIANTS}")
        if self.end_time < self.start_time:
            raise ValueError(
                f"{self.workload} on {self.warehouse_name}: end_time {self.end_time} "
                f"precedes start_time {self.start_time}"
            )

    @property
    def elapsed_seconds(self) -> float:
        return (self.end_time - self.start_time).total_seconds()

    @property
    def generation(self) -> str:
        return GENERATIONS[self.variant]

    def with_credits(self, credits: float) -> "ExecutionRecord":
        return replace(self, credits=credits)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_id": self.test_id,
            "warehouse_name": self.warehouse_name,
            "warehouse_size": self.warehouse_size,
            "variant": self.variant,
            "generation": self.generation,
            "workload": self.workload,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "elapsed_seconds": round(self.elapsed_seconds, 6),
            "credits": None if self.credits is None else round(self.credits, 6),
            "rows_processed": self.rows_processed,
            "test_date": self.test_date.isoformat(),
            "notes": self.notes,
        }
