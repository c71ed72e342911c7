"""Static credit rates and cost estimation.

Hourly credit rates per warehouse size. The candidate generation bills a
higher hourly rate than the baseline (1.35x on AWS/GCP, 1.25x on Azure) but
is expected to finish work sooner, so per-query credits should still drop.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Mapping, Tuple

from .record import BASELINE, CANDIDATE, ExecutionRecord

logger = logging.getLogger(__name__)

SIZES = ["X-Small", "Small", "Medium", "Large", "X-Large", "2X-Large", "3X-Large", "4X-Large"]

BASELINE_RATES = dict(zip(SIZES, [1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 64.0, 128.0]))

CANDIDATE_RATES = {
    "aws": dict(zip(SIZES, [1.35, 2.7, 5.4, 10.8, 21.6, 43.2, 86.4, 172.8])),
    "gcp": dict(zip(SIZES, [1.35, 2.7, 5.4, 10.8, 21.6, 43.2, 86.4, 172.8])),
    "azure": dict(zip(SIZES, [1.25, 2.5, 5.0, 10.0, 20.0, 40.0, 80.0, 160.0])),
}

# Baseline Medium
DEFAULT_FALLBACK_RATE = 4.0

SECONDS_PER_HOUR = 3600.0


def canonical_size(size: str) -> str:
    """Map "medium", "X_SMALL", "2x-large" etc. to the names in SIZES.

    Unknown sizes are returned stripped but otherwise untouched.
    """
    key = size.strip().replace("_", "-").lower()
    for known in SIZES:
        if known.lower() == key:
            return known
    return size.strip()


@dataclass(frozen=True)
class RateTable:
    """Read-only mapping of (size, variant) -> credits per hour."""

    rates: Mapping[Tuple[str, str], float]
    fallback_rate: float = DEFAULT_FALLBACK_RATE
    cloud: str = field(default="aws", compare=False)

    def __post_init__(self):
        object.__setattr__(self, "rates", MappingProxyType(dict(self.rates)))

    @classmethod
    def for_cloud(cls, cloud: str = "aws", fallback_rate: float = DEFAULT_FALLBACK_RATE) -> "RateTable":
        cloud = cloud.lower()
        if cloud not in CANDIDATE_RATES:
            raise ValueError(f"Unknown cloud {cloud!r}, expected one of {sorted(CANDIDATE_RATES)}")
        rates = {(size, BASELINE): rate for size, rate in BASELINE_RATES.items()}
        rates.update({(size, CANDIDATE): rate for size, rate in CANDIDATE_RATES[cloud].items()})
        return cls(rates=rates, fallback_rate=fallback_rate, cloud=cloud)

    def hourly_rate(self, size: str, variant: str) -> float:
        rate = self.rates.get((canonical_size(size), variant))
        if rate is None:
            logger.warning(
                "No credit rate for size %r (%s); falling back to %.2f credits/hour",
                size, variant, self.fallback_rate,
            )
            return self.fallback_rate
        return rate


def estimate_cost(elapsed_seconds: float, size: str, variant: str, rate_table: RateTable) -> float:
    """Credits consumed by *elapsed_seconds* of activity on a warehouse."""
    return elapsed_seconds * rate_table.hourly_rate(size, variant) / SECONDS_PER_HOUR


def estimate_costs(records: Iterable[ExecutionRecord], rate_table: RateTable) -> List[ExecutionRecord]:
    """Fill in credits for every record that lacks them.

    Records that already carry a credit figure (e.g. from metering data) are
    passed through untouched.
    """
    estimated = []
    for record in records:
        if record.credits is None:
            record = record.with_credits(
                estimate_cost(record.elapsed_seconds, record.warehouse_size, record.variant, rate_table)
            )
        estimated.append(record)
    return estimated
