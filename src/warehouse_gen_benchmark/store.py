"""Append-only results table backed by a Spark managed table."""

from datetime import date
from typing import List, Optional

from pyspark.sql import Row, SparkSession
from pyspark.sql import functions as F
from pyspark.sql.types import (
    DateType,
    DoubleType,
    LongType,
    StringType,
    StructField,
    StructType,
    TimestampNTZType,
)

from .rates import RateTable, estimate_costs
from .record import ExecutionRecord

RESULTS_SCHEMA = StructType([
    StructField("test_id", StringType(), False),
    StructField("warehouse_name", StringType(), False),
    StructField("warehouse_size", StringType(), False),
    StructField("variant", StringType(), False),
    StructField("workload", StringType(), False),
    StructField("start_time", TimestampNTZType(), False),
    StructField("end_time", TimestampNTZType(), False),
    StructField("elapsed_seconds", DoubleType(), False),
    StructField("credits", DoubleType(), True),
    StructField("rows_processed", LongType(), False),
    StructField("test_date", DateType(), False),
    StructField("notes", StringType(), True),
])


def _to_row(record: ExecutionRecord) -> tuple:
    return (
        record.test_id,
        record.warehouse_name,
        record.warehouse_size,
        record.variant,
        record.workload,
        record.start_time,
        record.end_time,
        record.elapsed_seconds,
        record.credits,
        record.rows_processed,
        record.test_date,
        record.notes,
    )


def _from_row(row: Row) -> ExecutionRecord:
    return ExecutionRecord(
        test_id=row.test_id,
        warehouse_name=row.warehouse_name,
        warehouse_size=row.warehouse_size,
        variant=row.variant,
        workload=row.workload,
        start_time=row.start_time,
        end_time=row.end_time,
        rows_processed=row.rows_processed,
        test_date=row.test_date,
        notes=row.notes or "",
        credits=row.credits,
    )


class ResultsStore:
    """Persist ExecutionRecords, one row per (workload, warehouse) run.

    The table has no uniqueness constraint: re-running the harness on the
    same day appends a second row, and the reports decide which one counts.
    """

    def __init__(self, spark: SparkSession, table_name: str = "performance_test_results"):
        self.spark = spark
        self.table_name = table_name

    def exists(self) -> bool:
        return self.spark.catalog.tableExists(self.table_name)

    def store(self, record: ExecutionRecord) -> None:
        self.store_all([record])

    def store_all(self, records: List[ExecutionRecord]) -> None:
        if not records:
            return
        df = self.spark.createDataFrame([_to_row(r) for r in records], schema=RESULTS_SCHEMA)
        df.write.mode("append").saveAsTable(self.table_name)

    def fetch(self, test_date: date) -> List[ExecutionRecord]:
        """All records for *test_date*, oldest run first within each workload."""
        if not self.exists():
            return []
        rows = (
            self.spark.table(self.table_name)
            .where(F.col("test_date") == F.lit(test_date))
            .orderBy("workload", "variant", "end_time")
            .collect()
        )
        return [_from_row(row) for row in rows]

    def fetch_all(self) -> List[ExecutionRecord]:
        if not self.exists():
            return []
        rows = self.spark.table(self.table_name).orderBy("test_date", "workload", "variant", "end_time").collect()
        return [_from_row(row) for row in rows]

    def backfill_costs(self, rate_table: RateTable, test_date: Optional[date] = None) -> int:
        """Estimate credits for stored records lacking them. Returns the number filled.

        Only records on *test_date* are touched when given. The table is
        rewritten from driver-side rows, so this suits results tables of
        benchmark size, not large logs.
        """
        records = self.fetch_all()
        pending = [
            r for r in records
            if r.credits is None and (test_date is None or r.test_date == test_date)
        ]
        if not pending:
            return 0
        filled = {id(r): e for r, e in zip(pending, estimate_costs(pending, rate_table))}
        updated = [filled.get(id(r), r) for r in records]
        df = self.spark.createDataFrame([_to_row(r) for r in updated], schema=RESULTS_SCHEMA)
        df.write.mode("overwrite").saveAsTable(self.table_name)
        return len(pending)

    def drop(self) -> None:
        self.spark.sql(f"DROP TABLE IF EXISTS {self.table_name}")
