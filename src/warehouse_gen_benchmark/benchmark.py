"""Warehouse generation benchmark: compare GEN1 and GEN2 warehouses.

Runs 6 workloads against a baseline (GEN1) and a candidate (GEN2) warehouse
of the same size, one after the other:

DML:
1. Customer_Update_DML        — single-column UPDATE on 10K customers
2. Bulk_Customer_Insert       — INSERT of 50K synthetic customers
3. Complex_Update_with_Joins  — UPDATE from an aggregated join
4. Large_Delete_Complex_WHERE — DELETE driven by a grouped anti-join

Analytics:
5. Complex_Customer_Analytics — segmentation with percentiles
6. Large_Table_Aggregation    — 3-way join aggregation

DML workloads rewrite the working tables. The tables are snapshotted before
the GEN1 run and restored before the GEN2 run, so both generations see the
same data; the GEN2 result carries forward to the next workload.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional

from pyspark.sql import SparkSession

from .rates import RateTable
from .record import BASELINE, VARIANTS, ExecutionRecord
from .store import ResultsStore
from .warehouse import SparkQueryExecutor, WarehouseProvisioner


@dataclass(frozen=True)
class Workload:
    """One named benchmark statement."""

    name: str
    test_prefix: str
    sql: str
    approx_rows: int
    note: str
    target: Optional[str] = None  # working table rewritten by a DML statement

    def test_id(self, test_date: date) -> str:
        return f"{self.test_prefix}_{test_date.isoformat()}"


# ------------------------------------------------------------------
# Workload statements
# ------------------------------------------------------------------

CUSTOMER_UPDATE_SQL = """
SELECT C_CUSTKEY, C_NAME, C_ADDRESS,
       CASE WHEN C_CUSTKEY <= 10000 THEN CAST((C_NATIONKEY + 1) % 25 AS INT)
            ELSE C_NATIONKEY END AS C_NATIONKEY,
       C_PHONE, C_ACCTBAL, C_MKTSEGMENT, C_COMMENT
FROM {customer}
"""

BULK_INSERT_SQL = """
SELECT * FROM {customer}
UNION ALL
SELECT C_CUSTKEY + 150000 AS C_CUSTKEY,
       concat('Customer_', CAST(C_CUSTKEY + 150000 AS STRING)) AS C_NAME,
       CASE C_CUSTKEY % 10
            WHEN 0 THEN '123 New Street'
            WHEN 1 THEN '456 Data Lane'
            WHEN 2 THEN '789 Cloud Ave'
            WHEN 3 THEN '321 Analytics Blvd'
            WHEN 4 THEN '654 Compute Dr'
            WHEN 5 THEN '987 Storage St'
            WHEN 6 THEN '147 Warehouse Way'
            WHEN 7 THEN '258 Performance Pl'
            WHEN 8 THEN '369 Scale Circle'
            ELSE '741 Benchmark Rd'
       END AS C_ADDRESS,
       C_NATIONKEY,
       concat('25-', lpad(CAST(C_CUSTKEY % 1000 AS STRING), 3, '0'), '-',
              lpad(CAST((C_CUSTKEY + 150000) % 10000 AS STRING), 4, '0')) AS C_PHONE,
       round((C_CUSTKEY % 10000) + rand() * 5000, 2) AS C_ACCTBAL,
       C_MKTSEGMENT,
       concat('Bulk inserted test customer - ', CAST(current_date() AS STRING)) AS C_COMMENT
FROM {customer}
WHERE C_CUSTKEY <= 50000
"""

COMPLEX_UPDATE_SQL = """
WITH order_values AS (
    SELECT O_CUSTKEY, AVG(O_TOTALPRICE) AS avg_order_value
    FROM {orders}
    WHERE O_ORDERDATE >= DATE'1995-01-01'
      AND O_CUSTKEY <= 50000
    GROUP BY O_CUSTKEY
    HAVING COUNT(*) >= 3
)
SELECT c.C_CUSTKEY, c.C_NAME, c.C_ADDRESS, c.C_NATIONKEY, c.C_PHONE,
       CASE WHEN v.O_CUSTKEY IS NOT NULL THEN c.C_ACCTBAL + v.avg_order_value
            ELSE c.C_ACCTBAL END AS C_ACCTBAL,
       c.C_MKTSEGMENT, c.C_COMMENT
FROM {customer} c
LEFT JOIN order_values v ON c.C_CUSTKEY = v.O_CUSTKEY
"""

LARGE_DELETE_SQL = """
WITH doomed AS (
    SELECT c.C_CUSTKEY
    FROM {customer} c
    LEFT JOIN {orders} o ON c.C_CUSTKEY = o.O_CUSTKEY
    WHERE c.C_CUSTKEY >= 150000
    GROUP BY c.C_CUSTKEY
    HAVING COUNT(o.O_ORDERKEY) < 2
)
SELECT c.*
FROM {customer} c
LEFT ANTI JOIN doomed d ON c.C_CUSTKEY = d.C_CUSTKEY
"""

CUSTOMER_ANALYTICS_SQL = """
WITH customer_metrics AS (
    SELECT c.C_CUSTKEY,
           c.C_MKTSEGMENT,
           COUNT(DISTINCT o.O_ORDERKEY) AS order_count,
           SUM(o.O_TOTALPRICE) AS total_spent,
           AVG(o.O_TOTALPRICE) AS avg_order_value,
           COUNT(DISTINCT l.L_PARTKEY) AS unique_parts_ordered
    FROM {customer} c
    LEFT JOIN {orders} o ON c.C_CUSTKEY = o.O_CUSTKEY
    LEFT JOIN {lineitem} l ON o.O_ORDERKEY = l.L_ORDERKEY
    GROUP BY c.C_CUSTKEY, c.C_MKTSEGMENT
    HAVING COUNT(DISTINCT o.O_ORDERKEY) >= 3
)
SELECT C_MKTSEGMENT,
       COUNT(*) AS customer_count,
       AVG(total_spent) AS avg_lifetime_value,
       percentile(total_spent, 0.5) AS median_ltv,
       AVG(unique_parts_ordered) AS avg_product_diversity
FROM customer_metrics
GROUP BY C_MKTSEGMENT
ORDER BY avg_lifetime_value DESC
"""

LARGE_AGGREGATION_SQL = """
SELECT o.O_ORDERPRIORITY,
       c.C_MKTSEGMENT,
       COUNT(*) AS order_count,
       SUM(o.O_TOTALPRICE) AS total_revenue,
       AVG(o.O_TOTALPRICE) AS avg_order_value,
       SUM(l.L_QUANTITY) AS total_quantity,
       COUNT(DISTINCT c.C_CUSTKEY) AS unique_customers,
       COUNT(DISTINCT l.L_PARTKEY) AS unique_parts
FROM {orders} o
JOIN {customer} c ON o.O_CUSTKEY = c.C_CUSTKEY
JOIN {lineitem} l ON o.O_ORDERKEY = l.L_ORDERKEY
WHERE o.O_ORDERDATE >= DATE'1995-01-01'
GROUP BY o.O_ORDERPRIORITY, c.C_MKTSEGMENT
ORDER BY total_revenue DESC
"""


class WarehouseGenerationBenchmark:
    """Run every workload on the GEN1 warehouse, then on the GEN2 warehouse."""

    WORKLOADS = [
        Workload("Customer_Update_DML", "DML_UPDATE_TEST", CUSTOMER_UPDATE_SQL, 10_000,
                 "DML UPDATE test on customer table", target="customer"),
        Workload("Bulk_Customer_Insert", "BULK_INSERT_TEST", BULK_INSERT_SQL, 50_000,
                 "Bulk INSERT of 50K customer records", target="customer"),
        Workload("Complex_Update_with_Joins", "COMPLEX_UPDATE_TEST", COMPLEX_UPDATE_SQL, 25_000,
                 "Complex UPDATE with subquery and aggregation", target="customer"),
        Workload("Large_Delete_Complex_WHERE", "LARGE_DELETE_TEST", LARGE_DELETE_SQL, 40_000,
                 "Large DELETE with complex subquery conditions", target="customer"),
        Workload("Complex_Customer_Analytics", "ANALYTICS_TEST", CUSTOMER_ANALYTICS_SQL, 150_000,
                 "Complex customer segmentation analytics"),
        Workload("Large_Table_Aggregation", "AGGREGATION_TEST", LARGE_AGGREGATION_SQL, 6_000_000,
                 "Large aggregation with multi-table joins"),
    ]

    def __init__(
        self,
        spark: SparkSession,
        size: str = "Medium",
        rate_table: Optional[RateTable] = None,
        store: Optional[ResultsStore] = None,
        customers: int = 150_000,
        prefix: str = "TEST",
    ):
        self.spark = spark
        self.customers = customers
        self.executor = SparkQueryExecutor(spark)
        self.provisioner = WarehouseProvisioner(self.executor, size=size, prefix=prefix)
        self.rate_table = rate_table or RateTable.for_cloud("aws")
        self.store = store or ResultsStore(spark)
        self.run_id = str(uuid.uuid4())[:8]

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup(self) -> Dict[str, int]:
        """Create both warehouses and copy the sample data. Returns row counts."""
        self.provisioner.create_warehouses()
        return self.provisioner.copy_sample_data(self.customers)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_workload(self, workload: Workload, test_date: date) -> List[ExecutionRecord]:
        """Run *workload* on each warehouse in turn and store one record per run."""
        warehouses = self.provisioner.warehouses
        snapshot = self.executor.snapshot()
        records = []
        try:
            for variant in VARIANTS:
                if variant != BASELINE:
                    # Reset data so every generation starts from the same tables
                    self.executor.restore(snapshot)
                warehouse = warehouses[variant]
                execution = self.executor.execute(workload.sql, warehouse, target=workload.target)
                record = ExecutionRecord(
                    test_id=workload.test_id(test_date),
                    warehouse_name=warehouse.name,
                    warehouse_size=warehouse.size,
                    variant=variant,
                    workload=workload.name,
                    start_time=execution.start_time,
                    end_time=execution.end_time,
                    rows_processed=workload.approx_rows,
                    test_date=test_date,
                    notes=f"{workload.note} - {warehouse.generation}",
                )
                self.store.store(record)
                records.append(record)
                print(
                    f"{workload.name:<28} {warehouse.name:<20} "
                    f"{record.elapsed_seconds:>10.3f} {execution.rows_affected:>12,}"
                )
        finally:
            # The snapshot's versions are released unless still current
            self.executor.discard(snapshot)
        return records

    def run_comparison(self, test_date: Optional[date] = None) -> List[ExecutionRecord]:
        """Provision, run all workloads, back-fill credits. Returns the day's records."""
        test_date = test_date or date.today()

        print(f"\n{'=' * 78}")
        print("WAREHOUSE GENERATION BENCHMARK")
        print(f"{'=' * 78}")
        print(f"Run ID: {self.run_id}")
        print(f"Size: {self.provisioner.size}  |  Cloud rates: {self.rate_table.cloud}")
        print(f"Customers: {self.customers:,}  |  Test date: {test_date.isoformat()}")

        print("\nCopying sample data...")
        counts = self.setup()
        for name, count in counts.items():
            print(f"  {name:<10} {count:>12,} rows")

        print(f"\n{'─' * 78}")
        print(f"{'Workload':<28} {'Warehouse':<20} {'Seconds':>10} {'Rows':>12}")
        print(f"{'─' * 78}")
        for workload in self.WORKLOADS:
            self.run_workload(workload, test_date)

        filled = self.store.backfill_costs(self.rate_table, test_date)
        records = self.store.fetch(test_date)

        print(f"\n{'=' * 78}")
        print(f"Benchmark complete. {len(records)} records for {test_date}, {filled} credits estimated.")
        print(f"{'=' * 78}")

        return records

    def cleanup(self) -> None:
        """Drop the working tables and warehouse profiles."""
        self.executor.drop_tables()
        self.provisioner.drop_warehouses()
