"""Smoke tests for the warehouse generation benchmark.

Runs with TINY scale (1 000 customers) to verify the workloads run on both
warehouses, reset data between generations and record one row per run.
"""

import uuid
from datetime import date

import pytest
from pyspark.sql import functions as F

from warehouse_gen_benchmark import (
    ExecutionRecord,
    RateTable,
    ResultsStore,
    WarehouseGenerationBenchmark,
)
from warehouse_gen_benchmark.report import compare
from warehouse_gen_benchmark.warehouse import SparkQueryExecutor, Warehouse

TINY_CUSTOMERS = 1_000
TEST_DATE = date(2025, 6, 2)


@pytest.fixture
def benchmark(spark):
    store = ResultsStore(spark, table_name=f"bench_{uuid.uuid4().hex[:8]}")
    bench = WarehouseGenerationBenchmark(
        spark, size="x-small", rate_table=RateTable.for_cloud("azure"),
        store=store, customers=TINY_CUSTOMERS,
    )
    yield bench
    bench.cleanup()
    store.drop()


def _workload(name):
    return next(w for w in WarehouseGenerationBenchmark.WORKLOADS if w.name == name)


class TestProvisioning:

    def test_warehouses_differ_only_in_generation(self, benchmark):
        warehouses = benchmark.provisioner.create_warehouses()
        gen1, gen2 = warehouses["baseline"], warehouses["candidate"]
        assert (gen1.name, gen2.name) == ("TEST_GEN1_X_SMALL", "TEST_GEN2_X_SMALL")
        assert gen1.size == gen2.size == "X-Small"
        assert gen1.spark_conf()["spark.sql.shuffle.partitions"] == "1"
        assert gen1.spark_conf()["spark.sql.adaptive.enabled"] == "false"
        assert gen2.spark_conf()["spark.sql.adaptive.enabled"] == "true"

    def test_copy_sample_data(self, benchmark):
        counts = benchmark.setup()
        assert counts == {
            "customer": TINY_CUSTOMERS,
            "orders": TINY_CUSTOMERS * 10,
            "lineitem": TINY_CUSTOMERS * 40,
        }

    def test_customer_columns(self, spark, benchmark):
        benchmark.setup()
        assert spark.table("customer").columns == [
            "C_CUSTKEY", "C_NAME", "C_ADDRESS", "C_NATIONKEY", "C_PHONE",
            "C_ACCTBAL", "C_MKTSEGMENT", "C_COMMENT",
        ]

    def test_cleanup_restores_session(self, spark, benchmark):
        before = spark.conf.get("spark.sql.shuffle.partitions")
        benchmark.setup()
        benchmark.executor.use_warehouse(benchmark.provisioner.warehouses["candidate"])
        benchmark.cleanup()
        assert spark.conf.get("spark.sql.shuffle.partitions") == before
        assert not spark.catalog.tableExists("customer")


class TestExecutor:

    def test_query_counts_rows_and_applies_profile(self, spark):
        executor = SparkQueryExecutor(spark)
        warehouse = Warehouse(name="TEST_GEN2_SMALL", size="Small", variant="candidate")
        before = {key: spark.conf.get(key) for key in warehouse.spark_conf()}
        try:
            execution = executor.execute("SELECT id FROM range(7)", warehouse)
            assert execution.rows_affected == 7
            assert execution.end_time >= execution.start_time
            assert spark.conf.get("spark.sql.shuffle.partitions") == "2"
            assert spark.conf.get("spark.sql.adaptive.enabled") == "true"
        finally:
            for key, value in before.items():
                spark.conf.set(key, value)

    def test_target_replaces_table(self, spark):
        executor = SparkQueryExecutor(spark)
        warehouse = Warehouse(name="TEST_GEN1_SMALL", size="Small", variant="baseline")
        before = {key: spark.conf.get(key) for key in warehouse.spark_conf()}
        try:
            executor.register_table("numbers", spark.range(5))
            snapshot = executor.snapshot()
            execution = executor.execute(
                "SELECT * FROM {numbers} UNION ALL SELECT id + 5 FROM {numbers}", warehouse, target="numbers",
            )
            assert execution.rows_affected == 10
            assert spark.table("numbers").count() == 10
            executor.restore(snapshot)
            assert spark.table("numbers").count() == 5
        finally:
            executor.drop_tables()
            for key, value in before.items():
                spark.conf.set(key, value)

    def test_superseded_versions_released(self, spark):
        executor = SparkQueryExecutor(spark)
        warehouse = Warehouse(name="TEST_GEN1_SMALL", size="Small", variant="baseline")
        before = {key: spark.conf.get(key) for key in warehouse.spark_conf()}
        doubling = "SELECT * FROM {numbers} UNION ALL SELECT id + 5 FROM {numbers}"
        try:
            executor.register_table("numbers", spark.range(5))
            original = executor.tables["numbers"]
            snapshot = executor.snapshot()

            executor.execute(doubling, warehouse, target="numbers")
            first_rewrite = executor.tables["numbers"]
            executor.restore(snapshot)
            # The rewrite was replaced; the pinned original is current again
            assert not first_rewrite.df.is_cached
            assert not spark.catalog.tableExists(first_rewrite.view)
            assert original.df.is_cached

            executor.execute(doubling, warehouse, target="numbers")
            second_rewrite = executor.tables["numbers"]
            assert original.df.is_cached
            executor.discard(snapshot)
            assert not original.df.is_cached
            assert not spark.catalog.tableExists(original.view)
            assert second_rewrite.df.is_cached
            assert spark.table("numbers").count() == 10

            executor.drop_tables()
            assert not second_rewrite.df.is_cached
            assert not spark.catalog.tableExists("numbers")
            assert executor.tables == {}
        finally:
            executor.drop_tables()
            for key, value in before.items():
                spark.conf.set(key, value)


class TestWorkloads:

    def test_update_applied_once_per_generation(self, spark, benchmark):
        benchmark.setup()
        records = benchmark.run_workload(_workload("Customer_Update_DML"), TEST_DATE)
        assert [r.variant for r in records] == ["baseline", "candidate"]
        row = spark.table("customer").where(F.col("C_CUSTKEY") == 1).collect()[0]
        assert row.C_NATIONKEY == 2
        twice = spark.table("customer").where("C_NATIONKEY != (C_CUSTKEY + 1) % 25")
        assert twice.count() == 0

    def test_insert_then_delete(self, spark, benchmark):
        benchmark.setup()
        loaded = benchmark.executor.tables["customer"]
        benchmark.run_workload(_workload("Bulk_Customer_Insert"), TEST_DATE)
        assert not loaded.df.is_cached
        assert benchmark.executor.views()["customer"] == "customer_v3"
        assert spark.table("customer").count() == TINY_CUSTOMERS * 2
        assert spark.table("customer").where(F.col("C_CUSTKEY") > 150000).count() == TINY_CUSTOMERS

        benchmark.run_workload(_workload("Large_Delete_Complex_WHERE"), TEST_DATE)
        assert spark.table("customer").count() == TINY_CUSTOMERS

    def test_records_describe_runs(self, benchmark):
        benchmark.setup()
        gen1, gen2 = benchmark.run_workload(_workload("Large_Table_Aggregation"), TEST_DATE)
        assert gen1.test_id == "AGGREGATION_TEST_2025-06-02"
        assert gen1.warehouse_name == "TEST_GEN1_X_SMALL"
        assert gen2.warehouse_name == "TEST_GEN2_X_SMALL"
        assert gen1.rows_processed == 6_000_000
        assert gen2.notes.endswith("- GEN2")
        assert gen1.end_time <= gen2.start_time
        assert benchmark.store.fetch(TEST_DATE) == [gen1, gen2]


class TestRunComparison:

    def test_run_comparison_returns_records(self, benchmark):
        records = benchmark.run_comparison(test_date=TEST_DATE)
        assert len(records) == len(WarehouseGenerationBenchmark.WORKLOADS) * 2
        for record in records:
            assert isinstance(record, ExecutionRecord)
            assert record.elapsed_seconds >= 0
            assert record.credits is not None
            assert record.test_date == TEST_DATE

    def test_every_workload_compared(self, benchmark):
        records = benchmark.run_comparison(test_date=TEST_DATE)
        rows = compare(records)
        assert {row.workload for row in rows} == {w.name for w in WarehouseGenerationBenchmark.WORKLOADS}

    def test_credits_use_generation_rates(self, benchmark):
        for record in benchmark.run_comparison(test_date=TEST_DATE):
            rate = 1.0 if record.variant == "baseline" else 1.25
            assert record.credits == pytest.approx(record.elapsed_seconds * rate / 3600)
