"""Pytest fixtures for warehouse benchmark tests."""

import os
import sys
from datetime import date, datetime, timedelta

import pytest
from pyspark.sql import SparkSession

from warehouse_gen_benchmark import ExecutionRecord


@pytest.fixture(scope="session", autouse=True)
def _set_pyspark_python():
    """Ensure Spark workers use the same Python as the driver."""
    orig = os.environ.get("PYSPARK_PYTHON")
    os.environ["PYSPARK_PYTHON"] = sys.executable
    yield
    if orig is None:
        os.environ.pop("PYSPARK_PYTHON", None)
    else:
        os.environ["PYSPARK_PYTHON"] = orig


@pytest.fixture(scope="session")
def spark(tmp_path_factory):
    """Create a SparkSession for testing (local[2], minimal resources)."""
    warehouse_dir = tmp_path_factory.mktemp("spark-warehouse")
    session = (
        SparkSession.builder.appName("warehouse-benchmark-tests")
        .master("local[2]")
        .config("spark.driver.memory", "1g")
        .config("spark.sql.shuffle.partitions", "2")
        .config("spark.default.parallelism", "2")
        .config("spark.ui.enabled", "false")
        .config("spark.sql.warehouse.dir", str(warehouse_dir))
        .getOrCreate()
    )
    session.sparkContext.setLogLevel("ERROR")
    yield session
    session.stop()


TEST_DATE = date(2025, 6, 2)


@pytest.fixture
def make_record():
    """Build an ExecutionRecord from an elapsed time; everything else defaults."""

    def _make(
        workload="Customer_Update_DML",
        variant="baseline",
        elapsed=10.0,
        credits=None,
        size="Medium",
        start=datetime(2025, 6, 2, 9, 0, 0),
        test_date=TEST_DATE,
    ):
        generation = "GEN1" if variant == "baseline" else "GEN2"
        return ExecutionRecord(
            test_id=f"DML_UPDATE_TEST_{test_date.isoformat()}",
            warehouse_name=f"TEST_{generation}_MEDIUM",
            warehouse_size=size,
            variant=variant,
            workload=workload,
            start_time=start,
            end_time=start + timedelta(seconds=elapsed),
            rows_processed=10_000,
            test_date=test_date,
            notes=f"test - {generation}",
            credits=credits,
        )

    return _make
