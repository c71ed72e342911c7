"""Warehouse profiles, sample data provisioning and timed statement execution.

A warehouse here is a named Spark SQL configuration profile. Size controls
shuffle parallelism; generation toggles adaptive query execution, the only
difference between the baseline and candidate warehouses of one size.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql import functions as F

from .rates import SIZES, canonical_size
from .record import BASELINE, CANDIDATE, GENERATIONS

SHUFFLE_PARTITIONS = dict(zip(SIZES, [1, 2, 4, 8, 16, 32, 64, 128]))

# Session settings a warehouse profile overrides
PROFILE_KEYS = ("spark.sql.shuffle.partitions", "spark.sql.adaptive.enabled")

MARKET_SEGMENTS = ["AUTOMOBILE", "BUILDING", "FURNITURE", "HOUSEHOLD", "MACHINERY"]
ORDER_PRIORITIES = ["1-URGENT", "2-HIGH", "3-MEDIUM", "4-NOT SPECIFIED", "5-LOW"]


@dataclass(frozen=True)
class Warehouse:
    """A named compute profile of one size and generation."""

    name: str
    size: str
    variant: str

    @property
    def generation(self) -> str:
        return GENERATIONS[self.variant]

    def spark_conf(self) -> Dict[str, str]:
        partitions, adaptive = PROFILE_KEYS
        return {
            partitions: str(SHUFFLE_PARTITIONS.get(self.size, 4)),
            adaptive: "true" if self.variant == CANDIDATE else "false",
        }


@dataclass(frozen=True)
class QueryExecution:
    """Timing metadata for one executed statement."""

    rows_affected: int
    start_time: datetime
    end_time: datetime


@dataclass(frozen=True)
class WorkingTable:
    """One version of a working table: its cached frame and versioned view."""

    view: str
    df: DataFrame


class SparkQueryExecutor:
    """Run SQL statements against a warehouse profile and time them.

    Also owns the mutable working tables. Statements name them as
    ``{customer}``, ``{orders}``..., which resolve to the current version's
    view. Every rewrite is cached under a fresh ``<name>_v<N>`` view, so a
    statement can rebuild a table from its own contents. The plain table name
    is kept as an alias of the current version for ad-hoc queries.

    Superseded versions are unpersisted and their views dropped once no
    outstanding snapshot still holds them.
    """

    def __init__(self, spark: SparkSession):
        self.spark = spark
        self.tables: Dict[str, WorkingTable] = {}
        self._versions: Dict[str, int] = {}
        self._snapshots: List[Dict[str, WorkingTable]] = []

    def use_warehouse(self, warehouse: Warehouse) -> None:
        for key, value in warehouse.spark_conf().items():
            self.spark.conf.set(key, value)

    def views(self) -> Dict[str, str]:
        return {name: table.view for name, table in self.tables.items()}

    def register_table(self, name: str, df: DataFrame) -> int:
        """Cache *df* as the new version of working table *name*. Returns its row count."""
        self._versions[name] = self._versions.get(name, 0) + 1
        view = f"{name}_v{self._versions[name]}"
        df = df.cache()
        rows = df.count()
        df.createOrReplaceTempView(view)
        df.createOrReplaceTempView(name)
        self._replace(name, WorkingTable(view=view, df=df))
        return rows

    def execute(self, statement: str, warehouse: Warehouse, target: Optional[str] = None) -> QueryExecution:
        """Run *statement* on *warehouse* and force materialisation.

        With *target*, the statement's result replaces that working table and
        ``rows_affected`` is the size of the rewritten table. Otherwise the
        result rows are collected and counted.
        """
        self.use_warehouse(warehouse)
        sql = statement.format(**self.views())
        start = datetime.now()
        df = self.spark.sql(sql)
        if target is not None:
            rows = self.register_table(target, df)
        else:
            rows = len(df.collect())
        end = datetime.now()
        return QueryExecution(rows_affected=rows, start_time=start, end_time=end)

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, WorkingTable]:
        """Pin the current versions until :meth:`discard` is called."""
        snapshot = dict(self.tables)
        self._snapshots.append(snapshot)
        return snapshot

    def restore(self, snapshot: Dict[str, WorkingTable]) -> None:
        for name, table in snapshot.items():
            table.df.createOrReplaceTempView(name)
            self._replace(name, table)

    def discard(self, snapshot: Dict[str, WorkingTable]) -> None:
        """Unpin *snapshot* and release whatever versions it alone was holding."""
        self._snapshots = [s for s in self._snapshots if s is not snapshot]
        for table in snapshot.values():
            self._release(table)

    def _replace(self, name: str, table: WorkingTable) -> None:
        previous = self.tables.get(name)
        self.tables[name] = table
        if previous is not None and previous is not table:
            self._release(previous)

    def _held(self) -> List[WorkingTable]:
        held = list(self.tables.values())
        for snapshot in self._snapshots:
            held.extend(snapshot.values())
        return held

    def _in_use(self, table: WorkingTable) -> bool:
        return any(table is other for other in self._held())

    def _release(self, table: WorkingTable) -> None:
        if self._in_use(table):
            return
        table.df.unpersist()
        self.spark.catalog.dropTempView(table.view)

    def drop_tables(self) -> List[str]:
        held = self._held()
        dropped = [name for name in self.tables if self.spark.catalog.dropTempView(name)]
        self.tables = {}
        self._snapshots = []
        for table in held:
            self._release(table)
        return dropped


class WarehouseProvisioner:
    """Create the two warehouses and the mutable working tables."""

    def __init__(self, executor: SparkQueryExecutor, size: str = "Medium", prefix: str = "TEST"):
        self.executor = executor
        self.spark = executor.spark
        self.size = canonical_size(size)
        self.prefix = prefix
        self.warehouses: Dict[str, Warehouse] = {}
        self._saved_conf: Dict[str, Optional[str]] = {}

    def _warehouse_name(self, variant: str) -> str:
        size_tag = self.size.upper().replace("-", "_")
        return f"{self.prefix}_{GENERATIONS[variant]}_{size_tag}"

    def create_warehouses(self) -> Dict[str, Warehouse]:
        self._saved_conf = {key: self.spark.conf.get(key, None) for key in PROFILE_KEYS}
        self.warehouses = {
            variant: Warehouse(name=self._warehouse_name(variant), size=self.size, variant=variant)
            for variant in (BASELINE, CANDIDATE)
        }
        return self.warehouses

    # ------------------------------------------------------------------
    # Sample data (TPC-H shaped: 10 orders per customer, 4 lines per order)
    # ------------------------------------------------------------------

    def generate_customer(self, customers: int) -> DataFrame:
        key = F.col("id")
        return self.spark.range(1, customers + 1).select(
            key.alias("C_CUSTKEY"),
            F.concat(F.lit("Customer#"), F.lpad(key.cast("string"), 9, "0")).alias("C_NAME"),
            F.concat(F.lit("addr_"), (key % 1000).cast("string")).alias("C_ADDRESS"),
            (key % 25).cast("int").alias("C_NATIONKEY"),
            F.concat(
                (key % 25 + 10).cast("string"), F.lit("-"),
                F.lpad((key % 1000).cast("string"), 3, "0"), F.lit("-"),
                F.lpad((key % 10000).cast("string"), 4, "0"),
            ).alias("C_PHONE"),
            (((key * 37) % 11000) - 999.99).cast("double").alias("C_ACCTBAL"),
            F.element_at(
                F.array(*[F.lit(s) for s in MARKET_SEGMENTS]), (key % 5 + 1).cast("int")
            ).alias("C_MKTSEGMENT"),
            F.lit("sample customer").alias("C_COMMENT"),
        )

    def generate_orders(self, customers: int) -> DataFrame:
        key = F.col("id")
        return self.spark.range(1, customers * 10 + 1).select(
            key.alias("O_ORDERKEY"),
            ((key * 7919) % customers + 1).alias("O_CUSTKEY"),
            F.date_add(F.lit("1992-01-01").cast("date"), (key % 2400).cast("int")).alias("O_ORDERDATE"),
            (((key * 131) % 450000) + 850.0).cast("double").alias("O_TOTALPRICE"),
            F.element_at(
                F.array(*[F.lit(p) for p in ORDER_PRIORITIES]), (key % 5 + 1).cast("int")
            ).alias("O_ORDERPRIORITY"),
        )

    def generate_lineitem(self, customers: int) -> DataFrame:
        key = F.col("id")
        return self.spark.range(0, customers * 40).select(
            (F.floor(key / 4) + 1).alias("L_ORDERKEY"),
            ((key * 31) % 200000 + 1).alias("L_PARTKEY"),
            (key % 50 + 1).cast("double").alias("L_QUANTITY"),
        )

    def copy_sample_data(self, customers: int = 150_000) -> Dict[str, int]:
        """Materialise writable copies of the sample tables. Returns row counts."""
        generated = {
            "customer": self.generate_customer(customers),
            "orders": self.generate_orders(customers),
            "lineitem": self.generate_lineitem(customers),
        }
        return {name: self.executor.register_table(name, df) for name, df in generated.items()}

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def drop_warehouses(self) -> None:
        """Put back the session settings found before the warehouses were created."""
        for key, value in self._saved_conf.items():
            if value is None:
                self.spark.conf.unset(key)
            else:
                self.spark.conf.set(key, value)
        self._saved_conf = {}
        self.warehouses = {}
