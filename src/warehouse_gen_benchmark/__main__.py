"""CLI entry point: python -m warehouse_gen_benchmark [--size Medium] [--cloud aws]"""

import argparse
import json
import logging
import os
import sys
from datetime import date, datetime, timezone

from pyspark.sql import SparkSession

from .benchmark import WarehouseGenerationBenchmark
from .rates import CANDIDATE_RATES, SIZES, RateTable
from .report import (
    DEFAULT_CREDIT_PRICE,
    compare,
    comparison_frame,
    detailed_listing,
    overall_comparison,
    print_report,
    results_overview,
    summarize,
)
from .store import ResultsStore


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="GEN1 vs GEN2 Warehouse Benchmark")
    parser.add_argument("--size", "-s", default="Medium", choices=SIZES, help="Warehouse size (default: Medium)")
    parser.add_argument("--cloud", default="aws", choices=sorted(CANDIDATE_RATES), help="Rate card (default: aws)")
    parser.add_argument("--customers", "-c", type=int, default=150_000, help="Customer rows (default: 150000)")
    parser.add_argument("--credit-price", type=float, default=DEFAULT_CREDIT_PRICE,
                        help="Dollars per credit (default: 2.00)")
    parser.add_argument("--results-table", default="performance_test_results", help="Results table name")
    parser.add_argument("--report-only", action="store_true", help="Report on stored results without running")
    parser.add_argument("--date", type=date.fromisoformat, default=None,
                        help="Test date YYYY-MM-DD (default: today)")
    parser.add_argument("--output-dir", default="results", help="Output directory for JSON and CSV")
    parser.add_argument("--keep-warehouses", action="store_true", help="Skip cleanup of tables and profiles")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging and traceback on failure")
    return parser.parse_args(argv)


def write_results(args, run_id, records, rate_table) -> str:
    os.makedirs(args.output_dir, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
    stem = os.path.join(args.output_dir, f"warehouse_{run_id}_{timestamp}")

    rows = compare(records)
    data = {
        "metadata": {
            "run_id": run_id,
            "benchmark_type": "warehouse_generation",
            "warehouse_size": args.size,
            "cloud": rate_table.cloud,
            "customers": args.customers,
            "credit_price": args.credit_price,
            "overview": results_overview(records),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "records": detailed_listing(records, credit_price=args.credit_price),
        "comparison": [row.to_dict() for row in rows],
        "summary": [s.to_dict() for s in summarize(records, credit_price=args.credit_price)],
        "overall": overall_comparison(records).to_dict(),
    }

    with open(f"{stem}.json", "w") as fh:
        json.dump(data, fh, indent=2)
    comparison_frame(rows).to_csv(f"{stem}_comparison.csv", index=False)
    return stem


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    test_date = args.date or date.today()

    spark = (
        SparkSession.builder
        .appName("WarehouseGenerationBenchmark")
        .getOrCreate()
    )

    rate_table = RateTable.for_cloud(args.cloud)
    store = ResultsStore(spark, table_name=args.results_table)
    benchmark = WarehouseGenerationBenchmark(
        spark, size=args.size, rate_table=rate_table, store=store, customers=args.customers,
    )

    try:
        if args.report_only:
            store.backfill_costs(rate_table, test_date)
            records = store.fetch(test_date)
        else:
            records = benchmark.run_comparison(test_date=test_date)

        if not records:
            print(f"\nNo results recorded for {test_date}.")
            return 1

        print_report(records, credit_price=args.credit_price)
        stem = write_results(args, benchmark.run_id, records, rate_table)
        print(f"\nResults saved to: {stem}.json")
        return 0

    except Exception as e:
        print(f"\nBenchmark failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1

    finally:
        if not args.keep_warehouses:
            benchmark.cleanup()
        spark.stop()


if __name__ == "__main__":
    sys.exit(main())
