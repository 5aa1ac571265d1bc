#!/usr/bin/env python3
"""
============================================================================
Budget Scaling Engine - Orchestrator
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: All revenue and scale calculations use decimal.Decimal
Traceability: All passes include correlation_id for audit

MODES:
    python main.py --once      Run one reconciliation pass and exit
    python main.py --report    Print the revenue report and exit
    python main.py             Run the recurring reconciliation job

    --json           Print results as JSON
    --date YYYY-MM-DD  Calendar date for --once (default: today, UTC)
    --metrics-port   Expose Prometheus metrics on this port (job mode)

Configuration is read from the environment (and a .env file if present);
see budget_engine.config for the variables.

EXIT CODES:
    0  Success
    1  Reconciliation pass failed (default budgets reported)
    2  Configuration invalid
============================================================================
"""

import argparse
import json
import logging
import sys
from datetime import date
from typing import Optional, List

from dotenv import load_dotenv
from prometheus_client import start_http_server

from budget_engine.config import BudgetScalingConfig, BudgetConfigurationError
from budget_engine.engine import ReconciliationStatus, create_budget_scaling_engine
from jobs.budget_reconciliation_job import BudgetReconciliationJob, utc_today

logger = logging.getLogger("BUDGET_ORCHESTRATOR")


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Revenue-driven budget scaling and reconciliation"
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--once",
        action="store_true",
        help="Run a single reconciliation pass and exit"
    )
    mode.add_argument(
        "--report",
        action="store_true",
        help="Print the revenue report and exit"
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON"
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Calendar date for --once (YYYY-MM-DD, default: today UTC)"
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Expose Prometheus metrics on this port while the job runs"
    )
    return parser.parse_args(argv)


def print_report(report, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    print("=" * 70)
    print("  REVENUE REPORT")
    print("=" * 70)
    print(f"  MRR:          ${report.snapshot.total_mrr:,.2f}")
    print(f"  One-time:     ${report.snapshot.one_time_revenue:,.2f}")
    print(f"  Total:        ${report.snapshot.total_revenue:,.2f}")
    print(f"  Scale factor: {report.scale_factor:.2f}x")
    for role, limit_name, value in report.limits.items():
        print(f"  {role}.{limit_name}: ${value:,}")
    print("-" * 70)
    for line in report.recommendations:
        print(f"  - {line}")
    print("=" * 70)


def print_result(result, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return

    print("=" * 70)
    print(f"  RECONCILIATION {result.status.value}")
    print("=" * 70)
    print(f"  Date:         {result.today.isoformat()}")
    print(f"  Scale factor: {result.scale_factor:.2f}x")
    for role, limit_name, value in result.limits.items():
        print(f"  {role}.{limit_name}: ${value:,}")
    if result.error_message:
        print(f"  Error: {result.error_message}")
    for error in result.propagation_errors:
        print(f"  Propagation: {error}")
    print(f"  Correlation ID: {result.correlation_id}")
    print("=" * 70)


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    configure_logging()
    args = parse_args(argv)

    try:
        config = BudgetScalingConfig.from_environment()
    except BudgetConfigurationError as e:
        logger.critical(f"Startup aborted | error={e}")
        return 2

    engine = create_budget_scaling_engine(config)

    if args.report:
        print_report(engine.generate_report(), args.json)
        return 0

    if args.once:
        result = engine.run_reconciliation(args.date or utc_today())
        print_result(result, args.json)
        return 1 if result.status is ReconciliationStatus.FAILED else 0

    if args.metrics_port is not None:
        start_http_server(args.metrics_port)
        logger.info(f"Prometheus metrics exposed | port={args.metrics_port}")

    job = BudgetReconciliationJob(
        engine=engine,
        interval_seconds=config.reconcile_interval_seconds,
    )
    logger.info(f"Budget reconciliation job starting | config={config.to_dict()}")
    try:
        job.run()
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")

    logger.info(f"Budget reconciliation job stopped | passes={job.pass_count}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
