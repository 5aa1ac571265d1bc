"""
============================================================================
Budget Scaling Observability - Prometheus Metrics
============================================================================

Reliability Level: L5 High
Side Effects: Exposes Prometheus metrics

The Discord notifier lives in budget_engine.observability.discord_notifier
and is imported explicitly by the engine factory.
============================================================================
"""

from budget_engine.observability.metrics import (
    SCALE_FACTOR_GAUGE,
    REVENUE_MRR_GAUGE,
    BUDGET_LIMIT_GAUGE,
    RECONCILIATIONS_TOTAL,
    FETCH_FAILURES_TOTAL,
    record_reconciliation,
    record_fetch_failure,
)

__all__ = [
    "SCALE_FACTOR_GAUGE",
    "REVENUE_MRR_GAUGE",
    "BUDGET_LIMIT_GAUGE",
    "RECONCILIATIONS_TOTAL",
    "FETCH_FAILURES_TOTAL",
    "record_reconciliation",
    "record_fetch_failure",
]
