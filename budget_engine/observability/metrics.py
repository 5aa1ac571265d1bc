"""
============================================================================
Prometheus Metrics - Budget Scaling Observability
============================================================================

Reliability Level: L5 High
Input Constraints: Monetary values and scale factors are Decimal
Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- budget_scale_factor: Scale factor from the latest reconciliation pass
- budget_revenue_mrr: MRR from the latest revenue snapshot
- budget_limit: Current limit per role and limit name
- budget_reconciliations_total: Reconciliation passes by status
- budget_revenue_fetch_failures_total: Soft fetch failures by error code

Decimal values are converted to float ONLY at the Prometheus boundary.

============================================================================
"""

import logging
from decimal import Decimal
from typing import Optional

from prometheus_client import Counter, Gauge

logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

SCALE_FACTOR_GAUGE = Gauge(
    "budget_scale_factor",
    "Budget scale factor from the latest reconciliation pass"
)

REVENUE_MRR_GAUGE = Gauge(
    "budget_revenue_mrr",
    "Total MRR from the latest revenue snapshot"
)

BUDGET_LIMIT_GAUGE = Gauge(
    "budget_limit",
    "Current budget limit per role",
    ["role", "limit"]
)

RECONCILIATIONS_TOTAL = Counter(
    "budget_reconciliations_total",
    "Budget reconciliation passes by outcome",
    ["status"]
)

FETCH_FAILURES_TOTAL = Counter(
    "budget_revenue_fetch_failures_total",
    "Revenue fetches that fell back to zero revenue",
    ["error_code"]
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_reconciliation(
    status: str,
    scale_factor: Decimal,
    total_mrr: Decimal,
    limits=None,
    correlation_id: Optional[str] = None
) -> None:
    """
    Record the outcome of a reconciliation pass.

    Args:
        status: Outcome label (APPLIED, ALREADY_CURRENT, FAILED)
        scale_factor: Scale factor reported by the pass
        total_mrr: MRR reported by the pass
        limits: BudgetLimits reported by the pass (optional)
        correlation_id: Optional tracking ID
    """
    try:
        RECONCILIATIONS_TOTAL.labels(status=status).inc()
        SCALE_FACTOR_GAUGE.set(float(scale_factor))
        REVENUE_MRR_GAUGE.set(float(total_mrr))
        if limits is not None:
            for role, limit_name, value in limits.items():
                BUDGET_LIMIT_GAUGE.labels(role=role, limit=limit_name).set(value)
        logger.debug(
            "Metric: reconciliation | status=%s | scale_factor=%s | mrr=%s | "
            "correlation_id=%s",
            status, str(scale_factor), str(total_mrr), correlation_id
        )
    except Exception as e:
        logger.error(
            "[OBS-001] Failed to record reconciliation metrics | error=%s",
            str(e)
        )


def record_fetch_failure(error_code: str) -> None:
    """Count a revenue fetch that degraded to the zero snapshot."""
    try:
        FETCH_FAILURES_TOTAL.labels(error_code=error_code).inc()
    except Exception as e:
        logger.error(
            "[OBS-002] Failed to record fetch failure metric | error=%s",
            str(e)
        )
