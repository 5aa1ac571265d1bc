# ============================================================================
# Budget Scaling Engine - Reconciliation Pass Orchestrator
# ============================================================================
#
# Reliability Level: L6 Critical
# Purpose: Turn observed revenue into per-role spending limits, once per
#          scheduled pass, without double-applying updates
#
# PASS (sequential, one network call):
#   1. RevenueFetcher.fetch()        -> RevenueSnapshot (never raises)
#   2. calculate_scale_factor()      -> Decimal in [1, 10]
#   3. calculate_budget_limits()     -> BudgetLimits
#   4. UpdateReconciler.reconcile()  -> apply / already current
#   5. Propagate applied updates     -> remote config, notification
#
# FAIL-SAFE MANDATE:
#   - Any exception in steps 1-4 yields a FAILED result with the default
#     budgets, scale factor 1 and zero revenue; update state is untouched
#   - Propagation failures are recorded on the result, never raised
#   - run_reconciliation() never raises
#
# Error Codes:
#   - BSE-REC-001: Reconciliation computation failure
#   - BSE-PROP-001: Remote config propagation failure
#   - BSE-PROP-002: Notification failure
#
# ============================================================================

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from budget_engine.config import BudgetScalingConfig
from budget_engine.observability.discord_notifier import DiscordBudgetNotifier
from budget_engine.observability.metrics import record_reconciliation
from budget_engine.propagation import (
    BudgetNotifier,
    LoggingBudgetNotifier,
    RemoteConfigWriter,
    UnconfiguredRemoteConfigWriter,
)
from budget_engine.reconciler import ReconciliationDecision, UpdateReconciler
from budget_engine.report import RevenueReport, RevenueReportGenerator
from budget_engine.scaling import (
    DEFAULT_BUDGET_LIMITS,
    MIN_SCALE_FACTOR,
    BudgetLimits,
    calculate_budget_limits,
    calculate_scale_factor,
    validate_budget_limits,
)
from budget_engine.update_state import create_update_state_store
from revenue_ingestion.revenue_fetcher import RevenueFetcher
from revenue_ingestion.schemas import RevenueSnapshot, zero_revenue_snapshot

logger = logging.getLogger(__name__)

ERROR_COMPUTATION_FAIL = "BSE-REC-001"
ERROR_REMOTE_CONFIG_FAIL = "BSE-PROP-001"
ERROR_NOTIFICATION_FAIL = "BSE-PROP-002"


# ============================================================================
# Enums
# ============================================================================

class ReconciliationStatus(Enum):
    """Outcome of a reconciliation pass."""
    APPLIED = "APPLIED"
    ALREADY_CURRENT = "ALREADY_CURRENT"
    FAILED = "FAILED"


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class BudgetReconciliationResult:
    """
    Result of one reconciliation pass.

    FAILED results carry DEFAULT_BUDGET_LIMITS, scale factor 1 and a zero
    revenue snapshot; last_known_good_limits is informational.
    """
    status: ReconciliationStatus
    snapshot: RevenueSnapshot
    scale_factor: Decimal
    limits: BudgetLimits
    today: date
    correlation_id: str
    decision: Optional[ReconciliationDecision] = None
    error_message: Optional[str] = None
    last_known_good_limits: Optional[BudgetLimits] = None
    propagation_errors: List[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def update_applied(self) -> bool:
        return self.status is ReconciliationStatus.APPLIED

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "update_applied": self.update_applied,
            "today": self.today.isoformat(),
            "scale_factor": str(self.scale_factor),
            "limits": self.limits.to_dict(),
            "revenue": self.snapshot.to_dict(),
            "reason": self.decision.reason if self.decision else None,
            "error_message": self.error_message,
            "last_known_good_limits": (
                self.last_known_good_limits.to_dict()
                if self.last_known_good_limits else None
            ),
            "propagation_errors": list(self.propagation_errors),
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================================
# Budget Scaling Engine
# ============================================================================

class BudgetScalingEngine:
    """
    Orchestrates fetch -> scale -> limits -> reconcile -> propagate.

    Example Usage:
        engine = create_budget_scaling_engine(BudgetScalingConfig.from_environment())
        result = engine.run_reconciliation(today=date.today())
        if result.update_applied:
            print(result.limits.to_dict())
    """

    def __init__(
        self,
        fetcher: RevenueFetcher,
        reconciler: Optional[UpdateReconciler] = None,
        remote_config_writer: Optional[RemoteConfigWriter] = None,
        notifier: Optional[BudgetNotifier] = None,
    ):
        """
        Initialize Budget Scaling Engine.

        Args:
            fetcher: Revenue source (anything with fetch() -> RevenueSnapshot)
            reconciler: Update reconciler (in-memory state if None)
            remote_config_writer: Remote config collaborator (stub if None)
            notifier: Notification collaborator (log-only if None)
        """
        self.fetcher = fetcher
        self.reconciler = reconciler or UpdateReconciler()
        self.remote_config_writer = remote_config_writer or UnconfiguredRemoteConfigWriter()
        self.notifier = notifier or LoggingBudgetNotifier()
        self._last_known_good: Optional[BudgetLimits] = None
        self._report_generator = RevenueReportGenerator(fetcher)

    @property
    def last_known_good_limits(self) -> Optional[BudgetLimits]:
        return self._last_known_good

    # ========================================================================
    # Reconciliation
    # ========================================================================

    def run_reconciliation(
        self,
        today: date,
        correlation_id: Optional[str] = None,
    ) -> BudgetReconciliationResult:
        """
        Run one reconciliation pass for the caller's calendar date.

        Returns:
            BudgetReconciliationResult (never raises)
        """
        correlation_id = correlation_id or str(uuid.uuid4())

        try:
            snapshot = self.fetcher.fetch()
            scale_factor = calculate_scale_factor(snapshot.total_mrr)
            limits = calculate_budget_limits(scale_factor)
            validate_budget_limits(limits)
            decision = self.reconciler.reconcile(
                scale_factor, limits, today, correlation_id=correlation_id
            )
        except Exception as e:
            return self._failure(today, correlation_id, e)

        self._last_known_good = limits

        if decision.apply_update:
            status = ReconciliationStatus.APPLIED
            propagation_errors = self._propagate(decision, snapshot, correlation_id)
        else:
            status = ReconciliationStatus.ALREADY_CURRENT
            propagation_errors = []

        result = BudgetReconciliationResult(
            status=status,
            snapshot=snapshot,
            scale_factor=scale_factor,
            limits=limits,
            today=today,
            correlation_id=correlation_id,
            decision=decision,
            last_known_good_limits=limits,
            propagation_errors=propagation_errors,
        )
        record_reconciliation(
            status.value, scale_factor, snapshot.total_mrr, limits, correlation_id
        )

        logger.info(
            f"[BSE-ENGINE] Reconciliation {status.value} | "
            f"today={today.isoformat()} | total_mrr={snapshot.total_mrr} | "
            f"fallback={snapshot.is_fallback} | scale_factor={scale_factor} | "
            f"executive={limits.executive_max_spending} | "
            f"propagation_errors={len(propagation_errors)} | "
            f"correlation_id={correlation_id}"
        )
        return result

    def _propagate(
        self,
        decision: ReconciliationDecision,
        snapshot: RevenueSnapshot,
        correlation_id: str,
    ) -> List[str]:
        errors: List[str] = []

        try:
            written = self.remote_config_writer.write_budget_limits(
                decision.limits, decision.scale_factor, correlation_id
            )
            if not written.delivered:
                logger.info(
                    f"[BSE-PROP] Remote config not written | "
                    f"detail={written.detail} | correlation_id={correlation_id}"
                )
        except Exception as e:
            logger.error(
                f"[{ERROR_REMOTE_CONFIG_FAIL}] Remote config write failed | "
                f"error={e} | correlation_id={correlation_id}"
            )
            errors.append(f"{ERROR_REMOTE_CONFIG_FAIL}: {e}")

        try:
            notified = self.notifier.notify_budget_update(decision, snapshot, correlation_id)
            if not notified.delivered:
                logger.warning(
                    f"[{ERROR_NOTIFICATION_FAIL}] Budget notification not delivered | "
                    f"error_code={notified.error_code} | detail={notified.detail} | "
                    f"correlation_id={correlation_id}"
                )
                errors.append(f"{ERROR_NOTIFICATION_FAIL}: {notified.detail}")
        except Exception as e:
            logger.error(
                f"[{ERROR_NOTIFICATION_FAIL}] Budget notification failed | "
                f"error={e} | correlation_id={correlation_id}"
            )
            errors.append(f"{ERROR_NOTIFICATION_FAIL}: {e}")

        return errors

    def _failure(
        self,
        today: date,
        correlation_id: str,
        error: Exception,
    ) -> BudgetReconciliationResult:
        """Safe default result; the update state has not been advanced."""
        error_message = f"{type(error).__name__}: {error}"
        logger.error(
            f"[{ERROR_COMPUTATION_FAIL}] Reconciliation failed, using default budgets | "
            f"today={today} | error={error_message} | "
            f"correlation_id={correlation_id}"
        )

        snapshot = zero_revenue_snapshot(correlation_id=correlation_id)
        record_reconciliation(
            ReconciliationStatus.FAILED.value,
            MIN_SCALE_FACTOR,
            snapshot.total_mrr,
            DEFAULT_BUDGET_LIMITS,
            correlation_id,
        )
        return BudgetReconciliationResult(
            status=ReconciliationStatus.FAILED,
            snapshot=snapshot,
            scale_factor=MIN_SCALE_FACTOR,
            limits=DEFAULT_BUDGET_LIMITS,
            today=today,
            correlation_id=correlation_id,
            error_message=error_message,
            last_known_good_limits=self._last_known_good,
        )

    # ========================================================================
    # Reporting
    # ========================================================================

    def generate_report(self) -> RevenueReport:
        """Fetch revenue and build the narrative report (no state change)."""
        report = self._report_generator.generate()
        logger.info(
            f"[BSE-REPORT] Revenue report generated | "
            f"total_mrr={report.snapshot.total_mrr} | "
            f"scale_factor={report.scale_factor} | "
            f"recommendations={len(report.recommendations)}"
        )
        return report


# ============================================================================
# Factory
# ============================================================================

def create_budget_scaling_engine(
    config: Optional[BudgetScalingConfig] = None,
    remote_config_writer: Optional[RemoteConfigWriter] = None,
    notifier: Optional[BudgetNotifier] = None,
) -> BudgetScalingEngine:
    """
    Build an engine wired from configuration.

    A Discord notifier is used when DISCORD_WEBHOOK_URL is configured and no
    notifier is passed explicitly.
    """
    config = config or BudgetScalingConfig()

    fetcher = RevenueFetcher(
        base_url=config.analytics_base_url,
        timeout=config.fetch_timeout_seconds,
    )
    reconciler = UpdateReconciler(
        store=create_update_state_store(config.state_path),
        same_day_threshold=config.same_day_threshold,
    )

    if notifier is None and config.discord_webhook_url:
        notifier = DiscordBudgetNotifier(webhook_url=config.discord_webhook_url)

    return BudgetScalingEngine(
        fetcher=fetcher,
        reconciler=reconciler,
        remote_config_writer=remote_config_writer,
        notifier=notifier,
    )
