# ============================================================================
# Update Reconciler - At Most One Applied Budget Update Per Day
# ============================================================================
#
# Reliability Level: L6 Critical
# Purpose: Decide whether a recomputed budget is newly applied or already
#          current, so repeated scheduler runs do not repeat external
#          side effects (remote config writes, notifications)
#
# STATE MACHINE:
#   PENDING ---------------------------------> APPLIED_TODAY (apply)
#   APPLIED_TODAY (same day, scale <= 1.1) --> APPLIED_TODAY (no action)
#   APPLIED_TODAY (same day, scale >  1.1) --> APPLIED_TODAY (apply)
#   APPLIED_TODAY (new day) -----------------> APPLIED_TODAY (apply)
#
# MANDATE:
#   - "today" is supplied by the caller, never sampled here
#   - last_update_date advances only on an apply decision
#   - Invalid input is rejected before state is read
#   - Store access is serialized by a lock
#
# Error Codes:
#   - BSE-REC-002: Invalid reconciler input
#
# ============================================================================

import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from budget_engine.config import DEFAULT_SAME_DAY_THRESHOLD
from budget_engine.scaling import (
    BudgetLimits,
    Number,
    is_valid_scale_factor,
    to_decimal,
    validate_budget_limits,
)
from budget_engine.update_state import (
    InMemoryUpdateStateStore,
    UpdateState,
    UpdateStateStore,
)

logger = logging.getLogger(__name__)

ERROR_INVALID_INPUT = "BSE-REC-002"


# ============================================================================
# Enums
# ============================================================================

class ReconcilerState(Enum):
    """Reconciler state for the current calendar day."""
    PENDING = "PENDING"
    APPLIED_TODAY = "APPLIED_TODAY"


class InvalidReconciliationInput(ValueError):
    """Raised when the reconciler receives an out-of-range input."""
    pass


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class ReconciliationDecision:
    """
    Outcome of one reconciler invocation.

    apply_update=False means the limits are informational only.
    """
    apply_update: bool
    state: ReconcilerState
    previous_state: ReconcilerState
    scale_factor: Decimal
    limits: BudgetLimits
    today: date
    previous_update_date: Optional[date]
    last_update_date: Optional[date]
    reason: str
    decided_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# Update Reconciler
# ============================================================================

class UpdateReconciler:
    """
    Decides once per invocation whether a budget update is newly applied.

    The caller is responsible for propagating applied updates.

    Example Usage:
        reconciler = UpdateReconciler()
        decision = reconciler.reconcile(scale, limits, today=date.today())
        if decision.apply_update:
            # write remote config, notify
            pass
    """

    def __init__(
        self,
        store: Optional[UpdateStateStore] = None,
        same_day_threshold: Decimal = DEFAULT_SAME_DAY_THRESHOLD,
        correlation_id: Optional[str] = None,
    ):
        """
        Initialize Update Reconciler.

        Args:
            store: Holder of the UpdateState (in-memory if None)
            same_day_threshold: Same-day scale factor above which an
                update is applied again
            correlation_id: Audit trail identifier
        """
        self.store = store or InMemoryUpdateStateStore()
        self.same_day_threshold = Decimal(str(same_day_threshold))
        self.correlation_id = correlation_id
        self._lock = threading.Lock()

        logger.info(
            f"[BSE-REC] UpdateReconciler initialized | "
            f"store={type(self.store).__name__} | "
            f"same_day_threshold={self.same_day_threshold} | "
            f"correlation_id={correlation_id}"
        )

    def state_for(self, today: date) -> ReconcilerState:
        """Current state as seen on the given day."""
        with self._lock:
            return self._state_of(self.store.load(), today)

    def get_update_state(self) -> UpdateState:
        with self._lock:
            return self.store.load()

    def reconcile(
        self,
        scale_factor: Number,
        limits: BudgetLimits,
        today: date,
        correlation_id: Optional[str] = None,
    ) -> ReconciliationDecision:
        """
        Decide whether the computed limits are a newly applied update.

        Args:
            scale_factor: Current scale factor (Decimal, int or float), in [1, 10]
            limits: Limits computed from scale_factor
            today: Caller's calendar date
            correlation_id: Audit trail identifier for this pass

        Returns:
            ReconciliationDecision

        Raises:
            InvalidReconciliationInput: If scale_factor, limits or today is invalid
            UpdateStateError: If the state store cannot be read or written
        """
        correlation_id = correlation_id or self.correlation_id
        self._validate_input(scale_factor, limits, today, correlation_id)
        scale_factor = to_decimal(scale_factor)

        with self._lock:
            state = self.store.load()
            previous_date = state.last_update_date
            previous_state = self._state_of(state, today)

            if (
                previous_state is ReconcilerState.APPLIED_TODAY
                and scale_factor <= self.same_day_threshold
            ):
                decision = ReconciliationDecision(
                    apply_update=False,
                    state=ReconcilerState.APPLIED_TODAY,
                    previous_state=previous_state,
                    scale_factor=scale_factor,
                    limits=limits,
                    today=today,
                    previous_update_date=previous_date,
                    last_update_date=previous_date,
                    reason=(
                        f"already applied on {today.isoformat()}; scale factor "
                        f"{scale_factor} <= {self.same_day_threshold}"
                    ),
                )
            else:
                self.store.save(UpdateState(last_update_date=today))
                if previous_state is ReconcilerState.PENDING:
                    reason = f"first update for {today.isoformat()}"
                else:
                    reason = (
                        f"scale factor {scale_factor} above same-day threshold "
                        f"{self.same_day_threshold}"
                    )
                decision = ReconciliationDecision(
                    apply_update=True,
                    state=ReconcilerState.APPLIED_TODAY,
                    previous_state=previous_state,
                    scale_factor=scale_factor,
                    limits=limits,
                    today=today,
                    previous_update_date=previous_date,
                    last_update_date=today,
                    reason=reason,
                )

        logger.info(
            f"[BSE-REC] Reconciliation decided | "
            f"apply_update={decision.apply_update} | "
            f"previous_state={previous_state.value} | "
            f"scale_factor={scale_factor} | today={today.isoformat()} | "
            f"last_update_date={decision.last_update_date} | "
            f"reason={decision.reason} | correlation_id={correlation_id}"
        )
        return decision

    @staticmethod
    def _state_of(state: UpdateState, today: date) -> ReconcilerState:
        if state.last_update_date == today:
            return ReconcilerState.APPLIED_TODAY
        return ReconcilerState.PENDING

    def _validate_input(
        self,
        scale_factor: Number,
        limits: BudgetLimits,
        today: date,
        correlation_id: Optional[str],
    ) -> None:
        problem = None
        if not is_valid_scale_factor(scale_factor):
            problem = f"scale factor out of range: {scale_factor!r}"
        elif not isinstance(today, date) or isinstance(today, datetime):
            problem = f"today must be a calendar date, got {type(today).__name__}"
        else:
            try:
                validate_budget_limits(limits)
            except (ValueError, AttributeError, TypeError) as e:
                problem = f"invalid budget limits: {e}"

        if problem is not None:
            logger.error(
                f"[{ERROR_INVALID_INPUT}] Reconciler input rejected | "
                f"{problem} | correlation_id={correlation_id}"
            )
            raise InvalidReconciliationInput(f"{ERROR_INVALID_INPUT}: {problem}")
