"""
============================================================================
Budget Scaling Engine
============================================================================

Converts observed company revenue into per-role spending limits and
reconciles the result on a recurring schedule without double-applying
updates.

Reliability Level: L6 Critical

The engine facade (budget_engine.engine) and the report generator
(budget_engine.report) depend on revenue_ingestion and are imported from
their modules directly.
============================================================================
"""

from budget_engine.config import (
    BudgetScalingConfig,
    BudgetConfigurationError,
    BudgetConfigErrorCode,
)

from budget_engine.scaling import (
    BASE_REVENUE_UNIT,
    BASE_BUDGETS,
    MIN_SCALE_FACTOR,
    MAX_SCALE_FACTOR,
    DEFAULT_BUDGET_LIMITS,
    BudgetLimits,
    calculate_scale_factor,
    calculate_budget_limits,
    validate_budget_limits,
)

from budget_engine.update_state import (
    UpdateState,
    UpdateStateStore,
    UpdateStateError,
    InMemoryUpdateStateStore,
    JsonFileUpdateStateStore,
    create_update_state_store,
)

from budget_engine.reconciler import (
    UpdateReconciler,
    ReconcilerState,
    ReconciliationDecision,
    InvalidReconciliationInput,
)

__all__ = [
    # Config
    "BudgetScalingConfig",
    "BudgetConfigurationError",
    "BudgetConfigErrorCode",
    # Scaling
    "BASE_REVENUE_UNIT",
    "BASE_BUDGETS",
    "MIN_SCALE_FACTOR",
    "MAX_SCALE_FACTOR",
    "DEFAULT_BUDGET_LIMITS",
    "BudgetLimits",
    "calculate_scale_factor",
    "calculate_budget_limits",
    "validate_budget_limits",
    # Update state
    "UpdateState",
    "UpdateStateStore",
    "UpdateStateError",
    "InMemoryUpdateStateStore",
    "JsonFileUpdateStateStore",
    "create_update_state_store",
    # Reconciler
    "UpdateReconciler",
    "ReconcilerState",
    "ReconciliationDecision",
    "InvalidReconciliationInput",
]
