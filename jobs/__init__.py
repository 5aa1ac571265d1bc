"""
Budget Scaling - Jobs Module

This module contains scheduled jobs for the budget scaling engine:
- budget_reconciliation_job: Recurring revenue-to-budget reconciliation pass

Reliability Level: Scheduled Job
"""

from jobs.budget_reconciliation_job import (
    BudgetReconciliationJob,
    utc_today,
)

__all__ = [
    "BudgetReconciliationJob",
    "utc_today",
]
