"""
============================================================================
Budget Propagation - Outbound Collaborator Interfaces
============================================================================

Reliability Level: L5 High
Side Effects: Implementations write remote config or send notifications

Applied budget updates leave the engine through two injected collaborators:

1. RemoteConfigWriter: pushes the new spending ceilings to the remote
   configuration store read by sibling services. No remote store is wired
   yet; UnconfiguredRemoteConfigWriter logs the limits and reports that
   nothing was written.

2. BudgetNotifier: tells operators an update was applied.
   LoggingBudgetNotifier writes to the log; DiscordBudgetNotifier
   (budget_engine.observability.discord_notifier) posts to a webhook.

Both are called only for applied decisions, after the update state has
advanced.
============================================================================
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from budget_engine.reconciler import ReconciliationDecision
from budget_engine.scaling import BudgetLimits
from revenue_ingestion.schemas import RevenueSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropagationResult:
    """Outcome of one outbound call."""
    delivered: bool
    detail: str = ""
    error_code: Optional[str] = None


# =============================================================================
# Remote Config
# =============================================================================

class RemoteConfigWriter(ABC):
    """Writes spending ceilings to the remote configuration store."""

    @abstractmethod
    def write_budget_limits(
        self,
        limits: BudgetLimits,
        scale_factor: Decimal,
        correlation_id: Optional[str] = None,
    ) -> PropagationResult:
        ...


class UnconfiguredRemoteConfigWriter(RemoteConfigWriter):
    """Placeholder writer used until a remote config store is wired in."""

    def write_budget_limits(
        self,
        limits: BudgetLimits,
        scale_factor: Decimal,
        correlation_id: Optional[str] = None,
    ) -> PropagationResult:
        logger.warning(
            f"[BSE-PROP] Remote config store not configured, limits not written | "
            f"scale_factor={scale_factor} | limits={limits.to_dict()} | "
            f"correlation_id={correlation_id}"
        )
        return PropagationResult(delivered=False, detail="remote config store not configured")


# =============================================================================
# Notification
# =============================================================================

class BudgetNotifier(ABC):
    """Announces applied budget updates."""

    @abstractmethod
    def notify_budget_update(
        self,
        decision: ReconciliationDecision,
        snapshot: RevenueSnapshot,
        correlation_id: Optional[str] = None,
    ) -> PropagationResult:
        ...


class LoggingBudgetNotifier(BudgetNotifier):

    def notify_budget_update(
        self,
        decision: ReconciliationDecision,
        snapshot: RevenueSnapshot,
        correlation_id: Optional[str] = None,
    ) -> PropagationResult:
        logger.info(
            f"[BSE-NOTIFY] Budget update applied | "
            f"date={decision.today.isoformat()} | "
            f"scale_factor={decision.scale_factor} | "
            f"total_mrr={snapshot.total_mrr} | "
            f"limits={decision.limits.to_dict()} | "
            f"correlation_id={correlation_id}"
        )
        return PropagationResult(delivered=True, detail="logged")
