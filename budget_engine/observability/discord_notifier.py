"""
============================================================================
Discord Notifier - Budget Update Announcements
============================================================================

Reliability Level: L5 High
Input Constraints: Valid Discord webhook URL required
Side Effects: Sends HTTP POST to Discord webhook endpoint

MANDATE:
- Graceful degradation if Discord unavailable (failure result, no raise)
- Single attempt per update, bounded timeout
- Zero impact on the reconciliation decision

DISCORD EMBED STRUCTURE:
- Title: "Budget Update Applied"
- Description: Date and scale factor
- Fields: Revenue and one field per role
- Footer: Correlation ID

PRIVACY: No personal data in notifications.
============================================================================
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

import requests

from budget_engine.propagation import BudgetNotifier, PropagationResult
from budget_engine.reconciler import ReconciliationDecision
from revenue_ingestion.schemas import RevenueSnapshot

logger = logging.getLogger("discord_notifier")


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_REQUEST_TIMEOUT_SECONDS = 10

# Discord API limits
MAX_FIELD_VALUE_LENGTH = 1024

# Embed sidebar colors
COLOR_SUCCESS = 0x2ECC71
COLOR_INFO = 0x3498DB

# Error codes
ERROR_DISCORD_WEBHOOK_MISSING = "DISC-001-WEBHOOK_MISSING"
ERROR_DISCORD_RATE_LIMITED = "DISC-002-RATE_LIMITED"
ERROR_DISCORD_REQUEST_FAILED = "DISC-003-REQUEST_FAILED"
ERROR_DISCORD_INVALID_RESPONSE = "DISC-004-INVALID_RESPONSE"


class DiscordBudgetNotifier(BudgetNotifier):
    """
    Posts applied budget updates to a Discord webhook.

    Example Usage:
        notifier = DiscordBudgetNotifier(webhook_url=os.environ["DISCORD_WEBHOOK_URL"])
        result = notifier.notify_budget_update(decision, snapshot)
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def is_enabled(self) -> bool:
        return bool(self._webhook_url)

    def build_payload(
        self,
        decision: ReconciliationDecision,
        snapshot: RevenueSnapshot,
        correlation_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Build the webhook JSON body for an applied update."""
        fields: List[Dict[str, Any]] = [
            {
                "name": "Revenue",
                "value": (
                    f"MRR: ${snapshot.total_mrr:,.2f}\n"
                    f"One-time: ${snapshot.one_time_revenue:,.2f}"
                ),
                "inline": False,
            }
        ]
        for role, named in decision.limits.to_dict().items():
            value = "\n".join(f"{name}: ${amount:,}" for name, amount in named.items())
            fields.append({
                "name": role.title(),
                "value": value[:MAX_FIELD_VALUE_LENGTH],
                "inline": True,
            })

        color = COLOR_INFO if snapshot.is_fallback else COLOR_SUCCESS
        return {
            "embeds": [{
                "title": "Budget Update Applied",
                "description": (
                    f"Budgets for {decision.today.isoformat()} at "
                    f"{decision.scale_factor:.2f}x scale"
                ),
                "color": color,
                "fields": fields,
                "footer": {"text": f"correlation_id={correlation_id}"},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }]
        }

    def notify_budget_update(
        self,
        decision: ReconciliationDecision,
        snapshot: RevenueSnapshot,
        correlation_id: Optional[str] = None,
    ) -> PropagationResult:
        if not self._webhook_url:
            return PropagationResult(
                delivered=False,
                detail="Webhook URL not configured",
                error_code=ERROR_DISCORD_WEBHOOK_MISSING,
            )

        payload = self.build_payload(decision, snapshot, correlation_id)

        try:
            response = self._session.post(
                self._webhook_url,
                json=payload,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            logger.warning(
                f"[{ERROR_DISCORD_REQUEST_FAILED}] Discord request failed | "
                f"error={e} | correlation_id={correlation_id}"
            )
            return PropagationResult(
                delivered=False,
                detail=str(e),
                error_code=ERROR_DISCORD_REQUEST_FAILED,
            )

        if response.status_code in (200, 204):
            logger.debug("[DISCORD_SEND] Message sent successfully")
            return PropagationResult(delivered=True, detail="sent")

        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "60")
            logger.warning(
                f"[{ERROR_DISCORD_RATE_LIMITED}] "
                f"Discord rate limit hit, retry after {retry_after}s | "
                f"correlation_id={correlation_id}"
            )
            return PropagationResult(
                delivered=False,
                detail=f"rate limited, retry after {retry_after}s",
                error_code=ERROR_DISCORD_RATE_LIMITED,
            )

        logger.warning(
            f"[{ERROR_DISCORD_INVALID_RESPONSE}] "
            f"Unexpected status code: {response.status_code} | "
            f"correlation_id={correlation_id}"
        )
        return PropagationResult(
            delivered=False,
            detail=f"HTTP {response.status_code}",
            error_code=ERROR_DISCORD_INVALID_RESPONSE,
        )
