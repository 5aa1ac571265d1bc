"""
============================================================================
Budget Scaling Engine - Configuration
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: Threshold values use decimal.Decimal

This module provides configuration management for the budget scaling engine:
- Environment variable parsing with type safety
- Default values for every optional setting
- Range validation with a single configuration error code

ENVIRONMENT VARIABLES:
    - REVENUE_ANALYTICS_URL: Analytics base URL (legacy alias: SUPER_ADMIN_URL)
    - REVENUE_FETCH_TIMEOUT_SECONDS: Analytics request timeout (default: 10)
    - BUDGET_SAME_DAY_THRESHOLD: Scale factor above which a same-day
      re-run is applied again (default: 1.1)
    - BUDGET_RECONCILE_INTERVAL_SECONDS: Job interval (default: 3600)
    - BUDGET_STATE_PATH: JSON file for the persisted update state (optional)
    - DISCORD_WEBHOOK_URL: Discord webhook for update notifications (optional)

FIXED CONSTANTS (not configurable):
    - Revenue per scale step: 1000 (see budget_engine.scaling)
    - Base budget table (see budget_engine.scaling)

ERROR CODES:
    - BSE-CFG-001: Configuration invalid

============================================================================
"""

from decimal import Decimal, InvalidOperation
from typing import Optional, List
from dataclasses import dataclass, field
import logging
import os

logger = logging.getLogger(__name__)


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_ANALYTICS_BASE_URL = "https://super-admin.doublevision.company"

DEFAULT_FETCH_TIMEOUT_SECONDS = 10.0

# Upper bound on the analytics timeout
MAX_FETCH_TIMEOUT_SECONDS = 15.0

DEFAULT_SAME_DAY_THRESHOLD = Decimal("1.1")

# One pass per hour
DEFAULT_RECONCILE_INTERVAL_SECONDS = 3600


class BudgetConfigErrorCode:
    """Configuration error codes for audit logging."""
    CONFIG_INVALID = "BSE-CFG-001"


# =============================================================================
# Configuration Exception
# =============================================================================

class BudgetConfigurationError(Exception):
    """Raised when budget scaling configuration is out of range."""

    def __init__(self, message: str, error_code: str = BudgetConfigErrorCode.CONFIG_INVALID):
        self.error_code = error_code
        self.message = message
        super().__init__(f"[{error_code}] {message}")


# =============================================================================
# BudgetScalingConfig
# =============================================================================

@dataclass
class BudgetScalingConfig:
    """
    Budget scaling engine configuration.

    ============================================================================
    CONFIGURATION PARAMETERS:
    ============================================================================
    - analytics_base_url: Analytics base URL
    - fetch_timeout_seconds: Analytics request timeout, (0, 15]
    - same_day_threshold: Same-day re-apply threshold, [1, 10]
    - reconcile_interval_seconds: Job interval, positive
    - state_path: JSON state file (None = in-memory state)
    - discord_webhook_url: Discord webhook (None = log-only notifications)
    ============================================================================
    """

    analytics_base_url: str = DEFAULT_ANALYTICS_BASE_URL
    fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    same_day_threshold: Decimal = field(default_factory=lambda: DEFAULT_SAME_DAY_THRESHOLD)
    reconcile_interval_seconds: int = DEFAULT_RECONCILE_INTERVAL_SECONDS
    state_path: Optional[str] = None
    discord_webhook_url: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.same_day_threshold, Decimal):
            self.same_day_threshold = Decimal(str(self.same_day_threshold))

    def validate(self) -> None:
        """
        Validate configuration ranges.

        Raises:
            BudgetConfigurationError: If any value is out of range
        """
        errors: List[str] = []

        if not self.analytics_base_url or not self.analytics_base_url.strip():
            errors.append("REVENUE_ANALYTICS_URL must not be empty")

        if not 0 < self.fetch_timeout_seconds <= MAX_FETCH_TIMEOUT_SECONDS:
            errors.append(
                f"REVENUE_FETCH_TIMEOUT_SECONDS must be in (0, {MAX_FETCH_TIMEOUT_SECONDS}], "
                f"got: {self.fetch_timeout_seconds}"
            )

        if not (
            self.same_day_threshold.is_finite()
            and Decimal("1") <= self.same_day_threshold <= Decimal("10")
        ):
            errors.append(
                f"BUDGET_SAME_DAY_THRESHOLD must be in [1, 10], "
                f"got: {self.same_day_threshold}"
            )

        if self.reconcile_interval_seconds <= 0:
            errors.append(
                f"BUDGET_RECONCILE_INTERVAL_SECONDS must be positive, "
                f"got: {self.reconcile_interval_seconds}"
            )

        if errors:
            error_msg = "Budget scaling configuration invalid: " + "; ".join(errors)
            logger.error(f"[{BudgetConfigErrorCode.CONFIG_INVALID}] {error_msg}")
            raise BudgetConfigurationError(error_msg)

        logger.info(
            f"[BSE-CONFIG] Configuration validated | "
            f"analytics_base_url={self.analytics_base_url} | "
            f"fetch_timeout_seconds={self.fetch_timeout_seconds} | "
            f"same_day_threshold={self.same_day_threshold} | "
            f"reconcile_interval_seconds={self.reconcile_interval_seconds} | "
            f"state_path={self.state_path} | "
            f"discord_enabled={bool(self.discord_webhook_url)}"
        )

    @classmethod
    def from_environment(cls, validate: bool = True) -> "BudgetScalingConfig":
        """
        Load configuration from environment variables.

        Unparseable values fall back to their defaults with a warning.

        Raises:
            BudgetConfigurationError: If validate is True and a value is out of range
        """
        analytics_base_url = (
            os.environ.get("REVENUE_ANALYTICS_URL")
            or os.environ.get("SUPER_ADMIN_URL")
            or DEFAULT_ANALYTICS_BASE_URL
        ).strip()

        timeout_str = os.environ.get(
            "REVENUE_FETCH_TIMEOUT_SECONDS", str(DEFAULT_FETCH_TIMEOUT_SECONDS)
        )
        try:
            fetch_timeout_seconds = float(timeout_str.strip())
        except ValueError:
            logger.warning(
                f"[BSE-CONFIG] Invalid REVENUE_FETCH_TIMEOUT_SECONDS value: {timeout_str}, "
                f"using default: {DEFAULT_FETCH_TIMEOUT_SECONDS}"
            )
            fetch_timeout_seconds = DEFAULT_FETCH_TIMEOUT_SECONDS

        threshold_str = os.environ.get(
            "BUDGET_SAME_DAY_THRESHOLD", str(DEFAULT_SAME_DAY_THRESHOLD)
        )
        try:
            same_day_threshold = Decimal(threshold_str.strip())
        except InvalidOperation:
            logger.warning(
                f"[BSE-CONFIG] Invalid BUDGET_SAME_DAY_THRESHOLD value: {threshold_str}, "
                f"using default: {DEFAULT_SAME_DAY_THRESHOLD}"
            )
            same_day_threshold = DEFAULT_SAME_DAY_THRESHOLD

        interval_str = os.environ.get(
            "BUDGET_RECONCILE_INTERVAL_SECONDS", str(DEFAULT_RECONCILE_INTERVAL_SECONDS)
        )
        try:
            reconcile_interval_seconds = int(interval_str.strip())
        except ValueError:
            logger.warning(
                f"[BSE-CONFIG] Invalid BUDGET_RECONCILE_INTERVAL_SECONDS value: {interval_str}, "
                f"using default: {DEFAULT_RECONCILE_INTERVAL_SECONDS}"
            )
            reconcile_interval_seconds = DEFAULT_RECONCILE_INTERVAL_SECONDS

        state_path = os.environ.get("BUDGET_STATE_PATH", "").strip() or None
        discord_webhook_url = os.environ.get("DISCORD_WEBHOOK_URL", "").strip() or None

        config = cls(
            analytics_base_url=analytics_base_url,
            fetch_timeout_seconds=fetch_timeout_seconds,
            same_day_threshold=same_day_threshold,
            reconcile_interval_seconds=reconcile_interval_seconds,
            state_path=state_path,
            discord_webhook_url=discord_webhook_url,
        )

        if validate:
            config.validate()

        return config

    def to_dict(self) -> dict:
        """Convert configuration to a dictionary for logging (webhook redacted)."""
        return {
            "analytics_base_url": self.analytics_base_url,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "same_day_threshold": str(self.same_day_threshold),
            "reconcile_interval_seconds": self.reconcile_interval_seconds,
            "state_path": self.state_path,
            "discord_enabled": bool(self.discord_webhook_url),
        }


__all__ = [
    "BudgetScalingConfig",
    "BudgetConfigurationError",
    "BudgetConfigErrorCode",
    "DEFAULT_ANALYTICS_BASE_URL",
    "DEFAULT_FETCH_TIMEOUT_SECONDS",
    "MAX_FETCH_TIMEOUT_SECONDS",
    "DEFAULT_SAME_DAY_THRESHOLD",
    "DEFAULT_RECONCILE_INTERVAL_SECONDS",
]
