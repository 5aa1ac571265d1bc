# ============================================================================
# Revenue Fetcher - Analytics Endpoint Client
# ============================================================================
#
# Reliability Level: L6 Critical
# Purpose: Pull the current revenue snapshot from the operator analytics API
#
# FAIL-SAFE MANDATE:
#   - Bounded timeout on every request
#   - Any transport error, timeout, non-200 or invalid payload degrades to
#     the zero-revenue snapshot (scale factor 1x, base budgets)
#   - No exception ever reaches the caller
#   - No automatic retries; retry policy belongs to the scheduler
#
# Error Codes:
#   - BSE-FETCH-001: Transport failure or timeout
#   - BSE-FETCH-002: Non-200 response
#   - BSE-FETCH-003: Payload invalid
#
# ============================================================================

import logging
import uuid
from typing import Optional

import requests
from pydantic import ValidationError

from budget_engine.config import DEFAULT_ANALYTICS_BASE_URL, DEFAULT_FETCH_TIMEOUT_SECONDS
from budget_engine.observability.metrics import record_fetch_failure
from revenue_ingestion.schemas import (
    AnalyticsFinancials,
    RevenueSnapshot,
    snapshot_from_financials,
    zero_revenue_snapshot,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

ANALYTICS_PATH = "/api/analytics"


class RevenueFetchErrorCode:
    """Revenue fetch error codes for audit logging."""
    TRANSPORT_FAIL = "BSE-FETCH-001"
    BAD_STATUS = "BSE-FETCH-002"
    PAYLOAD_INVALID = "BSE-FETCH-003"


# ============================================================================
# Revenue Fetcher
# ============================================================================

class RevenueFetcher:
    """
    Analytics client that never fails.

    Example Usage:
        fetcher = RevenueFetcher(base_url="https://analytics.internal")
        snapshot = fetcher.fetch()
        if snapshot.is_fallback:
            # analytics unavailable, budgets stay at base
            pass
    """

    def __init__(
        self,
        base_url: str = DEFAULT_ANALYTICS_BASE_URL,
        timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
        correlation_id: Optional[str] = None,
    ):
        """
        Initialize Revenue Fetcher.

        Args:
            base_url: Analytics base URL used when fetch() gets no endpoint
            timeout: Request timeout in seconds
            session: Optional requests.Session (created if None)
            correlation_id: Audit trail identifier
        """
        self.base_url = base_url
        self.timeout = timeout
        self.correlation_id = correlation_id
        self._session = session or requests.Session()

        logger.info(
            f"[BSE-FETCH] RevenueFetcher initialized | "
            f"base_url={base_url} | timeout={timeout}s | "
            f"correlation_id={correlation_id}"
        )

    @staticmethod
    def analytics_url(base_url: str) -> str:
        return f"{base_url.rstrip('/')}{ANALYTICS_PATH}"

    def fetch(self, endpoint: Optional[str] = None) -> RevenueSnapshot:
        """
        Fetch the current revenue snapshot.

        Args:
            endpoint: Analytics base URL override (defaults to configured URL)

        Returns:
            RevenueSnapshot, the zero-valued FALLBACK snapshot on any failure
        """
        correlation_id = self.correlation_id or str(uuid.uuid4())
        url = self.analytics_url(endpoint or self.base_url)

        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            return self._fallback(
                RevenueFetchErrorCode.TRANSPORT_FAIL,
                f"transport error: {e}",
                url,
                correlation_id,
            )

        if response.status_code != 200:
            return self._fallback(
                RevenueFetchErrorCode.BAD_STATUS,
                f"analytics returned HTTP {response.status_code}",
                url,
                correlation_id,
            )

        try:
            financials = AnalyticsFinancials.from_analytics_payload(response.json())
            snapshot = snapshot_from_financials(financials, correlation_id=correlation_id)
        except (ValueError, ValidationError) as e:
            # requests' JSONDecodeError is a ValueError
            return self._fallback(
                RevenueFetchErrorCode.PAYLOAD_INVALID,
                f"invalid analytics payload: {e}",
                url,
                correlation_id,
            )

        logger.info(
            f"[BSE-FETCH] Revenue snapshot fetched | "
            f"total_mrr={snapshot.total_mrr} | "
            f"one_time={snapshot.one_time_revenue} | "
            f"total={snapshot.total_revenue} | "
            f"correlation_id={correlation_id}"
        )
        return snapshot

    def _fallback(
        self,
        error_code: str,
        reason: str,
        url: str,
        correlation_id: str,
    ) -> RevenueSnapshot:
        """Log the soft failure and return the zero-revenue snapshot."""
        logger.error(
            f"[{error_code}] Revenue fetch failed, using zero revenue | "
            f"url={url} | reason={reason} | correlation_id={correlation_id}"
        )
        record_fetch_failure(error_code)
        return zero_revenue_snapshot(correlation_id=correlation_id)

    def close(self) -> None:
        self._session.close()


# ============================================================================
# Factory
# ============================================================================

def create_revenue_fetcher(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    correlation_id: Optional[str] = None,
) -> RevenueFetcher:
    """Factory function to create a RevenueFetcher with configured defaults."""
    return RevenueFetcher(
        base_url=base_url or DEFAULT_ANALYTICS_BASE_URL,
        timeout=timeout if timeout is not None else DEFAULT_FETCH_TIMEOUT_SECONDS,
        correlation_id=correlation_id,
    )
