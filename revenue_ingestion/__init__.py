"""
============================================================================
Revenue Ingestion
============================================================================

Revenue snapshot schema and the analytics endpoint fetcher.

Reliability Level: L6 Critical
============================================================================
"""

from revenue_ingestion.schemas import (
    ProductId,
    SnapshotSource,
    AnalyticsFinancials,
    RevenueSnapshot,
    create_revenue_snapshot,
    snapshot_from_financials,
    zero_revenue_snapshot,
)

from revenue_ingestion.revenue_fetcher import (
    RevenueFetcher,
    RevenueFetchErrorCode,
    create_revenue_fetcher,
)

__all__ = [
    # Schemas
    "ProductId",
    "SnapshotSource",
    "AnalyticsFinancials",
    "RevenueSnapshot",
    "create_revenue_snapshot",
    "snapshot_from_financials",
    "zero_revenue_snapshot",
    # Fetcher
    "RevenueFetcher",
    "RevenueFetchErrorCode",
    "create_revenue_fetcher",
]
