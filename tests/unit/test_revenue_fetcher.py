"""
============================================================================
Unit Tests - Revenue Fetcher
============================================================================

Reliability Level: L6 Critical
Test Coverage: RevenueFetcher.fetch, AnalyticsFinancials parsing

Tests verify:
1. Successful fetch maps wire fields onto the snapshot
2. Missing and null fields are zero-filled
3. Transport errors, timeouts, non-200 and invalid payloads all degrade
   to the zero-revenue FALLBACK snapshot without raising
4. Requests carry a bounded timeout
============================================================================
"""

import os
import sys
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import requests

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from revenue_ingestion.revenue_fetcher import (
    ANALYTICS_PATH,
    RevenueFetchErrorCode,
    RevenueFetcher,
    create_revenue_fetcher,
)
from revenue_ingestion.schemas import (
    ProductId,
    SnapshotSource,
    create_revenue_snapshot,
)


BASE_URL = "https://analytics.test"


# =============================================================================
# Fixtures
# =============================================================================

def _response(status_code=200, payload=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.fixture
def fetcher(session):
    return RevenueFetcher(base_url=BASE_URL, timeout=5, session=session)


@pytest.fixture
def record_failure():
    with patch("revenue_ingestion.revenue_fetcher.record_fetch_failure") as mock:
        yield mock


def _assert_zero_fallback(snapshot):
    assert snapshot.source is SnapshotSource.FALLBACK
    assert snapshot.is_fallback
    assert snapshot.total_mrr == Decimal("0")
    assert snapshot.one_time_revenue == Decimal("0")
    assert snapshot.total_revenue == Decimal("0")
    assert all(v == Decimal("0") for v in snapshot.revenue_by_product.values())


# =============================================================================
# Successful Fetch
# =============================================================================

class TestSuccessfulFetch:
    """Tests for a 200 response with a valid payload."""

    def test_full_payload_is_mapped(self, fetcher, session):
        session.get.return_value = _response(payload={
            "financial": {
                "mrr": 2370,
                "dealioMRR": 1000,
                "quotelyMRR": 870,
                "shopflowMRR": 300,
                "shoplinkMRR": 200,
                "oneTimeRevenue": 450,
            },
            "users": {"total": 12},
        })

        snapshot = fetcher.fetch()

        assert snapshot.source is SnapshotSource.ANALYTICS
        assert snapshot.total_mrr == Decimal("2370")
        assert snapshot.one_time_revenue == Decimal("450")
        assert snapshot.total_revenue == Decimal("2820")
        assert snapshot.revenue_by_product == {
            ProductId.DEALIO: Decimal("1000"),
            ProductId.QUOTELY: Decimal("870"),
            ProductId.SHOPFLOW: Decimal("300"),
            ProductId.SHOPLINK: Decimal("200"),
        }

    def test_request_uses_analytics_path_and_timeout(self, fetcher, session):
        session.get.return_value = _response(payload={"financial": {"mrr": 1}})

        fetcher.fetch()

        session.get.assert_called_once_with(BASE_URL + ANALYTICS_PATH, timeout=5)

    def test_endpoint_override(self, fetcher, session):
        session.get.return_value = _response(payload={"financial": {}})

        fetcher.fetch("https://other.test/")

        session.get.assert_called_once_with(
            "https://other.test" + ANALYTICS_PATH, timeout=5
        )

    def test_missing_fields_are_zero(self, fetcher, session):
        session.get.return_value = _response(payload={"financial": {"mrr": 1500}})

        snapshot = fetcher.fetch()

        assert snapshot.source is SnapshotSource.ANALYTICS
        assert snapshot.total_mrr == Decimal("1500")
        assert snapshot.one_time_revenue == Decimal("0")
        assert snapshot.total_revenue == Decimal("1500")
        assert snapshot.revenue_by_product[ProductId.SHOPLINK] == Decimal("0")

    def test_null_fields_are_zero(self, fetcher, session):
        session.get.return_value = _response(payload={
            "financial": {"mrr": None, "dealioMRR": None, "oneTimeRevenue": 25}
        })

        snapshot = fetcher.fetch()

        assert snapshot.total_mrr == Decimal("0")
        assert snapshot.revenue_by_product[ProductId.DEALIO] == Decimal("0")
        assert snapshot.total_revenue == Decimal("25")

    def test_missing_financial_object_is_all_zero(self, fetcher, session, record_failure):
        session.get.return_value = _response(payload={"users": {}})

        snapshot = fetcher.fetch()

        assert snapshot.source is SnapshotSource.ANALYTICS
        assert snapshot.total_revenue == Decimal("0")
        record_failure.assert_not_called()

    def test_product_mrr_not_reconciled_with_total(self, fetcher, session):
        session.get.return_value = _response(payload={
            "financial": {"mrr": 100, "dealioMRR": 5000}
        })

        snapshot = fetcher.fetch()

        assert snapshot.total_mrr == Decimal("100")
        assert snapshot.revenue_by_product[ProductId.DEALIO] == Decimal("5000")

    def test_correlation_id_propagates(self, session):
        fetcher = RevenueFetcher(
            base_url=BASE_URL, session=session, correlation_id="corr-123"
        )
        session.get.return_value = _response(payload={"financial": {"mrr": 1}})

        assert fetcher.fetch().correlation_id == "corr-123"


# =============================================================================
# Soft Failures
# =============================================================================

class TestSoftFailures:
    """Every failure mode returns the zero snapshot and never raises."""

    def test_connection_error(self, fetcher, session, record_failure):
        session.get.side_effect = requests.ConnectionError("connection refused")

        _assert_zero_fallback(fetcher.fetch())
        record_failure.assert_called_once_with(RevenueFetchErrorCode.TRANSPORT_FAIL)

    def test_timeout(self, fetcher, session, record_failure):
        session.get.side_effect = requests.Timeout("read timed out")

        _assert_zero_fallback(fetcher.fetch())
        record_failure.assert_called_once_with(RevenueFetchErrorCode.TRANSPORT_FAIL)

    @pytest.mark.parametrize("status_code", [201, 404, 500, 503])
    def test_non_200_status(self, fetcher, session, record_failure, status_code):
        session.get.return_value = _response(
            status_code=status_code, payload={"financial": {"mrr": 9000}}
        )

        _assert_zero_fallback(fetcher.fetch())
        record_failure.assert_called_once_with(RevenueFetchErrorCode.BAD_STATUS)

    def test_body_not_json(self, fetcher, session, record_failure):
        session.get.return_value = _response(
            json_error=ValueError("Expecting value: line 1 column 1")
        )

        _assert_zero_fallback(fetcher.fetch())
        record_failure.assert_called_once_with(RevenueFetchErrorCode.PAYLOAD_INVALID)

    @pytest.mark.parametrize("payload", [
        [],
        "financial",
        None,
        {"financial": [1, 2, 3]},
        {"financial": {"mrr": "not-a-number"}},
        {"financial": {"mrr": -1}},
        {"financial": {"oneTimeRevenue": -50}},
        {"financial": {"quotelyMRR": True}},
    ])
    def test_invalid_payload(self, fetcher, session, record_failure, payload):
        session.get.return_value = _response(payload=payload)

        _assert_zero_fallback(fetcher.fetch())
        record_failure.assert_called_once_with(RevenueFetchErrorCode.PAYLOAD_INVALID)


# =============================================================================
# Factory
# =============================================================================

class TestFactory:

    def test_factory_defaults(self):
        fetcher = create_revenue_fetcher()

        assert fetcher.base_url == "https://super-admin.doublevision.company"
        assert fetcher.timeout == 10.0

    def test_analytics_url_strips_trailing_slash(self):
        assert RevenueFetcher.analytics_url("https://a.test/") == "https://a.test/api/analytics"


# =============================================================================
# Snapshot Immutability
# =============================================================================

class TestSnapshotImmutability:

    def test_product_revenue_rejects_assignment(self):
        snapshot = create_revenue_snapshot(
            total_mrr=Decimal("1000"),
            revenue_by_product={ProductId.DEALIO: Decimal("1000")},
        )

        with pytest.raises(TypeError):
            snapshot.revenue_by_product[ProductId.DEALIO] = Decimal("-5")

        assert snapshot.revenue_by_product[ProductId.DEALIO] == Decimal("1000")

    def test_fetched_snapshot_rejects_assignment(self, fetcher, session):
        session.get.return_value = _response(payload={"financial": {"quotelyMRR": 40}})

        snapshot = fetcher.fetch()

        with pytest.raises(TypeError):
            snapshot.revenue_by_product[ProductId.QUOTELY] = Decimal("0")
