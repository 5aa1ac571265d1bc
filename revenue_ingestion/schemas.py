"""
============================================================================
Revenue Ingestion Schemas - RevenueSnapshot and Analytics Payload
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: All revenue values use decimal.Decimal
Traceability: All snapshots include correlation_id for audit

REVENUE SNAPSHOT:
    The RevenueSnapshot is the normalized revenue structure consumed by the
    budget scaling engine. It contains:
    - Total MRR (monthly recurring revenue)
    - MRR per product (fixed product set)
    - One-time revenue
    - Total revenue (MRR + one-time)
    - Source marker (ANALYTICS or FALLBACK)

ANALYTICS PAYLOAD:
    The analytics endpoint returns a "financial" object. Every field is
    optional on the wire; AnalyticsFinancials declares the default (0) for
    each so the zero-fill policy is explicit and testable.

Key Constraints:
- All values non-negative
- total_revenue == total_mrr + one_time_revenue
- Immutable after creation
============================================================================
"""

from decimal import Decimal
from typing import Optional, Dict, Any, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from datetime import datetime, timezone
import uuid

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Constants
# =============================================================================

ZERO = Decimal("0")


# =============================================================================
# Enums
# =============================================================================

class ProductId(str, Enum):
    """Products whose MRR is reported by the analytics endpoint."""
    DEALIO = "dealio"
    QUOTELY = "quotely"
    SHOPFLOW = "shopflow"
    SHOPLINK = "shoplink"


class SnapshotSource(Enum):
    """
    Origin of a RevenueSnapshot.

    FALLBACK snapshots are the zero-valued result of a soft fetch failure.
    """
    ANALYTICS = "ANALYTICS"
    FALLBACK = "FALLBACK"


# =============================================================================
# Analytics Payload (partial response)
# =============================================================================

class AnalyticsFinancials(BaseModel):
    """
    Typed view of the analytics "financial" object.

    Missing and null fields default to 0. Negative, non-numeric and
    non-finite values fail validation.
    """

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    mrr: Decimal = Field(default=ZERO, ge=0, alias="mrr")
    dealio_mrr: Decimal = Field(default=ZERO, ge=0, alias="dealioMRR")
    quotely_mrr: Decimal = Field(default=ZERO, ge=0, alias="quotelyMRR")
    shopflow_mrr: Decimal = Field(default=ZERO, ge=0, alias="shopflowMRR")
    shoplink_mrr: Decimal = Field(default=ZERO, ge=0, alias="shoplinkMRR")
    one_time_revenue: Decimal = Field(default=ZERO, ge=0, alias="oneTimeRevenue")

    @field_validator(
        "mrr",
        "dealio_mrr",
        "quotely_mrr",
        "shopflow_mrr",
        "shoplink_mrr",
        "one_time_revenue",
        mode="before",
    )
    @classmethod
    def null_is_zero(cls, v: Any) -> Any:
        """Treat explicit null the same as a missing field."""
        if v is None:
            return ZERO
        if isinstance(v, bool):
            raise ValueError("boolean is not a revenue amount")
        return v

    @classmethod
    def from_analytics_payload(cls, payload: Any) -> "AnalyticsFinancials":
        """
        Extract the "financial" object from a full analytics response.

        A payload without a financial object (or with a null one) yields
        all-zero financials.

        Raises:
            ValueError: If the payload is not a JSON object
            pydantic.ValidationError: If a financial field is invalid
        """
        if not isinstance(payload, Mapping):
            raise ValueError(
                f"analytics payload must be an object, got {type(payload).__name__}"
            )
        financial = payload.get("financial") or {}
        if not isinstance(financial, Mapping):
            raise ValueError(
                f"financial must be an object, got {type(financial).__name__}"
            )
        return cls.model_validate(dict(financial))

    def revenue_by_product(self) -> Dict[ProductId, Decimal]:
        return {
            ProductId.DEALIO: self.dealio_mrr,
            ProductId.QUOTELY: self.quotely_mrr,
            ProductId.SHOPFLOW: self.shopflow_mrr,
            ProductId.SHOPLINK: self.shoplink_mrr,
        }


# =============================================================================
# RevenueSnapshot
# =============================================================================

@dataclass(frozen=True)
class RevenueSnapshot:
    """
    Immutable revenue snapshot.

    Reliability Level: L6 Critical
    Input Constraints: All values non-negative Decimal
    Mutability: None, revenue_by_product is a read-only mapping
    Side Effects: None
    """
    total_mrr: Decimal
    revenue_by_product: Mapping[ProductId, Decimal]
    one_time_revenue: Decimal
    total_revenue: Decimal
    source: SnapshotSource
    correlation_id: str
    fetched_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "revenue_by_product", MappingProxyType(dict(self.revenue_by_product))
        )

    @property
    def is_fallback(self) -> bool:
        return self.source is SnapshotSource.FALLBACK

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with string decimals for logging and reporting."""
        return {
            "total_mrr": str(self.total_mrr),
            "revenue_by_product": {
                product.value: str(amount)
                for product, amount in self.revenue_by_product.items()
            },
            "one_time_revenue": str(self.one_time_revenue),
            "total_revenue": str(self.total_revenue),
            "source": self.source.value,
            "correlation_id": self.correlation_id,
            "fetched_at": self.fetched_at.isoformat(),
        }


# =============================================================================
# Factory Functions
# =============================================================================

def _require_non_negative(name: str, value: Decimal) -> Decimal:
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    if not value.is_finite():
        raise ValueError(f"{name} must be finite, got {value}")
    if value < ZERO:
        raise ValueError(f"{name} must be non-negative, got {value}")
    return value


def create_revenue_snapshot(
    total_mrr: Decimal,
    one_time_revenue: Decimal = ZERO,
    revenue_by_product: Optional[Mapping[ProductId, Decimal]] = None,
    source: SnapshotSource = SnapshotSource.ANALYTICS,
    correlation_id: Optional[str] = None,
    fetched_at: Optional[datetime] = None,
) -> RevenueSnapshot:
    """
    Factory function to create a RevenueSnapshot with a derived total.

    ============================================================================
    CALCULATION:
    ============================================================================
    total_revenue = total_mrr + one_time_revenue
    Products absent from revenue_by_product are filled with 0.
    ============================================================================

    Raises:
        ValueError: If any amount is negative or not finite
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())

    if fetched_at is None:
        fetched_at = datetime.now(timezone.utc)

    mrr = _require_non_negative("total_mrr", total_mrr)
    one_time = _require_non_negative("one_time_revenue", one_time_revenue)

    by_product = {product: ZERO for product in ProductId}
    for product, amount in (revenue_by_product or {}).items():
        product = ProductId(product)
        by_product[product] = _require_non_negative(
            f"revenue_by_product[{product.value}]", amount
        )

    return RevenueSnapshot(
        total_mrr=mrr,
        revenue_by_product=by_product,
        one_time_revenue=one_time,
        total_revenue=mrr + one_time,
        source=source,
        correlation_id=correlation_id,
        fetched_at=fetched_at,
    )


def snapshot_from_financials(
    financials: AnalyticsFinancials,
    correlation_id: Optional[str] = None,
) -> RevenueSnapshot:
    """Build an ANALYTICS snapshot from a validated analytics payload."""
    return create_revenue_snapshot(
        total_mrr=financials.mrr,
        one_time_revenue=financials.one_time_revenue,
        revenue_by_product=financials.revenue_by_product(),
        source=SnapshotSource.ANALYTICS,
        correlation_id=correlation_id,
    )


def zero_revenue_snapshot(correlation_id: Optional[str] = None) -> RevenueSnapshot:
    """The conservative fallback snapshot: every amount is 0."""
    return create_revenue_snapshot(
        total_mrr=ZERO,
        one_time_revenue=ZERO,
        source=SnapshotSource.FALLBACK,
        correlation_id=correlation_id,
    )
