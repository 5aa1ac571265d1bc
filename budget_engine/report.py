"""
============================================================================
Revenue Report - Narrative Budget Summary
============================================================================

Reliability Level: L4 Standard
Side Effects: RevenueReportGenerator.generate() performs one revenue fetch

RECOMMENDATION BANDS (mutually exclusive, checked in order):
    1. total_mrr < 1000     -> conservative budget guidance
    2. scale_factor >= 10   -> investment-beyond-cap guidance
    3. otherwise            -> progress toward the next whole-multiple
                               milestone: ceil(total_mrr / 1000) * 1000
============================================================================
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Any, Dict, List, Tuple

from budget_engine.scaling import (
    BASE_REVENUE_UNIT,
    MAX_SCALE_FACTOR,
    BudgetLimits,
    calculate_budget_limits,
    calculate_scale_factor,
)
from revenue_ingestion.schemas import RevenueSnapshot


@dataclass(frozen=True)
class RevenueReport:
    snapshot: RevenueSnapshot
    scale_factor: Decimal
    limits: BudgetLimits
    recommendations: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "revenue": self.snapshot.to_dict(),
            "scale_factor": str(self.scale_factor),
            "budgets": self.limits.to_dict(),
            "recommendations": list(self.recommendations),
        }


def next_milestone(total_mrr: Decimal) -> int:
    """Revenue at the next whole multiple of the base unit."""
    multiples = (total_mrr / BASE_REVENUE_UNIT).to_integral_value(rounding=ROUND_CEILING)
    return int(multiples * BASE_REVENUE_UNIT)


def _one_decimal(value: Decimal) -> Decimal:
    """Round half up to one place; 2.25 reads as 2.3."""
    return value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)


def build_recommendations(total_mrr: Decimal, scale_factor: Decimal) -> List[str]:
    if total_mrr < BASE_REVENUE_UNIT:
        return [
            "Revenue below base threshold. Maintain conservative budgets.",
            "Focus on revenue-generating activities.",
        ]

    if scale_factor >= MAX_SCALE_FACTOR:
        return [
            "Revenue at maximum scaling threshold. Budgets capped at 10x.",
            "Consider strategic investments beyond base scaling.",
        ]

    milestone = next_milestone(total_mrr)
    milestone_scale = Decimal(milestone) / BASE_REVENUE_UNIT
    return [
        f"Current scale: {_one_decimal(scale_factor)}x. Next milestone: ${milestone:,} MRR "
        f"for {_one_decimal(milestone_scale)}x scaling."
    ]


def build_report(snapshot: RevenueSnapshot) -> RevenueReport:
    """Derive the full report from an already fetched snapshot."""
    scale_factor = calculate_scale_factor(snapshot.total_mrr)
    return RevenueReport(
        snapshot=snapshot,
        scale_factor=scale_factor,
        limits=calculate_budget_limits(scale_factor),
        recommendations=tuple(build_recommendations(snapshot.total_mrr, scale_factor)),
    )


class RevenueReportGenerator:
    """Fetches revenue and builds a RevenueReport."""

    def __init__(self, fetcher) -> None:
        self._fetcher = fetcher

    def generate(self) -> RevenueReport:
        return build_report(self._fetcher.fetch())
