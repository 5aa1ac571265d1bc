"""
============================================================================
Budget Scaling - Scale Factor and Budget Limit Calculators
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: All calculations use decimal.Decimal, limits rounded
                   ROUND_HALF_UP to whole currency units

SCALE FACTOR:
    raw = total_mrr / 1000
    scale = clamp(raw, 1, 10), unrounded inside the range

BUDGET LIMITS:
    limit = round_half_up(base_limit * scale)

    Role            Limit                     Base
    --------------  ------------------------  ----
    executive       max_spending               300
    finance         max_cost_optimization      150
    finance         max_budget_allocation      300
    infrastructure  max_infrastructure_cost    150

Key Constraints:
- 1 <= scale <= 10
- base_limit <= limit <= base_limit * 10
- Pure functions, no side effects
============================================================================
"""

from decimal import Decimal, ROUND_HALF_UP
from types import MappingProxyType
from typing import Dict, Any, Iterator, Mapping, Tuple, Union
from dataclasses import dataclass

# Revenue per 1x of scale
BASE_REVENUE_UNIT = Decimal("1000")

MIN_SCALE_FACTOR = Decimal("1")
MAX_SCALE_FACTOR = Decimal("10")

ROLE_EXECUTIVE = "executive"
ROLE_FINANCE = "finance"
ROLE_INFRASTRUCTURE = "infrastructure"

BASE_BUDGETS: Dict[str, Dict[str, Decimal]] = {
    ROLE_EXECUTIVE: {
        "max_spending": Decimal("300"),
    },
    ROLE_FINANCE: {
        "max_cost_optimization": Decimal("150"),
        "max_budget_allocation": Decimal("300"),
    },
    ROLE_INFRASTRUCTURE: {
        "max_infrastructure_cost": Decimal("150"),
    },
}

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# BudgetLimits
# =============================================================================

@dataclass(frozen=True)
class BudgetLimits:
    """
    Per-role integer spending limits.

    limits[role][limit_name] -> int

    Both mapping levels are read-only views over private copies.
    """
    limits: Mapping[str, Mapping[str, int]]

    def __post_init__(self) -> None:
        frozen = MappingProxyType({
            role: MappingProxyType(dict(named))
            for role, named in self.limits.items()
        })
        object.__setattr__(self, "limits", frozen)

    def get(self, role: str, limit_name: str) -> int:
        return self.limits[role][limit_name]

    def roles(self) -> Tuple[str, ...]:
        return tuple(self.limits)

    def items(self) -> Iterator[Tuple[str, str, int]]:
        """Iterate (role, limit_name, value) in table order."""
        for role, named in self.limits.items():
            for limit_name, value in named.items():
                yield role, limit_name, value

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {role: dict(named) for role, named in self.limits.items()}

    @property
    def executive_max_spending(self) -> int:
        return self.get(ROLE_EXECUTIVE, "max_spending")

    @property
    def finance_max_cost_optimization(self) -> int:
        return self.get(ROLE_FINANCE, "max_cost_optimization")

    @property
    def finance_max_budget_allocation(self) -> int:
        return self.get(ROLE_FINANCE, "max_budget_allocation")

    @property
    def infrastructure_max_cost(self) -> int:
        return self.get(ROLE_INFRASTRUCTURE, "max_infrastructure_cost")


# =============================================================================
# Calculators
# =============================================================================

def calculate_scale_factor(total_mrr: Number) -> Decimal:
    """
    Map monthly recurring revenue to a budget multiplier in [1, 10].

    Negative revenue returns 1.

    Raises:
        decimal.InvalidOperation: If total_mrr is NaN
    """
    raw = to_decimal(total_mrr) / BASE_REVENUE_UNIT

    if raw > MAX_SCALE_FACTOR:
        return MAX_SCALE_FACTOR

    if raw < MIN_SCALE_FACTOR:
        return MIN_SCALE_FACTOR

    return raw


def calculate_budget_limits(scale_factor: Number) -> BudgetLimits:
    """Apply a scale factor to the base budget table."""
    scale = to_decimal(scale_factor)
    return BudgetLimits(limits={
        role: {
            limit_name: int(
                (base * scale).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
            )
            for limit_name, base in named.items()
        }
        for role, named in BASE_BUDGETS.items()
    })


def is_valid_scale_factor(scale_factor: Any) -> bool:
    """Decimal, int or float (not bool), finite and within [1, 10]."""
    if isinstance(scale_factor, bool) or not isinstance(scale_factor, (Decimal, int, float)):
        return False
    value = to_decimal(scale_factor)
    return value.is_finite() and MIN_SCALE_FACTOR <= value <= MAX_SCALE_FACTOR


def validate_budget_limits(limits: BudgetLimits) -> None:
    """
    Check every limit against its floor (base) and ceiling (base * 10).

    Raises:
        ValueError: If a role or limit is missing or out of range
    """
    for role, named in BASE_BUDGETS.items():
        for limit_name, base in named.items():
            try:
                value = limits.get(role, limit_name)
            except KeyError:
                raise ValueError(f"missing budget limit {role}.{limit_name}")
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(
                    f"budget limit {role}.{limit_name} must be int, got {type(value).__name__}"
                )
            if not base <= value <= base * MAX_SCALE_FACTOR:
                raise ValueError(
                    f"budget limit {role}.{limit_name}={value} outside "
                    f"[{base}, {base * MAX_SCALE_FACTOR}]"
                )


# Base budgets at 1x scale
DEFAULT_BUDGET_LIMITS = calculate_budget_limits(MIN_SCALE_FACTOR)
