"""
Forecast policy schema.

``ForecastPolicy`` is the runtime artifact of the configuration layer:
every tunable the engines take (burden rate, rate windows, week boundary,
classification tables, PO status filter, budget defaults) in one frozen
value.  The loader parses YAML into it; services read it and pass plain
values to the engines.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal

from forecast_kernel.domain.categories import CostCategory, POStatus

EXCLUSION_SCOPES: tuple[str, ...] = ("project", "category")


def _default_cost_center_codes() -> dict[str, CostCategory]:
    return {
        "2000": CostCategory.EQUIPMENT,
        "3000": CostCategory.MATERIALS,
        "4000": CostCategory.SUBCONTRACTS,
        "5000": CostCategory.SMALL_TOOLS,
    }


def _default_budget_categories() -> frozenset[CostCategory]:
    return frozenset(
        {
            CostCategory.MATERIALS,
            CostCategory.EQUIPMENT,
            CostCategory.SUBCONTRACTS,
            CostCategory.SMALL_TOOLS,
        }
    )


@dataclass(frozen=True)
class ForecastPolicy:
    """Validated forecast configuration.

    ``category_synonyms`` empty means "use the engine's built-in synonyms".
    """

    name: str = "default"
    version: int = 1

    # Labor
    burden_rate: Decimal = Decimal("0.28")
    default_weekly_hours: Decimal = Decimal("40")
    week_end_weekday: int = 6  # Sunday
    trailing_weeks: int = 8
    recent_weeks: int = 4
    composite_weeks: int = 12
    fallback_rates: Mapping[CostCategory, Decimal] = field(default_factory=dict)

    # Future labor
    forecast_exclusion_scope: str = "project"

    # Classification
    fail_on_unclassified: bool = False
    cost_center_codes: Mapping[str, CostCategory] = field(
        default_factory=_default_cost_center_codes
    )
    category_synonyms: Mapping[str, CostCategory] = field(default_factory=dict)

    # Purchase orders
    approved_pos_only: bool = False
    excluded_po_statuses: frozenset[POStatus] = frozenset(
        {POStatus.CANCELLED, POStatus.DELETED}
    )
    budget_default_categories: frozenset[CostCategory] = field(
        default_factory=_default_budget_categories
    )

    # Services
    fetch_workers: int = 8

    checksum: str = ""

    def __post_init__(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise ValueError(
                "Forecast policy validation failed:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if self.burden_rate < 0:
            errors.append(f"burden_rate cannot be negative ({self.burden_rate})")
        if self.default_weekly_hours < 0:
            errors.append(
                f"default_weekly_hours cannot be negative ({self.default_weekly_hours})"
            )
        if not 0 <= self.week_end_weekday <= 6:
            errors.append(
                f"week_end_weekday must be 0-6 ({self.week_end_weekday})"
            )
        for name in ("trailing_weeks", "recent_weeks", "composite_weeks", "fetch_workers"):
            if getattr(self, name) < 1:
                errors.append(f"{name} must be at least 1 ({getattr(self, name)})")
        if self.forecast_exclusion_scope not in EXCLUSION_SCOPES:
            errors.append(
                f"forecast_exclusion_scope must be one of {EXCLUSION_SCOPES} "
                f"({self.forecast_exclusion_scope!r})"
            )
        for category, rate in self.fallback_rates.items():
            if not category.is_labor:
                errors.append(f"fallback rate for non-labor category {category.value}")
            if rate < 0:
                errors.append(f"fallback rate for {category.value} is negative ({rate})")
        for category in self.budget_default_categories:
            if category.is_labor:
                errors.append(
                    f"budget default cannot apply to labor category {category.value}"
                )
        return errors
