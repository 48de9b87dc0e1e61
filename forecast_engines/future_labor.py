"""
forecast_engines.future_labor -- Headcount-driven future labor cost.

Responsibility:
    Price the planner's weekly headcount forecast with running labor rates
    and total it per labor category, skipping any week that already has
    actuals so no week is counted twice.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``RunningRate`` values from ``forecast_engines.running_rate``
    and the weeks-with-actuals sets from ``forecast_engines.labor_actuals``.
    Consumed by ``forecast_engines.reconciler``.

Invariants enforced:
    - cost = headcount * hours_per_person * rate, with hours_per_person
      defaulting to the policy weekly hours (40).
    - Rate precedence: craft running rate, category running rate, the
      craft's configured default rate, policy fallback rate, 0.  A running
      rate only counts when it was measured over a positive number of hours.
    - No double counting: an entry whose aligned week already has actuals
      is excluded.  Scope ``project`` excludes on any labor actual that
      week; scope ``category`` only on actuals of the entry's category.
    - Entries for non-labor categories are ignored and counted.

Failure modes:
    - ValueError for an unknown exclusion scope or negative weekly hours.

Usage:
    from forecast_engines.future_labor import project_future_labor

    projection = project_future_labor(
        entries,
        category_rates=rates,
        weeks_with_actuals=summary.weeks_with_actuals,
    )
    projection.total
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from forecast_engines.running_rate import RunningRate
from forecast_engines.tracer import traced_engine
from forecast_engines.weeks import SUNDAY, week_ending_for
from forecast_kernel.domain.categories import LABOR_CATEGORIES, CostCategory
from forecast_kernel.domain.records import CraftType, HeadcountForecastEntry
from forecast_kernel.logging_config import get_logger

logger = get_logger("engines.future_labor")

ZERO = Decimal("0")
DEFAULT_WEEKLY_HOURS = Decimal("40")

EXCLUSION_SCOPE_PROJECT = "project"
EXCLUSION_SCOPE_CATEGORY = "category"
EXCLUSION_SCOPES = (EXCLUSION_SCOPE_PROJECT, EXCLUSION_SCOPE_CATEGORY)


@dataclass(frozen=True)
class FutureLaborProjection:
    """Projected labor cost for weeks without actuals."""

    costs: Mapping[CostCategory, Decimal]
    hours: Mapping[CostCategory, Decimal]
    included_entries: int = 0
    excluded_entries: int = 0
    ignored_entries: int = 0
    excluded_weeks: frozenset[date] = frozenset()

    @property
    def direct(self) -> Decimal:
        return self.costs.get(CostCategory.LABOR_DIRECT, ZERO)

    @property
    def indirect(self) -> Decimal:
        return self.costs.get(CostCategory.LABOR_INDIRECT, ZERO)

    @property
    def staff(self) -> Decimal:
        return self.costs.get(CostCategory.LABOR_STAFF, ZERO)

    @property
    def total(self) -> Decimal:
        return sum(self.costs.values(), ZERO)

    @property
    def total_hours(self) -> Decimal:
        return sum(self.hours.values(), ZERO)

    def cost_for(self, category: CostCategory) -> Decimal:
        return self.costs.get(category, ZERO)


def _measured(rate: RunningRate | None) -> bool:
    return rate is not None and rate.total_hours > 0


def craft_default_rates(crafts: Iterable[CraftType]) -> dict[str, Decimal]:
    """Craft id -> configured default rate, for crafts that carry a positive one."""
    return {
        craft.id: craft.default_rate
        for craft in crafts
        if craft.default_rate is not None and craft.default_rate > 0
    }


def resolve_rate(
    entry: HeadcountForecastEntry,
    category_rates: Mapping[str, RunningRate],
    craft_rates: Mapping[str, RunningRate],
    fallback_rates: Mapping[CostCategory, Decimal],
    craft_defaults: Mapping[str, Decimal] | None = None,
) -> Decimal:
    """Rate used to price one forecast entry."""
    if entry.craft_id is not None:
        craft_rate = craft_rates.get(entry.craft_id)
        if _measured(craft_rate):
            return craft_rate.rate
    category_rate = category_rates.get(entry.category.value)
    if _measured(category_rate):
        return category_rate.rate
    if entry.craft_id is not None and craft_defaults:
        default = craft_defaults.get(entry.craft_id)
        if default is not None:
            return default
    return fallback_rates.get(entry.category, ZERO)


@traced_engine(
    "future_labor",
    "1.0",
    fingerprint_fields=(
        "entries",
        "category_rates",
        "craft_rates",
        "crafts",
        "weeks_with_actuals",
        "default_weekly_hours",
        "exclusion_scope",
    ),
)
def project_future_labor(
    entries: Iterable[HeadcountForecastEntry],
    *,
    category_rates: Mapping[str, RunningRate],
    craft_rates: Mapping[str, RunningRate] | None = None,
    crafts: Iterable[CraftType] = (),
    weeks_with_actuals: frozenset[date] = frozenset(),
    category_weeks: Mapping[CostCategory, frozenset[date]] | None = None,
    default_weekly_hours: Decimal = DEFAULT_WEEKLY_HOURS,
    fallback_rates: Mapping[CostCategory, Decimal] | None = None,
    exclusion_scope: str = EXCLUSION_SCOPE_PROJECT,
    week_end_weekday: int = SUNDAY,
) -> FutureLaborProjection:
    """Sum headcount x hours x rate per labor category for weeks without actuals."""
    if exclusion_scope not in EXCLUSION_SCOPES:
        raise ValueError(
            f"exclusion_scope must be one of {EXCLUSION_SCOPES}, got {exclusion_scope!r}"
        )
    if default_weekly_hours < 0:
        raise ValueError(
            f"default_weekly_hours cannot be negative, got {default_weekly_hours}"
        )
    craft_rates = craft_rates or {}
    category_weeks = category_weeks or {}
    fallback_rates = fallback_rates or {}
    craft_defaults = craft_default_rates(crafts)

    costs = {category: ZERO for category in LABOR_CATEGORIES}
    hours = {category: ZERO for category in LABOR_CATEGORIES}
    included = excluded = ignored = 0
    excluded_weeks: set[date] = set()

    for entry in entries:
        if not entry.category.is_labor:
            ignored += 1
            continue

        week = week_ending_for(entry.week_ending, week_end_weekday)
        if exclusion_scope == EXCLUSION_SCOPE_PROJECT:
            has_actuals = week in weeks_with_actuals
        else:
            has_actuals = week in category_weeks.get(entry.category, frozenset())
        if has_actuals:
            excluded += 1
            excluded_weeks.add(week)
            continue

        per_person = (
            entry.hours_per_person
            if entry.hours_per_person is not None
            else default_weekly_hours
        )
        entry_hours = entry.headcount * per_person
        rate = resolve_rate(
            entry, category_rates, craft_rates, fallback_rates, craft_defaults
        )
        costs[entry.category] += entry_hours * rate
        hours[entry.category] += entry_hours
        included += 1

    projection = FutureLaborProjection(
        costs=costs,
        hours=hours,
        included_entries=included,
        excluded_entries=excluded,
        ignored_entries=ignored,
        excluded_weeks=frozenset(excluded_weeks),
    )

    logger.info(
        "future_labor_projected",
        extra={
            "direct": str(projection.direct),
            "indirect": str(projection.indirect),
            "staff": str(projection.staff),
            "included_entries": included,
            "excluded_entries": excluded,
            "ignored_entries": ignored,
            "exclusion_scope": exclusion_scope,
        },
    )
    return projection
