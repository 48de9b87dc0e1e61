"""
forecast_engines.running_rate -- Trailing-window average labor rates.

Responsibility:
    Turn costed labor lines into cost-per-hour rates, keyed by labor
    category or by craft, over a trailing window of payroll weeks.  These
    rates price future headcount that has no actuals yet.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``LaborLine`` values from ``forecast_engines.labor_actuals``.
    Consumed by ``forecast_engines.future_labor``.

Invariants enforced:
    - rate = sum(cost) / sum(hours); collisions on a key are summed before
      dividing, so the rate is cost-weighted, never an average of averages.
    - rate is exactly 0 when the summed hours are 0.  Never NaN or Infinity.
    - rate >= 0 for non-negative inputs.
    - Rates are quantized to 4 decimal places (ROUND_HALF_UP).

Failure modes:
    - ValueError for an unknown ``key_by`` or a non-positive window.

Usage:
    from forecast_engines.running_rate import calculate_running_rates, trailing_window

    window = trailing_window(lines, as_of=date(2024, 3, 10), weeks=8)
    rates = calculate_running_rates(window, key_by="category")
    rates["labor_direct"].rate  # Decimal("50.0000")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from forecast_engines.labor_actuals import LaborLine
from forecast_engines.tracer import traced_engine
from forecast_engines.weeks import SUNDAY, trailing_week_endings
from forecast_kernel.logging_config import get_logger
from forecast_kernel.utils.decimals import quantize_rate, safe_divide

logger = get_logger("engines.running_rate")

ZERO = Decimal("0")

KEY_BY_CATEGORY = "category"
KEY_BY_CRAFT = "craft"


@dataclass(frozen=True)
class RunningRate:
    """Cost-weighted average rate for one category or craft."""

    key: str
    rate: Decimal
    total_cost: Decimal
    total_hours: Decimal
    weeks_of_data: int
    last_actual_week: date | None = None


@dataclass(frozen=True)
class WeeklyRate:
    week_ending: date
    hours: Decimal
    cost: Decimal
    rate: Decimal


@dataclass(frozen=True)
class CompositeRate:
    """Blended labor rate across categories, overall and for recent weeks."""

    overall: Decimal
    recent: Decimal
    total_hours: Decimal
    total_cost: Decimal
    weekly: tuple[WeeklyRate, ...] = ()
    by_category: Mapping[str, RunningRate] = field(default_factory=dict)


def _line_key(line: LaborLine, key_by: str) -> str | None:
    if key_by == KEY_BY_CATEGORY:
        return line.category.value if line.category is not None else None
    if key_by == KEY_BY_CRAFT:
        # unclassified lines never carry a key
        return line.craft_id if line.category is not None else None
    raise ValueError(f"key_by must be 'category' or 'craft', got {key_by!r}")


def trailing_window(
    lines: Iterable[LaborLine],
    as_of: date,
    weeks: int,
    week_end_weekday: int = SUNDAY,
) -> tuple[LaborLine, ...]:
    """Lines whose week ending falls in the ``weeks`` weeks ending at ``as_of``."""
    window = frozenset(trailing_week_endings(as_of, weeks, week_end_weekday))
    return tuple(line for line in lines if line.week_ending in window)


@traced_engine("running_rate", "1.0", fingerprint_fields=("lines", "key_by"))
def calculate_running_rates(
    lines: Iterable[LaborLine],
    *,
    key_by: str = KEY_BY_CATEGORY,
) -> dict[str, RunningRate]:
    """Cost-weighted rate per key.  Lines without a key are skipped."""
    cost: dict[str, Decimal] = {}
    hours: dict[str, Decimal] = {}
    weeks: dict[str, set[date]] = {}

    for line in lines:
        key = _line_key(line, key_by)
        if key is None:
            continue
        cost[key] = cost.get(key, ZERO) + line.cost
        hours[key] = hours.get(key, ZERO) + line.hours
        weeks.setdefault(key, set()).add(line.week_ending)

    rates = {
        key: RunningRate(
            key=key,
            rate=quantize_rate(safe_divide(cost[key], hours[key])),
            total_cost=cost[key],
            total_hours=hours[key],
            weeks_of_data=len(weeks[key]),
            last_actual_week=max(weeks[key]),
        )
        for key in sorted(cost)
    }

    logger.info(
        "running_rates_calculated",
        extra={
            "key_by": key_by,
            "rates": {key: str(r.rate) for key, r in rates.items()},
        },
    )
    return rates


@traced_engine("composite_rate", "1.0", fingerprint_fields=("lines", "as_of", "weeks_back"))
def composite_rate(
    lines: Iterable[LaborLine],
    *,
    as_of: date,
    weeks_back: int = 12,
    recent_weeks: int = 4,
    week_end_weekday: int = SUNDAY,
) -> CompositeRate:
    """Blended rate over ``weeks_back`` weeks, plus the last ``recent_weeks``.

    Lines without hours do not contribute; unclassified lines are skipped.
    """
    window = [
        line
        for line in trailing_window(lines, as_of, weeks_back, week_end_weekday)
        if line.hours > 0 and line.category is not None
    ]
    recent_set = frozenset(trailing_week_endings(as_of, recent_weeks, week_end_weekday))

    week_hours: dict[date, Decimal] = {}
    week_cost: dict[date, Decimal] = {}
    recent_hours = recent_cost = ZERO
    for line in window:
        week_hours[line.week_ending] = week_hours.get(line.week_ending, ZERO) + line.hours
        week_cost[line.week_ending] = week_cost.get(line.week_ending, ZERO) + line.cost
        if line.week_ending in recent_set:
            recent_hours += line.hours
            recent_cost += line.cost

    total_hours = sum(week_hours.values(), ZERO)
    total_cost = sum(week_cost.values(), ZERO)
    weekly = tuple(
        WeeklyRate(
            week_ending=week,
            hours=week_hours[week],
            cost=week_cost[week],
            rate=quantize_rate(safe_divide(week_cost[week], week_hours[week])),
        )
        for week in sorted(week_hours)
    )
    return CompositeRate(
        overall=quantize_rate(safe_divide(total_cost, total_hours)),
        recent=quantize_rate(safe_divide(recent_cost, recent_hours)),
        total_hours=total_hours,
        total_cost=total_cost,
        weekly=weekly,
        by_category=calculate_running_rates(window, key_by=KEY_BY_CATEGORY),
    )
