"""
forecast_engines.weeks -- Payroll week boundaries.

Labor actuals are keyed by week-ending date, per-diem by work date and
headcount forecasts by whatever week date the planner typed.  Every date is
aligned to the configured week-ending weekday before any comparison, so a
Wednesday forecast row and a Sunday actual in the same payroll week match.

Weekdays use ``date.weekday()`` numbering: Monday is 0, Sunday is 6.
"""

from __future__ import annotations

from datetime import date, timedelta

SUNDAY = 6


def validate_weekday(week_end_weekday: int) -> int:
    if not 0 <= week_end_weekday <= 6:
        raise ValueError(
            f"week_end_weekday must be between 0 (Monday) and 6 (Sunday), "
            f"got {week_end_weekday}"
        )
    return week_end_weekday


def week_ending_for(day: date, week_end_weekday: int = SUNDAY) -> date:
    """The date on or after ``day`` that falls on ``week_end_weekday``."""
    validate_weekday(week_end_weekday)
    return day + timedelta(days=(week_end_weekday - day.weekday()) % 7)


def week_starting_for(day: date, week_end_weekday: int = SUNDAY) -> date:
    """First day of the payroll week containing ``day``."""
    return week_ending_for(day, week_end_weekday) - timedelta(days=6)


def trailing_week_endings(
    as_of: date,
    weeks: int,
    week_end_weekday: int = SUNDAY,
) -> tuple[date, ...]:
    """The ``weeks`` week endings up to and including the week of ``as_of``.

    Oldest first.  The in-progress week is included so actuals imported
    mid-week still count.
    """
    if weeks < 1:
        raise ValueError(f"weeks must be at least 1, got {weeks}")
    latest = week_ending_for(as_of, week_end_weekday)
    return tuple(latest - timedelta(days=7 * i) for i in range(weeks - 1, -1, -1))
