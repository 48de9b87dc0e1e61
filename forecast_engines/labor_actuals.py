"""
forecast_engines.labor_actuals -- Historical labor cost aggregation.

Responsibility:
    Resolve the one canonical labor actuals source for a project, compute
    the burdened cost of every actual, classify it into a labor category,
    fold in per-diem and produce per-category cost, hours and the set of
    weeks that already have actuals.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Uses ``forecast_engines.classifier`` and ``forecast_engines.weeks``.
    Consumed by the running rate calculator and the EAC reconciler.

Invariants enforced:
    - Exactly one ``LaborSource`` is counted per project; the choice is
      made once by ``select_labor_source``, never per record.
    - Burdened cost precedence: ``total_cost_with_burden``, else
      ``st + ot + burden_amount``, else ``(st + ot) * (1 + burden_rate)``.
      The burden rate is always injected.
    - Per-diem lands in the direct or indirect bucket by employee type;
      any other type is reported as unassigned and not added.
    - Aggregation is a fold over immutable inputs; inputs are never mutated.

Failure modes:
    - ``SourceConflictError`` when both sources have data for a common week
      and the project declares no canonical source.
    - ``ValueError`` for a negative burden rate.

Usage:
    from forecast_engines.labor_actuals import aggregate_labor_actuals

    summary = aggregate_labor_actuals(
        records,
        burden_rate=Decimal("0.28"),
        crafts=crafts,
        per_diem=per_diem,
        canonical_source=project.labor_source,
    )
    summary.direct, summary.weeks_with_actuals
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from forecast_engines.classifier import (
    Classification,
    ClassificationSummary,
    ClassificationTables,
    classify,
)
from forecast_engines.tracer import traced_engine
from forecast_engines.weeks import SUNDAY, week_ending_for
from forecast_kernel.domain.categories import (
    LABOR_CATEGORIES,
    CostCategory,
    LaborSource,
)
from forecast_kernel.domain.records import CraftType, LaborActualRecord, PerDiemRecord
from forecast_kernel.exceptions import SourceConflictError
from forecast_kernel.logging_config import get_logger

logger = get_logger("engines.labor_actuals")

ZERO = Decimal("0")

PER_DIEM_CATEGORIES: Mapping[str, CostCategory] = {
    "direct": CostCategory.LABOR_DIRECT,
    "indirect": CostCategory.LABOR_INDIRECT,
}


@dataclass(frozen=True)
class LaborSourceSelection:
    """Which labor actuals source counts for a project, and why."""

    source: LaborSource | None
    declared: bool = False
    ignored_records: int = 0


@dataclass(frozen=True)
class LaborLine:
    """One labor actual after source selection, costing and classification."""

    week_ending: date
    classification: Classification
    craft_id: str | None
    hours: Decimal
    cost: Decimal

    @property
    def category(self) -> CostCategory | None:
        return self.classification.category


@dataclass(frozen=True)
class LaborActualsSummary:
    """Per-category historical labor totals for one project.

    ``costs`` includes assigned per-diem; ``per_diem`` shows how much of
    each bucket came from it.
    """

    costs: Mapping[CostCategory, Decimal]
    hours: Mapping[CostCategory, Decimal]
    per_diem: Mapping[CostCategory, Decimal]
    unassigned_per_diem: Decimal
    weeks_with_actuals: frozenset[date]
    category_weeks: Mapping[CostCategory, frozenset[date]]
    classification: ClassificationSummary
    source: LaborSourceSelection

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


@dataclass(frozen=True)
class WeeklyLaborCost:
    """Labor cost for one payroll week."""

    week_ending: date
    hours: Decimal
    costs: Mapping[CostCategory, Decimal] = field(default_factory=dict)
    per_diem: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum(self.costs.values(), ZERO)

    @property
    def average_rate(self) -> Decimal:
        """Labor cost per hour excluding per-diem; 0 when no hours."""
        if self.hours == 0:
            return ZERO
        return (self.total - self.per_diem) / self.hours


def burdened_cost(record: LaborActualRecord, burden_rate: Decimal) -> Decimal:
    """Fully loaded cost of one labor actual."""
    if record.total_cost_with_burden is not None:
        return record.total_cost_with_burden
    wages = record.st_wages + record.ot_wages
    if record.burden_amount is not None:
        return wages + record.burden_amount
    return wages * (Decimal("1") + burden_rate)


def select_labor_source(
    records: Iterable[LaborActualRecord],
    declared: LaborSource | None = None,
    *,
    project_id: str = "",
) -> LaborSourceSelection:
    """
    Resolve the canonical labor source for one project.

    A declared source always wins.  Undeclared, a single populated source
    is used.  Undeclared with both populated: overlapping weeks raise
    ``SourceConflictError``; disjoint weeks use CURRENT and report the
    legacy rows as ignored.
    """
    records = list(records)
    if declared is not None:
        ignored = sum(1 for r in records if r.source is not declared)
        return LaborSourceSelection(source=declared, declared=True, ignored_records=ignored)

    weeks: dict[LaborSource, set[date]] = {LaborSource.CURRENT: set(), LaborSource.LEGACY: set()}
    counts: dict[LaborSource, int] = {LaborSource.CURRENT: 0, LaborSource.LEGACY: 0}
    for record in records:
        weeks[record.source].add(record.week_ending)
        counts[record.source] += 1

    if counts[LaborSource.CURRENT] == 0 and counts[LaborSource.LEGACY] == 0:
        return LaborSourceSelection(source=None)
    if counts[LaborSource.LEGACY] == 0:
        return LaborSourceSelection(source=LaborSource.CURRENT)
    if counts[LaborSource.CURRENT] == 0:
        return LaborSourceSelection(source=LaborSource.LEGACY)

    overlap = weeks[LaborSource.CURRENT] & weeks[LaborSource.LEGACY]
    if overlap:
        raise SourceConflictError(project_id, tuple(sorted(overlap)))

    logger.warning(
        "labor_source_legacy_ignored",
        extra={
            "project_id": project_id,
            "ignored_records": counts[LaborSource.LEGACY],
        },
    )
    return LaborSourceSelection(
        source=LaborSource.CURRENT,
        ignored_records=counts[LaborSource.LEGACY],
    )


def _in_range(week: date, week_start: date | None, week_end: date | None) -> bool:
    if week_start is not None and week < week_start:
        return False
    if week_end is not None and week > week_end:
        return False
    return True


def cost_labor_records(
    records: Iterable[LaborActualRecord],
    *,
    burden_rate: Decimal,
    crafts: Iterable[CraftType] = (),
    source: LaborSource | None = None,
    tables: ClassificationTables | None = None,
    week_end_weekday: int = SUNDAY,
    week_start: date | None = None,
    week_end: date | None = None,
) -> tuple[LaborLine, ...]:
    """Cost and classify the records of ``source`` (all records when None)."""
    if burden_rate < 0:
        raise ValueError(f"burden_rate cannot be negative, got {burden_rate}")
    tables = tables or ClassificationTables()
    craft_index = {craft.id: craft for craft in crafts}

    lines: list[LaborLine] = []
    for record in records:
        if source is not None and record.source is not source:
            continue
        week = week_ending_for(record.week_ending, week_end_weekday)
        if not _in_range(week, week_start, week_end):
            continue
        craft = craft_index.get(record.craft_id) if record.craft_id else None
        outcome = classify(
            record.category_hints(craft),
            tables=tables,
            allowed=LABOR_CATEGORIES,
        )
        lines.append(
            LaborLine(
                week_ending=week,
                classification=outcome,
                craft_id=record.craft_id,
                hours=record.total_hours,
                cost=burdened_cost(record, burden_rate),
            )
        )
    return tuple(lines)


def per_diem_category(employee_type: str) -> CostCategory | None:
    return PER_DIEM_CATEGORIES.get(employee_type.strip().lower())


@traced_engine(
    "labor_actuals",
    "1.0",
    fingerprint_fields=("records", "burden_rate", "per_diem", "canonical_source"),
)
def aggregate_labor_actuals(
    records: Sequence[LaborActualRecord],
    *,
    burden_rate: Decimal,
    crafts: Iterable[CraftType] = (),
    per_diem: Iterable[PerDiemRecord] = (),
    canonical_source: LaborSource | None = None,
    project_id: str = "",
    tables: ClassificationTables | None = None,
    week_end_weekday: int = SUNDAY,
    week_start: date | None = None,
    week_end: date | None = None,
) -> LaborActualsSummary:
    """Fold labor actuals and per-diem into a ``LaborActualsSummary``."""
    selection = select_labor_source(records, canonical_source, project_id=project_id)
    lines = cost_labor_records(
        records,
        burden_rate=burden_rate,
        crafts=crafts,
        source=selection.source,
        tables=tables,
        week_end_weekday=week_end_weekday,
        week_start=week_start,
        week_end=week_end,
    )

    logger.info(
        "labor_aggregation_started",
        extra={
            "project_id": project_id,
            "record_count": len(lines),
            "source": selection.source.value if selection.source else None,
            "burden_rate": str(burden_rate),
        },
    )

    costs = {category: ZERO for category in LABOR_CATEGORIES}
    hours = {category: ZERO for category in LABOR_CATEGORIES}
    category_weeks: dict[CostCategory, set[date]] = {c: set() for c in LABOR_CATEGORIES}
    weeks: set[date] = set()
    summary = ClassificationSummary()

    for line in lines:
        weeks.add(line.week_ending)
        summary = summary.add(line.classification)
        if line.category is None:
            continue
        costs[line.category] += line.cost
        hours[line.category] += line.hours
        category_weeks[line.category].add(line.week_ending)

    diem = {category: ZERO for category in PER_DIEM_CATEGORIES.values()}
    unassigned = ZERO
    for item in per_diem:
        week = week_ending_for(item.work_date, week_end_weekday)
        if not _in_range(week, week_start, week_end):
            continue
        category = per_diem_category(item.employee_type)
        if category is None:
            unassigned += item.amount
            continue
        diem[category] += item.amount
        costs[category] += item.amount

    result = LaborActualsSummary(
        costs=costs,
        hours=hours,
        per_diem=diem,
        unassigned_per_diem=unassigned,
        weeks_with_actuals=frozenset(weeks),
        category_weeks={c: frozenset(w) for c, w in category_weeks.items()},
        classification=summary,
        source=selection,
    )

    logger.info(
        "labor_aggregation_completed",
        extra={
            "project_id": project_id,
            "direct": str(result.direct),
            "indirect": str(result.indirect),
            "staff": str(result.staff),
            "weeks_with_actuals": len(weeks),
            "unclassified": summary.unclassified,
            "unassigned_per_diem": str(unassigned),
        },
    )
    return result


@traced_engine("weekly_labor_costs", "1.0", fingerprint_fields=("records", "burden_rate"))
def weekly_labor_costs(
    records: Sequence[LaborActualRecord],
    *,
    burden_rate: Decimal,
    crafts: Iterable[CraftType] = (),
    per_diem: Iterable[PerDiemRecord] = (),
    canonical_source: LaborSource | None = None,
    project_id: str = "",
    tables: ClassificationTables | None = None,
    week_end_weekday: int = SUNDAY,
) -> tuple[WeeklyLaborCost, ...]:
    """Per-week labor cost by category, oldest week first.

    Unclassified actuals are left out, as in the project totals.
    """
    selection = select_labor_source(records, canonical_source, project_id=project_id)
    lines = cost_labor_records(
        records,
        burden_rate=burden_rate,
        crafts=crafts,
        source=selection.source,
        tables=tables,
        week_end_weekday=week_end_weekday,
    )

    hours: dict[date, Decimal] = {}
    costs: dict[date, dict[CostCategory, Decimal]] = {}
    diem: dict[date, Decimal] = {}
    for line in lines:
        if line.category is None:
            continue
        week_costs = costs.setdefault(line.week_ending, {})
        week_costs[line.category] = week_costs.get(line.category, ZERO) + line.cost
        hours[line.week_ending] = hours.get(line.week_ending, ZERO) + line.hours
    for item in per_diem:
        category = per_diem_category(item.employee_type)
        if category is None:
            continue
        week = week_ending_for(item.work_date, week_end_weekday)
        week_costs = costs.setdefault(week, {})
        week_costs[category] = week_costs.get(category, ZERO) + item.amount
        diem[week] = diem.get(week, ZERO) + item.amount

    return tuple(
        WeeklyLaborCost(
            week_ending=week,
            hours=hours.get(week, ZERO),
            costs=costs[week],
            per_diem=diem.get(week, ZERO),
        )
        for week in sorted(costs)
    )
