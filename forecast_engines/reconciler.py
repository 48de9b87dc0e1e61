"""
forecast_engines.reconciler -- Estimate at Completion reconciliation.

Responsibility:
    Combine the labor actuals summary, the purchase order rollup and the
    future labor projection with the project's budgets and contract value
    into one internally consistent ``ForecastResult``: actual cost to date
    (AC), estimate to complete (ETC), estimate at completion (EAC),
    variance at completion, margin, percent complete and one line per cost
    category.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes the outputs of ``labor_actuals``, ``po_rollup`` and
    ``future_labor``.  Called by ``forecast_services.ProjectForecastService``.

Invariants enforced:
    - AC = sum of invoiced (non-labor) + sum of labor actuals (labor).
    - ETC = sum over non-labor categories of max(0, committed - invoiced)
      + future labor cost.
    - EAC = AC + ETC exactly.  All three are computed from cent-quantized
      parts, so the identity holds on the published figures.
    - Category completeness: the top-level line actuals sum to AC.
    - Final clamp, run after every other calculation: forecasted_final =
      max(forecasted_final, actuals) on every subcategory, every line and
      the totals line.  Variance is taken after the clamp.
    - Zero guards: margin is 0 when the contract value is 0, percent
      complete is 0 when EAC is 0.  No NaN, no Infinity.
    - Output money is quantized to 0.01 and percentages to 0.01, both
      ROUND_HALF_UP.

Failure modes:
    - ForecastInvariantError if a post-condition check fails (guards
      against regressions; never expected).
    - ClassificationAmbiguousError if ``fail_on_unclassified`` is set and
      any labor record or purchase order matched no category.

Usage:
    from forecast_engines.reconciler import reconcile_forecast

    result = reconcile_forecast(
        project,
        labor=labor_summary,
        rollup=po_rollup,
        future=projection,
        budgets=budgets,
    )
    result.estimate_at_completion
    result.to_json()
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any
from uuid import UUID

from forecast_engines.future_labor import FutureLaborProjection
from forecast_engines.labor_actuals import LaborActualsSummary
from forecast_engines.po_rollup import PurchaseOrderRollup, budget_by_category
from forecast_engines.tracer import traced_engine
from forecast_kernel.domain.categories import (
    CATEGORY_LABELS,
    LABOR_CATEGORIES,
    NON_LABOR_CATEGORIES,
)
from forecast_kernel.domain.records import (
    BudgetAllocation,
    ChangeOrderRecord,
    ChangeOrderStatus,
    Project,
)
from forecast_kernel.exceptions import (
    ClassificationAmbiguousError,
    ForecastInvariantError,
)
from forecast_kernel.invariants import ForecastInvariant
from forecast_kernel.logging_config import get_logger
from forecast_kernel.utils.decimals import (
    quantize_money,
    quantize_percent,
    safe_divide,
)
from forecast_kernel.utils.hashing import canonicalize_json

logger = get_logger("engines.reconciler")

ZERO = Decimal("0")
HUNDRED = Decimal("100")

LABOR_LINE_KEY = "labor"
LABOR_LINE_LABEL = "LABOR"
TOTAL_LINE_KEY = "total"
TOTAL_LINE_LABEL = "TOTAL"


def _money_text(value: Decimal) -> str:
    return format(quantize_money(value), "f")


@dataclass(frozen=True)
class ForecastLine:
    """One row of the forecast: a cost category, the labor group or the total."""

    key: str
    label: str
    budget: Decimal = ZERO
    committed: Decimal = ZERO
    actuals: Decimal = ZERO
    forecasted_final: Decimal = ZERO
    left_to_spend: Decimal = ZERO
    subcategories: tuple[ForecastLine, ...] = ()

    @property
    def variance(self) -> Decimal:
        """Budget minus forecasted final; negative means over budget."""
        return self.budget - self.forecasted_final

    def clamped(self) -> ForecastLine:
        """Copy with forecasted_final raised to at least actuals."""
        subcategories = tuple(sub.clamped() for sub in self.subcategories)
        return replace(
            self,
            forecasted_final=max(self.forecasted_final, self.actuals),
            subcategories=subcategories,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "budget": _money_text(self.budget),
            "committed": _money_text(self.committed),
            "actuals": _money_text(self.actuals),
            "forecasted_final": _money_text(self.forecasted_final),
            "variance": _money_text(self.variance),
            "left_to_spend": _money_text(self.left_to_spend),
            "subcategories": [sub.to_dict() for sub in self.subcategories],
        }


@dataclass(frozen=True)
class ForecastBreakdown:
    """How AC and ETC decompose."""

    labor_actuals: Decimal = ZERO
    invoiced: Decimal = ZERO
    remaining_commitments: Decimal = ZERO
    future_labor: Decimal = ZERO

    def to_dict(self) -> dict[str, str]:
        return {
            "labor_actuals": _money_text(self.labor_actuals),
            "invoiced": _money_text(self.invoiced),
            "remaining_commitments": _money_text(self.remaining_commitments),
            "future_labor": _money_text(self.future_labor),
        }


@dataclass(frozen=True)
class DataQuality:
    """What the engine left out, and why.  Never folded into the totals."""

    labor_source: str | None = None
    labor_source_declared: bool = False
    ignored_labor_records: int = 0
    unclassified_labor_records: int = 0
    unclassified_purchase_orders: int = 0
    unclassified_references: tuple[str, ...] = ()
    excluded_purchase_orders: int = 0
    excluded_forecast_entries: int = 0
    ignored_forecast_entries: int = 0
    unassigned_per_diem: Decimal = ZERO
    budget_default_categories: tuple[str, ...] = ()

    @property
    def has_unclassified(self) -> bool:
        return (self.unclassified_labor_records + self.unclassified_purchase_orders) > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "labor_source": self.labor_source,
            "labor_source_declared": self.labor_source_declared,
            "ignored_labor_records": self.ignored_labor_records,
            "unclassified_labor_records": self.unclassified_labor_records,
            "unclassified_purchase_orders": self.unclassified_purchase_orders,
            "unclassified_references": list(self.unclassified_references),
            "excluded_purchase_orders": self.excluded_purchase_orders,
            "excluded_forecast_entries": self.excluded_forecast_entries,
            "ignored_forecast_entries": self.ignored_forecast_entries,
            "unassigned_per_diem": _money_text(self.unassigned_per_diem),
            "budget_default_categories": list(self.budget_default_categories),
        }


@dataclass(frozen=True)
class ForecastResult:
    """
    Reconciled financial picture of one project.

    All money is quantized to cents and all percentages to 2 places.
    ``to_json`` is canonical, so recomputing on unchanged inputs yields
    byte-identical output.
    """

    project_id: UUID
    project_name: str
    original_contract_value: Decimal
    revised_contract_value: Decimal
    actual_cost_to_date: Decimal
    estimate_to_complete: Decimal
    estimate_at_completion: Decimal
    variance_at_completion: Decimal
    profit_margin: Decimal
    percent_complete: Decimal
    lines: tuple[ForecastLine, ...]
    totals: ForecastLine
    breakdown: ForecastBreakdown
    data_quality: DataQuality

    def line(self, key: str) -> ForecastLine:
        """Top-level line or labor subcategory by key."""
        for line in self.lines:
            if line.key == key:
                return line
            for sub in line.subcategories:
                if sub.key == key:
                    return sub
        raise KeyError(key)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": str(self.project_id),
            "project_name": self.project_name,
            "original_contract_value": _money_text(self.original_contract_value),
            "revised_contract_value": _money_text(self.revised_contract_value),
            "actual_cost_to_date": _money_text(self.actual_cost_to_date),
            "estimate_to_complete": _money_text(self.estimate_to_complete),
            "estimate_at_completion": _money_text(self.estimate_at_completion),
            "variance_at_completion": _money_text(self.variance_at_completion),
            "profit_margin": _money_text(self.profit_margin),
            "percent_complete": _money_text(self.percent_complete),
            "lines": [line.to_dict() for line in self.lines],
            "totals": self.totals.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "data_quality": self.data_quality.to_dict(),
        }

    def to_json(self) -> str:
        return canonicalize_json(self.to_dict())


def revised_contract_value(
    project: Project,
    change_orders: Iterable[ChangeOrderRecord] = (),
) -> Decimal:
    """The project's revised value, else original plus approved change orders."""
    if project.revised_contract_value is not None:
        return project.revised_contract_value
    approved = sum(
        (co.amount for co in change_orders if co.status is ChangeOrderStatus.APPROVED),
        ZERO,
    )
    return project.original_contract_value + approved


def _sum_lines(key: str, label: str, lines: Iterable[ForecastLine]) -> ForecastLine:
    lines = tuple(lines)
    return ForecastLine(
        key=key,
        label=label,
        budget=sum((line.budget for line in lines), ZERO),
        committed=sum((line.committed for line in lines), ZERO),
        actuals=sum((line.actuals for line in lines), ZERO),
        forecasted_final=sum((line.forecasted_final for line in lines), ZERO),
        left_to_spend=sum((line.left_to_spend for line in lines), ZERO),
    )


def _check_postconditions(result: ForecastResult) -> None:
    if result.estimate_at_completion != result.actual_cost_to_date + result.estimate_to_complete:
        raise ForecastInvariantError(
            ForecastInvariant.EAC_IDENTITY.value,
            f"EAC {result.estimate_at_completion} != AC {result.actual_cost_to_date} "
            f"+ ETC {result.estimate_to_complete}",
        )

    line_actuals = sum((line.actuals for line in result.lines), ZERO)
    if line_actuals != result.actual_cost_to_date:
        raise ForecastInvariantError(
            ForecastInvariant.CATEGORY_COMPLETENESS.value,
            f"line actuals {line_actuals} != AC {result.actual_cost_to_date}",
        )

    every_line = [result.totals]
    for line in result.lines:
        every_line.append(line)
        every_line.extend(line.subcategories)
    for line in every_line:
        if line.forecasted_final < line.actuals:
            raise ForecastInvariantError(
                ForecastInvariant.FORECAST_NOT_BELOW_ACTUALS.value,
                f"line {line.key}: forecasted_final {line.forecasted_final} "
                f"< actuals {line.actuals}",
            )

    figures = [
        result.actual_cost_to_date,
        result.estimate_to_complete,
        result.estimate_at_completion,
        result.variance_at_completion,
        result.profit_margin,
        result.percent_complete,
    ]
    for line in every_line:
        figures.extend(
            (line.budget, line.committed, line.actuals, line.forecasted_final, line.left_to_spend)
        )
    if not all(value.is_finite() for value in figures):
        raise ForecastInvariantError(
            ForecastInvariant.FINITE_OUTPUT.value,
            "forecast contains a non-finite figure",
        )


@traced_engine(
    "reconciler",
    "1.0",
    fingerprint_fields=("project", "labor", "rollup", "future", "budgets", "change_orders"),
)
def reconcile_forecast(
    project: Project,
    *,
    labor: LaborActualsSummary,
    rollup: PurchaseOrderRollup,
    future: FutureLaborProjection,
    budgets: Iterable[BudgetAllocation] = (),
    change_orders: Iterable[ChangeOrderRecord] = (),
    fail_on_unclassified: bool = False,
) -> ForecastResult:
    """Reconcile all sub-aggregations into a ``ForecastResult``."""
    if fail_on_unclassified:
        if labor.classification.unclassified:
            raise ClassificationAmbiguousError(
                "labor actual",
                labor.classification.unclassified,
                labor.classification.unclassified_references,
            )
        if rollup.classification.unclassified:
            raise ClassificationAmbiguousError(
                "purchase order",
                rollup.classification.unclassified,
                rollup.classification.unclassified_references,
            )

    logger.info(
        "forecast_reconciliation_started",
        extra={"project_id": str(project.id)},
    )

    budget = {c: quantize_money(a) for c, a in budget_by_category(budgets).items()}

    labor_lines = []
    for category in LABOR_CATEGORIES:
        actual = quantize_money(labor.cost_for(category))
        projected = quantize_money(future.cost_for(category))
        labor_lines.append(
            ForecastLine(
                key=category.value,
                label=CATEGORY_LABELS[category],
                budget=budget.get(category, ZERO),
                committed=actual,
                actuals=actual,
                forecasted_final=actual + projected,
                left_to_spend=projected,
            )
        )
    labor_lines = [line.clamped() for line in labor_lines]
    labor_group = replace(
        _sum_lines(LABOR_LINE_KEY, LABOR_LINE_LABEL, labor_lines),
        subcategories=tuple(labor_lines),
    )

    other_lines = []
    for category in NON_LABOR_CATEGORIES:
        totals = rollup.for_category(category)
        committed = quantize_money(totals.committed)
        invoiced = quantize_money(totals.invoiced)
        other_lines.append(
            ForecastLine(
                key=category.value,
                label=CATEGORY_LABELS[category],
                budget=budget.get(category, ZERO),
                committed=committed,
                actuals=invoiced,
                forecasted_final=quantize_money(totals.forecasted),
                left_to_spend=max(ZERO, committed - invoiced),
            )
        )

    lines = tuple(line.clamped() for line in (labor_group, *other_lines))

    labor_actuals = sum((line.actuals for line in labor_lines), ZERO)
    future_labor = sum((line.left_to_spend for line in labor_lines), ZERO)
    invoiced_total = sum((line.actuals for line in other_lines), ZERO)
    remaining_commitments = sum((line.left_to_spend for line in other_lines), ZERO)

    ac = labor_actuals + invoiced_total
    etc = remaining_commitments + future_labor
    eac = ac + etc

    revised = quantize_money(revised_contract_value(project, change_orders))
    vac = revised - eac
    margin = quantize_percent(safe_divide(vac, revised) * HUNDRED)
    percent = quantize_percent(min(HUNDRED, safe_divide(ac, eac) * HUNDRED))

    totals_line = _sum_lines(TOTAL_LINE_KEY, TOTAL_LINE_LABEL, lines).clamped()

    quality = DataQuality(
        labor_source=labor.source.source.value if labor.source.source else None,
        labor_source_declared=labor.source.declared,
        ignored_labor_records=labor.source.ignored_records,
        unclassified_labor_records=labor.classification.unclassified,
        unclassified_purchase_orders=rollup.classification.unclassified,
        unclassified_references=(
            labor.classification.unclassified_references
            + rollup.classification.unclassified_references
        ),
        excluded_purchase_orders=rollup.excluded_orders,
        excluded_forecast_entries=future.excluded_entries,
        ignored_forecast_entries=future.ignored_entries,
        unassigned_per_diem=quantize_money(labor.unassigned_per_diem),
        budget_default_categories=tuple(
            category.value
            for category in NON_LABOR_CATEGORIES
            if rollup.for_category(category).budget_default_applied
        ),
    )

    result = ForecastResult(
        project_id=project.id,
        project_name=project.name,
        original_contract_value=quantize_money(project.original_contract_value),
        revised_contract_value=revised,
        actual_cost_to_date=ac,
        estimate_to_complete=etc,
        estimate_at_completion=eac,
        variance_at_completion=vac,
        profit_margin=margin,
        percent_complete=percent,
        lines=lines,
        totals=totals_line,
        breakdown=ForecastBreakdown(
            labor_actuals=labor_actuals,
            invoiced=invoiced_total,
            remaining_commitments=remaining_commitments,
            future_labor=future_labor,
        ),
        data_quality=quality,
    )

    _check_postconditions(result)

    logger.info(
        "forecast_reconciliation_completed",
        extra={
            "project_id": str(project.id),
            "actual_cost_to_date": str(ac),
            "estimate_to_complete": str(etc),
            "estimate_at_completion": str(eac),
            "profit_margin": str(margin),
            "percent_complete": str(percent),
            "unclassified": quality.unclassified_labor_records
            + quality.unclassified_purchase_orders,
        },
    )
    return result
