"""
forecast_engines.po_rollup -- Purchase order commitment rollup.

Responsibility:
    Classify purchase orders into non-labor cost categories and total
    committed, invoiced, forecasted and remaining spend per category.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Uses ``forecast_engines.classifier``.  Consumed by the reconciler.

Invariants enforced:
    - Orders whose status is excluded (cancelled, deleted by default) never
      contribute.  ``approved_only`` narrows to approved, open and closed.
    - Per-order forecast is max(explicit forecast, committed, invoiced);
      the explicit forecast is the forecasted final cost when present,
      otherwise the forecast amount.
    - remaining = max(0, committed - invoiced) per category.
    - A category with a positive budget and no matching orders forecasts
      its budget, but only for the configured budget-default categories.
      Labor is never defaulted here.
    - Every non-labor category appears in the output, zero-filled.

Failure modes:
    - None.  Unclassified orders are counted, not raised.

Usage:
    from forecast_engines.po_rollup import rollup_purchase_orders

    rollup = rollup_purchase_orders(orders, budgets=budgets)
    rollup.for_category(CostCategory.MATERIALS).remaining
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from forecast_engines.classifier import (
    ClassificationSummary,
    ClassificationTables,
    classify,
)
from forecast_engines.tracer import traced_engine
from forecast_kernel.domain.categories import (
    APPROVED_PO_STATUSES,
    NON_LABOR_CATEGORIES,
    CostCategory,
    POStatus,
)
from forecast_kernel.domain.records import BudgetAllocation, PurchaseOrderRecord
from forecast_kernel.logging_config import get_logger

logger = get_logger("engines.po_rollup")

ZERO = Decimal("0")

DEFAULT_EXCLUDED_STATUSES: frozenset[POStatus] = frozenset(
    {POStatus.CANCELLED, POStatus.DELETED}
)

DEFAULT_BUDGET_DEFAULT_CATEGORIES: frozenset[CostCategory] = frozenset(
    {
        CostCategory.MATERIALS,
        CostCategory.EQUIPMENT,
        CostCategory.SUBCONTRACTS,
        CostCategory.SMALL_TOOLS,
    }
)


@dataclass(frozen=True)
class CategoryRollup:
    """Purchase order totals for one non-labor category."""

    category: CostCategory
    committed: Decimal = ZERO
    invoiced: Decimal = ZERO
    forecasted: Decimal = ZERO
    order_count: int = 0
    budget: Decimal = ZERO
    budget_default_applied: bool = False

    @property
    def remaining(self) -> Decimal:
        return max(ZERO, self.committed - self.invoiced)


@dataclass(frozen=True)
class PurchaseOrderRollup:
    categories: Mapping[CostCategory, CategoryRollup]
    classification: ClassificationSummary
    excluded_orders: int = 0

    def for_category(self, category: CostCategory) -> CategoryRollup:
        return self.categories.get(category, CategoryRollup(category=category))

    @property
    def committed(self) -> Decimal:
        return sum((c.committed for c in self.categories.values()), ZERO)

    @property
    def invoiced(self) -> Decimal:
        return sum((c.invoiced for c in self.categories.values()), ZERO)

    @property
    def forecasted(self) -> Decimal:
        return sum((c.forecasted for c in self.categories.values()), ZERO)

    @property
    def remaining(self) -> Decimal:
        return sum((c.remaining for c in self.categories.values()), ZERO)


def order_forecast(order: PurchaseOrderRecord) -> Decimal:
    """Forecasted final cost of one order; never below committed or invoiced."""
    explicit = order.explicit_forecast
    if explicit is None:
        return max(order.committed_amount, order.invoiced_amount)
    return max(explicit, order.committed_amount, order.invoiced_amount)


def budget_by_category(budgets: Iterable[BudgetAllocation]) -> dict[CostCategory, Decimal]:
    totals: dict[CostCategory, Decimal] = {}
    for allocation in budgets:
        totals[allocation.category] = totals.get(allocation.category, ZERO) + allocation.amount
    return totals


def is_counted(
    order: PurchaseOrderRecord,
    excluded_statuses: frozenset[POStatus],
    approved_only: bool,
) -> bool:
    if order.status in excluded_statuses:
        return False
    if approved_only and order.status not in APPROVED_PO_STATUSES:
        return False
    return True


@traced_engine(
    "po_rollup",
    "1.0",
    fingerprint_fields=("orders", "budgets", "excluded_statuses", "approved_only"),
)
def rollup_purchase_orders(
    orders: Iterable[PurchaseOrderRecord],
    *,
    budgets: Iterable[BudgetAllocation] = (),
    tables: ClassificationTables | None = None,
    excluded_statuses: frozenset[POStatus] = DEFAULT_EXCLUDED_STATUSES,
    approved_only: bool = False,
    budget_default_categories: frozenset[CostCategory] = DEFAULT_BUDGET_DEFAULT_CATEGORIES,
) -> PurchaseOrderRollup:
    """Total purchase orders per non-labor category."""
    tables = tables or ClassificationTables()
    committed = {category: ZERO for category in NON_LABOR_CATEGORIES}
    invoiced = {category: ZERO for category in NON_LABOR_CATEGORIES}
    forecasted = {category: ZERO for category in NON_LABOR_CATEGORIES}
    counts = {category: 0 for category in NON_LABOR_CATEGORIES}
    summary = ClassificationSummary()
    excluded = 0

    for order in orders:
        if not is_counted(order, excluded_statuses, approved_only):
            excluded += 1
            continue
        outcome = classify(
            order.category_hints(),
            tables=tables,
            allowed=NON_LABOR_CATEGORIES,
        )
        summary = summary.add(outcome)
        if outcome.category is None:
            continue
        committed[outcome.category] += order.committed_amount
        invoiced[outcome.category] += order.invoiced_amount
        forecasted[outcome.category] += order_forecast(order)
        counts[outcome.category] += 1

    budget = budget_by_category(budgets)
    categories: dict[CostCategory, CategoryRollup] = {}
    for category in NON_LABOR_CATEGORIES:
        category_budget = budget.get(category, ZERO)
        defaulted = (
            counts[category] == 0
            and category_budget > 0
            and category in budget_default_categories
        )
        categories[category] = CategoryRollup(
            category=category,
            committed=committed[category],
            invoiced=invoiced[category],
            forecasted=category_budget if defaulted else forecasted[category],
            order_count=counts[category],
            budget=category_budget,
            budget_default_applied=defaulted,
        )

    rollup = PurchaseOrderRollup(
        categories=categories,
        classification=summary,
        excluded_orders=excluded,
    )

    logger.info(
        "po_rollup_completed",
        extra={
            "committed": str(rollup.committed),
            "invoiced": str(rollup.invoiced),
            "forecasted": str(rollup.forecasted),
            "excluded_orders": excluded,
            "unclassified": summary.unclassified,
            "budget_defaults": sorted(
                c.value for c, r in categories.items() if r.budget_default_applied
            ),
        },
    )
    return rollup
