"""
Module: forecast_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  Canonical import surface for forecast_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import forecast_kernel (domain, exceptions, logging, utils)
    and sibling engine modules.  MUST NOT import forecast_services or
    forecast_config; policy values are passed in as arguments.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      The ``as_of`` date of a rate window is always a parameter.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine entry point is wrapped by ``@traced_engine`` (see
    ``forecast_engines.tracer``), emitting FORECAST_ENGINE_TRACE records
    with engine name, version, input fingerprint and duration.

Usage:
    from forecast_engines import (
        aggregate_labor_actuals,
        calculate_running_rates,
        project_future_labor,
        reconcile_forecast,
        rollup_purchase_orders,
    )
"""

from forecast_engines.classifier import (
    DEFAULT_COST_CENTER_CODES,
    DEFAULT_RULES,
    DEFAULT_SYNONYMS,
    Classification,
    ClassificationSummary,
    ClassificationTables,
    classify,
)
from forecast_engines.future_labor import (
    EXCLUSION_SCOPE_CATEGORY,
    EXCLUSION_SCOPE_PROJECT,
    FutureLaborProjection,
    project_future_labor,
)
from forecast_engines.labor_actuals import (
    LaborActualsSummary,
    LaborLine,
    LaborSourceSelection,
    WeeklyLaborCost,
    aggregate_labor_actuals,
    burdened_cost,
    cost_labor_records,
    select_labor_source,
    weekly_labor_costs,
)
from forecast_engines.po_rollup import (
    DEFAULT_BUDGET_DEFAULT_CATEGORIES,
    DEFAULT_EXCLUDED_STATUSES,
    CategoryRollup,
    PurchaseOrderRollup,
    order_forecast,
    rollup_purchase_orders,
)
from forecast_engines.reconciler import (
    DataQuality,
    ForecastBreakdown,
    ForecastLine,
    ForecastResult,
    reconcile_forecast,
    revised_contract_value,
)
from forecast_engines.running_rate import (
    CompositeRate,
    RunningRate,
    WeeklyRate,
    calculate_running_rates,
    composite_rate,
    trailing_window,
)
from forecast_engines.tracer import traced_engine
from forecast_engines.weeks import trailing_week_endings, week_ending_for

__all__ = [
    # classifier
    "DEFAULT_COST_CENTER_CODES",
    "DEFAULT_RULES",
    "DEFAULT_SYNONYMS",
    "Classification",
    "ClassificationSummary",
    "ClassificationTables",
    "classify",
    # future labor
    "EXCLUSION_SCOPE_CATEGORY",
    "EXCLUSION_SCOPE_PROJECT",
    "FutureLaborProjection",
    "project_future_labor",
    # labor actuals
    "LaborActualsSummary",
    "LaborLine",
    "LaborSourceSelection",
    "WeeklyLaborCost",
    "aggregate_labor_actuals",
    "burdened_cost",
    "cost_labor_records",
    "select_labor_source",
    "weekly_labor_costs",
    # purchase orders
    "DEFAULT_BUDGET_DEFAULT_CATEGORIES",
    "DEFAULT_EXCLUDED_STATUSES",
    "CategoryRollup",
    "PurchaseOrderRollup",
    "order_forecast",
    "rollup_purchase_orders",
    # reconciler
    "DataQuality",
    "ForecastBreakdown",
    "ForecastLine",
    "ForecastResult",
    "reconcile_forecast",
    "revised_contract_value",
    # running rate
    "CompositeRate",
    "RunningRate",
    "WeeklyRate",
    "calculate_running_rates",
    "composite_rate",
    "trailing_window",
    # infrastructure
    "traced_engine",
    "trailing_week_endings",
    "week_ending_for",
]
