"""
Pure domain layer.

Immutable records and enumerations with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O
"""

from forecast_kernel.domain.categories import (
    APPROVED_PO_STATUSES,
    CATEGORY_LABELS,
    LABOR_CATEGORIES,
    NON_LABOR_CATEGORIES,
    CostCategory,
    LaborSource,
    POStatus,
)
from forecast_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from forecast_kernel.domain.records import (
    BudgetAllocation,
    CategoryHints,
    ChangeOrderRecord,
    ChangeOrderStatus,
    CraftType,
    HeadcountForecastEntry,
    LaborActualRecord,
    PerDiemRecord,
    Project,
    PurchaseOrderRecord,
)

__all__ = [
    "APPROVED_PO_STATUSES",
    "CATEGORY_LABELS",
    "LABOR_CATEGORIES",
    "NON_LABOR_CATEGORIES",
    "CostCategory",
    "LaborSource",
    "POStatus",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "BudgetAllocation",
    "CategoryHints",
    "ChangeOrderRecord",
    "ChangeOrderStatus",
    "CraftType",
    "HeadcountForecastEntry",
    "LaborActualRecord",
    "PerDiemRecord",
    "Project",
    "PurchaseOrderRecord",
]
