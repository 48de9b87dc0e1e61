"""
Forecast Input Records (``forecast_kernel.domain.records``).

Responsibility
--------------
Frozen dataclass value objects for the data the forecasting engine reads:
projects, craft reference rows, labor actuals, per-diem costs, purchase
orders, headcount forecasts, budget allocations and change orders.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O. Produced by
data sources (``forecast_kernel.selectors`` or in-memory fixtures) and
consumed read-only by ``forecast_engines``.

Invariants enforced
-------------------
* All records are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Headcount, hours and per-person hours may not be negative.

Failure modes
-------------
* Construction with a negative headcount or hour figure raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from forecast_kernel.domain.categories import CostCategory, LaborSource, POStatus


@dataclass(frozen=True)
class CategoryHints:
    """Everything a raw record says about its cost category.

    Each field feeds one classifier rule; any of them may be missing.
    """

    explicit: CostCategory | None = None
    reference_category: str | None = None
    cost_center_code: str | None = None
    budget_category_text: str | None = None
    reference: str | None = None


@dataclass(frozen=True)
class Project:
    """A construction project as seen by the forecasting engine."""

    id: UUID
    name: str = ""
    original_contract_value: Decimal = Decimal("0")
    revised_contract_value: Decimal | None = None
    labor_source: LaborSource | None = None


@dataclass(frozen=True)
class CraftType:
    """Craft / employee-type reference row used to classify labor."""

    id: str
    name: str = ""
    code: str = ""
    category: str | None = None  # raw text: "direct", "indirect", "staff"
    default_rate: Decimal | None = None


@dataclass(frozen=True)
class LaborActualRecord:
    """One week of historical labor cost for an employee or craft.

    ``total_cost_with_burden`` is the fully loaded cost when the import
    computed it; otherwise the engine derives it from wages and either the
    separate ``burden_amount`` or the policy burden rate.
    """

    week_ending: date
    total_hours: Decimal = Decimal("0")
    total_cost_with_burden: Decimal | None = None
    st_wages: Decimal = Decimal("0")
    ot_wages: Decimal = Decimal("0")
    burden_amount: Decimal | None = None
    category: CostCategory | None = None
    craft_id: str | None = None
    employee_category: str | None = None
    source: LaborSource = LaborSource.CURRENT
    record_id: str | None = None

    def __post_init__(self) -> None:
        if self.total_hours < 0:
            raise ValueError(
                f"Labor actual {self.record_id or self.week_ending}: "
                f"total_hours cannot be negative ({self.total_hours})"
            )

    def category_hints(self, craft: CraftType | None = None) -> CategoryHints:
        reference = craft.category if craft is not None and craft.category else self.employee_category
        return CategoryHints(
            explicit=self.category,
            reference_category=reference,
            reference=self.record_id or self.craft_id,
        )


@dataclass(frozen=True)
class PerDiemRecord:
    """Daily allowance paid to a field employee."""

    work_date: date
    employee_type: str  # "Direct", "Indirect", "Staff"
    amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class PurchaseOrderRecord:
    """Committed and invoiced spend on one purchase order."""

    po_number: str
    committed_amount: Decimal = Decimal("0")
    invoiced_amount: Decimal = Decimal("0")
    forecast_amount: Decimal | None = None
    forecasted_final_cost: Decimal | None = None
    category: CostCategory | None = None
    cost_code_category: str | None = None
    cost_center_code: str | None = None
    budget_category_text: str | None = None
    status: POStatus = POStatus.APPROVED

    @property
    def explicit_forecast(self) -> Decimal | None:
        """Planner-entered forecast: final cost first, then forecast amount."""
        if self.forecasted_final_cost is not None:
            return self.forecasted_final_cost
        return self.forecast_amount

    def category_hints(self) -> CategoryHints:
        return CategoryHints(
            explicit=self.category,
            reference_category=self.cost_code_category,
            cost_center_code=self.cost_center_code,
            budget_category_text=self.budget_category_text,
            reference=self.po_number,
        )


@dataclass(frozen=True)
class HeadcountForecastEntry:
    """Planned headcount for one labor category in one future week."""

    week_ending: date
    category: CostCategory
    headcount: Decimal
    hours_per_person: Decimal | None = None
    craft_id: str | None = None

    def __post_init__(self) -> None:
        if self.headcount < 0:
            raise ValueError(
                f"Headcount forecast {self.week_ending}: headcount cannot be "
                f"negative ({self.headcount})"
            )
        if self.hours_per_person is not None and self.hours_per_person < 0:
            raise ValueError(
                f"Headcount forecast {self.week_ending}: hours_per_person "
                f"cannot be negative ({self.hours_per_person})"
            )


@dataclass(frozen=True)
class BudgetAllocation:
    """Budgeted dollars for one cost category."""

    category: CostCategory
    amount: Decimal


class ChangeOrderStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ChangeOrderRecord:
    """A contract change order; approved ones revise the contract value."""

    co_number: str
    amount: Decimal
    status: ChangeOrderStatus = ChangeOrderStatus.PENDING
