"""
Module: forecast_kernel.models.labor
Responsibility: ORM persistence for the labor-side forecast inputs: craft
    types, the two labor actuals tables, per-diem costs and headcount
    forecasts.
Architecture position: Kernel > Models.  May import from db/base.py only.

Two actuals tables describe the same fact.  ``labor_actuals`` is the
per-employee table written by the current payroll import;
``legacy_labor_actuals`` is the older per-craft table.  The project's
declared ``labor_source`` says which one counts.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from forecast_kernel.db.base import TrackedBase


class CraftTypeModel(TrackedBase):
    """Craft / employee type with its raw labor category text."""

    __tablename__ = "craft_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    category: Mapped[str | None] = mapped_column(String(30), nullable=True)
    default_rate: Mapped[Decimal | None] = mapped_column(nullable=True)


class LaborActualModel(TrackedBase):
    """One employee-week of labor cost from the current payroll import."""

    __tablename__ = "labor_actuals"

    __table_args__ = (
        Index("idx_labor_actual_project_week", "project_id", "week_ending"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    craft_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("craft_types.id"), nullable=True
    )
    employee_ref: Mapped[str | None] = mapped_column(String(50), nullable=True)
    week_ending: Mapped[date] = mapped_column(Date, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    st_wages: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    ot_wages: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    burden_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    total_cost_with_burden: Mapped[Decimal | None] = mapped_column(nullable=True)
    category: Mapped[str | None] = mapped_column(String(30), nullable=True)
    employee_category: Mapped[str | None] = mapped_column(String(30), nullable=True)


class LegacyLaborActualModel(TrackedBase):
    """One craft-week of burdened labor cost from the older actuals table."""

    __tablename__ = "legacy_labor_actuals"

    __table_args__ = (
        Index("idx_legacy_labor_project_week", "project_id", "week_ending"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    craft_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("craft_types.id"), nullable=True
    )
    week_ending: Mapped[date] = mapped_column(Date, nullable=False)
    actual_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    actual_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class PerDiemCostModel(TrackedBase):
    """Daily allowance paid to one employee on one work date."""

    __tablename__ = "per_diem_costs"

    __table_args__ = (
        Index("idx_per_diem_project_date", "project_id", "work_date"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    employee_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class HeadcountForecastModel(TrackedBase):
    """Planned headcount for one labor category in one future week."""

    __tablename__ = "headcount_forecasts"

    __table_args__ = (
        Index("idx_headcount_project_week", "project_id", "week_ending"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    craft_type_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("craft_types.id"), nullable=True
    )
    week_ending: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    headcount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    hours_per_person: Mapped[Decimal | None] = mapped_column(nullable=True)
