"""
Module: forecast_kernel.models.project
Responsibility: ORM persistence for projects, their budget allocations and
    contract change orders.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One budget allocation row per (project, category).
    - Contract values are Numeric(38, 9); never float.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from forecast_kernel.db.base import TrackedBase


class ProjectModel(TrackedBase):
    """
    A construction project.

    ``labor_source`` is the declared canonical labor actuals table
    (``current`` or ``legacy``); NULL means undeclared.
    """

    __tablename__ = "projects"

    __table_args__ = (
        UniqueConstraint("job_number", name="uq_project_job_number"),
    )

    job_number: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    original_contract_value: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    revised_contract_value: Mapped[Decimal | None] = mapped_column(nullable=True)
    labor_source: Mapped[str | None] = mapped_column(String(20), nullable=True)

    def __repr__(self) -> str:
        return f"<Project {self.job_number}: {self.name}>"


class BudgetAllocationModel(TrackedBase):
    """Budgeted dollars for one cost category of one project."""

    __tablename__ = "budget_allocations"

    __table_args__ = (
        UniqueConstraint("project_id", "category", name="uq_budget_project_category"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))


class ChangeOrderModel(TrackedBase):
    """Contract change order; approved amounts revise the contract value."""

    __tablename__ = "change_orders"

    __table_args__ = (
        Index("idx_change_order_project", "project_id"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    co_number: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
