"""
Module: forecast_kernel.models.purchasing
Responsibility: ORM persistence for purchase orders as written by PO
    management.
Architecture position: Kernel > Models.  May import from db/base.py only.

Category information on a PO is unreliable: the enum column is often NULL
and the classifier falls back to the cost code category, the cost center
code and finally the free-text budget category.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from forecast_kernel.db.base import TrackedBase


class PurchaseOrderModel(TrackedBase):
    """Committed and invoiced spend on one purchase order."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        UniqueConstraint("project_id", "po_number", name="uq_po_project_number"),
        Index("idx_po_project_status", "project_id", "status"),
    )

    project_id: Mapped[UUID] = mapped_column(ForeignKey("projects.id"), nullable=False)
    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="approved")
    committed_amount: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    invoiced_amount: Mapped[Decimal] = mapped_column(
        nullable=False, default=Decimal("0")
    )
    forecast_amount: Mapped[Decimal | None] = mapped_column(nullable=True)
    forecasted_final_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    category: Mapped[str | None] = mapped_column(String(30), nullable=True)
    cost_code_category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    cost_center_code: Mapped[str | None] = mapped_column(String(10), nullable=True)
    budget_category_text: Mapped[str | None] = mapped_column(String(100), nullable=True)
