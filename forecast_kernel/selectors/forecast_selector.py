"""
Module: forecast_kernel.selectors.forecast_selector
Responsibility: Read every input the forecasting engine needs for one
    project and convert the rows to frozen domain records.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Read-only.  No add/flush/commit.
    - Unknown category text in an enum column maps to ``None`` so the
      classifier falls through to its text rules instead of failing.
    - Labor rows from both actuals tables are returned, tagged with their
      ``LaborSource``; choosing one is the aggregator's job.

Failure modes:
    - SQLAlchemy errors propagate unchanged; the service wraps them.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select

from forecast_kernel.domain.categories import CostCategory, LaborSource, POStatus
from forecast_kernel.domain.records import (
    BudgetAllocation,
    ChangeOrderRecord,
    ChangeOrderStatus,
    CraftType,
    HeadcountForecastEntry,
    LaborActualRecord,
    PerDiemRecord,
    Project,
    PurchaseOrderRecord,
)
from forecast_kernel.models.labor import (
    CraftTypeModel,
    HeadcountForecastModel,
    LaborActualModel,
    LegacyLaborActualModel,
    PerDiemCostModel,
)
from forecast_kernel.models.project import (
    BudgetAllocationModel,
    ChangeOrderModel,
    ProjectModel,
)
from forecast_kernel.models.purchasing import PurchaseOrderModel
from forecast_kernel.selectors.base import BaseSelector


def _category(value: str | None) -> CostCategory | None:
    if not value:
        return None
    try:
        return CostCategory(value.strip().lower())
    except ValueError:
        return None


def _str_or_none(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


class ForecastInputSelector(BaseSelector[ProjectModel]):
    """
    Selector for forecast inputs.

    Contract:
        Every ``list_*`` method takes a project id and returns a list of
        domain records in a deterministic order.  ``get_project`` returns
        ``None`` when the project does not exist.
    """

    def get_project(self, project_id: UUID) -> Project | None:
        row = self.session.get(ProjectModel, project_id)
        if row is None:
            return None
        source = LaborSource(row.labor_source) if row.labor_source else None
        return Project(
            id=row.id,
            name=row.name,
            original_contract_value=row.original_contract_value,
            revised_contract_value=row.revised_contract_value,
            labor_source=source,
        )

    def list_labor_actuals(self, project_id: UUID) -> list[LaborActualRecord]:
        """Rows from both actuals tables, current first, each by week."""
        current = self.session.scalars(
            select(LaborActualModel)
            .where(LaborActualModel.project_id == project_id)
            .order_by(LaborActualModel.week_ending, LaborActualModel.id)
        ).all()
        legacy = self.session.scalars(
            select(LegacyLaborActualModel)
            .where(LegacyLaborActualModel.project_id == project_id)
            .order_by(LegacyLaborActualModel.week_ending, LegacyLaborActualModel.id)
        ).all()

        records = [
            LaborActualRecord(
                week_ending=row.week_ending,
                total_hours=row.total_hours,
                total_cost_with_burden=row.total_cost_with_burden,
                st_wages=row.st_wages,
                ot_wages=row.ot_wages,
                burden_amount=row.burden_amount,
                category=_category(row.category),
                craft_id=_str_or_none(row.craft_type_id),
                employee_category=row.employee_category,
                source=LaborSource.CURRENT,
                record_id=str(row.id),
            )
            for row in current
        ]
        # Legacy cost is already burdened.
        records.extend(
            LaborActualRecord(
                week_ending=row.week_ending,
                total_hours=row.actual_hours,
                total_cost_with_burden=row.actual_cost,
                craft_id=_str_or_none(row.craft_type_id),
                source=LaborSource.LEGACY,
                record_id=str(row.id),
            )
            for row in legacy
        )
        return records

    def list_craft_types(self) -> list[CraftType]:
        rows = self.session.scalars(
            select(CraftTypeModel).order_by(CraftTypeModel.code, CraftTypeModel.name)
        ).all()
        return [
            CraftType(
                id=str(row.id),
                name=row.name,
                code=row.code,
                category=row.category,
                default_rate=row.default_rate,
            )
            for row in rows
        ]

    def list_per_diem_costs(self, project_id: UUID) -> list[PerDiemRecord]:
        rows = self.session.scalars(
            select(PerDiemCostModel)
            .where(PerDiemCostModel.project_id == project_id)
            .order_by(PerDiemCostModel.work_date, PerDiemCostModel.id)
        ).all()
        return [
            PerDiemRecord(
                work_date=row.work_date,
                employee_type=row.employee_type,
                amount=row.amount,
            )
            for row in rows
        ]

    def list_purchase_orders(self, project_id: UUID) -> list[PurchaseOrderRecord]:
        rows = self.session.scalars(
            select(PurchaseOrderModel)
            .where(PurchaseOrderModel.project_id == project_id)
            .order_by(PurchaseOrderModel.po_number)
        ).all()
        return [
            PurchaseOrderRecord(
                po_number=row.po_number,
                committed_amount=row.committed_amount,
                invoiced_amount=row.invoiced_amount,
                forecast_amount=row.forecast_amount,
                forecasted_final_cost=row.forecasted_final_cost,
                category=_category(row.category),
                cost_code_category=row.cost_code_category,
                cost_center_code=row.cost_center_code,
                budget_category_text=row.budget_category_text,
                status=POStatus(row.status.strip().lower()),
            )
            for row in rows
        ]

    def list_headcount_forecasts(self, project_id: UUID) -> list[HeadcountForecastEntry]:
        rows = self.session.scalars(
            select(HeadcountForecastModel)
            .where(HeadcountForecastModel.project_id == project_id)
            .order_by(HeadcountForecastModel.week_ending, HeadcountForecastModel.id)
        ).all()
        entries = []
        for row in rows:
            category = _category(row.category)
            if category is None:
                raise ValueError(
                    f"Headcount forecast {row.id} has unknown category "
                    f"{row.category!r}"
                )
            entries.append(
                HeadcountForecastEntry(
                    week_ending=row.week_ending,
                    category=category,
                    headcount=row.headcount,
                    hours_per_person=row.hours_per_person,
                    craft_id=_str_or_none(row.craft_type_id),
                )
            )
        return entries

    def list_budget_allocations(self, project_id: UUID) -> list[BudgetAllocation]:
        rows = self.session.scalars(
            select(BudgetAllocationModel)
            .where(BudgetAllocationModel.project_id == project_id)
            .order_by(BudgetAllocationModel.category)
        ).all()
        allocations = []
        for row in rows:
            category = _category(row.category)
            if category is None:
                raise ValueError(
                    f"Budget allocation {row.id} has unknown category "
                    f"{row.category!r}"
                )
            allocations.append(BudgetAllocation(category=category, amount=row.amount))
        return allocations

    def list_change_orders(self, project_id: UUID) -> list[ChangeOrderRecord]:
        rows = self.session.scalars(
            select(ChangeOrderModel)
            .where(ChangeOrderModel.project_id == project_id)
            .order_by(ChangeOrderModel.co_number)
        ).all()
        return [
            ChangeOrderRecord(
                co_number=row.co_number,
                amount=row.amount,
                status=ChangeOrderStatus(row.status.strip().lower()),
            )
            for row in rows
        ]

    def last_modified(self, project_id: UUID) -> datetime | None:
        """
        Newest ``updated_at`` across every input table for the project.

        This is the second half of the only valid external cache key
        (see ``forecast_kernel.utils.hashing.forecast_cache_key``).
        """
        candidates: list[datetime] = []
        project = self.session.get(ProjectModel, project_id)
        if project is not None:
            candidates.append(project.updated_at)
        for model in (
            LaborActualModel,
            LegacyLaborActualModel,
            PerDiemCostModel,
            PurchaseOrderModel,
            HeadcountForecastModel,
            BudgetAllocationModel,
            ChangeOrderModel,
        ):
            value = self.session.scalar(
                select(func.max(model.updated_at)).where(model.project_id == project_id)
            )
            if value is not None:
                candidates.append(value)
        newest_craft = self.session.scalar(select(func.max(CraftTypeModel.updated_at)))
        if newest_craft is not None:
            candidates.append(newest_craft)
        return max(candidates) if candidates else None
