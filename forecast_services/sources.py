"""
Forecast data sources (``forecast_services.sources``).

Responsibility
--------------
Defines the collaborator contract the forecast service reads its inputs
through, and two implementations: an in-memory source for tests and
embedding, and a SQL source backed by ``ForecastInputSelector``.

Architecture position
---------------------
**Services layer**.  The service fetches every input concurrently, so an
implementation must be safe to call from several threads at once.
``SqlForecastSource`` therefore opens one session per call rather than
sharing a session across threads.

Failure modes
-------------
* Any exception raised by a source method propagates to the service,
  which wraps it in ``UpstreamFetchFailureError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from forecast_kernel.domain.records import (
    BudgetAllocation,
    ChangeOrderRecord,
    CraftType,
    HeadcountForecastEntry,
    LaborActualRecord,
    PerDiemRecord,
    Project,
    PurchaseOrderRecord,
)
from forecast_kernel.selectors.forecast_selector import ForecastInputSelector


class ForecastDataSource(ABC):
    """Read-only access to the inputs of one project's forecast."""

    @abstractmethod
    def get_project(self, project_id: UUID) -> Project | None:
        ...

    @abstractmethod
    def list_labor_actuals(self, project_id: UUID) -> Sequence[LaborActualRecord]:
        ...

    @abstractmethod
    def list_craft_types(self) -> Sequence[CraftType]:
        ...

    @abstractmethod
    def list_per_diem_costs(self, project_id: UUID) -> Sequence[PerDiemRecord]:
        ...

    @abstractmethod
    def list_purchase_orders(self, project_id: UUID) -> Sequence[PurchaseOrderRecord]:
        ...

    @abstractmethod
    def list_headcount_forecasts(self, project_id: UUID) -> Sequence[HeadcountForecastEntry]:
        ...

    @abstractmethod
    def list_budget_allocations(self, project_id: UUID) -> Sequence[BudgetAllocation]:
        ...

    @abstractmethod
    def list_change_orders(self, project_id: UUID) -> Sequence[ChangeOrderRecord]:
        ...

    def last_modified(self, project_id: UUID) -> datetime | None:
        """Newest modification time across the project's inputs, if known."""
        return None


class InMemoryForecastSource(ForecastDataSource):
    """Source over plain Python collections keyed by project id."""

    def __init__(
        self,
        projects: Iterable[Project] = (),
        *,
        crafts: Iterable[CraftType] = (),
        labor_actuals: Mapping[UUID, Sequence[LaborActualRecord]] | None = None,
        per_diem: Mapping[UUID, Sequence[PerDiemRecord]] | None = None,
        purchase_orders: Mapping[UUID, Sequence[PurchaseOrderRecord]] | None = None,
        headcount: Mapping[UUID, Sequence[HeadcountForecastEntry]] | None = None,
        budgets: Mapping[UUID, Sequence[BudgetAllocation]] | None = None,
        change_orders: Mapping[UUID, Sequence[ChangeOrderRecord]] | None = None,
    ):
        self._projects = {project.id: project for project in projects}
        self._crafts = tuple(crafts)
        self._labor_actuals = dict(labor_actuals or {})
        self._per_diem = dict(per_diem or {})
        self._purchase_orders = dict(purchase_orders or {})
        self._headcount = dict(headcount or {})
        self._budgets = dict(budgets or {})
        self._change_orders = dict(change_orders or {})

    def get_project(self, project_id: UUID) -> Project | None:
        return self._projects.get(project_id)

    def list_labor_actuals(self, project_id: UUID) -> Sequence[LaborActualRecord]:
        return tuple(self._labor_actuals.get(project_id, ()))

    def list_craft_types(self) -> Sequence[CraftType]:
        return self._crafts

    def list_per_diem_costs(self, project_id: UUID) -> Sequence[PerDiemRecord]:
        return tuple(self._per_diem.get(project_id, ()))

    def list_purchase_orders(self, project_id: UUID) -> Sequence[PurchaseOrderRecord]:
        return tuple(self._purchase_orders.get(project_id, ()))

    def list_headcount_forecasts(self, project_id: UUID) -> Sequence[HeadcountForecastEntry]:
        return tuple(self._headcount.get(project_id, ()))

    def list_budget_allocations(self, project_id: UUID) -> Sequence[BudgetAllocation]:
        return tuple(self._budgets.get(project_id, ()))

    def list_change_orders(self, project_id: UUID) -> Sequence[ChangeOrderRecord]:
        return tuple(self._change_orders.get(project_id, ()))


class SqlForecastSource(ForecastDataSource):
    """Source backed by the forecast input tables.

    Each call runs in its own short-lived session from ``session_factory``.
    """

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def _select(self, method: str, *args):
        with self._session_factory() as session:
            return getattr(ForecastInputSelector(session), method)(*args)

    def get_project(self, project_id: UUID) -> Project | None:
        return self._select("get_project", project_id)

    def list_labor_actuals(self, project_id: UUID) -> Sequence[LaborActualRecord]:
        return self._select("list_labor_actuals", project_id)

    def list_craft_types(self) -> Sequence[CraftType]:
        return self._select("list_craft_types")

    def list_per_diem_costs(self, project_id: UUID) -> Sequence[PerDiemRecord]:
        return self._select("list_per_diem_costs", project_id)

    def list_purchase_orders(self, project_id: UUID) -> Sequence[PurchaseOrderRecord]:
        return self._select("list_purchase_orders", project_id)

    def list_headcount_forecasts(self, project_id: UUID) -> Sequence[HeadcountForecastEntry]:
        return self._select("list_headcount_forecasts", project_id)

    def list_budget_allocations(self, project_id: UUID) -> Sequence[BudgetAllocation]:
        return self._select("list_budget_allocations", project_id)

    def list_change_orders(self, project_id: UUID) -> Sequence[ChangeOrderRecord]:
        return self._select("list_change_orders", project_id)

    def last_modified(self, project_id: UUID) -> datetime | None:
        return self._select("last_modified", project_id)
