"""ORM models for forecast inputs."""

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

__all__ = [
    "BudgetAllocationModel",
    "ChangeOrderModel",
    "CraftTypeModel",
    "HeadcountForecastModel",
    "LaborActualModel",
    "LegacyLaborActualModel",
    "PerDiemCostModel",
    "ProjectModel",
    "PurchaseOrderModel",
]
