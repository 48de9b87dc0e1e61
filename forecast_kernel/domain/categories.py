"""
Cost categories and labor sources.

Every dollar a project spends lands in exactly one ``CostCategory``. The
enumeration order below is the display order used by every report.
"""

from __future__ import annotations

from enum import Enum


class CostCategory(str, Enum):
    """Budget bucket for a unit of project cost."""

    LABOR_DIRECT = "labor_direct"
    LABOR_INDIRECT = "labor_indirect"
    LABOR_STAFF = "labor_staff"
    MATERIALS = "materials"
    EQUIPMENT = "equipment"
    SUBCONTRACTS = "subcontracts"
    SMALL_TOOLS = "small_tools"
    OTHER = "other"
    RISK = "risk"

    @property
    def is_labor(self) -> bool:
        return self in LABOR_CATEGORIES

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


LABOR_CATEGORIES: tuple[CostCategory, ...] = (
    CostCategory.LABOR_DIRECT,
    CostCategory.LABOR_INDIRECT,
    CostCategory.LABOR_STAFF,
)

NON_LABOR_CATEGORIES: tuple[CostCategory, ...] = (
    CostCategory.MATERIALS,
    CostCategory.EQUIPMENT,
    CostCategory.SUBCONTRACTS,
    CostCategory.SMALL_TOOLS,
    CostCategory.OTHER,
    CostCategory.RISK,
)

CATEGORY_LABELS: dict[CostCategory, str] = {
    CostCategory.LABOR_DIRECT: "DIRECT LABOR",
    CostCategory.LABOR_INDIRECT: "INDIRECT LABOR",
    CostCategory.LABOR_STAFF: "STAFF LABOR",
    CostCategory.MATERIALS: "MATERIALS",
    CostCategory.EQUIPMENT: "EQUIPMENT",
    CostCategory.SUBCONTRACTS: "SUBCONTRACTS",
    CostCategory.SMALL_TOOLS: "SMALL TOOLS & CONSUMABLES",
    CostCategory.OTHER: "OTHER",
    CostCategory.RISK: "RISK",
}


class LaborSource(str, Enum):
    """Which labor actuals table is the source of truth for a project.

    CURRENT is the per-employee actuals table; LEGACY is the older
    per-craft actuals table. Exactly one is counted per project.
    """

    CURRENT = "current"
    LEGACY = "legacy"


class POStatus(str, Enum):
    """Purchase order lifecycle status as stored by PO management."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    DELETED = "deleted"


APPROVED_PO_STATUSES: frozenset[POStatus] = frozenset(
    {POStatus.APPROVED, POStatus.OPEN, POStatus.CLOSED}
)
