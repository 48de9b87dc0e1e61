"""Tests for the purchase order rollup."""

from decimal import Decimal

from forecast_engines.po_rollup import (
    is_counted,
    order_forecast,
    rollup_purchase_orders,
)
from forecast_kernel.domain import NON_LABOR_CATEGORIES, CostCategory, POStatus
from tests.factories import budget, po


class TestOrderForecast:
    """max(explicit forecast, committed, invoiced)."""

    def test_defaults_to_committed(self):
        assert order_forecast(po("PO-1", "1000", "400")) == Decimal("1000")

    def test_invoiced_over_committed(self):
        assert order_forecast(po("PO-1", "1000", "1200")) == Decimal("1200")

    def test_explicit_forecast_above_committed(self):
        assert order_forecast(po("PO-1", "1000", forecast="1500")) == Decimal("1500")

    def test_explicit_forecast_never_below_committed(self):
        assert order_forecast(po("PO-1", "1000", forecast="800")) == Decimal("1000")

    def test_final_cost_preferred_over_forecast_amount(self):
        order = po("PO-1", "1000", forecast="3000", final_cost="2000")
        assert order_forecast(order) == Decimal("2000")


class TestRollup:
    """Per-category totals."""

    def test_single_materials_order(self):
        rollup = rollup_purchase_orders([po("PO-1", "100000", "40000")])
        materials = rollup.for_category(CostCategory.MATERIALS)

        assert materials.committed == Decimal("100000")
        assert materials.invoiced == Decimal("40000")
        assert materials.remaining == Decimal("60000")
        assert materials.forecasted == Decimal("100000")
        assert materials.order_count == 1

    def test_remaining_never_negative(self):
        rollup = rollup_purchase_orders([po("PO-1", "1000", "1300")])
        assert rollup.for_category(CostCategory.MATERIALS).remaining == Decimal("0")

    def test_classification_fallbacks(self):
        rollup = rollup_purchase_orders(
            [
                po("PO-1", "100", category=None, cost_code_category="Subcontract"),
                po("PO-2", "200", category=None, cost_center_code="2000"),
                po("PO-3", "300", category=None, budget_category_text="small tools"),
            ]
        )
        assert rollup.for_category(CostCategory.SUBCONTRACTS).committed == Decimal("100")
        assert rollup.for_category(CostCategory.EQUIPMENT).committed == Decimal("200")
        assert rollup.for_category(CostCategory.SMALL_TOOLS).committed == Decimal("300")
        assert rollup.classification.classified == 3

    def test_unclassified_counted_not_summed(self):
        rollup = rollup_purchase_orders(
            [po("PO-1", "100"), po("PO-9", "999", category=None)]
        )
        assert rollup.committed == Decimal("100")
        assert rollup.classification.unclassified == 1
        assert rollup.classification.unclassified_references == ("PO-9",)

    def test_labor_category_not_admissible(self):
        rollup = rollup_purchase_orders(
            [po("PO-1", "100", category=None, budget_category_text="Direct")]
        )
        assert rollup.classification.unclassified == 1

    def test_every_category_present(self):
        rollup = rollup_purchase_orders([])
        assert set(rollup.categories) == set(NON_LABOR_CATEGORIES)
        assert rollup.forecasted == Decimal("0")


class TestStatusFilter:
    """Cancelled and deleted orders never contribute."""

    def test_cancelled_excluded(self):
        rollup = rollup_purchase_orders(
            [
                po("PO-1", "100"),
                po("PO-2", "500", status=POStatus.CANCELLED),
                po("PO-3", "700", status=POStatus.DELETED),
            ]
        )
        assert rollup.committed == Decimal("100")
        assert rollup.excluded_orders == 2

    def test_approved_only(self):
        orders = [
            po("PO-1", "100", status=POStatus.OPEN),
            po("PO-2", "200", status=POStatus.PENDING),
            po("PO-3", "300", status=POStatus.DRAFT),
        ]
        assert rollup_purchase_orders(orders).committed == Decimal("600")
        assert rollup_purchase_orders(orders, approved_only=True).committed == Decimal("100")

    def test_is_counted(self):
        excluded = frozenset({POStatus.CANCELLED})
        assert is_counted(po("PO-1", "1"), excluded, approved_only=True)
        assert not is_counted(po("PO-1", "1", status=POStatus.CANCELLED), excluded, False)


class TestBudgetDefault:
    """A budgeted category with no orders forecasts its budget."""

    def test_budget_default_applied(self):
        rollup = rollup_purchase_orders([], budgets=[budget(CostCategory.EQUIPMENT, "50000")])
        equipment = rollup.for_category(CostCategory.EQUIPMENT)
        assert equipment.forecasted == Decimal("50000")
        assert equipment.budget_default_applied
        assert equipment.remaining == Decimal("0")

    def test_not_applied_when_orders_exist(self):
        rollup = rollup_purchase_orders(
            [po("PO-1", "1000", category=CostCategory.EQUIPMENT)],
            budgets=[budget(CostCategory.EQUIPMENT, "50000")],
        )
        equipment = rollup.for_category(CostCategory.EQUIPMENT)
        assert equipment.forecasted == Decimal("1000")
        assert not equipment.budget_default_applied

    def test_not_applied_outside_configured_categories(self):
        rollup = rollup_purchase_orders(
            [],
            budgets=[budget(CostCategory.RISK, "25000"), budget(CostCategory.OTHER, "1000")],
        )
        assert rollup.for_category(CostCategory.RISK).forecasted == Decimal("0")
        assert rollup.for_category(CostCategory.OTHER).forecasted == Decimal("0")

    def test_zero_budget_not_defaulted(self):
        rollup = rollup_purchase_orders([], budgets=[budget(CostCategory.MATERIALS, "0")])
        assert not rollup.for_category(CostCategory.MATERIALS).budget_default_applied

    def test_cancelled_orders_do_not_block_default(self):
        rollup = rollup_purchase_orders(
            [po("PO-1", "1000", status=POStatus.CANCELLED)],
            budgets=[budget(CostCategory.MATERIALS, "8000")],
        )
        assert rollup.for_category(CostCategory.MATERIALS).forecasted == Decimal("8000")

    def test_budgets_summed_per_category(self):
        rollup = rollup_purchase_orders(
            [],
            budgets=[budget(CostCategory.MATERIALS, "100"), budget(CostCategory.MATERIALS, "50")],
        )
        assert rollup.for_category(CostCategory.MATERIALS).budget == Decimal("150")
