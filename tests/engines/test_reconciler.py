"""
Tests for Estimate at Completion reconciliation.

Covers:
- The worked scenarios: PO only, labor with future headcount, a forecast
  week that already has actuals, budget default, zero contract value
- EAC = AC + ETC and category completeness
- The final clamp of forecasted_final to actuals
- Revised contract value from change orders
- Canonical JSON output
"""

import json
from decimal import Decimal

import pytest

from forecast_engines.classifier import ClassificationSummary
from forecast_engines.future_labor import project_future_labor
from forecast_engines.labor_actuals import aggregate_labor_actuals, cost_labor_records
from forecast_engines.po_rollup import (
    CategoryRollup,
    PurchaseOrderRollup,
    rollup_purchase_orders,
)
from forecast_engines.reconciler import (
    ForecastLine,
    reconcile_forecast,
    revised_contract_value,
)
from forecast_engines.running_rate import calculate_running_rates
from forecast_kernel.domain import (
    NON_LABOR_CATEGORIES,
    ChangeOrderRecord,
    ChangeOrderStatus,
    CostCategory,
)
from forecast_kernel.exceptions import ClassificationAmbiguousError
from tests.factories import (
    WEEK_1,
    WEEK_2,
    budget,
    headcount,
    labor,
    make_project,
    po,
)

BURDEN = Decimal("0.28")


def _forecast(
    project,
    *,
    actuals=(),
    orders=(),
    forecast=(),
    budgets=(),
    change_orders=(),
    fail_on_unclassified=False,
):
    summary = aggregate_labor_actuals(
        actuals,
        burden_rate=BURDEN,
        canonical_source=project.labor_source,
    )
    lines = cost_labor_records(actuals, burden_rate=BURDEN, source=summary.source.source)
    future = project_future_labor(
        forecast,
        category_rates=calculate_running_rates(lines),
        weeks_with_actuals=summary.weeks_with_actuals,
    )
    rollup = rollup_purchase_orders(orders, budgets=budgets)
    return reconcile_forecast(
        project,
        labor=summary,
        rollup=rollup,
        future=future,
        budgets=budgets,
        change_orders=change_orders,
        fail_on_unclassified=fail_on_unclassified,
    )


class TestScenarios:
    """Worked examples of the forecast arithmetic."""

    def test_po_only(self):
        result = _forecast(make_project(), orders=[po("PO-1", "100000", "40000")])

        assert result.actual_cost_to_date == Decimal("40000.00")
        assert result.estimate_to_complete == Decimal("60000.00")
        assert result.estimate_at_completion == Decimal("100000.00")
        materials = result.line("materials")
        assert materials.actuals == Decimal("40000.00")
        assert materials.left_to_spend == Decimal("60000.00")
        assert materials.forecasted_final == Decimal("100000.00")

    def test_labor_actuals_plus_future_headcount(self):
        result = _forecast(
            make_project(),
            actuals=[labor(WEEK_1, "24000", "480")],
            forecast=[headcount(WEEK_2, "12")],
        )

        direct = result.line("labor_direct")
        assert direct.actuals == Decimal("24000.00")
        assert direct.left_to_spend == Decimal("24000.00")
        assert direct.forecasted_final == Decimal("48000.00")
        assert result.line("labor").forecasted_final == Decimal("48000.00")
        assert result.breakdown.future_labor == Decimal("24000.00")
        assert result.estimate_at_completion == Decimal("48000.00")

    def test_forecast_week_with_actuals_not_double_counted(self):
        result = _forecast(
            make_project(),
            actuals=[labor(WEEK_1, "24000", "480"), labor(WEEK_2, "24000", "480")],
            forecast=[headcount(WEEK_2, "12")],
        )

        direct = result.line("labor_direct")
        assert direct.actuals == Decimal("48000.00")
        assert direct.left_to_spend == Decimal("0.00")
        assert result.breakdown.future_labor == Decimal("0.00")
        assert result.data_quality.excluded_forecast_entries == 1

    def test_budget_default_without_orders(self):
        result = _forecast(
            make_project(),
            budgets=[budget(CostCategory.MATERIALS, "50000")],
        )

        materials = result.line("materials")
        assert materials.forecasted_final == Decimal("50000.00")
        assert materials.variance == Decimal("0.00")
        assert result.data_quality.budget_default_categories == ("materials",)

    def test_zero_contract_value(self):
        result = _forecast(make_project(original="0", revised="0"))

        assert result.profit_margin == Decimal("0.00")
        assert result.percent_complete == Decimal("0.00")
        assert result.to_dict()["profit_margin"] == "0.00"

    def test_zero_contract_value_with_costs(self):
        result = _forecast(
            make_project(original="0", revised="0"),
            orders=[po("PO-1", "1000", "500")],
        )
        assert result.profit_margin == Decimal("0.00")
        assert result.percent_complete == Decimal("50.00")


class TestMarginAndProgress:
    """Variance, margin and percent complete."""

    def test_margin_against_revised_contract(self):
        result = _forecast(
            make_project(original="150000", revised="200000"),
            orders=[po("PO-1", "150000", "50000")],
        )
        assert result.variance_at_completion == Decimal("50000.00")
        assert result.profit_margin == Decimal("25.00")
        assert result.percent_complete == Decimal("33.33")

    def test_negative_margin(self):
        result = _forecast(
            make_project(original="100000"),
            orders=[po("PO-1", "120000", "0")],
        )
        assert result.variance_at_completion == Decimal("-20000.00")
        assert result.profit_margin == Decimal("-20.00")

    def test_percent_complete_rounds_half_up(self):
        # 1 / 3 = 33.333...%
        result = _forecast(make_project(), orders=[po("PO-1", "3", "1")])
        assert result.percent_complete == Decimal("33.33")


class TestRevisedContractValue:
    """Declared revised value, else original plus approved change orders."""

    def test_declared_value_wins(self):
        project = make_project(original="100", revised="150")
        cos = [ChangeOrderRecord("CO-1", Decimal("10"), ChangeOrderStatus.APPROVED)]
        assert revised_contract_value(project, cos) == Decimal("150")

    def test_approved_change_orders_added(self):
        project = make_project(original="100000")
        cos = [
            ChangeOrderRecord("CO-1", Decimal("5000"), ChangeOrderStatus.APPROVED),
            ChangeOrderRecord("CO-2", Decimal("9999"), ChangeOrderStatus.PENDING),
            ChangeOrderRecord("CO-3", Decimal("-1000"), ChangeOrderStatus.APPROVED),
        ]
        assert revised_contract_value(project, cos) == Decimal("104000")

    def test_flows_into_result(self):
        result = _forecast(
            make_project(original="1000"),
            change_orders=[ChangeOrderRecord("CO-1", Decimal("500"), ChangeOrderStatus.APPROVED)],
        )
        assert result.original_contract_value == Decimal("1000.00")
        assert result.revised_contract_value == Decimal("1500.00")


class TestStructuralInvariants:
    """Identities every result satisfies."""

    def test_eac_identity_and_completeness(self):
        result = _forecast(
            make_project(),
            actuals=[
                labor(WEEK_1, "1234.565", "20"),
                labor(WEEK_1, "99.995", "2", CostCategory.LABOR_STAFF),
            ],
            orders=[
                po("PO-1", "1000.005", "333.335"),
                po("PO-2", "50", "10", CostCategory.EQUIPMENT),
            ],
            forecast=[headcount(WEEK_2, "3")],
        )
        assert result.estimate_at_completion == (
            result.actual_cost_to_date + result.estimate_to_complete
        )
        assert sum(line.actuals for line in result.lines) == result.actual_cost_to_date
        assert result.totals.actuals == result.actual_cost_to_date

    def test_line_order_and_keys(self):
        result = _forecast(make_project())
        assert [line.key for line in result.lines] == ["labor"] + [
            c.value for c in NON_LABOR_CATEGORIES
        ]
        assert [sub.key for sub in result.line("labor").subcategories] == [
            "labor_direct",
            "labor_indirect",
            "labor_staff",
        ]
        assert result.totals.key == "total"

    def test_unknown_line_key(self):
        with pytest.raises(KeyError):
            _forecast(make_project()).line("fuel")


class TestFinalClamp:
    """forecasted_final is raised to actuals after every other step."""

    def test_line_clamp_recurses(self):
        line = ForecastLine(
            key="labor",
            label="LABOR",
            actuals=Decimal("10"),
            forecasted_final=Decimal("5"),
            subcategories=(
                ForecastLine(
                    key="labor_direct",
                    label="DIRECT LABOR",
                    actuals=Decimal("7"),
                    forecasted_final=Decimal("1"),
                ),
            ),
        )
        clamped = line.clamped()
        assert clamped.forecasted_final == Decimal("10")
        assert clamped.subcategories[0].forecasted_final == Decimal("7")

    def test_reconciler_clamps_low_forecast(self):
        project = make_project()
        summary = aggregate_labor_actuals([], burden_rate=BURDEN)
        future = project_future_labor([], category_rates={})
        categories = {c: CategoryRollup(category=c) for c in NON_LABOR_CATEGORIES}
        categories[CostCategory.MATERIALS] = CategoryRollup(
            category=CostCategory.MATERIALS,
            committed=Decimal("100"),
            invoiced=Decimal("300"),
            forecasted=Decimal("50"),
            order_count=1,
        )
        rollup = PurchaseOrderRollup(categories=categories, classification=ClassificationSummary())

        result = reconcile_forecast(project, labor=summary, rollup=rollup, future=future)

        materials = result.line("materials")
        assert materials.forecasted_final == Decimal("300.00")
        assert materials.left_to_spend == Decimal("0.00")
        assert result.totals.forecasted_final >= result.totals.actuals

    def test_variance_taken_after_clamp(self):
        line = ForecastLine(
            key="materials",
            label="MATERIALS",
            budget=Decimal("100"),
            actuals=Decimal("150"),
            forecasted_final=Decimal("120"),
        ).clamped()
        assert line.variance == Decimal("-50")


class TestUnclassifiedPolicy:
    """Unclassified records are reported; optionally fatal."""

    def test_reported_by_default(self):
        result = _forecast(
            make_project(),
            actuals=[labor(WEEK_1, "100", "2", None, record_id="emp-1")],
            orders=[po("PO-9", "500", category=None)],
        )
        quality = result.data_quality
        assert quality.unclassified_labor_records == 1
        assert quality.unclassified_purchase_orders == 1
        assert quality.unclassified_references == ("emp-1", "PO-9")
        assert quality.has_unclassified
        assert result.actual_cost_to_date == Decimal("0.00")

    def test_fail_on_unclassified(self):
        with pytest.raises(ClassificationAmbiguousError) as exc_info:
            _forecast(
                make_project(),
                orders=[po("PO-9", "500", category=None)],
                fail_on_unclassified=True,
            )
        assert exc_info.value.record_kind == "purchase order"
        assert exc_info.value.references == ("PO-9",)


class TestSerialization:
    """Canonical output."""

    def test_money_as_fixed_point_text(self):
        data = _forecast(make_project(), orders=[po("PO-1", "100", "40")]).to_dict()
        assert data["estimate_at_completion"] == "100.00"
        assert data["totals"]["variance"] == "-100.00"
        assert data["data_quality"]["unassigned_per_diem"] == "0.00"

    def test_to_json_is_deterministic(self):
        project = make_project()
        first = _forecast(project, orders=[po("PO-1", "100", "40")]).to_json()
        second = _forecast(project, orders=[po("PO-1", "100", "40")]).to_json()
        assert first == second
        assert json.loads(first)["project_id"] == str(project.id)
