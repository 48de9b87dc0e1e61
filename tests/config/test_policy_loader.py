"""
Tests for forecast policy loading.

Covers:
- Packaged defaults
- YAML parsing of decimals, weekdays, categories and statuses
- Overrides and checksums
- Validation failures
"""

from decimal import Decimal

import pytest
import yaml

from forecast_config import DEFAULT_POLICY_PATH, get_active_policy
from forecast_config.loader import (
    load_yaml_file,
    merge_overrides,
    parse_decimal,
    parse_policy,
    parse_weekday,
)
from forecast_config.schema import ForecastPolicy
from forecast_kernel.domain import CostCategory, POStatus


class TestDefaults:
    """The packaged defaults.yaml."""

    def test_default_values(self):
        policy = get_active_policy()
        assert policy.burden_rate == Decimal("0.28")
        assert policy.default_weekly_hours == Decimal("40")
        assert policy.week_end_weekday == 6
        assert policy.trailing_weeks == 8
        assert policy.forecast_exclusion_scope == "project"
        assert policy.fallback_rates == {}
        assert policy.excluded_po_statuses == frozenset({POStatus.CANCELLED, POStatus.DELETED})
        assert CostCategory.RISK not in policy.budget_default_categories
        assert policy.cost_center_codes["3000"] == CostCategory.MATERIALS

    def test_yaml_synonyms_parsed(self):
        policy = get_active_policy()
        assert policy.category_synonyms["small tools & consumables"] == CostCategory.SMALL_TOOLS
        assert policy.category_synonyms["subcontractor"] == CostCategory.SUBCONTRACTS

    def test_matches_schema_defaults(self):
        loaded = get_active_policy()
        defaults = ForecastPolicy()
        assert loaded.burden_rate == defaults.burden_rate
        assert loaded.budget_default_categories == defaults.budget_default_categories
        assert dict(loaded.cost_center_codes) == dict(defaults.cost_center_codes)

    def test_checksum_deterministic(self):
        assert get_active_policy().checksum == get_active_policy().checksum
        assert len(get_active_policy().checksum) == 64

    def test_config_trace_logged(self, captured_logs):
        policy = get_active_policy()
        trace = next(r for r in captured_logs() if r["message"] == "FORECAST_CONFIG_TRACE")
        assert trace["checksum"] == policy.checksum
        assert trace["burden_rate"] == "0.28"


class TestOverrides:
    """Deep-merged overrides."""

    def test_override_changes_value_and_checksum(self):
        base = get_active_policy()
        tuned = get_active_policy(overrides={"labor": {"burden_rate": "0.35"}})
        assert tuned.burden_rate == Decimal("0.35")
        assert tuned.trailing_weeks == base.trailing_weeks
        assert tuned.checksum != base.checksum

    def test_merge_overrides_is_deep(self):
        merged = merge_overrides(
            {"labor": {"a": 1, "b": 2}, "name": "x"},
            {"labor": {"b": 3}},
        )
        assert merged == {"labor": {"a": 1, "b": 3}, "name": "x"}

    def test_fallback_rates(self):
        policy = get_active_policy(
            overrides={"labor": {"fallback_rates": {"labor_indirect": "45.50"}}}
        )
        assert policy.fallback_rates == {CostCategory.LABOR_INDIRECT: Decimal("45.50")}


class TestParsing:
    """Individual value parsers."""

    def test_float_goes_through_text(self):
        assert parse_decimal(0.28, "x") == Decimal("0.28")

    def test_bool_is_not_a_number(self):
        with pytest.raises(ValueError, match="expected a number"):
            parse_decimal(True, "x")

    def test_bad_decimal(self):
        with pytest.raises(ValueError, match="labor.burden_rate"):
            parse_policy({"labor": {"burden_rate": "lots"}})

    def test_weekday_by_name_or_number(self):
        assert parse_weekday("Friday") == 4
        assert parse_weekday(6) == 6
        with pytest.raises(ValueError, match="unknown weekday"):
            parse_weekday("someday")

    def test_unknown_category(self):
        with pytest.raises(ValueError, match="unknown cost category"):
            parse_policy({"classification": {"cost_center_codes": {"9000": "fuel"}}})

    def test_unknown_status(self):
        with pytest.raises(ValueError, match="unknown purchase order status"):
            parse_policy({"purchase_orders": {"excluded_statuses": ["archived"]}})

    def test_empty_mapping_uses_defaults(self):
        policy = parse_policy({})
        assert policy.burden_rate == Decimal("0.28")
        assert policy.name == "default"

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="expected a mapping"):
            parse_policy({"labor": ["0.28"]})


class TestValidation:
    """Invalid policies are never returned."""

    def test_negative_burden_rate(self):
        with pytest.raises(ValueError, match="burden_rate cannot be negative"):
            get_active_policy(overrides={"labor": {"burden_rate": "-0.1"}})

    def test_bad_exclusion_scope(self):
        with pytest.raises(ValueError, match="forecast_exclusion_scope"):
            get_active_policy(overrides={"forecast": {"exclusion_scope": "employee"}})

    def test_labor_budget_default_rejected(self):
        with pytest.raises(ValueError, match="labor category"):
            ForecastPolicy(budget_default_categories=frozenset({CostCategory.LABOR_DIRECT}))

    def test_non_labor_fallback_rejected(self):
        with pytest.raises(ValueError, match="non-labor"):
            ForecastPolicy(fallback_rates={CostCategory.MATERIALS: Decimal("10")})

    def test_zero_window_rejected(self):
        with pytest.raises(ValueError, match="trailing_weeks"):
            ForecastPolicy(trailing_weeks=0)


class TestFiles:
    """Loading from disk."""

    def test_custom_file(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "name": "canada",
                    "version": 3,
                    "labor": {"burden_rate": "0.32", "week_end_weekday": "saturday"},
                }
            )
        )
        policy = get_active_policy(config_path=path)
        assert policy.name == "canada"
        assert policy.version == 3
        assert policy.burden_rate == Decimal("0.32")
        assert policy.week_end_weekday == 5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_policy(config_path=tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_default_path_exists(self):
        assert DEFAULT_POLICY_PATH.exists()
