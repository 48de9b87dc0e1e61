"""
Configuration Loader (``forecast_config.loader``).

Responsibility
--------------
Loads a forecast policy YAML file and parses it into the frozen
``forecast_config.schema.ForecastPolicy``.  This is internal tooling; the
single runtime entry point is ``forecast_config.get_active_policy()``.

Architecture position
---------------------
**Config layer**.  Depends on ``forecast_kernel`` domain enums only.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` with a message naming the key.
* Money and rate values never pass through ``float`` arithmetic: YAML
  floats are converted through their text form.
* ``compute_checksum`` is deterministic for identical parsed content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown category, status or weekday  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from forecast_config.schema import ForecastPolicy
from forecast_kernel.domain.categories import CostCategory, POStatus

WEEKDAYS: dict[str, int] = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, key: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected a number, got {value!r}")
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{key}: cannot parse {value!r} as a decimal") from exc


def parse_category(value: Any, key: str) -> CostCategory:
    try:
        return CostCategory(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"{key}: unknown cost category {value!r}") from exc


def parse_status(value: Any, key: str) -> POStatus:
    try:
        return POStatus(str(value).strip().lower())
    except ValueError as exc:
        raise ValueError(f"{key}: unknown purchase order status {value!r}") from exc


def parse_weekday(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    name = str(value).strip().lower()
    if name not in WEEKDAYS:
        raise ValueError(f"labor.week_end_weekday: unknown weekday {value!r}")
    return WEEKDAYS[name]


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"{name}: expected a mapping, got {type(section).__name__}")
    return section


def parse_policy(data: Mapping[str, Any]) -> ForecastPolicy:
    """
    Parse a ``ForecastPolicy`` from a dict.

    Missing keys fall back to the ``ForecastPolicy`` defaults.

    Raises:
        ValueError: on unparseable values or a policy that fails validation.
    """
    labor = _section(data, "labor")
    forecast = _section(data, "forecast")
    classification = _section(data, "classification")
    purchase_orders = _section(data, "purchase_orders")
    services = _section(data, "services")
    defaults = ForecastPolicy()

    kwargs: dict[str, Any] = {
        "name": str(data.get("name", defaults.name)),
        "version": int(data.get("version", defaults.version)),
    }

    if "burden_rate" in labor:
        kwargs["burden_rate"] = parse_decimal(labor["burden_rate"], "labor.burden_rate")
    if "default_weekly_hours" in labor:
        kwargs["default_weekly_hours"] = parse_decimal(
            labor["default_weekly_hours"], "labor.default_weekly_hours"
        )
    if "week_end_weekday" in labor:
        kwargs["week_end_weekday"] = parse_weekday(labor["week_end_weekday"])
    for key in ("trailing_weeks", "recent_weeks", "composite_weeks"):
        if key in labor:
            kwargs[key] = int(labor[key])
    if "fallback_rates" in labor:
        kwargs["fallback_rates"] = {
            parse_category(category, "labor.fallback_rates"): parse_decimal(
                rate, f"labor.fallback_rates.{category}"
            )
            for category, rate in (labor["fallback_rates"] or {}).items()
        }

    if "exclusion_scope" in forecast:
        kwargs["forecast_exclusion_scope"] = str(forecast["exclusion_scope"]).strip().lower()

    if "fail_on_unclassified" in classification:
        kwargs["fail_on_unclassified"] = bool(classification["fail_on_unclassified"])
    if "cost_center_codes" in classification:
        kwargs["cost_center_codes"] = {
            str(code).strip(): parse_category(category, f"classification.cost_center_codes.{code}")
            for code, category in (classification["cost_center_codes"] or {}).items()
        }
    if "synonyms" in classification:
        kwargs["category_synonyms"] = {
            str(text): parse_category(category, f"classification.synonyms.{text}")
            for text, category in (classification["synonyms"] or {}).items()
        }

    if "approved_only" in purchase_orders:
        kwargs["approved_pos_only"] = bool(purchase_orders["approved_only"])
    if "excluded_statuses" in purchase_orders:
        kwargs["excluded_po_statuses"] = frozenset(
            parse_status(s, "purchase_orders.excluded_statuses")
            for s in purchase_orders["excluded_statuses"] or ()
        )
    if "budget_default_categories" in purchase_orders:
        kwargs["budget_default_categories"] = frozenset(
            parse_category(c, "purchase_orders.budget_default_categories")
            for c in purchase_orders["budget_default_categories"] or ()
        )

    if "fetch_workers" in services:
        kwargs["fetch_workers"] = int(services["fetch_workers"])

    kwargs["checksum"] = compute_checksum(dict(data))
    return ForecastPolicy(**kwargs)


def merge_overrides(
    data: Mapping[str, Any],
    overrides: Mapping[str, Any],
) -> dict[str, Any]:
    """Deep-merge ``overrides`` into ``data``; mappings merge, other values replace."""
    merged = dict(data)
    for key, value in overrides.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_overrides(current, value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
