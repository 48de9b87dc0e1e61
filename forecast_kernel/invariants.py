"""
Forecast Invariants Contract.

These invariants are structural law for every ForecastResult. No policy
value or configuration file may switch them off.

This module only declares them. Enforcement lives in
``forecast_engines.reconciler`` (final clamp and post-condition check).
"""

from enum import Enum, unique


@unique
class ForecastInvariant(str, Enum):
    """Non-configurable invariants of a reconciled forecast."""

    FORECAST_NOT_BELOW_ACTUALS = "forecast_not_below_actuals"
    """forecasted_final >= actuals for every line, every subcategory and
    the aggregate. Enforced by the final clamp in the reconciler."""

    EAC_IDENTITY = "eac_identity"
    """estimate_at_completion == actual_cost_to_date + estimate_to_complete,
    exactly, on the quantized figures."""

    CATEGORY_COMPLETENESS = "category_completeness"
    """The sum of the top-level line actuals equals actual_cost_to_date."""

    FINITE_OUTPUT = "finite_output"
    """Every numeric output is a finite Decimal; zero guards replace
    division by zero."""


ALL_FORECAST_INVARIANTS: frozenset[ForecastInvariant] = frozenset(ForecastInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_layer_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "forecast_engines",
    "forecast_config",
    "forecast_services",
)
