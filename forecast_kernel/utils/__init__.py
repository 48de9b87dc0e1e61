"""Utility modules for the forecast kernel."""

from forecast_kernel.utils.decimals import (
    MONEY_PLACES,
    PERCENT_PLACES,
    RATE_PLACES,
    quantize_money,
    quantize_percent,
    quantize_rate,
    safe_divide,
)
from forecast_kernel.utils.hashing import (
    canonicalize_json,
    forecast_cache_key,
    hash_payload,
)

__all__ = [
    "MONEY_PLACES",
    "PERCENT_PLACES",
    "RATE_PLACES",
    "quantize_money",
    "quantize_percent",
    "quantize_rate",
    "safe_divide",
    "canonicalize_json",
    "forecast_cache_key",
    "hash_payload",
]
