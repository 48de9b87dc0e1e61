"""
forecast_config -- single public entrypoint for forecast configuration.

Responsibility:
    Provides the ONLY way to obtain forecast policy at runtime through
    ``get_active_policy()``.  No other component reads configuration
    files directly.  Returns a frozen ``ForecastPolicy``.

Architecture position:
    Configuration -- YAML-driven policy.  Sits above ``forecast_kernel`` and
    below ``forecast_services``.  The kernel and the engines MUST NEVER
    import from ``forecast_config``; services unpack the policy into plain
    engine arguments.

Invariants enforced:
    - Single entrypoint: all runtime policy flows through ``get_active_policy()``.
    - Validation: a policy that fails validation is never returned.
    - Deterministic checksum: the same YAML (plus overrides) always yields
      the same ``ForecastPolicy.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the requested policy file does not exist.
    - ``ValueError`` -- unparseable values or validation failures.

Audit relevance:
    Every successful ``get_active_policy()`` call emits a
    ``FORECAST_CONFIG_TRACE`` log entry with the policy name, version,
    checksum and burden rate, tying every forecast to the exact policy
    that produced it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from forecast_config.loader import load_yaml_file, merge_overrides, parse_policy
from forecast_config.schema import ForecastPolicy

_logger = logging.getLogger("forecast_kernel.config")

DEFAULT_POLICY_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_policy(
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> ForecastPolicy:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Policy YAML file.  Defaults to the packaged
            ``defaults.yaml``.
        overrides: Nested mapping deep-merged over the file contents
            before parsing, e.g. ``{"labor": {"burden_rate": "0.30"}}``.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If the policy fails to parse or validate.
    """
    path = config_path or DEFAULT_POLICY_PATH
    data = load_yaml_file(path)
    if overrides:
        data = merge_overrides(data, overrides)

    policy = parse_policy(data)

    _logger.info(
        "FORECAST_CONFIG_TRACE",
        extra={
            "trace_type": "FORECAST_CONFIG_TRACE",
            "policy_name": policy.name,
            "policy_version": policy.version,
            "checksum": policy.checksum,
            "source": str(path),
            "burden_rate": str(policy.burden_rate),
            "exclusion_scope": policy.forecast_exclusion_scope,
        },
    )
    return policy


__all__ = [
    "DEFAULT_POLICY_PATH",
    "ForecastPolicy",
    "get_active_policy",
]
