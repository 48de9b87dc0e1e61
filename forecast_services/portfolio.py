"""
Portfolio Forecast Service (``forecast_services.portfolio``).

Responsibility
--------------
Rolls project forecasts up to a portfolio (a division, or the whole
company): sums actual cost, estimate to complete, estimate at completion
and contract values across projects, and recomputes margin and percent
complete from the sums with the same zero guards as a single project.

Invariants enforced
-------------------
* Fail closed: one failing project fails the portfolio.  A portfolio
  total that silently omits a project is financially misleading.
* Portfolio EAC = portfolio AC + portfolio ETC exactly (sums of exact
  per-project identities).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from forecast_engines.reconciler import ForecastResult
from forecast_kernel.logging_config import LogContext, get_logger
from forecast_kernel.utils.decimals import quantize_money, quantize_percent, safe_divide
from forecast_kernel.utils.hashing import canonicalize_json
from forecast_services.forecast_service import ProjectForecastService

logger = get_logger("services.portfolio")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _money_text(value: Decimal) -> str:
    return format(quantize_money(value), "f")


@dataclass(frozen=True)
class PortfolioForecast:
    """Aggregated forecast across several projects."""

    forecasts: tuple[ForecastResult, ...]
    original_contract_value: Decimal
    revised_contract_value: Decimal
    actual_cost_to_date: Decimal
    estimate_to_complete: Decimal
    estimate_at_completion: Decimal
    variance_at_completion: Decimal
    profit_margin: Decimal
    percent_complete: Decimal

    @property
    def project_count(self) -> int:
        return len(self.forecasts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_count": self.project_count,
            "original_contract_value": _money_text(self.original_contract_value),
            "revised_contract_value": _money_text(self.revised_contract_value),
            "actual_cost_to_date": _money_text(self.actual_cost_to_date),
            "estimate_to_complete": _money_text(self.estimate_to_complete),
            "estimate_at_completion": _money_text(self.estimate_at_completion),
            "variance_at_completion": _money_text(self.variance_at_completion),
            "profit_margin": _money_text(self.profit_margin),
            "percent_complete": _money_text(self.percent_complete),
            "projects": [forecast.to_dict() for forecast in self.forecasts],
        }

    def to_json(self) -> str:
        return canonicalize_json(self.to_dict())


def summarize_portfolio(forecasts: Iterable[ForecastResult]) -> PortfolioForecast:
    forecasts = tuple(forecasts)

    def total(attribute: str) -> Decimal:
        return sum((getattr(f, attribute) for f in forecasts), ZERO)

    revised = total("revised_contract_value")
    ac = total("actual_cost_to_date")
    etc = total("estimate_to_complete")
    eac = ac + etc
    vac = revised - eac
    return PortfolioForecast(
        forecasts=forecasts,
        original_contract_value=total("original_contract_value"),
        revised_contract_value=revised,
        actual_cost_to_date=ac,
        estimate_to_complete=etc,
        estimate_at_completion=eac,
        variance_at_completion=vac,
        profit_margin=quantize_percent(safe_divide(vac, revised) * HUNDRED),
        percent_complete=quantize_percent(min(HUNDRED, safe_divide(ac, eac) * HUNDRED)),
    )


class PortfolioForecastService:
    """Forecasts several projects with one ``ProjectForecastService``."""

    def __init__(self, forecast_service: ProjectForecastService):
        self._forecast_service = forecast_service

    def get_portfolio_forecast(
        self,
        project_ids: Iterable[UUID],
        *,
        as_of: date | None = None,
        correlation_id: str | None = None,
    ) -> PortfolioForecast:
        """Forecast every project, then sum.  Logs share one correlation id."""
        project_ids = list(project_ids)
        with LogContext.bind(correlation_id=correlation_id or str(uuid4())):
            logger.info(
                "portfolio_forecast_started", extra={"project_count": len(project_ids)}
            )

            forecasts = [
                self._forecast_service.get_forecast(project_id, as_of=as_of)
                for project_id in project_ids
            ]
            portfolio = summarize_portfolio(forecasts)

            logger.info(
                "portfolio_forecast_completed",
                extra={
                    "project_count": portfolio.project_count,
                    "estimate_at_completion": str(portfolio.estimate_at_completion),
                    "profit_margin": str(portfolio.profit_margin),
                },
            )
            return portfolio
