"""
forecast_services -- orchestration over the pure forecast engines.

``ProjectForecastService`` fetches one project's inputs concurrently and
reconciles them; ``PortfolioForecastService`` rolls several projects up.
Data access goes through a ``ForecastDataSource``.
"""

from forecast_services.forecast_service import (
    ALL_COMPONENTS,
    ForecastInputs,
    ProjectForecastService,
)
from forecast_services.portfolio import (
    PortfolioForecast,
    PortfolioForecastService,
    summarize_portfolio,
)
from forecast_services.sources import (
    ForecastDataSource,
    InMemoryForecastSource,
    SqlForecastSource,
)

__all__ = [
    "ALL_COMPONENTS",
    "ForecastInputs",
    "ProjectForecastService",
    "PortfolioForecast",
    "PortfolioForecastService",
    "summarize_portfolio",
    "ForecastDataSource",
    "InMemoryForecastSource",
    "SqlForecastSource",
]
