"""Read-only selectors for forecast inputs."""

from forecast_kernel.selectors.base import BaseSelector
from forecast_kernel.selectors.forecast_selector import ForecastInputSelector

__all__ = ["BaseSelector", "ForecastInputSelector"]
