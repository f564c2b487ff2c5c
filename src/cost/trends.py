"""
Trend analysis and spend forecasting.

Fits an ordinary least squares line over monthly totals to project the next
month, classifies month-over-month change, and resolves a forecast by falling
back from local regression to the provider's own forecast.
"""

import logging
from collections.abc import Sequence

from ..errors import ConfigurationError, CostMonitorError, ForecastUnavailableError, TransportError
from .models import Confidence, Forecast, MonthlyCost, TrendAnalysis, TrendDirection

logger = logging.getLogger(__name__)

# Percent change beyond which a month-over-month move counts as a trend
TREND_THRESHOLD_PERCENT = 5.0
DEFAULT_LOOKBACK_MONTHS = 6


def calculate_projection(values: Sequence[float]) -> float:
    """
    Project the next value with an ordinary least squares fit.

    Values are indexed ``x = 0..n-1`` in the order given (most recent first
    for monthly totals) and the fitted line is evaluated at ``x = n``.

    Args:
        values: Observed totals

    Returns:
        Projected value, or 0 when fewer than two points are available
    """
    n = len(values)
    if n < 2:
        return 0.0

    sum_x = sum_y = sum_xy = sum_x2 = 0.0
    for i, y in enumerate(values):
        x = float(i)
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_x2 += x * x

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n

    return slope * n + intercept


def confidence_for(sample_count: int) -> Confidence:
    """Map the number of monthly data points to a forecast confidence."""
    if sample_count >= 6:
        return Confidence.HIGH
    if sample_count >= 4:
        return Confidence.MEDIUM
    return Confidence.LOW


def classify_trend(change_percent: float) -> TrendDirection:
    """Classify a percent change; exactly +/-5% counts as stable."""
    if change_percent > TREND_THRESHOLD_PERCENT:
        return TrendDirection.INCREASING
    if change_percent < -TREND_THRESHOLD_PERCENT:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def analyze_trend(monthly_costs: Sequence[MonthlyCost]) -> TrendAnalysis:
    """
    Build a trend analysis from monthly totals ordered newest first.

    Args:
        monthly_costs: Monthly totals, most recent month first

    Returns:
        TrendAnalysis; ``no_data`` with all zeros when there is no history
    """
    if not monthly_costs:
        return TrendAnalysis(trend=TrendDirection.NO_DATA)

    totals = [m.total_cost for m in monthly_costs]
    current_month = totals[0]
    previous_month = totals[1] if len(totals) > 1 else 0.0

    change_percent = 0.0
    if previous_month > 0:
        change_percent = (current_month - previous_month) / previous_month * 100

    average_monthly = sum(totals) / len(totals)
    projection = max(calculate_projection(totals), 0.0)

    return TrendAnalysis(
        current_month=round(current_month, 2),
        previous_month=round(previous_month, 2),
        change_percent=round(change_percent, 2),
        trend=classify_trend(change_percent),
        average_monthly=round(average_monthly, 2),
        projection=round(projection, 2),
    )


def build_local_forecast(monthly_costs: Sequence[MonthlyCost]) -> Forecast:
    """Forecast next month's spend from monthly totals ordered newest first."""
    if len(monthly_costs) < 2:
        return Forecast(next_month=0.0, confidence=Confidence.LOW)

    projection = calculate_projection([m.total_cost for m in monthly_costs])
    if projection < 0:
        projection = 0.0

    return Forecast(
        next_month=round(projection, 2),
        confidence=confidence_for(len(monthly_costs)),
    )


class ForecastEngine:
    """Resolves forecasts and trends from stored monthly totals."""

    def __init__(self, store, provider=None, lookback_months: int = DEFAULT_LOOKBACK_MONTHS):
        """
        Initialize the engine.

        Args:
            store: CostStore supplying monthly totals
            provider: Optional CostProvider used as the remote forecast fallback
            lookback_months: Months of history to fit over
        """
        self.store = store
        self.provider = provider
        self.lookback_months = lookback_months

    def get_local_forecast(self) -> Forecast:
        """Forecast from stored history only."""
        monthly_costs = self.store.monthly_totals(self.lookback_months)
        return build_local_forecast(monthly_costs)

    def get_trend_analysis(self) -> TrendAnalysis:
        """Analyze the month-over-month trend of stored history."""
        monthly_costs = self.store.monthly_totals(self.lookback_months)
        return analyze_trend(monthly_costs)

    def get_forecast(self) -> Forecast:
        """
        Resolve the next-month forecast.

        A medium or high confidence local forecast is returned as is. A low
        confidence one triggers a single provider forecast call, reported at
        medium confidence; if that call fails the low confidence local value
        is returned instead.

        Raises:
            ForecastUnavailableError: If neither forecast could be produced
        """
        local_forecast = None
        local_error = None
        try:
            local_forecast = self.get_local_forecast()
        except CostMonitorError as e:
            logger.warning(f"Local forecast failed: {e}")
            local_error = e

        if local_forecast is not None and local_forecast.confidence != Confidence.LOW:
            return local_forecast

        try:
            estimate = self._get_remote_forecast()
        except (TransportError, ConfigurationError) as e:
            if local_forecast is not None:
                logger.info(f"Provider forecast unavailable, using low confidence local forecast: {e}")
                return local_forecast
            raise ForecastUnavailableError(
                f"Both local and provider forecast failed: {local_error}; {e}"
            ) from e

        logger.debug(f"Using provider forecast of {estimate:.2f}")
        return Forecast(next_month=estimate, confidence=Confidence.MEDIUM)

    def _get_remote_forecast(self) -> float:
        if self.provider is None:
            raise ConfigurationError("No cost provider configured for remote forecasts")
        return self.provider.get_forecast()
