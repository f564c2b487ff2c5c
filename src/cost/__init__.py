"""Cost aggregation, trend analysis and forecasting."""

from .models import (
    Alert,
    Confidence,
    CostDimension,
    CostFilter,
    CostRecord,
    CostSummary,
    Forecast,
    MonthlyCost,
    Report,
    ServiceCost,
    TrendAnalysis,
    TrendDirection,
)
