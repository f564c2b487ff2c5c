"""Budget alert evaluation and free-tier usage classification."""

from .alerts import AlertCheckResult, AlertState, AlertStatus, evaluate_alerts
from .free_tier import (
    BudgetPreset,
    FreeTierConfig,
    ServiceLimit,
    ServiceUsage,
    UsageStatus,
    check_service_usage,
    lookup_limit,
)
