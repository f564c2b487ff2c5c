"""
Budget alert evaluation.

Compares a spend total against the configured budget alerts and reports which
of them have been reached.
"""

import logging
from collections.abc import Iterable
from enum import Enum

from pydantic import Field

from ..cost.models import Alert, CostModel

logger = logging.getLogger(__name__)


class AlertState(Enum):
    """Outcome of evaluating one alert."""

    OK = "ok"
    TRIGGERED = "triggered"


class AlertStatus(CostModel):
    """Evaluation of a single alert against a spend total."""

    name: str
    threshold: float
    current_cost: float
    percent: float
    status: AlertState

    @property
    def triggered(self) -> bool:
        return self.status == AlertState.TRIGGERED


class AlertCheckResult(CostModel):
    """Evaluation of every enabled alert against one spend total."""

    current_cost: float
    statuses: list[AlertStatus] = Field(default_factory=list)
    triggered: list[str] = Field(default_factory=list)


def evaluate_alerts(total: float, alerts: Iterable[Alert]) -> AlertCheckResult:
    """
    Evaluate budget alerts against a spend total.

    Disabled alerts are skipped. An alert triggers once the total reaches its
    threshold; triggered names keep the order the alerts were given in.

    Args:
        total: Spend total for the evaluated period
        alerts: Alerts to evaluate

    Returns:
        AlertCheckResult with one status per enabled alert
    """
    statuses = []
    triggered = []

    for alert in alerts:
        if not alert.enabled:
            continue

        reached = total >= alert.threshold
        statuses.append(
            AlertStatus(
                name=alert.name,
                threshold=alert.threshold,
                current_cost=total,
                percent=round(total / alert.threshold * 100, 2),
                status=AlertState.TRIGGERED if reached else AlertState.OK,
            )
        )
        if reached:
            triggered.append(alert.name)

    if triggered:
        logger.warning(f"Budget alerts triggered at {total:.2f}: {', '.join(triggered)}")
    else:
        logger.debug(f"No budget alerts triggered at {total:.2f}")

    return AlertCheckResult(current_cost=total, statuses=statuses, triggered=triggered)
