"""
Free-tier usage classification.

Classifies a service's usage against its free-tier allowance as free, warning,
overage, or unknown when no allowance is configured.
"""

import logging
from enum import Enum
from typing import Any

from pydantic import Field, field_validator

from ..cost.models import CostModel

logger = logging.getLogger(__name__)


class UsageStatus(Enum):
    """Free-tier usage classification."""

    FREE = "free"
    WARNING = "warning"
    OVERAGE = "overage"
    UNKNOWN = "unknown"


class ServiceLimit(CostModel):
    """Free-tier allowance for one service."""

    description: str = ""
    limit: float
    unit: str = ""
    duration: str = ""
    warning_threshold: float = 0.8

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Free-tier limit must be positive")
        return v

    @field_validator("warning_threshold")
    @classmethod
    def validate_warning_threshold(cls, v: float) -> float:
        if not 0 <= v <= 1:
            raise ValueError("Warning threshold must be between 0 and 1")
        return v


class BudgetPreset(CostModel):
    """Named budget amount offered when creating alerts."""

    amount: float
    description: str = ""


class ServiceUsage(CostModel):
    """Usage of one service classified against its allowance."""

    service_name: str = ""
    used: float = 0.0
    limit: float = 0.0
    unit: str = ""
    status: UsageStatus
    percent_used: float | None = None


DEFAULT_SERVICES = {
    "virtual_machines": {
        "description": "B1s VM hours",
        "limit": 750,
        "unit": "hours",
        "duration": "12 months",
        "warning_threshold": 0.8,
    },
    "blob_storage": {
        "description": "Hot Blob Storage",
        "limit": 5,
        "unit": "GB",
        "duration": "always free",
        "warning_threshold": 0.8,
    },
    "functions": {
        "description": "Azure Functions",
        "limit": 1000000,
        "unit": "executions",
        "duration": "always free",
        "warning_threshold": 0.8,
    },
}

DEFAULT_BUDGETS = {
    "tiny": {"amount": 1, "description": "Strict budget"},
    "small": {"amount": 5, "description": "Small budget"},
    "medium": {"amount": 10, "description": "Medium budget"},
    "moderate": {"amount": 20, "description": "Higher budget"},
}

# Checked in order; the first matching keyword wins
SERVICE_KEYWORDS = [
    ("functions", ("functions", "lambda")),
    ("virtual_machines", ("virtual machines", "compute engine", "ec2", "elastic compute")),
    ("blob_storage", ("storage", "blob", "s3")),
]


class FreeTierConfig(CostModel):
    """Free-tier allowances and budget presets."""

    services: dict[str, ServiceLimit] = Field(default_factory=dict)
    budgets: dict[str, BudgetPreset] = Field(default_factory=dict)

    @classmethod
    def defaults(cls) -> "FreeTierConfig":
        return cls(services=DEFAULT_SERVICES, budgets=DEFAULT_BUDGETS)

    @classmethod
    def from_settings(cls, section: dict[str, Any] | None) -> "FreeTierConfig":
        """
        Build the configuration from the ``free_tier`` settings section.

        Missing services or budgets fall back to the built-in defaults.
        """
        if not section:
            logger.debug("No free_tier settings found, using built-in limits")
            return cls.defaults()

        return cls(
            services=section.get("services") or DEFAULT_SERVICES,
            budgets=section.get("budgets") or DEFAULT_BUDGETS,
        )

    def limit_for(self, service_name: str) -> ServiceLimit | None:
        """Find the allowance for a limit key or a provider service name."""
        if service_name in self.services:
            return self.services[service_name]
        key = lookup_limit(service_name)
        return self.services.get(key) if key else None


def lookup_limit(service_name: str) -> str | None:
    """
    Map a provider's reported service name to a free-tier limit key.

    The mapping is a keyword heuristic and only advisory.
    """
    lowered = service_name.lower()
    for key, keywords in SERVICE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return key
    return None


def check_service_usage(usage: float, limit: ServiceLimit | None, service_name: str = "") -> ServiceUsage:
    """
    Classify usage against a free-tier allowance.

    Args:
        usage: Amount used in the allowance's unit
        limit: Allowance, or None when the service has none configured
        service_name: Name reported back on the result

    Returns:
        ServiceUsage; ``unknown`` without a percentage when limit is None
    """
    if limit is None:
        return ServiceUsage(service_name=service_name, used=usage, status=UsageStatus.UNKNOWN)

    ratio = usage / limit.limit
    if ratio >= 1.0:
        status = UsageStatus.OVERAGE
    elif limit.warning_threshold > 0 and ratio >= limit.warning_threshold:
        status = UsageStatus.WARNING
    else:
        status = UsageStatus.FREE

    return ServiceUsage(
        service_name=service_name,
        used=usage,
        limit=limit.limit,
        unit=limit.unit,
        status=status,
        percent_used=ratio * 100,
    )
