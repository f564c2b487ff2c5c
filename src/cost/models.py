"""
Cost data models for cloud spend monitoring.

Defines the persisted entities (cost records, alerts) and the derived
summaries built over them. Every model serializes to a flat dictionary via
``to_dict`` for table, JSON and CSV presentation.
"""

import re
from datetime import date
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MIXED_CURRENCY = "MIXED"

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class Confidence(Enum):
    """Qualitative confidence of a forecast."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TrendDirection(Enum):
    """Month-over-month spend direction."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    NO_DATA = "no_data"


class CostDimension(Enum):
    """Dimensions cost records can be aggregated by."""

    SERVICE = "service"
    RESOURCE_GROUP = "resource_group"


class CostModel(BaseModel):
    """Base model with flat serialization."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return self.model_dump(mode="json", exclude_none=True)


class CostRecord(CostModel):
    """A single normalized billing line item.

    Records are immutable once written; the store assigns ``id`` on insert.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    subscription_id: str
    resource_group: str | None = None
    service_name: str
    cost: float
    currency: str = "USD"
    date: date

    @field_validator("subscription_id", "service_name")
    @classmethod
    def validate_required_names(cls, v: str) -> str:
        """Validate and normalize required identifiers."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Identifier cannot be empty")
        return stripped

    @field_validator("resource_group")
    @classmethod
    def validate_resource_group(cls, v: str | None) -> str | None:
        """Normalize blank resource groups to None."""
        if v is not None:
            stripped = v.strip()
            return stripped if stripped else None
        return v

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate and normalize currency code."""
        if not v or not v.strip():
            raise ValueError("Currency must be specified")
        return v.upper().strip()


class MonthlyCost(CostModel):
    """Costs summed into a calendar month bucket."""

    month: str
    total_cost: float
    currency: str

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        if not _MONTH_PATTERN.match(v):
            raise ValueError(f"Month must be formatted as YYYY-MM, got {v!r}")
        return v


class CostFilter(CostModel):
    """Date range and service filter for cost queries."""

    start_date: date | None = None
    end_date: date | None = None
    service_name: str | None = None

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError(f"Start date {self.start_date} must not be after end date {self.end_date}")
        return self

    @property
    def period(self) -> str:
        """Human-readable label for the filtered period."""
        start = self.start_date.isoformat() if self.start_date else "beginning"
        end = self.end_date.isoformat() if self.end_date else "now"
        return f"{start} to {end}"


class Forecast(CostModel):
    """Next-period spend estimate."""

    next_month: float
    confidence: Confidence


class TrendAnalysis(CostModel):
    """Month-over-month trend with a linear projection."""

    current_month: float = 0.0
    previous_month: float = 0.0
    change_percent: float = 0.0
    trend: TrendDirection = TrendDirection.NO_DATA
    average_monthly: float = 0.0
    projection: float = 0.0


class CostSummary(CostModel):
    """Aggregated costs for a period."""

    period: str
    total_cost: float
    currency: str
    by_service: dict[str, float] = Field(default_factory=dict)
    by_resource_group: dict[str, float] = Field(default_factory=dict)
    forecast: Forecast | None = None
    monthly_breakdown: list[MonthlyCost] | None = None
    trend: TrendAnalysis | None = None

    def top_services(self, limit: int | None = None) -> list["ServiceCost"]:
        """Services ordered by cost, highest first."""
        ranked = sorted(self.by_service.items(), key=lambda item: (-item[1], item[0]))
        if limit is not None:
            ranked = ranked[:limit]
        return [ServiceCost(service=service, cost=cost) for service, cost in ranked]


class ServiceCost(CostModel):
    service: str
    cost: float


class Report(CostModel):
    """Multi-month cost report."""

    generated_at: str
    period: str
    total_cost: float
    currency: str
    forecast: float = 0.0
    monthly_data: list[MonthlyCost] = Field(default_factory=list)
    top_services: list[ServiceCost] = Field(default_factory=list)


class Alert(CostModel):
    """User-defined budget alert."""

    id: int | None = None
    name: str
    threshold: float
    subscription_id: str = ""
    enabled: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate alert name."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("Alert name cannot be empty")
        if len(stripped) > 100:
            raise ValueError("Alert name must be 100 characters or less")
        return stripped

    @field_validator("threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Threshold value must be positive")
        return v
