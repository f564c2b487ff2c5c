"""
Abstract base provider class for multi-cloud cost ingestion.

Defines the interface every cloud billing adapter implements. The cost
service depends only on this interface, never on a concrete adapter.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

# Common ISO 4217 currency codes for validation
KNOWN_CURRENCIES = {
    "USD",
    "EUR",
    "GBP",
    "JPY",
    "AUD",
    "CAD",
    "CHF",
    "CNY",
    "SEK",
    "NZD",
    "INR",
    "BRL",
}


class ProviderCostRow(BaseModel):
    """A raw cost row as returned by a provider adapter."""

    date: date
    service_name: str = "Unknown"
    resource_group: str | None = None
    cost: float
    currency: str = "USD"

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Validate and normalize currency code."""
        if not v or not v.strip():
            raise ValueError("Currency must be specified")

        normalized = v.upper().strip()
        if normalized not in KNOWN_CURRENCIES:
            # Allow any code but warn about unknown currencies
            logger.warning(f"Unknown currency code: {normalized}")

        return normalized

    @field_validator("service_name")
    @classmethod
    def validate_service_name(cls, v: str) -> str:
        stripped = v.strip()
        return stripped if stripped else "Unknown"


class CostQueryResult(BaseModel):
    """Rows returned by a provider for a date range."""

    rows: list[ProviderCostRow] = Field(default_factory=list)
    total_cost: float = 0.0
    currency: str = "USD"

    @model_validator(mode="after")
    def validate_total(self):
        """Warn when the reported total drifts from the row sum."""
        if self.rows:
            calculated_total = sum(row.cost for row in self.rows)
            tolerance = abs(self.total_cost) * 0.01
            if abs(calculated_total - self.total_cost) > max(tolerance, 0.01):
                logger.warning(
                    f"Reported total {self.total_cost:.2f} doesn't match sum of rows {calculated_total:.2f}"
                )
        return self


class CostProvider(ABC):
    """Abstract base class for cloud cost providers."""

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the cloud provider with configuration.

        Args:
            config: Provider-specific configuration dictionary
        """
        self.config = config
        self.provider_name = self._get_provider_name()

    @abstractmethod
    def _get_provider_name(self) -> str:
        """Return the provider name (aws, azure, gcp)."""
        pass

    @property
    @abstractmethod
    def account_id(self) -> str:
        """
        Identifier stored on every cost record from this provider.

        Raises:
            ConfigurationError: If the identifier is not configured
        """
        pass

    @abstractmethod
    def query_costs(self, start_date: date, end_date: date) -> CostQueryResult:
        """
        Retrieve daily costs for a date range.

        Args:
            start_date: First day to include
            end_date: Day after the last day to include

        Returns:
            CostQueryResult with one row per day and service

        Raises:
            ValueError: If the range is empty or starts in the future
            ConfigurationError: If required settings or credentials are missing
            TransportError: If the provider call fails
        """
        pass

    @abstractmethod
    def get_forecast(self) -> float:
        """
        Get the provider's own estimate of next month's spend.

        Raises:
            TransportError: If the provider call fails or no forecast exists
        """
        pass

    def normalize_service_name(self, service_name: str) -> str:
        """
        Normalize service names to a common format.

        Args:
            service_name: Original service name

        Returns:
            Normalized service name
        """
        return service_name.strip() or "Unknown"

    def validate_date_range(self, start_date: date, end_date: date) -> tuple[date, date]:
        """
        Validate a query date range.

        Raises:
            ValueError: If the range is empty or starts in the future
        """
        if isinstance(start_date, datetime):
            start_date = start_date.date()
        if isinstance(end_date, datetime):
            end_date = end_date.date()

        if start_date >= end_date:
            raise ValueError(f"Start date {start_date} must be before end date {end_date}")
        if start_date > date.today():
            raise ValueError("Start date cannot be in the future")

        return start_date, end_date

    def require(self, key: str) -> Any:
        """Fetch a required configuration value."""
        value = self.config.get(key)
        if value in (None, ""):
            raise ConfigurationError(f"{self.provider_name.upper()} {key} not configured")
        return value

    def transport_error(self, message: str, status_code: int | None = None) -> TransportError:
        """Build a TransportError tagged with this provider."""
        logger.error(f"{self.provider_name.upper()}: {message}")
        return TransportError(message, status_code=status_code, provider=self.provider_name)


class ProviderFactory:
    """Factory class for creating cloud provider instances."""

    _providers = {}

    @classmethod
    def register_provider(cls, name: str, provider_class: type):
        """Register a provider class with the factory."""
        cls._providers[name.lower()] = provider_class

    @classmethod
    def create_provider(cls, name: str, config: dict[str, Any], **kwargs) -> CostProvider:
        """
        Create a provider instance.

        Args:
            name: Provider name (aws, azure, gcp)
            config: Provider configuration
            **kwargs: Passed through to the provider constructor

        Returns:
            Provider instance

        Raises:
            ConfigurationError: If provider not found
        """
        name = name.lower()
        if name not in cls._providers:
            available = ", ".join(sorted(cls._providers))
            raise ConfigurationError(f"Unknown provider '{name}'. Available providers: {available}")

        provider_class = cls._providers[name]
        return provider_class(config, **kwargs)

    @classmethod
    def get_available_providers(cls) -> list[str]:
        """Get list of available provider names."""
        return sorted(cls._providers)
