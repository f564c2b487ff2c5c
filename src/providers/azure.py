"""
Azure Cost Management provider implementation.

Queries daily costs grouped by resource group and service, and the monthly
forecast, through the Cost Management REST API.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any

import requests
from azure.core.exceptions import ClientAuthenticationError
from azure.identity import (
    AzureCliCredential,
    ClientSecretCredential,
    DefaultAzureCredential,
    ManagedIdentityCredential,
)

from ..cost.periods import current_month_range
from ..errors import ConfigurationError
from .base import CostProvider, CostQueryResult, ProviderCostRow, ProviderFactory

logger = logging.getLogger(__name__)

MANAGEMENT_URL = "https://management.azure.com"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"
API_VERSION = "2023-03-01"

COST_AGGREGATION = {"totalCost": {"name": "Cost", "function": "Sum"}}


class AzureCostProvider(CostProvider):
    """Azure Cost Management provider implementation."""

    def __init__(self, config: dict[str, Any], credential=None, session: requests.Session | None = None):
        """
        Initialize the provider.

        Args:
            config: Azure settings (subscription_id, auth_method, service principal fields)
            credential: azure-identity credential; built from auth_method when omitted
            session: HTTP session to reuse
        """
        super().__init__(config)
        self.timeout = config.get("timeout", 60)
        self.session = session or requests.Session()
        self._credential = credential

    def _get_provider_name(self) -> str:
        return "azure"

    @property
    def account_id(self) -> str:
        return str(self.require("subscription_id"))

    def _get_credential(self):
        if self._credential is not None:
            return self._credential

        method = self.config.get("auth_method", "default")
        if method == "service_principal":
            self._credential = ClientSecretCredential(
                tenant_id=self.require("tenant_id"),
                client_id=self.require("client_id"),
                client_secret=self.require("client_secret"),
            )
        elif method == "cli":
            self._credential = AzureCliCredential()
        elif method == "managed_identity":
            self._credential = ManagedIdentityCredential()
        elif method == "default":
            self._credential = DefaultAzureCredential()
        else:
            raise ConfigurationError(f"Unknown Azure auth_method '{method}'")

        logger.debug(f"Azure: Using {method} credential")
        return self._credential

    def _headers(self) -> dict[str, str]:
        try:
            token = self._get_credential().get_token(MANAGEMENT_SCOPE).token
        except ClientAuthenticationError as e:
            raise ConfigurationError(f"Azure authentication failed: {e}") from e
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    def query_costs(self, start_date: date, end_date: date) -> CostQueryResult:
        start_date, end_date = self.validate_date_range(start_date, end_date)
        last_day = end_date - timedelta(days=1)
        body = {
            "type": "ActualCost",
            "timeframe": "Custom",
            "timePeriod": {
                "from": f"{start_date.isoformat()}T00:00:00Z",
                "to": f"{last_day.isoformat()}T23:59:59Z",
            },
            "dataset": {
                "granularity": "Daily",
                "aggregation": COST_AGGREGATION,
                "grouping": [
                    {"type": "Dimension", "name": "ResourceGroupName"},
                    {"type": "Dimension", "name": "ServiceName"},
                ],
            },
        }

        rows = []
        for columns, page_rows in self._post_pages("query", body):
            rows.extend(self._parse_rows(columns, page_rows))

        total_cost = sum(row.cost for row in rows)
        currency = rows[0].currency if rows else "USD"

        logger.info(f"Azure: Retrieved {len(rows)} cost rows for {start_date} to {last_day}")
        return CostQueryResult(rows=rows, total_cost=total_cost, currency=currency)

    def get_forecast(self) -> float:
        _, next_month_start = current_month_range()
        following_month_start = (next_month_start + timedelta(days=32)).replace(day=1)
        body = {
            "type": "ActualCost",
            "timeframe": "Custom",
            "timePeriod": {
                "from": f"{next_month_start.isoformat()}T00:00:00Z",
                "to": f"{(following_month_start - timedelta(days=1)).isoformat()}T23:59:59Z",
            },
            "dataset": {"granularity": "Monthly", "aggregation": COST_AGGREGATION},
            "includeActualCost": False,
            "includeFreshPartialCost": False,
        }

        total = 0.0
        found = False
        for columns, page_rows in self._post_pages("forecast", body):
            try:
                cost_index = self._cost_column(columns)
                for row in page_rows:
                    total += float(row[cost_index])
                    found = True
            except (ValueError, TypeError, IndexError) as e:
                raise self.transport_error(f"Unexpected Azure forecast response: {e}") from e

        if not found:
            raise self.transport_error("Azure forecast response contained no rows")
        return total

    def _post_pages(self, operation: str, body: dict[str, Any]):
        """POST a Cost Management request and yield (columns, rows) per page."""
        url = f"{MANAGEMENT_URL}/subscriptions/{self.account_id}/providers/Microsoft.CostManagement/{operation}"
        params = {"api-version": API_VERSION}

        while url:
            try:
                response = self.session.post(
                    url, params=params, json=body, headers=self._headers(), timeout=self.timeout
                )
            except requests.RequestException as e:
                raise self.transport_error(f"Azure Cost Management {operation} request failed: {e}") from e

            if response.status_code != 200:
                raise self.transport_error(
                    f"Azure Cost Management {operation} failed with status "
                    f"{response.status_code}: {response.text}",
                    status_code=response.status_code,
                )

            try:
                properties = response.json().get("properties", {})
                columns = [column.get("name", "") for column in properties.get("columns", [])]
            except (ValueError, AttributeError) as e:
                raise self.transport_error(f"Azure Cost Management {operation} returned a malformed body: {e}") from e
            yield columns, properties.get("rows", [])

            # nextLink already carries the api-version
            url = properties.get("nextLink")
            params = None

    @staticmethod
    def _cost_column(columns: list[str]) -> int:
        lowered = [name.lower() for name in columns]
        for candidate in ("cost", "pretaxcost", "costusd"):
            if candidate in lowered:
                return lowered.index(candidate)
        raise ValueError(f"No cost column in Azure response columns {columns}")

    @staticmethod
    def _parse_usage_date(value: Any) -> date:
        """Usage dates arrive as 20240115 numbers or ISO strings."""
        text = str(value)
        if text.isdigit():
            return datetime.strptime(text, "%Y%m%d").date()
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()

    def _parse_rows(self, columns: list[str], page_rows: list[list[Any]]) -> list[ProviderCostRow]:
        lowered = [name.lower() for name in columns]
        try:
            cost_index = self._cost_column(columns)
            date_index = lowered.index("usagedate")
        except ValueError as e:
            raise self.transport_error(f"Unexpected Azure response layout: {e}") from e

        group_index = lowered.index("resourcegroupname") if "resourcegroupname" in lowered else None
        service_index = lowered.index("servicename") if "servicename" in lowered else None
        currency_index = lowered.index("currency") if "currency" in lowered else None

        rows = []
        for row in page_rows:
            try:
                rows.append(
                    ProviderCostRow(
                        date=self._parse_usage_date(row[date_index]),
                        service_name=self.normalize_service_name(
                            str(row[service_index]) if service_index is not None else "Unknown"
                        ),
                        resource_group=row[group_index] if group_index is not None else None,
                        cost=float(row[cost_index]),
                        currency=row[currency_index] if currency_index is not None else "USD",
                    )
                )
            except (ValueError, TypeError, IndexError) as e:
                raise self.transport_error(f"Unexpected Azure cost row {row}: {e}") from e
        return rows


# Register the Azure provider with the factory
ProviderFactory.register_provider("azure", AzureCostProvider)
