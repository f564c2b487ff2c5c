"""
AWS Cost Explorer provider implementation.

Reads daily per-service costs and the monthly spend forecast through the
Cost Explorer API.
"""

import logging
from datetime import date, timedelta
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound

from ..cost.periods import current_month_range
from ..errors import ConfigurationError
from .base import CostProvider, CostQueryResult, ProviderCostRow, ProviderFactory

logger = logging.getLogger(__name__)


class AWSCostProvider(CostProvider):
    """AWS Cost Explorer provider implementation."""

    def __init__(self, config: dict[str, Any], client=None):
        """
        Initialize the provider.

        Args:
            config: AWS settings (account_id, credentials or profile, metric)
            client: Pre-built Cost Explorer client; created lazily when omitted
        """
        super().__init__(config)
        self.metric = config.get("metric", "UnblendedCost")
        self._client = client

    def _get_provider_name(self) -> str:
        return "aws"

    @property
    def account_id(self) -> str:
        return str(self.require("account_id"))

    @property
    def client(self):
        """Cost Explorer client, created on first use."""
        if self._client is None:
            session = boto3.session.Session(
                aws_access_key_id=self.config.get("access_key_id"),
                aws_secret_access_key=self.config.get("secret_access_key"),
                aws_session_token=self.config.get("session_token"),
                profile_name=self.config.get("profile"),
            )
            # Cost Explorer is only available in us-east-1
            self._client = session.client("ce", config=Config(region_name="us-east-1"))
        return self._client

    def query_costs(self, start_date: date, end_date: date) -> CostQueryResult:
        start_date, end_date = self.validate_date_range(start_date, end_date)
        params = {
            "TimePeriod": {"Start": start_date.isoformat(), "End": end_date.isoformat()},
            "Granularity": "DAILY",
            "Metrics": [self.metric],
            "GroupBy": [{"Type": "DIMENSION", "Key": "SERVICE"}],
        }

        results = []
        while True:
            response = self._call("get_cost_and_usage", **params)
            results.extend(response.get("ResultsByTime", []))
            next_token = response.get("NextPageToken")
            if not next_token:
                break
            params["NextPageToken"] = next_token

        rows = self._parse_results(results)
        total_cost = sum(row.cost for row in rows)
        currency = rows[0].currency if rows else "USD"

        logger.info(f"AWS: Retrieved {len(rows)} cost rows for {start_date} to {end_date}")
        return CostQueryResult(rows=rows, total_cost=total_cost, currency=currency)

    def get_forecast(self) -> float:
        # Forecast the whole of next month
        _, next_month_start = current_month_range()
        following_month_start = (next_month_start + timedelta(days=32)).replace(day=1)

        response = self._call(
            "get_cost_forecast",
            TimePeriod={
                "Start": next_month_start.isoformat(),
                "End": following_month_start.isoformat(),
            },
            Metric="UNBLENDED_COST",
            Granularity="MONTHLY",
        )

        amount = response.get("Total", {}).get("Amount")
        if amount is None:
            raise self.transport_error("AWS forecast response contained no total")
        try:
            return float(amount)
        except (TypeError, ValueError) as e:
            raise self.transport_error(f"AWS forecast total {amount!r} is not a number") from e

    def _extract_cost_from_metrics(self, metrics_data: dict[str, Any]) -> tuple[float, str]:
        """Extract cost amount and currency from AWS metrics data."""
        metric_data = metrics_data.get(self.metric)
        if metric_data is None and metrics_data:
            # Fallback to first available metric
            metric_data = next(iter(metrics_data.values()))
        if not metric_data:
            return 0.0, "USD"
        try:
            return float(metric_data.get("Amount", 0)), metric_data.get("Unit", "USD")
        except (TypeError, ValueError) as e:
            raise self.transport_error(f"AWS cost amount {metric_data.get('Amount')!r} is not a number") from e

    def _parse_results(self, results: list[dict[str, Any]]) -> list[ProviderCostRow]:
        """Parse Cost Explorer ResultsByTime into provider rows."""
        rows = []
        for result in results:
            period_start = date.fromisoformat(result["TimePeriod"]["Start"])
            for group in result.get("Groups", []):
                keys = group.get("Keys", [])
                service_name = keys[0] if keys else "Unknown"
                amount, currency = self._extract_cost_from_metrics(group.get("Metrics", {}))
                if amount == 0:
                    continue
                rows.append(
                    ProviderCostRow(
                        date=period_start,
                        service_name=self.normalize_service_name(service_name),
                        cost=amount,
                        currency=currency,
                    )
                )
        return rows

    def _call(self, operation: str, **params) -> dict[str, Any]:
        """Invoke a Cost Explorer operation, translating SDK errors."""
        try:
            return getattr(self.client, operation)(**params)
        except (NoCredentialsError, ProfileNotFound) as e:
            raise ConfigurationError(f"AWS credentials not configured: {e}") from e
        except ClientError as e:
            error = e.response.get("Error", {})
            raise self.transport_error(
                f"AWS Cost Explorer {operation} failed ({error.get('Code')}): {error.get('Message')}",
                status_code=e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
            ) from e
        except BotoCoreError as e:
            raise self.transport_error(f"AWS Cost Explorer {operation} failed: {e}") from e


# Register the AWS provider with the factory
ProviderFactory.register_provider("aws", AWSCostProvider)
