"""
Google Cloud Platform (GCP) billing provider implementation.

Reads daily per-service costs from the Cloud Billing BigQuery export.
"""

import logging
from datetime import date, datetime
from typing import Any

from google.api_core.exceptions import GoogleAPICallError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import bigquery
from google.oauth2 import service_account

from ..errors import ConfigurationError
from .base import CostProvider, CostQueryResult, ProviderCostRow, ProviderFactory

logger = logging.getLogger(__name__)

BILLING_QUERY = """
    SELECT
        DATE(usage_start_time) AS usage_date,
        service.description AS service_name,
        project.id AS project_id,
        currency,
        SUM(cost) AS total_cost
    FROM `{table}`
    WHERE DATE(usage_start_time) >= @start_date
      AND DATE(usage_start_time) < @end_date
    GROUP BY usage_date, service_name, project_id, currency
    ORDER BY usage_date
"""


class GCPCostProvider(CostProvider):
    """GCP billing export provider implementation."""

    def __init__(self, config: dict[str, Any], client=None):
        """
        Initialize the provider.

        Args:
            config: GCP settings (project_id, billing_account_id, bigquery_billing_dataset)
            client: Pre-built BigQuery client; created lazily when omitted
        """
        super().__init__(config)
        self.bq_table = config.get("bigquery_billing_table", "gcp_billing_export_v1_")
        self._client = client

    def _get_provider_name(self) -> str:
        return "gcp"

    @property
    def account_id(self) -> str:
        return str(self.require("project_id"))

    @property
    def client(self):
        """BigQuery client, created on first use."""
        if self._client is None:
            credentials = None
            credentials_file = self.config.get("credentials_file")
            try:
                if credentials_file:
                    credentials = service_account.Credentials.from_service_account_file(credentials_file)
                self._client = bigquery.Client(project=self.account_id, credentials=credentials)
            except DefaultCredentialsError as e:
                raise ConfigurationError(f"GCP credentials not configured: {e}") from e
            except FileNotFoundError as e:
                raise ConfigurationError(f"GCP credentials file not found: {credentials_file}") from e
        return self._client

    @property
    def table_name(self) -> str:
        """Fully qualified billing export table."""
        dataset = self.require("bigquery_billing_dataset")
        billing_account = str(self.require("billing_account_id")).replace("-", "_")
        return f"{self.account_id}.{dataset}.{self.bq_table}{billing_account}"

    def query_costs(self, start_date: date, end_date: date) -> CostQueryResult:
        start_date, end_date = self.validate_date_range(start_date, end_date)
        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter("start_date", "DATE", start_date),
                bigquery.ScalarQueryParameter("end_date", "DATE", end_date),
            ]
        )
        query = BILLING_QUERY.format(table=self.table_name)

        try:
            results = self.client.query(query, job_config=job_config).result()
            rows = self._parse_results(results)
        except GoogleAPICallError as e:
            raise self.transport_error(
                f"BigQuery billing query failed: {e.message}", status_code=e.code
            ) from e

        total_cost = sum(row.cost for row in rows)
        currency = rows[0].currency if rows else "USD"

        logger.info(f"GCP: Retrieved {len(rows)} cost rows for {start_date} to {end_date}")
        return CostQueryResult(rows=rows, total_cost=total_cost, currency=currency)

    def get_forecast(self) -> float:
        # The billing export has no forecast; callers fall back to local history
        raise self.transport_error("GCP billing export does not provide cost forecasts")

    def _parse_results(self, results) -> list[ProviderCostRow]:
        rows = []
        for row in results:
            amount = float(row["total_cost"] or 0)
            if amount == 0:
                continue
            usage_date = row["usage_date"]
            if isinstance(usage_date, datetime):
                usage_date = usage_date.date()
            elif isinstance(usage_date, str):
                usage_date = date.fromisoformat(usage_date)
            rows.append(
                ProviderCostRow(
                    date=usage_date,
                    service_name=self.normalize_service_name(row["service_name"] or "Unknown"),
                    resource_group=row["project_id"],
                    cost=amount,
                    currency=row["currency"] or "USD",
                )
            )
        return rows


# Register the GCP provider with the factory
ProviderFactory.register_provider("gcp", GCPCostProvider)
