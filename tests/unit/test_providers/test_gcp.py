"""Tests for the GCP billing export provider."""

from datetime import date
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import Forbidden

from src.errors import ConfigurationError, TransportError
from src.providers.gcp import GCPCostProvider

pytestmark = pytest.mark.gcp

GCP_CONFIG = {
    "project_id": "test-project",
    "billing_account_id": "0123AB-45CD67-89EF01",
    "bigquery_billing_dataset": "billing",
}


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def provider(client) -> GCPCostProvider:
    return GCPCostProvider(GCP_CONFIG, client=client)


class TestGCPCostProvider:
    """Test cases for GCPCostProvider."""

    def test_table_name(self, provider):
        assert provider.table_name == "test-project.billing.gcp_billing_export_v1_0123AB_45CD67_89EF01"

    def test_query_costs(self, provider, client):
        client.query.return_value.result.return_value = [
            {
                "usage_date": date(2024, 1, 1),
                "service_name": "Compute Engine",
                "project_id": "test-project",
                "currency": "USD",
                "total_cost": 85.25,
            },
            {
                "usage_date": date(2024, 1, 1),
                "service_name": "Cloud Storage",
                "project_id": "test-project",
                "currency": "USD",
                "total_cost": 0.0,
            },
        ]

        result = provider.query_costs(date(2024, 1, 1), date(2024, 1, 2))

        assert len(result.rows) == 1
        row = result.rows[0]
        assert (row.date, row.service_name, row.resource_group, row.cost) == (
            date(2024, 1, 1),
            "Compute Engine",
            "test-project",
            85.25,
        )

        (query,) = client.query.call_args.args
        assert "`test-project.billing.gcp_billing_export_v1_0123AB_45CD67_89EF01`" in query
        parameters = client.query.call_args.kwargs["job_config"].query_parameters
        assert [(p.name, str(p.value)) for p in parameters] == [
            ("start_date", "2024-01-01"),
            ("end_date", "2024-01-02"),
        ]

    def test_api_error_becomes_transport_error(self, provider, client):
        client.query.side_effect = Forbidden("billing export access denied")

        with pytest.raises(TransportError) as exc_info:
            provider.query_costs(date(2024, 1, 1), date(2024, 1, 2))

        assert exc_info.value.status_code == 403
        assert exc_info.value.provider == "gcp"

    def test_forecast_not_supported(self, provider):
        with pytest.raises(TransportError, match="does not provide cost forecasts"):
            provider.get_forecast()

    def test_missing_dataset(self, client):
        provider = GCPCostProvider({"project_id": "test-project"}, client=client)

        with pytest.raises(ConfigurationError, match="bigquery_billing_dataset"):
            provider.query_costs(date(2024, 1, 1), date(2024, 1, 2))
