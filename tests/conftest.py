"""
Pytest configuration and shared fixtures for cloud spend tests.

This module provides common fixtures and configurations used across
all test modules in the cost monitoring system.
"""

import os
import tempfile
from collections.abc import Callable, Generator
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.cost.models import CostRecord
from src.cost.periods import add_months
from src.providers.base import CostProvider, CostQueryResult, ProviderCostRow
from src.storage.sqlite import CostStore


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "aws: mark test as AWS-specific")
    config.addinivalue_line("markers", "azure: mark test as Azure-specific")
    config.addinivalue_line("markers", "gcp: mark test as GCP-specific")


# Temporary directory fixture
@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# Environment fixture
@pytest.fixture
def clean_env() -> Generator[dict[str, str], None, None]:
    """Provide a clean environment for testing."""
    original_env = os.environ.copy()
    for var in list(os.environ):
        if var.startswith("CLOUDSPEND"):
            os.environ.pop(var, None)

    yield os.environ

    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)


# Date helpers
@pytest.fixture
def months_ago() -> Callable[[int], date]:
    """First day of the month ``offset`` months before the current one."""

    def _months_ago(offset: int) -> date:
        return add_months(date.today().replace(day=1), -offset)

    return _months_ago


# Storage fixtures
@pytest.fixture
def store(temp_dir) -> Generator[CostStore, None, None]:
    """Open a CostStore on a temporary database file."""
    with CostStore(temp_dir / "costs.db") as cost_store:
        yield cost_store


@pytest.fixture
def sample_records(months_ago) -> list[CostRecord]:
    """Cost records spread over the current month."""
    this_month = months_ago(0)
    return [
        CostRecord(
            subscription_id="sub-123",
            resource_group="rg-web",
            service_name="Virtual Machines",
            cost=4.20,
            date=this_month,
        ),
        CostRecord(
            subscription_id="sub-123",
            resource_group="rg-web",
            service_name="Storage",
            cost=1.10,
            date=this_month,
        ),
        CostRecord(
            subscription_id="sub-123",
            resource_group="rg-data",
            service_name="Storage",
            cost=2.02,
            date=this_month,
        ),
    ]


@pytest.fixture
def seeded_store(store, sample_records) -> CostStore:
    """Store holding the sample records."""
    store.insert_batch(sample_records)
    return store


# Provider mock fixtures
@pytest.fixture
def provider_rows() -> list[ProviderCostRow]:
    """Rows returned by the mock provider."""
    today = date.today()
    return [
        ProviderCostRow(date=today, service_name="Virtual Machines", resource_group="rg-web", cost=3.0),
        ProviderCostRow(date=today, service_name="Functions", resource_group="rg-api", cost=0.5),
    ]


@pytest.fixture
def mock_provider(provider_rows) -> MagicMock:
    """Mock provider adapter for a single Azure subscription."""
    provider = MagicMock(spec=CostProvider)
    provider.provider_name = "azure"
    provider.account_id = "sub-123"
    provider.query_costs.return_value = CostQueryResult(
        rows=provider_rows, total_cost=sum(row.cost for row in provider_rows), currency="USD"
    )
    provider.get_forecast.return_value = 250.0
    return provider
