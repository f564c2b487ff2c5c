"""Tests for free-tier usage classification."""

import pytest
from pydantic import ValidationError

from src.monitoring.free_tier import (
    FreeTierConfig,
    ServiceLimit,
    UsageStatus,
    check_service_usage,
    lookup_limit,
)


@pytest.fixture
def vm_limit() -> ServiceLimit:
    return ServiceLimit(description="B1s VM hours", limit=750, unit="hours", warning_threshold=0.8)


class TestCheckServiceUsage:
    """Test cases for check_service_usage."""

    def test_overage(self, vm_limit):
        usage = check_service_usage(800, vm_limit, service_name="virtual_machines")

        assert usage.status == UsageStatus.OVERAGE
        assert usage.percent_used == pytest.approx(106.67, abs=0.01)
        assert usage.limit == 750
        assert usage.unit == "hours"
        assert usage.service_name == "virtual_machines"

    def test_exactly_at_limit_is_overage(self, vm_limit):
        assert check_service_usage(750, vm_limit).status == UsageStatus.OVERAGE

    def test_exactly_at_warning_threshold(self, vm_limit):
        usage = check_service_usage(600, vm_limit)

        assert usage.status == UsageStatus.WARNING
        assert usage.percent_used == pytest.approx(80.0)

    def test_below_warning_is_free(self, vm_limit):
        assert check_service_usage(100, vm_limit).status == UsageStatus.FREE

    def test_zero_warning_threshold_disables_warning(self):
        limit = ServiceLimit(limit=10, warning_threshold=0)

        assert check_service_usage(9.9, limit).status == UsageStatus.FREE

    def test_no_limit_is_unknown(self):
        usage = check_service_usage(42, None, service_name="Cosmos DB")

        assert usage.status == UsageStatus.UNKNOWN
        assert usage.percent_used is None
        assert "percent_used" not in usage.to_dict()


class TestServiceLimit:
    """Test cases for ServiceLimit validation."""

    def test_limit_must_be_positive(self):
        with pytest.raises(ValidationError, match="must be positive"):
            ServiceLimit(limit=0)

    def test_warning_threshold_range(self):
        with pytest.raises(ValidationError, match="between 0 and 1"):
            ServiceLimit(limit=10, warning_threshold=1.5)


class TestFreeTierConfig:
    """Test cases for FreeTierConfig."""

    def test_defaults(self):
        config = FreeTierConfig.defaults()

        assert config.services["virtual_machines"].limit == 750
        assert config.services["blob_storage"].unit == "GB"
        assert config.services["functions"].limit == 1000000
        assert {name: preset.amount for name, preset in config.budgets.items()} == {
            "tiny": 1,
            "small": 5,
            "medium": 10,
            "moderate": 20,
        }

    def test_from_empty_settings_uses_defaults(self):
        assert FreeTierConfig.from_settings({}) == FreeTierConfig.defaults()

    def test_from_settings(self):
        config = FreeTierConfig.from_settings(
            {"services": {"cosmos_db": {"description": "Cosmos DB RU/s", "limit": 1000, "unit": "RU/s"}}}
        )

        assert list(config.services) == ["cosmos_db"]
        assert config.services["cosmos_db"].warning_threshold == 0.8
        assert "tiny" in config.budgets

    def test_limit_for_key_or_service_name(self):
        config = FreeTierConfig.defaults()

        assert config.limit_for("blob_storage").limit == 5
        assert config.limit_for("Virtual Machines").limit == 750
        assert config.limit_for("Bandwidth") is None


class TestLookupLimit:
    """Test cases for the service name heuristic."""

    @pytest.mark.parametrize(
        "service_name,expected",
        [
            ("Virtual Machines", "virtual_machines"),
            ("Amazon Elastic Compute Cloud - Compute", "virtual_machines"),
            ("Compute Engine", "virtual_machines"),
            ("Storage", "blob_storage"),
            ("Amazon Simple Storage Service", "blob_storage"),
            ("Azure Functions", "functions"),
            ("AWS Lambda", "functions"),
            ("Bandwidth", None),
        ],
    )
    def test_lookup(self, service_name, expected):
        assert lookup_limit(service_name) == expected
