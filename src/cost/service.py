"""
Cost service facade.

Ties a provider adapter, the cost record store, the summary aggregator and the
forecast engine together behind the operations exposed to callers.
"""

import logging
from datetime import date, datetime, timedelta

from ..config.settings import CloudConfig, get_config
from ..errors import ConfigurationError, ForecastUnavailableError, PersistenceError
from ..monitoring.alerts import AlertCheckResult, evaluate_alerts
from ..monitoring.free_tier import FreeTierConfig, ServiceUsage, check_service_usage
from ..providers.base import CostProvider, ProviderFactory
from ..storage.sqlite import CostStore
from .aggregator import SummaryAggregator
from .models import Alert, CostFilter, CostRecord, CostSummary, Forecast, Report, TrendAnalysis
from .periods import current_month_range, last_n_months
from .trends import DEFAULT_LOOKBACK_MONTHS, ForecastEngine

logger = logging.getLogger(__name__)

REPORT_MONTHS = 12


class CostService:
    """Ingests provider costs and answers summary, forecast and alert queries."""

    def __init__(
        self,
        store: CostStore,
        provider: CostProvider | None = None,
        default_currency: str = "USD",
        lookback_months: int = DEFAULT_LOOKBACK_MONTHS,
        free_tier: FreeTierConfig | None = None,
    ):
        """
        Initialize the service.

        Args:
            store: Open cost record store
            provider: Provider adapter for ingestion and remote forecasts
            default_currency: Currency reported for periods without costs
            lookback_months: Months of history used by forecasts and trends
            free_tier: Free-tier allowances; built-in defaults when omitted
        """
        self.store = store
        self.provider = provider
        self.aggregator = SummaryAggregator(store, default_currency=default_currency)
        self.forecast_engine = ForecastEngine(store, provider=provider, lookback_months=lookback_months)
        self.free_tier = free_tier or FreeTierConfig.defaults()

    def __enter__(self) -> "CostService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self):
        """Close the underlying store."""
        self.store.close()

    def _require_provider(self) -> CostProvider:
        if self.provider is None:
            raise ConfigurationError("No cost provider configured")
        return self.provider

    # Ingestion

    def fetch_and_store(self, start_date: date, end_date: date) -> int:
        """
        Fetch costs from the provider and append them to the store.

        Fetching a range twice stores its rows twice; a warning is logged when
        the range already holds rows for the account.

        Args:
            start_date: First day to fetch
            end_date: Day after the last day to fetch

        Returns:
            Number of records stored

        Raises:
            ConfigurationError: If no provider or account is configured
            ValueError: If the range is empty or starts in the future
            TransportError: If the provider call fails
            PersistenceError: If the batch cannot be stored
        """
        provider = self._require_provider()
        account_id = provider.account_id

        existing = self.store.count_records(start_date, end_date - timedelta(days=1), account_id)
        if existing:
            logger.warning(
                f"{existing} cost records already stored for {account_id} between "
                f"{start_date} and {end_date}; fetched rows will be appended"
            )

        result = provider.query_costs(start_date, end_date)
        records = [
            CostRecord(
                subscription_id=account_id,
                resource_group=row.resource_group,
                service_name=row.service_name,
                cost=row.cost,
                currency=row.currency,
                date=row.date,
            )
            for row in result.rows
        ]

        stored = self.store.insert_batch(records)
        logger.info(
            f"Stored {stored} {provider.provider_name.upper()} cost records for {start_date} to {end_date}"
        )
        return stored

    # Summaries

    def get_cost_summary(self, cost_filter: CostFilter | None = None) -> CostSummary:
        """Summarize stored costs for a filter."""
        return self.aggregator.build_summary(cost_filter)

    def get_current_costs(self) -> CostSummary:
        """
        Refresh and summarize the current month.

        The forecast is attached when one can be produced.
        """
        start_date, next_month_start = current_month_range()
        self.fetch_and_store(start_date, next_month_start)

        summary = self.get_cost_summary(
            CostFilter(start_date=start_date, end_date=next_month_start - timedelta(days=1))
        )
        try:
            summary.forecast = self.get_forecast()
        except ForecastUnavailableError as e:
            logger.warning(f"Current cost summary has no forecast: {e}")
        return summary

    def get_cost_history(self, months: int) -> CostSummary:
        """Summarize the last ``months`` months with a monthly breakdown."""
        start_date, end_date = last_n_months(months)
        summary = self.get_cost_summary(CostFilter(start_date=start_date, end_date=end_date))

        monthly_costs = self.store.monthly_totals(REPORT_MONTHS)
        if monthly_costs:
            summary.monthly_breakdown = monthly_costs
        return summary

    # Forecasts

    def get_forecast(self) -> Forecast:
        return self.forecast_engine.get_forecast()

    def get_trend_analysis(self) -> TrendAnalysis:
        return self.forecast_engine.get_trend_analysis()

    def generate_report(self) -> Report:
        """Build a report over the last twelve months of stored costs."""
        monthly_costs = self.store.monthly_totals(REPORT_MONTHS)
        summary = self.get_cost_summary(CostFilter())

        forecast = 0.0
        try:
            forecast = self.forecast_engine.get_local_forecast().next_month
        except PersistenceError as e:
            logger.warning(f"Report generated without forecast: {e}")

        period = f"Last {REPORT_MONTHS} months"
        if monthly_costs:
            period = f"{monthly_costs[-1].month} to {monthly_costs[0].month}"

        return Report(
            generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            period=period,
            total_cost=summary.total_cost,
            currency=summary.currency,
            forecast=forecast,
            monthly_data=monthly_costs,
            top_services=summary.top_services(),
        )

    # Alerts

    def list_alerts(self) -> list[Alert]:
        return self.store.list_alerts()

    def create_alert(self, name: str, threshold: float) -> Alert:
        """
        Create a budget alert.

        Raises:
            ValueError: If the name or threshold is invalid, or the name is taken
        """
        alert = Alert(name=name, threshold=threshold, subscription_id=self._subscription_id())
        if self.store.get_alert(alert.name) is not None:
            raise ValueError(f"Alert '{alert.name}' already exists")
        return self.store.save_alert(alert)

    def delete_alert(self, name: str) -> int:
        """Delete alerts by name, returning how many were removed."""
        deleted = self.store.delete_alert(name)
        if not deleted:
            logger.warning(f"No alert named '{name}' to delete")
        return deleted

    def alert_status(self, cost_filter: CostFilter | None = None) -> AlertCheckResult:
        """
        Evaluate every alert against the filtered spend total.

        Defaults to the current month.
        """
        if cost_filter is None:
            start_date, next_month_start = current_month_range()
            cost_filter = CostFilter(start_date=start_date, end_date=next_month_start - timedelta(days=1))

        summary = self.get_cost_summary(cost_filter)
        return evaluate_alerts(summary.total_cost, self.list_alerts())

    def check_alerts(self, cost_filter: CostFilter | None = None) -> list[str]:
        """Names of the alerts triggered by the filtered spend total."""
        return self.alert_status(cost_filter).triggered

    # Free tier

    def check_free_tier(self, service_name: str, usage: float) -> ServiceUsage:
        """Classify a service's usage against its free-tier allowance."""
        limit = self.free_tier.limit_for(service_name)
        if limit is None:
            logger.debug(f"No free-tier allowance known for '{service_name}'")
        return check_service_usage(usage, limit, service_name=service_name)

    def _subscription_id(self) -> str:
        if self.provider is None:
            return ""
        try:
            return self.provider.account_id
        except ConfigurationError:
            logger.debug("Provider account is not configured; alert is not scoped to an account")
            return ""


def build_service(config: CloudConfig | None = None) -> CostService:
    """
    Construct a CostService from configuration.

    Args:
        config: CloudConfig; the global configuration when omitted

    Returns:
        CostService with an open store. Close it when done.
    """
    config = config or get_config()
    provider_name = config.default_provider
    provider = ProviderFactory.create_provider(provider_name, config.get_provider_config(provider_name))

    store = CostStore(config.database_path, timeout=config.database_timeout).open()
    logger.info(f"Using {provider_name.upper()} provider with database {config.database_path}")

    return CostService(
        store,
        provider=provider,
        default_currency=config.currency,
        lookback_months=config.lookback_months,
        free_tier=FreeTierConfig.from_settings(config.free_tier),
    )
