"""Builds period cost summaries from the cost record store."""

import logging

from .models import MIXED_CURRENCY, CostDimension, CostFilter, CostSummary

logger = logging.getLogger(__name__)


class SummaryAggregator:
    """Composes CostSummary objects from store aggregates."""

    def __init__(self, store, default_currency: str = "USD"):
        self.store = store
        self.default_currency = default_currency

    def build_summary(self, cost_filter: CostFilter | None = None) -> CostSummary:
        """
        Summarize costs for a filter.

        The total is the sum of the per-service totals. Amounts in different
        currencies are summed together; such summaries carry the ``MIXED``
        currency label.

        Args:
            cost_filter: Date range and optional service restriction

        Returns:
            CostSummary with per-service and per-resource-group breakdowns
        """
        cost_filter = cost_filter or CostFilter()
        start, end = cost_filter.start_date, cost_filter.end_date

        by_service = self.store.aggregate_by(
            CostDimension.SERVICE, start, end, service_name=cost_filter.service_name
        )
        by_resource_group = self.store.aggregate_by(
            CostDimension.RESOURCE_GROUP, start, end, service_name=cost_filter.service_name
        )
        total_cost = sum(by_service.values())

        return CostSummary(
            period=cost_filter.period,
            total_cost=total_cost,
            currency=self._resolve_currency(cost_filter),
            by_service=by_service,
            by_resource_group=by_resource_group,
        )

    def _resolve_currency(self, cost_filter: CostFilter) -> str:
        currencies = self.store.currencies(
            cost_filter.start_date, cost_filter.end_date, service_name=cost_filter.service_name
        )
        if not currencies:
            return self.default_currency
        if len(currencies) > 1:
            logger.warning(
                f"Summing costs across currencies {', '.join(currencies)} for {cost_filter.period}; "
                "no conversion is applied"
            )
            return MIXED_CURRENCY
        return currencies[0]
