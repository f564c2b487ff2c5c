"""
Output formatting for cost data.

Renders summaries, reports, trends and alert checks as JSON, CSV or a plain
text table for terminals and downstream tools.
"""

import csv
import json
import logging
from collections.abc import Callable, Iterable
from enum import Enum
from io import StringIO
from typing import Any

from ..cost.models import CostModel, CostSummary, Report, TrendAnalysis
from ..monitoring.alerts import AlertCheckResult

logger = logging.getLogger(__name__)


class OutputFormat(Enum):
    """Supported output formats."""

    JSON = "json"
    CSV = "csv"
    TABLE = "table"


def to_json(data: CostModel | Iterable[CostModel]) -> str:
    """Serialize a model, or a list of models, as indented JSON."""
    if isinstance(data, CostModel):
        return json.dumps(data.to_dict(), indent=2)
    return json.dumps([item.to_dict() for item in data], indent=2)


def to_csv_rows(rows: list[dict[str, Any]]) -> str:
    """
    Write flat dictionaries as CSV.

    The header is the union of keys in first-seen order; missing values are
    left empty.
    """
    if not rows:
        return ""

    fieldnames = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)

    output = StringIO()
    writer = csv.DictWriter(output, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()


def _render(
    model: CostModel,
    format_type: OutputFormat,
    table: Callable[[], str],
    csv_rows: Callable[[], list[dict[str, Any]]],
) -> str:
    if format_type == OutputFormat.JSON:
        return to_json(model)
    if format_type == OutputFormat.CSV:
        return to_csv_rows(csv_rows())
    return table()


def _breakdown_lines(title: str, costs: dict[str, float], currency: str) -> list[str]:
    lines = [title, "-" * len(title)]
    for name, cost in sorted(costs.items(), key=lambda item: (-item[1], item[0])):
        lines.append(f"{name or '(none)':<40} {cost:>12.2f} {currency}")
    return lines


def format_summary(summary: CostSummary, format_type: OutputFormat = OutputFormat.TABLE) -> str:
    """Format a cost summary."""

    def table() -> str:
        lines = [
            f"Period: {summary.period}",
            f"Total:  {summary.total_cost:.2f} {summary.currency}",
        ]
        if summary.forecast:
            lines.append(
                f"Forecast next month: {summary.forecast.next_month:.2f} {summary.currency} "
                f"({summary.forecast.confidence.value} confidence)"
            )
        lines.append("")
        lines.extend(_breakdown_lines("BY SERVICE", summary.by_service, summary.currency))
        lines.append("")
        lines.extend(_breakdown_lines("BY RESOURCE GROUP", summary.by_resource_group, summary.currency))
        if summary.monthly_breakdown:
            lines.append("")
            lines.append("MONTHLY")
            lines.append("-------")
            for month in summary.monthly_breakdown:
                lines.append(f"{month.month:<40} {month.total_cost:>12.2f} {month.currency}")
        return "\n".join(lines)

    def csv_rows() -> list[dict[str, Any]]:
        rows = [
            {"dimension": "service", "name": name, "cost": cost, "currency": summary.currency}
            for name, cost in summary.by_service.items()
        ]
        rows.extend(
            {"dimension": "resource_group", "name": name, "cost": cost, "currency": summary.currency}
            for name, cost in summary.by_resource_group.items()
        )
        return rows

    return _render(summary, format_type, table, csv_rows)


def format_report(report: Report, format_type: OutputFormat = OutputFormat.TABLE) -> str:
    """Format a multi-month cost report."""

    def table() -> str:
        lines = [
            f"Cost report generated {report.generated_at}",
            f"Period:   {report.period}",
            f"Total:    {report.total_cost:.2f} {report.currency}",
            f"Forecast: {report.forecast:.2f} {report.currency}",
            "",
            f"{'MONTH':<10} {'TOTAL':>12} CURRENCY",
        ]
        for month in report.monthly_data:
            lines.append(f"{month.month:<10} {month.total_cost:>12.2f} {month.currency}")
        lines.append("")
        lines.append(f"{'SERVICE':<40} {'COST':>12}")
        for service in report.top_services:
            lines.append(f"{service.service:<40} {service.cost:>12.2f}")
        return "\n".join(lines)

    def csv_rows() -> list[dict[str, Any]]:
        return [month.to_dict() for month in report.monthly_data]

    return _render(report, format_type, table, csv_rows)


def format_trend(trend: TrendAnalysis, format_type: OutputFormat = OutputFormat.TABLE) -> str:
    """Format a trend analysis."""

    def table() -> str:
        return "\n".join(
            [
                f"Trend:           {trend.trend.value}",
                f"Current month:   {trend.current_month:.2f}",
                f"Previous month:  {trend.previous_month:.2f}",
                f"Change:          {trend.change_percent:+.2f}%",
                f"Monthly average: {trend.average_monthly:.2f}",
                f"Projection:      {trend.projection:.2f}",
            ]
        )

    def csv_rows() -> list[dict[str, Any]]:
        return [trend.to_dict()]

    return _render(trend, format_type, table, csv_rows)


def format_alert_status(result: AlertCheckResult, format_type: OutputFormat = OutputFormat.TABLE) -> str:
    """Format the outcome of an alert check."""

    def table() -> str:
        if not result.statuses:
            return "No alerts to display."

        header = f"{'NAME':<30} {'THRESHOLD':>10} {'CURRENT':>10} {'PERCENT':>8} STATUS"
        lines = [header, "-" * len(header)]
        for status in result.statuses:
            lines.append(
                f"{status.name:<30} {status.threshold:>10.2f} {status.current_cost:>10.2f} "
                f"{status.percent:>7.2f}% {status.status.value.upper()}"
            )
        return "\n".join(lines)

    def csv_rows() -> list[dict[str, Any]]:
        return [status.to_dict() for status in result.statuses]

    return _render(result, format_type, table, csv_rows)
