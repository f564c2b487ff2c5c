"""
Export functionality for cost monitor data.

Renders summaries, reports, trends and alert checks as JSON, CSV or plain
text tables.
"""

from .formatters import (
    OutputFormat,
    format_alert_status,
    format_report,
    format_summary,
    format_trend,
    to_csv_rows,
    to_json,
)

__all__ = [
    "OutputFormat",
    "format_alert_status",
    "format_report",
    "format_summary",
    "format_trend",
    "to_csv_rows",
    "to_json",
]
