"""Durable SQLite storage for cost records, alerts and settings."""

from .sqlite import CostStore
