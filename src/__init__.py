"""
Cloud Spend Monitor

Ingests cloud billing line items from AWS, Azure, and GCP into a local SQLite
store and derives spend summaries, trends, forecasts, budget alerts and
free-tier usage status.
"""

__version__ = "1.0.0"
__author__ = "Cloud Spend Team"
