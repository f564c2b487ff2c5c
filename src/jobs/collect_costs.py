#!/usr/bin/env python3
"""
Cost Collection Job

Fetches cost data from the configured cloud provider for the current month,
or for HISTORICAL_MONTHS whole months back, and stores it in the database.
"""

import logging
import os
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from src.config.settings import get_config
from src.cost.periods import add_months, current_month_range
from src.cost.service import build_service
from src.errors import CostMonitorError
from src.utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    """Main collection function"""
    setup_logging(verbose=os.getenv("VERBOSE", "").lower() in ("1", "true", "yes"))
    logger.info("Starting cost collection job")

    historical_months = int(os.getenv("HISTORICAL_MONTHS", "0"))
    month_start, end_date = current_month_range()
    start_date = add_months(month_start, -historical_months)

    logger.info(f"Collecting costs for {start_date} to {end_date} ({historical_months} months back)")

    try:
        service = build_service(get_config())
    except CostMonitorError as e:
        logger.error(f"Failed to initialize cost service: {e}")
        return 1

    with service:
        try:
            stored = service.fetch_and_store(start_date, end_date)
        except (CostMonitorError, ValueError) as e:
            logger.error(f"Cost collection failed: {e}")
            return 1

    logger.info(f"Cost collection completed, {stored} records stored")
    return 0


if __name__ == "__main__":
    sys.exit(main())
