"""Logging setup shared by jobs and embedding applications."""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Cloud SDK loggers that are noisy at INFO
CLOUD_LOGGERS = [
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.identity",
    "boto3",
    "botocore",
    "urllib3",
    "google.auth",
    "google.cloud",
]


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity settings."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.INFO)

    for logger_name in CLOUD_LOGGERS:
        logger = logging.getLogger(logger_name)
        if verbose:
            logger.setLevel(logging.INFO)
        else:
            # Only surface SDK problems
            logger.setLevel(logging.WARNING)
