"""Cloud provider integrations for AWS, Azure, and GCP."""

# Import provider implementations to register them with ProviderFactory
from . import aws
from . import azure
from . import gcp

# Make key classes available at package level
from .base import (
    CostProvider,
    CostQueryResult,
    ProviderCostRow,
    ProviderFactory,
)
