"""
Exception hierarchy for cloud spend monitoring.

Lower layers wrap the underlying SDK or storage exception and re-raise one of
these with the failing operation attached.
"""


class CostMonitorError(Exception):
    """Base exception for cost monitor errors."""

    pass


class ConfigurationError(CostMonitorError):
    """A required identifier or credential is missing."""

    pass


class TransportError(CostMonitorError):
    """A provider call failed or returned a non-success response."""

    def __init__(self, message: str, status_code: int | None = None, provider: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.provider = provider


class PersistenceError(CostMonitorError):
    """The storage engine failed during a read or write."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ForecastUnavailableError(CostMonitorError):
    """Neither a local nor a remote forecast could be produced."""

    pass
