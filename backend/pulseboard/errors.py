"""Exceptions raised by the storage and configuration layers.

Probe failures are never raised; they are recorded as data on the
CheckOutcome. Everything here is meant to reach the caller (HTTP 4xx/5xx).
"""


class PulseboardError(Exception):
    """Base class for application errors."""

    code = "INTERNAL_ERROR"


class ConfigurationError(PulseboardError):
    """A required backend binding or configuration value is missing or invalid."""

    code = "CONFIGURATION_ERROR"


class StoreError(PulseboardError):
    """A cache or history backend operation failed."""

    code = "STORE_ERROR"


class MonitorNotFoundError(PulseboardError):
    """The requested monitor is not part of the configured catalog."""

    code = "NOT_FOUND"

    def __init__(self, monitor_id: str):
        super().__init__(f"Monitor {monitor_id} not found")
        self.monitor_id = monitor_id
