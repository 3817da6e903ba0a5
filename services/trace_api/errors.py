"""Error types raised by the traceability components."""


class TraceApiError(Exception):
    """Base class for Trace-API errors."""


class StoreError(TraceApiError):
    """The graph database is unreachable, unconfigured or rejected a query."""


class SerialNotFound(TraceApiError):
    """No Serial node carries the requested serial number."""

    def __init__(self, serial_number: str):
        super().__init__(f"Serial not found: {serial_number}")
        self.serial_number = serial_number
