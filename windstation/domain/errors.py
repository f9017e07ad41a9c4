class InvalidQueryError(ValueError):
    """Query parameters that cannot be turned into a store read."""


class NotFoundError(LookupError):
    """A station has no readings to anchor a window on."""


class UpstreamError(RuntimeError):
    """The telemetry source failed, timed out or answered ok=false."""


class StorageError(RuntimeError):
    """The durable store could not be opened or prepared."""
