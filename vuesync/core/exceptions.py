"""Error hierarchy shared by the Vue and VictoriaMetrics clients and the exporter."""
from typing import Optional


class VueSyncError(Exception):
    """Base class for every error raised by vuesync."""


class ScaleConfigurationError(VueSyncError, ValueError):
    """A scale without a known bucket duration or page size was used."""


class CodecError(VueSyncError, ValueError):
    """A wire document could not be decoded."""


class UpstreamRequestError(VueSyncError):
    """A request to the Emporia Vue API failed."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body


class HistoryFetchError(UpstreamRequestError):
    """A page of chart history could not be fetched."""


class StoreRequestError(VueSyncError):
    """A request to VictoriaMetrics failed."""

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.body = body


class StoreQueryError(StoreRequestError):
    """VictoriaMetrics answered a query with a result we cannot interpret."""


class AuthenticationError(VueSyncError):
    """No valid token could be obtained."""


class RateLimitError(VueSyncError):
    """The rate limiter could not admit a request before the caller's deadline."""


class ExportError(VueSyncError):
    """Exporting the history of one channel failed."""

    def __init__(self, message: str, channel: Optional[str] = None):
        super().__init__(message)
        self.channel = channel
