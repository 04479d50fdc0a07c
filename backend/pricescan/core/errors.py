from typing import Optional


class PriceScanError(Exception):
    """Base class for everything this service raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PipelineInputError(PriceScanError):
    """
    Raised before any provider is contacted.
    Carries the HTTP status the API layer should answer with.
    """
    status_code = 400


class InvalidQueryError(PipelineInputError):
    status_code = 400


class ConfigurationError(PipelineInputError):
    status_code = 500


class ProviderError(PriceScanError):
    """A single outbound provider call failed. Never fatal for the pipeline."""


class ProviderRequestError(ProviderError):
    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ProviderTimeoutError(ProviderError):
    def __init__(self, message: str, timeout: float):
        super().__init__(message)
        self.timeout = timeout
