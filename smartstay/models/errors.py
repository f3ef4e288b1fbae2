from typing import Any, Optional


class SmartStayError(Exception):
    """Base class for errors surfaced to API callers as ``{error, detail}``."""

    status_code: int = 500

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self):
        return {"error": self.message, "detail": self.detail}


class ValidationError(SmartStayError):
    """Missing or malformed input, detected before any network call."""

    status_code = 400


class ConfigurationError(SmartStayError):
    """Missing credentials or a malformed base URL."""

    status_code = 500


class UpstreamError(SmartStayError):
    """A vendor call failed; carries the vendor status and body verbatim."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message, detail=body)
        self.status = status
        self.body = body

    @property
    def status_code(self) -> int:  # type: ignore[override]
        if self.status and 400 <= self.status < 600:
            return self.status
        return 502


class GatewayTimeoutError(UpstreamError):
    """The vendor did not answer within the configured timeout."""

    def __init__(self, message: str, body: Any = None):
        super().__init__(message, status=504, body=body)


class AIOperationError(UpstreamError):
    """Every candidate model failed, or one failed with a non-skippable error."""
