"""Error taxonomy shared by every provider."""

from typing import Any, Optional


class ConnectorError(Exception):
    """Base exception for connector errors."""

    def __init__(self, message: str, *, operation: Optional[str] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.key = key

    def __str__(self) -> str:
        parts = [self.message]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.key:
            parts.append(f"key={self.key}")
        return " ".join(parts)


class NotFoundError(ConnectorError):
    """The requested entity does not exist on the backend."""

class InvalidAddressError(ConnectorError):
    """Address failed format or prefix checks."""

class InvalidUnitError(ConnectorError):
    """Asset unit could not be parsed."""

class InvalidInputError(ConnectorError):
    """Caller-supplied argument is unusable."""

class AmbiguousResultError(ConnectorError):
    """A query that must match exactly one UTxO matched several."""

class EvaluationFailedError(ConnectorError):
    """Backend rejected a transaction during script evaluation."""

class SubmissionFailedError(ConnectorError):
    """Backend rejected a transaction submission."""

class ConnectorTimeoutError(ConnectorError):
    """Caller deadline expired before the operation finished."""

class DecodeFailedError(ConnectorError):
    """Backend payload was structurally malformed."""

class NotImplementedByProviderError(ConnectorError):
    """Operation is not supported by this backend."""

class ProviderInternalError(ConnectorError):
    """Backend or transport failure."""

class RateLimitedError(ProviderInternalError):
    """Backend refused the request because of rate limiting."""


class APIError(ProviderInternalError):
    """Non-success response carrying the backend's own status and code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        provider_code: str = "",
        details: Any = None,
        operation: Optional[str] = None,
        key: Optional[str] = None,
    ):
        super().__init__(message, operation=operation, key=key)
        self.status_code = status_code
        self.provider_code = provider_code
        self.details = details

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code:
            base = f"{base} status={self.status_code}"
        if self.provider_code:
            base = f"{base} code={self.provider_code}"
        return base


def is_not_found(err: BaseException) -> bool:
    return isinstance(err, NotFoundError)

def is_rate_limited(err: BaseException) -> bool:
    return isinstance(err, RateLimitedError)

def is_evaluation_failed(err: BaseException) -> bool:
    return isinstance(err, EvaluationFailedError)
