from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ProviderIdentity


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    SENSITIVITY_ANALYSIS = "sensitivity_analysis"
    PROVIDER_UNAVAILABLE = "provider_unavailable"
    RATE_LIMITED = "rate_limited"
    TRANSIENT_SERVER = "transient_server"
    AUTH = "auth"
    NETWORK = "network"
    PROVIDER = "provider"
    RETRY_EXHAUSTED = "retry_exhausted"
    PRIVACY_VIOLATION = "privacy_violation"


class RoutingError(RuntimeError):
    kind: ErrorKind = ErrorKind.PROVIDER

    def __init__(self, message: str, provider: ProviderIdentity | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider

    def describe(self) -> str:
        target = f" [{self.provider}]" if self.provider else ""
        return f"{self.kind}{target}: {self.message}"

    def to_dict(self) -> dict[str, str | None]:
        return {
            "kind": self.kind.value,
            "provider": self.provider.value if self.provider else None,
            "message": self.message,
        }


class RequestValidationError(RoutingError):
    kind = ErrorKind.VALIDATION


class SensitivityAnalysisError(RoutingError):
    kind = ErrorKind.SENSITIVITY_ANALYSIS


class ProviderUnavailable(RoutingError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE


class PrivacyViolationError(RoutingError):
    kind = ErrorKind.PRIVACY_VIOLATION


class ProviderError(RoutingError):
    """Failure reported by a provider call."""

    kind = ErrorKind.PROVIDER


class RateLimited(ProviderError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(self, message: str, retry_after: float, provider: ProviderIdentity | None = None) -> None:
        super().__init__(message, provider)
        self.retry_after = retry_after


class TransientServerError(ProviderError):
    kind = ErrorKind.TRANSIENT_SERVER


class AuthError(ProviderError):
    kind = ErrorKind.AUTH


class NetworkError(ProviderError):
    kind = ErrorKind.NETWORK


class RetryExhausted(RoutingError):
    kind = ErrorKind.RETRY_EXHAUSTED

    def __init__(self, last_error: ProviderError, attempts: int) -> None:
        super().__init__(
            f"gave up after {attempts} attempts, last error {last_error.describe()}",
            last_error.provider,
        )
        self.last_error = last_error
        self.attempts = attempts
