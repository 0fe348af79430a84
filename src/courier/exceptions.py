"""Courier exception hierarchy.

All exceptions inherit from CourierError. Delivery failures form their own
branch under DeliveryError so the dispatcher can treat every transient
failure the same way.
"""

from __future__ import annotations


class CourierError(Exception):
    """Base exception for all Courier errors.

    Attributes:
        message: Human-readable error description.
        code: Machine-readable error code for API responses.
    """

    code: str = "courier_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
            }
        }


class IntegrationLookupError(CourierError, LookupError):
    """Receiver is missing or not eligible for an event.

    This is a skip condition for the dispatcher, not a failure.

    Attributes:
        organization_id: Tenant that was searched.
        provider: Provider that was looked up.
        reason: Why the integration is not eligible.
    """

    code: str = "integration_not_found"

    def __init__(self, organization_id: str, provider: str, reason: str) -> None:
        self.organization_id = organization_id
        self.provider = provider
        self.reason = reason
        super().__init__(f"{provider} integration for {organization_id}: {reason}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "organization_id": self.organization_id,
                "provider": self.provider,
                "message": self.message,
            }
        }


class SigningError(CourierError):
    """Payload could not be canonicalized or signed.

    Fatal for the attempt; never retried since it cannot succeed later.
    """

    code: str = "signing_error"


class DeliveryError(CourierError):
    """A delivery attempt did not reach a 2xx response. Always retryable."""

    code: str = "delivery_error"


class NetworkError(DeliveryError):
    """Connection-level failure talking to the receiver."""

    code: str = "network_error"


class DeliveryTimeout(DeliveryError):
    """The receiver did not answer within the attempt timeout.

    Attributes:
        timeout_seconds: Timeout that was exceeded.
    """

    code: str = "delivery_timeout"

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Request timeout after {timeout_seconds:g}s")


class ReceiverRejected(DeliveryError):
    """The receiver answered with a non-2xx status.

    4xx and 5xx are treated alike: a misconfigured receiver may be fixed later.

    Attributes:
        status_code: HTTP status returned.
        response_body: Truncated response body, if any.
    """

    code: str = "receiver_rejected"

    def __init__(self, status_code: int, response_body: str | None = None) -> None:
        self.status_code = status_code
        self.response_body = response_body
        detail = f": {response_body[:200]}" if response_body else ""
        super().__init__(f"HTTP {status_code}{detail}")

    def to_dict(self) -> dict[str, object]:
        """Convert exception to API-friendly dictionary."""
        return {
            "error": {
                "code": self.code,
                "status_code": self.status_code,
                "message": self.message,
            }
        }


class StorageError(CourierError):
    """Storage operation failed."""

    code: str = "storage_error"


class ConfigurationError(CourierError):
    """Required configuration is missing or invalid."""

    code: str = "configuration_error"


class AuthenticationError(CourierError):
    """Cron or operator credentials are invalid or missing."""

    code: str = "authentication_error"
