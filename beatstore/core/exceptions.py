"""
HTTP and domain exceptions for Beatstore.

Rate limiting raises ``TooManyRequestsError`` from dependencies. Services
raise ``BeatstoreError`` subclasses; the application renders those as
``{"error": ...}`` responses with the class's status code.
"""
from fastapi import HTTPException, status


class TooManyRequestsError(HTTPException):
    """Rate limit exceeded."""

    def __init__(
        self,
        detail: str = "Too many requests. Please try again later.",
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers=headers,
        )


# Domain exceptions

class BeatstoreError(Exception):
    """Base class for errors raised by services."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class CheckoutValidationError(BeatstoreError):
    """Checkout input rejected before any persistence or provider call."""


class OrderIntegrityError(BeatstoreError):
    """Caller-supplied ids disagree with provider-side records."""


class WebhookSignatureError(OrderIntegrityError):
    """Webhook signature missing or invalid."""


class PaymentNotCompletedError(BeatstoreError):
    """The provider reports the payment as not completed."""


class OrderNotFoundError(BeatstoreError):
    status_code = status.HTTP_404_NOT_FOUND


class DownloadExpiredError(BeatstoreError):
    status_code = status.HTTP_410_GONE


class OwnershipMismatchError(BeatstoreError):
    """Authenticated caller asked for another customer's order."""

    status_code = status.HTTP_403_FORBIDDEN


class ProviderError(BeatstoreError):
    """A payment or e-mail provider call failed.

    The provider's detail is kept for logging; callers only see a generic
    message.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, public_message: str = "Payment provider request failed"):
        super().__init__(message)
        self._public_message = public_message

    @property
    def public_message(self) -> str:
        return self._public_message


class ProviderConfigurationError(ProviderError):
    """Provider credentials are missing."""

    def __init__(self, message: str):
        super().__init__(message, public_message=message)


class TenantSettingsError(BeatstoreError):
    """Slug or custom-domain change rejected."""

    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


class CatalogItemNotFoundError(BeatstoreError):
    status_code = status.HTTP_404_NOT_FOUND


class AuthenticationError(BeatstoreError):
    """Login rejected."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AccountInactiveError(BeatstoreError):
    status_code = status.HTTP_403_FORBIDDEN


class AccountExistsError(BeatstoreError):
    """Registration for an e-mail that already has an account."""
