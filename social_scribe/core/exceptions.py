"""Shared exceptions module."""

from typing import Any, Optional


class SocialScribeException(Exception):
    """Base exception for Social Scribe services."""

    pass


class NotFoundException(SocialScribeException):
    """Exception raised when an object is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ContactNotFoundException(NotFoundException):
    """Raised when a CRM answers 404 for a contact lookup."""

    def __init__(self, provider: str, contact_id: str):
        """Create a new ContactNotFoundException instance.

        Args:
        ----
            provider (str): The CRM provider that was queried.
            contact_id (str): The provider-native contact ID.

        """
        self.provider = provider
        self.contact_id = contact_id
        super().__init__(f"Contact {contact_id} not found in {provider}")


class CRMApiError(SocialScribeException):
    """Exception raised when a CRM responds with a non-success status."""

    def __init__(self, status_code: int, body: Any = None, provider: Optional[str] = None):
        """Create a new CRMApiError instance.

        Args:
        ----
            status_code (int): The HTTP status returned by the provider.
            body (Any): The decoded response body (dict, list or raw text).
            provider (str, optional): The CRM provider that answered.

        """
        self.status_code = status_code
        self.body = body
        self.provider = provider
        super().__init__(f"{provider or 'CRM'} API error {status_code}: {body!r}")


class CRMTransportError(SocialScribeException):
    """Exception raised when a CRM could not be reached at all."""

    def __init__(self, reason: str, provider: Optional[str] = None):
        """Create a new CRMTransportError instance.

        Args:
        ----
            reason (str): Description of the network-level failure.
            provider (str, optional): The CRM provider that was called.

        """
        self.reason = reason
        self.provider = provider
        super().__init__(f"{provider or 'CRM'} HTTP error: {reason}")


class TokenRefreshError(SocialScribeException):
    """Exception raised when a token refresh fails."""

    def __init__(self, message: Optional[str] = "Token refresh failed", reason: Any = None):
        """Create a new TokenRefreshError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.
            reason (Any): The underlying cause reported by the token endpoint.

        """
        self.message = message
        self.reason = reason
        super().__init__(self.message)


class UnsupportedProviderError(SocialScribeException):
    """Raised when an operation is requested for a CRM without a client."""

    def __init__(self, provider: Any):
        """Create a new UnsupportedProviderError instance.

        Args:
        ----
            provider (Any): The provider identifier that was requested.

        """
        self.provider = provider
        super().__init__(f"Unsupported CRM provider: {provider}")


class NoCredentialError(SocialScribeException):
    """Raised when the user has no connected credential for the requested CRM."""

    def __init__(self, message: Optional[str] = "No CRM connected"):
        """Create a new NoCredentialError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)
