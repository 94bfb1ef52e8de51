"""Schemas for CRM token refresh settings."""

from typing import Literal, Optional

from pydantic import BaseModel, model_validator


class OAuth2TokenResponse(BaseModel):
    """OAuth2 token response schema.

    Attributes:
    ----------
        access_token (str): The access token.
        token_type (Optional[str]): The token type.
        expires_in (Optional[int]): The expiration time in seconds. Salesforce omits it.
        refresh_token (Optional[str]): The refresh token, when the provider rotates it.
        scope (Optional[str]): The scope of the token.
        instance_url (Optional[str]): The Salesforce instance the token is bound to.
    """

    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    instance_url: Optional[str] = None

    class Config:
        """Pydantic configuration.

        Attributes:
        ----------
            extra: Configuration to allow extra fields.

        """

        extra = "allow"


class OAuth2RefreshSettings(BaseModel):
    """Refresh settings of one CRM integration.

    Attributes:
    ----------
        integration_short_name (str): The provider identifier, e.g. "hubspot".
        backend_url (str): The token endpoint (may contain {placeholders}).
        backend_url_template (bool): Whether backend_url has to be rendered.
        content_type (str): Content type of the refresh request body.
        client_credential_location (str): "body" or "header" (HTTP Basic).
        client_id (Optional[str]): The OAuth client ID, filled in from the environment.
        client_secret (Optional[str]): The OAuth client secret, filled in from the environment.
    """

    integration_short_name: str
    backend_url: str
    backend_url_template: bool = False
    content_type: str = "application/x-www-form-urlencoded"
    client_credential_location: Literal["body", "header"] = "body"
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    @model_validator(mode="after")
    def validate_backend_url(self):
        """Validate that a token endpoint is configured."""
        if not self.backend_url:
            raise ValueError(
                f"Integration {self.integration_short_name} missing 'backend_url' field"
            )
        return self
