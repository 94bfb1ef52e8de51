"""Service for refreshing CRM OAuth2 access tokens."""

import base64
from typing import Optional

import httpx

from social_scribe.core.config import settings
from social_scribe.core.exceptions import TokenRefreshError
from social_scribe.core.logging import ContextualLogger, logger
from social_scribe.platform.auth.schemas import OAuth2RefreshSettings, OAuth2TokenResponse
from social_scribe.platform.auth.settings import IntegrationSettings, integration_settings
from social_scribe.schemas.credential import Credential


class OAuth2Service:
    """Service class for exchanging refresh tokens for new access tokens."""

    def __init__(
        self,
        settings_registry: IntegrationSettings = integration_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the service.

        Args:
        ----
            settings_registry (IntegrationSettings): Token endpoint settings per provider.
            transport (httpx.AsyncBaseTransport, optional): Transport override for the
                HTTP client, used to stub the token endpoint.

        """
        self._settings_registry = settings_registry
        self._transport = transport

    async def refresh_access_token(self, credential: Credential) -> OAuth2TokenResponse:
        """Refresh the access token of a credential.

        Args:
        ----
            credential (Credential): The credential to refresh.

        Returns:
        -------
            OAuth2TokenResponse: The token endpoint's response.

        Raises:
        ------
            TokenRefreshError: If the credential cannot be refreshed.

        """
        refresh_logger = logger.with_context(
            provider=credential.provider.value, credential_id=credential.id
        )
        refresh_token = self._get_refresh_token(credential)
        integration_config = self._get_integration_config(credential.provider.value)

        if not integration_config.client_id or not integration_config.client_secret:
            raise TokenRefreshError(
                f"No client credentials configured for {credential.provider.value}",
                reason="missing_client_credentials",
            )

        headers, payload = self._prepare_token_request(
            refresh_logger,
            integration_config,
            refresh_token,
            integration_config.client_id,
            integration_config.client_secret,
        )
        response = await self._make_token_request(
            refresh_logger, integration_config.backend_url, headers, payload
        )
        return self._handle_token_response(refresh_logger, response)

    @staticmethod
    def _get_refresh_token(credential: Credential) -> str:
        if not credential.refresh_token:
            raise TokenRefreshError("No refresh token found", reason="missing_refresh_token")
        return credential.refresh_token

    def _get_integration_config(self, short_name: str) -> OAuth2RefreshSettings:
        try:
            return self._settings_registry.get_by_short_name(short_name)
        except KeyError as e:
            raise TokenRefreshError(
                f"No token endpoint configured for {short_name}", reason="unknown_provider"
            ) from e

    @staticmethod
    def _prepare_token_request(
        logger: ContextualLogger,
        integration_config: OAuth2RefreshSettings,
        refresh_token: str,
        client_id: str,
        client_secret: str,
    ) -> tuple[dict, dict]:
        """Prepare headers and payload for token refresh request.

        Args:
        ----
            logger (ContextualLogger): The logger to use.
            integration_config (OAuth2RefreshSettings): The integration's token settings.
            refresh_token (str): The refresh token.
            client_id (str): The client ID.
            client_secret (str): The client secret.

        Returns:
        -------
            tuple[dict, dict]: The headers and payload.

        """
        headers = {
            "Content-Type": integration_config.content_type,
            "Accept": "application/json",
        }

        payload = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        }

        if integration_config.client_credential_location == "header":
            encoded_credentials = OAuth2Service._encode_client_credentials(client_id, client_secret)
            headers["Authorization"] = f"Basic {encoded_credentials}"
        else:
            payload["client_id"] = client_id
            payload["client_secret"] = client_secret

        logger.debug(
            f"Token refresh request - URL: {integration_config.backend_url}, "
            f"Credential location: {integration_config.client_credential_location}"
        )

        return headers, payload

    async def _make_token_request(
        self, logger: ContextualLogger, url: str, headers: dict, payload: dict
    ) -> httpx.Response:
        """Make the token refresh request."""
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=settings.CRM_HTTP_TIMEOUT_SECONDS
            ) as client:
                response = await client.post(url, headers=headers, data=payload)
                logger.info(f"Token endpoint answered with status {response.status_code}")
                response.raise_for_status()
                return response

        except httpx.HTTPStatusError as e:
            try:
                error_content = e.response.json()
            except ValueError:
                error_content = e.response.text
            logger.error(
                f"HTTP error during token request: {e.response.status_code} "
                f"{e.response.reason_phrase}: {error_content}"
            )
            raise TokenRefreshError(
                f"Token endpoint returned {e.response.status_code}",
                reason={"status": e.response.status_code, "body": error_content},
            ) from e
        except httpx.RequestError as e:
            logger.error(f"Network error during token request: {str(e)}")
            raise TokenRefreshError("Token endpoint unreachable", reason=str(e)) from e

    @staticmethod
    def _handle_token_response(
        logger: ContextualLogger, response: httpx.Response
    ) -> OAuth2TokenResponse:
        """Parse the token endpoint's response.

        Raises:
        ------
            TokenRefreshError: If the body is not a token response.

        """
        try:
            return OAuth2TokenResponse(**response.json())
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed token response: {response.text[:200]}")
            raise TokenRefreshError("Malformed token response", reason=str(e)) from e

    @staticmethod
    def _encode_client_credentials(client_id: str, client_secret: str) -> str:
        """Encodes the client ID and client secret in Base64.

        Args:
        ----
            client_id (str): The client ID.
            client_secret (str): The client secret.

        Returns:
        -------
            str: The Base64-encoded client credentials.

        """
        credentials = f"{client_id}:{client_secret}"
        return base64.b64encode(credentials.encode("ascii")).decode("ascii")


oauth2_service = OAuth2Service()
