"""Common test fixtures and configuration for pytest."""

from datetime import timedelta
from typing import Callable, Optional
from unittest.mock import AsyncMock

import pytest

from social_scribe.core.datetime_utils import utc_now
from social_scribe.platform.auth.oauth2_service import OAuth2Service
from social_scribe.platform.auth.schemas import OAuth2TokenResponse
from social_scribe.platform.credential_store import InMemoryCredentialStore
from social_scribe.platform.token_guardian import TokenGuardian
from social_scribe.schemas.credential import Credential, CRMProvider

SALESFORCE_INSTANCE_URL = "https://acme.my.salesforce.com"


@pytest.fixture
def credential_factory() -> Callable[..., Credential]:
    """Build credentials that expire an hour from now unless told otherwise."""

    def _make(
        provider: CRMProvider = CRMProvider.HUBSPOT,
        user_id: str = "user-1",
        expires_in: Optional[int] = 3600,
        **overrides,
    ) -> Credential:
        values = {
            "id": f"{provider.value}-{user_id}",
            "user_id": user_id,
            "provider": provider,
            "access_token": "old-token",
            "refresh_token": "old-refresh",
            "expires_at": (
                utc_now() + timedelta(seconds=expires_in) if expires_in is not None else None
            ),
            "provider_instance_identifier": (
                SALESFORCE_INSTANCE_URL if provider == CRMProvider.SALESFORCE else None
            ),
        }
        values.update(overrides)
        return Credential(**values)

    return _make


@pytest.fixture
def hubspot_credential(credential_factory) -> Credential:
    """A valid HubSpot credential."""
    return credential_factory(CRMProvider.HUBSPOT)


@pytest.fixture
def salesforce_credential(credential_factory) -> Credential:
    """A valid Salesforce credential bound to an instance URL."""
    return credential_factory(CRMProvider.SALESFORCE)


@pytest.fixture
def credential_store(hubspot_credential, salesforce_credential) -> InMemoryCredentialStore:
    """A store holding one HubSpot and one Salesforce credential for user-1."""
    return InMemoryCredentialStore([hubspot_credential, salesforce_credential])


@pytest.fixture
def mock_refresher() -> AsyncMock:
    """An OAuth2 service whose refresh always succeeds with a rotated token."""
    refresher = AsyncMock(spec=OAuth2Service)
    refresher.refresh_access_token.return_value = OAuth2TokenResponse(
        access_token="new-token",
        token_type="bearer",
        expires_in=1800,
        refresh_token="new-refresh",
    )
    return refresher


@pytest.fixture
def token_guardian(credential_store, mock_refresher) -> TokenGuardian:
    """A guardian persisting into the in-memory store."""
    return TokenGuardian(credential_store, refresher=mock_refresher)
