"""Unit tests for the in-memory credential store and the client registry."""

from datetime import timedelta

import pytest

from social_scribe.core.datetime_utils import utc_now
from social_scribe.core.exceptions import UnsupportedProviderError
from social_scribe.platform.credential_store import InMemoryCredentialStore
from social_scribe.platform.crm.hubspot import HubSpotClient
from social_scribe.platform.crm.salesforce import SalesforceClient
from social_scribe.platform.decorators import crm_client
from social_scribe.platform.locator import resource_locator
from social_scribe.schemas.credential import CredentialUpdate, CRMProvider


class TestInMemoryCredentialStore:
    """Tests for the dict-backed store."""

    @pytest.mark.asyncio
    async def test_save_upserts_token_fields(self, credential_store, hubspot_credential):
        """Saving replaces the token fields of the stored credential."""
        expires_at = utc_now() + timedelta(hours=1)

        saved = await credential_store.save(
            hubspot_credential,
            CredentialUpdate(access_token="a2", refresh_token="r2", expires_at=expires_at),
        )

        assert saved.id == hubspot_credential.id
        assert saved.access_token == "a2"
        assert saved.refresh_token == "r2"
        assert saved.expires_at == expires_at
        assert await credential_store.get("user-1", CRMProvider.HUBSPOT) == saved

    @pytest.mark.asyncio
    async def test_one_credential_per_user_and_provider(self, credential_factory):
        """Putting a second credential for the same pair replaces the first."""
        store = InMemoryCredentialStore()
        await store.put(credential_factory(access_token="first"))
        await store.put(credential_factory(access_token="second"))

        credentials = await store.list_for_user("user-1")

        assert [c.access_token for c in credentials] == ["second"]

    @pytest.mark.asyncio
    async def test_put_assigns_missing_id(self, credential_factory):
        """Credentials without an ID get one."""
        stored = await InMemoryCredentialStore().put(credential_factory(id=""))

        assert stored.id

    @pytest.mark.asyncio
    async def test_unknown_provider_lookup(self, credential_store):
        """Lookups for unknown providers return None."""
        assert await credential_store.get("user-1", "pipedrive") is None


class TestClientRegistry:
    """Tests for provider to client resolution."""

    def test_clients_are_registered(self):
        """Each supported provider resolves to its client class."""
        assert resource_locator.get_crm_client("hubspot") is HubSpotClient
        assert resource_locator.get_crm_client(CRMProvider.SALESFORCE) is SalesforceClient
        assert HubSpotClient._provider == CRMProvider.HUBSPOT
        assert SalesforceClient._api_version == "v59.0"

    def test_unknown_provider(self):
        """Unknown providers raise UnsupportedProviderError."""
        with pytest.raises(UnsupportedProviderError):
            resource_locator.get_crm_client("pipedrive")

    def test_duplicate_registration_is_rejected(self):
        """A provider cannot be claimed by two different clients."""
        with pytest.raises(ValueError):

            @crm_client(name="Other HubSpot", provider=CRMProvider.HUBSPOT)
            class OtherHubSpotClient(HubSpotClient):
                pass
