"""Contact service resolving contacts across every connected CRM."""

import asyncio
from typing import List, Optional, Union

import httpx

from social_scribe.core.config import settings
from social_scribe.core.exceptions import NoCredentialError
from social_scribe.core.logging import logger
from social_scribe.platform.credential_store import CredentialStore
from social_scribe.platform.crm._base import BaseCRMClient
from social_scribe.platform.field_config import supported_providers, to_provider
from social_scribe.platform.locator import resource_locator
from social_scribe.platform.token_guardian import TokenGuardian
from social_scribe.schemas.contact import NormalizedContact
from social_scribe.schemas.credential import Credential, CRMProvider


class ContactService:
    """Service for searching and fetching CRM contacts.

    Searches fan out to every connected CRM concurrently. A CRM that fails or
    times out contributes no contacts; it never fails the whole search.
    """

    def __init__(
        self,
        store: CredentialStore,
        token_guardian: Optional[TokenGuardian] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the service.

        Args:
            store: Credential store of the hosting application
            token_guardian: Guardian shared by all clients, built from the store if omitted
            transport: Optional HTTP transport override handed to every client
        """
        self.store = store
        self.token_guardian = token_guardian or TokenGuardian(store)
        self._transport = transport

    def get_client(self, provider: Union[CRMProvider, str]) -> BaseCRMClient:
        """Build the client of a provider.

        Raises:
            UnsupportedProviderError: If no client exists for the provider
        """
        client_class = resource_locator.get_crm_client(provider)
        return client_class(self.token_guardian, transport=self._transport)

    async def search_all(
        self, credentials: List[Credential], query: str
    ) -> List[NormalizedContact]:
        """Search every given CRM concurrently and merge the results.

        Only the first CRM_MAX_FANOUT credentials are searched. Results keep the
        order of the credentials and are not deduplicated.
        """
        selected = credentials[: settings.CRM_MAX_FANOUT]
        if not selected:
            return []

        results = await asyncio.gather(
            *(self._search_branch(credential, query) for credential in selected),
            return_exceptions=True,
        )

        contacts: List[NormalizedContact] = []
        for credential, result in zip(selected, results):
            if isinstance(result, BaseException):
                reason = "timed out" if isinstance(result, asyncio.TimeoutError) else str(result)
                logger.with_context(
                    provider=credential.provider.value, credential_id=credential.id
                ).warning(f"Contact search failed, skipping CRM: {reason or type(result).__name__}")
                continue
            contacts.extend(result)
        return contacts

    async def _search_branch(self, credential: Credential, query: str) -> List[NormalizedContact]:
        client = self.get_client(credential.provider)
        return await asyncio.wait_for(
            client.search_contacts(credential, query),
            timeout=settings.CRM_SEARCH_TIMEOUT_SECONDS,
        )

    async def get_all_crm_credentials(self, user_id: str) -> List[Credential]:
        """Return the user's connected credentials in provider registry order."""
        credentials = await self.store.list_for_user(user_id)
        by_provider = {credential.provider: credential for credential in credentials}
        return [
            by_provider[CRMProvider(provider)]
            for provider in supported_providers()
            if CRMProvider(provider) in by_provider
        ]

    async def get_connected_crm(
        self, user_id: str, provider: Union[CRMProvider, str, None] = None
    ) -> Optional[Credential]:
        """Return the credential to use for a user.

        With a provider, that provider's credential. Without one, the first
        connected CRM in registry order (HubSpot before Salesforce).
        """
        if provider is not None:
            key = to_provider(provider)
            if key is None:
                return None
            return await self.store.get(user_id, key)

        credentials = await self.get_all_crm_credentials(user_id)
        return credentials[0] if credentials else None

    async def search_contacts(
        self, user_id: str, query: str, provider: Union[CRMProvider, str, None] = None
    ) -> List[NormalizedContact]:
        """Search the user's preferred (or the named) CRM.

        Raises:
            NoCredentialError: If no matching CRM is connected
        """
        credential = await self.get_connected_crm(user_id, provider)
        if credential is None:
            raise NoCredentialError()
        client = self.get_client(credential.provider)
        return await client.search_contacts(credential, query)

    async def fetch_contact_data(
        self, credential: Optional[Credential], contact_id: Optional[str]
    ) -> Optional[NormalizedContact]:
        """Fetch a contact with its notes and tasks, or None when either input is missing."""
        if credential is None or not contact_id:
            return None
        client = self.get_client(credential.provider)
        return await client.get_contact_with_context(credential, contact_id)
