"""Base CRM client class."""

from abc import abstractmethod
from typing import Any, Awaitable, Callable, ClassVar, Dict, List, Optional, TypeVar, Union

import httpx

from social_scribe.core.config import settings
from social_scribe.core.exceptions import CRMApiError, CRMTransportError, SocialScribeException
from social_scribe.core.logging import logger
from social_scribe.platform.token_guardian import TokenGuardian
from social_scribe.schemas.contact import NormalizedContact, Note, Task
from social_scribe.schemas.credential import Credential, CRMProvider
from social_scribe.schemas.suggestion import NoUpdates, Suggestion

T = TypeVar("T")


class BaseCRMClient:
    """Base class for all CRM clients.

    Subclasses translate between the CRM's wire format and the normalized
    schemas. Every public operation goes through the token guardian, so the
    ``api_call`` closures receive the credential that is valid at call time.
    """

    _name: ClassVar[str] = ""
    _provider: ClassVar[Optional[CRMProvider]] = None
    _api_version: ClassVar[Optional[str]] = None

    def __init__(
        self,
        token_guardian: TokenGuardian,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            token_guardian: Guardian refreshing and retrying around every call
            transport: Optional transport override for the HTTP client
        """
        self.token_guardian = token_guardian
        self._transport = transport
        self._logger: Optional[Any] = None

    @property
    def logger(self):
        """Get the logger for this client, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return logger.with_context(provider=self.provider_name)

    def set_logger(self, logger) -> None:
        """Set a contextual logger for this client."""
        self._logger = logger

    @property
    def provider_name(self) -> str:
        """The provider identifier of this client."""
        return self._provider.value if self._provider else ""

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport, timeout=settings.CRM_HTTP_TIMEOUT_SECONDS
        )

    async def _request(
        self,
        method: str,
        url: str,
        access_token: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> httpx.Response:
        """Make an authenticated request to the CRM API.

        Raises:
            CRMApiError: If the CRM answers with a status of 400 or above
            CRMTransportError: If the CRM could not be reached
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        try:
            async with self._client() as client:
                response = await client.request(
                    method, url, headers=headers, params=params, json=json
                )
        except httpx.RequestError as e:
            self.logger.error(f"HTTP error calling {method} {url}: {str(e)}")
            raise CRMTransportError(str(e), provider=self.provider_name) from e

        if response.status_code >= 400:
            body = self._decode_body(response)
            if response.status_code != 404:
                self.logger.warning(f"{method} {url} failed with {response.status_code}: {body}")
            raise CRMApiError(response.status_code, body, provider=self.provider_name)

        return response

    @staticmethod
    def _decode_body(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _json(self, response: httpx.Response) -> Dict[str, Any]:
        """Decode a successful response whose body must be a JSON object.

        Raises:
            CRMApiError: If the body is not JSON or not an object
        """
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            self.logger.warning(
                f"Unexpected {response.status_code} response body: {response.text[:200]}"
            )
            raise CRMApiError(response.status_code, response.text, provider=self.provider_name)
        return body

    def _records(self, response: httpx.Response, key: str) -> List[Dict[str, Any]]:
        """Return the objects listed under ``key`` of a JSON response.

        Raises:
            CRMApiError: If the body or the listed records are malformed
        """
        records = self._json(response).get(key) or []
        if not isinstance(records, list):
            raise CRMApiError(response.status_code, response.text, provider=self.provider_name)
        return [record for record in records if isinstance(record, dict)]

    async def _with_token(
        self, credential: Credential, api_call: Callable[[Credential], Awaitable[T]]
    ) -> T:
        return await self.token_guardian.with_valid_token(
            credential, api_call, self.is_token_error
        )

    @abstractmethod
    def is_token_error(self, error: CRMApiError) -> bool:
        """Tell whether an API error means the access token was rejected."""
        pass

    @abstractmethod
    async def search_contacts(self, credential: Credential, query: str) -> List[NormalizedContact]:
        """Search contacts by free text."""
        pass

    @abstractmethod
    async def get_contact(self, credential: Credential, contact_id: str) -> NormalizedContact:
        """Get a single contact.

        Raises:
            ContactNotFoundException: If the CRM does not know the contact
        """
        pass

    @abstractmethod
    async def get_contact_notes(self, credential: Credential, contact_id: str) -> List[Note]:
        """Get the notes attached to a contact."""
        pass

    @abstractmethod
    async def get_contact_tasks(self, credential: Credential, contact_id: str) -> List[Task]:
        """Get the tasks attached to a contact."""
        pass

    @abstractmethod
    async def update_contact(
        self, credential: Credential, contact_id: str, updates: Dict[str, Any]
    ) -> NormalizedContact:
        """Write canonical field updates to the CRM and return the updated contact."""
        pass

    async def get_contact_with_context(
        self, credential: Credential, contact_id: str
    ) -> NormalizedContact:
        """Get a contact together with its notes and tasks.

        A failing notes or tasks fetch degrades to an empty list; a failing
        contact fetch propagates.
        """
        contact = await self.get_contact(credential, contact_id)

        notes: List[Note] = []
        try:
            notes = await self.get_contact_notes(credential, contact_id)
        except SocialScribeException as e:
            self.logger.warning(f"Could not fetch notes for contact {contact_id}: {str(e)}")

        tasks: List[Task] = []
        try:
            tasks = await self.get_contact_tasks(credential, contact_id)
        except SocialScribeException as e:
            self.logger.warning(f"Could not fetch tasks for contact {contact_id}: {str(e)}")

        return contact.model_copy(update={"notes": notes, "tasks": tasks})

    async def apply_updates(
        self, credential: Credential, contact_id: str, suggestions: List[Suggestion]
    ) -> Union[NormalizedContact, NoUpdates]:
        """Push the suggestions marked ``apply`` to the CRM.

        Returns:
            The updated contact, or NoUpdates when nothing was selected
        """
        updates = {
            suggestion.field: suggestion.new_value
            for suggestion in suggestions
            if suggestion.apply is True
        }
        if not updates:
            return NoUpdates(contact_id=contact_id)

        self.logger.info(f"Updating {len(updates)} field(s) on {self._name} contact {contact_id}")
        return await self.update_contact(credential, contact_id, updates)
