"""HubSpot CRM client."""

from typing import Any, Dict, List

from social_scribe.core.config import settings
from social_scribe.core.datetime_utils import parse_epoch_or_iso
from social_scribe.core.exceptions import ContactNotFoundException, CRMApiError
from social_scribe.platform.crm._base import BaseCRMClient
from social_scribe.platform.decorators import crm_client
from social_scribe.schemas.contact import NormalizedContact, Note, Task, build_display_name
from social_scribe.schemas.credential import Credential, CRMProvider

CONTACT_PROPERTIES = [
    "firstname",
    "lastname",
    "email",
    "phone",
    "mobilephone",
    "company",
    "jobtitle",
    "address",
    "city",
    "state",
    "zip",
    "country",
    "website",
    "hs_linkedin_url",
    "twitterhandle",
]

NOTE_PROPERTIES = ["hs_note_body", "hs_timestamp", "hubspot_owner_id", "hs_createdate"]

TASK_PROPERTIES = [
    "hs_task_subject",
    "hs_task_body",
    "hs_task_status",
    "hs_task_priority",
    "hs_timestamp",
    "hs_createdate",
]

# Canonical field -> HubSpot property, where the names differ.
FIELD_TO_PROPERTY = {
    "linkedin_url": "hs_linkedin_url",
    "twitter_handle": "twitterhandle",
}
PROPERTY_TO_FIELD = {prop: field for field, prop in FIELD_TO_PROPERTY.items()}

TOKEN_ERROR_STATUSES = {"BAD_CLIENT_ID", "UNAUTHORIZED"}
TOKEN_ERROR_MARKERS = ("token", "expired", "unauthorized", "client id")

MAX_NOTES = 10
MAX_TASKS = 5


@crm_client(name="HubSpot", provider=CRMProvider.HUBSPOT, api_version="v3")
class HubSpotClient(BaseCRMClient):
    """HubSpot CRM client.

    Talks to the CRM v3 objects API for contacts and to the associations API
    for the notes and tasks linked to a contact.
    """

    @property
    def base_url(self) -> str:
        """Base URL of the HubSpot API."""
        return settings.HUBSPOT_API_BASE_URL

    @property
    def api_url(self) -> str:
        """Versioned root of the CRM objects and associations APIs."""
        return f"{self.base_url}/crm/{self._api_version}"

    def is_token_error(self, error: CRMApiError) -> bool:
        """Check whether HubSpot rejected the access token.

        Only 400 and 401 answers qualify, and only when the body carries a
        BAD_CLIENT_ID or UNAUTHORIZED status or a message about the token.
        """
        if error.status_code not in (400, 401):
            return False
        body = error.body if isinstance(error.body, dict) else {}
        if body.get("status") in TOKEN_ERROR_STATUSES:
            return True
        message = body.get("message")
        if not isinstance(message, str):
            return False
        return any(marker in message.lower() for marker in TOKEN_ERROR_MARKERS)

    async def search_contacts(self, credential: Credential, query: str) -> List[NormalizedContact]:
        """Search contacts through the CRM search endpoint."""

        async def api_call(current: Credential) -> List[NormalizedContact]:
            response = await self._request(
                "POST",
                f"{self.api_url}/objects/contacts/search",
                current.access_token,
                json={
                    "query": query,
                    "limit": settings.CRM_SEARCH_PAGE_SIZE,
                    "properties": CONTACT_PROPERTIES,
                },
            )
            results = self._records(response, "results")
            contacts = [self.format_contact(item) for item in results if item.get("id")]
            return contacts[: settings.CRM_SEARCH_PAGE_SIZE]

        return await self._with_token(credential, api_call)

    async def get_contact(self, credential: Credential, contact_id: str) -> NormalizedContact:
        """Get a contact by ID."""

        async def api_call(current: Credential) -> NormalizedContact:
            try:
                response = await self._request(
                    "GET",
                    f"{self.api_url}/objects/contacts/{contact_id}",
                    current.access_token,
                    params={"properties": ",".join(CONTACT_PROPERTIES)},
                )
            except CRMApiError as e:
                if e.status_code == 404:
                    raise ContactNotFoundException(self.provider_name, contact_id) from e
                raise
            return self.format_contact({"id": contact_id, **self._json(response)})

        return await self._with_token(credential, api_call)

    async def update_contact(
        self, credential: Credential, contact_id: str, updates: Dict[str, Any]
    ) -> NormalizedContact:
        """Update contact properties, translating canonical field names."""
        properties = {
            FIELD_TO_PROPERTY.get(field, field): value for field, value in updates.items()
        }

        async def api_call(current: Credential) -> NormalizedContact:
            try:
                response = await self._request(
                    "PATCH",
                    f"{self.api_url}/objects/contacts/{contact_id}",
                    current.access_token,
                    json={"properties": properties},
                )
            except CRMApiError as e:
                if e.status_code == 404:
                    raise ContactNotFoundException(self.provider_name, contact_id) from e
                raise
            return self.format_contact({"id": contact_id, **self._json(response)})

        return await self._with_token(credential, api_call)

    async def get_contact_notes(self, credential: Credential, contact_id: str) -> List[Note]:
        """Get the most recent notes associated with a contact."""

        async def api_call(current: Credential) -> List[Note]:
            records = await self._get_associated(
                current, contact_id, "notes", NOTE_PROPERTIES, MAX_NOTES
            )
            return [self.format_note(record) for record in records if record.get("id")]

        return await self._with_token(credential, api_call)

    async def get_contact_tasks(self, credential: Credential, contact_id: str) -> List[Task]:
        """Get the tasks associated with a contact."""

        async def api_call(current: Credential) -> List[Task]:
            records = await self._get_associated(
                current, contact_id, "tasks", TASK_PROPERTIES, MAX_TASKS
            )
            return [self.format_task(record) for record in records if record.get("id")]

        return await self._with_token(credential, api_call)

    async def _get_associated(
        self,
        credential: Credential,
        contact_id: str,
        object_type: str,
        properties: List[str],
        limit: int,
    ) -> List[Dict[str, Any]]:
        """Read the objects of one type associated with a contact.

        Resolves the association IDs first, then batch-reads the objects.
        """
        association_type = object_type.rstrip("s")
        response = await self._request(
            "POST",
            f"{self.api_url}/associations/contact/{association_type}/batch/read",
            credential.access_token,
            json={"inputs": [{"id": contact_id}]},
        )
        results = self._records(response, "results")
        if not results:
            return []

        associated = results[0].get("to") or []
        ids = [str(item["id"]) for item in associated if isinstance(item, dict) and item.get("id")]
        ids = ids[:limit]
        if not ids:
            return []

        response = await self._request(
            "POST",
            f"{self.api_url}/objects/{object_type}/batch/read",
            credential.access_token,
            json={"inputs": [{"id": object_id} for object_id in ids], "properties": properties},
        )
        return self._records(response, "results")

    @staticmethod
    def format_contact(data: Dict[str, Any]) -> NormalizedContact:
        """Normalize a HubSpot contact object."""
        properties = data.get("properties") or {}
        fields = {
            PROPERTY_TO_FIELD.get(prop, prop): properties.get(prop) for prop in CONTACT_PROPERTIES
        }
        return NormalizedContact(
            id=str(data.get("id")),
            crm_provider=CRMProvider.HUBSPOT,
            display_name=build_display_name(
                fields.get("firstname"), fields.get("lastname"), fields.get("email")
            ),
            **fields,
        )

    @staticmethod
    def format_note(data: Dict[str, Any]) -> Note:
        """Normalize a HubSpot note object."""
        properties = data.get("properties") or {}
        return Note(
            id=str(data.get("id")),
            body=properties.get("hs_note_body"),
            created_at=parse_epoch_or_iso(
                properties.get("hs_createdate") or properties.get("hs_timestamp")
            ),
            owner_id=properties.get("hubspot_owner_id"),
        )

    @staticmethod
    def format_task(data: Dict[str, Any]) -> Task:
        """Normalize a HubSpot task object."""
        properties = data.get("properties") or {}
        return Task(
            id=str(data.get("id")),
            subject=properties.get("hs_task_subject"),
            description=properties.get("hs_task_body"),
            status=properties.get("hs_task_status"),
            priority=properties.get("hs_task_priority"),
            due_date=parse_epoch_or_iso(properties.get("hs_timestamp")),
            created_at=parse_epoch_or_iso(properties.get("hs_createdate")),
        )
