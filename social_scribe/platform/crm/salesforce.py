"""Salesforce CRM client."""

from typing import Any, Dict, List

from social_scribe.core.config import settings
from social_scribe.core.datetime_utils import parse_iso_datetime
from social_scribe.core.exceptions import ContactNotFoundException, CRMApiError
from social_scribe.platform.crm._base import BaseCRMClient
from social_scribe.platform.decorators import crm_client
from social_scribe.schemas.contact import NormalizedContact, Note, Task, build_display_name
from social_scribe.schemas.credential import Credential, CRMProvider

CONTACT_FIELDS = [
    "Id",
    "FirstName",
    "LastName",
    "Email",
    "Phone",
    "MobilePhone",
    "Title",
    "Department",
    "MailingStreet",
    "MailingCity",
    "MailingState",
    "MailingPostalCode",
    "MailingCountry",
]

# Canonical field -> Salesforce Contact field. Unmapped fields are sent as-is.
FIELD_MAPPING = {
    "firstname": "FirstName",
    "lastname": "LastName",
    "email": "Email",
    "phone": "Phone",
    "mobilephone": "MobilePhone",
    "jobtitle": "Title",
    "department": "Department",
    "address": "MailingStreet",
    "city": "MailingCity",
    "state": "MailingState",
    "zip": "MailingPostalCode",
    "country": "MailingCountry",
}

TOKEN_ERROR_CODES = {"INVALID_SESSION_ID", "INVALID_AUTH_HEADER", "SESSION_EXPIRED"}

MAX_NOTES = 10
MAX_TASKS = 5


def escape_soql(value: str) -> str:
    """Escape a string for use inside a single-quoted SOQL literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


@crm_client(
    name="Salesforce", provider=CRMProvider.SALESFORCE, api_version=settings.SALESFORCE_API_VERSION
)
class SalesforceClient(BaseCRMClient):
    """Salesforce CRM client.

    Requests go to the instance URL stored on the credential. Notes are
    Tasks with a description, since that is where call notes land in
    Salesforce.
    """

    def base_url(self, credential: Credential) -> str:
        """Return the instance URL of a credential, or the login host."""
        instance_url = credential.provider_instance_identifier
        if instance_url and instance_url.startswith("https://"):
            return instance_url.rstrip("/")
        return settings.SALESFORCE_LOGIN_URL

    def api_url(self, credential: Credential) -> str:
        """Return the versioned REST API root for a credential."""
        return f"{self.base_url(credential)}/services/data/{self._api_version}"

    def is_token_error(self, error: CRMApiError) -> bool:
        """Check whether Salesforce rejected the session.

        Any 401 counts. Other statuses count when the error list names an
        invalid or expired session.
        """
        if error.status_code == 401:
            return True
        if not isinstance(error.body, list):
            return False
        return any(
            isinstance(item, dict) and item.get("errorCode") in TOKEN_ERROR_CODES
            for item in error.body
        )

    async def _query(self, credential: Credential, soql: str) -> List[Dict[str, Any]]:
        response = await self._request(
            "GET",
            f"{self.api_url(credential)}/query",
            credential.access_token,
            params={"q": soql},
        )
        return self._records(response, "records")

    async def search_contacts(self, credential: Credential, query: str) -> List[NormalizedContact]:
        """Search contacts by name or email with a SOQL LIKE query."""
        term = escape_soql(query)
        soql = (
            f"SELECT {', '.join(CONTACT_FIELDS)} FROM Contact "
            f"WHERE FirstName LIKE '%{term}%' OR LastName LIKE '%{term}%' "
            f"OR Email LIKE '%{term}%' OR Name LIKE '%{term}%' "
            f"LIMIT {settings.CRM_SEARCH_PAGE_SIZE}"
        )

        async def api_call(current: Credential) -> List[NormalizedContact]:
            records = await self._query(current, soql)
            return [self.format_contact(record) for record in records if record.get("Id")]

        return await self._with_token(credential, api_call)

    async def _fetch_contact(self, credential: Credential, contact_id: str) -> NormalizedContact:
        try:
            response = await self._request(
                "GET",
                f"{self.api_url(credential)}/sobjects/Contact/{contact_id}",
                credential.access_token,
                params={"fields": ",".join(CONTACT_FIELDS)},
            )
        except CRMApiError as e:
            if e.status_code == 404:
                raise ContactNotFoundException(self.provider_name, contact_id) from e
            raise
        return self.format_contact({"Id": contact_id, **self._json(response)})

    async def get_contact(self, credential: Credential, contact_id: str) -> NormalizedContact:
        """Get a contact by ID."""

        async def api_call(current: Credential) -> NormalizedContact:
            return await self._fetch_contact(current, contact_id)

        return await self._with_token(credential, api_call)

    async def update_contact(
        self, credential: Credential, contact_id: str, updates: Dict[str, Any]
    ) -> NormalizedContact:
        """Update a contact and return it as stored after the write.

        Salesforce answers a successful PATCH with 204 and no body, so the
        contact is read back.
        """
        fields = {FIELD_MAPPING.get(field, field): value for field, value in updates.items()}

        async def api_call(current: Credential) -> NormalizedContact:
            try:
                response = await self._request(
                    "PATCH",
                    f"{self.api_url(current)}/sobjects/Contact/{contact_id}",
                    current.access_token,
                    json=fields,
                )
            except CRMApiError as e:
                if e.status_code == 404:
                    raise ContactNotFoundException(self.provider_name, contact_id) from e
                raise
            body = self._decode_body(response)
            if isinstance(body, dict) and body.get("Id"):
                return self.format_contact(body)
            return await self._fetch_contact(current, contact_id)

        return await self._with_token(credential, api_call)

    async def get_contact_notes(self, credential: Credential, contact_id: str) -> List[Note]:
        """Get the newest Tasks with a description, as notes."""
        soql = (
            "SELECT Id, Subject, Description, ActivityDate, CreatedDate FROM Task "
            f"WHERE WhoId = '{escape_soql(contact_id)}' AND Description != null "
            f"ORDER BY CreatedDate DESC LIMIT {MAX_NOTES}"
        )

        async def api_call(current: Credential) -> List[Note]:
            records = await self._query(current, soql)
            return [self.format_note(record) for record in records if record.get("Id")]

        return await self._with_token(credential, api_call)

    async def get_contact_tasks(self, credential: Credential, contact_id: str) -> List[Task]:
        """Get the contact's Tasks ordered by activity date."""
        soql = (
            "SELECT Id, Subject, Description, Status, Priority, ActivityDate, CreatedDate "
            f"FROM Task WHERE WhoId = '{escape_soql(contact_id)}' "
            f"ORDER BY ActivityDate DESC NULLS LAST LIMIT {MAX_TASKS}"
        )

        async def api_call(current: Credential) -> List[Task]:
            records = await self._query(current, soql)
            return [self.format_task(record) for record in records if record.get("Id")]

        return await self._with_token(credential, api_call)

    @staticmethod
    def format_contact(record: Dict[str, Any]) -> NormalizedContact:
        """Normalize a Salesforce Contact record."""
        fields = {field: record.get(sf_field) for field, sf_field in FIELD_MAPPING.items()}
        return NormalizedContact(
            id=str(record.get("Id")),
            crm_provider=CRMProvider.SALESFORCE,
            display_name=build_display_name(
                fields.get("firstname"), fields.get("lastname"), fields.get("email")
            ),
            **fields,
        )

    @staticmethod
    def format_note(record: Dict[str, Any]) -> Note:
        """Normalize a Task record carrying a description."""
        return Note(
            id=str(record.get("Id")),
            subject=record.get("Subject"),
            body=record.get("Description"),
            created_at=parse_iso_datetime(record.get("CreatedDate")),
        )

    @staticmethod
    def format_task(record: Dict[str, Any]) -> Task:
        """Normalize a Task record."""
        return Task(
            id=str(record.get("Id")),
            subject=record.get("Subject"),
            description=record.get("Description"),
            status=record.get("Status"),
            priority=record.get("Priority"),
            due_date=parse_iso_datetime(record.get("ActivityDate")),
            created_at=parse_iso_datetime(record.get("CreatedDate")),
        )
