"""Unit tests for the HubSpot CRM client."""

import json

import httpx
import pytest

from social_scribe.core.exceptions import ContactNotFoundException, CRMApiError, CRMTransportError
from social_scribe.platform.crm.hubspot import HubSpotClient
from social_scribe.schemas.credential import CRMProvider
from social_scribe.schemas.suggestion import NoUpdates, Suggestion

BASE = "https://api.hubapi.com"


def contact_payload(contact_id="101", **properties):
    defaults = {"firstname": "Jane", "lastname": "Doe", "email": "jane@acme.com"}
    defaults.update(properties)
    return {"id": contact_id, "properties": defaults}


def make_client(token_guardian, handler) -> HubSpotClient:
    return HubSpotClient(token_guardian, transport=httpx.MockTransport(handler))


class TestHubSpotSearch:
    """Tests for contact search."""

    @pytest.mark.asyncio
    async def test_search_contacts(self, token_guardian, hubspot_credential):
        """Search posts the query and normalizes the results."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200,
                json={
                    "results": [
                        contact_payload(
                            "101",
                            hs_linkedin_url="https://linkedin.com/in/jane",
                            twitterhandle="@jane",
                        ),
                        contact_payload("102", firstname=None, lastname=None, email="x@acme.com"),
                    ]
                },
            )

        client = make_client(token_guardian, handler)

        contacts = await client.search_contacts(hubspot_credential, "jane")

        request = requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{BASE}/crm/v3/objects/contacts/search"
        assert request.headers["Authorization"] == "Bearer old-token"
        body = json.loads(request.content)
        assert body["query"] == "jane"
        assert body["limit"] == 10
        assert "hs_linkedin_url" in body["properties"]

        assert [c.id for c in contacts] == ["101", "102"]
        assert contacts[0].crm_provider == CRMProvider.HUBSPOT
        assert contacts[0].display_name == "Jane Doe"
        assert contacts[0].linkedin_url == "https://linkedin.com/in/jane"
        assert contacts[0].twitter_handle == "@jane"
        assert contacts[0].department is None
        assert contacts[1].display_name == "x@acme.com"

    @pytest.mark.asyncio
    async def test_server_error_raises_api_error(self, token_guardian, hubspot_credential):
        """Non-auth failures surface as CRMApiError with status and body."""
        client = make_client(
            token_guardian, lambda request: httpx.Response(500, json={"message": "oops"})
        )

        with pytest.raises(CRMApiError) as exc_info:
            await client.search_contacts(hubspot_credential, "jane")

        assert exc_info.value.status_code == 500
        assert exc_info.value.body == {"message": "oops"}

    @pytest.mark.asyncio
    async def test_network_error_raises_transport_error(self, token_guardian, hubspot_credential):
        """Connection failures surface as CRMTransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(token_guardian, handler)

        with pytest.raises(CRMTransportError) as exc_info:
            await client.search_contacts(hubspot_credential, "jane")

        assert "connection refused" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_records_without_id_are_skipped(self, token_guardian, hubspot_credential):
        """Search results lacking an ID are dropped instead of normalized."""
        client = make_client(
            token_guardian,
            lambda request: httpx.Response(
                200,
                json={"results": [{"properties": {"firstname": "Ghost"}}, contact_payload("101")]},
            ),
        )

        contacts = await client.search_contacts(hubspot_credential, "jane")

        assert [c.id for c in contacts] == ["101"]


class TestHubSpotMalformedBodies:
    """Tests for 2xx answers whose body cannot be read."""

    @pytest.mark.asyncio
    async def test_non_json_contact_raises_api_error(self, token_guardian, hubspot_credential):
        """A body that is not JSON surfaces as CRMApiError carrying the raw text."""
        client = make_client(
            token_guardian, lambda request: httpx.Response(200, text="<html>gateway</html>")
        )

        with pytest.raises(CRMApiError) as exc_info:
            await client.get_contact(hubspot_credential, "101")

        assert exc_info.value.status_code == 200
        assert exc_info.value.body == "<html>gateway</html>"

    @pytest.mark.asyncio
    async def test_non_object_search_body_raises_api_error(
        self, token_guardian, hubspot_credential
    ):
        """A JSON body that is not an object is rejected the same way."""
        client = make_client(token_guardian, lambda request: httpx.Response(200, json=[1, 2]))

        with pytest.raises(CRMApiError):
            await client.search_contacts(hubspot_credential, "jane")


class TestHubSpotContact:
    """Tests for single-contact operations."""

    @pytest.mark.asyncio
    async def test_get_contact_not_found(self, token_guardian, hubspot_credential):
        """A 404 becomes ContactNotFoundException."""
        client = make_client(token_guardian, lambda request: httpx.Response(404, json={}))

        with pytest.raises(ContactNotFoundException) as exc_info:
            await client.get_contact(hubspot_credential, "999")

        assert exc_info.value.contact_id == "999"

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed_and_retried(
        self, token_guardian, hubspot_credential, mock_refresher
    ):
        """An UNAUTHORIZED answer triggers one refresh and a retry with the new token."""
        tokens = []

        def handler(request: httpx.Request) -> httpx.Response:
            tokens.append(request.headers["Authorization"])
            if request.headers["Authorization"] == "Bearer old-token":
                return httpx.Response(
                    401, json={"status": "error", "message": "Authentication credentials expired"}
                )
            return httpx.Response(200, json=contact_payload("101"))

        client = make_client(token_guardian, handler)

        contact = await client.get_contact(hubspot_credential, "101")

        assert contact.id == "101"
        assert tokens == ["Bearer old-token", "Bearer new-token"]
        mock_refresher.refresh_access_token.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_contact_maps_fields(self, token_guardian, hubspot_credential):
        """Canonical field names are translated to HubSpot properties."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(
                200, json=contact_payload("101", jobtitle="CTO", hs_linkedin_url="https://l.in/j")
            )

        client = make_client(token_guardian, handler)

        contact = await client.update_contact(
            hubspot_credential, "101", {"jobtitle": "CTO", "linkedin_url": "https://l.in/j"}
        )

        assert requests[0].method == "PATCH"
        assert str(requests[0].url) == f"{BASE}/crm/v3/objects/contacts/101"
        assert json.loads(requests[0].content) == {
            "properties": {"jobtitle": "CTO", "hs_linkedin_url": "https://l.in/j"}
        }
        assert contact.jobtitle == "CTO"
        assert contact.linkedin_url == "https://l.in/j"

    @pytest.mark.asyncio
    async def test_apply_updates_sends_only_selected(self, token_guardian, hubspot_credential):
        """Only suggestions marked apply are written."""
        bodies = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=contact_payload("101", phone="555"))

        client = make_client(token_guardian, handler)
        suggestions = [
            Suggestion(field="phone", label="Phone", new_value="555", apply=True),
            Suggestion(field="city", label="City", new_value="Paris", apply=False),
        ]

        await client.apply_updates(hubspot_credential, "101", suggestions)

        assert bodies == [{"properties": {"phone": "555"}}]

    @pytest.mark.asyncio
    async def test_apply_updates_without_selection_makes_no_request(
        self, token_guardian, hubspot_credential
    ):
        """Nothing selected returns NoUpdates and never touches the CRM."""
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={})

        client = make_client(token_guardian, handler)
        suggestions = [Suggestion(field="phone", label="Phone", new_value="555", apply=False)]

        result = await client.apply_updates(hubspot_credential, "101", suggestions)

        assert isinstance(result, NoUpdates)
        assert result.contact_id == "101"
        assert requests == []


class TestHubSpotContext:
    """Tests for notes, tasks and the combined context fetch."""

    @staticmethod
    def context_handler(fail_tasks: bool = False, garbled_notes: bool = False):
        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/crm/v3/objects/contacts/101":
                return httpx.Response(200, json=contact_payload("101"))
            if path == "/crm/v3/associations/contact/note/batch/read":
                if garbled_notes:
                    return httpx.Response(200, text="<html>gateway</html>")
                return httpx.Response(
                    200, json={"results": [{"from": {"id": "101"}, "to": [{"id": "n1"}]}]}
                )
            if path == "/crm/v3/objects/notes/batch/read":
                assert json.loads(request.content)["inputs"] == [{"id": "n1"}]
                return httpx.Response(
                    200,
                    json={
                        "results": [
                            {
                                "id": "n1",
                                "properties": {
                                    "hs_note_body": "Discussed renewal",
                                    "hs_timestamp": "1700000000000",
                                    "hubspot_owner_id": "77",
                                },
                            }
                        ]
                    },
                )
            if path == "/crm/v3/associations/contact/task/batch/read":
                if fail_tasks:
                    return httpx.Response(500, json={"message": "internal"})
                return httpx.Response(200, json={"results": []})
            return httpx.Response(404, json={})

        return handler

    @pytest.mark.asyncio
    async def test_get_contact_notes(self, token_guardian, hubspot_credential):
        """Notes are resolved through associations and batch read."""
        client = make_client(token_guardian, self.context_handler())

        notes = await client.get_contact_notes(hubspot_credential, "101")

        assert len(notes) == 1
        assert notes[0].body == "Discussed renewal"
        assert notes[0].owner_id == "77"
        assert notes[0].created_at.year == 2023

    @pytest.mark.asyncio
    async def test_no_associations_returns_empty(self, token_guardian, hubspot_credential):
        """A contact without tasks has an empty task list."""
        client = make_client(token_guardian, self.context_handler())

        assert await client.get_contact_tasks(hubspot_credential, "101") == []

    @pytest.mark.asyncio
    async def test_failing_sub_fetch_degrades_to_empty(self, token_guardian, hubspot_credential):
        """A failing tasks fetch does not fail the contact fetch."""
        client = make_client(token_guardian, self.context_handler(fail_tasks=True))

        contact = await client.get_contact_with_context(hubspot_credential, "101")

        assert contact.id == "101"
        assert [note.id for note in contact.notes] == ["n1"]
        assert contact.tasks == []

    @pytest.mark.asyncio
    async def test_non_json_sub_fetch_degrades_to_empty(self, token_guardian, hubspot_credential):
        """A 2xx notes answer that is not JSON leaves the notes empty."""
        client = make_client(token_guardian, self.context_handler(garbled_notes=True))

        contact = await client.get_contact_with_context(hubspot_credential, "101")

        assert contact.id == "101"
        assert contact.notes == []
        assert contact.tasks == []

    @pytest.mark.asyncio
    async def test_note_prefers_creation_date(self, token_guardian, hubspot_credential):
        """The note date is hs_createdate, with hs_timestamp as fallback."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.startswith("/crm/v3/associations/"):
                return httpx.Response(
                    200, json={"results": [{"from": {"id": "101"}, "to": [{"id": "n1"}]}]}
                )
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "id": "n1",
                            "properties": {
                                "hs_note_body": "Kickoff",
                                "hs_createdate": "2022-05-01T10:00:00Z",
                                "hs_timestamp": "1700000000000",
                            },
                        },
                        {"properties": {"hs_note_body": "orphan"}},
                    ]
                },
            )

        client = make_client(token_guardian, handler)

        notes = await client.get_contact_notes(hubspot_credential, "101")

        assert [note.id for note in notes] == ["n1"]
        assert notes[0].created_at.year == 2022


class TestHubSpotTokenErrors:
    """Tests for the auth-error predicate."""

    @pytest.mark.parametrize(
        "status, body, expected",
        [
            (401, {"status": "UNAUTHORIZED"}, True),
            (400, {"status": "BAD_CLIENT_ID"}, True),
            (400, {"message": "The OAuth token used to make this call expired"}, True),
            (401, {"message": "Invalid Client ID"}, True),
            (400, {"message": "Property values were not valid"}, False),
            (401, None, False),
            (500, {"status": "UNAUTHORIZED"}, False),
            (403, {"message": "token scopes missing"}, False),
        ],
    )
    def test_is_token_error(self, token_guardian, status, body, expected):
        """Only 400/401 answers naming the token count as auth errors."""
        client = HubSpotClient(token_guardian)

        assert client.is_token_error(CRMApiError(status, body)) is expected
