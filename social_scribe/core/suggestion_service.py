"""Suggestion service diffing AI-extracted field values against CRM contacts."""

from typing import Any, Dict, List, Optional, Union

from social_scribe.core.contact_service import ContactService
from social_scribe.core.exceptions import UnsupportedProviderError
from social_scribe.platform.ai._base import BaseAIContentGenerator
from social_scribe.platform.field_config import field_label, is_supported, to_provider
from social_scribe.schemas.contact import NormalizedContact, get_contact_field
from social_scribe.schemas.credential import Credential, CRMProvider
from social_scribe.schemas.suggestion import AISuggestion, Suggestion, SuggestionsForContact

AISuggestionLike = Union[AISuggestion, Dict[str, Any]]


def _to_ai_suggestion(value: AISuggestionLike) -> AISuggestion:
    if isinstance(value, AISuggestion):
        return value
    return AISuggestion.model_validate(value)


class SuggestionService:
    """Turns AI-extracted field values into reviewable contact updates.

    A suggestion is only surfaced when its value differs from what the CRM
    holds. ``None`` and ``""`` are different values.
    """

    def __init__(self, ai_generator: BaseAIContentGenerator, contact_service: ContactService):
        """Initialize the service.

        Args:
            ai_generator: Extracts suggestions from meeting transcripts
            contact_service: Provides the CRM clients
        """
        self.ai_generator = ai_generator
        self.contact_service = contact_service

    @staticmethod
    def format_suggestions(
        ai_suggestions: List[AISuggestionLike],
        contact: Optional[Union[NormalizedContact, Dict[str, Any]]],
        provider: Union[CRMProvider, str, None],
    ) -> List[Suggestion]:
        """Diff AI suggestions against a contact, keeping only actual changes."""
        suggestions = []
        for item in ai_suggestions:
            ai_suggestion = _to_ai_suggestion(item)
            current_value = get_contact_field(contact, ai_suggestion.field)
            suggestions.append(
                Suggestion(
                    field=ai_suggestion.field,
                    label=field_label(provider, ai_suggestion.field),
                    current_value=current_value,
                    new_value=ai_suggestion.value,
                    context=ai_suggestion.context,
                    timestamp=ai_suggestion.timestamp,
                    apply=True,
                    has_change=current_value != ai_suggestion.value,
                )
            )
        return [suggestion for suggestion in suggestions if suggestion.has_change]

    @staticmethod
    def merge_with_contact(
        suggestions: List[Suggestion],
        contact: Optional[Union[NormalizedContact, Dict[str, Any]]],
    ) -> List[Suggestion]:
        """Recompute current values against a contact and drop unchanged fields.

        Every surviving suggestion is re-selected for applying. Merging the
        result again with the same contact returns it unchanged.
        """
        merged = []
        for suggestion in suggestions:
            current_value = get_contact_field(contact, suggestion.field)
            merged.append(
                suggestion.model_copy(
                    update={
                        "current_value": current_value,
                        "has_change": current_value != suggestion.new_value,
                        "apply": True,
                    }
                )
            )
        return [suggestion for suggestion in merged if suggestion.has_change]

    async def generate_suggestions(
        self,
        credential: Credential,
        contact_id: str,
        meeting: str,
        provider: Union[CRMProvider, str],
    ) -> SuggestionsForContact:
        """Fetch a contact and diff the meeting's AI suggestions against it.

        Raises:
            UnsupportedProviderError: If the provider has no client
        """
        key = to_provider(provider)
        if key is None or not is_supported(key):
            raise UnsupportedProviderError(provider)

        client = self.contact_service.get_client(key)
        contact = await client.get_contact(credential, contact_id)
        ai_suggestions = await self.ai_generator.generate_crm_suggestions(meeting, key)

        return SuggestionsForContact(
            contact=contact,
            suggestions=self.format_suggestions(ai_suggestions, contact, key),
        )

    async def generate_suggestions_from_meeting(
        self, meeting: str, provider: Union[CRMProvider, str]
    ) -> List[Suggestion]:
        """Build suggestions before a contact is selected.

        Nothing is known about current values yet, so every suggestion counts as
        a change. ``merge_with_contact`` narrows them down once a contact is
        chosen.
        """
        key = to_provider(provider)
        if key is None:
            raise UnsupportedProviderError(provider)

        ai_suggestions = await self.ai_generator.generate_crm_suggestions(meeting, key)
        return [
            Suggestion(
                field=ai_suggestion.field,
                label=field_label(key, ai_suggestion.field),
                current_value=None,
                new_value=ai_suggestion.value,
                context=ai_suggestion.context,
                timestamp=ai_suggestion.timestamp,
                apply=True,
                has_change=True,
            )
            for ai_suggestion in map(_to_ai_suggestion, ai_suggestions)
        ]
