"""Chat service sequencing one question/answer turn about CRM contacts."""

import re
from typing import List, Optional, Union

from social_scribe.core.contact_service import ContactService
from social_scribe.core.exceptions import NoCredentialError, UnsupportedProviderError
from social_scribe.core.logging import logger
from social_scribe.platform.ai._base import BaseAIContentGenerator
from social_scribe.platform.field_config import display_name, to_provider
from social_scribe.schemas.chat import ChatAnswer, ChatSource
from social_scribe.schemas.contact import NormalizedContact
from social_scribe.schemas.credential import Credential, CRMProvider

CONTACT_KEYWORDS = ("name", "email", "phone", "company", "jobtitle")
STOPWORDS_PATTERN = re.compile(r"\b(?:what's|what is|about|for|the|a|an|in|at)\b")
TITLE_MAX_LENGTH = 50


class ChatService:
    """Answers user questions about contacts in their connected CRMs."""

    def __init__(self, ai_generator: BaseAIContentGenerator, contact_service: ContactService):
        """Initialize the service.

        Args:
            ai_generator: Produces the answer text
            contact_service: Resolves credentials and contacts
        """
        self.ai_generator = ai_generator
        self.contact_service = contact_service

    async def ask_question(
        self,
        user_id: str,
        question: str,
        contact_id: Optional[str] = None,
        provider: Union[CRMProvider, str, None] = None,
    ) -> ChatAnswer:
        """Answer a question, grounded in a contact when one is given.

        Without a provider the user's preferred CRM is used. When no CRM is
        connected the question is answered without contact data.
        """
        credential = await self.contact_service.get_connected_crm(user_id, provider)
        resolved_provider = credential.provider if credential else None

        contact = await self.contact_service.fetch_contact_data(credential, contact_id)
        answer = await self.ai_generator.answer_crm_question(question, contact, resolved_provider)

        logger.with_context(user_id=user_id).info(
            f"Answered CRM question (provider={resolved_provider}, contact={contact_id})"
        )
        return ChatAnswer(
            question=question,
            answer=answer,
            provider=resolved_provider,
            contact=contact,
            sources=self.build_sources(contact, resolved_provider),
        )

    @staticmethod
    def build_sources(
        contact: Optional[NormalizedContact], provider: Optional[CRMProvider]
    ) -> List[ChatSource]:
        """Describe the contact an answer was grounded on."""
        if contact is None or provider is None:
            return []
        return [
            ChatSource(
                provider=provider,
                contact_id=contact.id,
                contact_name=contact.display_name,
            )
        ]

    async def answer_about_contacts(
        self,
        question: str,
        provider: Union[CRMProvider, str],
        credential: Optional[Credential],
        selected_contacts: Optional[List[NormalizedContact]] = None,
    ) -> str:
        """Answer a question using selected contacts or a CRM search as context.

        When no contacts are selected, a search term is guessed from the
        question. Questions without one are answered without context.

        Raises:
            NoCredentialError: If no credential is given
            UnsupportedProviderError: If the provider has no client
        """
        key = to_provider(provider)
        if key is None:
            raise UnsupportedProviderError(provider)
        if credential is None:
            raise NoCredentialError()

        if selected_contacts:
            context = self.format_contacts_for_context(selected_contacts)
        else:
            search_term = self.extract_search_terms(question)
            if search_term is None:
                context = ""
            else:
                client = self.contact_service.get_client(key)
                contacts = await client.search_contacts(credential, search_term)
                context = self.format_contacts_for_context(contacts)

        prompt = self.build_prompt(question, context, key)
        return await self.ai_generator.answer_crm_question(prompt, None, key)

    @staticmethod
    def extract_search_terms(question: str) -> Optional[str]:
        """Guess a contact search term from a question.

        Only questions mentioning a contact attribute yield a term: the first
        fragment of at least two characters left after removing filler words.
        """
        lowered = question.lower()
        if not any(keyword in lowered for keyword in CONTACT_KEYWORDS):
            return None

        for fragment in STOPWORDS_PATTERN.split(lowered):
            term = fragment.strip()
            if len(term) >= 2:
                return term
        return None

    @staticmethod
    def format_contacts_for_context(contacts: List[NormalizedContact]) -> str:
        """Render contacts as plain text for a prompt."""
        blocks = []
        for contact in contacts:
            blocks.append(
                f"Contact: {contact.firstname or ''} {contact.lastname or ''}\n"
                f"Email: {contact.email or 'N/A'}\n"
                f"Phone: {contact.phone or 'N/A'}\n"
                f"Company: {contact.company or 'N/A'}"
            )
        return "\n\n".join(blocks)

    @staticmethod
    def build_prompt(question: str, context: str, provider: CRMProvider) -> str:
        """Build the prompt answering a question from contact context."""
        context_text = ""
        if context:
            context_text = (
                f"\n\nHere is relevant contact information from {display_name(provider)}:\n"
                f"{context}"
            )
        return (
            "You are a helpful assistant that answers questions about CRM contacts.\n\n"
            f"User question: {question}{context_text}\n\n"
            "Please answer the user's question based on the contact information provided.\n"
            "Be concise and natural in your response. If you don't have enough information "
            "to answer, say so and suggest how to get more information."
        )

    @staticmethod
    def conversation_title(question: str) -> str:
        """Title a conversation after its first question."""
        if len(question) > TITLE_MAX_LENGTH:
            return question[:TITLE_MAX_LENGTH] + "..."
        return question
