"""Base AI content generator."""

from abc import ABC, abstractmethod
from typing import List, Optional

from social_scribe.schemas.contact import NormalizedContact
from social_scribe.schemas.credential import CRMProvider
from social_scribe.schemas.suggestion import AISuggestion


class BaseAIContentGenerator(ABC):
    """Interface of the language-model functions the core depends on.

    Prompting and response parsing live in the implementation. Errors raised
    here are passed through to callers untouched.
    """

    @abstractmethod
    async def generate_crm_suggestions(
        self, meeting: str, provider: CRMProvider
    ) -> List[AISuggestion]:
        """Extract contact field updates from a meeting transcript.

        Args:
            meeting: The meeting transcript
            provider: The CRM whose extractable fields should be considered

        Returns:
            The suggested field values
        """
        pass

    @abstractmethod
    async def answer_crm_question(
        self,
        question: str,
        contact: Optional[NormalizedContact],
        provider: Optional[CRMProvider],
    ) -> str:
        """Answer a question, optionally grounded in a CRM contact.

        Args:
            question: The user's question, possibly with contact context prepended
            contact: The contact the question is about, if one was resolved
            provider: The CRM the contact comes from

        Returns:
            The answer text
        """
        pass
