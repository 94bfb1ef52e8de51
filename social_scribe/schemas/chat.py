"""Schemas for CRM chat turns."""

from typing import List, Optional

from pydantic import BaseModel, Field

from social_scribe.schemas.contact import NormalizedContact
from social_scribe.schemas.credential import CRMProvider


class ChatSource(BaseModel):
    """A CRM record an answer was grounded on."""

    type: str = "crm_contact"
    provider: CRMProvider
    contact_id: str
    contact_name: Optional[str] = None


class ChatAnswer(BaseModel):
    """One question/answer turn about CRM contacts."""

    question: str
    answer: str
    provider: Optional[CRMProvider] = None
    contact: Optional[NormalizedContact] = None
    sources: List[ChatSource] = Field(default_factory=list)
