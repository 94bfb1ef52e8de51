"""Normalized contact schemas shared by every CRM client.

Each CRM client translates its native records into these shapes. Fields a
provider has no notion of (``company`` for Salesforce, ``department`` for
HubSpot) are left as None.
"""

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import BaseModel, Field

from social_scribe.schemas.credential import CRMProvider


class Note(BaseModel):
    """A note attached to a CRM contact."""

    id: str
    subject: Optional[str] = None
    body: Optional[str] = None
    created_at: Optional[Union[datetime, str]] = None
    owner_id: Optional[str] = None


class Task(BaseModel):
    """A task or activity attached to a CRM contact."""

    id: str
    subject: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[Union[datetime, str]] = None
    created_at: Optional[Union[datetime, str]] = None


class NormalizedContact(BaseModel):
    """Provider-agnostic contact record."""

    id: str = Field(..., description="Provider-native contact ID.")
    crm_provider: CRMProvider

    firstname: Optional[str] = None
    lastname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    mobilephone: Optional[str] = None
    jobtitle: Optional[str] = None
    company: Optional[str] = Field(None, description="HubSpot only.")
    department: Optional[str] = Field(None, description="Salesforce only.")
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = Field(None, description="HubSpot only.")
    linkedin_url: Optional[str] = Field(None, description="HubSpot only.")
    twitter_handle: Optional[str] = Field(None, description="HubSpot only.")
    photo_url: Optional[str] = None

    display_name: str = ""

    notes: List[Note] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)


def build_display_name(
    firstname: Optional[str], lastname: Optional[str], email: Optional[str]
) -> str:
    """Join first and last name, falling back to the email address.

    Returns:
        The trimmed full name, the email when no name is set, or "".
    """
    name = f"{firstname or ''} {lastname or ''}".strip()
    if name:
        return name
    return email or ""


def get_contact_field(contact: Any, field: str) -> Any:
    """Read a canonical field from a contact.

    Accepts a NormalizedContact or a plain mapping. Unknown fields and a missing
    contact both yield None instead of raising.
    """
    if contact is None:
        return None
    if isinstance(contact, BaseModel):
        if field not in type(contact).model_fields:
            return None
        return getattr(contact, field)
    if isinstance(contact, dict):
        return contact.get(field)
    return None
