"""Schemas for AI-suggested CRM field updates."""

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from social_scribe.schemas.contact import NormalizedContact


class AISuggestion(BaseModel):
    """Raw field/value pair extracted by the AI from a meeting transcript."""

    field: str
    value: Any = None
    context: Optional[str] = None
    timestamp: Optional[str] = Field(None, description="Transcript position as MM:SS.")


class Suggestion(BaseModel):
    """One proposed contact field change, ready to be reviewed by the user."""

    field: str = Field(..., description="Canonical snake_case field name.")
    label: str
    current_value: Any = None
    new_value: Any = None
    context: Optional[str] = None
    timestamp: Optional[str] = None
    apply: bool = True
    has_change: bool = True


class SuggestionsForContact(BaseModel):
    """A fetched contact together with the changes suggested for it."""

    contact: NormalizedContact
    suggestions: List[Suggestion]


class NoUpdates(BaseModel):
    """Result of applying a suggestion list in which nothing was selected."""

    contact_id: str
    reason: str = "no_updates"
