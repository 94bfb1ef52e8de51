# flake8: noqa: F401
"""Schemas for the application."""

from .chat import ChatAnswer, ChatSource
from .contact import Note, NormalizedContact, Task, build_display_name, get_contact_field
from .credential import Credential, CredentialUpdate, CRMProvider
from .suggestion import AISuggestion, NoUpdates, Suggestion, SuggestionsForContact
