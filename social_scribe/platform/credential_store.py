"""Credential persistence boundary.

The core never talks to a database directly. Hosting applications provide a
``CredentialStore`` implementation; ``InMemoryCredentialStore`` serves tests
and single-process use.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from social_scribe.platform.field_config import supported_providers, to_provider
from social_scribe.schemas.credential import Credential, CredentialUpdate, CRMProvider


class CredentialStore(ABC):
    """Persistence interface for CRM credentials (one per user and provider)."""

    @abstractmethod
    async def get(self, user_id: str, provider: CRMProvider) -> Optional[Credential]:
        """Return the user's credential for a provider, or None."""
        pass

    @abstractmethod
    async def save(self, credential: Credential, updates: CredentialUpdate) -> Credential:
        """Persist refreshed token fields and return the stored credential."""
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str) -> List[Credential]:
        """Return all credentials of a user."""
        pass


class InMemoryCredentialStore(CredentialStore):
    """Dict-backed store keyed by (user_id, provider)."""

    def __init__(self, credentials: Optional[List[Credential]] = None):
        """Initialize the store, optionally seeded with credentials."""
        self._credentials: Dict[Tuple[str, CRMProvider], Credential] = {}
        self._lock = asyncio.Lock()
        for credential in credentials or []:
            self._credentials[(credential.user_id, credential.provider)] = credential

    async def put(self, credential: Credential) -> Credential:
        """Insert or replace a credential, assigning an ID when it has none."""
        if not credential.id:
            credential = credential.model_copy(update={"id": str(uuid.uuid4())})
        async with self._lock:
            self._credentials[(credential.user_id, credential.provider)] = credential
        return credential

    async def get(self, user_id: str, provider: CRMProvider) -> Optional[Credential]:
        """Return the user's credential for a provider, or None."""
        key = to_provider(provider)
        if key is None:
            return None
        return self._credentials.get((user_id, key))

    async def save(self, credential: Credential, updates: CredentialUpdate) -> Credential:
        """Upsert the refreshed token fields onto the stored credential."""
        async with self._lock:
            key = (credential.user_id, credential.provider)
            current = self._credentials.get(key, credential)
            stored = current.model_copy(update=updates.model_dump())
            self._credentials[key] = stored
            return stored

    async def list_for_user(self, user_id: str) -> List[Credential]:
        """Return the user's credentials in provider registry order."""
        result = []
        for provider in supported_providers():
            credential = self._credentials.get((user_id, CRMProvider(provider)))
            if credential is not None:
                result.append(credential)
        return result
