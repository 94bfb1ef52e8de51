"""Token guardian wrapping every outbound CRM call.

Each call is preceded by an expiry check and, when the CRM rejects the token,
retried exactly once with a freshly refreshed credential.
"""

import asyncio
import weakref
from datetime import timedelta
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt

from social_scribe.core.config import settings
from social_scribe.core.datetime_utils import ensure_aware, utc_now
from social_scribe.core.exceptions import CRMApiError
from social_scribe.core.logging import logger
from social_scribe.platform.auth.oauth2_service import OAuth2Service, oauth2_service
from social_scribe.platform.credential_store import CredentialStore
from social_scribe.schemas.credential import Credential, CredentialUpdate, CRMProvider

T = TypeVar("T")

ApiCall = Callable[[Credential], Awaitable[T]]
TokenErrorPredicate = Callable[[CRMApiError], bool]


class TokenGuardian:
    """Keeps CRM credentials valid around API calls.

    It handles:
    - Proactive refresh of tokens that expire within the refresh buffer
    - A single refresh-and-retry when the CRM reports an auth error
    - Serialized refreshes per credential, so concurrent callers refresh once
    - Persisting refreshed tokens before the retried call runs
    """

    def __init__(
        self,
        store: CredentialStore,
        refresher: OAuth2Service = oauth2_service,
        refresh_buffer_seconds: Optional[int] = None,
        default_ttl_seconds: Optional[int] = None,
    ):
        """Initialize the guardian.

        Args:
            store: Where refreshed credentials are persisted
            refresher: Service exchanging refresh tokens for access tokens
            refresh_buffer_seconds: Override of TOKEN_REFRESH_BUFFER_SECONDS
            default_ttl_seconds: Override of DEFAULT_TOKEN_TTL_SECONDS
        """
        self.store = store
        self.refresher = refresher
        self.refresh_buffer_seconds = (
            refresh_buffer_seconds
            if refresh_buffer_seconds is not None
            else settings.TOKEN_REFRESH_BUFFER_SECONDS
        )
        self.default_ttl_seconds = (
            default_ttl_seconds
            if default_ttl_seconds is not None
            else settings.DEFAULT_TOKEN_TTL_SECONDS
        )
        # Entries vanish once no caller holds or waits on the lock.
        self._locks: "weakref.WeakValueDictionary[Tuple[str, CRMProvider], asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, credential: Credential) -> asyncio.Lock:
        key = (credential.user_id, credential.provider)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def needs_refresh(self, credential: Credential) -> bool:
        """Check whether a credential expires within the refresh buffer.

        A credential without a known expiry is always considered stale.
        """
        if credential.expires_at is None:
            return True
        threshold = utc_now() + timedelta(seconds=self.refresh_buffer_seconds)
        return ensure_aware(credential.expires_at) < threshold

    async def with_valid_token(
        self,
        credential: Credential,
        api_call: ApiCall,
        is_token_error: TokenErrorPredicate,
    ) -> T:
        """Run ``api_call`` with a valid credential.

        Args:
            credential: The credential to authenticate with
            api_call: Async callable receiving the credential to use
            is_token_error: Provider predicate telling auth errors apart

        Returns:
            Whatever ``api_call`` returns

        Raises:
            TokenRefreshError: If a required refresh fails
            CRMApiError: If the call fails for a non-auth reason, or fails again
                after the refresh
        """
        current = await self.ensure_fresh(credential)

        def _is_auth_error(error: BaseException) -> bool:
            return isinstance(error, CRMApiError) and is_token_error(error)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(2),
            retry=retry_if_exception(_is_auth_error),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.with_context(
                        provider=current.provider.value, credential_id=current.id
                    ).warning("CRM rejected the access token, refreshing and retrying once")
                    current = await self.force_refresh(current)
                return await api_call(current)

    async def ensure_fresh(self, credential: Credential) -> Credential:
        """Return a credential that does not expire within the refresh buffer.

        The stored credential is re-read under the lock, so a refresh already
        completed by a concurrent caller is reused instead of repeated.
        """
        if not self.needs_refresh(credential):
            return credential

        async with self._lock_for(credential):
            stored = await self.store.get(credential.user_id, credential.provider)
            if stored is not None and not self.needs_refresh(stored):
                logger.with_context(provider=credential.provider.value).debug(
                    "Credential already refreshed by a concurrent caller"
                )
                return stored
            return await self._refresh(stored or credential)

    async def force_refresh(self, credential: Credential) -> Credential:
        """Refresh a credential unconditionally, e.g. after an auth error."""
        async with self._lock_for(credential):
            stored = await self.store.get(credential.user_id, credential.provider)
            return await self._refresh(stored or credential)

    async def _refresh(self, credential: Credential) -> Credential:
        refresh_logger = logger.with_context(
            provider=credential.provider.value, credential_id=credential.id
        )
        refresh_logger.info("Refreshing CRM access token")

        token_response = await self.refresher.refresh_access_token(credential)

        expires_in = token_response.expires_in or self.default_ttl_seconds
        updates = CredentialUpdate(
            access_token=token_response.access_token,
            refresh_token=token_response.refresh_token or credential.refresh_token,
            expires_at=utc_now() + timedelta(seconds=expires_in),
            provider_instance_identifier=(
                token_response.instance_url or credential.provider_instance_identifier
            ),
        )
        refreshed = await self.store.save(credential, updates)

        refresh_logger.info(f"Refreshed CRM access token, expires at {updates.expires_at}")
        return refreshed
