"""Platform decorators for CRM client registration."""

from typing import Callable, Dict, Optional, Type

from social_scribe.schemas.credential import CRMProvider

# Filled at import time of the client modules; read through ResourceLocator.
CRM_CLIENT_REGISTRY: Dict[CRMProvider, type] = {}


def crm_client(
    name: str,
    provider: CRMProvider,
    api_version: Optional[str] = None,
) -> Callable[[type], type]:
    """Register a class as the client of one CRM provider.

    Args:
        name: Display name of the CRM
        provider: The provider the client talks to
        api_version: Version of the CRM API the client targets, if any

    Example:
        @crm_client(name="HubSpot", provider=CRMProvider.HUBSPOT)
        class HubSpotClient(BaseCRMClient):
            ...
    """

    def decorator(cls: type) -> type:
        cls._name = name
        cls._provider = provider
        cls._api_version = api_version

        existing = CRM_CLIENT_REGISTRY.get(provider)
        if existing is not None and existing.__qualname__ != cls.__qualname__:
            raise ValueError(
                f"CRM client for {provider.value} already registered: {existing.__name__}"
            )
        CRM_CLIENT_REGISTRY[provider] = cls
        return cls

    return decorator
