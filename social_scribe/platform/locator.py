"""Resource locator for platform resources."""

import importlib
from typing import Type, Union

from social_scribe.core.exceptions import UnsupportedProviderError
from social_scribe.platform.crm._base import BaseCRMClient
from social_scribe.platform.decorators import CRM_CLIENT_REGISTRY
from social_scribe.platform.field_config import to_provider
from social_scribe.schemas.credential import CRMProvider

PLATFORM_PATH = "social_scribe.platform"


class ResourceLocator:
    """Resource locator for platform resources.

    Gets the following:
    - CRM clients
    """

    @staticmethod
    def get_crm_client(provider: Union[CRMProvider, str]) -> Type[BaseCRMClient]:
        """Get the CRM client class of a provider.

        The client module is imported on first use, which registers the class
        through its ``@crm_client`` decorator.

        Args:
            provider (CRMProvider | str): The provider identifier

        Returns:
            Type[BaseCRMClient]: CRM client class

        Raises:
            UnsupportedProviderError: If no client exists for the provider
        """
        key = to_provider(provider)
        if key is None:
            raise UnsupportedProviderError(provider)

        if key not in CRM_CLIENT_REGISTRY:
            try:
                importlib.import_module(f"{PLATFORM_PATH}.crm.{key.value}")
            except ModuleNotFoundError as e:
                raise UnsupportedProviderError(provider) from e

        client_class = CRM_CLIENT_REGISTRY.get(key)
        if client_class is None:
            raise UnsupportedProviderError(provider)
        return client_class


resource_locator = ResourceLocator()
