"""Field configuration registry for CRM providers.

Defines, per provider:
- the canonical fields the AI may extract from a meeting transcript,
- human-readable labels for those fields,
- the provider's display name.

Supporting a new CRM means adding one entry to FIELD_CONFIGS; existing
entries are never edited for that.
"""

from typing import Dict, List, Optional, Tuple, Union

from pydantic import BaseModel

from social_scribe.schemas.credential import CRMProvider


class FieldConfig(BaseModel):
    """Static field metadata of one CRM provider."""

    display_name: str
    extractable_fields: Tuple[str, ...]
    labels: Dict[str, str]

    class Config:
        """Pydantic config."""

        frozen = True


FIELD_CONFIGS: Dict[CRMProvider, FieldConfig] = {
    CRMProvider.HUBSPOT: FieldConfig(
        display_name="HubSpot",
        extractable_fields=(
            "firstname",
            "lastname",
            "email",
            "phone",
            "mobilephone",
            "company",
            "jobtitle",
            "address",
            "city",
            "state",
            "zip",
            "country",
            "website",
            "linkedin_url",
            "twitter_handle",
        ),
        labels={
            "firstname": "First Name",
            "lastname": "Last Name",
            "email": "Email",
            "phone": "Phone",
            "mobilephone": "Mobile Phone",
            "company": "Company",
            "jobtitle": "Job Title",
            "address": "Address",
            "city": "City",
            "state": "State",
            "zip": "ZIP Code",
            "country": "Country",
            "website": "Website",
            "linkedin_url": "LinkedIn",
            "twitter_handle": "Twitter",
        },
    ),
    CRMProvider.SALESFORCE: FieldConfig(
        display_name="Salesforce",
        extractable_fields=(
            "firstname",
            "lastname",
            "email",
            "phone",
            "mobilephone",
            "jobtitle",
            "department",
            "address",
            "city",
            "state",
            "zip",
            "country",
        ),
        labels={
            "firstname": "First Name",
            "lastname": "Last Name",
            "email": "Email",
            "phone": "Phone",
            "mobilephone": "Mobile Phone",
            "jobtitle": "Job Title",
            "department": "Department",
            "address": "Mailing Street",
            "city": "City",
            "state": "State",
            "zip": "ZIP Code",
            "country": "Country",
        },
    ),
}


def to_provider(provider: Union[CRMProvider, str, None]) -> Optional[CRMProvider]:
    """Coerce a provider tag to the enum, returning None for unknown values."""
    if isinstance(provider, CRMProvider):
        return provider
    try:
        return CRMProvider(provider)
    except ValueError:
        return None


def _get_config(provider: Union[CRMProvider, str, None]) -> Optional[FieldConfig]:
    key = to_provider(provider)
    if key is None:
        return None
    return FIELD_CONFIGS.get(key)


def extractable_fields(provider: Union[CRMProvider, str]) -> List[str]:
    """Return the fields that can be extracted from transcripts for the provider.

    Unknown providers have no extractable fields.
    """
    config = _get_config(provider)
    return list(config.extractable_fields) if config else []


def field_labels(provider: Union[CRMProvider, str]) -> Dict[str, str]:
    """Return a copy of the provider's field -> label map ({} when unknown)."""
    config = _get_config(provider)
    return dict(config.labels) if config else {}


def field_label(provider: Union[CRMProvider, str, None], field: str) -> str:
    """Return the label of a field, falling back to the raw field name."""
    config = _get_config(provider)
    if config is None:
        return field
    return config.labels.get(field, field)


def display_name(provider: Union[CRMProvider, str]) -> str:
    """Return the provider's display name, capitalizing unknown identifiers."""
    config = _get_config(provider)
    if config is not None:
        return config.display_name
    return str(provider).capitalize()


def supported_providers() -> List[str]:
    """Return the identifiers of all configured providers, in registry order."""
    return [provider.value for provider in FIELD_CONFIGS]


def is_supported(provider: Union[CRMProvider, str, None]) -> bool:
    """Check whether a provider has a field configuration."""
    return _get_config(provider) is not None
