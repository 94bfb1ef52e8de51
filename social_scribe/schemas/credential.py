"""Schemas for CRM credentials."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CRMProvider(str, Enum):
    """CRM providers the core knows how to talk to."""

    HUBSPOT = "hubspot"
    SALESFORCE = "salesforce"


class Credential(BaseModel):
    """OAuth credential of one user for one CRM provider.

    One credential exists per (user, provider) pair. The core only changes a
    credential when the token guardian refreshes it.
    """

    id: str
    user_id: str
    provider: CRMProvider
    access_token: str = Field(..., description="Bearer token sent to the CRM API.")
    refresh_token: Optional[str] = Field(
        None, description="Long-lived token exchanged for a new access token."
    )
    expires_at: Optional[datetime] = Field(
        None, description="When the access token expires. None means unknown."
    )
    provider_instance_identifier: Optional[str] = Field(
        None,
        description="Provider-specific instance locator, e.g. the Salesforce instance URL.",
    )

    class Config:
        """Pydantic config."""

        from_attributes = True
        frozen = True


class CredentialUpdate(BaseModel):
    """Fields the token guardian writes back after a refresh."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_at: datetime
    provider_instance_identifier: Optional[str] = None
