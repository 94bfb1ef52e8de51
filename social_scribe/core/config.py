"""Configuration settings for the Social Scribe CRM core.

Wraps environment variables and provides defaults.
"""

from typing import Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        HUBSPOT_CLIENT_ID (Optional[str]): OAuth client ID of the HubSpot app.
        HUBSPOT_CLIENT_SECRET (Optional[str]): OAuth client secret of the HubSpot app.
        HUBSPOT_API_BASE_URL (str): Base URL of the HubSpot REST API.
        SALESFORCE_CLIENT_ID (Optional[str]): OAuth consumer key of the Salesforce app.
        SALESFORCE_CLIENT_SECRET (Optional[str]): OAuth consumer secret of the Salesforce app.
        SALESFORCE_LOGIN_URL (str): Login host used for token refresh and as the fallback
            instance URL when a credential carries none.
        SALESFORCE_API_VERSION (str): Salesforce REST API version segment, e.g. "v59.0".
        TOKEN_REFRESH_BUFFER_SECONDS (int): Tokens expiring within this window are
            refreshed before the call is made.
        DEFAULT_TOKEN_TTL_SECONDS (int): Expiry assigned to a refreshed token when the
            provider does not assert one.
        CRM_SEARCH_TIMEOUT_SECONDS (float): Per-provider timeout of a fan-out search.
        CRM_MAX_FANOUT (int): Maximum number of connected CRMs queried by one search.
        CRM_SEARCH_PAGE_SIZE (int): Maximum contacts returned by one provider search.
        CRM_HTTP_TIMEOUT_SECONDS (float): Timeout of a single HTTP request to a CRM.
    """

    PROJECT_NAME: str = "Social Scribe"
    LOCAL_DEVELOPMENT: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    # HubSpot
    HUBSPOT_CLIENT_ID: Optional[str] = None
    HUBSPOT_CLIENT_SECRET: Optional[str] = None
    HUBSPOT_API_BASE_URL: str = "https://api.hubapi.com"

    # Salesforce
    SALESFORCE_CLIENT_ID: Optional[str] = None
    SALESFORCE_CLIENT_SECRET: Optional[str] = None
    SALESFORCE_LOGIN_URL: str = "https://login.salesforce.com"
    SALESFORCE_API_VERSION: str = "v59.0"

    # Token refresh
    TOKEN_REFRESH_BUFFER_SECONDS: int = 300
    DEFAULT_TOKEN_TTL_SECONDS: int = 3600

    # Contact search fan-out
    CRM_SEARCH_TIMEOUT_SECONDS: float = 10.0
    CRM_MAX_FANOUT: int = 4
    CRM_SEARCH_PAGE_SIZE: int = 10
    CRM_HTTP_TIMEOUT_SECONDS: float = 30.0

    @field_validator("SALESFORCE_LOGIN_URL", "HUBSPOT_API_BASE_URL", mode="before")
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove a trailing slash so paths can be appended verbatim.

        Args:
            v: The configured URL.

        Returns:
            str: The URL without a trailing slash.
        """
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    @field_validator("CRM_MAX_FANOUT", "CRM_SEARCH_PAGE_SIZE", mode="after")
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        """Reject limits that would disable searching altogether.

        Args:
            v: The configured limit.
            info: Validation context for the field being validated.

        Returns:
            int: The validated limit.

        Raises:
            ValueError: If the limit is smaller than one.
        """
        if v < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return v


settings = Settings()
