"""Settings module for CRM token refresh settings."""

from pathlib import Path
from typing import Any

import yaml

from social_scribe.core.config import Settings
from social_scribe.core.config import settings as core_settings
from social_scribe.platform.auth.schemas import OAuth2RefreshSettings


class IntegrationSettings:
    """Loads per-provider token endpoint settings from a YAML file.

    Secrets never live in the YAML file. ``get_by_short_name`` returns a copy
    enriched with the client credentials from the core settings and with its
    templated backend URL rendered.
    """

    def __init__(self, file_path: Path, app_settings: Settings = core_settings):
        """Initializes the IntegrationSettings class.

        Args:
        ----
            file_path (Path): The path to the YAML file containing the integration settings.
            app_settings (Settings): Core settings providing secrets and base URLs.

        """
        self._settings: dict[str, OAuth2RefreshSettings] = {}
        self._app_settings = app_settings
        self.load_settings(file_path)

    def load_settings(self, file_path: Path) -> None:
        """Loads and parses integration settings from a YAML file.

        Args:
        ----
            file_path (Path): The path to the YAML file containing the integration settings.

        """
        with file_path.open("r") as file:
            data = yaml.safe_load(file).get("integrations", {})
            for name, config in data.items():
                self._settings[name] = OAuth2RefreshSettings(
                    integration_short_name=name, **(config or {})
                )

    def _template_values(self) -> dict[str, Any]:
        return {
            "hubspot_api_base_url": self._app_settings.HUBSPOT_API_BASE_URL,
            "salesforce_login_url": self._app_settings.SALESFORCE_LOGIN_URL,
        }

    def get_by_short_name(self, short_name: str) -> OAuth2RefreshSettings:
        """Retrieves settings for a specific integration by its short name.

        Args:
        ----
            short_name (str): The short name of the integration.

        Returns:
        -------
            OAuth2RefreshSettings: Settings with client credentials and a rendered URL.

        Raises:
        ------
            KeyError: If the integration settings are not found.

        """
        integration = self._settings.get(short_name)
        if not integration:
            raise KeyError(f"Integration settings not found for {short_name}")

        prefix = short_name.upper()
        update: dict[str, Any] = {
            "client_id": getattr(self._app_settings, f"{prefix}_CLIENT_ID", None),
            "client_secret": getattr(self._app_settings, f"{prefix}_CLIENT_SECRET", None),
        }
        if integration.backend_url_template:
            try:
                update["backend_url"] = integration.backend_url.format(**self._template_values())
            except KeyError as e:
                raise ValueError(
                    f"Missing template variable {e} in backend_url of {short_name}"
                ) from e

        return integration.model_copy(update=update)


integration_settings = IntegrationSettings(Path(__file__).parent / "integrations.yaml")
