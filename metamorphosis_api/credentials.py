"""Resolve the Vertex AI service account from settings, once per request."""

from __future__ import annotations

import json
import logging
from typing import Dict

from pydantic import BaseModel, SecretStr, ValidationError

from .config import Settings
from .errors import ConfigurationError

logger = logging.getLogger("metamorphosis-api.credentials")

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class ServiceAccountCredentials(BaseModel):
    project_id: str
    client_email: str
    private_key: SecretStr

    def as_service_account_info(self) -> Dict[str, str]:
        """Mapping accepted by ``service_account.Credentials.from_service_account_info``."""
        return {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key.get_secret_value(),
            "token_uri": GOOGLE_TOKEN_URI,
        }


def resolve_credentials(settings: Settings) -> ServiceAccountCredentials:
    """
    Build the service account record from the configured project id and key.

    Raises:
        ConfigurationError: either value is missing, or the key is not a JSON
            object carrying ``private_key`` and ``client_email``.
    """
    if not settings.google_project_id or not settings.google_service_account_key:
        logger.error("GOOGLE_PROJECT_ID or GOOGLE_SERVICE_ACCOUNT_KEY is not configured")
        raise ConfigurationError(ConfigurationError.MISSING_CREDENTIALS)

    try:
        key_data = json.loads(settings.google_service_account_key)
    except json.JSONDecodeError:
        # The decode error echoes parts of the key; keep it out of the log.
        logger.error("GOOGLE_SERVICE_ACCOUNT_KEY is not valid JSON")
        raise ConfigurationError(ConfigurationError.INVALID_KEY_FORMAT) from None

    if not isinstance(key_data, dict):
        logger.error("GOOGLE_SERVICE_ACCOUNT_KEY is not a JSON object")
        raise ConfigurationError(ConfigurationError.INVALID_KEY_FORMAT)

    try:
        return ServiceAccountCredentials(
            project_id=settings.google_project_id,
            client_email=key_data.get("client_email"),
            private_key=key_data.get("private_key"),
        )
    except ValidationError:
        logger.error("GOOGLE_SERVICE_ACCOUNT_KEY lacks private_key or client_email")
        raise ConfigurationError(ConfigurationError.INVALID_KEY_FORMAT) from None
