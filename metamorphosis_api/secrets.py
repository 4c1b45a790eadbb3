"""Google Cloud Secret Manager lookup for the service account key."""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger("metamorphosis-api.secrets")

PROJECT_ENV_FALLBACKS = ("GCP_PROJECT", "GOOGLE_CLOUD_PROJECT")


def secret_version_name(secret_name: str, project_id: Optional[str], version: str = "latest") -> str:
    """Resource name of a secret version; the project falls back to the runtime's own."""
    project_id = project_id or next(
        (os.environ[name] for name in PROJECT_ENV_FALLBACKS if os.environ.get(name)), None
    )
    if not project_id:
        raise ValueError(
            "No project for Secret Manager lookup. Set GOOGLE_PROJECT_ID, GCP_PROJECT or GOOGLE_CLOUD_PROJECT."
        )
    return f"projects/{project_id}/secrets/{secret_name}/versions/{version}"


def get_secret_from_manager(secret_name: str, project_id: Optional[str] = None) -> str:
    """
    Read the latest version of a secret as UTF-8 text.

    Raises:
        ImportError: google-cloud-secret-manager is not installed.
        ValueError: no project id could be determined.
        google.api_core.exceptions.GoogleAPIError: the lookup itself failed.
    """
    from google.cloud import secretmanager

    name = secret_version_name(secret_name, project_id)
    client = secretmanager.SecretManagerServiceClient()

    logger.info(f"Fetching secret from Secret Manager: {secret_name}")
    response = client.access_secret_version(request={"name": name})
    return response.payload.data.decode("UTF-8")


def should_use_secret_manager() -> bool:
    """True if USE_SECRET_MANAGER is "true", "1" or "yes" (case-insensitive)."""
    return os.environ.get("USE_SECRET_MANAGER", "").lower() in ("true", "1", "yes")
