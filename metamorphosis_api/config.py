from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from .secrets import get_secret_from_manager, should_use_secret_manager

logger = logging.getLogger("metamorphosis-api.config")


class Settings(BaseSettings):
    app_name: str = "metamorphosis-api"

    # Credentials keep the bare names the frontend deployment already uses.
    google_project_id: Optional[str] = Field(default=None, validation_alias="GOOGLE_PROJECT_ID")
    google_service_account_key: Optional[str] = Field(
        default=None,
        validation_alias="GOOGLE_SERVICE_ACCOUNT_KEY",
        description="JSON service account key containing at least private_key and client_email.",
    )

    location: str = "us-central1"
    vertex_base_url: Optional[str] = Field(
        default=None,
        description="Vertex AI REST root. Defaults to the regional endpoint for `location`.",
    )
    text_model: str = "gemini-2.5-flash-preview-09-2025"
    image_model: str = "imagen-3.0-generate-002"
    # Sent as generationConfig.responseModalities for generateImage; unverified against
    # every image model, so it stays overridable.
    image_response_modalities: List[str] = Field(default_factory=lambda: ["IMAGE"])
    describe_image_mime_type: str = "image/png"
    request_timeout_seconds: int = Field(default=90, ge=1)

    # Secret Manager configuration
    secret_service_account_key_name: str = "google-service-account-key"

    class Config:
        env_prefix = "METAMORPHOSIS_"
        env_file = ".env"
        populate_by_name = True

    @property
    def vertex_root_url(self) -> str:
        if self.vertex_base_url:
            return self.vertex_base_url.rstrip("/")
        return f"https://{self.location}-aiplatform.googleapis.com/v1"

    @model_validator(mode="after")
    def _load_service_account_key(self) -> "Settings":
        if self.google_service_account_key or not should_use_secret_manager():
            self.google_service_account_key = self.google_service_account_key or None
            return self
        logger.info(f"Loading service account key from Secret Manager: {self.secret_service_account_key_name}")
        try:
            self.google_service_account_key = get_secret_from_manager(
                self.secret_service_account_key_name, self.google_project_id
            )
        except Exception as e:
            # Requests then fail with the missing-credentials envelope instead of
            # the whole app failing to import.
            logger.error(f"Failed to load service account key from Secret Manager: {e}")
            self.google_service_account_key = None
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
