"""Error types surfaced to callers as ``{"error": message}`` envelopes."""

from __future__ import annotations

from fastapi import status


class GatewayError(Exception):
    """Base class for every error the gateway turns into a JSON response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class MethodNotAllowed(GatewayError):
    status_code = status.HTTP_405_METHOD_NOT_ALLOWED

    def __init__(self) -> None:
        super().__init__("Method Not Allowed")


class ConfigurationError(GatewayError):
    """Server-side credentials are missing or unusable."""

    MISSING_CREDENTIALS = "Server configuration error. Missing API credentials."
    INVALID_KEY_FORMAT = "Server configuration error. Invalid service account key format."


class InvalidStep(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self) -> None:
        super().__init__("Invalid step provided")


class InvalidPayload(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(f"Invalid payload: {detail}")
        self.detail = detail


class ProviderError(GatewayError):
    """Anything that went wrong talking to Vertex AI."""

    def __init__(self, detail: str) -> None:
        super().__init__(f"API Error: {detail}")
        self.detail = detail


class ProviderCallError(ProviderError):
    """The call itself failed: transport, timeout, auth or a non-2xx status."""


class ProviderResponseError(ProviderError):
    """The call succeeded but the response lacks the expected content."""
