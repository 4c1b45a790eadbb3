"""Google Vertex AI provider adapter."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import google.auth.exceptions
import httpx
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2 import service_account
from starlette.concurrency import run_in_threadpool

from ..credentials import ServiceAccountCredentials
from ..errors import ProviderCallError, ProviderResponseError

logger = logging.getLogger("metamorphosis-api.providers.vertex")

TokenSource = Callable[[], str]


class VertexAIProvider:
    """Adapter for the Vertex AI ``generateContent`` REST method."""

    SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]
    ENDPOINT = "{root}/projects/{project}/locations/{location}/publishers/google/models/{model}:generateContent"

    def __init__(
        self,
        credentials: ServiceAccountCredentials,
        location: str,
        root_url: str,
        timeout: float = 90,
        token_source: Optional[TokenSource] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.credentials = credentials
        self.location = location
        self.root_url = root_url
        self.timeout = timeout
        self._token_source = token_source or self._mint_access_token
        self._transport = transport

    def endpoint_for(self, model: str) -> str:
        return self.ENDPOINT.format(
            root=self.root_url,
            project=self.credentials.project_id,
            location=self.location,
            model=model,
        )

    async def generate_content(
        self,
        model: str,
        contents: List[Dict[str, Any]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Call ``generateContent`` on the given model.

        Args:
            model: Publisher model id, e.g. "gemini-2.5-flash-preview-09-2025"
            contents: Vertex ``contents`` list (role + parts)
            system_instruction: Optional system-level instruction text
            generation_config: Optional ``generationConfig`` mapping

        Returns:
            The decoded JSON response.

        Raises:
            ProviderCallError: token minting, transport, timeout or non-2xx status.
            ProviderResponseError: the body is not JSON.
        """
        body: Dict[str, Any] = {"contents": contents}
        if system_instruction is not None:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
        if generation_config:
            body["generationConfig"] = generation_config

        token = await self._access_token()
        url = self.endpoint_for(model)

        logger.info(f"Calling Vertex AI: model={model}, location={self.location}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    json=body,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.TimeoutException:
            logger.warning(f"Vertex AI request timed out after {self.timeout}s: model={model}")
            raise ProviderCallError(f"Request timeout ({self.timeout}s)")
        except httpx.RequestError as exc:
            logger.warning(f"Vertex AI request failed: {exc}")
            raise ProviderCallError(f"Vertex AI request failed: {exc}")

        if response.status_code >= 400:
            logger.warning(f"Vertex AI error: {response.status_code} - {response.text}")
            raise ProviderCallError(self._error_message(response))

        try:
            return response.json()
        except ValueError:
            raise ProviderResponseError("Vertex AI returned a non-JSON response.") from None

    async def _access_token(self) -> str:
        try:
            return await run_in_threadpool(self._token_source)
        except (google.auth.exceptions.GoogleAuthError, ValueError) as exc:
            # ValueError comes from an unparseable private key.
            logger.error(f"Failed to obtain Vertex AI access token: {type(exc).__name__}")
            raise ProviderCallError(f"Failed to obtain access token: {exc}") from exc

    def _mint_access_token(self) -> str:
        google_credentials = service_account.Credentials.from_service_account_info(
            self.credentials.as_service_account_info(), scopes=self.SCOPES
        )
        google_credentials.refresh(GoogleAuthRequest())
        return google_credentials.token

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Upstream error message from a Google API error body, if there is one."""
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            error = {}
        message = error.get("message") if isinstance(error, dict) else None
        if message:
            return f"[{response.status_code}] {message}"
        return f"Upstream API error: {response.status_code}"
