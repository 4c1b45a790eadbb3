"""Pull content out of Vertex AI ``generateContent`` responses.

Response shape::

    {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [
                        {"text": "..."},
                        {"inlineData": {"mimeType": "image/png", "data": "base64..."}}
                    ]
                }
            }
        ]
    }
"""

from __future__ import annotations

from typing import Any, Dict, List

from ..errors import ProviderResponseError


def first_candidate_parts(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Parts of the first candidate; fails if there is no candidate or it has no parts."""
    candidates = response.get("candidates") or []
    if not candidates:
        raise ProviderResponseError("No candidates returned from Vertex AI.")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts:
        raise ProviderResponseError("No content returned from Vertex AI.")
    return parts


def first_text(response: Dict[str, Any]) -> str:
    """Text of the first part of the first candidate."""
    text = first_candidate_parts(response)[0].get("text")
    if text is None:
        raise ProviderResponseError("No text returned from Gemini.")
    return text


def first_inline_image(response: Dict[str, Any]) -> str:
    """Base64 data of the first inline-data part of the first candidate."""
    try:
        parts = first_candidate_parts(response)
    except ProviderResponseError:
        raise ProviderResponseError("No image data returned from Imagen.") from None

    for part in parts:
        inline_data = part.get("inlineData")
        if inline_data and inline_data.get("data"):
            return inline_data["data"]

    raise ProviderResponseError("No image data returned from Imagen.")
