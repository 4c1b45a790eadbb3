"""Vertex AI provider adapter and response extraction."""

from .extract import first_candidate_parts, first_inline_image, first_text
from .vertex import VertexAIProvider

__all__ = ["VertexAIProvider", "first_candidate_parts", "first_inline_image", "first_text"]
