"""Serverless entry point served at /api/generate."""

from metamorphosis_api.main import app

__all__ = ["app"]
