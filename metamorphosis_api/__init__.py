"""FastAPI gateway that keeps Vertex AI credentials off the public frontend."""

from .main import app, create_app

__all__ = ["app", "create_app"]
