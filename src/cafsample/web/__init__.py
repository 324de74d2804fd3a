"""Web layer: FastAPI application, sandbox consent pages and static assets."""

from .app import CSRF_TOKEN_KEY, create_app, create_default_app

__all__ = ["CSRF_TOKEN_KEY", "create_app", "create_default_app"]
