"""FastAPI application."""

from dermopt.api.app import create_app

__all__ = ["create_app"]
