"""Health and metrics HTTP endpoints.

Exposes:
    create_app -- FastAPI application factory.
"""

from gkesa.api.app import create_app

__all__ = ["create_app"]
