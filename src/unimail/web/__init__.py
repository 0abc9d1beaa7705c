"""Web application entry point for Unimail.

Serve with ``uvicorn unimail.web:create_app --factory``.
"""

from .app import create_app

__all__ = ["create_app"]
