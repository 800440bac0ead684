"""
Tenantgate API package.

Provides the FastAPI application for the Tenantgate authentication and
subscription gateway.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
