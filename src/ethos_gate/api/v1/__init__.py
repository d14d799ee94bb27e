# src/ethos_gate/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import access_router, system_router

__all__ = ["access_router", "system_router"]
