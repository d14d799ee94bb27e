# src/ethos_gate/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .access import router as access_router
from .system import router as system_router

__all__ = ["access_router", "system_router"]
