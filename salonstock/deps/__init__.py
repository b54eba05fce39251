"""FastAPI dependencies shared by the API routers."""

from __future__ import annotations

from .auth import require_api_access
from .services import get_ledger, get_settings_dep

__all__ = ["get_ledger", "get_settings_dep", "require_api_access"]
