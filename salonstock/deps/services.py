from __future__ import annotations

from fastapi import Request

from ..core.config import AppSettings
from ..services.ledger import StockLedger


def get_ledger(request: Request) -> StockLedger:
    return request.app.state.ledger


def get_settings_dep(request: Request) -> AppSettings:
    return request.app.state.settings
