"""Application factory and top-level wiring for SalonStock.

This module is the glue that brings together configuration, database setup,
API routers and error handling.

*What:* ``create_app`` returns a ready FastAPI instance.
*When:* Called once by ``salonstock.main`` and once per test that needs HTTP.
*Why:* Building everything inside a factory means tests can hand in their own
settings and an in-memory engine instead of touching ``data/inventory.db``.
*How:* Build the engine, bring the schema up to date, hang the session factory
and the ``StockLedger`` on ``app.state`` and plug in middlewares, handlers and
routers.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import AppSettings, get_settings
from .core.errors import (
    LedgerError,
    http_exception_handler,
    ledger_exception_handler,
    unexpected_exception_handler,
    validation_exception_handler,
)
from .db.migrate import run_migrations
from .db.session import Base, build_engine, build_session_factory
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Importing the SQLAlchemy models registers them with the metadata. Without
# this step ``Base.metadata.create_all`` would not know about our tables.
from .models import client as _client  # noqa: F401
from .models import material as _material  # noqa: F401
from .routers import api_clients, api_inventory, api_materials
from .services.ledger import StockLedger


def create_app(settings: AppSettings | None = None, engine: Engine | None = None) -> FastAPI:
    settings = settings or get_settings()
    engine = engine or build_engine(settings.DB_URL)

    # ``run_migrations`` upgrades older databases first so ``create_all`` only
    # has to add whatever is still missing.
    run_migrations(engine)
    Base.metadata.create_all(bind=engine)

    session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        engine.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.ledger = StockLedger(session_factory)

    # Middlewares run in reverse order of registration; request ids wrap everything.
    app.add_middleware(SecurityHeadersMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(LedgerError, ledger_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)

    app.include_router(api_materials.router)
    app.include_router(api_inventory.router)
    app.include_router(api_clients.router)

    return app


__all__ = ["create_app"]
