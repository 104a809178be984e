"""FastAPI application factory."""

import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI

from autocrud.api.router import mount
from autocrud.hooks import HookDispatcher
from autocrud.persistence import DatabaseConfig, PersistenceAdapter, create_adapter

logger = logging.getLogger(__name__)


def create_app(
    mounts: Iterable[tuple[str, type]],
    adapter: PersistenceAdapter | None = None,
    dispatcher: HookDispatcher | None = None,
    prefix: str = "",
    title: str = "autocrud",
) -> FastAPI:
    """Build an app exposing CRUD endpoints for each mounted record type.

    Args:
        mounts: (path name, record type) pairs
        adapter: Persistence adapter; built from the environment when omitted
        dispatcher: Hook dispatcher shared by every mount
        prefix: Path prefix for all endpoints, e.g. "/api"
        title: OpenAPI title

    Returns:
        The FastAPI app. The adapter is connected, and tables for every
        mounted record type are created, when the app starts up.
    """
    mounts = list(mounts)
    db = adapter if adapter is not None else create_adapter(DatabaseConfig.from_env())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Connect and create tables on startup, close on shutdown."""
        db.connect()
        db.initialize(record_type for _, record_type in mounts)
        logger.info("Serving %d record type(s)", len(mounts))
        yield
        db.close()

    app = FastAPI(title=title, lifespan=lifespan)
    router = APIRouter(prefix=prefix)
    for name, record_type in mounts:
        mount(router, db, name, record_type, dispatcher)
    app.include_router(router)

    return app
