"""FastAPI entry-point exposing orchestrator controls."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Callable, Optional

from fastapi import FastAPI

from floodguard.api.data import router as data_router
from floodguard.api.iot import router as iot_router
from floodguard.api.routes import agents_router, ops_router
from floodguard.config import config
from floodguard.core.log import configure_logging
from floodguard.runtime import get_orchestrator, get_repository

configure_logging(config.log_level, "console" if config.log_format == "console" else "json")


def _resolve_built(app: FastAPI, factory: Callable[[], Any]) -> Optional[Any]:
    """Return the override or the cached instance of ``factory`` without building one."""
    override = app.dependency_overrides.get(factory)
    if override is not None:
        return override()
    if factory.cache_info().currsize:
        return factory()
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application."""
    yield
    # Shutdown: stop the loop and release the database client
    orchestrator = _resolve_built(app, get_orchestrator)
    if orchestrator is not None:
        await orchestrator.shutdown()
    repository = _resolve_built(app, get_repository)
    if repository is not None:
        repository.close()


app = FastAPI(title="FloodGuard Agent Orchestrator", lifespan=lifespan)
app.include_router(ops_router)
app.include_router(agents_router)
app.include_router(data_router)
app.include_router(iot_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}
