"""
Main FastAPI application for the docking analysis agent backend.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
from contextlib import asynccontextmanager

from .config import get_settings
from .routers.health import router as health_router
from .routers.config import router as config_router
from .routers.jobs import router as jobs_router
from .routers.reports import router as reports_router
from .routers.agent import router as agent_router
from .services.orchestration.runtime import build_runtime


settings = get_settings()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: a runtime may be pre-installed (tests, embedding apps)
    runtime = getattr(app.state, "runtime", None)
    if runtime is None:
        runtime = build_runtime()
        app.state.runtime = runtime
    if get_settings().AGENT_ENABLED:
        runtime.scheduler.start(get_settings().AGENT_POLL_INTERVAL_SEC)
    try:
        yield
    finally:
        # Shutdown: stop new ticks, then let an in-flight run finish
        runtime.scheduler.stop()
        await runtime.scheduler.wait_idle()


app = FastAPI(
    title="Docking Analysis Agent API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(health_router, prefix=settings.API_PREFIX)
app.include_router(config_router, prefix=settings.API_PREFIX)
app.include_router(jobs_router, prefix=settings.API_PREFIX)
app.include_router(reports_router, prefix=settings.API_PREFIX)
app.include_router(agent_router, prefix=settings.API_PREFIX)


@app.get("/", tags=["root"])
async def root() -> dict:
    """Simple root endpoint."""
    return {"name": app.title, "version": app.version}
