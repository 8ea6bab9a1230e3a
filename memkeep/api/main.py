"""Main FastAPI application and server startup."""

import logging

from fastapi import FastAPI

from memkeep import __version__
from memkeep.config.settings import check_config, load_settings, missing_config_message
from memkeep.ops.telemetry import configure_logging
from memkeep.profile.manager import ProfileError
from . import deps
from .memory import router as memory_router
from .profile import router as profile_router
from .schemas import HealthResponse

logger = logging.getLogger(__name__)

app = FastAPI(
    title="memkeep API",
    description="Local-first memory with remote mirroring, rolling summaries and a shared user profile",
    version=__version__,
)

app.include_router(memory_router)
app.include_router(profile_router)


@app.on_event("startup")
async def startup_event():
    """Build components from the config directory and reconcile the profile."""
    settings = load_settings()
    configure_logging(settings.log_level)

    if check_config(settings).status == "missing":
        logger.info(missing_config_message(settings))

    components = deps.build_components(settings)
    deps.set_components(components)

    try:
        result = await components.profiles.sync_from_remote()
        logger.info(f"Profile sync on startup: {result.action}")
    except ProfileError as e:
        logger.error(f"Profile sync on startup failed: {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Flush background mirror writes and close resources."""
    components = deps.peek_components()
    if components is not None:
        await components.memory.aclose()
        deps.set_components(None)


@app.get("/", response_model=dict)
async def root():
    """Root endpoint."""
    return {
        "message": "memkeep API is running",
        "version": __version__,
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check endpoint."""
    components = deps.peek_components()
    if components is None:
        return HealthResponse(status="starting", components={"memory": False, "profile": False, "mirror": False})

    return HealthResponse(
        status="ok",
        components={
            "memory": True,
            "profile": True,
            "mirror": components.mirror is not None,
            "summaries": components.memory.summaries is not None,
        },
        records=components.memory.stats().total,
        background=components.memory.background.stats(),
    )
