import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI

# Import settings first for logging configuration
from worldsync.app.core.config import settings as app_settings, APP_VERSION

# Configure logging based on settings
# DEBUG=true -> DEBUG level, else use LOG_LEVEL setting
log_level_str = "DEBUG" if app_settings.debug else app_settings.log_level.upper()
log_level = getattr(logging, log_level_str, logging.INFO)
log_format = '%(asctime)s %(levelname)s [%(name)s] %(message)s'

# Create root logger
root_logger = logging.getLogger()
root_logger.setLevel(log_level)

# Console handler - always enabled
console_handler = logging.StreamHandler()
console_handler.setLevel(log_level)
console_handler.setFormatter(logging.Formatter(log_format))
root_logger.addHandler(console_handler)

# File handler - only in production or if explicitly enabled
if app_settings.log_to_file:
    log_file = app_settings.log_dir / "worldsync.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5*1024*1024,  # 5MB
        backupCount=3,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(logging.Formatter(log_format))
    root_logger.addHandler(file_handler)
    logging.info(f"Logging to file: {log_file}")

# httpx logs full request URLs, which carry the weather API key
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

# Reduce noise from third-party libraries in production
if not app_settings.debug:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

logging.info(f"WorldSync starting - debug={app_settings.debug}, log_level={log_level_str}")

from worldsync.app.core.database import init_db
from worldsync.app.api.routes import profiles, sync, worlds
from worldsync.app.services.sync_scheduler import SyncContext, SyncScheduler
from worldsync.app.services.world_registry import InMemoryWorldRegistry


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    registry = InMemoryWorldRegistry(app_settings.worlds)
    context = SyncContext.create(registry)
    scheduler = SyncScheduler(context)
    await scheduler.enable()
    app.state.sync_scheduler = scheduler

    yield

    # Shutdown
    await scheduler.disable()
    app.state.sync_scheduler = None


app = FastAPI(
    title=app_settings.app_name,
    description="Synchronize world clocks and weather with real life",
    version=APP_VERSION,
    lifespan=lifespan,
)

# API routes
app.include_router(profiles.router, prefix=app_settings.api_prefix)
app.include_router(worlds.router, prefix=app_settings.api_prefix)
app.include_router(sync.router, prefix=app_settings.api_prefix)


@app.get("/")
async def root():
    return {
        "message": "WorldSync API",
        "version": APP_VERSION,
        "docs": "/docs",
    }


def run():
    """Console entry point."""
    import uvicorn

    uvicorn.run(
        "worldsync.app.main:app",
        host="0.0.0.0",
        port=8000,
        log_config=None,
    )
