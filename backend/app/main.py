import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler

from fastapi import FastAPI

# Import settings first for logging configuration
from backend.app.core.config import settings as app_settings, APP_VERSION

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
    log_file = app_settings.log_dir / "swatchsync.log"
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

# Reduce noise from third-party libraries in production
if not app_settings.debug:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

logging.info(f"SwatchSync starting - debug={app_settings.debug}, log_level={log_level_str}")

from backend.app.core.database import init_db
from backend.app.api.routes import swatches, sync
from backend.app.services.color_match import SwatchSnapshot
from backend.app.services.sync_scheduler import scheduler as sync_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await init_db()

    # A committed pass makes the color snapshot stale
    sync_scheduler.set_pass_complete_callback(lambda result: app.state.swatch_snapshot.invalidate())

    if app_settings.sync_enabled:
        sync_scheduler.start()
    else:
        logging.info("Catalog sync disabled (SYNC_ENABLED=false)")

    yield

    # Shutdown
    await sync_scheduler.shutdown()


app = FastAPI(
    title=app_settings.app_name,
    description="Local mirror of the filamentcolors.xyz swatch catalog",
    version=APP_VERSION,
    lifespan=lifespan,
)

# Nearest-color snapshot, refreshed on TTL expiry or after each committed pass
app.state.swatch_snapshot = SwatchSnapshot()

# API routes
app.include_router(swatches.router, prefix=app_settings.api_prefix)
app.include_router(sync.router, prefix=app_settings.api_prefix)


@app.get("/")
async def root():
    return {
        "message": "SwatchSync API",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
