from pathlib import Path

from pydantic_settings import BaseSettings

# Application version - single source of truth
APP_VERSION = "0.3.1"

# Base directory for path calculations
_base_dir = Path(__file__).resolve().parent.parent.parent.parent

FILAMENTCOLORS_API_URL = "https://filamentcolors.xyz/api/swatch/"


class Settings(BaseSettings):
    app_name: str = "SwatchSync"
    debug: bool = False  # Default to production mode

    # Paths
    base_dir: Path = _base_dir
    log_dir: Path = base_dir / "logs"
    database_url: str = f"sqlite+aiosqlite:///{_base_dir / 'swatchsync.db'}"

    # Logging
    log_level: str = "INFO"  # Override with LOG_LEVEL env var or DEBUG=true
    log_to_file: bool = True  # Set to false to disable file logging

    # API
    api_prefix: str = "/api/v1"

    # Remote catalog
    catalog_url: str = FILAMENTCOLORS_API_URL
    catalog_timeout: float = 30.0  # seconds per page request

    # Sync engine
    sync_enabled: bool = True  # Run the background scheduler with the API
    sync_interval_hours: float = 24.0  # Measured from the end of the previous pass
    sync_page_delay: float = 1.0  # seconds between page requests
    sync_max_pages: int = 500  # Ceiling on the remote cursor chain per pass
    sync_shutdown_timeout: float = 30.0  # seconds to wait for an in-flight pass on shutdown

    # Nearest-color snapshot
    snapshot_ttl_hours: float = 24.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

if settings.log_to_file:
    settings.log_dir.mkdir(exist_ok=True)
