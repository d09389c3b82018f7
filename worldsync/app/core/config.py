from pathlib import Path

from pydantic_settings import BaseSettings

# Application version - single source of truth
APP_VERSION = "0.3.0"

# Base directory for path calculations
_base_dir = Path(__file__).resolve().parent.parent.parent.parent


class Settings(BaseSettings):
    app_name: str = "WorldSync"
    debug: bool = False  # Default to production mode

    # Paths
    base_dir: Path = _base_dir
    log_dir: Path = base_dir / "logs"
    database_url: str = f"sqlite+aiosqlite:///{_base_dir / 'worldsync.db'}"

    # Logging
    log_level: str = "INFO"  # Override with LOG_LEVEL env var or DEBUG=true
    log_to_file: bool = True  # Set to false to disable file logging

    # API
    api_prefix: str = "/api/v1"

    # Scheduler - one simulated tick is 1/20th of a real second
    tick_seconds: float = 0.05

    # Weather provider (openweathermap.org current weather endpoint)
    weather_api_url: str = "https://api.openweathermap.org/data/2.5/weather"
    weather_request_timeout: float = 10.0

    # Seeds for the persisted runtime options, only used when a key is missing
    weather_api_key: str = ""
    fetch_weather_period: int = 1200  # ticks
    config_autosave: bool = True
    config_autosave_period: int = 6000  # ticks

    # Policy for worlds whose day/weather cycle toggle the host can't report
    unknown_cycle_enabled: bool = True

    # Worlds exposed by the built-in in-memory host
    worlds: list[str] = ["world", "world_nether", "world_the_end"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()

# Ensure directories exist
if settings.log_to_file:
    settings.log_dir.mkdir(exist_ok=True)
