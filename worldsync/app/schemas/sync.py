from datetime import datetime

from pydantic import BaseModel, Field

from worldsync.app.services.sync_scheduler import ProfileSyncResult
from worldsync.app.services.weather import WeatherState


class WorldResponse(BaseModel):
    """A loaded world, the profile applied to it and its current state."""

    name: str
    profile: str
    full_time: int | None = None
    storm: bool | None = None
    thundering: bool | None = None
    day_cycle: bool | None = None
    weather_cycle: bool | None = None


class WorldMappingRequest(BaseModel):
    profile: str = Field(default="default", description="Profile to apply; empty stops syncing")


class ProfileSyncResponse(BaseModel):
    profile: str
    now: datetime
    base_ticks: int
    simulated_time: int
    weather: WeatherState
    time_synced: list[str]
    weather_synced: list[str]

    @classmethod
    def from_result(cls, result: ProfileSyncResult) -> "ProfileSyncResponse":
        return cls(
            profile=result.profile,
            now=result.now,
            base_ticks=result.base_ticks,
            simulated_time=result.simulated_time,
            weather=result.weather,
            time_synced=result.time_synced,
            weather_synced=result.weather_synced,
        )


class WeatherFetchResponse(BaseModel):
    """Outcome per city; null means the fetch failed and the cache kept its value."""

    enabled: bool
    cities: dict[str, WeatherState | None] = {}


class SyncStatus(BaseModel):
    state: str
    debug: bool
    weather_api_key_set: bool
    weather_api_key: str = Field(description="Masked API key")
    fetch_weather_period: int
    config_autosave: bool
    config_autosave_period: int
    scheduled_tasks: int
    weather_cache: dict[str, WeatherState]


class MessageResponse(BaseModel):
    message: str
