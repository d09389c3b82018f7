from datetime import datetime

from pydantic import BaseModel, Field

from worldsync.app.services.profile_store import Profile


class ProfileResponse(BaseModel):
    """A settings profile and the worlds mapped to it."""

    name: str
    sync_time: bool
    time_zero: datetime
    time_offset: int
    time_speed: float
    sync_weather: bool
    weather_city: str
    worlds: list[str] = []

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            name=profile.name,
            sync_time=profile.sync_time,
            time_zero=profile.time_zero,
            time_offset=profile.time_offset,
            time_speed=profile.time_speed,
            sync_weather=profile.sync_weather,
            weather_city=profile.weather_city,
            worlds=list(profile.worlds),
        )


class ProfileSettingUpdate(BaseModel):
    """Textual value for a single profile setting, as typed by a user."""

    value: str = Field(..., description="true|false, ticks, multiplier, ISO date-time or city")


class ProfileCopyRequest(BaseModel):
    target: str = Field(..., min_length=1, description="Profile whose settings will be overwritten")
