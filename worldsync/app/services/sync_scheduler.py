"""Sync scheduler - keeps world time and weather in step with real life."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from worldsync.app.core.config import settings
from worldsync.app.core.config_store import ConfigStore
from worldsync.app.services.profile_store import Profile, ProfileStore
from worldsync.app.services.tick_scheduler import TickScheduler
from worldsync.app.services.time_translator import translate_time
from worldsync.app.services.weather import WeatherState, apply_weather
from worldsync.app.services.weather_fetcher import WeatherCache, WeatherFetcher
from worldsync.app.services.world_registry import WorldRegistry

logger = logging.getLogger(__name__)

# Minimum period in ticks of the weather fetch and autosave timers
MIN_PERIOD_TICKS = 1200


def default_config() -> dict:
    """Runtime options written to the config store when missing."""
    return {
        "weather-api-key": settings.weather_api_key,
        "fetch-weather-period": settings.fetch_weather_period,
        "config-autosave": settings.config_autosave,
        "config-autosave-period": settings.config_autosave_period,
    }


class SchedulerState(str, Enum):
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


@dataclass
class SyncContext:
    """Process-wide sync state, created at startup and torn down at shutdown."""

    store: ConfigStore
    registry: WorldRegistry
    profiles: ProfileStore
    weather_cache: WeatherCache
    ticks: TickScheduler
    clock: Callable[[], datetime] = datetime.now
    unknown_cycle_enabled: bool = True

    @classmethod
    def create(
        cls,
        registry: WorldRegistry,
        store: ConfigStore | None = None,
        ticks: TickScheduler | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "SyncContext":
        store = store or ConfigStore()
        return cls(
            store=store,
            registry=registry,
            profiles=ProfileStore(store, registry),
            weather_cache=WeatherCache(),
            ticks=ticks or TickScheduler(),
            clock=clock,
            unknown_cycle_enabled=settings.unknown_cycle_enabled,
        )

    @property
    def weather_api_key(self) -> str:
        """The openweathermap.org API key; empty disables weather fetching."""
        return self.store.get_str("weather-api-key", "") or ""

    @property
    def weather_fetch_period(self) -> int:
        return max(self.store.get_int("fetch-weather-period"), MIN_PERIOD_TICKS)

    @property
    def config_autosave(self) -> bool:
        return self.store.get_bool("config-autosave", False)

    @property
    def config_autosave_period(self) -> int:
        return max(self.store.get_int("config-autosave-period"), MIN_PERIOD_TICKS)

    def cycle_enabled(self, toggle: bool | None) -> bool:
        return self.unknown_cycle_enabled if toggle is None else toggle


@dataclass
class ProfileSyncResult:
    """What one sync tick did for one profile."""

    profile: str
    now: datetime
    base_ticks: int
    simulated_time: int
    weather: WeatherState
    time_synced: list[str] = field(default_factory=list)
    weather_synced: list[str] = field(default_factory=list)


class SyncScheduler:
    """Schedules world syncs, weather fetches and config autosaves."""

    def __init__(self, context: SyncContext, fetcher: WeatherFetcher | None = None):
        self.context = context
        self.fetcher = fetcher or WeatherFetcher(context.weather_cache)
        self.state = SchedulerState.STOPPED
        self.debug = False

    async def enable(self):
        """Load the config and (re)schedule every periodic task."""
        ctx = self.context
        await ctx.store.reload()
        ctx.store.load_defaults(default_config())

        ctx.ticks.cancel_all()

        ctx.ticks.run_periodic(1, self.sync_worlds, delay_ticks=1)

        if ctx.weather_api_key:
            period = ctx.weather_fetch_period
            ctx.ticks.run_periodic(period, self._launch_weather_fetch, delay_ticks=1)
            logger.info("Fetching weather every %d ticks", period)
        else:
            logger.info("No weather API key configured, weather fetching disabled")

        if ctx.config_autosave:
            period = ctx.config_autosave_period
            ctx.ticks.run_periodic(period, self.flush)
            logger.info("Autosaving config every %d ticks", period)

        self.state = SchedulerState.RUNNING
        logger.info("Sync scheduler started")

    async def refresh(self):
        """Reload the config and reschedule."""
        await self.enable()

    async def disable(self):
        """Stop all tasks and save the config once."""
        self.context.ticks.cancel_all()
        try:
            await self.flush()
        finally:
            await self.fetcher.close()
            self.state = SchedulerState.STOPPED
            logger.info("Sync scheduler stopped")

    async def flush(self):
        await self.context.store.save()
        logger.debug("Config saved")

    def toggle_debugging(self) -> bool:
        self.debug = not self.debug
        logger.info("Turned debugging mode %s", "on" if self.debug else "off")
        return self.debug

    def sync_worlds(self) -> list[ProfileSyncResult]:
        """Apply the current real-life time and cached weather to every synced world."""
        results: list[ProfileSyncResult] = []
        for profile in self.context.profiles.list_profiles():
            try:
                result = self._sync_profile(profile)
            except Exception as e:
                # one broken profile must not hold back the others
                logger.exception("Failed to sync profile %s: %s", profile.name, e)
                continue
            if result is not None:
                results.append(result)
        return results

    def _sync_profile(self, profile: Profile) -> ProfileSyncResult | None:
        ctx = self.context
        registry = ctx.registry
        worlds = ctx.profiles.worlds_for(profile.name)
        if not worlds:
            return None

        translation = translate_time(ctx.clock(), profile)
        weather = ctx.weather_cache.get(profile.weather_city)
        result = ProfileSyncResult(
            profile=profile.name,
            now=translation.now,
            base_ticks=translation.base_ticks,
            simulated_time=translation.simulated_time,
            weather=weather,
        )

        if self.debug:
            logger.info(
                "RL time is %s (translates to %d ticks and %d gameticks) for %s",
                translation.now,
                translation.base_ticks,
                translation.simulated_time,
                profile.name,
            )

        for world in sorted(worlds):
            if profile.sync_time and ctx.cycle_enabled(registry.get_day_cycle_enabled(world)):
                registry.set_simulated_time(world, translation.simulated_time)
                result.time_synced.append(world)
            if profile.sync_weather and ctx.cycle_enabled(registry.get_weather_cycle_enabled(world)):
                apply_weather(weather, registry, world)
                result.weather_synced.append(world)

        return result

    def force_sync(self) -> list[ProfileSyncResult]:
        return self.sync_worlds()

    def _launch_weather_fetch(self):
        self.context.ticks.run_async(self.fetch_weather)

    async def fetch_weather(self) -> dict[str, WeatherState | None]:
        """Refresh the weather cache for every city used by a profile."""
        ctx = self.context
        cities = [profile.weather_city for profile in ctx.profiles.list_profiles()]
        return await self.fetcher.refresh(ctx.weather_api_key, cities)

    async def force_fetch_weather(self) -> dict[str, WeatherState | None]:
        return await self.fetch_weather()
