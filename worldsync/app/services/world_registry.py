"""Host world registry - the worlds that time and weather are applied to."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class WorldRegistry(ABC):
    """Interface the sync engine needs from the environment that owns the worlds."""

    @abstractmethod
    def list_loaded_worlds(self) -> list[str]:
        """Get the identifiers of all currently loaded worlds."""

    @abstractmethod
    def get_day_cycle_enabled(self, world: str) -> bool | None:
        """Get the world's own day-cycle toggle, or None if unknown."""

    @abstractmethod
    def get_weather_cycle_enabled(self, world: str) -> bool | None:
        """Get the world's own weather-cycle toggle, or None if unknown."""

    @abstractmethod
    def set_simulated_time(self, world: str, ticks: int) -> None:
        pass

    @abstractmethod
    def set_storm(self, world: str, storm: bool) -> None:
        pass

    @abstractmethod
    def set_thundering(self, world: str, thundering: bool) -> None:
        pass


@dataclass
class WorldState:
    """State of a world kept by the in-memory host."""

    name: str
    full_time: int = 0
    storm: bool = False
    thundering: bool = False
    day_cycle: bool | None = None  # None = host doesn't report the toggle
    weather_cycle: bool | None = None


class InMemoryWorldRegistry(WorldRegistry):
    """Registry that keeps world state in process memory.

    Used when the service runs standalone and by the tests.
    """

    def __init__(self, world_names: list[str] | None = None):
        self._worlds: dict[str, WorldState] = {}
        for name in world_names or []:
            self.load_world(name)

    def load_world(
        self,
        name: str,
        day_cycle: bool | None = None,
        weather_cycle: bool | None = None,
    ) -> WorldState:
        state = WorldState(name=name, day_cycle=day_cycle, weather_cycle=weather_cycle)
        self._worlds[name] = state
        logger.debug("Loaded world %s", name)
        return state

    def unload_world(self, name: str) -> None:
        self._worlds.pop(name, None)

    def get_world(self, name: str) -> WorldState | None:
        return self._worlds.get(name)

    def list_loaded_worlds(self) -> list[str]:
        return list(self._worlds.keys())

    def get_day_cycle_enabled(self, world: str) -> bool | None:
        state = self._worlds.get(world)
        return state.day_cycle if state else None

    def get_weather_cycle_enabled(self, world: str) -> bool | None:
        state = self._worlds.get(world)
        return state.weather_cycle if state else None

    def set_simulated_time(self, world: str, ticks: int) -> None:
        state = self._worlds.get(world)
        if state:
            state.full_time = ticks

    def set_storm(self, world: str, storm: bool) -> None:
        state = self._worlds.get(world)
        if state:
            state.storm = storm

    def set_thundering(self, world: str, thundering: bool) -> None:
        state = self._worlds.get(world)
        if state:
            state.thundering = thundering
