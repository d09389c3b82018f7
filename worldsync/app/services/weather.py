"""Weather states and the classifier that maps weather descriptions onto them."""

from enum import Enum

from worldsync.app.services.world_registry import WorldRegistry


class WeatherState(str, Enum):
    CLEAR = "CLEAR"
    RAIN = "RAIN"
    THUNDER = "THUNDER"

    @property
    def is_storming(self) -> bool:
        return WEATHER_FLAGS[self][0]

    @property
    def is_thundering(self) -> bool:
        return WEATHER_FLAGS[self][1]


# state -> (storm, thundering) flags set on a world
WEATHER_FLAGS: dict[WeatherState, tuple[bool, bool]] = {
    WeatherState.CLEAR: (False, False),
    WeatherState.RAIN: (True, False),
    WeatherState.THUNDER: (True, True),
}

RAIN_WORDS = ("rain", "shower", "drizzle", "snow")


def classify(description: str | None) -> WeatherState:
    """Determine the most likely weather state from a weather description.

    "thunder" wins over the rain words, so a thunderstorm with rain is THUNDER.
    Anything unrecognised (including no description) is CLEAR.
    """
    if not description:
        return WeatherState.CLEAR

    desc = description.lower()
    if "thunder" in desc:
        return WeatherState.THUNDER
    if any(word in desc for word in RAIN_WORDS):
        return WeatherState.RAIN
    return WeatherState.CLEAR


def apply_weather(state: WeatherState, registry: WorldRegistry, world: str) -> None:
    """Set the world's storm and thunder flags for the given weather state."""
    storm, thundering = WEATHER_FLAGS[state]
    registry.set_storm(world, storm)
    registry.set_thundering(world, thundering)
