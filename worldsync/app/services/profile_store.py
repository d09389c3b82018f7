"""Settings profiles and the world -> profile mapping.

A profile is a named bundle of sync settings stored under
``settings.<profile>.<field>``; worlds are mapped to profiles under
``worlds.<world>``. The profile named "" stands for "no profile": it reads as
all defaults and every write to it is ignored.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime

from worldsync.app.core.config_store import PATH_SEPARATOR, ConfigStore
from worldsync.app.services.world_registry import WorldRegistry

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "settings"
WORLDS_SECTION = "worlds"

SYNC_TIME = "sync-time"
TIME_ZERO = "time-zero"
TIME_OFFSET = "time-offset"
TIME_SPEED = "time-speed"
SYNC_WEATHER = "sync-weather"
WEATHER_CITY = "weather-city"

PROFILE_FIELDS = (SYNC_TIME, TIME_ZERO, TIME_OFFSET, TIME_SPEED, SYNC_WEATHER, WEATHER_CITY)

DEFAULT_TIME_ZERO = datetime(1, 1, 1, 0, 0, 0)
DEFAULT_TIME_SPEED = 1.0
CITY_FORBIDDEN_CHARS = ("&", "?", "/")

# Tick counts are signed 64-bit
TICKS_MIN = -(2**63)
TICKS_MAX = 2**63 - 1


class ProfileValidationError(ValueError):
    """Raised when a profile setting is rejected. The stored value is unchanged."""


class UnknownProfileField(KeyError):
    """Raised when a profile field name isn't one of PROFILE_FIELDS."""


@dataclass(frozen=True)
class Profile:
    """Snapshot of a settings profile."""

    name: str
    sync_time: bool = False
    time_zero: datetime = DEFAULT_TIME_ZERO
    time_offset: int = 0
    time_speed: float = DEFAULT_TIME_SPEED
    sync_weather: bool = False
    weather_city: str = ""
    worlds: tuple[str, ...] = field(default=(), compare=False)


def check_name(name: str, kind: str = "Profile") -> None:
    """Reject names that would split into several config path segments."""
    if PATH_SEPARATOR in name:
        raise ProfileValidationError(f"{kind} name cannot contain '{PATH_SEPARATOR}'")


def parse_bool(text: str) -> bool:
    if text.lower() == "true":
        return True
    if text.lower() == "false":
        return False
    raise ProfileValidationError(f"Invalid boolean: {text}")


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def parse_time_zero(text: str) -> datetime:
    # a full date-time, a bare date is not enough
    if "T" not in text:
        raise ProfileValidationError("Time zero was not formatted correctly")
    try:
        return to_local_naive(datetime.fromisoformat(text))
    except ValueError:
        raise ProfileValidationError("Time zero was not formatted correctly") from None


def parse_time_offset(text: str) -> int:
    try:
        ticks = int(text)
    except ValueError:
        raise ProfileValidationError("Ticks must be an integer") from None
    if not TICKS_MIN <= ticks <= TICKS_MAX:
        raise ProfileValidationError("Ticks must fit in a signed 64-bit integer")
    return ticks


def parse_time_speed(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        raise ProfileValidationError("Multiplier must be a real number") from None


class ProfileStore:
    """Reads and writes settings profiles in a ConfigStore."""

    def __init__(self, store: ConfigStore, registry: WorldRegistry):
        self._store = store
        self._registry = registry

    @staticmethod
    def _path(name: str, setting: str) -> str:
        return f"{SETTINGS_SECTION}.{name}.{setting}"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def profile_names(self) -> list[str]:
        return self._store.get_keys(SETTINGS_SECTION)

    def list_profiles(self) -> list[Profile]:
        return [self.get(name) for name in self.profile_names()]

    def get(self, name: str) -> Profile:
        """Get the profile by name. Unknown names read as all defaults."""
        if not name:
            return Profile(name="")

        return Profile(
            name=name,
            sync_time=self._store.get_bool(self._path(name, SYNC_TIME), False),
            time_zero=self._read_time_zero(name),
            time_offset=self._store.get_int(self._path(name, TIME_OFFSET), 0),
            time_speed=self._read_time_speed(name),
            sync_weather=self._store.get_bool(self._path(name, SYNC_WEATHER), False),
            weather_city=self._store.get_str(self._path(name, WEATHER_CITY), "") or "",
            worlds=tuple(sorted(self.mapped_world_names(name))),
        )

    def _read_time_zero(self, name: str) -> datetime:
        iso_time_zero = self._store.get_str(self._path(name, TIME_ZERO))
        if iso_time_zero:
            try:
                return to_local_naive(datetime.fromisoformat(iso_time_zero))
            except ValueError:
                logger.debug("Ignoring unparseable time-zero %r for profile %s", iso_time_zero, name)
        return DEFAULT_TIME_ZERO

    def _read_time_speed(self, name: str) -> float:
        multiplier = self._store.get_float(self._path(name, TIME_SPEED), DEFAULT_TIME_SPEED)
        return multiplier if multiplier != 0 else DEFAULT_TIME_SPEED

    # ------------------------------------------------------------------
    # Writes - all silently ignored for the empty profile
    # ------------------------------------------------------------------

    def set_sync_time(self, name: str, sync: bool) -> None:
        if not name:
            return
        check_name(name)
        self._store.set(self._path(name, SYNC_TIME), bool(sync))

    def set_time_zero(self, name: str, time_zero: datetime | None, now: datetime | None = None) -> None:
        """Set the real date-time that maps to the profile's time origin.

        None resets it to the default. A time zero that isn't strictly in the
        past is rejected.
        """
        if not name:
            return
        check_name(name)
        if time_zero is None:
            self._store.set(self._path(name, TIME_ZERO), None)
            return

        time_zero = to_local_naive(time_zero)
        now = now or datetime.now()
        if time_zero >= now:
            raise ProfileValidationError("Time zero must be in the past")
        self._store.set(self._path(name, TIME_ZERO), time_zero.isoformat())

    def set_time_offset(self, name: str, ticks: int) -> None:
        if not name:
            return
        check_name(name)
        ticks = int(ticks)
        if not TICKS_MIN <= ticks <= TICKS_MAX:
            raise ProfileValidationError("Ticks must fit in a signed 64-bit integer")
        self._store.set(self._path(name, TIME_OFFSET), ticks)

    def set_time_speed(self, name: str, multiplier: float) -> None:
        if not name:
            return
        check_name(name)
        if multiplier == 0:
            raise ProfileValidationError("Multiplier cannot be zero")
        if not math.isfinite(multiplier):
            raise ProfileValidationError("Multiplier must be a real number")
        self._store.set(self._path(name, TIME_SPEED), float(multiplier))

    def set_sync_weather(self, name: str, sync: bool) -> None:
        if not name:
            return
        check_name(name)
        self._store.set(self._path(name, SYNC_WEATHER), bool(sync))

    def set_weather_city(self, name: str, city: str) -> None:
        if not name:
            return
        check_name(name)
        if any(char in city for char in CITY_FORBIDDEN_CHARS):
            raise ProfileValidationError("City contains invalid characters")
        self._store.set(self._path(name, WEATHER_CITY), city)

    def set_from_text(self, name: str, setting: str, text: str, now: datetime | None = None) -> None:
        """Parse a textual setting value and store it.

        Raises:
            UnknownProfileField: if setting isn't a profile field.
            ProfileValidationError: if the text can't be parsed or is rejected.
        """
        if setting == SYNC_TIME:
            self.set_sync_time(name, parse_bool(text))
        elif setting == TIME_ZERO:
            self.set_time_zero(name, parse_time_zero(text), now=now)
        elif setting == TIME_OFFSET:
            self.set_time_offset(name, parse_time_offset(text))
        elif setting == TIME_SPEED:
            self.set_time_speed(name, parse_time_speed(text))
        elif setting == SYNC_WEATHER:
            self.set_sync_weather(name, parse_bool(text))
        elif setting == WEATHER_CITY:
            self.set_weather_city(name, text)
        else:
            raise UnknownProfileField(setting)
        logger.info("Set %s.%s: %s", name, setting, text)

    def copy(self, source: str, target: str) -> None:
        """Overwrite all settings of target with those of source."""
        if source == target or not target:
            return
        check_name(source)
        check_name(target)

        profile = self.get(source)
        self.set_sync_time(target, profile.sync_time)
        # written raw, a stored time zero was already validated
        self._store.set(self._path(target, TIME_ZERO), profile.time_zero.isoformat())
        self.set_time_offset(target, profile.time_offset)
        self.set_time_speed(target, profile.time_speed)
        self.set_sync_weather(target, profile.sync_weather)
        self._store.set(self._path(target, WEATHER_CITY), profile.weather_city)
        logger.info("Copied profile %s to %s", source, target)

    def clear(self, name: str) -> None:
        """Remove every stored setting of the profile."""
        if not name:
            return
        check_name(name)
        self._store.set(f"{SETTINGS_SECTION}.{name}", None)
        logger.info("Cleared profile %s", name)

    # ------------------------------------------------------------------
    # World mapping
    # ------------------------------------------------------------------

    def profile_name_for(self, world: str) -> str:
        if not world:
            return ""
        return self._store.get_str(f"{WORLDS_SECTION}.{world}", "") or ""

    def get_for(self, world: str) -> Profile:
        return self.get(self.profile_name_for(world))

    def map_world(self, world: str, profile_name: str) -> None:
        """Apply the profile to the world. An empty profile name unmaps it."""
        if not world:
            return
        check_name(world, "World")
        if not profile_name:
            self.unmap_world(world)
            return
        check_name(profile_name)
        self._store.set(f"{WORLDS_SECTION}.{world}", profile_name)
        logger.info("Now syncing %s with profile %s", world, profile_name)

    def unmap_world(self, world: str) -> None:
        if not world:
            return
        check_name(world, "World")
        self._store.set(f"{WORLDS_SECTION}.{world}", None)
        logger.info("No longer syncing %s", world)

    def mapped_world_names(self, profile_name: str | None = None) -> list[str]:
        """Get the names of mapped worlds, loaded or not, optionally for one profile."""
        names = self._store.get_keys(WORLDS_SECTION)
        if profile_name is None:
            return names
        return [world for world in names if self.profile_name_for(world) == profile_name]

    def worlds_for(self, profile_name: str) -> set[str]:
        """Get the currently loaded worlds the profile is applied to."""
        if not profile_name:
            return set()
        mapped = set(self.mapped_world_names(profile_name))
        return {world for world in self._registry.list_loaded_worlds() if world in mapped}
