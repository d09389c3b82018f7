"""Unit tests for settings profiles and world mapping."""

from datetime import datetime, timedelta, timezone

import pytest

from worldsync.app.core.config_store import ConfigStore
from worldsync.app.services.profile_store import (
    DEFAULT_TIME_ZERO,
    TICKS_MAX,
    TICKS_MIN,
    Profile,
    ProfileStore,
    ProfileValidationError,
    UnknownProfileField,
)
from worldsync.app.services.world_registry import InMemoryWorldRegistry

NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def store():
    return ConfigStore()


@pytest.fixture
def registry():
    return InMemoryWorldRegistry(["world", "world_nether"])


@pytest.fixture
def profiles(store, registry):
    return ProfileStore(store, registry)


def _settings(profile: Profile) -> tuple:
    return (
        profile.sync_time,
        profile.time_zero,
        profile.time_offset,
        profile.time_speed,
        profile.sync_weather,
        profile.weather_city,
    )


class TestProfileReads:
    def test_unknown_profile_reads_defaults(self, profiles):
        profile = profiles.get("missing")

        assert profile.name == "missing"
        assert _settings(profile) == (False, DEFAULT_TIME_ZERO, 0, 1.0, False, "")

    def test_empty_profile_reads_defaults(self, profiles):
        assert profiles.get("") == Profile(name="")

    def test_list_profiles_in_config_order(self, profiles):
        profiles.set_sync_time("zeta", True)
        profiles.set_sync_time("alpha", True)

        assert [p.name for p in profiles.list_profiles()] == ["zeta", "alpha"]
        assert profiles.profile_names() == ["zeta", "alpha"]

    def test_unparseable_time_zero_reads_default(self, profiles, store):
        store.set("settings.default.time-zero", "yesterday-ish")
        assert profiles.get("default").time_zero == DEFAULT_TIME_ZERO

    def test_stored_zero_speed_reads_as_one(self, profiles, store):
        store.set("settings.default.time-speed", 0.0)
        assert profiles.get("default").time_speed == 1.0


class TestProfileWrites:
    def test_setters_round_trip(self, profiles):
        profiles.set_sync_time("default", True)
        profiles.set_time_zero("default", datetime(2000, 1, 1), now=NOW)
        profiles.set_time_offset("default", -6000)
        profiles.set_time_speed("default", 2.5)
        profiles.set_sync_weather("default", True)
        profiles.set_weather_city("default", "London, GB")

        profile = profiles.get("default")
        assert _settings(profile) == (True, datetime(2000, 1, 1), -6000, 2.5, True, "London, GB")

    @pytest.mark.parametrize("speed", [0.5, -1.0, 3.14159, -0.001, 1e6])
    def test_time_speed_round_trip(self, profiles, speed):
        profiles.set_time_speed("default", speed)
        assert profiles.get("default").time_speed == speed

    def test_zero_speed_rejected_and_previous_kept(self, profiles):
        profiles.set_time_speed("default", 4.0)

        with pytest.raises(ProfileValidationError, match="cannot be zero"):
            profiles.set_time_speed("default", 0)

        assert profiles.get("default").time_speed == 4.0

    def test_non_finite_speed_rejected(self, profiles):
        with pytest.raises(ProfileValidationError):
            profiles.set_time_speed("default", float("nan"))

    def test_time_offset_bounds(self, profiles):
        profiles.set_time_offset("default", TICKS_MAX)
        profiles.set_time_offset("default", TICKS_MIN)
        assert profiles.get("default").time_offset == TICKS_MIN

        for ticks in (TICKS_MAX + 1, TICKS_MIN - 1, 10**400):
            with pytest.raises(ProfileValidationError, match="64-bit"):
                profiles.set_time_offset("default", ticks)

        assert profiles.get("default").time_offset == TICKS_MIN

    def test_time_zero_must_be_in_the_past(self, profiles):
        profiles.set_time_zero("default", datetime(2010, 5, 5), now=NOW)

        with pytest.raises(ProfileValidationError, match="in the past"):
            profiles.set_time_zero("default", NOW + timedelta(seconds=1), now=NOW)

        assert profiles.get("default").time_zero == datetime(2010, 5, 5)

    def test_time_zero_equal_to_now_rejected(self, profiles):
        with pytest.raises(ProfileValidationError):
            profiles.set_time_zero("default", NOW, now=NOW)

    def test_time_zero_none_resets_default(self, profiles):
        profiles.set_time_zero("default", datetime(2010, 5, 5), now=NOW)
        profiles.set_time_zero("default", None)
        assert profiles.get("default").time_zero == DEFAULT_TIME_ZERO

    def test_aware_time_zero_stored_as_local(self, profiles):
        aware = datetime(2000, 1, 1, tzinfo=timezone.utc)
        profiles.set_time_zero("default", aware, now=NOW)
        assert profiles.get("default").time_zero == aware.astimezone().replace(tzinfo=None)

    @pytest.mark.parametrize("city", ["Paris&units=metric", "What?", "a/b"])
    def test_city_forbidden_characters(self, profiles, city):
        profiles.set_weather_city("default", "Oslo")

        with pytest.raises(ProfileValidationError, match="invalid characters"):
            profiles.set_weather_city("default", city)

        assert profiles.get("default").weather_city == "Oslo"

    def test_writes_to_empty_profile_are_ignored(self, profiles, store):
        profiles.set_sync_time("", True)
        profiles.set_time_zero("", datetime(2000, 1, 1), now=NOW)
        profiles.set_time_offset("", 5)
        profiles.set_time_speed("", 0)
        profiles.set_sync_weather("", True)
        profiles.set_weather_city("", "a/b")
        profiles.clear("")
        profiles.copy("default", "")

        assert store.to_dict() == {}
        assert profiles.get("") == Profile(name="")


class TestSetFromText:
    @pytest.mark.parametrize(
        "setting,text,attr,expected",
        [
            ("sync-time", "TRUE", "sync_time", True),
            ("sync-weather", "false", "sync_weather", False),
            ("time-offset", "-24000", "time_offset", -24000),
            ("time-speed", "0.5", "time_speed", 0.5),
            ("time-zero", "2000-01-01T00:00:00", "time_zero", datetime(2000, 1, 1)),
            ("weather-city", "New York, US", "weather_city", "New York, US"),
        ],
    )
    def test_parses_and_sets(self, profiles, setting, text, attr, expected):
        profiles.set_from_text("default", setting, text, now=NOW)
        assert getattr(profiles.get("default"), attr) == expected

    @pytest.mark.parametrize(
        "setting,text,message",
        [
            ("sync-time", "yes", "Invalid boolean"),
            ("time-offset", "1.5", "integer"),
            ("time-speed", "fast", "real number"),
            ("time-speed", "0", "cannot be zero"),
            ("time-zero", "last tuesday", "not formatted correctly"),
            ("time-zero", "2000-01-01", "not formatted correctly"),
            ("time-offset", "9223372036854775808", "64-bit"),
            ("time-zero", "2099-01-01T00:00:00", "in the past"),
        ],
    )
    def test_rejects_bad_text(self, profiles, setting, text, message):
        with pytest.raises(ProfileValidationError, match=message):
            profiles.set_from_text("default", setting, text, now=NOW)
        assert profiles.profile_names() == []

    def test_unknown_setting(self, profiles):
        with pytest.raises(UnknownProfileField):
            profiles.set_from_text("default", "gravity", "9.81")


class TestCopyAndClear:
    def test_copy_overwrites_all_settings(self, profiles):
        profiles.set_sync_time("a", True)
        profiles.set_time_zero("a", datetime(1999, 12, 31, 23, 59, 59), now=NOW)
        profiles.set_time_offset("a", 1234)
        profiles.set_time_speed("a", -2.0)
        profiles.set_sync_weather("a", True)
        profiles.set_weather_city("a", "Tokyo")

        profiles.set_time_offset("b", 99)
        profiles.set_weather_city("b", "Lima")

        profiles.copy("a", "b")

        assert _settings(profiles.get("b")) == _settings(profiles.get("a"))

    def test_copy_defaults_over_existing(self, profiles):
        profiles.set_sync_time("b", True)
        profiles.set_weather_city("b", "Lima")

        profiles.copy("unset", "b")

        assert _settings(profiles.get("b")) == _settings(Profile(name="b"))

    def test_copy_to_self_is_noop(self, profiles, store):
        profiles.set_time_offset("a", 10)
        before = store.to_dict()

        profiles.copy("a", "a")

        assert store.to_dict() == before

    def test_clear_resets_to_defaults(self, profiles):
        profiles.set_sync_time("a", True)
        profiles.set_weather_city("a", "Tokyo")

        profiles.clear("a")

        assert "a" not in profiles.profile_names()
        assert _settings(profiles.get("a")) == _settings(Profile(name="a"))


class TestWorldMapping:
    def test_map_and_lookup(self, profiles):
        profiles.map_world("world", "default")

        assert profiles.profile_name_for("world") == "default"
        assert profiles.get_for("world").name == "default"
        assert profiles.get("default").worlds == ("world",)

    def test_unmapped_world_has_empty_profile(self, profiles):
        assert profiles.profile_name_for("world") == ""
        assert profiles.get_for("world") == Profile(name="")

    def test_map_to_empty_profile_unmaps(self, profiles):
        profiles.map_world("world", "default")
        profiles.map_world("world", "")

        assert profiles.mapped_world_names() == []

    def test_unmap_world(self, profiles):
        profiles.map_world("world", "default")
        profiles.map_world("world_nether", "default")

        profiles.unmap_world("world")

        assert profiles.mapped_world_names() == ["world_nether"]

    def test_empty_world_name_ignored(self, profiles, store):
        profiles.map_world("", "default")
        assert store.to_dict() == {}

    def test_worlds_for_only_loaded_worlds(self, profiles):
        profiles.map_world("world", "default")
        profiles.map_world("world_nether", "nether")
        profiles.map_world("unloaded_world", "default")

        assert profiles.worlds_for("default") == {"world"}
        assert profiles.worlds_for("nether") == {"world_nether"}
        assert profiles.worlds_for("") == set()
        assert sorted(profiles.mapped_world_names("default")) == ["unloaded_world", "world"]


class TestDottedNames:
    """Names become config path segments, so they cannot contain the separator."""

    @pytest.mark.parametrize(
        "write",
        [
            lambda p: p.set_sync_time("v1.2", True),
            lambda p: p.set_time_zero("v1.2", datetime(2000, 1, 1), now=NOW),
            lambda p: p.set_time_offset("v1.2", 5),
            lambda p: p.set_time_speed("v1.2", 2.0),
            lambda p: p.set_sync_weather("v1.2", True),
            lambda p: p.set_weather_city("v1.2", "Oslo"),
            lambda p: p.set_from_text("v1.2", "sync-time", "true"),
            lambda p: p.copy("default", "v1.2"),
            lambda p: p.copy("v1.2", "default"),
            lambda p: p.clear("default.time-speed"),
        ],
    )
    def test_profile_writes_rejected(self, profiles, store, write):
        profiles.set_time_speed("default", 2.0)
        before = store.to_dict()

        with pytest.raises(ProfileValidationError, match="cannot contain"):
            write(profiles)

        assert store.to_dict() == before

    def test_dotted_world_does_not_unmap_its_prefix(self, profiles):
        profiles.map_world("world", "default")

        with pytest.raises(ProfileValidationError, match="World name"):
            profiles.map_world("world.backup", "other")
        with pytest.raises(ProfileValidationError):
            profiles.unmap_world("world.backup")

        assert profiles.profile_name_for("world") == "default"

    def test_map_to_dotted_profile_rejected(self, profiles):
        with pytest.raises(ProfileValidationError):
            profiles.map_world("world", "v1.2")

        assert profiles.mapped_world_names() == []
