from worldsync.app.models.config_entry import ConfigEntry

__all__ = [
    "ConfigEntry",
]
