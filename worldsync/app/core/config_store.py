"""Hierarchical key/value configuration store.

Values live in an in-memory tree addressed by dotted paths such as
``settings.default.sync-time`` or ``worlds.world_nether``. Reads and writes
only touch the tree; ``save()`` and ``reload()`` move the whole tree to and
from the ``config_entries`` table.
"""

import copy
import json
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import delete, select

from worldsync.app.models.config_entry import ConfigEntry

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."


def _split(path: str) -> list[str]:
    if not path:
        return []
    return path.split(PATH_SEPARATOR)


class ConfigStore:
    """In-memory configuration tree persisted to the database on demand."""

    def __init__(self, session_factory=None):
        """Initialize an empty store.

        Args:
            session_factory: async_sessionmaker used by save()/reload().
                Defaults to the application's shared session factory.
        """
        self._root: dict[str, Any] = {}
        self._session_factory = session_factory

    def _get_session_factory(self):
        if self._session_factory is None:
            from worldsync.app.core.database import async_session

            return async_session
        return self._session_factory

    # ------------------------------------------------------------------
    # Tree access
    # ------------------------------------------------------------------

    def _walk(self, parts: list[str]) -> Any:
        node: Any = self._root
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def get(self, path: str, default: Any = None) -> Any:
        """Get the raw value (or section dict) at path."""
        value = self._walk(_split(path))
        return default if value is None else value

    def is_section(self, path: str) -> bool:
        return isinstance(self._walk(_split(path)), dict)

    def get_keys(self, path: str = "") -> list[str]:
        """Get the direct child keys of the section at path, in insertion order."""
        node = self._walk(_split(path))
        if isinstance(node, dict):
            return list(node.keys())
        return []

    def get_bool(self, path: str, default: bool = False) -> bool:
        value = self.get(path)
        return value if isinstance(value, bool) else default

    def get_str(self, path: str, default: str | None = None) -> str | None:
        value = self.get(path)
        if value is None or isinstance(value, dict):
            return default
        return value if isinstance(value, str) else str(value)

    def get_int(self, path: str, default: int = 0) -> int:
        value = self.get(path)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        return int(value)

    def get_float(self, path: str, default: float = 0.0) -> float:
        value = self.get(path)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return default
        return float(value)

    def set(self, path: str, value: Any) -> None:
        """Set the value at path. Setting None removes the key (and its section)."""
        parts = _split(path)
        if not parts:
            raise ValueError("Cannot set the root of the configuration tree")

        if value is None:
            parent = self._walk(parts[:-1])
            if isinstance(parent, dict):
                parent.pop(parts[-1], None)
            return

        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child

        if isinstance(value, Mapping):
            node[parts[-1]] = copy.deepcopy(dict(value))
        else:
            node[parts[-1]] = value

    def load_defaults(self, defaults: Mapping[str, Any]) -> list[str]:
        """Fill in every key of defaults that isn't present yet.

        Returns:
            The dotted paths that were added.
        """
        added: list[str] = []

        def merge(node: dict, source: Mapping[str, Any], prefix: str) -> None:
            for key, value in source.items():
                path = f"{prefix}{key}"
                if isinstance(value, Mapping):
                    child = node.get(key)
                    if not isinstance(child, dict):
                        if key in node:
                            continue
                        child = {}
                        node[key] = child
                    merge(child, value, f"{path}{PATH_SEPARATOR}")
                elif key not in node:
                    node[key] = value
                    added.append(path)

        merge(self._root, defaults, "")
        if added:
            logger.info("Added default config values: %s", ", ".join(added))
        return added

    def flatten(self) -> dict[str, Any]:
        """Get every leaf of the tree keyed by its dotted path."""
        leaves: dict[str, Any] = {}

        def visit(node: dict, prefix: str) -> None:
            for key, value in node.items():
                path = f"{prefix}{key}"
                if isinstance(value, dict):
                    visit(value, f"{path}{PATH_SEPARATOR}")
                else:
                    leaves[path] = value

        visit(self._root, "")
        return leaves

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._root)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self) -> None:
        """Replace the persisted configuration with the current tree."""
        leaves = self.flatten()
        async with self._get_session_factory()() as db:
            await db.execute(delete(ConfigEntry))
            db.add_all(ConfigEntry(key=key, value=json.dumps(value)) for key, value in leaves.items())
            await db.commit()
        logger.debug("Saved %d config entries", len(leaves))

    async def reload(self) -> None:
        """Discard the in-memory tree and rebuild it from the database."""
        async with self._get_session_factory()() as db:
            result = await db.execute(select(ConfigEntry).order_by(ConfigEntry.key))
            entries = list(result.scalars().all())

        self._root = {}
        for entry in entries:
            try:
                value = json.loads(entry.value)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable config entry %s", entry.key)
                continue
            self.set(entry.key, value)
        logger.debug("Loaded %d config entries", len(entries))
