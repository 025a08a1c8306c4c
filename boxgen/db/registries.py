from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Generic, TypeVar

import yaml

from boxgen.core.config import RULESETS_FILE_PATH, SUBSCRIPTIONS_FILE_PATH
from boxgen.db.config import ConfigBase, alias
from boxgen.storage.blob import BlobNotFoundError, BlobStore

logger = logging.getLogger("boxgen.db.registries")


@dataclass
class Subscription(ConfigBase):
    """Source of proxy definitions, materialized as a JSON array at ``path``."""

    id: str = ""
    name: str = ""
    url: str = ""
    path: str = ""
    disabled: bool = False
    user_agent: str = field(default="", metadata=alias("userAgent"))
    update_time: str = field(default="", metadata=alias("updateTime"))


@dataclass
class Ruleset(ConfigBase):
    """Named domain/IP match set stored at ``path``."""

    id: str = ""
    tag: str = ""
    format: str = "binary"
    path: str = ""
    url: str = ""
    disabled: bool = False
    update_time: str = field(default="", metadata=alias("updateTime"))


E = TypeVar("E", Subscription, Ruleset)


class _Registry(Generic[E]):
    """YAML-backed list of entries addressable by ID."""

    entry_type: type[E]

    def __init__(self, blob_store: BlobStore, path: str):
        self._blob_store = blob_store
        self._path = path
        self._entries: dict[str, E] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[E]:
        """All entries, in stored order."""
        return list(self._entries.values())

    def get(self, entry_id: str) -> E | None:
        """Get entry by ID."""
        return self._entries.get(entry_id)

    def add(self, entry: E) -> None:
        """Add or replace an entry."""
        self._entries[entry.id] = entry

    def remove(self, entry_id: str) -> bool:
        """Remove entry by ID."""
        return self._entries.pop(entry_id, None) is not None

    def snapshot(self) -> Mapping[str, E]:
        """Read-only copy for a single generation run."""
        return MappingProxyType({key: entry.copy() for key, entry in self._entries.items()})

    def load(self) -> bool:
        """Load entries. A missing file leaves the registry empty."""
        try:
            data = yaml.safe_load(self._blob_store.read(self._path)) or []
        except BlobNotFoundError:
            self._entries = {}
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error("Error loading %s: %s", self._path, e)
            return False

        if not isinstance(data, list):
            logger.error("Registry file %s is not a list", self._path)
            return False

        self._entries = {}
        for item in data:
            if isinstance(item, dict):
                entry = self.entry_type.from_dict(item)
                self._entries[entry.id] = entry
        return True

    def save(self) -> None:
        """Persist all entries."""
        data = [entry.to_dict() for entry in self._entries.values()]
        text = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        self._blob_store.write(self._path, text.encode("utf-8"))


class SubscriptionRegistry(_Registry[Subscription]):
    """Subscriptions known to the application."""

    entry_type = Subscription

    def __init__(self, blob_store: BlobStore, path: str = SUBSCRIPTIONS_FILE_PATH):
        super().__init__(blob_store, path)


class RulesetRegistry(_Registry[Ruleset]):
    """Rulesets known to the application."""

    entry_type = Ruleset

    def __init__(self, blob_store: BlobStore, path: str = RULESETS_FILE_PATH):
        super().__init__(blob_store, path)
