"""Item catalog loader.

The catalog only needs to answer one question reliably: is an item a
completed item (legendary, mythic or finished boots)? Data is pinned in the
repository so scoring never depends on a network fetch at runtime.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from pathlib import Path

DEFAULT_DATA_FILE = Path(__file__).resolve().parent / "items.json"

BOOTS_TYPE = "boots"
COMPLETED_TYPES = frozenset({"legendary", "mythic", BOOTS_TYPE})


class ItemCatalog:
    """Classify item ids by tier."""

    _lock = threading.Lock()
    _default: ItemCatalog | None = None

    def __init__(self, item_types: Mapping[int, str], names: Mapping[int, str] | None = None, version: str = "") -> None:
        self._types = dict(item_types)
        self._names = dict(names or {})
        self.version = version

    @classmethod
    def from_json(cls, data_file: Path) -> ItemCatalog:
        if not data_file.exists():
            raise FileNotFoundError(f"Item data file missing: {data_file}")
        payload = json.loads(data_file.read_text("utf-8"))
        types: dict[int, str] = {}
        names: dict[int, str] = {}
        for raw_id, entry in payload.get("items", {}).items():
            try:
                item_id = int(raw_id)
            except (TypeError, ValueError):
                continue
            types[item_id] = str(entry.get("itemType", ""))
            if entry.get("name"):
                names[item_id] = str(entry["name"])
        return cls(types, names, version=str(payload.get("version", "")))

    @classmethod
    def default(cls) -> ItemCatalog:
        """Catalog shipped with the package, loaded once per process."""
        with cls._lock:
            if cls._default is None:
                cls._default = cls.from_json(DEFAULT_DATA_FILE)
            return cls._default

    def item_type(self, item_id: int) -> str | None:
        return self._types.get(item_id)

    def is_completed(self, item_id: int) -> bool:
        """Unknown ids are never completed."""
        return self._types.get(item_id) in COMPLETED_TYPES

    def is_boots(self, item_id: int) -> bool:
        return self._types.get(item_id) == BOOTS_TYPE

    def name(self, item_id: int) -> str | None:
        return self._names.get(item_id)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._types

    def __len__(self) -> int:
        return len(self._types)
