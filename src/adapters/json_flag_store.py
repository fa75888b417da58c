"""JSON file storage adapter for flag sets.

Implements the core FlagStorePort with one JSON array of strings per set.
Writes go to a temporary sibling first and are swapped in with os.replace,
so a crash mid-write leaves the previous file intact.
"""

from __future__ import annotations

import json
import os
from typing import Iterable


class JsonFlagStore:
    """Thin file wrapper that satisfies the FlagStorePort contract."""

    def __init__(self, directory: str) -> None:
        self._directory = directory

    def path_for(self, name: str) -> str:
        return os.path.join(self._directory, f"{name}.json")

    def load(self, name: str) -> set[str]:
        """Return the stored ids; a missing file is an empty set."""

        path = self.path_for(name)
        if not os.path.exists(path):
            return set()
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, list):
            raise ValueError(f"{path} does not contain a JSON array")
        return {str(item) for item in data}

    def save(self, name: str, items: Iterable[str]) -> None:
        """Overwrite the stored set with the given ids."""

        os.makedirs(self._directory, exist_ok=True)
        path = self.path_for(name)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(list(items), handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
