"""refreshcache.storage.json_file

Plain JSON snapshot on disk.
"""

from __future__ import annotations

import contextlib
import os
from pathlib import Path

from refreshcache.core.exceptions import StorageError
from refreshcache.storage.base import Snapshot


class JsonFileStorage:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> Snapshot | None:
        if not self.path.exists():
            return None
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read snapshot {self.path}: {e}") from e
        if not raw.strip():
            return None
        return Snapshot.from_json(raw)

    def save(self, snapshot: Snapshot) -> None:
        data = snapshot.to_json()
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self._ensure_dir()
            tmp.write_text(data, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageError(f"Cannot write snapshot {self.path}: {e}") from e
