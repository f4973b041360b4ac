"""
JSON File Storage

One file per key under a data directory. Writes go to a temporary file in
the same directory and are moved into place with os.replace, so a crash
mid-write leaves the previous value intact.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional

from kwachalite.services.local.interface import (
    LocalPersistenceError,
    LocalStorageInterface,
)


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")
_SUFFIX = ".json"


class JsonFileStorage(LocalStorageInterface):
    """Durable local storage backed by `<data_dir>/<key>.json` files."""

    def __init__(self, data_dir: Path):
        self._dir = Path(data_dir)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise LocalPersistenceError(str(self._dir), f"cannot create data directory: {e}")

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise LocalPersistenceError(key, "invalid storage key")
        return self._dir / f"{key}{_SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LocalPersistenceError(key, f"read failed: {e}")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._dir,
                prefix=f".{key}.",
                suffix=".tmp",
            )
            try:
                fh = os.fdopen(fd, "w", encoding="utf-8")
            except Exception:
                os.close(fd)
                raise
            with fh:
                fh.write(value)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise LocalPersistenceError(key, f"write failed: {e}")

    def remove_item(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise LocalPersistenceError(key, f"remove failed: {e}")

    def keys(self) -> list[str]:
        return sorted(
            p.name[: -len(_SUFFIX)]
            for p in self._dir.glob(f"*{_SUFFIX}")
            if not p.name.startswith(".")
        )
