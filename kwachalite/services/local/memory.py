"""In-memory local storage, for tests and ephemeral sessions."""

from typing import Optional

from kwachalite.services.local.interface import LocalStorageInterface


class MemoryLocalStorage(LocalStorageInterface):
    """Dict-backed storage. Survives a store rebuild but not the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._items)
