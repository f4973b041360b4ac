"""
User Preferences

Currency and active workspace, each under its own local storage key.
Preferences are device-local and never synced.
"""

from typing import Optional

import structlog

from kwachalite.config import SUPPORTED_CURRENCIES, get_settings
from kwachalite.models.finance import Workspace
from kwachalite.services.local import LocalPersistenceError, LocalStorageInterface


CURRENCY_KEY = "kwachalite-currency"
WORKSPACE_KEY = "active-workspace-storage"


class Preferences:
    """Persisted currency code and active workspace."""

    def __init__(
        self,
        storage: LocalStorageInterface,
        default_currency: Optional[str] = None,
    ):
        self._storage = storage
        self._default_currency = default_currency or get_settings().app.default_currency
        self._logger = structlog.get_logger("kwachalite.preferences")

    @property
    def currency(self) -> str:
        try:
            saved = self._storage.get_item(CURRENCY_KEY)
        except LocalPersistenceError as e:
            self._logger.warning("currency_unreadable", error=str(e))
            return self._default_currency
        if saved and saved.strip().upper() in SUPPORTED_CURRENCIES:
            return saved.strip().upper()
        return self._default_currency

    def set_currency(self, code: str) -> bool:
        """
        Save the currency code.

        Raises:
            ValueError: If the code is not supported

        Returns:
            False if the write failed
        """
        normalized = code.strip().upper()
        if normalized not in SUPPORTED_CURRENCIES:
            raise ValueError(
                f"Unsupported currency: {code}. Supported: {', '.join(SUPPORTED_CURRENCIES)}"
            )
        try:
            self._storage.set_item(CURRENCY_KEY, normalized)
            return True
        except LocalPersistenceError as e:
            self._logger.warning("currency_persist_failed", error=str(e))
            return False

    @property
    def workspace(self) -> Workspace:
        try:
            saved = self._storage.read_json(WORKSPACE_KEY)
        except LocalPersistenceError as e:
            self._logger.warning("workspace_unreadable", error=str(e))
            return Workspace.PERSONAL
        try:
            return Workspace(saved["state"]["activeWorkspace"])
        except (TypeError, KeyError, ValueError):
            return Workspace.PERSONAL

    def set_workspace(self, workspace: Workspace) -> bool:
        try:
            self._storage.write_json(
                WORKSPACE_KEY,
                {"state": {"activeWorkspace": Workspace(workspace).value}, "version": 0},
            )
            return True
        except LocalPersistenceError as e:
            self._logger.warning("workspace_persist_failed", error=str(e))
            return False
