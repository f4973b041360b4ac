"""Local-first store: entity collections, defaults and preferences."""

from kwachalite.store.collection import EntityCollection
from kwachalite.store.defaults import default_categories
from kwachalite.store.preferences import CURRENCY_KEY, WORKSPACE_KEY, Preferences
from kwachalite.store.state import FinanceStore

__all__ = [
    "CURRENCY_KEY",
    "EntityCollection",
    "FinanceStore",
    "Preferences",
    "WORKSPACE_KEY",
    "default_categories",
]
