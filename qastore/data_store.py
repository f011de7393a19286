"""
DataStore ABC — the persistence delegate every entity talks to.

Concrete stores (in-memory, PostgreSQL, ...) register under a store name;
each entity kind names the store it loads:

    register("question", PostgresDataStore(...))
    store = load("question")

Entities never import a concrete backend.
"""

import threading
from abc import ABC, abstractmethod

from qastore.exceptions import NotFoundError, PersistenceError  # noqa: F401


class DataStoreNotFound(LookupError):
    """Raised when no store is registered under a name."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"No data store registered as '{name}'")


class DataStore(ABC):
    """Reads, creates and updates entity rows.

    Implementations must override every abstract method and raise
    NotFoundError / PersistenceError rather than backend exceptions.
    """

    @abstractmethod
    def read(self, entity) -> None:
        """Hydrate entity from the row with entity.get_id().

        Properties are written with entity.set_prop() while the entity is
        not yet read, so they form its baseline. Raises NotFoundError.
        """

    @abstractmethod
    def create(self, entity) -> int:
        """Insert a new row, assign it with entity.set_id() and return the id."""

    @abstractmethod
    def update(self, entity) -> None:
        """Persist entity.get_changes() for an existing row.

        An empty change set is a no-op.
        """


# ── Store registry ───────────────────────────────────────────────────

_stores: dict[str, DataStore] = {}
_lock = threading.Lock()


def register(name: str, store: DataStore) -> DataStore:
    """Make store the one loaded for name. Replaces any previous one."""
    if not isinstance(store, DataStore):
        raise TypeError(f"{type(store).__name__} is not a DataStore")
    with _lock:
        _stores[name] = store
    return store


def unregister(name: str) -> None:
    with _lock:
        _stores.pop(name, None)


def load(name: str) -> DataStore:
    """Return the store registered under name."""
    with _lock:
        try:
            return _stores[name]
        except KeyError:
            raise DataStoreNotFound(name) from None


def registered() -> list:
    with _lock:
        return sorted(_stores)
