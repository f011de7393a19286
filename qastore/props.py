"""
PropertyBag — typed key/value store with a baseline and a change set.

The baseline holds what was loaded from (or last saved to) the backing
store. Once the owning entity has been read, every mutation lands in the
change set instead, which is what stores use to build partial updates.
"""

from typing import Any

from qastore.registry import PropertyRegistry

VIEW = "view"
EDIT = "edit"
CONTEXTS = (VIEW, EDIT)


class PropertyBag:
    """Baseline properties plus dirty-tracked changes for one entity."""

    def __init__(self, registry: PropertyRegistry):
        self._registry = registry
        self._data = registry.defaults()
        self._changes: dict[str, Any] = {}
        self.object_read = False

    @property
    def registry(self) -> PropertyRegistry:
        return self._registry

    def get(self, name: str, context: str = VIEW) -> Any:
        """Return the merged value: pending change, else baseline, else default.

        Both contexts return the same value; the distinction is kept so
        callers can state their intent.
        """
        prop = self._registry.get(name)
        if context not in CONTEXTS:
            raise ValueError(f"Unknown context {context!r}, expected one of {CONTEXTS}")
        if name in self._changes:
            return self._changes[name]
        if name in self._data:
            return self._data[name]
        return prop.fresh_default()

    def set(self, name: str, value: Any) -> bool:
        """Write a value. Returns True if it was recorded as a change."""
        self._registry.get(name)
        if not self.object_read:
            self._data[name] = value
            return False
        if value == self.get(name):
            return False
        self._changes[name] = value
        return True

    def is_dirty(self, name: str = None) -> bool:
        if name is None:
            return bool(self._changes)
        self._registry.get(name)
        return name in self._changes

    def get_changes(self) -> dict:
        """Snapshot of the pending changes."""
        return dict(self._changes)

    def clear_changes(self) -> None:
        """Fold pending changes into the baseline."""
        self._data.update(self._changes)
        self._changes.clear()

    def discard_changes(self) -> None:
        """Drop pending changes without touching the baseline."""
        self._changes.clear()

    def get_data(self) -> dict:
        """Merged view of every property."""
        data = dict(self._data)
        data.update(self._changes)
        return data

    def get_base_data(self) -> dict:
        return dict(self._data)

    def reset(self) -> None:
        """Back to schema defaults, nothing read, nothing changed."""
        self._data = self._registry.defaults()
        self._changes.clear()
        self.object_read = False
