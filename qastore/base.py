"""
Data base class — a change-tracked entity on top of a PropertyBag.

Subclass with a PropertyRegistry to create an entity kind:

    class Question(Data):
        object_type = "question"
        data_store_name = "question"
        cache_group = "questions"
        _props = QUESTION_PROPS

Lifecycle:
- Constructed with an id, the entity is hydrated once by its DataStore and
  marked read; constructed without one it is a fresh, already-read entity.
- Setters after that accumulate into the change set.
- save() creates or updates through the DataStore, invalidates cached meta,
  fires the pending status transition, then folds the changes into the
  baseline.
"""

import json
import logging
import uuid
import dataclasses
from datetime import datetime, date
from decimal import Decimal
from typing import Optional

from qastore.data_store import DataStoreNotFound, load
from qastore.dates import DateNormalizer
from qastore.exceptions import EntityStateError, PersistenceError
from qastore.meta import MetaCache, MetaStore
from qastore.props import VIEW, EDIT, PropertyBag
from qastore.registry import PropertyRegistry, RegistryError
from qastore.state_machine import StatusTransition, TransitionHooks

logger = logging.getLogger(__name__)

DEFAULT_STATUS = "draft"


class _JSONEncoder(json.JSONEncoder):
    """Handles datetime, date, Decimal, UUID, and dataclass serialization."""

    def default(self, obj):
        if isinstance(obj, datetime):
            return {"__type__": "datetime", "value": obj.isoformat()}
        if isinstance(obj, date):
            return {"__type__": "date", "value": obj.isoformat()}
        if isinstance(obj, Decimal):
            return {"__type__": "Decimal", "value": str(obj)}
        if isinstance(obj, uuid.UUID):
            return {"__type__": "UUID", "value": str(obj)}
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        return super().default(obj)


def _json_decoder_hook(d):
    """Reconstruct special types from JSONB."""
    if "__type__" in d:
        t = d["__type__"]
        v = d["value"]
        if t == "datetime":
            return datetime.fromisoformat(v)
        if t == "date":
            return date.fromisoformat(v)
        if t == "Decimal":
            return Decimal(v)
        if t == "UUID":
            return uuid.UUID(v)
    return d


class Data:
    """
    Base class for change-tracked entities.

    Process-wide collaborators are wired on the class and can be
    overridden per instance:

        Data.configure(meta_cache=MetaCache(store), dispatcher=EventBus())
        q = Question(42, data_store=other_store)
    """

    object_type: str = "data"
    data_store_name: Optional[str] = None
    cache_group: Optional[str] = None
    transition_hooks: Optional[TransitionHooks] = None
    before_save_hook: Optional[str] = None

    # Property schema, set on each concrete kind
    _props: Optional[PropertyRegistry] = None

    # Shared collaborators, set with configure()
    _shared_meta_cache: Optional[MetaCache] = None
    _shared_dispatcher = None
    _shared_date_normalizer: Optional[DateNormalizer] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        if cls._props is None:
            return
        if cls._props.object_type != cls.object_type:
            raise RegistryError(
                f"{cls.__name__}: schema is for '{cls._props.object_type}', "
                f"not '{cls.object_type}'"
            )
        if "transition_hooks" not in cls.__dict__:
            cls.transition_hooks = TransitionHooks.for_type(cls.object_type)
        if "before_save_hook" not in cls.__dict__:
            cls.before_save_hook = f"{cls.object_type}_before_save"

    @classmethod
    def configure(cls, **collaborators):
        """Wire meta_cache, dispatcher and/or date_normalizer for cls and its subclasses."""
        for name, value in collaborators.items():
            attr = f"_shared_{name}"
            if not hasattr(Data, attr):
                raise TypeError(f"Unknown collaborator: {name}")
            setattr(cls, attr, value)

    def __init__(self, obj=0, *, data_store=None, meta_cache=None,
                 dispatcher=None, date_normalizer=None):
        if self._props is None:
            raise TypeError(f"{type(self).__name__} has no property schema")

        self._id = 0
        self._bag = PropertyBag(self._props)
        self._transition = StatusTransition()
        self._data_store = data_store
        self._meta_cache = meta_cache
        self._dispatcher = dispatcher
        self._date_normalizer = date_normalizer

        object_id = self._coerce_id(obj)
        if object_id > 0:
            self.set_id(object_id)
            self._read()
        else:
            self.set_object_read(True)

    def _coerce_id(self, obj) -> int:
        if obj is None or isinstance(obj, bool):
            return 0
        if isinstance(obj, Data):
            if not isinstance(obj, type(self)):
                raise TypeError(
                    f"Cannot build {type(self).__name__} from {type(obj).__name__}"
                )
            return obj.get_id()
        if isinstance(obj, int):
            return obj
        if isinstance(obj, str) and obj.strip().isdigit():
            return int(obj)
        object_id = getattr(obj, "id", None)
        if object_id is not None:
            return int(object_id)
        raise TypeError(f"Cannot read {type(self).__name__} from {obj!r}")

    # ── Collaborators ────────────────────────────────────────────────

    @property
    def data_store(self):
        if self._data_store is not None:
            return self._data_store
        if self.data_store_name is None:
            raise DataStoreNotFound(None)
        return load(self.data_store_name)

    @property
    def meta_cache(self) -> Optional[MetaCache]:
        if self._meta_cache is not None:
            return self._meta_cache
        return type(self)._shared_meta_cache

    @property
    def dispatcher(self):
        if self._dispatcher is not None:
            return self._dispatcher
        return type(self)._shared_dispatcher

    @property
    def date_normalizer(self) -> DateNormalizer:
        normalizer = self._date_normalizer
        if normalizer is None:
            normalizer = type(self)._shared_date_normalizer
        if normalizer is None:
            normalizer = DateNormalizer()
        return normalizer

    # ── Identity / read state ────────────────────────────────────────

    def get_id(self) -> int:
        return self._id

    def set_id(self, object_id) -> None:
        object_id = int(object_id)
        if object_id < 0:
            raise ValueError(f"Invalid id: {object_id}")
        self._id = object_id

    def get_type(self) -> str:
        return self.object_type

    def get_object_read(self) -> bool:
        return self._bag.object_read

    def set_object_read(self, read: bool = True) -> None:
        self._bag.object_read = bool(read)

    # ── Properties ───────────────────────────────────────────────────

    def get_prop(self, name: str, context: str = VIEW):
        return self._bag.get(name, context)

    def set_prop(self, name: str, value) -> None:
        """Set a property, applying the schema's coercion.

        Date properties go through the DateNormalizer; InvalidDateError
        reaches the caller. Once the entity is read, status goes through
        set_status() so the change is announced on the next save.
        """
        if name == "status" and self.get_object_read():
            self.set_status(value)
            return
        self._write_prop(name, value)

    def _write_prop(self, name: str, value) -> None:
        prop = self._props.get(name)
        if prop.is_date:
            value = self.date_normalizer.normalize(value)
        elif prop.coerce is not None:
            value = prop.coerce(value)
        self._bag.set(name, value)

    def set_date_prop(self, name: str, value) -> None:
        if not self._props.get(name).is_date:
            raise TypeError(f"'{name}' is not a date property")
        self.set_prop(name, value)

    def has_prop(self, name: str) -> bool:
        return self._props.has(name)

    def get_props(self, context: str = EDIT) -> dict:
        """Merged property mapping, without id or meta."""
        return {name: self._bag.get(name, context) for name in self._props.names()}

    def get_changes(self) -> dict:
        return self._bag.get_changes()

    def apply_changes(self) -> None:
        self._bag.clear_changes()

    # ── Status ───────────────────────────────────────────────────────

    def get_status(self, context: str = VIEW) -> str:
        return self.get_prop("status", context)

    def set_status(self, new_status: str) -> dict:
        """Set status; once read, queue a transition for the next save."""
        old_status = self.get_status()
        if self.get_object_read() and not old_status:
            old_status = DEFAULT_STATUS

        self._write_prop("status", new_status)

        if self.get_object_read():
            self._transition.request_change(old_status, new_status)

        return {"from": old_status, "to": new_status}

    def get_pending_transition(self):
        return self._transition.pending

    # ── Meta ─────────────────────────────────────────────────────────

    def _meta_source(self) -> Optional[MetaStore]:
        try:
            store = self.data_store
        except DataStoreNotFound:
            store = None
        if isinstance(store, MetaStore):
            return store
        cache = self.meta_cache
        return cache.store if cache is not None else None

    def get_meta_data(self) -> list:
        """Ordered (key, value) pairs, cached under (cache_group, id)."""
        if not self._id:
            return []
        source = self._meta_source()
        if source is None:
            return []
        cache = self.meta_cache
        if cache is None:
            return [tuple(row) for row in source.fetch(self._id, self.cache_group)]
        return cache.get_meta(self._id, self.cache_group, store=source)

    def get_meta(self, key: str, single: bool = True, default=None):
        values = [v for k, v in self.get_meta_data() if k == key]
        if not single:
            return values
        return values[0] if values else default

    # ── Snapshot ─────────────────────────────────────────────────────

    def get_data(self) -> dict:
        """id, merged properties, and meta in one mapping."""
        data = {"id": self.get_id()}
        data.update(self.get_props(VIEW))
        data["meta_data"] = self.get_meta_data()
        return data

    def to_json(self) -> str:
        return json.dumps(self.get_props(EDIT), cls=_JSONEncoder)

    # ── Persistence ──────────────────────────────────────────────────

    def _read(self) -> None:
        # Hydrate fresh state; the previous state survives a failed read
        previous = (self._bag, self._transition)
        self._bag = PropertyBag(self._props)
        self._transition = StatusTransition()
        try:
            self.data_store.read(self)
        except Exception:
            self._bag, self._transition = previous
            raise
        self.set_object_read(True)

    def reload(self) -> None:
        """Discard changes and the pending transition, then re-read."""
        if not self._id:
            raise EntityStateError(
                f"{self.object_type} has no id to reload",
                entity_type=self.object_type,
            )
        self._read()

    def save(self):
        """Persist through the DataStore.

        Returns the id, or a PersistenceError if the store failed. On
        failure changes and the pending transition are kept for a retry.
        """
        try:
            store = self.data_store
            dispatcher = self.dispatcher
            if dispatcher is not None and self.before_save_hook:
                dispatcher.emit(self.before_save_hook, self, store)

            if self._id:
                store.update(self)
            else:
                new_id = store.create(self)
                if not self._id and new_id:
                    self.set_id(new_id)
                if not self._id:
                    raise PersistenceError(
                        f"Store did not assign an id to the new {self.object_type}",
                        entity_type=self.object_type,
                    )
        except Exception as exc:
            error = exc
            if not isinstance(exc, PersistenceError):
                error = PersistenceError(
                    str(exc), entity_type=self.object_type, entity_id=self._id,
                )
                error.__cause__ = exc
            logger.warning("Saving %s %s failed: %s",
                           self.object_type, self._id or "(new)", error)
            return error

        cache = self.meta_cache
        if cache is not None:
            cache.invalidate(self._id, self.cache_group)

        self._transition.commit(
            self._id, self.dispatcher, self.transition_hooks, self,
        )
        self.apply_changes()
        return self._id

    def update_status(self, new_status: str):
        """set_status() + save() for an entity that already exists.

        Returns the save() result, or an EntityStateError (and changes
        nothing) when the entity has no id yet.
        """
        if not self._id:
            return EntityStateError(
                f"{self.object_type} must exist before its status can change",
                entity_type=self.object_type,
            )
        self.set_status(new_status)
        return self.save()

    def __repr__(self):
        return f"<{type(self).__name__} id={self._id} dirty={sorted(self.get_changes())}>"
