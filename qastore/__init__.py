"""
Change-tracked entities for a Q&A content store: lazy hydration, dirty
tracking, date normalization, cached meta, and status transitions announced
only after a durable save.

Backends (qastore.memory, qastore.client) and the embedded server
(qastore.server) are imported on demand.
"""

from qastore.base import Data
from qastore.data_store import DataStore, DataStoreNotFound, load, register, unregister
from qastore.dates import DateNormalizer, InvalidDateError
from qastore.exceptions import (
    EntityError,
    EntityStateError,
    NotFoundError,
    PersistenceError,
)
from qastore.meta import MetaCache, MetaStore
from qastore.models import Answer, Question
from qastore.props import PropertyBag
from qastore.registry import PropertyRegistry, UnknownPropertyError
from qastore.state_machine import (
    NO_TRANSITION,
    NoTransitionPending,
    StatusTransition,
    TransitionHooks,
    TransitionPending,
)
from qastore.subscriptions import EventBus

__all__ = [
    "Answer",
    "Data",
    "DataStore",
    "DataStoreNotFound",
    "DateNormalizer",
    "EntityError",
    "EntityStateError",
    "EventBus",
    "InvalidDateError",
    "MetaCache",
    "MetaStore",
    "NO_TRANSITION",
    "NoTransitionPending",
    "NotFoundError",
    "PersistenceError",
    "PropertyBag",
    "PropertyRegistry",
    "Question",
    "StatusTransition",
    "TransitionHooks",
    "TransitionPending",
    "UnknownPropertyError",
    "load",
    "register",
    "unregister",
]
