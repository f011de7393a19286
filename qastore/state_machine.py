"""
Deferred status transitions for entities.

A status change is only a request until the entity is saved. At most one
transition is pending per save cycle; chained changes collapse into a
single transition from the first-seen status to the last-set one:

    t = StatusTransition()
    t.request_change("draft", "pending")
    t.request_change("pending", "publish")
    t.pending                               # TransitionPending("draft", "publish")

After the store has committed, commit() fires the kind's three
notifications in a fixed order:

  1. entered      (id, to, entity)
  2. transitioned (id, from, to, entity)   (only if from is non-empty)
  3. changed      (id, from, to, entity)

Notifications are best-effort: a listener that raises is logged and the
next notification still fires. Persistence is never undone by them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


class NoTransitionPending:
    """Nothing to announce on the next save."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "NoTransitionPending()"


NO_TRANSITION = NoTransitionPending()


@dataclass(frozen=True)
class TransitionPending:
    """A status change waiting for the next successful save."""
    from_status: str
    to_status: str


@dataclass(frozen=True)
class TransitionHooks:
    """The event names an entity kind announces its transitions under."""
    entered: str
    transitioned: str
    changed: str

    @classmethod
    def for_type(cls, object_type: str) -> "TransitionHooks":
        return cls(
            entered=f"{object_type}_status_entered",
            transitioned=f"{object_type}_status_transitioned",
            changed=f"{object_type}_status_changed",
        )

    def __iter__(self):
        return iter((self.entered, self.transitioned, self.changed))


class StatusTransition:
    """Holds the pending transition for one entity instance."""

    def __init__(self):
        self._state = NO_TRANSITION

    @property
    def pending(self):
        """NO_TRANSITION or a TransitionPending."""
        return self._state

    def request_change(self, old_status: Optional[str], new_status: str):
        """Record that status moved from old_status to new_status.

        Returns the resulting state.
        """
        state = self._state
        if isinstance(state, TransitionPending):
            if new_status == state.from_status:
                # Back where the cycle started
                self._state = NO_TRANSITION
            else:
                self._state = TransitionPending(state.from_status, new_status)
        elif old_status != new_status:
            self._state = TransitionPending(old_status or "", new_status)
        return self._state

    def reset(self) -> None:
        self._state = NO_TRANSITION

    def commit(self, entity_id, dispatcher, hooks: TransitionHooks,
               entity=None) -> list:
        """Fire the pending transition's notifications.

        Returns the event names that were emitted.
        """
        state = self._state
        if not isinstance(state, TransitionPending):
            return []

        # Cleared before dispatch so a listener that saves again cannot re-fire
        self._state = NO_TRANSITION

        if dispatcher is None:
            logger.debug(
                "No dispatcher; dropping transition %s → %s for %s",
                state.from_status, state.to_status, entity_id,
            )
            return []

        from_status, to_status = state.from_status, state.to_status
        events = [(hooks.entered, (entity_id, to_status, entity))]
        if from_status:
            events.append(
                (hooks.transitioned, (entity_id, from_status, to_status, entity))
            )
        events.append(
            (hooks.changed, (entity_id, from_status, to_status, entity))
        )

        emitted = []
        for name, args in events:
            try:
                dispatcher.emit(name, *args)
            except Exception:
                logger.exception(
                    "Listener for %s failed (id=%s, %s → %s)",
                    name, entity_id, from_status, to_status,
                )
            emitted.append(name)
        return emitted
