"""Entity-related exceptions.

UnknownPropertyError lives in qastore.registry and InvalidDateError in
qastore.dates; both are re-exported from the package root.
"""

from typing import Optional


class EntityError(Exception):
    """Base exception for entity operations."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.entity_type = entity_type
        self.entity_id = entity_id


class NotFoundError(EntityError):
    """Raised when reading an id the store does not have."""

    def __init__(self, entity_type: str, entity_id: int) -> None:
        super().__init__(
            f"{entity_type} with id {entity_id} not found",
            entity_type=entity_type,
            entity_id=entity_id,
        )


class PersistenceError(EntityError):
    """A store operation failed.

    Entity.save() returns this instead of raising, with the message of the
    underlying failure.
    """


class EntityStateError(EntityError):
    """The entity is not in a state that allows the operation."""
