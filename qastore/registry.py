"""
Property Registry — the fixed schema behind each entity kind.

Every property an entity can carry must first be defined here, together
with its default. Access to anything outside the schema fails loudly with
UnknownPropertyError instead of quietly yielding None.

PropDef captures:
  A. Core type (name, python_type, default)
  B. Input coercion applied by the setter layer (coerce)
  C. Documentation (description)
"""

import copy
import dataclasses
from datetime import datetime
from typing import Any, Callable, Optional


class RegistryError(Exception):
    """Raised when a property definition is invalid."""


class UnknownPropertyError(RegistryError, KeyError):
    """Raised when a property name is not part of the entity's schema."""

    def __init__(self, object_type, name):
        self.object_type = object_type
        self.name = name
        super().__init__(
            f"Property '{name}' is not defined for '{object_type}'"
        )

    def __str__(self):
        # KeyError would otherwise repr() the message
        return self.args[0]


def absint(value) -> int:
    """Coerce to a non-negative integer the way counters expect it."""
    if value is None or value == "":
        return 0
    return abs(int(value))


@dataclasses.dataclass
class PropDef:
    """Canonical definition of a single entity property."""

    name: str
    python_type: type
    default: Any = None
    coerce: Optional[Callable[[Any], Any]] = None
    description: str = ""

    @property
    def is_date(self) -> bool:
        return self.python_type is datetime

    def fresh_default(self):
        """A private copy of the default, so mutable defaults are never shared."""
        return copy.deepcopy(self.default)


class PropertyRegistry:
    """
    Schema catalog for one entity kind.

    Usage:
        QUESTION_PROPS = PropertyRegistry("question")
        QUESTION_PROPS.define("title", str, default="")
        QUESTION_PROPS.define("answer_counts", int, default=0, coerce=absint)
    """

    def __init__(self, object_type: str):
        self.object_type = object_type
        self._props: dict[str, PropDef] = {}

    # ── Define properties ─────────────────────────────────────────

    def define(self, name: str, python_type: type, **kwargs) -> PropDef:
        """Register a new property.

        Raises RegistryError if the name is already defined or is not a
        valid identifier (getters and setters are derived from it).
        """
        if name in self._props:
            raise RegistryError(
                f"Property '{name}' is already defined for '{self.object_type}'"
            )
        if not name.isidentifier() or name.startswith("_"):
            raise RegistryError(f"Invalid property name: {name!r}")

        prop = PropDef(name=name, python_type=python_type, **kwargs)
        self._props[name] = prop
        return prop

    # ── Lookup ────────────────────────────────────────────────────

    def get(self, name: str) -> PropDef:
        """Get a property definition by name.

        Raises UnknownPropertyError if not found.
        """
        try:
            return self._props[name]
        except KeyError:
            raise UnknownPropertyError(self.object_type, name) from None

    def has(self, name: str) -> bool:
        return name in self._props

    def names(self) -> list:
        """Property names in definition order."""
        return list(self._props)

    def defaults(self) -> dict:
        """A fresh name → default mapping."""
        return {name: prop.fresh_default() for name, prop in self._props.items()}

    def date_props(self) -> list:
        return [name for name, prop in self._props.items() if prop.is_date]

    def __iter__(self):
        return iter(self._props.values())

    def __len__(self):
        return len(self._props)

    def __contains__(self, name):
        return name in self._props
