"""
Property catalogs — one PropertyRegistry per entity kind.

Exports QUESTION_PROPS and ANSWER_PROPS, populated by the modules below.
"""

from qastore.registry import PropertyRegistry

QUESTION_PROPS = PropertyRegistry("question")
ANSWER_PROPS = PropertyRegistry("answer")

# Import kind modules to populate the registries
from qastore.columns import question   # noqa: F401, E402
from qastore.columns import answer     # noqa: F401, E402
