"""
Question properties: text, lifecycle status, timestamps, and counters.
"""

from datetime import datetime

from qastore.columns import QUESTION_PROPS
from qastore.registry import absint

# ── Content ──────────────────────────────────────────────────────

QUESTION_PROPS.define("title", str,
    default="",
    description="Question title",
)

QUESTION_PROPS.define("content", str,
    default="",
    description="Question body",
)

QUESTION_PROPS.define("parent_id", int,
    default=0,
    coerce=absint,
    description="Parent object id, 0 for top-level questions",
)

# ── Lifecycle ────────────────────────────────────────────────────

QUESTION_PROPS.define("status", str,
    default="draft",
    description="Publication status",
)

QUESTION_PROPS.define("date_created", datetime,
    description="When the question was created (UTC)",
)

QUESTION_PROPS.define("date_modified", datetime,
    description="When the question was last modified (UTC)",
)

# ── Counters ─────────────────────────────────────────────────────

QUESTION_PROPS.define("answer_counts", int,
    default=0,
    coerce=absint,
    description="Number of answers",
)

QUESTION_PROPS.define("vote_up_counts", int,
    default=0,
    coerce=absint,
    description="Up votes",
)

QUESTION_PROPS.define("vote_down_counts", int,
    default=0,
    coerce=absint,
    description="Down votes",
)

QUESTION_PROPS.define("vote_net_counts", int,
    default=0,
    coerce=int,
    description="Up votes minus down votes; may be negative",
)

QUESTION_PROPS.define("best_answer_id", int,
    default=0,
    coerce=absint,
    description="Id of the selected answer, 0 if none",
)

QUESTION_PROPS.define("view_counts", int,
    default=0,
    coerce=absint,
    description="Number of views",
)
