"""
Answer properties. Answers hang off a question through parent_id.
"""

from datetime import datetime

from qastore.columns import ANSWER_PROPS
from qastore.registry import absint

ANSWER_PROPS.define("content", str,
    default="",
    description="Answer body",
)

ANSWER_PROPS.define("parent_id", int,
    default=0,
    coerce=absint,
    description="Id of the question being answered",
)

ANSWER_PROPS.define("status", str,
    default="draft",
    description="Publication status",
)

ANSWER_PROPS.define("date_created", datetime,
    description="When the answer was created (UTC)",
)

ANSWER_PROPS.define("date_modified", datetime,
    description="When the answer was last modified (UTC)",
)

ANSWER_PROPS.define("vote_up_counts", int, default=0, coerce=absint)
ANSWER_PROPS.define("vote_down_counts", int, default=0, coerce=absint)
ANSWER_PROPS.define("vote_net_counts", int, default=0, coerce=int)
