"""
Entity kinds of the Q&A store.
Each is a Data subclass bound to a property catalog, a store name and a
meta cache group.
"""

from typing import Optional

from qastore.base import Data
from qastore.columns import ANSWER_PROPS, QUESTION_PROPS
from qastore.props import VIEW


class Question(Data):
    """A question: title, body, status, timestamps, and vote/answer counters.

    Question(42) reads question 42 from the "question" store;
    Question() is a new, empty question.
    """

    object_type = "question"
    data_store_name = "question"
    cache_group = "questions"
    _props = QUESTION_PROPS

    # ── Getters ──────────────────────────────────────────────────────

    def get_title(self, context=VIEW):
        return self.get_prop("title", context)

    def get_content(self, context=VIEW):
        return self.get_prop("content", context)

    def get_parent_id(self, context=VIEW):
        return self.get_prop("parent_id", context)

    def get_answer_counts(self, context=VIEW):
        return self.get_prop("answer_counts", context)

    def get_vote_up_counts(self, context=VIEW):
        return self.get_prop("vote_up_counts", context)

    def get_vote_down_counts(self, context=VIEW):
        return self.get_prop("vote_down_counts", context)

    def get_vote_net_counts(self, context=VIEW):
        return self.get_prop("vote_net_counts", context)

    def get_best_answer_id(self, context=VIEW):
        """Id of the selected answer, 0 if none."""
        return self.get_prop("best_answer_id", context)

    def get_view_counts(self, context=VIEW):
        return self.get_prop("view_counts", context)

    def get_date_created(self, context=VIEW):
        """Aware UTC datetime, or None if not set."""
        return self.get_prop("date_created", context)

    def get_date_modified(self, context=VIEW):
        return self.get_prop("date_modified", context)

    # ── Setters ──────────────────────────────────────────────────────

    def set_title(self, value):
        self.set_prop("title", value)

    def set_content(self, value):
        self.set_prop("content", value)

    def set_parent_id(self, value):
        self.set_prop("parent_id", value)

    def set_answer_counts(self, value):
        self.set_prop("answer_counts", value)

    def set_best_answer_id(self, value):
        self.set_prop("best_answer_id", value)

    def set_vote_up_counts(self, value):
        self.set_prop("vote_up_counts", value)

    def set_vote_down_counts(self, value):
        self.set_prop("vote_down_counts", value)

    def set_vote_net_counts(self, value):
        self.set_prop("vote_net_counts", value)

    def set_view_counts(self, value):
        self.set_prop("view_counts", value)

    def set_date_created(self, value=None):
        """Epoch seconds (UTC), an ISO-8601 string, a datetime, or None.

        Strings and naive datetimes without an offset are taken to be in
        the site timezone. Raises InvalidDateError for anything else.
        """
        self.set_date_prop("date_created", value)

    def set_date_modified(self, value=None):
        self.set_date_prop("date_modified", value)


class Answer(Data):
    """An answer to a question. Its meta is never cached."""

    object_type = "answer"
    data_store_name = "answer"
    cache_group = None
    _props = ANSWER_PROPS

    def get_content(self, context=VIEW):
        return self.get_prop("content", context)

    def set_content(self, value):
        self.set_prop("content", value)

    def get_parent_id(self, context=VIEW):
        """Id of the question this answers."""
        return self.get_prop("parent_id", context)

    def set_parent_id(self, value):
        self.set_prop("parent_id", value)

    def get_vote_up_counts(self, context=VIEW):
        return self.get_prop("vote_up_counts", context)

    def set_vote_up_counts(self, value):
        self.set_prop("vote_up_counts", value)

    def get_vote_down_counts(self, context=VIEW):
        return self.get_prop("vote_down_counts", context)

    def set_vote_down_counts(self, value):
        self.set_prop("vote_down_counts", value)

    def get_vote_net_counts(self, context=VIEW):
        return self.get_prop("vote_net_counts", context)

    def set_vote_net_counts(self, value):
        self.set_prop("vote_net_counts", value)

    def get_date_created(self, context=VIEW):
        return self.get_prop("date_created", context)

    def set_date_created(self, value=None):
        self.set_date_prop("date_created", value)

    def get_date_modified(self, context=VIEW):
        return self.get_prop("date_modified", context)

    def set_date_modified(self, value=None):
        self.set_date_prop("date_modified", value)

    def get_question(self, **collaborators) -> Optional[Question]:
        """Load the parent question, or None if the answer has no parent."""
        parent_id = self.get_parent_id()
        if not parent_id:
            return None
        return Question(parent_id, **collaborators)
