"""
Tests for the Property Registry — per-kind schema catalog.

Covers:
- Property definition and retrieval
- Unknown names and redefinition
- Fresh defaults per call
- Coercion helpers
- The Question / Answer catalogs
"""

import pytest
from datetime import datetime

from qastore.registry import (
    PropDef,
    PropertyRegistry,
    RegistryError,
    UnknownPropertyError,
    absint,
)
from qastore.columns import ANSWER_PROPS, QUESTION_PROPS


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def reg():
    """Fresh registry for each test."""
    return PropertyRegistry("widget")


@pytest.fixture
def widget_reg():
    r = PropertyRegistry("widget")
    r.define("name", str, default="")
    r.define("weight", int, default=0, coerce=absint)
    r.define("tags", list, default=[])
    r.define("made_at", datetime)
    return r


# ===========================================================================
# A. Definition
# ===========================================================================

class TestDefine:

    def test_define_basic(self, reg):
        prop = reg.define("name", str, default="", description="Widget name")
        assert prop.name == "name"
        assert prop.python_type is str
        assert prop.default == ""
        assert prop.description == "Widget name"

    def test_define_returns_propdef(self, reg):
        assert isinstance(reg.define("name", str), PropDef)

    def test_default_defaults_to_none(self, reg):
        assert reg.define("made_at", datetime).default is None

    def test_duplicate_raises(self, reg):
        reg.define("name", str)
        with pytest.raises(RegistryError, match="already defined"):
            reg.define("name", str)

    @pytest.mark.parametrize("bad", ["", "two words", "_private", "1st"])
    def test_invalid_name_raises(self, reg, bad):
        with pytest.raises(RegistryError, match="Invalid property name"):
            reg.define(bad, str)


# ===========================================================================
# B. Lookup
# ===========================================================================

class TestLookup:

    def test_get_known(self, widget_reg):
        assert widget_reg.get("weight").coerce is absint

    def test_get_unknown_raises(self, widget_reg):
        with pytest.raises(UnknownPropertyError) as exc_info:
            widget_reg.get("colour")
        assert exc_info.value.name == "colour"
        assert exc_info.value.object_type == "widget"
        assert str(exc_info.value) == "Property 'colour' is not defined for 'widget'"

    def test_unknown_is_a_key_error(self, widget_reg):
        with pytest.raises(KeyError):
            widget_reg.get("colour")

    def test_has_and_contains(self, widget_reg):
        assert widget_reg.has("name")
        assert "name" in widget_reg
        assert not widget_reg.has("colour")

    def test_names_keep_definition_order(self, widget_reg):
        assert widget_reg.names() == ["name", "weight", "tags", "made_at"]
        assert len(widget_reg) == 4

    def test_date_props(self, widget_reg):
        assert widget_reg.date_props() == ["made_at"]
        assert widget_reg.get("made_at").is_date
        assert not widget_reg.get("name").is_date


# ===========================================================================
# C. Defaults
# ===========================================================================

class TestDefaults:

    def test_defaults_mapping(self, widget_reg):
        assert widget_reg.defaults() == {
            "name": "", "weight": 0, "tags": [], "made_at": None,
        }

    def test_mutable_defaults_are_copied(self, widget_reg):
        first = widget_reg.defaults()
        first["tags"].append("x")
        assert widget_reg.defaults()["tags"] == []
        assert widget_reg.get("tags").default == []


# ===========================================================================
# D. Coercion
# ===========================================================================

class TestAbsint:

    @pytest.mark.parametrize("value,expected", [
        (5, 5), (-5, 5), ("7", 7), ("-3", 3), (None, 0), ("", 0), (2.9, 2),
    ])
    def test_absint(self, value, expected):
        assert absint(value) == expected

    def test_absint_rejects_garbage(self):
        with pytest.raises(ValueError):
            absint("many")


# ===========================================================================
# E. Catalogs
# ===========================================================================

class TestCatalogs:

    def test_question_schema(self):
        assert QUESTION_PROPS.object_type == "question"
        assert QUESTION_PROPS.names() == [
            "title", "content", "parent_id", "status",
            "date_created", "date_modified",
            "answer_counts", "vote_up_counts", "vote_down_counts",
            "vote_net_counts", "best_answer_id", "view_counts",
        ]

    def test_question_defaults(self):
        defaults = QUESTION_PROPS.defaults()
        assert defaults["status"] == "draft"
        assert defaults["title"] == ""
        assert defaults["answer_counts"] == 0
        assert defaults["date_created"] is None

    def test_net_votes_are_not_absint(self):
        assert QUESTION_PROPS.get("vote_net_counts").coerce is int
        assert QUESTION_PROPS.get("vote_up_counts").coerce is absint

    def test_answer_schema(self):
        assert ANSWER_PROPS.object_type == "answer"
        assert "parent_id" in ANSWER_PROPS
        assert "title" not in ANSWER_PROPS
        assert ANSWER_PROPS.date_props() == ["date_created", "date_modified"]
