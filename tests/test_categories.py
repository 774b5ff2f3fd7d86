"""Tests for keyword category matching."""

from jengatrack.domain.categories import match_category
from jengatrack.domain.records import ExpenseCategory

CATEGORIES = [
    ExpenseCategory(id="c-mat", user_id="u1", name="Materials"),
    ExpenseCategory(id="c-lab", user_id="u1", name="Labor"),
    ExpenseCategory(id="c-tra", user_id="u1", name="Transport"),
    ExpenseCategory(id="c-oth", user_id="u1", name="Other"),
]


def test_cement_is_materials():
    assert match_category(CATEGORIES, "Cement bags") == "c-mat"


def test_wages_is_labor():
    assert match_category(CATEGORIES, "wages for masons") == "c-lab"


def test_fuel_is_transport():
    assert match_category(CATEGORIES, "diesel for the lorry") == "c-tra"


def test_no_match():
    assert match_category(CATEGORIES, "lunch") is None


def test_unknown_category_names_are_ignored():
    custom = [ExpenseCategory(id="c-x", user_id="u1", name="Permits")]
    assert match_category(custom, "cement") is None


def test_catch_all_names_share_keywords():
    misc = [ExpenseCategory(id="c-misc", user_id="u1", name="Miscellaneous")]
    assert match_category(misc, "sundry items") == "c-misc"
    assert match_category(CATEGORIES, "sundry items") == "c-oth"
