"""Eligibility predicates and conditional updates."""
import pytest
from pymongo import UpdateOne

from core.store import ConditionalUpdate, Eligibility, get_path


def test_field_comparison_renders_expr_query():
    rule = Eligibility("used_slots", "lt", compare_field="slots")

    assert rule.to_query() == {"$expr": {"$lt": ["$used_slots", "$slots"]}}


def test_constant_comparison_renders_field_query():
    rule = Eligibility("is_flag_bearer", "eq", value=True)

    assert rule.to_query() == {"is_flag_bearer": {"$eq": True}}


def test_unknown_operator_is_rejected():
    with pytest.raises(ValueError):
        Eligibility("used_slots", "between", compare_field="slots")


def test_matches_compares_two_fields():
    rule = Eligibility("used_slots", "lt", compare_field="slots")

    assert rule.matches({"used_slots": 5, "slots": 12})
    assert not rule.matches({"used_slots": 12, "slots": 12})


def test_missing_field_orders_below_values_in_field_comparisons():
    rule = Eligibility("used_slots", "lt", compare_field="slots")

    # Same as MongoDB's $expr: {$lt: [null, 12]} is true
    assert rule.matches({"slots": 12})
    assert not rule.matches({"used_slots": 3})
    assert not rule.matches({})


def test_missing_field_never_matches_ordered_constant_comparison():
    rule = Eligibility("level", "gte", value=1)

    assert not rule.matches({})
    assert rule.matches({"level": 2})
    assert Eligibility("level", "eq", value=None).matches({})


def test_matches_dotted_paths():
    rule = Eligibility("current_holder.bot_id", "ne", value=None)

    assert rule.matches({"current_holder": {"bot_id": "abc"}})
    assert not rule.matches({"current_holder": {}})
    assert get_path({"a": {"b": 1}}, "a.b") == 1
    assert get_path({"a": 1}, "a.b") is None


def test_conditional_update_is_a_set_operation():
    update = ConditionalUpdate(filter={"_id": 1, "used_slots": 5}, set={"used_slots": 2})

    assert update.to_operation() == UpdateOne({"_id": 1, "used_slots": 5}, {"$set": {"used_slots": 2}})
