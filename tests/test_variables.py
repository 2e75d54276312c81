"""Tests for novel_player.variables — interpolation, mutations, conditions."""

import math

from novel_player.models import Choice, Condition
from novel_player.variables import (
    apply_mutations,
    available_choices,
    evaluate_condition,
    format_value,
    get_bool,
    get_number,
    get_string,
    interpolate,
    to_number,
)


# ── interpolate ──────────────────────────────────────────────


def test_interpolate_replaces_known_variables():
    assert interpolate("You have {pts} points", {"pts": 5}, "Sam") == "You have 5 points"


def test_interpolate_user_name():
    assert interpolate("Hello {userName}!", {}, "Sam") == "Hello Sam!"


def test_interpolate_user_name_defaults_to_player():
    assert interpolate("Hello {userName}!", {}, "") == "Hello Player!"
    assert interpolate("Hello {userName}!", {}, None) == "Hello Player!"


def test_interpolate_leaves_unknown_tokens():
    assert interpolate("Hi {missing}", {"other": 1}, "Sam") == "Hi {missing}"


def test_interpolate_formats_bools_and_integral_floats():
    text = interpolate("{flag} {x} {y}", {"flag": True, "x": 3.0, "y": 2.5}, None)
    assert text == "true 3 2.5"


def test_interpolate_none_and_empty_pass_through():
    assert interpolate(None, {"a": 1}, "Sam") is None
    assert interpolate("", {"a": 1}, "Sam") == ""


def test_interpolate_is_single_pass():
    """A substituted value containing a token is not expanded again."""
    assert interpolate("{a}", {"a": "{b}", "b": "x"}, None) == "{b}"


def test_format_value():
    assert format_value(False) == "false"
    assert format_value(10) == "10"
    assert format_value("text") == "text"


# ── Typed accessors ──────────────────────────────────────────


def test_get_number_defaults_for_absent_and_non_numeric():
    variables = {"n": 4, "s": "4", "b": True}
    assert get_number(variables, "n") == 4
    assert get_number(variables, "s") == 0
    assert get_number(variables, "b") == 0
    assert get_number(variables, "missing", default=7) == 7


def test_get_string_and_bool():
    variables = {"n": 4, "flag": True}
    assert get_string(variables, "n") == "4"
    assert get_string(variables, "missing", "none") == "none"
    assert get_bool(variables, "flag") is True
    assert get_bool(variables, "n") is False


# ── apply_mutations ──────────────────────────────────────────


def test_set_then_add():
    result = apply_mutations({"x": 100}, {"x": 1}, {"x": 2})
    assert result["x"] == 3


def test_add_to_absent_counts_as_zero():
    assert apply_mutations({}, add_map={"score": 5}) == {"score": 5}


def test_add_to_non_numeric_counts_as_zero():
    assert apply_mutations({"score": "lots"}, add_map={"score": 5})["score"] == 5


def test_mutations_do_not_modify_input():
    original = {"x": 1}
    apply_mutations(original, {"x": 9}, {"y": 1})
    assert original == {"x": 1}


def test_negative_add():
    assert apply_mutations({"coins": 3}, add_map={"coins": -1})["coins"] == 2


# ── to_number ────────────────────────────────────────────────


def test_to_number_coercion():
    assert to_number(True) == 1.0
    assert to_number(False) == 0.0
    assert to_number("") == 0.0
    assert to_number(" 12 ") == 12.0
    assert math.isnan(to_number(None))
    assert math.isnan(to_number("abc"))


# ── evaluate_condition ───────────────────────────────────────


def _cond(variable: str, operator: str, value) -> Condition:
    return Condition(variable=variable, operator=operator, value=value)


def test_no_condition_passes():
    assert evaluate_condition(None, {}) is True


def test_equality_is_type_sensitive():
    assert evaluate_condition(_cond("x", "==", 5), {"x": 5}) is True
    assert evaluate_condition(_cond("x", "==", "5"), {"x": 5}) is False
    assert evaluate_condition(_cond("x", "==", 1), {"x": True}) is False
    assert evaluate_condition(_cond("x", "==", True), {"x": True}) is True


def test_int_and_float_compare_equal():
    assert evaluate_condition(_cond("x", "==", 5.0), {"x": 5}) is True


def test_not_equal():
    assert evaluate_condition(_cond("x", "!=", "a"), {"x": "b"}) is True
    assert evaluate_condition(_cond("x", "!=", "a"), {"x": "a"}) is False


def test_ordered_operators_coerce():
    variables = {"n": "10"}
    assert evaluate_condition(_cond("n", ">", 5), variables) is True
    assert evaluate_condition(_cond("n", "<", 5), variables) is False
    assert evaluate_condition(_cond("n", ">=", 10), variables) is True
    assert evaluate_condition(_cond("n", "<=", 9), variables) is False


def test_absent_variable_fails_every_ordered_comparison():
    for op in (">", "<", ">=", "<="):
        assert evaluate_condition(_cond("missing", op, 0), {}) is False


def test_absent_variable_is_not_equal():
    assert evaluate_condition(_cond("missing", "!=", 0), {}) is True
    assert evaluate_condition(_cond("missing", "==", 0), {}) is False


def test_unknown_operator_fails_open():
    assert evaluate_condition(_cond("x", "contains", "a"), {"x": "b"}) is True


# ── available_choices ────────────────────────────────────────


def test_available_choices_filters_and_keeps_order():
    choices = [
        Choice(id="a", text="A", next_node_id="n"),
        Choice(id="b", text="B", next_node_id="n", condition=_cond("coins", ">", 10)),
        Choice(id="c", text="C", next_node_id="n", condition=_cond("coins", "<=", 10)),
    ]
    assert [c.id for c in available_choices(choices, {"coins": 3})] == ["a", "c"]


def test_available_choices_can_be_empty():
    choices = [Choice(id="b", text="B", next_node_id="n", condition=_cond("vip", "==", True))]
    assert available_choices(choices, {}) == []


def test_greater_than_threshold():
    condition = _cond("score", ">", 80)
    assert evaluate_condition(condition, {"score": 81}) is True
    assert evaluate_condition(condition, {}) is False


def test_flag_choice_hidden_when_false_or_absent():
    choices = [Choice(id="f", text="F", next_node_id="n", condition=_cond("flag", "==", True))]
    assert available_choices(choices, {"flag": False}) == []
    assert available_choices(choices, {}) == []
    assert len(available_choices(choices, {"flag": True})) == 1


def test_interpolate_mixed_tokens():
    text = interpolate("Hello {userName}, you have {pts} and {ghost}", {"pts": 5}, "Sam")
    assert text == "Hello Sam, you have 5 and {ghost}"


def test_set_then_add_from_existing_value():
    assert apply_mutations({"score": 10}, {"score": 5}, {"score": 3})["score"] == 8
