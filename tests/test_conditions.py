"""
Condition evaluator tests.

Covers vacuous matching, dotted-path resolution, operator semantics and the
fail-closed handling of unknown operators.
"""

import pytest

from taskflow.automation.conditions import MISSING, evaluate, loose_equals, resolve_path
from taskflow.models import Condition, Event


def cond(field, op, value):
    return {"field": field, "op": op, "value": value}


@pytest.mark.parametrize("conditions", [[], None, {"priority": "HIGH"}, "priority=HIGH"])
def test_empty_or_non_list_conditions_always_match(conditions):
    assert evaluate(conditions, {"metadata": {"priority": "LOW"}}) is True


def test_equality_on_metadata_field():
    conditions = [cond("metadata.priority", "=", "HIGH")]

    assert evaluate(conditions, {"metadata": {"priority": "HIGH"}}) is True
    assert evaluate(conditions, {"metadata": {"priority": "LOW"}}) is False


def test_missing_leaf_does_not_match_or_raise():
    assert evaluate([cond("a.b.c", "=", 1)], {"a": {"b": {}}}) is False
    assert evaluate([cond("a.b.c", "=", 1)], {"a": "not-a-map"}) is False


def test_unknown_operator_fails_the_rule():
    event = {"metadata": {"priority": "HIGH"}}

    assert evaluate([cond("metadata.priority", "startswith", "H")], event) is False
    assert evaluate(
        [cond("metadata.priority", "=", "HIGH"), cond("metadata.priority", "~", "HIGH")],
        event,
    ) is False
    assert evaluate(
        [cond("metadata.priority", "~", "HIGH"), cond("metadata.priority", "=", "HIGH")],
        event,
    ) is False


def test_all_conditions_must_hold():
    event = {"metadata": {"priority": "HIGH", "points": 8}}

    assert evaluate([cond("metadata.priority", "eq", "HIGH"), cond("metadata.points", "gt", 5)], event)
    assert not evaluate([cond("metadata.priority", "eq", "HIGH"), cond("metadata.points", "lt", 5)], event)


@pytest.mark.parametrize("op", ["eq", "=", "=="])
def test_equality_aliases(op):
    assert evaluate([cond("metadata.status", op, "DONE")], {"metadata": {"status": "DONE"}})


@pytest.mark.parametrize("op", ["neq", "!="])
def test_inequality_aliases(op):
    assert evaluate([cond("metadata.status", op, "TODO")], {"metadata": {"status": "DONE"}})
    assert not evaluate([cond("metadata.status", op, "DONE")], {"metadata": {"status": "DONE"}})


def test_absent_value_only_matches_neq_against_concrete_value():
    event = {"metadata": {}}

    assert evaluate([cond("metadata.priority", "neq", "HIGH")], event) is True
    assert evaluate([cond("metadata.priority", "neq", None)], event) is False
    assert evaluate([cond("metadata.priority", "eq", None)], event) is False
    assert evaluate([cond("metadata.priority", "gt", 0)], event) is False
    assert evaluate([cond("metadata.priority", "contains", "H")], event) is False


def test_loose_equality():
    assert loose_equals(1, "1")
    assert loose_equals(1.0, 1)
    assert loose_equals(True, 1)
    assert loose_equals(None, None)
    assert not loose_equals(None, 0)
    assert not loose_equals("", None)
    assert not loose_equals("abc", "ABC")
    assert loose_equals("", 0)
    assert loose_equals(" ", False)
    assert not loose_equals("", "0")


def test_ordering_operators():
    assert evaluate([cond("metadata.points", "gt", 5)], {"metadata": {"points": 8}})
    assert evaluate([cond("metadata.points", ">", 5)], {"metadata": {"points": "10"}})
    assert evaluate([cond("metadata.points", "<", "9")], {"metadata": {"points": "10"}})
    assert evaluate([cond("metadata.points", ">", "9")], {"metadata": {"points": "10"}}) is False
    assert evaluate([cond("metadata.points", ">", 9)], {"metadata": {"points": "10"}})
    assert evaluate([cond("metadata.name", "gt", "a")], {"metadata": {"name": "b"}})
    assert evaluate([cond("metadata.points", "lt", 5)], {"metadata": {"points": [1]}}) is False
    assert evaluate([cond("metadata.points", "gt", None)], {"metadata": {"points": 3}}) is False


def test_contains_only_applies_to_strings():
    assert evaluate([cond("metadata.title", "contains", "login")], {"metadata": {"title": "Fix login bug"}})
    assert not evaluate([cond("metadata.title", "contains", "logout")], {"metadata": {"title": "Fix login bug"}})
    assert not evaluate([cond("metadata.tags", "contains", "bug")], {"metadata": {"tags": ["bug"]}})
    assert not evaluate([cond("metadata.points", "contains", "1")], {"metadata": {"points": 12}})


def test_condition_models_and_operator_alias():
    by_op = Condition.model_validate({"field": "metadata.priority", "op": "=", "value": "HIGH"})
    by_operator = Condition(field="metadata.priority", operator="=", value="HIGH")

    assert by_op.operator == "="
    assert evaluate([by_op, by_operator], {"metadata": {"priority": "HIGH"}})


def test_evaluate_against_event_model_with_related_entities():
    event = Event(
        user_id="u1",
        type="TASK_CREATED",
        metadata={"priority": "HIGH"},
        task={"assignee": {"email": "dev@example.com"}},
    )

    assert evaluate([cond("task.assignee.email", "contains", "@example.com")], event)
    assert evaluate([cond("type", "=", "TASK_CREATED")], event)
    assert not evaluate([cond("user.email", "=", "x")], event)


def test_resolve_path():
    data = {"task": {"tags": [{"name": "urgent"}]}, "n": 0}

    assert resolve_path(data, "task.tags.0.name") == "urgent"
    assert resolve_path(data, "task.tags.5.name") is MISSING
    assert resolve_path(data, "task.tags.x") is MISSING
    assert resolve_path(data, "task.tags.-1.name") is MISSING
    assert resolve_path(data, "n") == 0
    assert resolve_path(data, "n.value") is MISSING


def test_malformed_conditions_fail_closed():
    event = {"metadata": {"priority": "HIGH"}}

    assert evaluate([{"op": "=", "value": "HIGH"}], event) is False
    assert evaluate(["metadata.priority"], event) is False
