"""Rule condition evaluation.

Conditions are ``{field, operator, value}`` triples tested against an event
payload. ``field`` is a dotted path (``metadata.priority``,
``task.assignee.email``). Evaluation is pure and total: bad paths, odd types
and unknown operators produce ``False`` rather than an exception.
"""

import logging
from typing import Any, Callable, Mapping, Sequence

from pydantic import BaseModel

from taskflow.models import Condition

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that did not resolve."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


def resolve_path(obj: Any, path: str) -> Any:
    """Follow a dotted path through mappings, sequences and pydantic models.

    Returns ``MISSING`` as soon as a segment cannot be followed.
    """
    current = obj
    for segment in path.split("."):
        if isinstance(current, BaseModel):
            current = current.model_dump(mode="json")

        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdecimal() or int(segment) >= len(current):
                return MISSING
            current = current[int(segment)]
        else:
            return MISSING
    return current


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    return None


def loose_equals(actual: Any, expected: Any) -> bool:
    """Equality that treats ``1``, ``1.0``, ``"1"`` and ``True`` alike."""
    if actual is None or expected is None:
        return actual is None and expected is None
    if isinstance(actual, str) and isinstance(expected, str):
        return actual == expected
    if isinstance(actual, (bool, int, float, str)) and isinstance(expected, (bool, int, float, str)):
        a, b = _as_number(actual), _as_number(expected)
        if a is not None and b is not None:
            return a == b
    return actual == expected


def _ordered(actual: Any, expected: Any, compare: Callable[[Any, Any], bool]) -> bool:
    if actual is None or expected is None:
        return False
    if isinstance(actual, str) and isinstance(expected, str):
        return compare(actual, expected)
    a, b = _as_number(actual), _as_number(expected)
    if a is not None and b is not None:
        return compare(a, b)
    try:
        return bool(compare(actual, expected))
    except TypeError:
        return False


def _eq(actual: Any, expected: Any) -> bool:
    return loose_equals(actual, expected)


def _neq(actual: Any, expected: Any) -> bool:
    return not loose_equals(actual, expected)


def _gt(actual: Any, expected: Any) -> bool:
    return _ordered(actual, expected, lambda a, b: a > b)


def _lt(actual: Any, expected: Any) -> bool:
    return _ordered(actual, expected, lambda a, b: a < b)


def _contains(actual: Any, expected: Any) -> bool:
    if not isinstance(actual, str) or expected is None:
        return False
    return str(expected) in actual


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "eq": _eq,
    "=": _eq,
    "==": _eq,
    "neq": _neq,
    "!=": _neq,
    "gt": _gt,
    ">": _gt,
    "lt": _lt,
    "<": _lt,
    "contains": _contains,
}


def _unpack(condition: Any) -> tuple[Any, Any, Any]:
    if isinstance(condition, Condition):
        return condition.field, condition.operator, condition.value
    if isinstance(condition, Mapping):
        operator = condition.get("operator", condition.get("op"))
        return condition.get("field"), operator, condition.get("value")
    return None, None, None


def evaluate_condition(condition: Any, payload: Any) -> bool:
    """Evaluate one condition against a payload."""
    field, operator, expected = _unpack(condition)
    handler = OPERATORS.get(operator) if isinstance(operator, str) else None
    if handler is None:
        logger.warning(f"Unknown condition operator {operator!r}, condition fails")
        return False
    if not isinstance(field, str) or not field:
        return False

    actual = resolve_path(payload, field)
    if actual is MISSING:
        # Absent only differs from a concrete value
        return handler is _neq and expected is not None
    return handler(actual, expected)


def evaluate(conditions: Any, event: Any) -> bool:
    """True when every condition holds for ``event``.

    ``None``, an empty list, or anything that is not a list is
    unconditional and evaluates to ``True``.
    """
    if not isinstance(conditions, list) or not conditions:
        return True

    payload = event.as_payload() if hasattr(event, "as_payload") else event
    return all(evaluate_condition(c, payload) for c in conditions)
