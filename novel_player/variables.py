"""Variable store: interpolation, mutations, and choice conditions.

Variables are a flat name → str|int|float|bool map seeded from the story
and replaced (never edited in place) by node entry, choice selection and
input submission.

Interpolation:
  "{name}" tokens are replaced by the variable's string form. "{userName}"
  is special and resolves to the player name ("Player" when unset). Unknown
  tokens are left as written.

Mutations (set-then-add):
  set_variables overwrite first, then add_variables increment. A key that
  is absent or not a number counts as 0 for the add.

Conditions:
  "==" / "!=" compare raw values (type-sensitive). ">", "<", ">=", "<="
  coerce both sides to numbers; a value that does not coerce becomes NaN,
  so every ordered comparison against it is false. Missing conditions and
  unknown operators leave the choice available.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .models import Choice, Condition, VarValue

logger = logging.getLogger(__name__)

USER_NAME_TOKEN = "userName"
DEFAULT_USER_NAME = "Player"

_TOKEN_RE = re.compile(r"\{(\w+)\}")


# ── String form ──────────────────────────────────────────


def format_value(value: VarValue) -> str:
    """Render a variable the way the story authoring format writes it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if value.is_integer():
            return str(int(value))
    return str(value)


def interpolate(text: str | None, variables: Mapping[str, VarValue], user_name: str | None) -> str | None:
    """Replace {identifier} tokens in `text`.

    "Hello {userName}, you have {pts}" with pts=5 and user "Sam"
    → "Hello Sam, you have 5".
    """
    if not text:
        return text

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        if name == USER_NAME_TOKEN:
            return user_name or DEFAULT_USER_NAME
        if name in variables:
            return format_value(variables[name])
        return match.group(0)

    return _TOKEN_RE.sub(_sub, text)


# ── Typed accessors ──────────────────────────────────────


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def get_number(variables: Mapping[str, VarValue], name: str, default: float = 0) -> int | float:
    """Numeric value of `name`, or `default` when absent or not a number."""
    value = variables.get(name)
    return value if _is_number(value) else default


def get_string(variables: Mapping[str, VarValue], name: str, default: str = "") -> str:
    if name not in variables:
        return default
    return format_value(variables[name])


def get_bool(variables: Mapping[str, VarValue], name: str, default: bool = False) -> bool:
    value = variables.get(name)
    return value if isinstance(value, bool) else default


# ── Mutations ────────────────────────────────────────────


def apply_mutations(
    variables: Mapping[str, VarValue],
    set_map: Mapping[str, VarValue] | None = None,
    add_map: Mapping[str, int | float] | None = None,
) -> dict[str, VarValue]:
    """Return a new variables map with `set_map` then `add_map` applied."""
    result = dict(variables)
    if set_map:
        result.update(set_map)
    if add_map:
        for key, delta in add_map.items():
            result[key] = get_number(result, key) + delta
    return result


# ── Conditions ───────────────────────────────────────────


def to_number(value: Any) -> float:
    """Loose numeric coercion: None/unparseable → NaN, bool → 0/1, "" → 0."""
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0.0
        try:
            return float(stripped)
        except ValueError:
            return math.nan
    return math.nan


def _strict_equal(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def evaluate_condition(condition: Condition | None, variables: Mapping[str, VarValue]) -> bool:
    if condition is None:
        return True

    current = variables.get(condition.variable)
    op = condition.operator

    if op == "==":
        return _strict_equal(current, condition.value)
    if op == "!=":
        return not _strict_equal(current, condition.value)
    if op in (">", "<", ">=", "<="):
        left, right = to_number(current), to_number(condition.value)
        if op == ">":
            return left > right
        if op == "<":
            return left < right
        if op == ">=":
            return left >= right
        return left <= right

    logger.debug("Unsupported condition operator %r — choice left available", op)
    return True


def available_choices(choices: Iterable[Choice], variables: Mapping[str, VarValue]) -> list[Choice]:
    """Choices whose condition passes, in declared order."""
    return [c for c in choices if evaluate_condition(c.condition, variables)]
