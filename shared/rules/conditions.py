"""Condition evaluation over a record property bag.

Conditions sharing a property name form a group combined with OR; groups are
combined with AND. That single AND-of-ORs level is the only nesting supported.
"""

import logging
import re

from shared.models.catalog import Condition, ConditionOperator
from shared.models.property_bag import PropertyBag

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_text(value: str) -> str:
    """Trims and collapses internal whitespace runs to a single space."""
    return _WHITESPACE.sub(" ", value.strip())


def split_multi_value(value: str | list[str] | None) -> list[str]:
    """Splits a multi-value field into normalized, non-empty items.

    A native list is used as is; otherwise ';' takes precedence over ','.
    A value without separators yields a single item. Every item, native list
    items included, is trimmed and has inner whitespace runs collapsed, so
    "Oui  " and "Oui" or "Marié  à" and "Marié à" compare equal.
    """
    if value is None:
        return []
    if isinstance(value, list):
        items = [str(item) for item in value]
    else:
        text = str(value).strip()
        if ";" in text:
            items = text.split(";")
        elif "," in text:
            items = text.split(",")
        else:
            items = [text]
    return [normalize_text(item) for item in items if normalize_text(item)]


def _evaluate_in(raw_value: str | list[str] | None, condition_value: str) -> bool:
    if raw_value is None or raw_value == "" or raw_value == []:
        return False
    if not isinstance(raw_value, list) and not str(raw_value).strip():
        return False
    expected = normalize_text(condition_value)
    return expected in split_multi_value(raw_value)


def evaluate_condition(condition: Condition, bag: PropertyBag) -> bool:
    """Evaluates one condition against the property bag.

    Args:
        condition (Condition): The condition to evaluate.
        bag (PropertyBag): The record properties.

    Returns:
        bool: Whether the condition holds. Unknown operators are treated as satisfied;
        the catalog loader only lets them through in permissive mode.
    """
    raw_value = bag.lookup(condition.property)
    prop_value = bag.get_text(condition.property)
    expected = condition.value.strip()
    operator = condition.operator

    if operator == ConditionOperator.EQUALS.value:
        return prop_value == expected
    if operator == ConditionOperator.NOT_EQUALS.value:
        return prop_value != expected
    if operator == ConditionOperator.CONTAINS.value:
        return expected.lower() in prop_value.lower()
    if operator == ConditionOperator.NOT_CONTAINS.value:
        return expected.lower() not in prop_value.lower()
    if operator == ConditionOperator.IN.value:
        return _evaluate_in(raw_value, condition.value)

    logger.debug("Unknown operator %r on property %r treated as satisfied.", operator, condition.property)
    return True


def group_conditions(conditions: list[Condition]) -> dict[str, list[Condition]]:
    """Groups conditions by property name, keeping first-seen order."""
    groups: dict[str, list[Condition]] = {}
    for condition in conditions:
        groups.setdefault(condition.property, []).append(condition)
    return groups


def evaluate_conditions(conditions: list[Condition], bag: PropertyBag) -> bool:
    """AND over property groups, OR inside each group. No conditions is trivially true."""
    if not conditions:
        return True
    return all(
        any(evaluate_condition(condition, bag) for condition in group)
        for group in group_conditions(conditions).values()
    )
