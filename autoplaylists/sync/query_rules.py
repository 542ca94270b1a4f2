import re
from typing import Any, Callable, Dict, List

from autoplaylists.core import (
    ConditionOperator,
    DebugQuery,
    LogicalOperator,
    RuleCondition,
    RuleGroup,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _compare(check: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def _op(left: Any, right: Any) -> bool:
        if not (_is_number(left) and _is_number(right)):
            return False
        return check(left, right)

    return _op


def _member(left: Any, right: Any) -> bool:
    return isinstance(right, (list, tuple, set)) and left in right


def _contains(left: Any, right: Any) -> bool:
    if isinstance(left, str) and isinstance(right, str):
        return right in left
    if isinstance(left, (list, tuple, set)):
        return right in left
    return False


def _regex(left: Any, right: Any) -> bool:
    if not (isinstance(left, str) and isinstance(right, str)):
        return False
    try:
        return re.search(right, left) is not None
    except re.error:
        return False


_OPERATORS: Dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQ: lambda left, right: left == right,
    ConditionOperator.NE: lambda left, right: left != right,
    ConditionOperator.GT: _compare(lambda left, right: left > right),
    ConditionOperator.LT: _compare(lambda left, right: left < right),
    ConditionOperator.GTE: _compare(lambda left, right: left >= right),
    ConditionOperator.LTE: _compare(lambda left, right: left <= right),
    ConditionOperator.IN: _member,
    ConditionOperator.NOT_IN: lambda left, right: isinstance(right, (list, tuple, set))
    and left not in right,
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.EXISTS: lambda left, right: left is not None,
    ConditionOperator.NOT_EXISTS: lambda left, right: left is None,
    ConditionOperator.REGEX: _regex,
}


def evaluate_condition(track: Dict[str, Any], condition: RuleCondition) -> bool:
    op = _OPERATORS.get(condition.operator)
    if op is None:
        return False
    return op(track.get(condition.field), condition.value)


def matches_rules(track: Dict[str, Any], rules: RuleGroup) -> bool:
    """
    Return True if `track` satisfies `rules`.

    Empty conditions:
      - AND: True
      - OR: False
    """
    results = [evaluate_condition(track, cond) for cond in rules.conditions]
    if rules.operator == LogicalOperator.OR:
        return any(results)
    return all(results)


def run_debug_query(
    tracks: List[Dict[str, Any]],
    query: DebugQuery,
) -> List[Dict[str, Any]]:
    """
    Filter, order and truncate `tracks` as described by `query`.

    Tracks missing the `order_by` field sort last.
    """
    rows = [t for t in tracks if matches_rules(t, query.rules)]

    if query.order_by:
        field = query.order_by
        present = [t for t in rows if t.get(field) is not None]
        missing = [t for t in rows if t.get(field) is None]
        present.sort(key=lambda t: t[field], reverse=query.descending)
        rows = present + missing

    if query.limit is not None:
        rows = rows[: query.limit]
    return rows
