"""Parser for rule condition payloads.

Conditions are stored as a small JSON object, for example::

    {"CreatedBy": "{UserId}", "EndDate": "2026-12-31T00:00:00Z"}

Recognised keys are ``CreatedBy``, ``StartDate``, ``EndDate`` and the status
flags in ``STATUS_FIELDS``. Strict parsing rejects anything else and is used
whenever a rule is written. Lenient parsing is used for payloads that are
already stored: unknown keys are skipped and unreadable values turn into
conditions that never hold.
"""

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from .ast import (
    Condition,
    ConditionSet,
    DateRangeCondition,
    OwnerCondition,
    StatusCondition,
    UnsatisfiableCondition,
)
from .exceptions import ConditionSyntaxError

OWNER_KEY = "CreatedBy"
START_KEY = "StartDate"
END_KEY = "EndDate"

STATUS_FIELDS = {
    "IsPublished": "is_published",
    "IsApproved": "is_approved",
    "IsActive": "is_active",
}

RECOGNISED_KEYS = frozenset({OWNER_KEY, START_KEY, END_KEY, *STATUS_FIELDS})


def _parse_date(key: str, value: Any) -> datetime:
    if not isinstance(value, str):
        raise ConditionSyntaxError("Date bound must be an ISO-8601 string", key)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise ConditionSyntaxError(f"Unparsable date '{value}'", key) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _load_payload(payload: Mapping[str, Any] | str) -> tuple[Mapping[str, Any], str]:
    if isinstance(payload, str):
        try:
            data = json.loads(payload)
        except json.JSONDecodeError as e:
            raise ConditionSyntaxError(f"Conditions are not valid JSON: {e.msg}") from e
        source = payload
    else:
        data = payload
        source = json.dumps(dict(payload), default=str, sort_keys=True)

    if not isinstance(data, Mapping):
        raise ConditionSyntaxError("Conditions must be a JSON object")
    return data, source


def parse_conditions(
    payload: Mapping[str, Any] | str | None, strict: bool = True
) -> ConditionSet:
    """Parse a condition payload into a ConditionSet.

    Args:
        payload: Mapping or JSON text. None or empty means "no conditions".
        strict: Raise on unknown keys and malformed values instead of
            degrading them.

    Returns:
        Parsed ConditionSet.

    Raises:
        ConditionSyntaxError: If the payload is malformed. In lenient mode
            only a payload that is not a JSON object raises.
    """
    if payload is None or payload == "" or payload == {}:
        return ConditionSet()

    data, source = _load_payload(payload)
    nodes: list[Condition] = []
    start: datetime | None = None
    end: datetime | None = None

    for key, value in data.items():
        try:
            if key == OWNER_KEY:
                if not isinstance(value, str) or not value:
                    raise ConditionSyntaxError("Owner must be a non-empty string", key)
                nodes.append(OwnerCondition(created_by=value))
            elif key == START_KEY:
                start = _parse_date(key, value)
            elif key == END_KEY:
                end = _parse_date(key, value)
            elif key in STATUS_FIELDS:
                if not isinstance(value, bool):
                    raise ConditionSyntaxError("Status flag must be a boolean", key)
                nodes.append(StatusCondition(field=STATUS_FIELDS[key], expected=value))
            elif strict:
                raise ConditionSyntaxError("Unknown condition", key)
        except ConditionSyntaxError as e:
            if strict:
                raise
            nodes.append(UnsatisfiableCondition(reason=str(e)))

    if start is not None and end is not None and start > end:
        error = ConditionSyntaxError("StartDate is after EndDate", START_KEY)
        if strict:
            raise error
        nodes.append(UnsatisfiableCondition(reason=str(error)))
    elif start is not None or end is not None:
        nodes.append(DateRangeCondition(start=start, end=end))

    return ConditionSet(conditions=tuple(nodes), source=source)
