"""Condition nodes attached to permission rules.

A rule carries at most a handful of declarative conditions. They form a
closed set of node types; a condition set holds when every node holds.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

USER_PLACEHOLDER = "{UserId}"
RESOURCE_PLACEHOLDER = "{ResourceId}"


@dataclass(frozen=True)
class Condition:
    """Base class for all condition nodes."""
    pass


@dataclass(frozen=True)
class OwnerCondition(Condition):
    """The acting user must be the given creator (e.g. CreatedBy == {UserId})."""
    created_by: str


@dataclass(frozen=True)
class DateRangeCondition(Condition):
    """The current time must fall within the present bounds (inclusive)."""
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class StatusCondition(Condition):
    """A status flag on the resource must have the expected value."""
    field: str
    expected: Any


@dataclass(frozen=True)
class UnsatisfiableCondition(Condition):
    """Stands in for a stored condition that could not be understood."""
    reason: str


@dataclass(frozen=True)
class ConditionSet:
    """Conjunction of condition nodes.

    Attributes:
        conditions: Parsed condition nodes.
        source: Original payload text, kept for logging.
    """

    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    source: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.conditions

    def next_boundary(self, now: datetime) -> datetime | None:
        """Earliest date bound at or after ``now`` at which the set could flip."""
        bounds = []
        for c in self.conditions:
            if not isinstance(c, DateRangeCondition):
                continue
            if c.start is not None and c.start > now:
                bounds.append(c.start)
            if c.end is not None and c.end >= now:
                bounds.append(c.end)
        return min(bounds) if bounds else None

    def needs_resource(self) -> bool:
        """Whether evaluation requires the resource itself to be loaded."""
        return any(isinstance(c, StatusCondition) for c in self.conditions)
