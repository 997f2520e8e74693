"""Evaluator for rule conditions.

Evaluates a ConditionSet against the acting user and the target resource.
Evaluation never raises: any failure means the condition does not hold.
"""

from collections.abc import Mapping
from typing import Any

from datagate.core.clock import Clock, utc_now
from datagate.core.logging import get_logger

from .ast import (
    RESOURCE_PLACEHOLDER,
    USER_PLACEHOLDER,
    Condition,
    ConditionSet,
    DateRangeCondition,
    OwnerCondition,
    StatusCondition,
    UnsatisfiableCondition,
)
from .exceptions import ConditionEvaluationError
from .parser import parse_conditions

logger = get_logger(__name__)


class ConditionEvaluator:
    """Evaluates condition sets for a (user, resource) pair."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock

    def evaluate(
        self,
        conditions: ConditionSet | Mapping[str, Any] | str | None,
        user_id: str,
        resource_id: str | None,
        resource: Any | None = None,
    ) -> bool:
        """Evaluate conditions.

        Args:
            conditions: Parsed set, or a stored payload (parsed leniently).
            user_id: Acting user ID, substituted for {UserId}.
            resource_id: Target resource ID, substituted for {ResourceId}.
            resource: Loaded resource, needed only by status conditions.

        Returns:
            True if every condition holds (or there are none), False otherwise.
        """
        source = conditions if isinstance(conditions, str) else ""
        try:
            if not isinstance(conditions, ConditionSet):
                conditions = parse_conditions(conditions, strict=False)
            source = conditions.source
            return all(
                self._evaluate_node(node, user_id, resource_id, resource)
                for node in conditions.conditions
            )
        except Exception as e:
            logger.error(
                "Error evaluating conditions",
                conditions=source,
                user_id=user_id,
                resource_id=resource_id,
                error=str(e),
                exc_info=True,
            )
            return False

    def _evaluate_node(
        self,
        node: Condition,
        user_id: str,
        resource_id: str | None,
        resource: Any | None,
    ) -> bool:
        if isinstance(node, OwnerCondition):
            expected = self._substitute(node.created_by, user_id, resource_id)
            return expected is not None and str(expected) == str(user_id)

        if isinstance(node, DateRangeCondition):
            now = self.clock()
            if node.start is not None and now < node.start:
                return False
            if node.end is not None and now > node.end:
                return False
            return True

        if isinstance(node, StatusCondition):
            if resource is None:
                return False
            if isinstance(resource, Mapping):
                actual = resource.get(node.field)
            else:
                actual = getattr(resource, node.field, None)
            return actual is not None and bool(actual) == node.expected

        if isinstance(node, UnsatisfiableCondition):
            logger.warning("Unsatisfiable condition", reason=node.reason)
            return False

        raise ConditionEvaluationError(f"Unknown condition type: {type(node).__name__}")

    @staticmethod
    def _substitute(value: Any, user_id: str, resource_id: str | None) -> Any:
        if value == USER_PLACEHOLDER:
            return user_id
        if value == RESOURCE_PLACEHOLDER:
            return resource_id
        return value
