"""Declarative conditions attached to permission rules."""

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
from .evaluator import ConditionEvaluator
from .exceptions import ConditionError, ConditionEvaluationError, ConditionSyntaxError
from .parser import RECOGNISED_KEYS, STATUS_FIELDS, parse_conditions

__all__ = [
    "Condition",
    "ConditionError",
    "ConditionEvaluationError",
    "ConditionEvaluator",
    "ConditionSet",
    "ConditionSyntaxError",
    "DateRangeCondition",
    "OwnerCondition",
    "RECOGNISED_KEYS",
    "RESOURCE_PLACEHOLDER",
    "STATUS_FIELDS",
    "StatusCondition",
    "USER_PLACEHOLDER",
    "UnsatisfiableCondition",
    "parse_conditions",
]
