"""Exceptions for rule condition parsing and evaluation."""


class ConditionError(Exception):
    """Base class for all condition-related errors."""
    pass


class ConditionSyntaxError(ConditionError):
    """Raised when a condition payload is malformed."""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(f"{message} (key: {key})" if key is not None else message)


class ConditionEvaluationError(ConditionError):
    """Raised when a condition cannot be evaluated."""
    pass
