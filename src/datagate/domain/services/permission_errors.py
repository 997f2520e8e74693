"""Exceptions raised by the data permission services.

Read-path checks never raise these; they are reserved for programming
errors on the write path and for registry lookups.
"""


class DataPermissionError(Exception):
    """Base exception for data permission errors."""
    pass


class RuleNotFoundError(DataPermissionError):
    """Raised when a rule change names a rule ID that does not exist."""

    def __init__(self, rule_id: str):
        self.rule_id = rule_id
        super().__init__(f"Permission rule not found: {rule_id}")


class UnknownResourceTypeError(DataPermissionError):
    """Raised when a resource type has not been registered."""

    def __init__(self, resource_type: str):
        self.resource_type = resource_type
        super().__init__(f"Unknown resource type: {resource_type}")
