"""Permission entities for data access control.

Permission rules and temporary permissions grant (or deny) a user an
operation on a resource type, optionally narrowed to one resource.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class DataOperation(str, Enum):
    """Operations that can be checked against a resource."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    MODERATE = "moderate"
    PUBLISH = "publish"

    @classmethod
    def parse(cls, value: "DataOperation | str") -> "DataOperation":
        """Parse an operation name case-insensitively.

        Raises:
            ValueError: If the name is not a known operation.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown data operation: {value!r}") from None


class UserRole(str, Enum):
    """Roles a blog user can hold."""

    GUEST = "guest"
    USER = "user"
    AUTHOR = "author"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"

    @property
    def is_admin(self) -> bool:
        return self in (UserRole.ADMIN, UserRole.SUPER_ADMIN)


class ResourceType:
    """Resource type tags known to the engine.

    Resource types are open string tags; these are the ones registered by
    default.
    """

    POSTS = "Posts"
    COMMENTS = "Comments"
    USERS = "Users"
    CATEGORIES = "Categories"
    TAGS = "Tags"


class PermissionSource(str, Enum):
    """Where a permission rule came from."""

    DIRECT = "direct"
    DELEGATED = "delegated"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PermissionRule:
    """Persisted permission rule.

    A rule is effective only while it is active, not deleted and the current
    time lies within [effective_from, effective_to). A null resource_id
    applies the rule to every resource of its type.

    Attributes:
        user_id: User the rule applies to.
        resource_type: Resource type tag ("Posts", "Comments", ...).
        operation: Operation the rule covers.
        is_allowed: Allow (True) or deny (False).
        resource_id: Target resource, or None for the whole type.
        priority: Higher priority rules are evaluated first.
        effective_from: Start of the validity window (inclusive).
        effective_to: End of the validity window (exclusive).
        conditions: Raw condition payload (see datagate.core.conditions).
        source: Direct grant or delegation.
        is_active: False once the rule has been revoked.
        is_deleted: Soft-delete flag.
        granted_by: User who created the rule.
        remarks: Free text.
        id: Unique identifier (UUID string).
        created_at: Timestamp when created.
        updated_at: Timestamp when last updated.
    """

    user_id: str
    resource_type: str
    operation: DataOperation
    is_allowed: bool = True
    resource_id: str | None = None
    priority: int = 0
    effective_from: datetime | None = None
    effective_to: datetime | None = None
    conditions: dict[str, Any] | None = None
    source: PermissionSource = PermissionSource.DIRECT
    is_active: bool = True
    is_deleted: bool = False
    granted_by: str | None = None
    remarks: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        """Validate rule data after initialization."""
        if not self.user_id:
            raise ValueError("User ID is required")
        if not self.resource_type:
            raise ValueError("Resource type is required")
        self.operation = DataOperation.parse(self.operation)
        if (
            self.effective_from is not None
            and self.effective_to is not None
            and self.effective_from >= self.effective_to
        ):
            raise ValueError("effective_from must be before effective_to")

    def is_effective(self, now: datetime) -> bool:
        """Check if the rule participates in evaluation at the given time."""
        if not self.is_active or self.is_deleted:
            return False
        if self.effective_from is not None and now < self.effective_from:
            return False
        if self.effective_to is not None and now >= self.effective_to:
            return False
        return True

    def matches(
        self, resource_type: str, operation: DataOperation, resource_id: str | None
    ) -> bool:
        """Check if the rule targets the given resource and operation."""
        if self.resource_type != resource_type or self.operation != operation:
            return False
        return self.resource_id is None or self.resource_id == resource_id

    @property
    def is_type_wide(self) -> bool:
        return self.resource_id is None


@dataclass
class TemporaryPermission:
    """Time-limited grant of one operation on one resource.

    Valid while active and not yet expired. Expiry is checked whenever the
    permission is read; nothing sweeps expired rows.
    """

    user_id: str
    resource_type: str
    resource_id: str
    operation: DataOperation
    expires_at: datetime
    granted_by: str | None = None
    is_active: bool = True
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("User ID is required")
        if not self.resource_type:
            raise ValueError("Resource type is required")
        self.operation = DataOperation.parse(self.operation)

    def is_valid(self, now: datetime) -> bool:
        """Check if the permission is active and unexpired."""
        return self.is_active and self.expires_at > now


@dataclass
class PermissionChangeResult:
    """Outcome of a grant, revoke, delegate or rule change.

    Attributes:
        success: Whether the change was applied.
        reason: Short machine-readable reason when it was not.
        record_id: ID of the created or changed record, if any.
        affected: Number of records touched.
    """

    success: bool
    reason: str | None = None
    record_id: str | None = None
    affected: int = 0

    def __bool__(self) -> bool:
        return self.success

    @classmethod
    def ok(cls, record_id: str | None = None, affected: int = 1) -> "PermissionChangeResult":
        return cls(success=True, record_id=record_id, affected=affected)

    @classmethod
    def failed(cls, reason: str) -> "PermissionChangeResult":
        return cls(success=False, reason=reason)
