"""SQLAlchemy model for the permission_rules table.

Rules grant or deny a user one operation on a resource type, optionally
narrowed to a single resource. Rules are never physically removed; revoking
a rule clears ``is_active``.
"""

from datetime import datetime
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from datagate.infrastructure.persistence.database import Base


class PermissionRuleModel(Base):
    """SQLAlchemy model for the permission_rules table.

    Attributes:
        id: Primary key (UUID string).
        user_id: User the rule applies to.
        resource_type: Resource type tag (Posts, Comments, Users, ...).
        resource_id: Target resource; NULL applies to the whole type.
        operation: Operation name (create, read, update, delete, ...).
        is_allowed: Allow or deny.
        priority: Higher priority rules are evaluated first.
        effective_from: Start of validity window (inclusive, NULL = open).
        effective_to: End of validity window (exclusive, NULL = open).
        conditions: JSON condition payload, e.g. {"CreatedBy": "{UserId}"}.
        source: direct or delegated.
        is_active: Cleared on revoke.
        is_deleted: Soft-delete flag.
        granted_by: User who created or delegated the rule.
        remarks: Free text.
    """

    __tablename__ = "permission_rules"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Rule ID (UUID)",
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        comment="NULL applies the rule to every resource of the type",
    )
    operation: Mapped[str] = mapped_column(String(32), nullable=False)
    is_allowed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    effective_from: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    effective_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    conditions: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="JSON condition payload",
    )
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="direct")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    granted_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    remarks: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index(
            "ix_permission_rules_lookup",
            "user_id",
            "resource_type",
            "operation",
            "is_active",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PermissionRule(id={self.id}, user_id={self.user_id}, "
            f"{self.resource_type}:{self.resource_id}:{self.operation}, allowed={self.is_allowed})>"
        )
