"""SQLAlchemy model for the temporary_permissions table."""

from datetime import datetime
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from datagate.infrastructure.persistence.database import Base


class TemporaryPermissionModel(Base):
    """SQLAlchemy model for time-limited grants.

    A row grants its operation while ``is_active`` is set and ``expires_at``
    lies in the future. Expired rows are left in place.
    """

    __tablename__ = "temporary_permissions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    resource_type: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(36), nullable=False)
    operation: Mapped[str] = mapped_column(String(32), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    granted_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
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
            "ix_temporary_permissions_lookup",
            "user_id",
            "resource_type",
            "resource_id",
            "operation",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<TemporaryPermission(id={self.id}, user_id={self.user_id}, "
            f"{self.resource_type}:{self.resource_id}:{self.operation}, expires_at={self.expires_at})>"
        )
