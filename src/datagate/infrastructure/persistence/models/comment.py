"""SQLAlchemy model for the comments table."""

from datetime import datetime
import uuid

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from datagate.infrastructure.persistence.database import Base


class CommentModel(Base):
    """SQLAlchemy model for comments on posts.

    Attributes:
        id: Primary key (UUID string).
        post_id: Post the comment belongs to.
        created_by: Commenting user ID.
        content: Comment body.
        is_approved: Approved comments are readable by every role.
    """

    __tablename__ = "comments"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_by: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    post: Mapped["PostModel"] = relationship("PostModel")  # noqa: F821

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, post_id={self.post_id}, created_by={self.created_by})>"
