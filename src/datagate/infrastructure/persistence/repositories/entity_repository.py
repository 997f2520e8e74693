"""Repository for loading permission-checked blog entities.

The permission engine needs two things from an entity source: the owner of
a resource (for the ownership shortcut) and the resource row itself (for
status conditions). Both are looked up by model class so that any
registered resource type can be served.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


class EntityRepository:
    """Generic lookups over resource models."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    async def get(self, model: type, resource_id: str) -> Any | None:
        """Load one row by primary key.

        Args:
            model: SQLAlchemy model class.
            resource_id: Primary key value.

        Returns:
            The model instance, or None if not found.
        """
        return await self._session.get(model, resource_id)

    async def get_owner_id(
        self, model: type, owner_attribute: str, resource_id: str
    ) -> str | None:
        """Look up the owner column of one row.

        Args:
            model: SQLAlchemy model class.
            owner_attribute: Name of the owner column (e.g. "created_by").
            resource_id: Primary key value.

        Returns:
            Owner ID, or None if the row or the owner is missing.
        """
        owner_column = getattr(model, owner_attribute)
        result = await self._session.execute(
            select(owner_column).where(model.id == resource_id)
        )
        return result.scalar_one_or_none()
