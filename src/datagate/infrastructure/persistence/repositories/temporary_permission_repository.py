"""Repository for temporary permission operations."""

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datagate.core.clock import ensure_utc
from datagate.domain.entities.permission import DataOperation, TemporaryPermission
from datagate.infrastructure.persistence.models import TemporaryPermissionModel


class TemporaryPermissionRepository:
    """Repository for temporary permission database operations.

    Expired rows are never deleted here; every lookup filters on
    ``expires_at`` instead.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: TemporaryPermission) -> TemporaryPermissionModel:
        """Convert domain entity to infrastructure model."""
        return TemporaryPermissionModel(
            id=entity.id,
            user_id=entity.user_id,
            resource_type=entity.resource_type,
            resource_id=entity.resource_id,
            operation=entity.operation.value,
            expires_at=entity.expires_at,
            granted_by=entity.granted_by,
            is_active=entity.is_active,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _to_entity(self, model: TemporaryPermissionModel) -> TemporaryPermission:
        """Convert infrastructure model to domain entity."""
        return TemporaryPermission(
            id=model.id,
            user_id=model.user_id,
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            operation=DataOperation.parse(model.operation),
            expires_at=ensure_utc(model.expires_at),
            granted_by=model.granted_by,
            is_active=model.is_active,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )

    async def create(self, entity: TemporaryPermission) -> TemporaryPermission:
        """Store a new temporary permission.

        Args:
            entity: The TemporaryPermission entity to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def find_active(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        operation: DataOperation,
        now: datetime,
    ) -> list[TemporaryPermission]:
        """Find valid temporary permissions for an exact target.

        Args:
            user_id: Holder of the permission.
            resource_type: Resource type tag.
            resource_id: Target resource.
            operation: Operation granted.
            now: Evaluation time; permissions expiring at or before it are skipped.

        Returns:
            Matching permissions ordered by expiry descending, so the first
            element is the longest-lived grant.
        """
        stmt = (
            select(TemporaryPermissionModel)
            .where(
                TemporaryPermissionModel.user_id == user_id,
                TemporaryPermissionModel.resource_type == resource_type,
                TemporaryPermissionModel.resource_id == resource_id,
                TemporaryPermissionModel.operation == operation.value,
                TemporaryPermissionModel.is_active.is_(True),
                TemporaryPermissionModel.expires_at > now,
            )
            .order_by(TemporaryPermissionModel.expires_at.desc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def find_by_user(self, user_id: str) -> list[TemporaryPermission]:
        """List every temporary permission held by a user, expired ones included."""
        result = await self._session.execute(
            select(TemporaryPermissionModel)
            .where(TemporaryPermissionModel.user_id == user_id)
            .order_by(TemporaryPermissionModel.created_at.asc())
        )
        return [self._to_entity(model) for model in result.scalars().all()]

    async def deactivate_matching(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        operation: DataOperation,
        now: datetime,
    ) -> int:
        """Deactivate all active entries for a target.

        Returns:
            Number of entries deactivated.
        """
        result = await self._session.execute(
            update(TemporaryPermissionModel)
            .where(
                TemporaryPermissionModel.user_id == user_id,
                TemporaryPermissionModel.resource_type == resource_type,
                TemporaryPermissionModel.resource_id == resource_id,
                TemporaryPermissionModel.operation == operation.value,
                TemporaryPermissionModel.is_active.is_(True),
            )
            .values(is_active=False, updated_at=now)
        )
        return result.rowcount

    async def count_active(self, now: datetime) -> int:
        """Count temporary permissions that are active and unexpired."""
        result = await self._session.execute(
            select(func.count(TemporaryPermissionModel.id)).where(
                TemporaryPermissionModel.is_active.is_(True),
                TemporaryPermissionModel.expires_at > now,
            )
        )
        return result.scalar_one()
