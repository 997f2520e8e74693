"""Repository for permission rule operations.

This is the rule store: lookups by user, resource type and operation for
evaluation, by user for scope resolution, and aggregate counts for
statistics.
"""

import json
from datetime import datetime

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from datagate.core.clock import ensure_utc
from datagate.core.logging import get_logger
from datagate.domain.entities.permission import (
    DataOperation,
    PermissionRule,
    PermissionSource,
)
from datagate.infrastructure.persistence.models import PermissionRuleModel

logger = get_logger(__name__)


class PermissionRuleRepository:
    """Repository for permission rule database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: PermissionRule) -> PermissionRuleModel:
        """Convert domain entity to infrastructure model."""
        return PermissionRuleModel(
            id=entity.id,
            user_id=entity.user_id,
            resource_type=entity.resource_type,
            resource_id=entity.resource_id,
            operation=entity.operation.value,
            is_allowed=entity.is_allowed,
            priority=entity.priority,
            effective_from=entity.effective_from,
            effective_to=entity.effective_to,
            conditions=json.dumps(entity.conditions) if entity.conditions else None,
            source=entity.source.value,
            is_active=entity.is_active,
            is_deleted=entity.is_deleted,
            granted_by=entity.granted_by,
            remarks=entity.remarks,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    def _to_entity(self, model: PermissionRuleModel) -> PermissionRule:
        """Convert infrastructure model to domain entity.

        A stored condition payload that is not valid JSON is kept as raw text;
        the condition evaluator treats it as a condition that never holds.
        """
        conditions = None
        if model.conditions:
            try:
                conditions = json.loads(model.conditions)
            except json.JSONDecodeError:
                logger.warning(
                    "Stored rule conditions are not valid JSON",
                    rule_id=model.id,
                )
                conditions = model.conditions

        return PermissionRule(
            id=model.id,
            user_id=model.user_id,
            resource_type=model.resource_type,
            resource_id=model.resource_id,
            operation=DataOperation.parse(model.operation),
            is_allowed=model.is_allowed,
            priority=model.priority,
            effective_from=ensure_utc(model.effective_from),
            effective_to=ensure_utc(model.effective_to),
            conditions=conditions,
            source=PermissionSource(model.source),
            is_active=model.is_active,
            is_deleted=model.is_deleted,
            granted_by=model.granted_by,
            remarks=model.remarks,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )

    @staticmethod
    def _effective_at(now: datetime):
        return (
            PermissionRuleModel.is_active.is_(True),
            PermissionRuleModel.is_deleted.is_(False),
            or_(
                PermissionRuleModel.effective_from.is_(None),
                PermissionRuleModel.effective_from <= now,
            ),
            or_(
                PermissionRuleModel.effective_to.is_(None),
                PermissionRuleModel.effective_to > now,
            ),
        )

    async def create(self, entity: PermissionRule) -> PermissionRule:
        """Store a new rule.

        Args:
            entity: The PermissionRule to store.

        Returns:
            The stored entity.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_id(self, rule_id: str) -> PermissionRule | None:
        """Get a rule by ID.

        Args:
            rule_id: Rule ID.

        Returns:
            PermissionRule if found, None otherwise.
        """
        result = await self._session.execute(
            select(PermissionRuleModel).where(PermissionRuleModel.id == rule_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def update(self, entity: PermissionRule) -> PermissionRule | None:
        """Persist changes to an existing rule.

        Args:
            entity: Rule carrying the new values.

        Returns:
            The updated rule, or None if no rule has the entity's ID.
        """
        result = await self._session.execute(
            select(PermissionRuleModel).where(PermissionRuleModel.id == entity.id)
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None

        model.resource_type = entity.resource_type
        model.resource_id = entity.resource_id
        model.operation = entity.operation.value
        model.is_allowed = entity.is_allowed
        model.priority = entity.priority
        model.effective_from = entity.effective_from
        model.effective_to = entity.effective_to
        model.conditions = json.dumps(entity.conditions) if entity.conditions else None
        model.is_active = entity.is_active
        model.is_deleted = entity.is_deleted
        model.remarks = entity.remarks
        model.updated_at = entity.updated_at
        await self._session.flush()
        return self._to_entity(model)

    async def deactivate(self, rule_id: str, now: datetime) -> bool:
        """Deactivate a rule without removing it.

        Returns:
            True if a rule was updated, False if not found.
        """
        result = await self._session.execute(
            update(PermissionRuleModel)
            .where(PermissionRuleModel.id == rule_id)
            .values(is_active=False, updated_at=now)
        )
        return result.rowcount > 0

    async def find_effective_rules(
        self,
        user_id: str,
        resource_type: str,
        operation: DataOperation,
        resource_id: str | None,
        now: datetime,
    ) -> list[PermissionRule]:
        """Find rules that take part in a decision, in evaluation order.

        Only effective rules whose resource id is null or equal to
        ``resource_id`` are returned. Order is priority descending, then
        direct before delegated, then oldest first.

        Args:
            user_id: Acting user.
            resource_type: Resource type tag.
            operation: Operation being checked.
            resource_id: Target resource, or None for a type-level check.
            now: Evaluation time.

        Returns:
            Ordered list of matching rules.
        """
        target = PermissionRuleModel.resource_id.is_(None)
        if resource_id is not None:
            target = or_(target, PermissionRuleModel.resource_id == resource_id)

        stmt = (
            select(PermissionRuleModel)
            .where(
                PermissionRuleModel.user_id == user_id,
                PermissionRuleModel.resource_type == resource_type,
                PermissionRuleModel.operation == operation.value,
                target,
                *self._effective_at(now),
            )
            .order_by(
                PermissionRuleModel.priority.desc(),
                case(
                    (PermissionRuleModel.source == PermissionSource.DIRECT.value, 0),
                    else_=1,
                ),
                PermissionRuleModel.created_at.asc(),
                PermissionRuleModel.id.asc(),
            )
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def find_by_user(
        self,
        user_id: str,
        resource_type: str | None = None,
        now: datetime | None = None,
    ) -> list[PermissionRule]:
        """List a user's rules.

        Args:
            user_id: Rule owner.
            resource_type: Restrict to one resource type.
            now: When given, only rules effective at this time are returned.

        Returns:
            Rules ordered by priority descending.
        """
        stmt = select(PermissionRuleModel).where(PermissionRuleModel.user_id == user_id)
        if resource_type is not None:
            stmt = stmt.where(PermissionRuleModel.resource_type == resource_type)
        if now is not None:
            stmt = stmt.where(*self._effective_at(now))
        stmt = stmt.order_by(
            PermissionRuleModel.priority.desc(),
            PermissionRuleModel.created_at.asc(),
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_active(self, now: datetime) -> int:
        """Count rules effective at the given time."""
        result = await self._session.execute(
            select(func.count(PermissionRuleModel.id)).where(*self._effective_at(now))
        )
        return result.scalar_one()

    async def next_activation(
        self,
        user_id: str,
        resource_type: str,
        operation: DataOperation,
        resource_id: str | None,
        now: datetime,
    ) -> datetime | None:
        """Earliest future ``effective_from`` among matching live rules.

        Args:
            user_id: Acting user.
            resource_type: Resource type tag.
            operation: Operation being checked.
            resource_id: Target resource, or None for a type-level check.
            now: Evaluation time.

        Returns:
            The moment the next pending rule becomes effective, or None.
        """
        target = PermissionRuleModel.resource_id.is_(None)
        if resource_id is not None:
            target = or_(target, PermissionRuleModel.resource_id == resource_id)

        result = await self._session.execute(
            select(func.min(PermissionRuleModel.effective_from)).where(
                PermissionRuleModel.user_id == user_id,
                PermissionRuleModel.resource_type == resource_type,
                PermissionRuleModel.operation == operation.value,
                target,
                PermissionRuleModel.is_active.is_(True),
                PermissionRuleModel.is_deleted.is_(False),
                PermissionRuleModel.effective_from > now,
            )
        )
        return ensure_utc(result.scalar_one_or_none())
