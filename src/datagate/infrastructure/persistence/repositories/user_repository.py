"""User repository for database operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from datagate.core.clock import ensure_utc
from datagate.domain.entities.account import Account
from datagate.domain.entities.permission import UserRole
from datagate.infrastructure.persistence.models import UserModel


class UserRepository:
    """Repository for user database operations.

    This is the user directory the permission engine consults before every
    decision.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session.
        """
        self._session = session

    def _to_model(self, entity: Account) -> UserModel:
        """Convert domain entity to infrastructure model."""
        return UserModel(
            id=entity.id,
            username=entity.username,
            email=entity.email,
            role=(entity.role or UserRole.USER).value,
            display_name=entity.display_name,
            is_active=entity.is_active,
            created_at=entity.created_at,
            last_login_at=entity.last_login_at,
        )

    def _to_entity(self, model: UserModel) -> Account:
        """Convert infrastructure model to domain entity.

        Unknown role names map to the guest role so that a corrupted row can
        never gain more than the lowest defaults.
        """
        try:
            role = UserRole(model.role)
        except ValueError:
            role = UserRole.GUEST

        return Account(
            id=model.id,
            username=model.username,
            email=model.email,
            role=role,
            display_name=model.display_name,
            is_active=model.is_active,
            created_at=ensure_utc(model.created_at),
            last_login_at=ensure_utc(model.last_login_at),
        )

    async def create(self, entity: Account) -> Account:
        """Store a new user.

        Args:
            entity: Account to store.

        Returns:
            The stored account.
        """
        model = self._to_model(entity)
        self._session.add(model)
        await self._session.flush()
        return self._to_entity(model)

    async def get_by_id(self, user_id: str) -> Account | None:
        """Get a user by ID.

        Args:
            user_id: User ID (UUID string).

        Returns:
            Account if found, None otherwise.
        """
        result = await self._session.execute(
            select(UserModel).where(UserModel.id == user_id)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None
