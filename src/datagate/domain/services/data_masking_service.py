"""Data masking service for protecting account fields.

Masks account data according to the viewer's role. Administrators see
everything; authors and moderators see email, role and last login; every
other viewer gets a partially obscured email and no role or login time.
Masking never touches the input; entities, mappings and ORM rows come back
as new objects. ORM copies are transient and never attached to a session.
"""

from collections.abc import Mapping
from dataclasses import is_dataclass, replace
from typing import Any

from sqlalchemy import inspect

from datagate.domain.entities.account import Account
from datagate.domain.entities.permission import UserRole


class DataMaskingService:
    """Role-based masking of entity fields."""

    INVALID_EMAIL_MASK = "***@***.***"
    PRIVATE_FIELD_VIEWERS = frozenset(
        {UserRole.AUTHOR, UserRole.MODERATOR, UserRole.ADMIN, UserRole.SUPER_ADMIN}
    )
    HIDDEN_FIELDS = ("role", "last_login_at")

    @classmethod
    def can_view_private_fields(cls, viewer_role: UserRole | None) -> bool:
        """Check if a viewer may see account email, role and login time."""
        return viewer_role in cls.PRIVATE_FIELD_VIEWERS

    @classmethod
    def mask_email(cls, value: Any) -> Any:
        """Mask email address as jo***e@example.com.

        Keeps the first two and the last character of the local part and the
        full domain. Local parts of three characters or fewer are starred
        entirely.

        Args:
            value: Email address to mask.

        Returns:
            Masked email, ``***@***.***`` for anything that is not an email,
            or None for None.
        """
        if value is None:
            return None
        if not isinstance(value, str) or value.count("@") != 1:
            return cls.INVALID_EMAIL_MASK

        local, domain = value.split("@")
        if not local or not domain:
            return cls.INVALID_EMAIL_MASK

        if len(local) <= 3:
            masked_local = "*" * len(local)
        else:
            masked_local = local[:2] + "*" * (len(local) - 3) + local[-1]
        return f"{masked_local}@{domain}"

    @classmethod
    def _is_account(cls, entity: Any) -> bool:
        if isinstance(entity, Account):
            return True
        if isinstance(entity, Mapping):
            return "email" in entity
        state = inspect(entity, raiseerr=False)
        return state is not None and "email" in state.mapper.column_attrs

    @classmethod
    def _copy_row(cls, entity: Any, hide: bool) -> Any:
        """Build a detached copy of a mapped row from its column attributes."""
        values = {
            attr.key: getattr(entity, attr.key)
            for attr in inspect(entity).mapper.column_attrs
        }
        if hide:
            values["email"] = cls.mask_email(values.get("email"))
            for name in cls.HIDDEN_FIELDS:
                if name in values:
                    values[name] = None
        return type(entity)(**values)

    @classmethod
    def mask(cls, entity: Any, viewer_role: UserRole | None) -> Any:
        """Return a masked copy of an entity for a viewer.

        Args:
            entity: Account, mapping, dataclass entity or ORM row.
            viewer_role: Role of the viewer; None masks at the lowest level.

        Returns:
            A new object of the same kind, copied unchanged when nothing is
            hidden.

        Raises:
            TypeError: If the entity is of a kind that cannot be copied.
        """
        if entity is None:
            return None

        hide = cls._is_account(entity) and not cls.can_view_private_fields(viewer_role)

        if isinstance(entity, Mapping):
            masked = dict(entity)
            if hide:
                masked["email"] = cls.mask_email(masked.get("email"))
                for name in cls.HIDDEN_FIELDS:
                    if name in masked:
                        masked[name] = None
            return masked

        if is_dataclass(entity) and not isinstance(entity, type):
            if hide:
                return replace(
                    entity,
                    email=cls.mask_email(entity.email),
                    role=None,
                    last_login_at=None,
                )
            return replace(entity)

        if inspect(entity, raiseerr=False) is not None:
            return cls._copy_row(entity, hide)

        raise TypeError(f"Cannot mask entity of type {type(entity).__name__}")

    @classmethod
    def mask_many(cls, entities: list[Any], viewer_role: UserRole | None) -> list[Any]:
        return [cls.mask(entity, viewer_role) for entity in entities]
