"""Persistence repositories for database operations."""

from datagate.infrastructure.persistence.repositories.entity_repository import (
    EntityRepository,
)
from datagate.infrastructure.persistence.repositories.permission_rule_repository import (
    PermissionRuleRepository,
)
from datagate.infrastructure.persistence.repositories.temporary_permission_repository import (
    TemporaryPermissionRepository,
)
from datagate.infrastructure.persistence.repositories.user_repository import (
    UserRepository,
)

__all__ = [
    "EntityRepository",
    "PermissionRuleRepository",
    "TemporaryPermissionRepository",
    "UserRepository",
]
