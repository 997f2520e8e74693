"""Domain entities for datagate.

Entities are pure Python dataclasses that represent core business concepts.
They have no dependencies on infrastructure or external frameworks.
"""

from datagate.domain.entities.account import Account
from datagate.domain.entities.content import Category, Comment, Post, Tag
from datagate.domain.entities.permission import (
    DataOperation,
    PermissionChangeResult,
    PermissionRule,
    PermissionSource,
    ResourceType,
    TemporaryPermission,
    UserRole,
)
from datagate.domain.entities.permission_scope import PermissionScope
from datagate.domain.entities.permission_statistics import PermissionStatistics

__all__ = [
    "Account",
    "Category",
    "Comment",
    "DataOperation",
    "PermissionChangeResult",
    "PermissionRule",
    "PermissionScope",
    "PermissionSource",
    "PermissionStatistics",
    "Post",
    "ResourceType",
    "Tag",
    "TemporaryPermission",
    "UserRole",
]
