"""SQLAlchemy models for datagate tables.

All models inherit from the Base class defined in database.py.
"""

from datagate.infrastructure.persistence.models.category import CategoryModel, TagModel
from datagate.infrastructure.persistence.models.comment import CommentModel
from datagate.infrastructure.persistence.models.permission_rule import PermissionRuleModel
from datagate.infrastructure.persistence.models.post import PostModel
from datagate.infrastructure.persistence.models.temporary_permission import (
    TemporaryPermissionModel,
)
from datagate.infrastructure.persistence.models.user import UserModel

__all__ = [
    "CategoryModel",
    "CommentModel",
    "PermissionRuleModel",
    "PostModel",
    "TagModel",
    "TemporaryPermissionModel",
    "UserModel",
]
