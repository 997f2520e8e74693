"""Query predicates for the built-in blog resource types.

Each predicate narrows a query to what a scope allows when the scope grants
neither everything nor nothing. Reads follow the visibility rules of each
type; writes are limited to what the user owns.
"""

from sqlalchemy import false, or_, select, true
from sqlalchemy.sql.elements import ColumnElement

from datagate.domain.entities.account import Account
from datagate.domain.entities.content import Category, Comment, Post, Tag
from datagate.domain.entities.permission import DataOperation, ResourceType
from datagate.domain.entities.permission_scope import PermissionScope
from datagate.domain.services.resource_registry import (
    ResourceDescriptor,
    ResourceRegistry,
)
from datagate.infrastructure.persistence.models import (
    CategoryModel,
    CommentModel,
    PostModel,
    TagModel,
    UserModel,
)


def post_predicate(
    model: type, scope: PermissionScope, user_id: str, operation: DataOperation
) -> ColumnElement[bool]:
    """Own posts, plus published posts for reads."""
    if operation == DataOperation.READ:
        if scope.can_access_all_posts:
            return true()
        return or_(model.created_by == user_id, model.is_published.is_(True))
    return model.created_by == user_id


def comment_predicate(
    model: type, scope: PermissionScope, user_id: str, operation: DataOperation
) -> ColumnElement[bool]:
    """Own comments, approved comments and comments on the user's posts."""
    on_own_post = model.post_id.in_(
        select(PostModel.id).where(PostModel.created_by == user_id)
    )
    if operation == DataOperation.READ:
        if scope.can_access_all_comments:
            return true()
        return or_(model.created_by == user_id, model.is_approved.is_(True), on_own_post)
    if operation == DataOperation.MODERATE:
        if scope.can_access_all_comments:
            return true()
        if scope.can_access_related_comments:
            return on_own_post
        return false()
    return model.created_by == user_id


def user_predicate(
    model: type, scope: PermissionScope, user_id: str, operation: DataOperation
) -> ColumnElement[bool]:
    """The user's own account, plus active accounts when public users are visible."""
    if operation == DataOperation.READ:
        if scope.can_access_all_users:
            return true()
        if scope.can_access_public_users:
            return or_(model.id == user_id, model.is_active.is_(True))
        return model.id == user_id
    return model.id == user_id


def category_predicate(
    model: type, scope: PermissionScope, user_id: str, operation: DataOperation
) -> ColumnElement[bool]:
    """Active categories for reads; no writes."""
    if operation == DataOperation.READ:
        if scope.can_access_all_categories:
            return true()
        return model.is_active.is_(True)
    return false()


def tag_predicate(
    model: type, scope: PermissionScope, user_id: str, operation: DataOperation
) -> ColumnElement[bool]:
    if operation == DataOperation.READ:
        return true()
    return model.created_by == user_id


def register_default_resources(registry: ResourceRegistry) -> ResourceRegistry:
    """Register the blog resource types.

    Returns:
        The same registry, for chaining.
    """
    registry.register(
        ResourceDescriptor(
            ResourceType.POSTS,
            model=PostModel,
            entity_types=(Post,),
            predicate=post_predicate,
        )
    )
    registry.register(
        ResourceDescriptor(
            ResourceType.COMMENTS,
            model=CommentModel,
            entity_types=(Comment,),
            predicate=comment_predicate,
        )
    )
    registry.register(
        ResourceDescriptor(
            ResourceType.USERS,
            model=UserModel,
            entity_types=(Account,),
            owner_attribute="id",
            predicate=user_predicate,
        )
    )
    registry.register(
        ResourceDescriptor(
            ResourceType.CATEGORIES,
            model=CategoryModel,
            entity_types=(Category,),
            predicate=category_predicate,
        )
    )
    registry.register(
        ResourceDescriptor(
            ResourceType.TAGS,
            model=TagModel,
            entity_types=(Tag,),
            predicate=tag_predicate,
        )
    )
    return registry


def create_default_registry() -> ResourceRegistry:
    return register_default_resources(ResourceRegistry())


__all__ = [
    "category_predicate",
    "comment_predicate",
    "create_default_registry",
    "post_predicate",
    "register_default_resources",
    "tag_predicate",
    "user_predicate",
]
