"""Static role defaults.

Two tables live here: the operations each role may perform per resource
type when no rule decides, and the coarse scope flags each role starts
from before custom rules are overlaid.
"""

from datagate.domain.entities.account import Account
from datagate.domain.entities.permission import DataOperation, ResourceType, UserRole
from datagate.domain.entities.permission_scope import PermissionScope

_CRUD = frozenset(
    {DataOperation.CREATE, DataOperation.READ, DataOperation.UPDATE, DataOperation.DELETE}
)
_READ = frozenset({DataOperation.READ})

_AUTHOR_DEFAULTS: dict[str, frozenset[DataOperation]] = {
    ResourceType.POSTS: _CRUD | {DataOperation.PUBLISH},
    ResourceType.COMMENTS: frozenset(
        {
            DataOperation.READ,
            DataOperation.UPDATE,
            DataOperation.DELETE,
            DataOperation.MODERATE,
        }
    ),
    ResourceType.CATEGORIES: _READ,
    ResourceType.TAGS: frozenset({DataOperation.READ, DataOperation.CREATE}),
    ResourceType.USERS: _READ,
}

ROLE_DEFAULT_PERMISSIONS: dict[UserRole, dict[str, frozenset[DataOperation]]] = {
    UserRole.GUEST: {
        ResourceType.POSTS: _READ,
        ResourceType.CATEGORIES: _READ,
    },
    UserRole.USER: {
        ResourceType.POSTS: _READ,
        ResourceType.COMMENTS: _CRUD,
        ResourceType.CATEGORIES: _READ,
        ResourceType.TAGS: _READ,
        ResourceType.USERS: _READ,
    },
    UserRole.AUTHOR: _AUTHOR_DEFAULTS,
    UserRole.MODERATOR: {
        **_AUTHOR_DEFAULTS,
        ResourceType.COMMENTS: _CRUD | {DataOperation.MODERATE},
    },
}


def role_allows(
    role: UserRole | None, resource_type: str, operation: DataOperation
) -> bool:
    """Check the role default table.

    Administrators are allowed everything. Unknown roles, resource types
    and operations are denied.
    """
    if role is None:
        return False
    if role.is_admin:
        return True
    return operation in ROLE_DEFAULT_PERMISSIONS.get(role, {}).get(resource_type, ())


def default_scope(user: Account) -> PermissionScope:
    """Build the role-default scope for an active user."""
    scope = PermissionScope(
        has_access=True,
        user_id=user.id,
        user_role=user.role,
        can_access_own_data=True,
    )

    role = user.role
    if role is not None and role.is_admin:
        scope.can_access_all_data = True
        scope.can_access_all_users = True
        scope.can_access_public_users = True
        scope.can_access_all_posts = True
        scope.can_access_own_posts = True
        scope.can_access_published_posts = True
        scope.can_access_all_comments = True
        scope.can_access_own_comments = True
        scope.can_access_related_comments = True
        scope.can_access_all_categories = True
        scope.can_manage_system = True
    elif role in (UserRole.AUTHOR, UserRole.MODERATOR):
        scope.can_access_public_users = True
        scope.can_access_all_posts = True
        scope.can_access_own_posts = True
        scope.can_access_published_posts = True
        scope.can_access_related_comments = True
        scope.can_access_own_comments = True
        if role == UserRole.MODERATOR:
            scope.can_access_all_comments = True
    elif role == UserRole.USER:
        scope.can_access_published_posts = True
        scope.can_access_own_comments = True
    elif role == UserRole.GUEST:
        scope.can_access_published_posts = True

    return scope
