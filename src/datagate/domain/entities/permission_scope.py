"""Data permission scope.

A scope is the coarse summary of what a user may see for one resource type
(or for every type). It is derived from the user's role and active rules and
is never persisted.
"""

from dataclasses import dataclass

from datagate.domain.entities.permission import UserRole


@dataclass
class PermissionScope:
    """Capability summary for a (user, resource type) pair.

    Attributes:
        has_access: False for missing or inactive users; nothing is visible.
        user_id: User the scope was computed for.
        user_role: Role snapshot at computation time.
        can_access_all_data: Administrator access to everything.
    """

    has_access: bool = False
    user_id: str | None = None
    user_role: UserRole | None = None
    can_access_all_data: bool = False
    can_access_own_data: bool = False
    can_access_all_users: bool = False
    can_access_public_users: bool = False
    can_access_all_posts: bool = False
    can_access_own_posts: bool = False
    can_access_published_posts: bool = False
    can_access_all_comments: bool = False
    can_access_own_comments: bool = False
    can_access_related_comments: bool = False
    can_access_all_categories: bool = False
    can_manage_system: bool = False

    @classmethod
    def denied(cls, user_id: str | None = None) -> "PermissionScope":
        """Scope that grants nothing."""
        return cls(has_access=False, user_id=user_id)

    def summary(self) -> str:
        """Human-readable description of the scope."""
        if not self.has_access:
            return "No access"
        if self.can_access_all_data:
            return "Full access (Administrator)"

        permissions = []
        if self.can_access_own_data:
            permissions.append("Own data")
        if self.can_access_all_users:
            permissions.append("All users")
        elif self.can_access_public_users:
            permissions.append("Public users")
        if self.can_access_all_posts:
            permissions.append("All posts")
        elif self.can_access_published_posts:
            permissions.append("Published posts")
        if self.can_access_own_posts:
            permissions.append("Own posts")
        if self.can_access_all_comments:
            permissions.append("All comments")
        elif self.can_access_related_comments:
            permissions.append("Related comments")
        elif self.can_access_own_comments:
            permissions.append("Own comments")
        if self.can_access_all_categories:
            permissions.append("All categories")
        if self.can_manage_system:
            permissions.append("System management")

        return ", ".join(permissions) if permissions else "Limited access"

    def has_resource_permission(self, resource: str, action: str) -> bool:
        """Coarse check of an action against the scope flags."""
        if not self.has_access:
            return False
        if self.can_access_all_data:
            return True

        resource = resource.lower()
        action = action.lower()
        writes = ("create", "update", "delete")

        if resource == "users":
            if action == "read":
                return self.can_access_all_users or self.can_access_public_users or self.can_access_own_data
            return action in writes and self.can_access_all_users
        if resource == "posts":
            if action == "read":
                return self.can_access_all_posts or self.can_access_published_posts
            return action in writes and (self.can_access_all_posts or self.can_access_own_posts)
        if resource == "comments":
            if action == "read":
                return (
                    self.can_access_all_comments
                    or self.can_access_related_comments
                    or self.can_access_own_comments
                )
            if action == "moderate":
                return self.can_access_all_comments or self.can_access_related_comments
            return action in writes and (self.can_access_all_comments or self.can_access_own_comments)
        if resource == "categories":
            return action == "read"
        if resource == "system":
            return self.can_manage_system
        return False
