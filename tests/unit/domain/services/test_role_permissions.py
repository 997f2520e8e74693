"""Tests for the static role defaults."""

import pytest

from datagate.domain.entities import Account, DataOperation, ResourceType, UserRole
from datagate.domain.services.role_permissions import default_scope, role_allows


class TestRoleAllows:
    """Tests for role_allows."""

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.SUPER_ADMIN])
    def test_admin_allowed_everything(self, role):
        assert role_allows(role, "Anything", DataOperation.DELETE)

    def test_none_role_denied(self):
        assert not role_allows(None, ResourceType.POSTS, DataOperation.READ)

    def test_guest(self):
        assert role_allows(UserRole.GUEST, ResourceType.POSTS, DataOperation.READ)
        assert role_allows(UserRole.GUEST, ResourceType.CATEGORIES, DataOperation.READ)
        assert not role_allows(UserRole.GUEST, ResourceType.COMMENTS, DataOperation.READ)
        assert not role_allows(UserRole.GUEST, ResourceType.POSTS, DataOperation.UPDATE)

    def test_user(self):
        assert role_allows(UserRole.USER, ResourceType.COMMENTS, DataOperation.CREATE)
        assert role_allows(UserRole.USER, ResourceType.USERS, DataOperation.READ)
        assert not role_allows(UserRole.USER, ResourceType.POSTS, DataOperation.UPDATE)
        assert not role_allows(UserRole.USER, ResourceType.COMMENTS, DataOperation.MODERATE)

    def test_author(self):
        assert role_allows(UserRole.AUTHOR, ResourceType.POSTS, DataOperation.PUBLISH)
        assert role_allows(UserRole.AUTHOR, ResourceType.TAGS, DataOperation.CREATE)
        assert role_allows(UserRole.AUTHOR, ResourceType.COMMENTS, DataOperation.MODERATE)
        assert not role_allows(UserRole.AUTHOR, ResourceType.COMMENTS, DataOperation.CREATE)
        assert not role_allows(UserRole.AUTHOR, ResourceType.CATEGORIES, DataOperation.UPDATE)

    def test_moderator_extends_author(self):
        assert role_allows(UserRole.MODERATOR, ResourceType.POSTS, DataOperation.PUBLISH)
        assert role_allows(UserRole.MODERATOR, ResourceType.COMMENTS, DataOperation.CREATE)

    def test_unknown_resource_type_denied(self):
        assert not role_allows(UserRole.MODERATOR, "Invoices", DataOperation.READ)


class TestDefaultScope:
    """Tests for default_scope."""

    def test_admin(self):
        scope = default_scope(Account(id="a", username="a", role=UserRole.ADMIN))
        assert scope.has_access and scope.can_access_all_data and scope.can_manage_system

    def test_author(self):
        scope = default_scope(Account(id="a", username="a", role=UserRole.AUTHOR))
        assert scope.can_access_all_posts
        assert scope.can_access_related_comments
        assert not scope.can_access_all_comments
        assert not scope.can_access_all_data

    def test_moderator(self):
        scope = default_scope(Account(id="m", username="m", role=UserRole.MODERATOR))
        assert scope.can_access_all_comments

    def test_user(self):
        scope = default_scope(Account(id="u", username="u", role=UserRole.USER))
        assert scope.has_access
        assert scope.can_access_own_data
        assert scope.can_access_published_posts
        assert scope.can_access_own_comments
        assert not scope.can_access_all_posts
        assert not scope.can_access_public_users

    def test_guest(self):
        scope = default_scope(Account(id="g", username="g", role=UserRole.GUEST))
        assert scope.can_access_published_posts
        assert not scope.can_access_own_comments
        assert scope.user_id == "g"
        assert scope.user_role == UserRole.GUEST
