"""Tests for permission entities."""

from datetime import datetime, timedelta, timezone

import pytest

from datagate.domain.entities import (
    DataOperation,
    PermissionChangeResult,
    PermissionRule,
    PermissionScope,
    TemporaryPermission,
    UserRole,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestDataOperation:
    """Tests for DataOperation.parse."""

    @pytest.mark.parametrize("value", ["read", "READ", " Read ", DataOperation.READ])
    def test_parse(self, value):
        assert DataOperation.parse(value) is DataOperation.READ

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown data operation"):
            DataOperation.parse("archive")


class TestPermissionRule:
    """Tests for PermissionRule."""

    def test_requires_user_and_type(self):
        with pytest.raises(ValueError):
            PermissionRule(user_id="", resource_type="Posts", operation="read")
        with pytest.raises(ValueError):
            PermissionRule(user_id="u1", resource_type="", operation="read")

    def test_operation_is_parsed(self):
        rule = PermissionRule(user_id="u1", resource_type="Posts", operation="Update")
        assert rule.operation is DataOperation.UPDATE

    def test_window_must_be_ordered(self):
        with pytest.raises(ValueError):
            PermissionRule(
                user_id="u1",
                resource_type="Posts",
                operation="read",
                effective_from=NOW,
                effective_to=NOW,
            )

    def test_effective_window_is_half_open(self):
        rule = PermissionRule(
            user_id="u1",
            resource_type="Posts",
            operation="read",
            effective_from=NOW,
            effective_to=NOW + timedelta(hours=1),
        )
        assert rule.is_effective(NOW)
        assert not rule.is_effective(NOW - timedelta(seconds=1))
        assert not rule.is_effective(NOW + timedelta(hours=1))

    def test_inactive_or_deleted_is_not_effective(self):
        assert not PermissionRule(
            user_id="u1", resource_type="Posts", operation="read", is_active=False
        ).is_effective(NOW)
        assert not PermissionRule(
            user_id="u1", resource_type="Posts", operation="read", is_deleted=True
        ).is_effective(NOW)

    def test_matches(self):
        wide = PermissionRule(user_id="u1", resource_type="Posts", operation="read")
        narrow = PermissionRule(
            user_id="u1", resource_type="Posts", operation="read", resource_id="p1"
        )
        assert wide.matches("Posts", DataOperation.READ, "p9")
        assert wide.matches("Posts", DataOperation.READ, None)
        assert narrow.matches("Posts", DataOperation.READ, "p1")
        assert not narrow.matches("Posts", DataOperation.READ, "p2")
        assert not wide.matches("Comments", DataOperation.READ, "p1")
        assert wide.is_type_wide and not narrow.is_type_wide


class TestTemporaryPermission:
    """Tests for TemporaryPermission."""

    def test_validity(self):
        permission = TemporaryPermission(
            user_id="u1",
            resource_type="Posts",
            resource_id="p1",
            operation="update",
            expires_at=NOW + timedelta(minutes=5),
        )
        assert permission.is_valid(NOW)
        assert not permission.is_valid(NOW + timedelta(minutes=5))
        permission.is_active = False
        assert not permission.is_valid(NOW)


class TestPermissionScope:
    """Tests for PermissionScope."""

    def test_denied(self):
        scope = PermissionScope.denied("u1")
        assert not scope.has_access
        assert scope.summary() == "No access"
        assert not scope.has_resource_permission("posts", "read")

    def test_admin(self):
        scope = PermissionScope(has_access=True, can_access_all_data=True)
        assert scope.summary() == "Full access (Administrator)"
        assert scope.has_resource_permission("system", "anything")

    def test_reader_summary(self):
        scope = PermissionScope(
            has_access=True,
            user_role=UserRole.USER,
            can_access_own_data=True,
            can_access_published_posts=True,
            can_access_own_comments=True,
        )
        assert scope.summary() == "Own data, Published posts, Own comments"
        assert scope.has_resource_permission("Posts", "read")
        assert not scope.has_resource_permission("Posts", "update")
        assert scope.has_resource_permission("comments", "update")
        assert not scope.has_resource_permission("comments", "moderate")


class TestPermissionChangeResult:
    """Tests for PermissionChangeResult."""

    def test_truthiness(self):
        assert PermissionChangeResult.ok("r1")
        assert not PermissionChangeResult.failed("not_held")
        assert PermissionChangeResult.failed("not_held").reason == "not_held"
