"""Unit tests for ScopeResolver with mocked repositories."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from datagate.core.config import Settings
from datagate.domain.entities import Account, DataOperation, PermissionRule, UserRole
from datagate.domain.services.permission_cache import PermissionCache
from datagate.domain.services.permission_statistics import PermissionStatisticsCollector
from datagate.domain.services.scope_resolver import ScopeResolver

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _rule(**kwargs) -> PermissionRule:
    defaults = {"user_id": "u1", "resource_type": "Posts", "operation": DataOperation.READ}
    defaults.update(kwargs)
    return PermissionRule(**defaults)


class _Clock:
    def __init__(self):
        self.now = NOW

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return _Clock()


@pytest.fixture
def cache(clock):
    return PermissionCache(clock=clock)


@pytest.fixture
def statistics():
    return PermissionStatisticsCollector()


@pytest.fixture
def resolver(cache, statistics, clock):
    """Create a resolver whose repositories are mocks."""
    resolver = ScopeResolver(
        MagicMock(),
        cache,
        settings=Settings(_env_file=None, environment="testing"),
        statistics=statistics,
        clock=clock,
    )
    resolver.user_repo = MagicMock()
    resolver.user_repo.get_by_id = AsyncMock(
        return_value=Account(id="u1", username="u1", role=UserRole.USER)
    )
    resolver.rule_repo = MagicMock()
    resolver.rule_repo.find_by_user = AsyncMock(return_value=[])
    return resolver


class TestScopeResolver:
    """Tests for ScopeResolver.resolve."""

    @pytest.mark.asyncio
    async def test_missing_user_has_no_access(self, resolver):
        """A missing user gets a denied scope."""
        resolver.user_repo.get_by_id.return_value = None

        scope = await resolver.resolve("ghost", "Posts")

        assert scope.has_access is False

    @pytest.mark.asyncio
    async def test_type_wide_read_grant_widens_scope(self, resolver):
        """An unconditional type-wide read rule sets the access-all flag."""
        resolver.rule_repo.find_by_user.return_value = [_rule()]

        scope = await resolver.resolve("u1", "Posts")

        assert scope.can_access_all_posts is True

    @pytest.mark.asyncio
    async def test_narrow_or_conditional_rules_do_not_widen(self, resolver):
        """Single-resource, conditional, deny and future rules are ignored."""
        resolver.rule_repo.find_by_user.return_value = [
            _rule(resource_id="p1"),
            _rule(conditions={"CreatedBy": "{UserId}"}),
            _rule(is_allowed=False),
            _rule(effective_from=NOW + timedelta(hours=1)),
            _rule(operation=DataOperation.UPDATE),
        ]

        scope = await resolver.resolve("u1", "Posts")

        assert scope.can_access_all_posts is False

    @pytest.mark.asyncio
    async def test_scope_is_cached_and_copied(self, resolver, statistics):
        """The second resolve is a cache hit and returns an independent copy."""
        first = await resolver.resolve("u1", "Posts")
        first.can_access_all_posts = True

        second = await resolver.resolve("u1", "Posts")

        assert second.can_access_all_posts is False
        assert resolver.user_repo.get_by_id.await_count == 1
        assert statistics.snapshot().cache_hits == 1

    @pytest.mark.asyncio
    async def test_ttl_capped_by_rule_boundary(self, resolver, cache, clock):
        """A scope is not cached past the next rule window change."""
        resolver.rule_repo.find_by_user.return_value = [
            _rule(effective_to=NOW + timedelta(seconds=10))
        ]

        await resolver.resolve("u1", "Posts")

        clock.now = NOW + timedelta(seconds=9)
        assert cache.get_scope("u1", "Posts") is not None
        clock.now = NOW + timedelta(seconds=10)
        assert cache.get_scope("u1", "Posts") is None

    @pytest.mark.asyncio
    async def test_failure_yields_denied_scope(self, resolver):
        """Errors while resolving are logged and deny."""
        resolver.user_repo.get_by_id.side_effect = RuntimeError("database is down")

        scope = await resolver.resolve("u1", "Posts")

        assert scope.has_access is False

    @pytest.mark.asyncio
    async def test_load_rules_filters_inactive(self, resolver):
        """Revoked and deleted rules never reach the cache."""
        live = _rule()
        resolver.rule_repo.find_by_user.return_value = [
            live,
            _rule(is_active=False),
            _rule(is_deleted=True),
        ]

        rules = await resolver.load_rules("u1", "Posts")

        assert [rule.id for rule in rules] == [live.id]
