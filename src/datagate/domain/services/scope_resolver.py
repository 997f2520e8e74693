"""Scope resolution.

A scope starts from the role defaults and is widened by the user's
effective, unconditional, type-wide read grants. Scopes and the rule lists
they are built from are cached per user and resource type.
"""

from dataclasses import replace
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from datagate.core.clock import Clock, utc_now
from datagate.core.config import Settings, get_settings
from datagate.core.logging import get_logger
from datagate.domain.entities.permission import DataOperation, PermissionRule, ResourceType
from datagate.domain.entities.permission_scope import PermissionScope
from datagate.domain.services.permission_cache import PermissionCache
from datagate.domain.services.permission_statistics import PermissionStatisticsCollector
from datagate.domain.services.role_permissions import default_scope
from datagate.infrastructure.persistence.repositories import (
    PermissionRuleRepository,
    UserRepository,
)

logger = get_logger(__name__)

ACCESS_ALL_FLAGS = {
    ResourceType.USERS.lower(): "can_access_all_users",
    ResourceType.POSTS.lower(): "can_access_all_posts",
    ResourceType.COMMENTS.lower(): "can_access_all_comments",
    ResourceType.CATEGORIES.lower(): "can_access_all_categories",
}


def _grants_type_wide_read(rule: PermissionRule, now: datetime) -> bool:
    return (
        rule.is_effective(now)
        and rule.is_allowed
        and rule.operation == DataOperation.READ
        and rule.is_type_wide
        and not rule.conditions
    )


def _next_change(rules: list[PermissionRule], now: datetime) -> datetime | None:
    """Earliest future effective_from or effective_to among live rules."""
    bounds = [
        bound
        for rule in rules
        if rule.is_active and not rule.is_deleted
        for bound in (rule.effective_from, rule.effective_to)
        if bound is not None and bound > now
    ]
    return min(bounds) if bounds else None


class ScopeResolver:
    """Computes and caches permission scopes."""

    def __init__(
        self,
        session: AsyncSession,
        cache: PermissionCache,
        settings: Settings | None = None,
        statistics: PermissionStatisticsCollector | None = None,
        clock: Clock = utc_now,
    ):
        self.cache = cache
        self.settings = settings or get_settings()
        self.statistics = statistics
        self.clock = clock
        self.user_repo = UserRepository(session)
        self.rule_repo = PermissionRuleRepository(session)

    def _record_lookup(self, hit: bool) -> None:
        if self.statistics is None:
            return
        if hit:
            self.statistics.record_cache_hit()
        else:
            self.statistics.record_cache_miss()

    async def load_rules(
        self, user_id: str, resource_type: str | None = None
    ) -> list[PermissionRule]:
        """Load a user's live (not deleted, active) rules through the cache.

        Effectiveness windows are not applied here; callers filter with
        ``PermissionRule.is_effective`` at the time of use.
        """
        cached = self.cache.get_rules(user_id, resource_type)
        self._record_lookup(cached is not None)
        if cached is not None:
            return list(cached)

        generation = self.cache.generation(user_id)
        rules = [
            rule
            for rule in await self.rule_repo.find_by_user(user_id, resource_type)
            if rule.is_active and not rule.is_deleted
        ]
        self.cache.set_rules(
            user_id,
            resource_type,
            rules,
            self.settings.rules_cache_ttl_seconds,
            generation,
        )
        return list(rules)

    async def resolve(self, user_id: str, resource_type: str | None = None) -> PermissionScope:
        """Get the scope for a user and resource type.

        Args:
            user_id: User to resolve.
            resource_type: Canonical resource type tag, or None for all types.

        Returns:
            The scope. Missing or inactive users, and any failure, yield a
            scope with ``has_access`` False.
        """
        cached = self.cache.get_scope(user_id, resource_type)
        self._record_lookup(cached is not None)
        if cached is not None:
            return replace(cached)

        generation = self.cache.generation(user_id)
        try:
            user = await self.user_repo.get_by_id(user_id)
            if user is None or not user.is_active:
                logger.debug("Scope denied: user missing or inactive", user_id=user_id)
                return PermissionScope.denied(user_id)

            scope = default_scope(user)
            now = self.clock()
            boundary = None

            if not scope.can_access_all_data:
                rules = await self.load_rules(user_id, resource_type)
                for rule in rules:
                    if not _grants_type_wide_read(rule, now):
                        continue
                    flag = ACCESS_ALL_FLAGS.get(rule.resource_type.lower())
                    if flag is not None:
                        setattr(scope, flag, True)
                boundary = _next_change(rules, now)

            ttl = float(self.settings.scope_cache_ttl_seconds)
            if boundary is not None:
                ttl = min(ttl, (boundary - now).total_seconds())
            self.cache.set_scope(user_id, resource_type, scope, ttl, generation)
            return replace(scope)

        except Exception as e:
            logger.error(
                "Error resolving data scope",
                user_id=user_id,
                resource_type=resource_type,
                error=str(e),
                exc_info=True,
            )
            return PermissionScope.denied(user_id)
