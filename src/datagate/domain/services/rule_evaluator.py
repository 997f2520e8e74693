"""Rule evaluation for single access checks.

The decision order is strict and short-circuits on the first stage that
decides:

1. a missing or inactive user is denied,
2. an administrator is allowed,
3. a valid temporary permission for the exact resource allows,
4. the first effective rule (priority descending) whose conditions hold
   decides with its allow flag,
5. otherwise the role default table decides.

Each decision carries the number of seconds it may be cached for. The
value never extends past the moment the decision could change on its own:
a temporary permission expiring, a rule's window opening or closing, or a
condition's date bound being crossed.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from datagate.core.clock import Clock, utc_now
from datagate.core.conditions import (
    ConditionEvaluator,
    ConditionSet,
    ConditionSyntaxError,
    parse_conditions,
)
from datagate.core.config import Settings, get_settings
from datagate.core.logging import get_logger
from datagate.domain.entities.permission import DataOperation, PermissionRule
from datagate.domain.services.resource_registry import ResourceRegistry
from datagate.domain.services.role_permissions import role_allows
from datagate.infrastructure.persistence.repositories import (
    EntityRepository,
    PermissionRuleRepository,
    TemporaryPermissionRepository,
    UserRepository,
)

logger = get_logger(__name__)


class DecisionStage(str, Enum):
    """Stage of the pipeline that produced a decision."""

    USER = "user"
    ADMIN = "admin"
    TEMPORARY = "temporary"
    RULE = "rule"
    ROLE_DEFAULT = "role_default"


@dataclass(frozen=True)
class AccessDecision:
    """Result of one access check.

    Attributes:
        allowed: Whether access is granted.
        stage: Stage that decided.
        ttl_seconds: How long the decision may be cached; 0 means not at all.
        rule_id: Deciding rule or temporary permission, if any.
    """

    allowed: bool
    stage: DecisionStage
    ttl_seconds: float = 0.0
    rule_id: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


def _earliest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None:
        return candidate
    return min(current, candidate)


def _next_change(rule: PermissionRule, conditions: ConditionSet, now: datetime) -> datetime | None:
    """Earliest future moment at which this rule's outcome could flip."""
    return _earliest(rule.effective_to, conditions.next_boundary(now))


class RuleEvaluator:
    """Evaluates one (user, resource, operation) triple.

    An evaluator is bound to one session and is meant to live for a single
    check.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: ResourceRegistry,
        settings: Settings | None = None,
        condition_evaluator: ConditionEvaluator | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize the evaluator.

        Args:
            session: Database session for the rule store and user directory.
            registry: Resource registry, used to load resources for status conditions.
            settings: Cache TTL settings.
            condition_evaluator: Evaluator for rule conditions.
            clock: Time source.
        """
        self.settings = settings or get_settings()
        self.registry = registry
        self.clock = clock
        self.condition_evaluator = condition_evaluator or ConditionEvaluator(clock)
        self.user_repo = UserRepository(session)
        self.rule_repo = PermissionRuleRepository(session)
        self.temporary_repo = TemporaryPermissionRepository(session)
        self.entity_repo = EntityRepository(session)

    def _ttl(self, ceiling: float, now: datetime, boundary: datetime | None) -> float:
        if boundary is None:
            return float(ceiling)
        return max(0.0, min(float(ceiling), (boundary - now).total_seconds()))

    async def _load_resource(self, resource_type: str, resource_id: str | None) -> Any | None:
        if resource_id is None:
            return None
        descriptor = self.registry.get(resource_type)
        if descriptor is None or descriptor.model is None:
            return None
        return await self.entity_repo.get(descriptor.model, resource_id)

    async def evaluate(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str | None,
        operation: DataOperation,
    ) -> AccessDecision:
        """Decide whether a user may perform an operation on a resource.

        Args:
            user_id: Acting user.
            resource_type: Canonical resource type tag.
            resource_id: Target resource, or None for a type-level check.
            operation: Operation being checked.

        Returns:
            AccessDecision describing the verdict and its cache lifetime.
        """
        now = self.clock()

        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.is_active:
            logger.debug("Access denied: user missing or inactive", user_id=user_id)
            return AccessDecision(allowed=False, stage=DecisionStage.USER)

        if user.role is not None and user.role.is_admin:
            return AccessDecision(
                allowed=True,
                stage=DecisionStage.ADMIN,
                ttl_seconds=float(self.settings.access_cache_ttl_seconds),
            )

        if resource_id is not None:
            temporary = await self.temporary_repo.find_active(
                user_id, resource_type, resource_id, operation, now
            )
            if temporary:
                permission = temporary[0]
                logger.debug(
                    "Access granted by temporary permission",
                    user_id=user_id,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    operation=operation.value,
                    permission_id=permission.id,
                )
                return AccessDecision(
                    allowed=True,
                    stage=DecisionStage.TEMPORARY,
                    ttl_seconds=self._ttl(
                        self.settings.temporary_access_cache_ttl_seconds,
                        now,
                        permission.expires_at,
                    ),
                    rule_id=permission.id,
                )

        rules = await self.rule_repo.find_effective_rules(
            user_id, resource_type, operation, resource_id, now
        )
        boundary = await self.rule_repo.next_activation(
            user_id, resource_type, operation, resource_id, now
        )
        resource: Any | None = None
        resource_loaded = False

        for rule in rules:
            try:
                conditions = parse_conditions(rule.conditions, strict=False)
            except ConditionSyntaxError as e:
                logger.warning(
                    "Skipping rule with unreadable conditions",
                    rule_id=rule.id,
                    conditions=str(rule.conditions),
                    error=str(e),
                )
                continue

            boundary = _earliest(boundary, _next_change(rule, conditions, now))

            if conditions.needs_resource() and not resource_loaded:
                resource = await self._load_resource(resource_type, resource_id)
                resource_loaded = True

            if self.condition_evaluator.evaluate(conditions, user_id, resource_id, resource):
                logger.debug(
                    "Access decided by rule",
                    user_id=user_id,
                    resource_type=resource_type,
                    resource_id=resource_id,
                    operation=operation.value,
                    rule_id=rule.id,
                    allowed=rule.is_allowed,
                )
                return AccessDecision(
                    allowed=rule.is_allowed,
                    stage=DecisionStage.RULE,
                    ttl_seconds=self._ttl(self.settings.access_cache_ttl_seconds, now, boundary),
                    rule_id=rule.id,
                )

        allowed = role_allows(user.role, resource_type, operation)
        logger.debug(
            "Access decided by role default",
            user_id=user_id,
            role=user.role.value if user.role else None,
            resource_type=resource_type,
            operation=operation.value,
            allowed=allowed,
        )
        return AccessDecision(
            allowed=allowed,
            stage=DecisionStage.ROLE_DEFAULT,
            ttl_seconds=self._ttl(self.settings.access_cache_ttl_seconds, now, boundary),
        )
