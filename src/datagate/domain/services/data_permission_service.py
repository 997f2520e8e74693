"""Data permission service.

Entry point for the surrounding application. Answers single and batch access
checks, narrows queries to what a user may see, masks entities for a viewer
and manages temporary permissions, delegations and rules.

Read-path methods never raise for ordinary faults: a missing user, a
database error or a timeout all end in a logged deny. Write-path methods
return a PermissionChangeResult and invalidate the touched user's cache
before returning.

Every operation opens its own short-lived session from ``session_factory``,
so checks for different users can run concurrently.
"""

import asyncio
import json
import time
from collections.abc import Iterable, Mapping
from dataclasses import replace
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy import Select, false
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from datagate.core.clock import Clock, ensure_utc, utc_now
from datagate.core.conditions import ConditionEvaluator, parse_conditions
from datagate.core.config import Settings, get_settings
from datagate.core.logging import get_logger
from datagate.domain.entities.permission import (
    DataOperation,
    PermissionChangeResult,
    PermissionRule,
    PermissionSource,
    TemporaryPermission,
    UserRole,
)
from datagate.domain.entities.permission_scope import PermissionScope
from datagate.domain.entities.permission_statistics import PermissionStatistics
from datagate.domain.services.data_masking_service import DataMaskingService
from datagate.domain.services.permission_cache import PermissionCache
from datagate.domain.services.permission_errors import RuleNotFoundError
from datagate.domain.services.permission_statistics import PermissionStatisticsCollector
from datagate.domain.services.resource_filters import create_default_registry
from datagate.domain.services.resource_registry import ResourceRegistry
from datagate.domain.services.role_permissions import role_allows
from datagate.domain.services.rule_evaluator import RuleEvaluator
from datagate.domain.services.scope_resolver import ScopeResolver
from datagate.infrastructure.persistence.repositories import (
    EntityRepository,
    PermissionRuleRepository,
    TemporaryPermissionRepository,
    UserRepository,
)

logger = get_logger(__name__)

T = TypeVar("T")

UPDATABLE_RULE_FIELDS = frozenset(
    {
        "resource_type",
        "resource_id",
        "operation",
        "is_allowed",
        "priority",
        "effective_from",
        "effective_to",
        "conditions",
        "is_active",
        "remarks",
    }
)


def _entity_id(entity: Any) -> str | None:
    if isinstance(entity, Mapping):
        value = entity.get("id")
    else:
        value = getattr(entity, "id", None)
    return str(value) if value is not None else None


def _parse_write_operation(operation: DataOperation | str, **context: Any) -> DataOperation | None:
    """Parse the operation of a write request, logging and returning None if unknown."""
    try:
        return DataOperation.parse(operation)
    except ValueError:
        logger.warning(
            "Permission change refused: unknown operation",
            operation=str(operation),
            **context,
        )
        return None


def _validated_conditions(payload: Mapping[str, Any] | str | None) -> dict[str, Any] | None:
    """Parse conditions strictly and return the mapping to store.

    Raises:
        ConditionSyntaxError: If the payload is malformed.
    """
    parsed = parse_conditions(payload, strict=True)
    if parsed.is_empty:
        return None
    return json.loads(parsed.source)


class DataPermissionService:
    """Facade over rule evaluation, scopes, filtering, masking and grants.

    Example:
        service = DataPermissionService(db.session_factory)
        if await service.can_access_resource(user_id, "Posts", post_id, "update"):
            ...
        stmt = await service.filter_by_data_permissions(user_id, select(PostModel), "read")
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        cache: PermissionCache | None = None,
        registry: ResourceRegistry | None = None,
        statistics: PermissionStatisticsCollector | None = None,
        condition_evaluator: ConditionEvaluator | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize the service.

        Args:
            session_factory: Factory for database sessions.
            settings: Application settings (TTLs, timeout, warmup types).
            cache: Permission cache; a private in-memory cache by default.
            registry: Resource registry; the blog resource types by default.
            statistics: Statistics collector.
            condition_evaluator: Evaluator for rule conditions.
            clock: Time source for every expiry comparison.
        """
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.clock = clock
        self.cache = cache if cache is not None else PermissionCache(clock=clock)
        self.registry = registry if registry is not None else create_default_registry()
        self.statistics = statistics if statistics is not None else PermissionStatisticsCollector()
        self.condition_evaluator = condition_evaluator or ConditionEvaluator(clock)

    def _scope_resolver(self, session: AsyncSession) -> ScopeResolver:
        return ScopeResolver(
            session,
            self.cache,
            settings=self.settings,
            statistics=self.statistics,
            clock=self.clock,
        )

    def _rule_evaluator(self, session: AsyncSession) -> RuleEvaluator:
        return RuleEvaluator(
            session,
            self.registry,
            settings=self.settings,
            condition_evaluator=self.condition_evaluator,
            clock=self.clock,
        )

    # =========================================================================
    # Single checks
    # =========================================================================

    async def can_access_resource(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str | None,
        operation: DataOperation | str,
    ) -> bool:
        """Check whether a user may perform an operation on a resource.

        Args:
            user_id: Acting user.
            resource_type: Resource type tag (case-insensitive for registered types).
            resource_id: Target resource, or None for a type-level check.
            operation: Operation, as enum or name.

        Returns:
            True if allowed. Every failure, including a timeout, returns False.
        """
        started = time.perf_counter()
        allowed = False
        try:
            operation = DataOperation.parse(operation)
            resource_type = self.registry.canonical_name(resource_type)

            cached = self.cache.get_access(user_id, resource_type, resource_id, operation)
            if cached is not None:
                self.statistics.record_cache_hit()
                allowed = cached
                return allowed
            self.statistics.record_cache_miss()

            generation = self.cache.generation(user_id)
            async with asyncio.timeout(self.settings.permission_check_timeout_seconds):
                async with self.session_factory() as session:
                    decision = await self._rule_evaluator(session).evaluate(
                        user_id, resource_type, resource_id, operation
                    )

            self.cache.set_access(
                user_id,
                resource_type,
                resource_id,
                operation,
                decision.allowed,
                decision.ttl_seconds,
                generation,
            )
            allowed = decision.allowed
            return allowed

        except TimeoutError:
            logger.warning(
                "Access check timed out",
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=str(operation),
                timeout_seconds=self.settings.permission_check_timeout_seconds,
            )
            return False
        except Exception as e:
            logger.error(
                "Error checking resource access",
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=str(operation),
                error=str(e),
                exc_info=True,
            )
            return False
        finally:
            self.statistics.record_check(allowed, (time.perf_counter() - started) * 1000)

    async def has_permission(
        self,
        user_id: str,
        resource: str,
        action: DataOperation | str,
        resource_id: str | None = None,
    ) -> bool:
        """Coarse role check with an ownership shortcut.

        Administrators are allowed, owners of ``resource_id`` are allowed,
        everyone else gets the role default for the resource and action.
        Custom rules and temporary permissions are not consulted; use
        ``can_access_resource`` for the full decision.
        """
        started = time.perf_counter()
        allowed = False
        try:
            operation = DataOperation.parse(action)
            resource_type = self.registry.canonical_name(resource)

            async with asyncio.timeout(self.settings.permission_check_timeout_seconds):
                async with self.session_factory() as session:
                    user = await UserRepository(session).get_by_id(user_id)
                    if user is None or not user.is_active:
                        logger.warning(
                            "Permission check failed: user not found or inactive",
                            user_id=user_id,
                        )
                        return False

                    if user.role is not None and user.role.is_admin:
                        allowed = True
                    elif resource_id is not None and await self._is_resource_owner(
                        session, user_id, resource_type, resource_id
                    ):
                        allowed = True
                    else:
                        allowed = role_allows(user.role, resource_type, operation)

            logger.debug(
                "Permission check",
                user_id=user_id,
                resource=resource_type,
                action=operation.value,
                resource_id=resource_id,
                allowed=allowed,
            )
            return allowed

        except TimeoutError:
            logger.warning("Permission check timed out", user_id=user_id, resource=resource)
            allowed = False
            return False
        except Exception as e:
            logger.error(
                "Error checking permission",
                user_id=user_id,
                resource=resource,
                action=str(action),
                error=str(e),
                exc_info=True,
            )
            allowed = False
            return False
        finally:
            self.statistics.record_check(allowed, (time.perf_counter() - started) * 1000)

    async def _is_resource_owner(
        self, session: AsyncSession, user_id: str, resource_type: str, resource_id: str
    ) -> bool:
        descriptor = self.registry.get(resource_type)
        if descriptor is None or descriptor.model is None or descriptor.owner_attribute is None:
            return False
        owner_id = await EntityRepository(session).get_owner_id(
            descriptor.model, descriptor.owner_attribute, resource_id
        )
        return owner_id is not None and str(owner_id) == str(user_id)

    async def has_data_access(
        self, user_id: str, entity: Any, operation: DataOperation | str
    ) -> bool:
        """Check access to an in-memory entity of a registered type."""
        if entity is None:
            return False
        resource_type = self.registry.resource_type_of(entity)
        if resource_type is None:
            logger.warning(
                "Data access check on unregistered entity type",
                user_id=user_id,
                entity_type=type(entity).__name__,
            )
            return False
        return await self.can_access_resource(
            user_id, resource_type, _entity_id(entity), operation
        )

    # =========================================================================
    # Scopes and rules
    # =========================================================================

    async def get_user_data_scope(
        self, user_id: str, resource_type: str | None = None
    ) -> PermissionScope:
        """Get the coarse capability summary for a user.

        Returns:
            The scope; a denied scope on any failure.
        """
        if resource_type is not None:
            resource_type = self.registry.canonical_name(resource_type)
        try:
            async with asyncio.timeout(self.settings.permission_check_timeout_seconds):
                async with self.session_factory() as session:
                    return await self._scope_resolver(session).resolve(user_id, resource_type)
        except TimeoutError:
            logger.warning("Scope resolution timed out", user_id=user_id, resource_type=resource_type)
            return PermissionScope.denied(user_id)
        except Exception as e:
            logger.error(
                "Error getting user data scope",
                user_id=user_id,
                resource_type=resource_type,
                error=str(e),
                exc_info=True,
            )
            return PermissionScope.denied(user_id)

    async def get_user_permission_rules(
        self, user_id: str, resource_type: str | None = None
    ) -> list[PermissionRule]:
        """List the rules currently effective for a user."""
        if resource_type is not None:
            resource_type = self.registry.canonical_name(resource_type)
        try:
            async with self.session_factory() as session:
                rules = await self._scope_resolver(session).load_rules(user_id, resource_type)
            now = self.clock()
            return [rule for rule in rules if rule.is_effective(now)]
        except Exception as e:
            logger.error(
                "Error getting permission rules",
                user_id=user_id,
                resource_type=resource_type,
                error=str(e),
                exc_info=True,
            )
            return []

    # =========================================================================
    # Batch and query filtering
    # =========================================================================

    async def _batch_decisions(
        self, user_id: str, entities: list[Any], operation: DataOperation
    ) -> list[bool]:
        scope = await self.get_user_data_scope(user_id)
        if not scope.has_access:
            return [False] * len(entities)
        if scope.can_access_all_data:
            return [True] * len(entities)

        decisions = []
        for entity in entities:
            resource_type = self.registry.resource_type_of(entity)
            if resource_type is None:
                decisions.append(False)
                continue
            decisions.append(
                await self.can_access_resource(
                    user_id, resource_type, _entity_id(entity), operation
                )
            )
        return decisions

    async def check_batch_data_access(
        self, user_id: str, entities: Iterable[Any], operation: DataOperation | str
    ) -> dict[str, bool]:
        """Check access to each entity.

        Returns:
            Mapping of entity ID to verdict. Entities without an ID are skipped.
        """
        entities = list(entities)
        try:
            operation = DataOperation.parse(operation)
            decisions = await self._batch_decisions(user_id, entities, operation)
        except Exception as e:
            logger.error(
                "Error checking batch data access",
                user_id=user_id,
                operation=str(operation),
                count=len(entities),
                error=str(e),
                exc_info=True,
            )
            decisions = [False] * len(entities)

        results: dict[str, bool] = {}
        for entity, allowed in zip(entities, decisions):
            entity_id = _entity_id(entity)
            if entity_id is not None:
                results[entity_id] = allowed
        return results

    async def filter_accessible_entities(
        self, user_id: str, entities: Iterable[T], operation: DataOperation | str
    ) -> list[T]:
        """Keep the entities the user may access, in their original order.

        The result is always the same subset as checking each entity with
        ``can_access_resource``.
        """
        entities = list(entities)
        try:
            operation = DataOperation.parse(operation)
            decisions = await self._batch_decisions(user_id, entities, operation)
        except Exception as e:
            logger.error(
                "Error filtering accessible entities",
                user_id=user_id,
                operation=str(operation),
                count=len(entities),
                error=str(e),
                exc_info=True,
            )
            return []
        return [entity for entity, allowed in zip(entities, decisions) if allowed]

    async def filter_by_data_permissions(
        self, user_id: str, query: Select, operation: DataOperation | str
    ) -> Select:
        """Narrow a SELECT to the rows the user may access.

        Args:
            user_id: Acting user.
            query: A select() whose first entity is a resource model.
            operation: Operation the rows are wanted for.

        Returns:
            The query unchanged for administrators, with a false() filter for
            users without access, and with the resource type's predicate
            otherwise. Models without a registered predicate are limited to
            rows they created, or to nothing.
        """
        try:
            operation = DataOperation.parse(operation)
            model = query.column_descriptions[0].get("entity") if query.column_descriptions else None
            if model is None:
                logger.warning("Cannot filter query without an entity", user_id=user_id)
                return query.where(false())

            descriptor = self.registry.for_model(model)
            resource_type = descriptor.resource_type if descriptor else None
            scope = await self.get_user_data_scope(user_id, resource_type)

            if not scope.has_access:
                return query.where(false())
            if scope.can_access_all_data:
                return query
            return query.where(self.registry.predicate(model, scope, user_id, operation))

        except Exception as e:
            logger.error(
                "Error filtering query by data permissions",
                user_id=user_id,
                operation=str(operation),
                error=str(e),
                exc_info=True,
            )
            return query.where(false())

    # =========================================================================
    # Masking
    # =========================================================================

    def apply_data_masking(self, entity: T, viewer_role: UserRole | str | None) -> T:
        """Return a copy of an entity masked for a viewer role."""
        if isinstance(viewer_role, str) and not isinstance(viewer_role, UserRole):
            try:
                viewer_role = UserRole(viewer_role.strip().lower())
            except ValueError:
                viewer_role = None
        return DataMaskingService.mask(entity, viewer_role)

    async def apply_batch_data_masking(self, entities: Iterable[T], user_id: str) -> list[T]:
        """Mask entities for the given viewer.

        An unknown or inactive viewer gets the most restrictive masking.
        """
        viewer_role = None
        try:
            async with self.session_factory() as session:
                viewer = await UserRepository(session).get_by_id(user_id)
            if viewer is not None and viewer.is_active:
                viewer_role = viewer.role
        except Exception as e:
            logger.error(
                "Error loading viewer for masking",
                user_id=user_id,
                error=str(e),
                exc_info=True,
            )
        return [DataMaskingService.mask(entity, viewer_role) for entity in entities]

    # =========================================================================
    # Temporary permissions and delegation
    # =========================================================================

    async def grant_temporary_permission(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        operation: DataOperation | str,
        expires_at: datetime,
        granted_by: str | None = None,
    ) -> PermissionChangeResult:
        """Grant a time-limited permission on one resource."""
        parsed = _parse_write_operation(operation, user_id=user_id, resource_type=resource_type)
        if parsed is None:
            return PermissionChangeResult.failed("invalid_operation")
        operation = parsed
        resource_type = self.registry.canonical_name(resource_type)
        expires_at = ensure_utc(expires_at)
        now = self.clock()

        if expires_at <= now:
            return PermissionChangeResult.failed("expiry_in_past")

        try:
            async with self.session_factory() as session:
                if await UserRepository(session).get_by_id(user_id) is None:
                    return PermissionChangeResult.failed("user_not_found")

                permission = await TemporaryPermissionRepository(session).create(
                    TemporaryPermission(
                        user_id=user_id,
                        resource_type=resource_type,
                        resource_id=resource_id,
                        operation=operation,
                        expires_at=expires_at,
                        granted_by=granted_by,
                        created_at=now,
                        updated_at=now,
                    )
                )
                await session.commit()

            logger.info(
                "Temporary permission granted",
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=operation.value,
                expires_at=expires_at.isoformat(),
                granted_by=granted_by,
            )
            return PermissionChangeResult.ok(permission.id)

        except Exception as e:
            logger.error(
                "Error granting temporary permission",
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=operation.value,
                error=str(e),
                exc_info=True,
            )
            return PermissionChangeResult.failed("error")
        finally:
            self.cache.invalidate_user(user_id)

    async def revoke_temporary_permission(
        self,
        user_id: str,
        resource_type: str,
        resource_id: str,
        operation: DataOperation | str,
    ) -> PermissionChangeResult:
        """Deactivate every matching temporary permission.

        Revoking when nothing matches succeeds with ``affected == 0``.
        """
        parsed = _parse_write_operation(operation, user_id=user_id, resource_type=resource_type)
        if parsed is None:
            return PermissionChangeResult.failed("invalid_operation")
        operation = parsed
        resource_type = self.registry.canonical_name(resource_type)
        try:
            async with self.session_factory() as session:
                affected = await TemporaryPermissionRepository(session).deactivate_matching(
                    user_id, resource_type, resource_id, operation, self.clock()
                )
                await session.commit()

            logger.info(
                "Temporary permission revoked",
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=operation.value,
                affected=affected,
            )
            return PermissionChangeResult.ok(affected=affected)

        except Exception as e:
            logger.error(
                "Error revoking temporary permission",
                user_id=user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=operation.value,
                error=str(e),
                exc_info=True,
            )
            return PermissionChangeResult.failed("error")
        finally:
            self.cache.invalidate_user(user_id)

    async def delegate_permission(
        self,
        from_user_id: str,
        to_user_id: str,
        resource_type: str,
        resource_id: str | None,
        operation: DataOperation | str,
        expires_at: datetime,
    ) -> PermissionChangeResult:
        """Delegate a permission the delegator currently holds.

        The delegator's access is checked at call time. On success a
        delegated allow rule for the delegate is created, effective until
        ``expires_at``.
        """
        parsed = _parse_write_operation(
            operation, from_user_id=from_user_id, to_user_id=to_user_id, resource_type=resource_type
        )
        if parsed is None:
            return PermissionChangeResult.failed("invalid_operation")
        operation = parsed
        resource_type = self.registry.canonical_name(resource_type)
        expires_at = ensure_utc(expires_at)
        now = self.clock()

        if from_user_id == to_user_id:
            return PermissionChangeResult.failed("self_delegation")
        if expires_at <= now:
            return PermissionChangeResult.failed("expiry_in_past")

        if not await self.can_access_resource(from_user_id, resource_type, resource_id, operation):
            logger.warning(
                "Delegation refused: delegator does not hold the permission",
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=operation.value,
            )
            return PermissionChangeResult.failed("not_held")

        try:
            async with self.session_factory() as session:
                delegate = await UserRepository(session).get_by_id(to_user_id)
                if delegate is None or not delegate.is_active:
                    return PermissionChangeResult.failed("user_not_found")

                rule = await PermissionRuleRepository(session).create(
                    PermissionRule(
                        user_id=to_user_id,
                        resource_type=resource_type,
                        resource_id=resource_id,
                        operation=operation,
                        is_allowed=True,
                        effective_from=now,
                        effective_to=expires_at,
                        source=PermissionSource.DELEGATED,
                        granted_by=from_user_id,
                        remarks=f"Delegated by {from_user_id}",
                        created_at=now,
                        updated_at=now,
                    )
                )
                await session.commit()

            logger.info(
                "Permission delegated",
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                resource_type=resource_type,
                resource_id=resource_id,
                operation=operation.value,
                expires_at=expires_at.isoformat(),
                rule_id=rule.id,
            )
            return PermissionChangeResult.ok(rule.id)

        except Exception as e:
            logger.error(
                "Error delegating permission",
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                resource_type=resource_type,
                error=str(e),
                exc_info=True,
            )
            return PermissionChangeResult.failed("error")
        finally:
            self.cache.invalidate_user(to_user_id)

    # =========================================================================
    # Rule administration
    # =========================================================================

    async def create_rule(
        self,
        user_id: str,
        resource_type: str,
        operation: DataOperation | str,
        *,
        is_allowed: bool = True,
        resource_id: str | None = None,
        priority: int = 0,
        effective_from: datetime | None = None,
        effective_to: datetime | None = None,
        conditions: Mapping[str, Any] | str | None = None,
        granted_by: str | None = None,
        remarks: str | None = None,
    ) -> PermissionChangeResult:
        """Create a direct permission rule.

        Raises:
            ConditionSyntaxError: If ``conditions`` is malformed.
            ValueError: If the rule itself is invalid (empty IDs, unknown
                operation, inverted window).
        """
        now = self.clock()
        rule = PermissionRule(
            user_id=user_id,
            resource_type=self.registry.canonical_name(resource_type),
            operation=operation,
            is_allowed=is_allowed,
            resource_id=resource_id,
            priority=priority,
            effective_from=ensure_utc(effective_from),
            effective_to=ensure_utc(effective_to),
            conditions=_validated_conditions(conditions),
            source=PermissionSource.DIRECT,
            granted_by=granted_by,
            remarks=remarks,
            created_at=now,
            updated_at=now,
        )

        try:
            async with self.session_factory() as session:
                rule = await PermissionRuleRepository(session).create(rule)
                await session.commit()

            logger.info(
                "Permission rule created",
                rule_id=rule.id,
                user_id=user_id,
                resource_type=rule.resource_type,
                resource_id=resource_id,
                operation=rule.operation.value,
                is_allowed=is_allowed,
                priority=priority,
            )
            return PermissionChangeResult.ok(rule.id)

        except Exception as e:
            logger.error(
                "Error creating permission rule",
                user_id=user_id,
                resource_type=resource_type,
                error=str(e),
                exc_info=True,
            )
            return PermissionChangeResult.failed("error")
        finally:
            self.cache.invalidate_user(user_id)

    async def update_rule(self, rule_id: str, **changes: Any) -> PermissionChangeResult:
        """Change fields of an existing rule.

        Args:
            rule_id: Rule to change.
            **changes: New values for any of ``UPDATABLE_RULE_FIELDS``.

        Raises:
            RuleNotFoundError: If no rule has this ID.
            ConditionSyntaxError: If new conditions are malformed.
            ValueError: If a field cannot be updated or the result is invalid.
        """
        unknown = set(changes) - UPDATABLE_RULE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update rule fields: {', '.join(sorted(unknown))}")

        if "conditions" in changes:
            changes["conditions"] = _validated_conditions(changes["conditions"])
        if "resource_type" in changes:
            changes["resource_type"] = self.registry.canonical_name(changes["resource_type"])
        for name in ("effective_from", "effective_to"):
            if name in changes:
                changes[name] = ensure_utc(changes[name])

        async with self.session_factory() as session:
            repo = PermissionRuleRepository(session)
            existing = await repo.get_by_id(rule_id)
            if existing is None:
                raise RuleNotFoundError(rule_id)

            updated = replace(existing, **changes, updated_at=self.clock())
            try:
                await repo.update(updated)
                await session.commit()
            except Exception as e:
                logger.error(
                    "Error updating permission rule",
                    rule_id=rule_id,
                    error=str(e),
                    exc_info=True,
                )
                return PermissionChangeResult.failed("error")
            finally:
                self.cache.invalidate_user(existing.user_id)

        logger.info("Permission rule updated", rule_id=rule_id, fields=sorted(changes))
        return PermissionChangeResult.ok(rule_id)

    async def deactivate_rule(self, rule_id: str) -> PermissionChangeResult:
        """Revoke a rule by clearing its active flag.

        Raises:
            RuleNotFoundError: If no rule has this ID.
        """
        async with self.session_factory() as session:
            repo = PermissionRuleRepository(session)
            existing = await repo.get_by_id(rule_id)
            if existing is None:
                raise RuleNotFoundError(rule_id)

            try:
                await repo.deactivate(rule_id, self.clock())
                await session.commit()
            except Exception as e:
                logger.error(
                    "Error deactivating permission rule",
                    rule_id=rule_id,
                    error=str(e),
                    exc_info=True,
                )
                return PermissionChangeResult.failed("error")
            finally:
                self.cache.invalidate_user(existing.user_id)

        logger.info("Permission rule deactivated", rule_id=rule_id, user_id=existing.user_id)
        return PermissionChangeResult.ok(rule_id)

    # =========================================================================
    # Cache and statistics
    # =========================================================================

    def clear_user_permission_cache(self, user_id: str) -> int:
        """Drop every cached scope, rule list and decision for a user.

        Returns:
            Number of cache entries removed.
        """
        removed = self.cache.invalidate_user(user_id)
        logger.debug("Cleared permission cache", user_id=user_id, removed=removed)
        return removed

    async def warmup_user_permission_cache(self, user_id: str) -> bool:
        """Preload scopes and rule lists for the configured resource types."""
        try:
            for resource_type in self.settings.warmup_resource_types:
                await self.get_user_data_scope(user_id, resource_type)
                await self.get_user_permission_rules(user_id, resource_type)
            logger.debug("Warmed up permission cache", user_id=user_id)
            return True
        except Exception as e:
            logger.error(
                "Error warming up permission cache",
                user_id=user_id,
                error=str(e),
                exc_info=True,
            )
            return False

    async def get_permission_statistics(self) -> PermissionStatistics:
        """Snapshot the counters together with current store counts."""
        active_rules = 0
        active_temporary = 0
        try:
            now = self.clock()
            async with self.session_factory() as session:
                active_rules = await PermissionRuleRepository(session).count_active(now)
                active_temporary = await TemporaryPermissionRepository(session).count_active(now)
        except Exception as e:
            logger.error("Error getting permission statistics", error=str(e), exc_info=True)
        return self.statistics.snapshot(active_rules, active_temporary)
