"""Unit tests for RuleEvaluator with mocked repositories."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from datagate.core.config import Settings
from datagate.domain.entities import (
    Account,
    DataOperation,
    PermissionRule,
    Post,
    TemporaryPermission,
    UserRole,
)
from datagate.domain.services.resource_filters import create_default_registry
from datagate.domain.services.rule_evaluator import DecisionStage, RuleEvaluator

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _rule(**kwargs) -> PermissionRule:
    defaults = {"user_id": "u1", "resource_type": "Posts", "operation": DataOperation.READ}
    defaults.update(kwargs)
    return PermissionRule(**defaults)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        environment="testing",
        access_cache_ttl_seconds=900,
        temporary_access_cache_ttl_seconds=300,
    )


@pytest.fixture
def evaluator(settings):
    """Create an evaluator whose repositories are mocks."""
    evaluator = RuleEvaluator(
        MagicMock(), create_default_registry(), settings=settings, clock=lambda: NOW
    )
    evaluator.user_repo = MagicMock()
    evaluator.user_repo.get_by_id = AsyncMock(
        return_value=Account(id="u1", username="u1", role=UserRole.USER)
    )
    evaluator.temporary_repo = MagicMock()
    evaluator.temporary_repo.find_active = AsyncMock(return_value=[])
    evaluator.rule_repo = MagicMock()
    evaluator.rule_repo.find_effective_rules = AsyncMock(return_value=[])
    evaluator.rule_repo.next_activation = AsyncMock(return_value=None)
    evaluator.entity_repo = MagicMock()
    evaluator.entity_repo.get = AsyncMock(return_value=None)
    return evaluator


class TestRuleEvaluator:
    """Tests for RuleEvaluator.evaluate."""

    @pytest.mark.asyncio
    async def test_missing_user_denied_and_not_cacheable(self, evaluator):
        """A user that does not exist is denied with no cache lifetime."""
        evaluator.user_repo.get_by_id.return_value = None

        decision = await evaluator.evaluate("ghost", "Posts", "p1", DataOperation.READ)

        assert not decision
        assert decision.stage == DecisionStage.USER
        assert decision.ttl_seconds == 0.0
        evaluator.rule_repo.find_effective_rules.assert_not_called()

    @pytest.mark.asyncio
    async def test_inactive_user_denied_even_with_rules(self, evaluator):
        """Inactive users are denied before rules are consulted."""
        evaluator.user_repo.get_by_id.return_value = Account(
            id="u1", username="u1", role=UserRole.ADMIN, is_active=False
        )
        evaluator.rule_repo.find_effective_rules.return_value = [_rule()]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.READ)

        assert decision.allowed is False
        assert decision.stage == DecisionStage.USER

    @pytest.mark.asyncio
    async def test_admin_short_circuits(self, evaluator):
        """Admins are allowed without consulting deny rules."""
        evaluator.user_repo.get_by_id.return_value = Account(
            id="u1", username="u1", role=UserRole.SUPER_ADMIN
        )
        evaluator.rule_repo.find_effective_rules.return_value = [_rule(is_allowed=False)]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.DELETE)

        assert decision.allowed is True
        assert decision.stage == DecisionStage.ADMIN
        assert decision.ttl_seconds == 900.0

    @pytest.mark.asyncio
    async def test_temporary_permission_ttl_capped_at_expiry(self, evaluator):
        """A temporary grant is cached no longer than it lives."""
        evaluator.temporary_repo.find_active.return_value = [
            TemporaryPermission(
                user_id="u1",
                resource_type="Posts",
                resource_id="p1",
                operation=DataOperation.UPDATE,
                expires_at=NOW + timedelta(seconds=60),
            )
        ]
        evaluator.rule_repo.find_effective_rules.return_value = [_rule(is_allowed=False)]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.UPDATE)

        assert decision.allowed is True
        assert decision.stage == DecisionStage.TEMPORARY
        assert decision.ttl_seconds == 60.0

    @pytest.mark.asyncio
    async def test_type_level_check_skips_temporary_permissions(self, evaluator):
        """Temporary permissions are only consulted for a concrete resource."""
        await evaluator.evaluate("u1", "Posts", None, DataOperation.READ)
        evaluator.temporary_repo.find_active.assert_not_called()

    @pytest.mark.asyncio
    async def test_first_matching_rule_decides(self, evaluator):
        """Rules are taken in the order the repository returns them."""
        deny = _rule(is_allowed=False, priority=10)
        allow = _rule(is_allowed=True, priority=1)
        evaluator.rule_repo.find_effective_rules.return_value = [deny, allow]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.READ)

        assert decision.allowed is False
        assert decision.stage == DecisionStage.RULE
        assert decision.rule_id == deny.id

    @pytest.mark.asyncio
    async def test_rule_with_failing_condition_is_skipped(self, evaluator):
        """A rule whose condition fails falls through to the next stage."""
        evaluator.rule_repo.find_effective_rules.return_value = [
            _rule(operation=DataOperation.UPDATE, conditions={"CreatedBy": "someone-else"})
        ]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.UPDATE)

        assert decision.allowed is False
        assert decision.stage == DecisionStage.ROLE_DEFAULT

    @pytest.mark.asyncio
    async def test_rule_with_unreadable_conditions_is_skipped(self, evaluator):
        """Stored conditions that are not a JSON object never match."""
        evaluator.rule_repo.find_effective_rules.return_value = [
            _rule(is_allowed=False, conditions="[1, 2]"),
        ]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.READ)

        assert decision.stage == DecisionStage.ROLE_DEFAULT
        assert decision.allowed is True

    @pytest.mark.asyncio
    async def test_rule_ttl_capped_by_effective_to(self, evaluator):
        """A decision is not cached past the deciding rule's window."""
        evaluator.rule_repo.find_effective_rules.return_value = [
            _rule(effective_to=NOW + timedelta(seconds=120))
        ]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.READ)

        assert decision.stage == DecisionStage.RULE
        assert decision.ttl_seconds == 120.0

    @pytest.mark.asyncio
    async def test_role_default_ttl_capped_by_condition_start(self, evaluator):
        """A rule that becomes satisfiable later limits the fallback's lifetime."""
        start = (NOW + timedelta(seconds=30)).isoformat()
        evaluator.rule_repo.find_effective_rules.return_value = [
            _rule(is_allowed=False, conditions={"StartDate": start})
        ]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.READ)

        assert decision.stage == DecisionStage.ROLE_DEFAULT
        assert decision.ttl_seconds == 30.0

    @pytest.mark.asyncio
    async def test_ttl_capped_by_pending_rule_activation(self, evaluator):
        """A rule that becomes effective later limits the current decision's lifetime."""
        evaluator.rule_repo.next_activation.return_value = NOW + timedelta(seconds=45)

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.READ)

        assert decision.stage == DecisionStage.ROLE_DEFAULT
        assert decision.ttl_seconds == 45.0
        evaluator.rule_repo.next_activation.assert_awaited_once_with(
            "u1", "Posts", DataOperation.READ, "p1", NOW
        )

    @pytest.mark.asyncio
    async def test_status_condition_loads_resource_once(self, evaluator):
        """Status conditions read the resource from the entity repository."""
        evaluator.entity_repo.get.return_value = Post(id="p1", created_by="u2", is_published=True)
        evaluator.rule_repo.find_effective_rules.return_value = [
            _rule(operation=DataOperation.UPDATE, conditions={"IsPublished": False}),
            _rule(operation=DataOperation.UPDATE, conditions={"IsPublished": True}),
        ]

        decision = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.UPDATE)

        assert decision.allowed is True
        assert decision.stage == DecisionStage.RULE
        evaluator.entity_repo.get.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_role_default_fallback(self, evaluator):
        """Without rules the role table decides."""
        allowed = await evaluator.evaluate("u1", "Comments", "c1", DataOperation.CREATE)
        denied = await evaluator.evaluate("u1", "Posts", "p1", DataOperation.DELETE)

        assert allowed.allowed and allowed.stage == DecisionStage.ROLE_DEFAULT
        assert not denied.allowed
        assert allowed.ttl_seconds == 900.0
