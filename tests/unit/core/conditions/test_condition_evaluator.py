"""Tests for the rule condition evaluator."""

from dataclasses import dataclass
from datetime import datetime, timezone

import pytest

from datagate.core.conditions import (
    ConditionEvaluator,
    ConditionSet,
    Condition,
    parse_conditions,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class _Resource:
    is_published: bool = False


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator(clock=lambda: NOW)


class TestConditionEvaluator:
    """Tests for ConditionEvaluator.evaluate."""

    def test_no_conditions_hold(self, evaluator):
        assert evaluator.evaluate(None, "u1", "r1") is True
        assert evaluator.evaluate(ConditionSet(), "u1", "r1") is True

    def test_owner_placeholder_matches_acting_user(self, evaluator):
        assert evaluator.evaluate({"CreatedBy": "{UserId}"}, "u1", "r1") is True

    def test_owner_literal_must_equal_acting_user(self, evaluator):
        assert evaluator.evaluate({"CreatedBy": "u1"}, "u1", "r1") is True
        assert evaluator.evaluate({"CreatedBy": "someone-else"}, "u1", "r1") is False

    def test_resource_placeholder_is_substituted(self, evaluator):
        # Only holds when the resource is the user itself
        assert evaluator.evaluate({"CreatedBy": "{ResourceId}"}, "u1", "u1") is True
        assert evaluator.evaluate({"CreatedBy": "{ResourceId}"}, "u1", "r1") is False

    def test_date_window(self, evaluator):
        inside = {"StartDate": "2026-02-01T00:00:00Z", "EndDate": "2026-04-01T00:00:00Z"}
        before = {"StartDate": "2026-03-02T00:00:00Z"}
        after = {"EndDate": "2026-02-28T00:00:00Z"}
        assert evaluator.evaluate(inside, "u1", None) is True
        assert evaluator.evaluate(before, "u1", None) is False
        assert evaluator.evaluate(after, "u1", None) is False

    def test_end_bound_is_inclusive(self, evaluator):
        assert evaluator.evaluate({"EndDate": NOW.isoformat()}, "u1", None) is True

    def test_unparsable_stored_date_fails_closed(self, evaluator):
        assert evaluator.evaluate({"EndDate": "soon"}, "u1", None) is False

    def test_unknown_key_does_not_grant_or_deny(self, evaluator):
        assert evaluator.evaluate({"Department": "sales"}, "u1", None) is True
        assert evaluator.evaluate({"Department": "sales", "CreatedBy": "other"}, "u1", None) is False

    def test_status_requires_resource(self, evaluator):
        conditions = parse_conditions({"IsPublished": True})
        assert evaluator.evaluate(conditions, "u1", "p1") is False
        assert evaluator.evaluate(conditions, "u1", "p1", _Resource(is_published=True)) is True
        assert evaluator.evaluate(conditions, "u1", "p1", _Resource(is_published=False)) is False
        assert evaluator.evaluate(conditions, "u1", "p1", {"is_published": True}) is True

    def test_all_conditions_must_hold(self, evaluator):
        payload = {"CreatedBy": "{UserId}", "EndDate": "2026-01-01T00:00:00Z"}
        assert evaluator.evaluate(payload, "u1", None) is False

    def test_invalid_payload_is_false(self, evaluator):
        assert evaluator.evaluate("{broken", "u1", None) is False

    def test_unknown_node_type_is_false(self, evaluator):
        @dataclass(frozen=True)
        class _Mystery(Condition):
            pass

        assert evaluator.evaluate(ConditionSet(conditions=(_Mystery(),)), "u1", None) is False
