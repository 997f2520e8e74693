"""Domain services for datagate.

Services contain the permission engine: rule evaluation, scope resolution,
caching, filtering, masking and statistics.
"""

from datagate.domain.services.data_masking_service import DataMaskingService
from datagate.domain.services.data_permission_service import DataPermissionService
from datagate.domain.services.permission_cache import (
    CacheKeys,
    CacheStore,
    MemoryCacheStore,
    PermissionCache,
)
from datagate.domain.services.permission_errors import (
    DataPermissionError,
    RuleNotFoundError,
    UnknownResourceTypeError,
)
from datagate.domain.services.permission_statistics import PermissionStatisticsCollector
from datagate.domain.services.resource_filters import (
    create_default_registry,
    register_default_resources,
)
from datagate.domain.services.resource_registry import (
    ResourceDescriptor,
    ResourceRegistry,
)
from datagate.domain.services.role_permissions import (
    ROLE_DEFAULT_PERMISSIONS,
    default_scope,
    role_allows,
)
from datagate.domain.services.rule_evaluator import (
    AccessDecision,
    DecisionStage,
    RuleEvaluator,
)
from datagate.domain.services.scope_resolver import ScopeResolver

__all__ = [
    "AccessDecision",
    "CacheKeys",
    "CacheStore",
    "DataMaskingService",
    "DataPermissionError",
    "DataPermissionService",
    "DecisionStage",
    "MemoryCacheStore",
    "PermissionCache",
    "PermissionStatisticsCollector",
    "ROLE_DEFAULT_PERMISSIONS",
    "ResourceDescriptor",
    "ResourceRegistry",
    "RuleEvaluator",
    "RuleNotFoundError",
    "ScopeResolver",
    "UnknownResourceTypeError",
    "create_default_registry",
    "default_scope",
    "role_allows",
]
