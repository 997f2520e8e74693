"""Registry of resource types known to the permission engine.

Each resource type tag maps to a descriptor naming its model, the entity
classes that represent it in memory, its owner column and the predicate
used to filter queries. Lookups are case-insensitive on the tag.

Types that are not registered fall back to an owner-only predicate when
their model has a ``created_by`` column, and to denying everything
otherwise.
"""

from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy import false
from sqlalchemy.sql.elements import ColumnElement

from datagate.core.logging import get_logger
from datagate.domain.entities.permission import DataOperation
from datagate.domain.entities.permission_scope import PermissionScope
from datagate.domain.services.permission_errors import UnknownResourceTypeError

logger = get_logger(__name__)

PredicateBuilder = Callable[[type, PermissionScope, str, DataOperation], ColumnElement[bool]]


@dataclass(frozen=True)
class ResourceDescriptor:
    """How one resource type is stored, owned and filtered.

    Attributes:
        resource_type: Canonical tag, e.g. "Posts".
        model: SQLAlchemy model class, if the type is stored.
        entity_types: In-memory classes that represent the type.
        owner_attribute: Owner column on the model and attribute on entities.
        predicate: Builds the query filter for a scope and operation.
    """

    resource_type: str
    model: type | None = None
    entity_types: tuple[type, ...] = field(default_factory=tuple)
    owner_attribute: str | None = "created_by"
    predicate: PredicateBuilder | None = None


def owner_only_predicate(
    model: type, scope: PermissionScope, user_id: str, operation: DataOperation
) -> ColumnElement[bool]:
    """Generic fallback: rows created by the user, or nothing."""
    owner_column = getattr(model, "created_by", None)
    if owner_column is None:
        return false()
    return owner_column == user_id


class ResourceRegistry:
    """Maps resource type tags to descriptors.

    Example:
        registry = ResourceRegistry()
        registry.register(ResourceDescriptor("Posts", model=PostModel,
                                             entity_types=(Post,),
                                             predicate=post_predicate))
        registry.resource_type_of(Post(id="p1", created_by="u1"))  # "Posts"
    """

    def __init__(self) -> None:
        self._descriptors: dict[str, ResourceDescriptor] = {}

    def register(self, descriptor: ResourceDescriptor) -> None:
        """Register (or replace) a resource type."""
        key = descriptor.resource_type.lower()
        if key in self._descriptors:
            logger.debug("Replacing resource descriptor", resource_type=descriptor.resource_type)
        self._descriptors[key] = descriptor

    def unregister(self, resource_type: str) -> bool:
        return self._descriptors.pop(resource_type.lower(), None) is not None

    def get(self, resource_type: str) -> ResourceDescriptor | None:
        return self._descriptors.get(resource_type.lower())

    def require(self, resource_type: str) -> ResourceDescriptor:
        """Get a descriptor or raise.

        Raises:
            UnknownResourceTypeError: If the type is not registered.
        """
        descriptor = self.get(resource_type)
        if descriptor is None:
            raise UnknownResourceTypeError(resource_type)
        return descriptor

    def canonical_name(self, resource_type: str) -> str:
        """Return the registered spelling of a tag, or the tag itself."""
        descriptor = self.get(resource_type)
        return descriptor.resource_type if descriptor else resource_type

    def for_model(self, model: type) -> ResourceDescriptor | None:
        for descriptor in self._descriptors.values():
            if descriptor.model is model:
                return descriptor
        return None

    def resource_type_of(self, entity: Any) -> str | None:
        """Find the resource type tag of an in-memory entity or model row."""
        for descriptor in self._descriptors.values():
            if descriptor.entity_types and isinstance(entity, descriptor.entity_types):
                return descriptor.resource_type
            if descriptor.model is not None and isinstance(entity, descriptor.model):
                return descriptor.resource_type
        return None

    def predicate(
        self,
        model: type,
        scope: PermissionScope,
        user_id: str,
        operation: DataOperation,
    ) -> ColumnElement[bool]:
        """Build the filter for a model, falling back to owner-only."""
        descriptor = self.for_model(model)
        if descriptor is not None and descriptor.predicate is not None:
            return descriptor.predicate(model, scope, user_id, operation)
        return owner_only_predicate(model, scope, user_id, operation)

    @property
    def resource_types(self) -> list[str]:
        return [descriptor.resource_type for descriptor in self._descriptors.values()]

    def __contains__(self, resource_type: object) -> bool:
        return isinstance(resource_type, str) and resource_type.lower() in self._descriptors
