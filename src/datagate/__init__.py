"""datagate - data permission engine for a blog platform.

Decides whether a user may perform an operation on a resource, filters
collections and queries down to what a user may see, and masks fields
according to the viewer's role.
"""

__version__ = "0.1.0"

from datagate.domain.services.data_permission_service import DataPermissionService

__all__ = ["DataPermissionService", "__version__"]
