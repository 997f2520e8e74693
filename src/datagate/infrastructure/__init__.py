"""Infrastructure layer - External dependencies and implementations.

This layer contains the SQLAlchemy database manager, the table models and
the repositories the permission engine reads from and writes to.
"""

from datagate.infrastructure.persistence.database import (
    Base,
    DatabaseManager,
    get_db_manager,
    init_database,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
    "init_database",
]
