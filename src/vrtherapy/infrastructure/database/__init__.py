"""
Database infrastructure components.
"""

from vrtherapy.infrastructure.database.connection import (
    Base,
    DatabaseManager,
    get_db_manager,
    get_async_session,
)
from vrtherapy.infrastructure.database.unit_of_work import (
    build_repositories,
    repositories_scope,
)

__all__ = [
    "Base",
    "DatabaseManager",
    "get_db_manager",
    "get_async_session",
    "build_repositories",
    "repositories_scope",
]
