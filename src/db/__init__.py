"""Database module for episode workflow persistence.

Provides:
- SQLAlchemy ORM model (AutoWorkflow)
- Repository interface and implementation
- Factory function for creating repositories
- Row change notifications
"""

from .changes import ChangeEvent, ChangeFeed, PostgresChangeListener, Subscription
from .factory import (
    create_repository,
    create_repository_from_config,
    get_database_url_from_config,
)
from .models import AutoWorkflow, Base
from .repository import SQLAlchemyWorkflowRepository, WorkflowRepositoryInterface

__all__ = [
    "Base",
    "AutoWorkflow",
    "WorkflowRepositoryInterface",
    "SQLAlchemyWorkflowRepository",
    "create_repository",
    "create_repository_from_config",
    "get_database_url_from_config",
    "ChangeEvent",
    "ChangeFeed",
    "PostgresChangeListener",
    "Subscription",
]
