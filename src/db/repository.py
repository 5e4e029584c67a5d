"""Repository pattern implementation for episode workflow persistence.

Provides an abstract interface and SQLAlchemy implementation for the
`autoworkflow` table. Supports both SQLite (local development and tests)
and PostgreSQL (Supabase production).
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from sqlalchemy import create_engine, select, update
from sqlalchemy.orm import Session, sessionmaker

from .models import AutoWorkflow, Base

logger = logging.getLogger(__name__)

# Columns owned by the store; never written through update_workflow.
_IMMUTABLE_COLUMNS = frozenset({"id", "created_at"})

APPROVED_SCRIPT_STATUS = "Approved"
PENDING_STATUS = "Pending"


class WorkflowRepositoryInterface(ABC):
    """Abstract interface for episode workflow persistence.

    Implementations must support both SQLite and PostgreSQL backends.
    """

    @abstractmethod
    def create_workflow(self, episode_name: str, **kwargs) -> AutoWorkflow:
        """
        Insert a workflow row for the given episode name.

        Production rows are inserted by the automation; this exists for
        tooling and tests.

        Parameters:
            episode_name (str): Value for `episode_interview_file_name`.
            **kwargs: Additional column values.

        Returns:
            AutoWorkflow: The persisted row.
        """
        pass

    @abstractmethod
    def get_workflow(self, workflow_id: str) -> Optional[AutoWorkflow]:
        """
        Retrieve a workflow row by its identifier.

        Returns:
            AutoWorkflow if a row with the given ID exists, `None` otherwise.
        """
        pass

    @abstractmethod
    def find_by_episode_name(self, episode_name: str) -> List[AutoWorkflow]:
        """
        Return every row for an episode name, most recent first.

        Rows without `created_at` sort last.
        """
        pass

    @abstractmethod
    def get_latest_by_episode_name(self, episode_name: str) -> Optional[AutoWorkflow]:
        """Return the most recent row for an episode name, or `None`."""
        pass

    @abstractmethod
    def list_workflows(self, limit: Optional[int] = None) -> List[AutoWorkflow]:
        """
        List workflow rows ordered by creation time, newest first.

        Parameters:
            limit (Optional[int]): Maximum number of rows to return; if None, no limit is applied.
        """
        pass

    @abstractmethod
    def update_workflow(self, workflow_id: str, **kwargs) -> Optional[AutoWorkflow]:
        """
        Write a partial set of columns on one row in a single transaction.

        Parameters:
            workflow_id (str): Primary key of the row to update.
            **kwargs: Column names and their new values.

        Returns:
            Optional[AutoWorkflow]: The refreshed row, or `None` if no row with `workflow_id` exists.
        """
        pass

    @abstractmethod
    def approve_scripts(self, workflow_id: str) -> Optional[AutoWorkflow]:
        """
        Mark scripts approved and queue the downstream stages.

        Sets `episode_interview_script_status` to Approved and both
        `episode_text_files_status` and `podcast_status` to Pending in one
        UPDATE statement, so the three fields change together or not at all.

        Returns:
            Optional[AutoWorkflow]: The refreshed row, or `None` if no row with `workflow_id` exists.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Dispose the engine and release pooled connections."""
        pass


class SQLAlchemyWorkflowRepository(WorkflowRepositoryInterface):
    """SQLAlchemy-based implementation of the workflow repository.

    Supports SQLite for local development and PostgreSQL for production.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_pre_ping: bool = True,
        echo: bool = False,
        create_tables: bool = False,
    ):
        """
        Initialize the repository and configure its SQLAlchemy engine and session factory.

        Parameters:
            database_url (str): SQLAlchemy-compatible database URL.
            pool_size (int): Connection pool size for non-SQLite databases.
            max_overflow (int): Maximum overflow connections for non-SQLite databases.
            pool_pre_ping (bool): Test pooled connections before use on non-SQLite databases.
            echo (bool): If true, enable SQLAlchemy SQL statement logging.
            create_tables (bool): If true, create the ORM tables when missing. Production schemas are managed by Alembic.
        """
        self.database_url = database_url

        # SQLite doesn't support connection pooling
        if database_url.startswith("sqlite"):
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=pool_pre_ping,
                echo=echo,
            )

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        if create_tables:
            Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized: {database_url.split('@')[-1] if '@' in database_url else database_url}")

    def _get_session(self) -> Session:
        return self.SessionLocal()

    @staticmethod
    def _writable_fields(kwargs: dict) -> dict:
        fields = {}
        for key, value in kwargs.items():
            if key in _IMMUTABLE_COLUMNS:
                logger.warning(f"Ignoring write to store-owned column {key}")
            elif key not in AutoWorkflow.__table__.columns:
                logger.warning(f"Ignoring unknown workflow column {key}")
            else:
                fields[key] = value
        return fields

    def _latest_first(self, stmt):
        return stmt.order_by(
            AutoWorkflow.created_at.desc().nulls_last(), AutoWorkflow.id.desc()
        )

    def create_workflow(self, episode_name: str, **kwargs) -> AutoWorkflow:
        with self._get_session() as session:
            workflow = AutoWorkflow(episode_interview_file_name=episode_name, **kwargs)
            session.add(workflow)
            session.commit()
            session.refresh(workflow)
            logger.info(f"Created workflow row for {episode_name} ({workflow.id})")
            return workflow

    def get_workflow(self, workflow_id: str) -> Optional[AutoWorkflow]:
        with self._get_session() as session:
            return session.get(AutoWorkflow, workflow_id)

    def find_by_episode_name(self, episode_name: str) -> List[AutoWorkflow]:
        with self._get_session() as session:
            stmt = select(AutoWorkflow).where(
                AutoWorkflow.episode_interview_file_name == episode_name
            )
            return list(session.scalars(self._latest_first(stmt)).all())

    def get_latest_by_episode_name(self, episode_name: str) -> Optional[AutoWorkflow]:
        with self._get_session() as session:
            stmt = select(AutoWorkflow).where(
                AutoWorkflow.episode_interview_file_name == episode_name
            )
            return session.scalars(self._latest_first(stmt).limit(1)).first()

    def list_workflows(self, limit: Optional[int] = None) -> List[AutoWorkflow]:
        with self._get_session() as session:
            stmt = self._latest_first(select(AutoWorkflow))
            if limit:
                stmt = stmt.limit(limit)
            return list(session.scalars(stmt).all())

    def update_workflow(self, workflow_id: str, **kwargs: Any) -> Optional[AutoWorkflow]:
        fields = self._writable_fields(kwargs)
        with self._get_session() as session:
            workflow = session.get(AutoWorkflow, workflow_id)
            if workflow is None:
                return None
            for key, value in fields.items():
                setattr(workflow, key, value)
            session.commit()
            session.refresh(workflow)
            logger.debug(f"Updated workflow {workflow_id}: {list(fields)}")
            return workflow

    def approve_scripts(self, workflow_id: str) -> Optional[AutoWorkflow]:
        with self._get_session() as session:
            with session.begin():
                result = session.execute(
                    update(AutoWorkflow)
                    .where(AutoWorkflow.id == workflow_id)
                    .values(
                        episode_interview_script_status=APPROVED_SCRIPT_STATUS,
                        episode_text_files_status=PENDING_STATUS,
                        podcast_status=PENDING_STATUS,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    return None
            workflow = session.get(AutoWorkflow, workflow_id)
            logger.info(f"Approved scripts for workflow {workflow_id}")
            return workflow

    def close(self) -> None:
        """
        Dispose the SQLAlchemy engine and release database connections and resources.
        """
        self.engine.dispose()
        logger.info("Database connection closed")
