"""Per-episode live session and the dashboard coordinator that owns it.

An `EpisodeSession` keeps one episode's view current from three sources: a
poll task on a fixed interval and the INSERT and UPDATE change channels.
Stopping the session cancels the poll task and drops both subscriptions;
`DashboardCoordinator` stops the previous session before starting the next
one whenever the selection changes.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from src.db.changes import INSERT, UPDATE, ChangeEvent, ChangeFeed, Subscription
from src.db.repository import WorkflowRepositoryInterface
from src.errors import EpisodeNotFoundError
from src.services.automation_client import AutomationClient
from src.services.storage_client import StorageClient
from src.workflow.actions import EpisodeActions
from src.workflow.config import StudioConfig
from src.workflow.notices import Notice, NoticeLog, error_notice
from src.workflow.presentation import render
from src.workflow.reconciler import POLL, EpisodeView, StatusReconciler
from src.workflow.submission import (
    EpisodeSubmissionFlow,
    SubmissionManager,
    SubmissionOutcome,
    UploadedFile,
    validate_submission,
)

logger = logging.getLogger(__name__)


class EpisodeSession:
    """Live view of one selected episode.

    Usable as an async context manager; `stop` runs on every exit path.
    """

    def __init__(
        self,
        episode_name: str,
        repository: WorkflowRepositoryInterface,
        feed: ChangeFeed,
        config: StudioConfig,
        snapshot: Optional[Dict[str, Any]] = None,
    ):
        self.episode_name = episode_name
        self.repository = repository
        self.feed = feed
        self.config = config
        self.reconciler = StatusReconciler(episode_name)
        self.notices = NoticeLog(config.max_notices)
        self._snapshot = snapshot
        self._poll_task: Optional[asyncio.Task] = None
        self._subscriptions: List[Subscription] = []

    @property
    def active(self) -> bool:
        return self._poll_task is not None

    async def start(self) -> "EpisodeSession":
        if self.active:
            return self
        self.reconciler.apply_snapshot(self._snapshot)
        self._subscriptions = [
            self.feed.subscribe(INSERT, self._on_change),
            self.feed.subscribe(UPDATE, self._on_change),
        ]
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"poll-{self.episode_name}"
        )
        logger.info(f"Started session for {self.episode_name!r}")
        return self

    async def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.info(f"Stopped session for {self.episode_name!r}")

    async def __aenter__(self) -> "EpisodeSession":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _on_change(self, event: ChangeEvent) -> None:
        if event.episode_name == self.episode_name:
            self.reconciler.apply_row(event.record, event.type.lower())

    async def poll_once(self) -> bool:
        """Point-query the store and apply the result. Returns False when the read failed."""
        try:
            row = await asyncio.to_thread(
                self.repository.get_latest_by_episode_name, self.episode_name
            )
        except SQLAlchemyError as e:
            logger.warning(f"Status poll for {self.episode_name!r} failed: {e}")
            return False
        if row is not None:
            self.reconciler.apply_row(row.to_dict(), POLL)
        return True

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.poll_interval_seconds)
            await self.poll_once()

    async def refresh(self) -> Notice:
        """Manual refresh requested by the user."""
        if await self.poll_once():
            notice = Notice(
                title="Status refreshed",
                description="The status information has been updated.",
            )
        else:
            notice = error_notice("Failed to refresh status information.", title="Refresh failed")
        self.notices(notice)
        return notice

    def view(self) -> EpisodeView:
        return self.reconciler.view()

    def render(self) -> Dict[str, Any]:
        payload = render(self.view())
        payload["notices"] = self.notices.to_list()
        return payload


class DashboardCoordinator:
    """Owns the selected episode's session, submissions and refresh wiring.

    Components that show the episode list register with
    `add_refresh_listener`; submissions call every listener on each poll tick.
    """

    def __init__(
        self,
        repository: WorkflowRepositoryInterface,
        automation: AutomationClient,
        storage: Optional[StorageClient],
        feed: ChangeFeed,
        config: StudioConfig,
    ):
        self.repository = repository
        self.automation = automation
        self.storage = storage
        self.feed = feed
        self.config = config
        self.session: Optional[EpisodeSession] = None
        self.submissions = SubmissionManager()
        self._refresh_listeners: List[Callable[[], None]] = []
        self._selection_lock = asyncio.Lock()

    def add_refresh_listener(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a list-refresh callback; returns a function that removes it."""
        self._refresh_listeners.append(callback)

        def remove():
            if callback in self._refresh_listeners:
                self._refresh_listeners.remove(callback)

        return remove

    def notify_refresh(self) -> None:
        for callback in list(self._refresh_listeners):
            try:
                callback()
            except Exception:
                logger.exception("Refresh listener failed")

    async def _fetch_snapshot(self, episode_name: str) -> Optional[Dict[str, Any]]:
        try:
            row = await asyncio.to_thread(self.repository.get_latest_by_episode_name, episode_name)
        except SQLAlchemyError as e:
            logger.error(f"Snapshot read for {episode_name!r} failed: {e}")
            return None
        return row.to_dict() if row else None

    async def select(
        self, episode_name: str, snapshot: Optional[Dict[str, Any]] = None
    ) -> EpisodeSession:
        """Make `episode_name` the selected episode, replacing any other session."""
        async with self._selection_lock:
            if self.session is not None and self.session.episode_name == episode_name:
                if snapshot:
                    self.session.reconciler.apply_snapshot(snapshot)
                return self.session

            await self._stop_current()
            if snapshot is None:
                snapshot = await self._fetch_snapshot(episode_name)
            session = EpisodeSession(
                episode_name, self.repository, self.feed, self.config, snapshot=snapshot
            )
            await session.start()
            self.session = session
            return session

    async def deselect(self) -> None:
        async with self._selection_lock:
            await self._stop_current()

    async def _stop_current(self) -> None:
        session, self.session = self.session, None
        if session is not None:
            await session.stop()

    def current(self, episode_name: Optional[str] = None) -> EpisodeSession:
        """
        Return the selected session, optionally requiring a specific episode.

        Raises:
            EpisodeNotFoundError: Nothing is selected, or a different episode is.
        """
        if self.session is None:
            raise EpisodeNotFoundError(episode_name)
        if episode_name is not None and self.session.episode_name != episode_name:
            raise EpisodeNotFoundError(episode_name)
        return self.session

    def actions(self, session: Optional[EpisodeSession] = None) -> EpisodeActions:
        session = session or self.current()
        return EpisodeActions(
            repository=self.repository,
            automation=self.automation,
            storage=self.storage,
            reconciler=session.reconciler,
            notify=session.notices,
            audio_timeout=self.config.audio_trigger_timeout_seconds,
        )

    async def submit(
        self, episode_name: str, upload: UploadedFile
    ) -> Tuple["asyncio.Task[SubmissionOutcome]", bool]:
        """
        Validate a submission, select its episode and start (or join) its flow.

        A joined flow is rebound to the selected session. Returns once the
        flow has checked for an existing row, so a flow that resolved from
        one is already done.

        Raises:
            ValidationError: The form input is invalid; nothing was started.
        """
        name = validate_submission(episode_name, upload)
        session = await self.select(name)

        running = self.submissions.flow(name)
        if running is not None:
            running.bind(session.reconciler, session.notices)

        def flow_factory() -> EpisodeSubmissionFlow:
            return EpisodeSubmissionFlow(
                repository=self.repository,
                automation=self.automation,
                feed=self.feed,
                config=self.config,
                reconciler=session.reconciler,
                notify=session.notices,
                on_refresh=self.notify_refresh,
            )

        task, started = self.submissions.start(name, upload, flow_factory)
        flow = self.submissions.flow(name)
        if flow is not None:
            checked = asyncio.ensure_future(flow.wait_checked())
            await asyncio.wait({task, checked}, return_when=asyncio.FIRST_COMPLETED)
            checked.cancel()
            await asyncio.gather(checked, return_exceptions=True)
        return task, started

    async def list_episodes(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        rows = await asyncio.to_thread(
            self.repository.list_workflows, limit or self.config.recent_episodes_limit
        )
        return [row.to_dict() for row in rows]

    async def close(self) -> None:
        await self.submissions.cancel_all()
        await self.deselect()
