"""Episode submission flow.

A submission first checks whether the episode already has a workflow row.
If it does, the flow resolves from that row without contacting the
automation. Otherwise it sends the PDF to the submit webhook and races
three completion signals until the wait budget runs out:

- response: the webhook's reply already contains the new row;
- poll: a point query once per poll interval finds the row;
- insert / update: a change notification for the episode arrives.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from src.db.changes import INSERT, UPDATE, ChangeEvent, ChangeFeed
from src.db.repository import WorkflowRepositoryInterface
from src.errors import TriggerError, ValidationError
from src.services.automation_client import AutomationClient
from src.workflow.config import StudioConfig
from src.workflow.notices import Notice, NoticeSink, error_notice
from src.workflow.race import FirstResolution, Resolution, race
from src.workflow.reconciler import EXISTING, POLL, RESPONSE, StatusReconciler

logger = logging.getLogger(__name__)

MIN_EPISODE_NAME_LENGTH = 3
PDF_CONTENT_TYPE = "application/pdf"


class SubmissionState(str, Enum):
    IDLE = "idle"
    CHECKING_EXISTING = "checking_existing"
    SUBMITTING = "submitting"
    RESOLVED = "resolved"
    TIMED_OUT = "timed_out"


@dataclass
class UploadedFile:
    """An uploaded file held in memory until the submission no longer needs it."""

    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def released(self) -> bool:
        return not self.content

    def release(self) -> None:
        self.content = b""


def validate_submission(episode_name: Optional[str], upload: Optional[UploadedFile]) -> str:
    """
    Check the submission form and return the trimmed episode name.

    Raises:
        ValidationError: The name is shorter than three characters or the upload is not a non-empty PDF.
    """
    name = (episode_name or "").strip()
    if len(name) < MIN_EPISODE_NAME_LENGTH:
        raise ValidationError("Episode name must be at least 3 characters.")
    if upload is None or upload.size == 0 or upload.content_type != PDF_CONTENT_TYPE:
        raise ValidationError("Please upload a valid PDF file.")
    return name


def matches_episode(row: Any, episode_name: str) -> bool:
    return isinstance(row, dict) and row.get("episode_interview_file_name") == episode_name


@dataclass
class SubmissionOutcome:
    """Final state of one submission attempt."""

    episode_name: str
    state: SubmissionState
    source: Optional[str] = None
    record: Optional[Dict[str, Any]] = None
    last_error: Optional[str] = None
    detailed_error: Optional[str] = None
    notices: List[Notice] = field(default_factory=list)

    @property
    def resolved(self) -> bool:
        return self.state == SubmissionState.RESOLVED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episode_name": self.episode_name,
            "state": self.state.value,
            "source": self.source,
            "record": self.record,
            "last_error": self.last_error,
            "detailed_error": self.detailed_error,
            "notices": [n.to_dict() for n in self.notices],
        }


class EpisodeSubmissionFlow:
    """Runs one submission attempt from Idle to Resolved or TimedOut."""

    def __init__(
        self,
        repository: WorkflowRepositoryInterface,
        automation: AutomationClient,
        feed: ChangeFeed,
        config: StudioConfig,
        reconciler: Optional[StatusReconciler] = None,
        notify: Optional[NoticeSink] = None,
        on_refresh: Optional[Callable[[], None]] = None,
    ):
        self.repository = repository
        self.automation = automation
        self.feed = feed
        self.config = config
        self.reconciler = reconciler
        self._notify = notify
        self._on_refresh = on_refresh
        self.state = SubmissionState.IDLE
        self.last_error: Optional[str] = None
        self.detailed_error: Optional[str] = None
        self._notices: List[Notice] = []
        self._checked = asyncio.Event()

    def bind(self, reconciler: Optional[StatusReconciler], notify: Optional[NoticeSink]) -> None:
        """Point the flow at another session's reconciler and notice sink."""
        if self.state == SubmissionState.SUBMITTING:
            if self.reconciler is not None:
                self.reconciler.set_submitting(False)
            if reconciler is not None:
                reconciler.set_submitting(True)
        self.reconciler = reconciler
        self._notify = notify

    async def wait_checked(self) -> None:
        """Wait until the existing-row check has finished."""
        await self._checked.wait()

    def _emit(self, notice: Notice) -> None:
        self._notices.append(notice)
        if self._notify is not None:
            self._notify(notice)

    async def _lookup(self, episode_name: str) -> Optional[Dict[str, Any]]:
        try:
            row = await asyncio.to_thread(
                self.repository.get_latest_by_episode_name, episode_name
            )
        except SQLAlchemyError as e:
            logger.error(f"Store lookup for {episode_name!r} failed: {e}")
            return None
        return row.to_dict() if row else None

    async def run(self, episode_name: str, upload: UploadedFile) -> SubmissionOutcome:
        """
        Drive the submission to a terminal state.

        The submitting flag on the reconciler is set while waiting and is
        cleared on every exit path. The upload is released once resolved.
        """
        self.state = SubmissionState.CHECKING_EXISTING
        try:
            existing = await self._lookup(episode_name)
        finally:
            self._checked.set()
        if existing:
            logger.info(f"Found existing workflow row for {episode_name!r}")
            resolution = Resolution(source=EXISTING, value=existing)
            self._emit(Notice(
                title="Scripts Found!",
                description=f'Existing scripts for "{episode_name}" have been loaded.',
            ))
            return self._finish(episode_name, upload, resolution)

        self.state = SubmissionState.SUBMITTING
        if self.reconciler:
            self.reconciler.set_submitting(True)
        self._emit(Notice(
            title="Processing Started",
            description="Your request is being processed. This will take a few minutes to complete.",
        ))

        try:
            resolution = await race(
                {
                    RESPONSE: self._response_arm(episode_name, upload),
                    POLL: self._poll_arm(episode_name),
                    "push": self._push_arm(episode_name),
                },
                timeout=self.config.wait_budget_seconds,
            )
        finally:
            if self.reconciler:
                self.reconciler.set_submitting(False)

        if resolution is None:
            self.state = SubmissionState.TIMED_OUT
            logger.warning(
                f"No workflow row for {episode_name!r} after "
                f"{self.config.wait_budget_seconds}s"
            )
            self._emit(error_notice(
                "The request is taking longer than expected. Please check the episodes list for your submission.",
                title="Processing Timeout",
            ))
            return self._outcome(episode_name)

        self._emit(Notice(
            title="Success!",
            description=f'Scripts for "{episode_name}" have been generated.',
        ))
        return self._finish(episode_name, upload, resolution)

    def _finish(self, episode_name: str, upload: UploadedFile, resolution: Resolution) -> SubmissionOutcome:
        self.state = SubmissionState.RESOLVED
        upload.release()
        if self.reconciler:
            self.reconciler.apply_row(resolution.value, resolution.source)
        logger.info(f"Submission for {episode_name!r} resolved via {resolution.source}")
        return self._outcome(episode_name, resolution)

    def _outcome(self, episode_name: str, resolution: Optional[Resolution] = None) -> SubmissionOutcome:
        return SubmissionOutcome(
            episode_name=episode_name,
            state=self.state,
            source=resolution.source if resolution else None,
            record=resolution.value if resolution else None,
            last_error=self.last_error,
            detailed_error=self.detailed_error,
            notices=list(self._notices),
        )

    def _response_arm(self, episode_name: str, upload: UploadedFile):
        async def arm(latch: FirstResolution) -> None:
            try:
                body = await self.automation.submit_episode(
                    episode_name,
                    upload.content,
                    upload.filename,
                    upload.content_type or PDF_CONTENT_TYPE,
                    timeout=self.config.wait_budget_seconds,
                )
            except TriggerError as e:
                # The automation may still finish; keep racing and check once now.
                self.last_error = str(e)
                self.detailed_error = e.detail
                logger.warning(f"Submit trigger for {episode_name!r} failed: {e}")
                row = await self._lookup(episode_name)
                if row:
                    latch.resolve(POLL, row)
                return

            if isinstance(body, list) and body and matches_episode(body[0], episode_name):
                latch.resolve(RESPONSE, body[0])

        return arm

    def _poll_arm(self, episode_name: str):
        async def arm(latch: FirstResolution) -> None:
            while not latch.resolved:
                await asyncio.sleep(self.config.poll_interval_seconds)
                if self._on_refresh:
                    self._on_refresh()
                row = await self._lookup(episode_name)
                if row:
                    latch.resolve(POLL, row)

        return arm

    def _push_arm(self, episode_name: str):
        async def arm(latch: FirstResolution) -> None:
            def on_change(event: ChangeEvent) -> None:
                if event.episode_name == episode_name:
                    latch.resolve(event.type.lower(), event.record)

            subscriptions = [
                self.feed.subscribe(INSERT, on_change),
                self.feed.subscribe(UPDATE, on_change),
            ]
            try:
                await latch.wait()
            finally:
                for subscription in subscriptions:
                    subscription.unsubscribe()

        return arm


FlowFactory = Callable[[], EpisodeSubmissionFlow]


class SubmissionManager:
    """Keeps at most one in-flight submission per episode name."""

    def __init__(self):
        self._active: Dict[str, asyncio.Task] = {}
        self._flows: Dict[str, EpisodeSubmissionFlow] = {}

    def is_active(self, episode_name: str) -> bool:
        task = self._active.get(episode_name)
        return task is not None and not task.done()

    def flow(self, episode_name: str) -> Optional[EpisodeSubmissionFlow]:
        """The flow of the in-flight submission for this name, if any."""
        return self._flows.get(episode_name) if self.is_active(episode_name) else None

    def start(
        self, episode_name: str, upload: UploadedFile, flow_factory: FlowFactory
    ) -> Tuple[asyncio.Task, bool]:
        """
        Start a submission, or join the one already running for this name.

        Returns:
            (task, started): the task running the flow and whether it was newly started.
        """
        task = self._active.get(episode_name)
        if task is not None and not task.done():
            logger.info(f"Submission for {episode_name!r} already in flight")
            return task, False

        flow = flow_factory()
        task = asyncio.create_task(flow.run(episode_name, upload), name=f"submit-{episode_name}")
        self._active[episode_name] = task
        self._flows[episode_name] = flow

        def forget(done: asyncio.Task) -> None:
            if self._active.get(episode_name) is done:
                del self._active[episode_name]
                self._flows.pop(episode_name, None)

        task.add_done_callback(forget)
        return task, True

    async def cancel_all(self) -> None:
        tasks = list(self._active.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._active.clear()
        self._flows.clear()
