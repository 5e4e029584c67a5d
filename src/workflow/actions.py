"""User-triggered workflow transitions.

Each action resolves the episode id (looking it up by name when the view
has none yet), checks its guardrail against the reconciled view, writes the
transition to the store in one transaction and only then applies it to the
view. A failed write leaves the view untouched.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from src.db.repository import WorkflowRepositoryInterface
from src.errors import (
    ActionNotAllowedError,
    EpisodeNotFoundError,
    StorageError,
    StoreWriteError,
    TriggerError,
    ValidationError,
)
from src.services.automation_client import AutomationClient
from src.services.storage_client import StorageClient
from src.workflow.notices import Notice, NoticeSink, error_notice
from src.workflow.reconciler import ACTION, StatusReconciler
from src.workflow.status import (
    PodcastStatus,
    ProcessStatus,
    ScriptStatus,
    is_forward_script_transition,
)
from src.workflow.submission import UploadedFile

logger = logging.getLogger(__name__)

# Episodes publish at 10:00 in UTC-7, which is 17:00 UTC.
PUBLISH_HOUR_UTC = 17


def scheduled_unix_timestamp(scheduled_date: str) -> int:
    """
    Convert a publishing date to epoch seconds at 17:00 UTC on that date.

    The host timezone plays no part.

    Raises:
        ValidationError: The value is not a YYYY-MM-DD date.
    """
    try:
        day = date.fromisoformat(scheduled_date)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid scheduled date: {scheduled_date!r}") from e
    moment = datetime(day.year, day.month, day.day, PUBLISH_HOUR_UTC, tzinfo=UTC)
    return int(moment.timestamp())


@dataclass
class ActionResult:
    """Outcome of a successful transition."""

    action: str
    notice: Notice
    record: Optional[Dict[str, Any]] = None
    audio_triggered: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "notice": self.notice.to_dict(),
            "record": self.record,
            "audio_triggered": self.audio_triggered,
        }


class EpisodeActions:
    """The four write transitions available on a selected episode."""

    def __init__(
        self,
        repository: WorkflowRepositoryInterface,
        automation: AutomationClient,
        storage: Optional[StorageClient],
        reconciler: StatusReconciler,
        notify: Optional[NoticeSink] = None,
        audio_timeout: Optional[float] = None,
    ):
        self.repository = repository
        self.automation = automation
        self.storage = storage
        self.reconciler = reconciler
        self._notify = notify
        self.audio_timeout = audio_timeout

    def _emit(self, notice: Notice) -> Notice:
        if self._notify is not None:
            self._notify(notice)
        return notice

    async def resolve_episode_id(self) -> str:
        """
        Return the episode id, looking it up by name when the view has none.

        Raises:
            EpisodeNotFoundError: Neither the view nor the store knows the episode.
        """
        if self.reconciler.episode_id:
            return self.reconciler.episode_id

        name = self.reconciler.episode_name
        if name:
            try:
                row = await asyncio.to_thread(self.repository.get_latest_by_episode_name, name)
            except SQLAlchemyError as e:
                logger.error(f"Episode id lookup for {name!r} failed: {e}")
                row = None
            if row:
                logger.info(f"Resolved episode id for {name!r}: {row.id}")
                self.reconciler.apply_local(id=row.id)
                return row.id

        self._emit(error_notice("Episode ID or name is missing"))
        raise EpisodeNotFoundError(name)

    async def _write(self, episode_id: str, action: str, write, failure_message: str) -> Dict[str, Any]:
        try:
            row = await asyncio.to_thread(write)
        except SQLAlchemyError as e:
            logger.error(f"{action} write for {episode_id} failed: {e}")
            self._emit(error_notice(failure_message))
            raise StoreWriteError(failure_message) from e
        if row is None:
            self._emit(error_notice("Episode not found"))
            raise EpisodeNotFoundError(self.reconciler.episode_name)
        return row.to_dict()

    def _refuse(self, message: str) -> None:
        logger.info(f"Refused action on {self.reconciler.episode_name!r}: {message}")
        raise ActionNotAllowedError(message)

    async def approve_scripts(self) -> ActionResult:
        """
        Approve the scripts and start audio generation.

        The three status fields are written together. If the write fails the
        view is not changed. If the write succeeds but the audio trigger fails
        the approval stands and the result reports `audio_triggered=False`.
        """
        view = self.reconciler.view()
        if not view.can_approve_scripts:
            if not view.has_script4:
                self._refuse("Script #4 - Summary is required for approval")
            self._refuse(f"Scripts cannot be approved from status {view.script_status.value}")
        if not is_forward_script_transition(view.script_status, ScriptStatus.APPROVED):
            self._refuse(f"Invalid script status transition from {view.script_status.value}")

        episode_id = await self.resolve_episode_id()
        record = await self._write(
            episode_id,
            "approve",
            lambda: self.repository.approve_scripts(episode_id),
            "Failed to update script status in the database.",
        )
        self.reconciler.apply_local(
            episode_interview_script_status=ScriptStatus.APPROVED.value,
            episode_text_files_status=ProcessStatus.PENDING.value,
            podcast_status=PodcastStatus.PENDING.value,
        )

        try:
            await self.automation.generate_audio(
                episode_id,
                view.episode_name,
                view.script_links.to_dict(),
                timeout=self.audio_timeout,
            )
        except TriggerError as e:
            logger.error(f"Audio trigger for {view.episode_name!r} failed after approval: {e}")
            notice = self._emit(error_notice(
                "Scripts were approved, but audio generation could not be started."
            ))
            return ActionResult("approve_scripts", notice, record, audio_triggered=False)

        notice = self._emit(Notice(
            title="Audio Generation Started",
            description=f'Audio for "{view.episode_name}" is being generated.',
        ))
        return ActionResult("approve_scripts", notice, record, audio_triggered=True)

    async def generate_text_files(self) -> ActionResult:
        view = self.reconciler.view()
        if not view.can_generate_text_files:
            self._refuse("Scripts have not been generated yet")

        episode_id = await self.resolve_episode_id()
        record = await self._write(
            episode_id,
            "text files",
            lambda: self.repository.update_workflow(
                episode_id, episode_text_files_status=ProcessStatus.PROCESSING.value
            ),
            "Failed to start text files generation",
        )
        self.reconciler.apply_local(episode_text_files_status=ProcessStatus.PROCESSING.value)
        notice = self._emit(Notice(
            title="Text Files Generation Started",
            description=f'Text files for "{view.episode_name}" are being generated.',
        ))
        return ActionResult("generate_text_files", notice, record)

    async def generate_assets(self) -> ActionResult:
        view = self.reconciler.view()
        if not view.can_generate_assets:
            self._refuse("Scripts have not been generated yet")

        episode_id = await self.resolve_episode_id()
        record = await self._write(
            episode_id,
            "assets",
            lambda: self.repository.update_workflow(
                episode_id, podcast_status=PodcastStatus.PROCESSING.value
            ),
            "Failed to start episode assets generation",
        )
        self.reconciler.apply_local(podcast_status=PodcastStatus.PROCESSING.value)
        notice = self._emit(Notice(
            title="Episode Assets Generation Started",
            description=f'Assets for "{view.episode_name}" are being generated.',
        ))
        return ActionResult("generate_assets", notice, record)

    async def publish(self, scheduled_date: Optional[str], cover_art: Optional[UploadedFile]) -> ActionResult:
        """
        Upload the cover art and hand the episode to the publishing automation.

        Raises:
            ActionNotAllowedError: The episode is not ready to publish or an input is missing.
            StorageError: The cover art upload failed; nothing was written.
        """
        view = self.reconciler.view()
        timestamp = scheduled_unix_timestamp(scheduled_date) if scheduled_date else 0
        has_cover_art = cover_art is not None and cover_art.size > 0
        if not view.can_publish(has_cover_art, scheduled_date, timestamp):
            if view.podcast_status != PodcastStatus.READY_TO_PUBLISH:
                self._refuse("Episode is not ready to publish")
            self._emit(error_notice("Missing required publishing information"))
            self._refuse("Missing required publishing information")

        if self.storage is None:
            raise StorageError("Storage is not configured")

        episode_id = await self.resolve_episode_id()
        try:
            cover_art_url = await asyncio.to_thread(
                self.storage.upload_cover_art,
                episode_id,
                cover_art.filename,
                cover_art.content,
                cover_art.content_type,
            )
        except StorageError:
            self._emit(error_notice("Failed to publish to Podbean"))
            raise

        fields = {
            "podcast_status": PodcastStatus.PUBLISHING.value,
            "podbean_cover_art_url": cover_art_url,
            "podbean_scheduled_date": scheduled_date,
            "podbean_timestamp": timestamp,
        }
        record = await self._write(
            episode_id,
            "publish",
            lambda: self.repository.update_workflow(episode_id, **fields),
            "Failed to publish to Podbean",
        )
        self.reconciler.apply_local(**fields)
        notice = self._emit(Notice(
            title="Publishing Started",
            description=f'"{view.episode_name}" is being published to Podbean.',
        ))
        return ActionResult("publish", notice, record)
