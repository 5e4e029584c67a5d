"""Merges snapshot, poll and change-notification signals into one episode view.

Every signal is applied per field in arrival order (last writer wins):

- link and publishing columns are replaced whenever the key is present in
  the payload, null included;
- status columns are replaced only when the payload carries a non-null,
  recognised value.

There is no version check, so a slow poll that lands after a newer change
notification can regress a field until the next signal arrives.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from src.db.models import ASSET_COLUMNS, PUBLISH_COLUMNS, SCRIPT_LINK_COLUMNS, TEXT_FILE_COLUMNS
from src.workflow.links import ScriptLinks, processing_banner
from src.workflow.status import (
    PodcastStatus,
    ProcessStatus,
    ScriptStatus,
    parse_podcast_status,
    parse_process_status,
    parse_status,
)

logger = logging.getLogger(__name__)

# Signal sources recorded per field
SNAPSHOT = "snapshot"
POLL = "poll"
INSERT = "insert"
UPDATE = "update"
RESPONSE = "response"
EXISTING = "existing"
ACTION = "action"

_LINK_COLUMNS = SCRIPT_LINK_COLUMNS + TEXT_FILE_COLUMNS + ASSET_COLUMNS + PUBLISH_COLUMNS

_STATUS_PARSERS = {
    "episode_interview_script_status": lambda v: parse_status(ScriptStatus, v),
    "episode_text_files_status": parse_process_status,
    "podcast_status": parse_podcast_status,
}


@dataclass
class EpisodeView:
    """Reconciled state of one episode plus the facts derived from it."""

    episode_id: Optional[str]
    episode_name: Optional[str]
    script_status: ScriptStatus
    text_files_status: Optional[ProcessStatus]
    podcast_status: Optional[PodcastStatus]
    script_links: ScriptLinks
    text_file_links: Dict[str, Optional[str]]
    asset_links: Dict[str, Optional[str]]
    publishing: Dict[str, Any]
    is_submitting: bool = False
    field_sources: Dict[str, str] = field(default_factory=dict)

    @property
    def has_script1(self) -> bool:
        return self.script_links.has_script1

    @property
    def has_script4(self) -> bool:
        return self.script_links.has_script4

    @property
    def is_script_generated(self) -> bool:
        return self.script_links.is_script_generated

    @property
    def processing_banner(self) -> Optional[str]:
        return processing_banner(self.has_script1, self.has_script4, self.is_submitting)

    @property
    def can_approve_scripts(self) -> bool:
        return (
            self.is_script_generated
            and self.has_script4
            and self.script_status == ScriptStatus.PENDING
        )

    @property
    def can_generate_text_files(self) -> bool:
        return self.is_script_generated

    @property
    def can_generate_assets(self) -> bool:
        return self.is_script_generated

    def can_publish(
        self,
        has_cover_art: bool,
        scheduled_date: Optional[str],
        unix_timestamp: Optional[int],
    ) -> bool:
        """Publishing needs a ready episode and a complete set of publishing inputs."""
        return (
            self.podcast_status == PodcastStatus.READY_TO_PUBLISH
            and bool(has_cover_art)
            and bool(scheduled_date)
            and bool(unix_timestamp)
            and unix_timestamp > 0
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "episode_id": self.episode_id,
            "episode_name": self.episode_name,
            "script_status": self.script_status.value,
            "text_files_status": self.text_files_status.value if self.text_files_status else None,
            "podcast_status": self.podcast_status.value if self.podcast_status else None,
            "script_links": self.script_links.to_dict(),
            "text_file_links": dict(self.text_file_links),
            "asset_links": dict(self.asset_links),
            "publishing": dict(self.publishing),
            "is_submitting": self.is_submitting,
            "has_script1": self.has_script1,
            "has_script4": self.has_script4,
            "is_script_generated": self.is_script_generated,
            "processing_banner": self.processing_banner,
            "can_approve_scripts": self.can_approve_scripts,
            "can_generate_text_files": self.can_generate_text_files,
            "can_generate_assets": self.can_generate_assets,
            "field_sources": dict(self.field_sources),
        }


class StatusReconciler:
    """Holds the current view of one episode and applies incoming signals to it."""

    def __init__(self, episode_name: Optional[str] = None, episode_id: Optional[str] = None):
        self.episode_name = episode_name
        self.episode_id = episode_id
        self.is_submitting = False
        self.version = 0
        self._values: Dict[str, Any] = {column: None for column in _LINK_COLUMNS}
        self._statuses: Dict[str, Any] = {
            "episode_interview_script_status": ScriptStatus.PENDING,
            "episode_text_files_status": None,
            "podcast_status": None,
        }
        self._sources: Dict[str, str] = {}
        self._listeners: List[Callable[[EpisodeView], None]] = []

    def add_listener(self, callback: Callable[[EpisodeView], None]) -> Callable[[], None]:
        """Register a callback run after every change; returns a function that removes it."""
        self._listeners.append(callback)

        def remove():
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def _changed(self) -> None:
        self.version += 1
        if not self._listeners:
            return
        view = self.view()
        for callback in list(self._listeners):
            try:
                callback(view)
            except Exception:
                logger.exception("View listener failed")

    def apply_snapshot(self, row: Optional[Mapping[str, Any]]) -> List[str]:
        """Seed the view from the row the episode was selected with."""
        if not row:
            return []
        return self.apply_row(row, SNAPSHOT)

    def apply_row(self, row: Mapping[str, Any], source: str) -> List[str]:
        """
        Apply a full or partial row from any signal.

        Returns:
            List[str]: The column names whose value changed.
        """
        changed = []

        row_id = row.get("id")
        if row_id and row_id != self.episode_id:
            self.episode_id = row_id
            changed.append("id")
        row_name = row.get("episode_interview_file_name")
        if row_name and row_name != self.episode_name:
            self.episode_name = row_name
            changed.append("episode_interview_file_name")

        for column in _LINK_COLUMNS:
            if column not in row:
                continue
            self._sources[column] = source
            if self._values[column] != row[column]:
                self._values[column] = row[column]
                changed.append(column)

        for column, parse in _STATUS_PARSERS.items():
            value = parse(row.get(column))
            if value is None:
                continue
            self._sources[column] = source
            if self._statuses[column] != value:
                self._statuses[column] = value
                changed.append(column)

        if changed:
            logger.debug(f"{source} updated {self.episode_name}: {changed}")
            self._changed()
        return changed

    def apply_local(self, source: str = ACTION, **fields) -> List[str]:
        """Apply fields that were just written to the store by this service."""
        return self.apply_row(fields, source)

    def set_submitting(self, flag: bool) -> None:
        if self.is_submitting != flag:
            self.is_submitting = flag
            self._changed()

    def script_links(self) -> ScriptLinks:
        return ScriptLinks.from_row(self._values)

    def view(self) -> EpisodeView:
        return EpisodeView(
            episode_id=self.episode_id,
            episode_name=self.episode_name,
            script_status=self._statuses["episode_interview_script_status"],
            text_files_status=self._statuses["episode_text_files_status"],
            podcast_status=self._statuses["podcast_status"],
            script_links=self.script_links(),
            text_file_links={c: self._values[c] for c in TEXT_FILE_COLUMNS},
            asset_links={c: self._values[c] for c in ASSET_COLUMNS},
            publishing={
                "cover_art_url": self._values["podbean_cover_art_url"],
                "scheduled_date": self._values["podbean_scheduled_date"],
                "timestamp": self._values["podbean_timestamp"],
            },
            is_submitting=self.is_submitting,
            field_sources=dict(self._sources),
        )
