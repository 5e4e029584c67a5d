"""SQLAlchemy ORM model for the episode workflow table."""

import uuid
from datetime import UTC, datetime
from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Link columns the automation writes. Order matches the dashboard listing.
SCRIPT_LINK_COLUMNS = (
    "episode_interview_script_1",
    "episode_interview_script_2",
    "episode_interview_script_3",
    "episode_interview_script_4",
    "episode_interview_full_script",
    "episode_interview_file",
)

TEXT_FILE_COLUMNS = (
    "episode_titles",
    "episode_description",
    "episode_intro_transcript",
    "linkedin_post",
    "x_post",
    "podcast_excerpt",
)

ASSET_COLUMNS = (
    "show_notes",
    "intro_audio",
    "master_audio",
)

STATUS_COLUMNS = (
    "episode_interview_script_status",
    "episode_text_files_status",
    "podcast_status",
)

PUBLISH_COLUMNS = (
    "podbean_cover_art_url",
    "podbean_scheduled_date",
    "podbean_timestamp",
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AutoWorkflow(Base):
    """One row per episode run of the production automation.

    The automation inserts the row when a submission arrives and fills in
    link and status columns as each stage completes. This service reads the
    row and writes status transitions and publishing fields; it never inserts
    or deletes rows outside of tests and tooling.
    """

    __tablename__ = "autoworkflow"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=_utcnow
    )

    # Natural key
    episode_interview_file_name: Mapped[str] = mapped_column(String(512), nullable=False)

    # Script drafts (slot 4 is the summary)
    episode_interview_script_1: Mapped[Optional[str]] = mapped_column(Text)
    episode_interview_script_2: Mapped[Optional[str]] = mapped_column(Text)
    episode_interview_script_3: Mapped[Optional[str]] = mapped_column(Text)
    episode_interview_script_4: Mapped[Optional[str]] = mapped_column(Text)
    episode_interview_full_script: Mapped[Optional[str]] = mapped_column(Text)
    episode_interview_file: Mapped[Optional[str]] = mapped_column(Text)

    # Stage statuses
    episode_interview_script_status: Mapped[Optional[str]] = mapped_column(String(32))
    episode_text_files_status: Mapped[Optional[str]] = mapped_column(String(32))
    podcast_status: Mapped[Optional[str]] = mapped_column(String(32))

    # Text files
    episode_titles: Mapped[Optional[str]] = mapped_column(Text)
    episode_description: Mapped[Optional[str]] = mapped_column(Text)
    episode_intro_transcript: Mapped[Optional[str]] = mapped_column(Text)
    linkedin_post: Mapped[Optional[str]] = mapped_column(Text)
    x_post: Mapped[Optional[str]] = mapped_column(Text)
    podcast_excerpt: Mapped[Optional[str]] = mapped_column(Text)

    # Episode assets
    show_notes: Mapped[Optional[str]] = mapped_column(Text)
    intro_audio: Mapped[Optional[str]] = mapped_column(Text)
    master_audio: Mapped[Optional[str]] = mapped_column(Text)

    # Podbean publishing
    podbean_cover_art_url: Mapped[Optional[str]] = mapped_column(Text)
    podbean_scheduled_date: Mapped[Optional[str]] = mapped_column(String(10))
    podbean_timestamp: Mapped[Optional[int]] = mapped_column(BigInteger)

    __table_args__ = (
        Index("ix_autoworkflow_episode_name", "episode_interview_file_name"),
        Index("ix_autoworkflow_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<AutoWorkflow(id={self.id}, "
            f"episode={self.episode_interview_file_name!r})>"
        )

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize the row to the column-keyed mapping used by change events and the reconciler.

        Returns:
            Dict[str, Any]: Every column keyed by its column name; `created_at` is rendered as an ISO 8601 string.
        """
        data = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            data[column.name] = value
        return data
