"""Tests for the approve, generate and publish transitions."""

import asyncio
import os
import time
from unittest.mock import AsyncMock, Mock, patch

import pytest
from sqlalchemy.exc import OperationalError

from src.errors import (
    ActionNotAllowedError,
    EpisodeNotFoundError,
    StorageError,
    StoreWriteError,
    TriggerError,
    ValidationError,
)
from src.workflow.actions import EpisodeActions, scheduled_unix_timestamp
from src.workflow.notices import NoticeLog
from src.workflow.reconciler import POLL, StatusReconciler
from src.workflow.submission import UploadedFile


@pytest.fixture
def automation():
    client = Mock()
    client.generate_audio = AsyncMock(return_value=None)
    return client


@pytest.fixture
def storage():
    client = Mock()
    client.upload_cover_art.return_value = (
        "https://project.supabase.test/storage/v1/object/public/podcast_assets/row_cover_art.png"
    )
    return client


@pytest.fixture
def generated_row(repository):
    """A workflow row whose scripts are generated and awaiting approval."""
    return repository.create_workflow(
        "Ep-100",
        episode_interview_script_1="https://docs.example.com/s1",
        episode_interview_script_4="https://docs.example.com/s4",
        episode_interview_script_status="Pending",
    )


def make_actions(repository, automation, storage, row=None, name="Ep-100"):
    reconciler = StatusReconciler(name)
    if row is not None:
        reconciler.apply_row(row.to_dict(), POLL)
    notices = NoticeLog()
    actions = EpisodeActions(repository, automation, storage, reconciler, notify=notices, audio_timeout=5)
    return actions, reconciler, notices


def cover_art():
    return UploadedFile("cover.png", b"\x89PNG...", "image/png")


class TestScheduledTimestamp:
    """Tests for the publishing time conversion."""

    def test_five_pm_utc(self):
        assert scheduled_unix_timestamp("2025-03-10") == 1741626000

    @pytest.mark.skipif(not hasattr(time, "tzset"), reason="time.tzset is not available")
    @pytest.mark.parametrize("tz", ["Pacific/Kiritimati", "America/Los_Angeles", "Asia/Kolkata"])
    def test_same_result_in_any_host_timezone(self, tz):
        try:
            with patch.dict(os.environ, {"TZ": tz}):
                time.tzset()
                assert scheduled_unix_timestamp("2025-03-10") == 1741626000
        finally:
            time.tzset()

    @pytest.mark.parametrize("value", ["03/10/2025", "2025-13-01", "", None])
    def test_invalid_dates(self, value):
        with pytest.raises(ValidationError):
            scheduled_unix_timestamp(value)


class TestApproveScripts:
    """Tests for approving scripts."""

    def test_approve_writes_statuses_and_triggers_audio(self, repository, automation, storage, generated_row):
        actions, reconciler, notices = make_actions(repository, automation, storage, generated_row)

        result = asyncio.run(actions.approve_scripts())

        assert result.audio_triggered is True
        assert notices.latest.title == "Audio Generation Started"
        stored = repository.get_workflow(generated_row.id)
        assert stored.episode_interview_script_status == "Approved"
        assert stored.episode_text_files_status == "Pending"
        assert stored.podcast_status == "Pending"
        view = reconciler.view()
        assert view.script_status.value == "Approved"
        assert view.can_approve_scripts is False

        episode_id, episode_name, links = automation.generate_audio.call_args[0]
        assert (episode_id, episode_name) == (generated_row.id, "Ep-100")
        assert links["episode_interview_script_4"] == "https://docs.example.com/s4"
        assert automation.generate_audio.call_args.kwargs["timeout"] == 5

    def test_audio_trigger_failure_keeps_approval(self, repository, automation, storage, generated_row):
        automation.generate_audio.side_effect = TriggerError("Webhook request timed out")
        actions, reconciler, notices = make_actions(repository, automation, storage, generated_row)

        result = asyncio.run(actions.approve_scripts())

        assert result.audio_triggered is False
        assert notices.latest.is_error
        assert repository.get_workflow(generated_row.id).episode_interview_script_status == "Approved"
        assert reconciler.view().script_status.value == "Approved"

    def test_requires_summary_script(self, repository, automation, storage):
        row = repository.create_workflow("Ep-100", episode_interview_script_1="https://s1")
        actions, _, _ = make_actions(repository, automation, storage, row)

        with pytest.raises(ActionNotAllowedError, match="Script #4 - Summary is required"):
            asyncio.run(actions.approve_scripts())

        assert repository.get_workflow(row.id).episode_interview_script_status is None
        automation.generate_audio.assert_not_called()

    def test_cannot_approve_twice(self, repository, automation, storage, generated_row):
        repository.approve_scripts(generated_row.id)
        actions, _, _ = make_actions(
            repository, automation, storage, repository.get_workflow(generated_row.id)
        )

        with pytest.raises(ActionNotAllowedError):
            asyncio.run(actions.approve_scripts())

    def test_write_failure_leaves_view_untouched(self, automation, storage, generated_row):
        repository = Mock()
        repository.approve_scripts.side_effect = OperationalError("UPDATE", {}, Exception("db down"))
        actions, reconciler, notices = make_actions(repository, automation, storage, generated_row)

        with pytest.raises(StoreWriteError):
            asyncio.run(actions.approve_scripts())

        assert reconciler.view().script_status.value == "Pending"
        assert notices.latest.description == "Failed to update script status in the database."
        automation.generate_audio.assert_not_called()


class TestResolveEpisodeId:
    """Tests for the just-in-time id lookup."""

    def test_looks_up_id_by_name(self, repository, automation, storage, generated_row):
        actions, reconciler, _ = make_actions(repository, automation, storage)
        reconciler.apply_row({"episode_interview_script_1": "https://s1"}, POLL)

        episode_id = asyncio.run(actions.resolve_episode_id())

        assert episode_id == generated_row.id
        assert reconciler.episode_id == generated_row.id

    def test_unknown_episode(self, repository, automation, storage):
        actions, reconciler, notices = make_actions(repository, automation, storage, name="Nope")
        reconciler.apply_row({"episode_interview_script_1": "https://s1"}, POLL)

        with pytest.raises(EpisodeNotFoundError):
            asyncio.run(actions.generate_text_files())

        assert notices.latest.description == "Episode ID or name is missing"


class TestGenerate:
    """Tests for text files and assets generation."""

    def test_generate_text_files(self, repository, automation, storage, generated_row):
        actions, reconciler, notices = make_actions(repository, automation, storage, generated_row)

        result = asyncio.run(actions.generate_text_files())

        assert result.action == "generate_text_files"
        assert repository.get_workflow(generated_row.id).episode_text_files_status == "Processing"
        assert reconciler.view().text_files_status.value == "Processing"
        assert notices.latest.title == "Text Files Generation Started"

    def test_generate_assets(self, repository, automation, storage, generated_row):
        actions, reconciler, notices = make_actions(repository, automation, storage, generated_row)

        asyncio.run(actions.generate_assets())

        assert repository.get_workflow(generated_row.id).podcast_status == "Processing"
        assert notices.latest.title == "Episode Assets Generation Started"

    def test_disabled_without_scripts(self, repository, automation, storage):
        row = repository.create_workflow("Ep-100")
        actions, _, _ = make_actions(repository, automation, storage, row)

        with pytest.raises(ActionNotAllowedError):
            asyncio.run(actions.generate_text_files())
        with pytest.raises(ActionNotAllowedError):
            asyncio.run(actions.generate_assets())


class TestPublish:
    """Tests for publishing to Podbean."""

    @pytest.fixture
    def ready_row(self, repository, generated_row):
        return repository.update_workflow(generated_row.id, podcast_status="Ready to Publish")

    def test_publish_uploads_and_writes_fields(self, repository, automation, storage, ready_row):
        actions, reconciler, notices = make_actions(repository, automation, storage, ready_row)

        asyncio.run(actions.publish("2025-03-10", cover_art()))

        storage.upload_cover_art.assert_called_once_with(
            ready_row.id, "cover.png", b"\x89PNG...", "image/png"
        )
        stored = repository.get_workflow(ready_row.id)
        assert stored.podcast_status == "Publishing"
        assert stored.podbean_scheduled_date == "2025-03-10"
        assert stored.podbean_timestamp == 1741626000
        assert stored.podbean_cover_art_url.endswith("row_cover_art.png")
        assert reconciler.view().publishing["timestamp"] == 1741626000
        assert notices.latest.title == "Publishing Started"

    def test_not_ready_to_publish(self, repository, automation, storage, generated_row):
        row = repository.update_workflow(generated_row.id, podcast_status="Processing")
        actions, _, _ = make_actions(repository, automation, storage, row)

        with pytest.raises(ActionNotAllowedError, match="not ready to publish"):
            asyncio.run(actions.publish("2025-03-10", cover_art()))

        storage.upload_cover_art.assert_not_called()

    def test_missing_cover_art(self, repository, automation, storage, ready_row):
        actions, _, notices = make_actions(repository, automation, storage, ready_row)

        with pytest.raises(ActionNotAllowedError):
            asyncio.run(actions.publish("2025-03-10", None))

        assert notices.latest.description == "Missing required publishing information"

    def test_upload_failure_writes_nothing(self, repository, automation, storage, ready_row):
        storage.upload_cover_art.side_effect = StorageError("Failed to upload")
        actions, reconciler, notices = make_actions(repository, automation, storage, ready_row)

        with pytest.raises(StorageError):
            asyncio.run(actions.publish("2025-03-10", cover_art()))

        assert repository.get_workflow(ready_row.id).podcast_status == "Ready to Publish"
        assert reconciler.view().podcast_status.value == "Ready to Publish"
        assert notices.latest.description == "Failed to publish to Podbean"
