"""Tests for CLI studio_commands module."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock, patch

import pytest

from src.cli.studio_commands import (
    approve,
    create_parser,
    list_episodes,
    main,
    publish,
    show_status,
    submit_episode,
    watch,
)
from src.db.changes import ChangeFeed
from src.errors import TriggerError
from src.workflow.session import DashboardCoordinator


@pytest.fixture
def automation():
    client = Mock()
    client.submit_episode = AsyncMock(return_value=None)
    client.generate_audio = AsyncMock(return_value=None)
    return client


@pytest.fixture
def coordinator(repository, automation, fast_config):
    storage = Mock()
    storage.upload_cover_art.return_value = "https://cdn.test/cover.png"
    return DashboardCoordinator(repository, automation, storage, ChangeFeed(), fast_config)


def run_command(command, args, coordinator):
    async def run():
        try:
            return await command(args, coordinator)
        finally:
            await coordinator.close()

    return asyncio.run(run())


class TestCreateParser:
    """Tests for create_parser function."""

    def test_has_env_file_argument(self):
        """Test that parser has --env-file argument."""
        parser = create_parser()
        args = parser.parse_args(["--env-file", "/path/.env", "list"])
        assert args.env_file == "/path/.env"

    def test_list_subcommand(self):
        args = create_parser().parse_args(["list", "--limit", "5"])
        assert args.command == "list"
        assert args.limit == 5

    def test_submit_subcommand(self):
        args = create_parser().parse_args(["submit", "Ep-100", "/tmp/ep.pdf"])
        assert args.episode_name == "Ep-100"
        assert args.pdf == "/tmp/ep.pdf"

    def test_publish_requires_date_and_cover_art(self):
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["publish", "Ep-100"])

        args = parser.parse_args(["publish", "Ep-100", "--date", "2025-03-10", "--cover-art", "c.png"])
        assert args.date == "2025-03-10"
        assert args.cover_art == "c.png"

    def test_watch_timeout_default(self):
        args = create_parser().parse_args(["watch", "Ep-100"])
        assert args.timeout == 600


class TestCommands:
    """Tests for the command implementations."""

    def test_list_episodes(self, repository, coordinator, capsys):
        repository.create_workflow("Ep-100", episode_interview_script_status="Pending")

        run_command(list_episodes, SimpleNamespace(limit=None), coordinator)

        out = capsys.readouterr().out
        assert "Ep-100" in out
        assert "Pending" in out

    def test_list_episodes_empty(self, coordinator, capsys):
        run_command(list_episodes, SimpleNamespace(limit=None), coordinator)

        assert "No episodes found" in capsys.readouterr().out

    def test_show_status(self, repository, coordinator, capsys):
        repository.create_workflow("Ep-100", episode_interview_script_1="https://s1")

        run_command(show_status, SimpleNamespace(episode_name="Ep-100"), coordinator)

        out = capsys.readouterr().out
        assert "Episode: Ep-100" in out
        assert "https://s1" in out
        assert "Script #4 Required" in out

    def test_show_status_unknown_episode(self, coordinator):
        with pytest.raises(SystemExit) as exc_info:
            run_command(show_status, SimpleNamespace(episode_name="Nope"), coordinator)

        assert exc_info.value.code == 1

    def test_submit_existing_episode(self, repository, coordinator, automation, tmp_path, capsys):
        repository.create_workflow("Ep-100", episode_interview_script_1="https://s1")
        pdf_path = tmp_path / "ep.pdf"
        pdf_path.write_bytes(b"%PDF-1.4")

        run_command(
            submit_episode, SimpleNamespace(episode_name="Ep-100", pdf=str(pdf_path)), coordinator
        )

        out = capsys.readouterr().out
        assert "Scripts Found!" in out
        automation.submit_episode.assert_not_called()

    def test_submit_timeout_exits(self, coordinator, tmp_path):
        pdf_path = tmp_path / "ep.pdf"
        pdf_path.write_bytes(b"%PDF-1.4")

        with pytest.raises(SystemExit) as exc_info:
            run_command(
                submit_episode, SimpleNamespace(episode_name="Ep-100", pdf=str(pdf_path)), coordinator
            )

        assert exc_info.value.code == 1

    def test_approve_exit_code_when_audio_fails(self, repository, coordinator, automation):
        repository.create_workflow(
            "Ep-100",
            episode_interview_script_1="https://s1",
            episode_interview_script_4="https://s4",
        )
        automation.generate_audio.side_effect = TriggerError("Webhook request timed out")

        with pytest.raises(SystemExit) as exc_info:
            run_command(approve, SimpleNamespace(episode_name="Ep-100"), coordinator)

        assert exc_info.value.code == 2

    def test_publish(self, repository, coordinator, tmp_path, capsys):
        row = repository.create_workflow(
            "Ep-100",
            episode_interview_script_1="https://s1",
            podcast_status="Ready to Publish",
        )
        art = tmp_path / "cover.png"
        art.write_bytes(b"png")

        run_command(
            publish,
            SimpleNamespace(episode_name="Ep-100", date="2025-03-10", cover_art=str(art)),
            coordinator,
        )

        assert "Publishing Started" in capsys.readouterr().out
        assert repository.get_workflow(row.id).podcast_status == "Publishing"

    def test_watch_prints_initial_state(self, repository, coordinator, capsys):
        repository.create_workflow("Ep-100", podcast_status="Processing")

        run_command(watch, SimpleNamespace(episode_name="Ep-100", timeout=0), coordinator)

        assert "podcast=Processing" in capsys.readouterr().out


class TestMain:
    """Tests for main function."""

    def test_main_no_command_prints_help(self):
        with patch("sys.argv", ["studio_commands"]):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1

    def test_main_reports_studio_errors(self, capsys):
        from src.errors import EpisodeNotFoundError

        with patch("sys.argv", ["studio_commands", "approve", "Ep-100"]), \
                patch("src.cli.studio_commands._with_coordinator",
                      new=AsyncMock(side_effect=EpisodeNotFoundError("Ep-100"))):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1
        assert "Episode not found: Ep-100" in capsys.readouterr().out
