"""CLI commands for episode production.

Provides commands for:
- Listing recent episodes
- Showing an episode's reconciled status
- Submitting a new episode PDF
- Approving scripts and triggering text files / assets generation
- Publishing to Podbean
- Watching an episode's status change live
"""

import argparse
import asyncio
import logging
import mimetypes
import os
import sys

from src.argparse_shared import add_episode_name_argument, add_log_level_argument, get_base_parser
from src.config import Config
from src.db.changes import ChangeFeed, PostgresChangeListener
from src.db.factory import create_repository_from_config
from src.errors import StudioError
from src.workflow.config import StudioConfig
from src.workflow.factory import create_coordinator
from src.workflow.presentation import render
from src.workflow.session import DashboardCoordinator
from src.workflow.submission import UploadedFile

logger = logging.getLogger(__name__)


async def _with_coordinator(config: Config, settings: StudioConfig, command):
    """Run `command(coordinator)` with a fully wired coordinator and clean up afterwards."""
    repository = create_repository_from_config(config)
    feed = ChangeFeed()
    listener = None
    if config.CHANGE_LISTENER_ENABLED and config.uses_postgres:
        listener = PostgresChangeListener(
            database_url=config.DATABASE_URL,
            channel=config.CHANGE_CHANNEL,
            feed=feed,
            loop=asyncio.get_running_loop(),
            repository=repository,
        )
        listener.start()

    coordinator = create_coordinator(config, repository, feed, settings)
    try:
        return await command(coordinator)
    finally:
        await coordinator.close()
        if listener:
            listener.stop()
        if coordinator.storage:
            coordinator.storage.close()
        repository.close()


def _print_view(payload: dict) -> None:
    print(f"\nEpisode: {payload['episode_name']}")
    print(f"  ID: {payload['episode_id'] or '(unknown)'}")
    for key, title in (("script", "Script"), ("text_files", "Text files"), ("podcast", "Podcast")):
        badge = payload["badges"][key]
        print(f"  {title + ' status:':<21} {badge['label']}")
    if payload["processing_banner"]:
        print(f"\n  {payload['processing_banner']}")

    for section, title in (("scripts", "Scripts"), ("text_files", "Text files"), ("assets", "Assets")):
        print(f"\n  {title}:")
        for item in payload[section]:
            print(f"    {item['label']:<26} {item['url'] or '-'}")

    button = payload["audio_button"]
    print(f"\n  Audio: {button['label']} ({'enabled' if button['enabled'] else 'disabled'})")


def _print_notices(notices) -> None:
    for notice in notices:
        marker = "!" if notice.variant == "destructive" else "*"
        print(f"{marker} {notice.title}: {notice.description}")


async def list_episodes(args, coordinator: DashboardCoordinator):
    """Print the most recent episodes and their stage statuses."""
    rows = await coordinator.list_episodes(args.limit)
    if not rows:
        print("No episodes found")
        return

    print(f"\n{'Episode':<40}  {'Script':<16}  {'Text files':<12}  {'Podcast'}")
    print("-" * 90)
    for row in rows:
        print(
            f"{row['episode_interview_file_name'][:40]:<40}  "
            f"{row['episode_interview_script_status'] or '-':<16}  "
            f"{row['episode_text_files_status'] or '-':<12}  "
            f"{row['podcast_status'] or '-'}"
        )


async def show_status(args, coordinator: DashboardCoordinator):
    """Print the reconciled view of one episode."""
    session = await coordinator.select(args.episode_name)
    if session.view().episode_id is None:
        print(f"Episode not found: {args.episode_name}")
        sys.exit(1)
    _print_view(render(session.view()))


async def submit_episode(args, coordinator: DashboardCoordinator):
    """Submit a PDF for script generation and wait for the outcome."""
    with open(args.pdf, "rb") as f:
        content = f.read()
    content_type = mimetypes.guess_type(args.pdf)[0]
    upload = UploadedFile(os.path.basename(args.pdf), content, content_type)

    task, started = await coordinator.submit(args.episode_name, upload)
    if not started:
        print(f"A submission for {args.episode_name!r} is already in progress; waiting for it")
    outcome = await task

    _print_notices(outcome.notices)
    if outcome.last_error:
        print(f"  Trigger error: {outcome.last_error}")
    if not outcome.resolved:
        sys.exit(1)
    _print_view(coordinator.current().render())


async def _run_action(coordinator: DashboardCoordinator, episode_name: str, name: str, *args):
    session = await coordinator.select(episode_name)
    result = await getattr(coordinator.actions(session), name)(*args)
    _print_notices([result.notice])
    return result


async def approve(args, coordinator: DashboardCoordinator):
    """Approve scripts and start audio generation."""
    result = await _run_action(coordinator, args.episode_name, "approve_scripts")
    if result.audio_triggered is False:
        sys.exit(2)


async def text_files(args, coordinator: DashboardCoordinator):
    """Queue text files generation."""
    await _run_action(coordinator, args.episode_name, "generate_text_files")


async def assets(args, coordinator: DashboardCoordinator):
    """Queue episode assets generation."""
    await _run_action(coordinator, args.episode_name, "generate_assets")


async def publish(args, coordinator: DashboardCoordinator):
    """Upload cover art and hand the episode to the publishing automation."""
    with open(args.cover_art, "rb") as f:
        content = f.read()
    cover_art = UploadedFile(
        os.path.basename(args.cover_art), content, mimetypes.guess_type(args.cover_art)[0]
    )
    await _run_action(coordinator, args.episode_name, "publish", args.date, cover_art)


async def watch(args, coordinator: DashboardCoordinator):
    """Print status changes for an episode until interrupted or the timeout passes."""
    session = await coordinator.select(args.episode_name)

    def on_change(view):
        print(
            f"[{view.script_status.value}] "
            f"text files={view.text_files_status.value if view.text_files_status else '-'} "
            f"podcast={view.podcast_status.value if view.podcast_status else '-'} "
            f"slot4={'yes' if view.has_script4 else 'no'}"
        )

    remove = session.reconciler.add_listener(on_change)
    on_change(session.view())
    try:
        await asyncio.sleep(args.timeout)
    finally:
        remove()


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = get_base_parser()
    parser.description = "Episode production CLI"
    add_log_level_argument(parser)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    list_parser = subparsers.add_parser("list", help="List recent episodes")
    list_parser.add_argument("--limit", type=int, default=None, help="Maximum number of episodes")

    add_episode_name_argument(subparsers.add_parser("status", help="Show an episode's status"))

    submit_parser = subparsers.add_parser("submit", help="Submit a new episode PDF")
    add_episode_name_argument(submit_parser)
    submit_parser.add_argument("pdf", help="Path to the source PDF")

    add_episode_name_argument(subparsers.add_parser("approve", help="Approve scripts and generate audio"))
    add_episode_name_argument(subparsers.add_parser("text-files", help="Generate text files"))
    add_episode_name_argument(subparsers.add_parser("assets", help="Generate episode assets"))

    publish_parser = subparsers.add_parser("publish", help="Publish an episode to Podbean")
    add_episode_name_argument(publish_parser)
    publish_parser.add_argument("--date", required=True, help="Scheduled date (YYYY-MM-DD)")
    publish_parser.add_argument("--cover-art", required=True, help="Path to the cover art image")

    watch_parser = subparsers.add_parser("watch", help="Watch an episode's status change")
    add_episode_name_argument(watch_parser)
    watch_parser.add_argument(
        "--timeout", type=float, default=600, help="Seconds to watch before exiting"
    )

    return parser


COMMANDS = {
    "list": list_episodes,
    "status": show_status,
    "submit": submit_episode,
    "approve": approve,
    "text-files": text_files,
    "assets": assets,
    "publish": publish,
    "watch": watch,
}


def main():
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    if args.log_level == "INFO":
        logging.getLogger("httpx").setLevel("WARNING")
        logging.getLogger("httpcore").setLevel("WARNING")

    config = Config(env_file=args.env_file)
    settings = StudioConfig.from_env()
    command_func = COMMANDS[args.command]

    try:
        asyncio.run(_with_coordinator(
            config, settings, lambda coordinator: command_func(args, coordinator)
        ))
    except StudioError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
