import os
import sys
import argparse
import logging
import traceback

# Adjust path to import from src
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))
from src.config import Config

# Setup basic logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def initialize_database(config: Config, seed_episode: str = None):
    """
    Create the workflow table for local development and optionally insert a
    sample row so the dashboard has something to show.

    Production schemas are managed with Alembic; run `alembic upgrade head`
    there instead so the change-notification trigger is installed too.
    """
    from src.db.factory import create_repository_from_config

    repository = create_repository_from_config(config, create_tables=True)
    try:
        logging.info("Workflow table is ready.")
        if seed_episode:
            row = repository.create_workflow(
                seed_episode,
                episode_interview_script_status="Pending",
            )
            logging.info(f"Inserted sample workflow row {row.id} for {seed_episode!r}")
    finally:
        repository.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Initialize the local database. Creates tables if they don't exist.")
    parser.add_argument("--yes", "-y", action="store_true", help="Bypass confirmation prompt.")
    parser.add_argument("--env-file", help="Path to a custom .env file", default=None)
    parser.add_argument("--seed-episode", help="Insert a sample workflow row with this episode name", default=None)
    args = parser.parse_args()

    try:
        config = Config(env_file=args.env_file)
        logging.info(f"Using database: {config.DATABASE_URL.split('@')[-1]}")

        if not args.yes:
            confirm = input("Initialize the database? This will create tables but not delete existing data. (y/n): ")
            if confirm.lower() != 'y':
                logging.info("Database initialization cancelled by user.")
                sys.exit(0)

        initialize_database(config, args.seed_episode)

    except Exception:
        logging.error("An error occurred during database initialization.")
        logging.error(traceback.format_exc())
        sys.exit(1)
