"""Factory for wiring a dashboard coordinator from configuration."""

import logging

from src.config import Config
from src.db.changes import ChangeFeed
from src.db.repository import WorkflowRepositoryInterface
from src.services.automation_client import AutomationClient
from src.services.storage_client import StorageClient
from src.workflow.config import StudioConfig
from src.workflow.session import DashboardCoordinator

logger = logging.getLogger(__name__)


def create_coordinator(
    config: Config,
    repository: WorkflowRepositoryInterface,
    feed: ChangeFeed,
    settings: StudioConfig,
) -> DashboardCoordinator:
    """
    Build a DashboardCoordinator with webhook and storage clients from `config`.

    Missing webhook or storage settings are logged; the affected actions fail
    with a clear error when used rather than at startup.
    """
    if not config.SUBMIT_WEBHOOK_URL:
        logger.warning("SUBMIT_WEBHOOK_URL is not set; submissions will rely on polling only")
    if not config.AUDIO_WEBHOOK_URL:
        logger.warning("AUDIO_WEBHOOK_URL is not set; approvals will not start audio generation")

    automation = AutomationClient(
        submit_url=config.SUBMIT_WEBHOOK_URL,
        audio_url=config.AUDIO_WEBHOOK_URL,
        timeout=settings.audio_trigger_timeout_seconds,
    )
    storage = StorageClient(
        supabase_url=config.SUPABASE_URL,
        service_key=config.SUPABASE_SERVICE_ROLE_KEY,
        bucket=config.COVER_ART_BUCKET,
        retry_attempts=config.STORAGE_RETRY_ATTEMPTS,
        timeout=config.STORAGE_TIMEOUT,
    )
    return DashboardCoordinator(
        repository=repository,
        automation=automation,
        storage=storage,
        feed=feed,
        config=settings,
    )
