"""Episode production workflow.

This package reconciles the automation's workflow rows into a live view per
episode and drives the user transitions: submit → approve scripts →
generate text files and assets → publish.
"""

from src.workflow.actions import ActionResult, EpisodeActions, scheduled_unix_timestamp
from src.workflow.config import StudioConfig
from src.workflow.reconciler import EpisodeView, StatusReconciler
from src.workflow.session import DashboardCoordinator, EpisodeSession
from src.workflow.submission import (
    EpisodeSubmissionFlow,
    SubmissionManager,
    SubmissionOutcome,
    SubmissionState,
    UploadedFile,
)

__all__ = [
    "ActionResult",
    "DashboardCoordinator",
    "EpisodeActions",
    "EpisodeSession",
    "EpisodeSubmissionFlow",
    "EpisodeView",
    "StatusReconciler",
    "StudioConfig",
    "SubmissionManager",
    "SubmissionOutcome",
    "SubmissionState",
    "UploadedFile",
    "scheduled_unix_timestamp",
]
