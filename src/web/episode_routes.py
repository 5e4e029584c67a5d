"""
Episode routes for the production dashboard.

Provides endpoints for listing episodes, selecting one, submitting new
episodes, streaming the reconciled episode view, and triggering the
approve / text files / assets / publish transitions.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from src.errors import (
    ActionNotAllowedError,
    EpisodeNotFoundError,
    StorageError,
    StoreWriteError,
    ValidationError,
)
from src.web.limits import limiter, write_rate_limit
from src.web.models import (
    ActionResponse,
    EpisodeListResponse,
    EpisodeSummary,
    RefreshResponse,
    SelectionRequest,
    SelectionResponse,
    SubmissionResponse,
)
from src.workflow.session import DashboardCoordinator
from src.workflow.submission import SubmissionState, UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["episodes"])

# Maximum accepted upload size for PDFs and cover art
MAX_UPLOAD_BYTES = 50 * 1024 * 1024


def _coordinator(request: Request) -> DashboardCoordinator:
    return request.app.state.coordinator


def _to_http_error(e: Exception) -> HTTPException:
    """Translate workflow errors to HTTP errors."""
    if isinstance(e, ValidationError):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, EpisodeNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, ActionNotAllowedError):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, (StoreWriteError, StorageError)):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail="Unexpected error")


async def _read_upload(upload: Optional[UploadFile]) -> Optional[UploadedFile]:
    if upload is None:
        return None
    content = await upload.read(MAX_UPLOAD_BYTES + 1)
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Uploaded file is too large")
    return UploadedFile(
        filename=upload.filename or "upload",
        content=content,
        content_type=upload.content_type,
    )


@router.get("/episodes", response_model=EpisodeListResponse)
async def list_episodes(request: Request, limit: Optional[int] = None):
    """
    List the most recent workflow rows.

    Returns:
        EpisodeListResponse: Episodes ordered newest first.
    """
    if limit is not None and not 1 <= limit <= 1000:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 1000")

    rows = await _coordinator(request).list_episodes(limit)
    episodes = [
        EpisodeSummary(
            id=row["id"],
            episode_name=row["episode_interview_file_name"],
            created_at=row.get("created_at"),
            script_status=row.get("episode_interview_script_status"),
            text_files_status=row.get("episode_text_files_status"),
            podcast_status=row.get("podcast_status"),
        )
        for row in rows
    ]
    return EpisodeListResponse(episodes=episodes, count=len(episodes))


@router.post("/episodes", response_model=SubmissionResponse, status_code=202)
@limiter.limit(write_rate_limit)
async def submit_episode(
    request: Request,
    episode_name: str = Form(...),
    pdf_file: UploadFile = File(...),
):
    """
    Submit a new episode for script generation.

    Validation failures return 422 and nothing is started. An episode that
    already has a workflow row is reported as resolved. Otherwise the
    submission runs in the background; its progress is visible through the
    episode's view and event stream.
    """
    coordinator = _coordinator(request)
    upload = await _read_upload(pdf_file)
    try:
        task, started = await coordinator.submit(episode_name, upload)
    except ValidationError as e:
        raise _to_http_error(e) from e

    name = episode_name.strip()
    state = SubmissionState.SUBMITTING.value
    if task.done() and not task.cancelled() and task.exception() is None:
        state = task.result().state.value
    return SubmissionResponse(episode_name=name, started=started, state=state)


@router.get("/selection", response_model=SelectionResponse)
async def get_selection(request: Request):
    """Return the currently selected episode."""
    session = _coordinator(request).session
    return SelectionResponse(episode_name=session.episode_name if session else None)


@router.put("/selection", response_model=SelectionResponse)
async def select_episode(request: Request, body: SelectionRequest):
    """Select an episode, replacing the previous selection."""
    session = await _coordinator(request).select(body.episode_name)
    return SelectionResponse(episode_name=session.episode_name)


@router.delete("/selection", response_model=SelectionResponse)
async def clear_selection(request: Request):
    """Clear the selection and stop its polling and subscriptions."""
    await _coordinator(request).deselect()
    return SelectionResponse(episode_name=None)


@router.get("/episodes/{episode_name}/view")
async def get_episode_view(request: Request, episode_name: str):
    """
    Return the reconciled view of an episode, selecting it if needed.

    Returns:
        dict: Statuses, links, derived facts, badges, button state and notices.
    """
    session = await _coordinator(request).select(episode_name)
    return session.render()


@router.post("/episodes/{episode_name}/refresh", response_model=RefreshResponse)
async def refresh_episode(request: Request, episode_name: str):
    """Re-read the episode from the store immediately."""
    session = await _coordinator(request).select(episode_name)
    notice = await session.refresh()
    return RefreshResponse(notice=notice.to_dict())


async def _stream_view(request: Request, coordinator: DashboardCoordinator, episode_name: str):
    """
    Yield SSE `view` events whenever the episode view changes.

    Ends with a `done` event when the client disconnects or another episode
    is selected.
    """
    interval = getattr(request.app.state.config, "WEB_STREAM_INTERVAL", 1.0)
    last_version = None
    while True:
        session = coordinator.session
        if session is None or session.episode_name != episode_name:
            yield f"event: done\ndata: {json.dumps({'status': 'deselected'})}\n\n"
            return
        if await request.is_disconnected():
            return
        version = session.reconciler.version
        if version != last_version:
            last_version = version
            yield f"event: view\ndata: {json.dumps(session.render())}\n\n"
        await asyncio.sleep(interval)


@router.get("/episodes/{episode_name}/events")
async def stream_episode_events(request: Request, episode_name: str):
    """
    Stream the episode view as Server-Sent Events.

    Returns:
        StreamingResponse: `view` events carrying the rendered view after every change.
    """
    coordinator = _coordinator(request)
    await coordinator.select(episode_name)
    return StreamingResponse(
        _stream_view(request, coordinator, episode_name),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )


async def _run_action(request: Request, episode_name: str, name: str, *args) -> ActionResponse:
    coordinator = _coordinator(request)
    session = await coordinator.select(episode_name)
    action = getattr(coordinator.actions(session), name)
    try:
        result = await action(*args)
    except (ValidationError, EpisodeNotFoundError, ActionNotAllowedError, StoreWriteError, StorageError) as e:
        raise _to_http_error(e) from e
    return ActionResponse(
        action=result.action,
        notice=result.notice.to_dict(),
        audio_triggered=result.audio_triggered,
    )


@router.post("/episodes/{episode_name}/approve", response_model=ActionResponse)
@limiter.limit(write_rate_limit)
async def approve_scripts(request: Request, episode_name: str):
    """Approve the episode's scripts and start audio generation."""
    return await _run_action(request, episode_name, "approve_scripts")


@router.post("/episodes/{episode_name}/text-files", response_model=ActionResponse)
@limiter.limit(write_rate_limit)
async def generate_text_files(request: Request, episode_name: str):
    """Queue text files generation."""
    return await _run_action(request, episode_name, "generate_text_files")


@router.post("/episodes/{episode_name}/assets", response_model=ActionResponse)
@limiter.limit(write_rate_limit)
async def generate_assets(request: Request, episode_name: str):
    """Queue episode assets generation."""
    return await _run_action(request, episode_name, "generate_assets")


@router.post("/episodes/{episode_name}/publish", response_model=ActionResponse)
@limiter.limit(write_rate_limit)
async def publish_episode(
    request: Request,
    episode_name: str,
    scheduled_date: Optional[str] = Form(None),
    cover_art: Optional[UploadFile] = File(None),
):
    """Upload cover art and schedule the episode on Podbean."""
    upload = await _read_upload(cover_art)
    return await _run_action(request, episode_name, "publish", scheduled_date, upload)
