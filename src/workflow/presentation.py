"""Display data for the dashboard: badges, link lists and button labels.

Everything here is a pure function of an `EpisodeView`.
"""

from typing import Any, Dict, List, Optional

from src.workflow.links import is_valid_link
from src.workflow.reconciler import EpisodeView
from src.workflow.status import PodcastStatus, ProcessStatus, ScriptStatus

SCRIPT_LINK_LABELS = [
    ("episode_interview_script_1", "Script #1"),
    ("episode_interview_script_2", "Script #2"),
    ("episode_interview_script_3", "Script #3"),
    ("episode_interview_script_4", "Script #4"),
    ("episode_interview_full_script", "Full Script"),
    ("episode_interview_file", "Interview File"),
]

TEXT_FILE_LABELS = [
    ("episode_titles", "Episode Titles"),
    ("episode_description", "Episode Description"),
    ("episode_intro_transcript", "Episode Intro Transcript"),
    ("linkedin_post", "LinkedIn Post Copy"),
    ("x_post", "X Post Copy"),
    ("podcast_excerpt", "Podcast Excerpt"),
]

ASSET_LABELS = [
    ("show_notes", "Show Notes"),
    ("intro_audio", "Episode Intro Audio File"),
    ("master_audio", "Master Audio File"),
]

NOT_STARTED = "Not started"

SCRIPT_STATUS_DESCRIPTIONS = {
    ScriptStatus.PENDING: "Scripts have been generated but need approval.",
    ScriptStatus.APPROVED: "Scripts have been approved and are ready for audio generation.",
    ScriptStatus.AUDIO_GENERATED: "Audio has been generated from the approved scripts.",
}

TEXT_FILES_DESCRIPTIONS = {
    None: "Text files generation has not been started.",
    ProcessStatus.PENDING: "Text files generation is queued.",
    ProcessStatus.PROCESSING: "Text files are being generated.",
    ProcessStatus.COMPLETED: "All text files have been generated successfully.",
    ProcessStatus.FAILED: "There was an error generating text files.",
}

PODCAST_DESCRIPTIONS = {
    None: "Podcast assets generation has not been started.",
    PodcastStatus.PENDING: "Podcast assets generation is queued.",
    PodcastStatus.PROCESSING: "Podcast assets are being generated.",
    PodcastStatus.COMPLETED: "All podcast assets have been generated.",
    PodcastStatus.READY_TO_PUBLISH: "Podcast is ready to be published to Podbean.",
    PodcastStatus.PUBLISHING: "Podcast is being published to Podbean.",
    PodcastStatus.FAILED: "There was an error generating podcast assets.",
}

# Badge tone per status value
_TONES = {
    "Pending": "warning",
    "Processing": "info",
    "Publishing": "info",
    "Completed": "success",
    "Approved": "success",
    "Audio Generated": "highlight",
    "Ready to Publish": "highlight",
    "Failed": "danger",
}


def _badge(status, descriptions: Dict) -> Dict[str, Optional[str]]:
    if status is None:
        return {"label": NOT_STARTED, "tone": "muted", "description": descriptions.get(None)}
    return {
        "label": status.value,
        "tone": _TONES.get(status.value, "muted"),
        "description": descriptions.get(status),
    }


def status_badges(view: EpisodeView) -> Dict[str, Dict[str, Optional[str]]]:
    return {
        "script": _badge(view.script_status, SCRIPT_STATUS_DESCRIPTIONS),
        "text_files": _badge(view.text_files_status, TEXT_FILES_DESCRIPTIONS),
        "podcast": _badge(view.podcast_status, PODCAST_DESCRIPTIONS),
    }


def _link_list(values: Dict[str, Optional[str]], labels, view_only=()) -> List[Dict[str, Any]]:
    items = []
    for key, label in labels:
        url = values.get(key)
        available = is_valid_link(url)
        items.append({
            "key": key,
            "label": label,
            "url": url if available else None,
            "available": available,
            "action": "View Only" if key in view_only else "View or Update",
        })
    return items


def script_link_list(view: EpisodeView) -> List[Dict[str, Any]]:
    return _link_list(view.script_links.to_dict(), SCRIPT_LINK_LABELS)


def text_file_list(view: EpisodeView) -> List[Dict[str, Any]]:
    return _link_list(view.text_file_links, TEXT_FILE_LABELS)


def asset_list(view: EpisodeView) -> List[Dict[str, Any]]:
    audio = {key for key, _ in ASSET_LABELS if "audio" in key}
    return _link_list(view.asset_links, ASSET_LABELS, view_only=audio)


def audio_button(view: EpisodeView) -> Dict[str, Any]:
    """Label, tooltip and enablement of the approve / generate audio button."""
    status = view.script_status
    if not view.has_script4:
        title = "Script #4 - Summary is required for approval"
    elif status == ScriptStatus.APPROVED:
        title = "Audio generation is in progress"
    elif status == ScriptStatus.AUDIO_GENERATED:
        title = "Audio has been generated"
    else:
        title = "Generate audio for this episode"

    if status == ScriptStatus.APPROVED:
        label = "Audio Generation In Progress"
    elif status == ScriptStatus.AUDIO_GENERATED:
        label = "Audio Generated"
    elif not view.has_script4 and view.is_script_generated:
        label = "Script #4 Required"
    else:
        label = "Generate Audio"

    return {"label": label, "title": title, "enabled": view.can_approve_scripts}


def render(view: EpisodeView) -> Dict[str, Any]:
    """Everything the dashboard needs to draw one episode."""
    return {
        **view.to_dict(),
        "badges": status_badges(view),
        "scripts": script_link_list(view),
        "text_files": text_file_list(view),
        "assets": asset_list(view),
        "audio_button": audio_button(view),
    }
