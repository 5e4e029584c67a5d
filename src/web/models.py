"""
Pydantic models for web API request/response validation.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class NoticeModel(BaseModel):
    """A transient user notice."""
    title: str = Field(..., description="Notice title")
    description: str = Field(..., description="Notice body")
    variant: Literal["default", "destructive"] = Field(default="default", description="Display variant")
    created_at: Optional[str] = Field(default=None, description="ISO 8601 creation time")


class EpisodeSummary(BaseModel):
    """One row of the episodes list."""
    id: str = Field(..., description="Workflow row ID")
    episode_name: str = Field(..., description="Episode name")
    created_at: Optional[str] = Field(default=None, description="Row creation time (ISO 8601)")
    script_status: Optional[str] = Field(default=None, description="Script approval status")
    text_files_status: Optional[str] = Field(default=None, description="Text files stage status")
    podcast_status: Optional[str] = Field(default=None, description="Podcast assets / publishing status")


class EpisodeListResponse(BaseModel):
    """Response model for the episodes list."""
    episodes: List[EpisodeSummary] = Field(..., description="Most recent episodes first")
    count: int = Field(..., description="Number of episodes returned")


class SelectionRequest(BaseModel):
    """Request model for selecting an episode."""
    episode_name: str = Field(..., min_length=1, max_length=512, description="Episode to select")

    @field_validator('episode_name')
    @classmethod
    def strip_episode_name(cls, v: str) -> str:
        """Reject names that are only whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('Episode name cannot be empty')
        return v


class SelectionResponse(BaseModel):
    """Currently selected episode, if any."""
    episode_name: Optional[str] = Field(default=None, description="Selected episode name")


class SubmissionResponse(BaseModel):
    """Response model for an accepted submission."""
    episode_name: str = Field(..., description="Trimmed episode name")
    started: bool = Field(..., description="False when a submission for this name was already in flight")
    state: str = Field(..., description="Submission state at the time of the response")


class ActionResponse(BaseModel):
    """Response model for a workflow transition."""
    action: str = Field(..., description="Transition that was performed")
    notice: NoticeModel = Field(..., description="Notice raised for the user")
    audio_triggered: Optional[bool] = Field(
        default=None, description="For approvals, whether audio generation was started"
    )


class RefreshResponse(BaseModel):
    """Response model for a manual status refresh."""
    notice: NoticeModel = Field(..., description="Result of the refresh")
