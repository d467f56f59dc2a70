from pydantic import AnyHttpUrl, BaseModel, Field, field_validator
from typing import List, Optional, Dict, Any

from podcaster.jobs.models import DeepDiveOption, JobStatus


class PodcastRequest(BaseModel):
    """Request body for POST /podcasts. Why available: Carries the article URL and deep-dive option; pydantic rejects bad URLs/options before a job exists."""

    url: AnyHttpUrl = Field(..., description="http(s) URL of the web article to turn into a podcast")
    deep_dive_option: DeepDiveOption = Field(
        DeepDiveOption.RETAIN,
        description="CONDENSE (key points only), RETAIN (cover every main point) or EXPAND (add background)",
    )


class PodcastRequestResponse(BaseModel):
    """Response for POST /podcasts. Why available: Clients poll /podcasts/{job_id}/status with job_id until COMPLETED or FAILED."""

    job_id: str
    status: JobStatus


class JobResult(BaseModel):
    """Final podcast data, present only when the job is COMPLETED."""

    title: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    transcript: Optional[Dict[str, Any]] = None
    audio_url: Optional[str] = Field(None, description="Reference to the final audio; empty for a dialogue with no segments")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class JobStatusResponse(BaseModel):
    """Response for GET /podcasts/{job_id}/status: job state, failure info and (on completion) the result. Why available: The only way clients observe downstream progress and failures."""

    job_id: str
    status: JobStatus
    error_message: Optional[str] = None
    error_step: Optional[JobStatus] = None
    result: Optional[JobResult] = None
    created_at: float
    updated_at: float


# -------------------------
# Structured LLM output
# -------------------------


class PodcastSummary(BaseModel):
    """Structured summary returned by the text generator. title and summaryPoints are required."""

    title: str = Field(..., min_length=1)
    summaryPoints: List[str]
    keyTopics: List[str] = Field(default_factory=list)
    estimatedDurationMinutes: Optional[float] = None


class DialogueSegment(BaseModel):
    """One dialogue turn: who speaks and what they say."""

    speaker: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)

    @field_validator("speaker", "text")
    @classmethod
    def not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class PodcastDialogue(BaseModel):
    """Structured dialogue returned by the text generator. segments is required and ordered; its index is each segment's identity."""

    title: Optional[str] = None
    segments: List[DialogueSegment]
