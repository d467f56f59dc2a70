"""Event payloads passed between pipeline stages."""
from dataclasses import dataclass
from typing import Optional

from podcaster.jobs.models import DeepDiveOption, Job, JobStatus


@dataclass(frozen=True)
class PodcastRequested:
    job_id: str
    url: str
    user_id: str
    deep_dive_option: DeepDiveOption


@dataclass(frozen=True)
class PodcastScraped:
    job_id: str
    title: str
    body_text: str
    user_id: str
    deep_dive_option: DeepDiveOption


@dataclass(frozen=True)
class SegmentAudioRequested:
    job_id: str
    segment_index: int
    segment_text: str
    segment_speaker: str
    total_segments: int
    user_id: str


@dataclass(frozen=True)
class SegmentAudioGenerated:
    job_id: str
    segment_index: int
    total_segments: int


@dataclass(frozen=True)
class AllAudioGenerated:
    job_id: str
    user_id: Optional[str]
    total_segments: int


@dataclass(frozen=True)
class PodcastCompleted:
    job_id: str
    job: Job


@dataclass(frozen=True)
class PodcastFailed:
    job_id: str
    failed_step: JobStatus
    error_message: str
