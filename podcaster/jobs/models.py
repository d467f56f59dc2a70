"""Podcast job record and its status state machine."""
import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


class JobStatus(str, enum.Enum):
    PENDING = "PENDING"
    SCRAPING = "SCRAPING"
    GENERATING_CONTENT = "GENERATING_CONTENT"
    GENERATING_AUDIO = "GENERATING_AUDIO"
    STITCHING = "STITCHING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DeepDiveOption(str, enum.Enum):
    CONDENSE = "CONDENSE"
    RETAIN = "RETAIN"
    EXPAND = "EXPAND"


# Forward order of the happy path; FAILED sits outside it.
STATUS_ORDER: List[JobStatus] = [
    JobStatus.PENDING,
    JobStatus.SCRAPING,
    JobStatus.GENERATING_CONTENT,
    JobStatus.GENERATING_AUDIO,
    JobStatus.STITCHING,
    JobStatus.COMPLETED,
]

TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})


def is_terminal(status: JobStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: JobStatus, new: JobStatus) -> bool:
    """Returns True if a job in `current` may move to `new`: forward along STATUS_ORDER (skips allowed, same status allowed for field-only updates), or to FAILED from any non-terminal status. Terminal statuses never change.
    Why available: JobStore enforces this on every write so stage bugs cannot move a job backward or reopen a finished job."""
    if is_terminal(current):
        return False
    if new == JobStatus.FAILED:
        return True
    return STATUS_ORDER.index(new) >= STATUS_ORDER.index(current)


@dataclass
class Job:
    """A single podcast job: owner, source url, deep-dive option, status, error info, generated content and final audio reference.
    Why available: The durable record clients poll; stages mutate it only through JobStore.update_status."""

    job_id: str
    user_id: str
    url: str
    deep_dive_option: DeepDiveOption
    status: JobStatus
    created_at: float
    updated_at: float
    error_message: Optional[str] = None
    error_step: Optional[JobStatus] = None
    title: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    transcript: Optional[Dict[str, Any]] = None
    audio_url: Optional[str] = None
    job_metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["deep_dive_option"] = self.deep_dive_option.value
        data["status"] = self.status.value
        data["error_step"] = self.error_step.value if self.error_step else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        error_step = data.get("error_step")
        return cls(
            job_id=str(data["job_id"]),
            user_id=str(data["user_id"]),
            url=data["url"],
            deep_dive_option=DeepDiveOption(data["deep_dive_option"]),
            status=JobStatus(data["status"]),
            created_at=float(data["created_at"]),
            updated_at=float(data["updated_at"]),
            error_message=data.get("error_message"),
            error_step=JobStatus(error_step) if error_step else None,
            title=data.get("title"),
            summary=data.get("summary"),
            transcript=data.get("transcript"),
            audio_url=data.get("audio_url"),
            job_metadata=dict(data.get("job_metadata") or {}),
        )
