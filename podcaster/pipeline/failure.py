"""
Central failure path for every stage: mark the job FAILED at the step that was running, publish podcast.failed, release per-job resources.
"""
import logging
from typing import Optional

from podcaster.audio.storage import AudioStore
from podcaster.core.config import settings
from podcaster.core.errors import InvalidTransitionError, JobNotFoundError, JobPersistenceError
from podcaster.events.bus import PODCAST_FAILED, EventBus
from podcaster.events.payloads import PodcastFailed
from podcaster.jobs.models import JobStatus, is_terminal
from podcaster.jobs.store import JobStore
from podcaster.jobs.tracker import CompletionTracker

logger = logging.getLogger(__name__)


def truncate_message(message: str, limit: int) -> str:
    message = message or ""
    if len(message) <= limit:
        return message
    return message[: max(limit - 3, 0)] + "..."


class FailureHandler:
    """Terminates a job after any stage error. A job that is already terminal is left untouched (no second podcast.failed); cleanup runs either way.
    Why available: Every stage funnels its exceptions here so FAILED/error_step and resource release are handled in one place."""

    def __init__(
        self,
        store: JobStore,
        bus: EventBus,
        tracker: CompletionTracker,
        audio_store: AudioStore,
        max_message_length: Optional[int] = None,
    ):
        self.store = store
        self.bus = bus
        self.tracker = tracker
        self.audio_store = audio_store
        self.max_message_length = max_message_length or settings.error_message_max_length

    def cleanup(self, job_id: str) -> None:
        """Drop the tracker entry and temp workspace for job_id. Idempotent."""
        self.tracker.discard(job_id)
        self.audio_store.clear_temp(job_id)

    async def fail_job(self, job_id: str, failed_step: JobStatus, message: str, exc: Optional[BaseException] = None) -> bool:
        """Persist FAILED with error_step=failed_step and the (truncated) message, publish podcast.failed, then clean up. Returns True if this call failed the job."""
        message = truncate_message(message, self.max_message_length)
        logger.error(
            "job_failed",
            extra={"job_id": job_id, "step": JobStatus(failed_step).value, "error": message},
            exc_info=exc,
        )
        try:
            job = self.store.get(job_id)
            if job is None:
                logger.error("fail_unknown_job", extra={"job_id": job_id})
                return False
            if is_terminal(job.status):
                logger.warning(
                    "fail_ignored_terminal_job",
                    extra={"job_id": job_id, "status": job.status.value, "step": JobStatus(failed_step).value},
                )
                return False
            try:
                await self.store.update_status(
                    job_id,
                    JobStatus.FAILED,
                    error_message=message,
                    error_step=failed_step,
                )
            except JobPersistenceError:
                # In-memory record is FAILED; only the durable copy is behind.
                logger.error("fail_status_write_failed", extra={"job_id": job_id}, exc_info=True)
            except (InvalidTransitionError, JobNotFoundError):
                logger.warning("fail_status_rejected", extra={"job_id": job_id}, exc_info=True)
                return False

            self.bus.publish(PODCAST_FAILED, PodcastFailed(job_id=job_id, failed_step=JobStatus(failed_step), error_message=message))
            return True
        finally:
            self.cleanup(job_id)
