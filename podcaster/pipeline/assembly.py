"""Assembly stage: podcast.all_audio_generated -> podcast.completed."""
import logging

from podcaster.audio.storage import AudioStore
from podcaster.core.errors import describe
from podcaster.events.bus import PODCAST_COMPLETED, EventBus
from podcaster.events.payloads import AllAudioGenerated, PodcastCompleted
from podcaster.jobs.models import JobStatus
from podcaster.jobs.store import JobStore
from podcaster.jobs.tracker import CompletionTracker
from podcaster.pipeline.failure import FailureHandler

logger = logging.getLogger(__name__)


class AssemblyStage:
    """Stitches the ordered segment audio, saves it and completes the job. Tracker entry and temp workspace are always released."""

    def __init__(self, store: JobStore, bus: EventBus, tracker: CompletionTracker, stitcher, audio_store: AudioStore, failures: FailureHandler):
        self.store = store
        self.bus = bus
        self.tracker = tracker
        self.stitcher = stitcher
        self.audio_store = audio_store
        self.failures = failures

    async def handle(self, event: AllAudioGenerated) -> None:
        job_id = event.job_id
        try:
            await self.store.update_status(job_id, JobStatus.STITCHING)
            buffers = self.tracker.retrieve_ordered_buffers(job_id)
            combined = await self.stitcher.stitch(job_id, buffers)
            audio_url = await self.audio_store.save(job_id, combined)
            await self.store.update_status(
                job_id,
                JobStatus.COMPLETED,
                audio_url=audio_url,
                job_metadata={"audio_bytes": len(combined)},
            )
        except Exception as e:
            await self.failures.fail_job(job_id, JobStatus.STITCHING, f"Audio stitching failed: {describe(e)}", exc=e)
            return
        finally:
            self.failures.cleanup(job_id)

        logger.info("assembly_stage_done", extra={"job_id": job_id, "audio_url": audio_url})
        self.bus.publish(PODCAST_COMPLETED, PodcastCompleted(job_id=job_id, job=self.store.snapshot(job_id)))
