"""
Wires stores, collaborators and stages onto one EventBus.

  podcast.requested                -> ContentStage
  podcast.scraped                  -> DialogueStage
  podcast.segment.audio_requested  -> AudioSegmentStage (one task per segment)
  podcast.all_audio_generated      -> AssemblyStage
  podcast.completed / .failed      -> terminal listener (log + idempotent cleanup)
"""
import logging
import os
from typing import Optional

from podcaster.audio.stitcher import get_stitcher
from podcaster.audio.storage import AudioStore
from podcaster.core.config import settings
from podcaster.core.errors import JobNotFoundError
from podcaster.events.bus import (
    ALL_AUDIO_GENERATED,
    PODCAST_COMPLETED,
    PODCAST_FAILED,
    PODCAST_REQUESTED,
    PODCAST_SCRAPED,
    SEGMENT_AUDIO_GENERATED,
    SEGMENT_AUDIO_REQUESTED,
    EventBus,
)
from podcaster.events.payloads import PodcastCompleted, PodcastFailed, PodcastRequested, SegmentAudioGenerated
from podcaster.jobs.models import DeepDiveOption, Job, JobStatus
from podcaster.jobs.store import JobStore
from podcaster.jobs.tracker import CompletionTracker
from podcaster.llm.generator import get_text_generator
from podcaster.models.schemas import JobStatusResponse
from podcaster.pipeline.assembly import AssemblyStage
from podcaster.pipeline.content import ContentStage
from podcaster.pipeline.dialogue import DialogueStage
from podcaster.pipeline.failure import FailureHandler
from podcaster.pipeline.segments import AudioSegmentStage
from podcaster.scraper.extractor import ArticleExtractor
from podcaster.tts.synthesizer import get_synthesizer

logger = logging.getLogger(__name__)


class PodcastPipeline:
    """Entry point for the HTTP layer: submit jobs, read status views, locate finished audio.
    Why available: Owns the single bus and the per-process state (job index, completion tracker) every stage shares."""

    def __init__(self, store: JobStore, audio_store: AudioStore, scraper, generator, synthesizer, stitcher, bus: Optional[EventBus] = None, discarded_memory: Optional[int] = None):
        self.store = store
        self.audio_store = audio_store
        self.bus = bus or EventBus()
        self.tracker = CompletionTracker(store, discarded_memory=discarded_memory or settings.discarded_job_memory)
        self.failures = FailureHandler(store, self.bus, self.tracker, audio_store)

        self.content = ContentStage(store, self.bus, scraper, self.failures)
        self.dialogue = DialogueStage(store, self.bus, generator, self.failures)
        self.segments = AudioSegmentStage(store, self.bus, synthesizer, self.tracker, self.failures)
        self.assembly = AssemblyStage(store, self.bus, self.tracker, stitcher, audio_store, self.failures)

        self.bus.subscribe(PODCAST_REQUESTED, self.content.handle)
        self.bus.subscribe(PODCAST_SCRAPED, self.dialogue.handle)
        self.bus.subscribe(SEGMENT_AUDIO_REQUESTED, self.segments.handle)
        self.bus.subscribe(ALL_AUDIO_GENERATED, self.assembly.handle)
        self.bus.subscribe(SEGMENT_AUDIO_GENERATED, self._on_segment_generated)
        self.bus.subscribe(PODCAST_COMPLETED, self._on_terminal)
        self.bus.subscribe(PODCAST_FAILED, self._on_terminal)

    def start(self) -> int:
        """Load persisted jobs. Jobs interrupted mid-stage by a restart are not resumed."""
        loaded = self.store.load()
        logger.info("pipeline_started", extra={"jobs_loaded": loaded})
        return loaded

    async def submit(self, url: str, user_id: str, option: DeepDiveOption = DeepDiveOption.RETAIN) -> Job:
        """Create a PENDING job and publish podcast.requested. Returns as soon as the job is persisted; all later progress is observed by polling."""
        job = await self.store.create(url, user_id, option)
        self.bus.publish(
            PODCAST_REQUESTED,
            PodcastRequested(job_id=job.job_id, url=job.url, user_id=job.user_id, deep_dive_option=job.deep_dive_option),
        )
        return job

    def status_view(self, job_id: str, caller_id: str) -> JobStatusResponse:
        return self.store.status_view(job_id, caller_id)

    def audio_path(self, job_id: str, caller_id: str) -> str:
        """Path of the finished audio for a COMPLETED job owned by caller_id. Raises JobNotFoundError otherwise."""
        job = self.store.get(job_id)
        if job is None or job.user_id != str(caller_id) or job.status != JobStatus.COMPLETED or not job.audio_url:
            raise JobNotFoundError(f"No audio for job {job_id}")
        path = self.audio_store.path_for(job_id)
        if not os.path.isfile(path):
            raise JobNotFoundError(f"No audio for job {job_id}")
        return path

    async def drain(self) -> None:
        await self.bus.drain()

    def _on_segment_generated(self, event: SegmentAudioGenerated) -> None:
        progress = self.tracker.progress(event.job_id)
        logger.info(
            "segment_progress",
            extra={
                "job_id": event.job_id,
                "segment_index": event.segment_index,
                "completed": progress[0] if progress else None,
                "total": event.total_segments,
            },
        )

    def _on_terminal(self, event) -> None:
        if isinstance(event, PodcastCompleted):
            logger.info("podcast_completed", extra={"job_id": event.job_id, "audio_url": event.job.audio_url if event.job else None})
        elif isinstance(event, PodcastFailed):
            logger.info("podcast_failed", extra={"job_id": event.job_id, "step": event.failed_step.value})
        self.failures.cleanup(event.job_id)


def build_default_pipeline(data_root: Optional[str] = None) -> PodcastPipeline:
    """Pipeline with collaborators chosen by settings (OpenAI or stub providers, concat or ffmpeg stitcher)."""
    data_root = data_root or settings.data_root
    store = JobStore(data_root)
    audio_store = AudioStore(data_root, temp_root=settings.temp_root if data_root == settings.data_root else None)
    return PodcastPipeline(
        store=store,
        audio_store=audio_store,
        scraper=ArticleExtractor(),
        generator=get_text_generator(),
        synthesizer=get_synthesizer(),
        stitcher=get_stitcher(audio_store),
    )
