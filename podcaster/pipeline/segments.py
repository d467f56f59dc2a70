"""Per-segment speech synthesis: podcast.segment.audio_requested -> podcast.segment.audio_generated (+ podcast.all_audio_generated once)."""
import logging

from podcaster.core.errors import describe
from podcaster.events.bus import ALL_AUDIO_GENERATED, SEGMENT_AUDIO_GENERATED, EventBus
from podcaster.events.payloads import AllAudioGenerated, SegmentAudioGenerated, SegmentAudioRequested
from podcaster.jobs.models import JobStatus, is_terminal
from podcaster.jobs.store import JobStore
from podcaster.jobs.tracker import CompletionTracker
from podcaster.pipeline.failure import FailureHandler
from podcaster.tts.synthesizer import resolve_voice

logger = logging.getLogger(__name__)


class AudioSegmentStage:
    """Synthesizes one segment, records it in the completion tracker and, for the single call that completes the set, triggers assembly.
    Why available: Fan-out leaf; runs once per dialogue segment, concurrently with its siblings."""

    def __init__(self, store: JobStore, bus: EventBus, synthesizer, tracker: CompletionTracker, failures: FailureHandler):
        self.store = store
        self.bus = bus
        self.synthesizer = synthesizer
        self.tracker = tracker
        self.failures = failures

    async def handle(self, event: SegmentAudioRequested) -> None:
        job_id, index = event.job_id, event.segment_index
        job = self.store.get(job_id)
        if job is None or is_terminal(job.status):
            logger.info("segment_skipped_inactive_job", extra={"job_id": job_id, "segment_index": index})
            return

        voice = resolve_voice(event.segment_speaker)
        try:
            data = await self.synthesizer.synthesize(event.segment_text, voice)
            all_complete = await self.tracker.store_segment_audio(job_id, index, data, total=event.total_segments)
        except Exception as e:
            await self.failures.fail_job(
                job_id,
                JobStatus.GENERATING_AUDIO,
                f"TTS generation failed for segment {index}: {describe(e)}",
                exc=e,
            )
            return

        self.bus.publish(
            SEGMENT_AUDIO_GENERATED,
            SegmentAudioGenerated(job_id=job_id, segment_index=index, total_segments=event.total_segments),
        )
        if all_complete:
            logger.info("all_segments_generated", extra={"job_id": job_id, "total": event.total_segments})
            self.bus.publish(
                ALL_AUDIO_GENERATED,
                AllAudioGenerated(job_id=job_id, user_id=event.user_id, total_segments=event.total_segments),
            )
