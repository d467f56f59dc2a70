"""
Content generation stage: podcast.scraped -> one podcast.segment.audio_requested per dialogue segment.
Summary and dialogue are generated concurrently from versioned prompts, then validated with pydantic.
"""
import asyncio
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from podcaster.core.config import settings
from podcaster.core.errors import LlmError, describe
from podcaster.events.bus import PODCAST_COMPLETED, SEGMENT_AUDIO_REQUESTED, EventBus
from podcaster.events.payloads import PodcastCompleted, PodcastScraped, SegmentAudioRequested
from podcaster.jobs.models import DeepDiveOption, JobStatus
from podcaster.jobs.store import JobStore
from podcaster.models.schemas import PodcastDialogue, PodcastSummary
from podcaster.pipeline.failure import FailureHandler
from podcaster.prompts.loader import load_prompts, render

logger = logging.getLogger(__name__)

SUMMARY_COMPONENT = "podcast_summary"
DIALOGUE_COMPONENT = "podcast_dialogue"

DEEP_DIVE_GUIDANCE: Dict[DeepDiveOption, str] = {
    DeepDiveOption.CONDENSE: "Keep it short: cover only the key points of the article.",
    DeepDiveOption.RETAIN: "Cover every main point of the article without adding outside material.",
    DeepDiveOption.EXPAND: "Go deeper: cover every main point and add helpful background and examples.",
}


def truncate_article(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "\n[...]"


def build_prompt(component: str, title: str, article: str, option: DeepDiveOption, version: Optional[str] = None) -> Tuple[str, str, str]:
    """Render (system, user, schema) for component with the article, its title and the deep-dive guidance filled in."""
    prompts = load_prompts(component, version=version)
    user = render(
        prompts.get("user", ""),
        title=title,
        article=article,
        deep_dive_guidance=DEEP_DIVE_GUIDANCE[DeepDiveOption(option)],
    )
    return prompts.get("system", ""), user, prompts.get("schema", "")


def validate_summary(data: Dict[str, Any]) -> PodcastSummary:
    try:
        return PodcastSummary.model_validate(data)
    except ValidationError as e:
        raise LlmError(f"Invalid summary structure: {e}", "RESPONSE_FORMAT") from e


def validate_dialogue(data: Dict[str, Any]) -> PodcastDialogue:
    """Validate generated dialogue; a missing or malformed segments list is a hard failure. An empty list is valid."""
    try:
        return PodcastDialogue.model_validate(data)
    except ValidationError as e:
        raise LlmError(f"Invalid dialogue structure: {e}", "RESPONSE_FORMAT") from e


class DialogueStage:
    """Generates summary and dialogue, stores them on the job and fans out one synthesis request per segment.
    Why available: Second stage; the segment count it records is the total the completion tracker waits for."""

    def __init__(self, store: JobStore, bus: EventBus, generator, failures: FailureHandler, max_article_chars: Optional[int] = None):
        self.store = store
        self.bus = bus
        self.generator = generator
        self.failures = failures
        self.max_article_chars = max_article_chars or settings.max_article_chars

    async def _generate(self, component: str, event: PodcastScraped, article: str) -> Dict[str, Any]:
        system, user, schema = build_prompt(component, event.title, article, event.deep_dive_option)
        return await self.generator.generate_json(user, schema_description=schema, system_prompt=system)

    async def generate(self, event: PodcastScraped) -> Tuple[PodcastSummary, PodcastDialogue]:
        """Run both generations concurrently and validate them. Raises the first failure after both have settled."""
        article = truncate_article(event.body_text, self.max_article_chars)
        results = await asyncio.gather(
            self._generate(SUMMARY_COMPONENT, event, article),
            self._generate(DIALOGUE_COMPONENT, event, article),
            return_exceptions=True,
        )
        for r in results:
            if isinstance(r, BaseException):
                raise r
        summary_data, dialogue_data = results
        return validate_summary(summary_data), validate_dialogue(dialogue_data)

    async def handle(self, event: PodcastScraped) -> None:
        job_id = event.job_id
        try:
            summary, dialogue = await self.generate(event)
            title = summary.title or dialogue.title or event.title
            count = len(dialogue.segments)
            fields = dict(
                title=title,
                summary=summary.model_dump(),
                transcript=dialogue.model_dump(),
                job_metadata={"segment_count": count},
            )
            if count == 0:
                await self.store.update_status(job_id, JobStatus.COMPLETED, **fields)
            else:
                await self.store.update_status(job_id, JobStatus.GENERATING_AUDIO, **fields)
        except Exception as e:
            await self.failures.fail_job(job_id, JobStatus.GENERATING_CONTENT, f"Content generation failed: {describe(e)}", exc=e)
            return

        if count == 0:
            logger.warning("dialogue_without_segments", extra={"job_id": job_id})
            self.bus.publish(PODCAST_COMPLETED, PodcastCompleted(job_id=job_id, job=self.store.snapshot(job_id)))
            return

        logger.info("dialogue_stage_done", extra={"job_id": job_id, "segment_count": count})
        for index, segment in enumerate(dialogue.segments):
            self.bus.publish(
                SEGMENT_AUDIO_REQUESTED,
                SegmentAudioRequested(
                    job_id=job_id,
                    segment_index=index,
                    segment_text=segment.text,
                    segment_speaker=segment.speaker,
                    total_segments=count,
                    user_id=event.user_id,
                ),
            )
