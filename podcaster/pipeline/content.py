"""Scraping stage: podcast.requested -> podcast.scraped."""
import logging

from podcaster.core.errors import describe
from podcaster.events.bus import PODCAST_SCRAPED, EventBus
from podcaster.events.payloads import PodcastRequested, PodcastScraped
from podcaster.jobs.models import JobStatus
from podcaster.jobs.store import JobStore
from podcaster.pipeline.failure import FailureHandler

logger = logging.getLogger(__name__)


class ContentStage:
    """Fetch the article for a new job, store its title and hand the text to the dialogue stage.
    Why available: First stage after submission; any scraper error fails the job at SCRAPING."""

    def __init__(self, store: JobStore, bus: EventBus, scraper, failures: FailureHandler):
        self.store = store
        self.bus = bus
        self.scraper = scraper
        self.failures = failures

    async def handle(self, event: PodcastRequested) -> None:
        job_id = event.job_id
        try:
            await self.store.update_status(job_id, JobStatus.SCRAPING)
            result = await self.scraper.extract(event.url)
            await self.store.update_status(job_id, JobStatus.GENERATING_CONTENT, title=result.title)
        except Exception as e:
            await self.failures.fail_job(job_id, JobStatus.SCRAPING, f"Scraping failed: {describe(e)}", exc=e)
            return

        logger.info("content_stage_done", extra={"job_id": job_id, "chars": len(result.body_text)})
        self.bus.publish(
            PODCAST_SCRAPED,
            PodcastScraped(
                job_id=job_id,
                title=result.title,
                body_text=result.body_text,
                user_id=event.user_id,
                deep_dive_option=event.deep_dive_option,
            ),
        )
