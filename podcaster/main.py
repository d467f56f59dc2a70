import logging
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import FileResponse

from podcaster.core.config import settings
from podcaster.core.errors import JobNotFoundError, JobPersistenceError, as_http_500
from podcaster.guardrails.rate_limit import SimpleRateLimiter
from podcaster.models.schemas import JobStatusResponse, PodcastRequest, PodcastRequestResponse
from podcaster.observability.log_format import configure_logging
from podcaster.observability.middleware import RequestTimingMiddleware, get_request_id
from podcaster.pipeline.orchestrator import PodcastPipeline, build_default_pipeline

logger = logging.getLogger(__name__)

APP_NAME = "Article Podcaster"

RATE_LIMIT_REQUESTS = 20
RATE_LIMIT_WINDOW_SECONDS = 60


def _caller_id(x_user_id: Optional[str]) -> str:
    """Caller identity from the X-User-Id header (set by the auth proxy). Missing or blank -> 401."""
    caller = (x_user_id or "").strip()
    if not caller:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return caller


def create_app(pipeline: Optional[PodcastPipeline] = None, rate_limiter: Optional[SimpleRateLimiter] = None) -> FastAPI:
    """Build the API around a pipeline (default: collaborators chosen by settings) and load persisted jobs."""
    pipeline = pipeline or build_default_pipeline()
    rate_limiter = rate_limiter or SimpleRateLimiter(max_requests=RATE_LIMIT_REQUESTS, window_seconds=RATE_LIMIT_WINDOW_SECONDS)
    pipeline.start()

    app = FastAPI(title=APP_NAME)
    app.add_middleware(RequestTimingMiddleware)
    app.state.pipeline = pipeline

    # -------------------------
    # Root
    # -------------------------

    @app.get("/")
    def root():
        """Minimal welcome payload with app name and docs URL."""
        return {"app": APP_NAME, "docs": "/docs"}

    @app.get("/health")
    def health():
        """Returns 200 OK with status. Used by load balancers and health checks to see if the API is up."""
        return {"status": "ok"}

    # -------------------------
    # Podcasts
    # -------------------------

    @app.post("/podcasts", response_model=PodcastRequestResponse, status_code=202)
    async def submit_podcast(req: PodcastRequest, request: Request, x_user_id: Optional[str] = Header(None)):
        """Create a podcast job for an article URL and start the pipeline. Returns immediately with the PENDING job id.
        Why available: The only write entry point; clients then poll /podcasts/{job_id}/status."""
        caller = _caller_id(x_user_id)
        rate_limiter.check(request, key=caller)
        try:
            job = await pipeline.submit(str(req.url), caller, req.deep_dive_option)
        except JobPersistenceError as e:
            raise as_http_500(e)
        logger.info(
            "podcast_submitted",
            extra={"job_id": job.job_id, "user_id": caller, "request_id": get_request_id(request)},
        )
        return PodcastRequestResponse(job_id=job.job_id, status=job.status)

    @app.get("/podcasts/{job_id}/status", response_model=JobStatusResponse)
    def podcast_status(job_id: str, x_user_id: Optional[str] = Header(None)):
        """Current status of a job owned by the caller; result is included once COMPLETED, error_message/error_step once FAILED.
        Why available: All downstream progress and failures are observable only by polling this endpoint."""
        caller = _caller_id(x_user_id)
        try:
            return pipeline.status_view(job_id, caller)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="Job not found")
        except Exception as e:
            raise as_http_500(e)

    @app.get("/podcasts/{job_id}/audio")
    def podcast_audio(job_id: str, x_user_id: Optional[str] = Header(None)):
        """Serve the finished MP3 of a COMPLETED job owned by the caller."""
        caller = _caller_id(x_user_id)
        try:
            path = pipeline.audio_path(job_id, caller)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="Audio not found")
        return FileResponse(path, media_type="audio/mpeg", filename=f"podcast-{job_id}.mp3")

    return app


configure_logging(settings.log_level)

app = create_app()
