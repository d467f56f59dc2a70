"""
Durable job store: in-memory index of podcast jobs backed by one JSON document per job under <data_root>/jobs/.
The in-memory record is updated first so concurrent handlers see the newest status; the durable write follows, and a failed write rolls the record back (except FAILED).
"""
import asyncio
import json
import logging
import os
import tempfile
import time
import uuid
from typing import Any, Dict, Optional

from podcaster.core.errors import InvalidTransitionError, JobNotFoundError, JobPersistenceError
from podcaster.jobs.models import DeepDiveOption, Job, JobStatus, can_transition, is_terminal
from podcaster.models.schemas import JobResult, JobStatusResponse

logger = logging.getLogger(__name__)

JOBS_DIRNAME = "jobs"

# Fields a stage may set alongside a status change.
UPDATABLE_FIELDS = frozenset({
    "error_message",
    "error_step",
    "title",
    "summary",
    "transcript",
    "audio_url",
    "job_metadata",
})


class JobStore:
    """CRUD for podcast jobs: create at submission, status/field updates from stages, owner-scoped status views for polling.
    Why available: The durable checkpoint of the pipeline; every stage transition and the status endpoint go through it."""

    def __init__(self, data_root: str):
        self.jobs_dir = os.path.join(data_root, JOBS_DIRNAME)
        self._jobs: Dict[str, Job] = {}
        self._write_locks: Dict[str, asyncio.Lock] = {}

    # -------------------------
    # Persistence helpers
    # -------------------------

    def _path(self, job_id: str) -> str:
        return os.path.join(self.jobs_dir, f"{job_id}.json")

    def _write_file(self, job_id: str, data: Dict[str, Any]) -> None:
        """Atomically write one job document (temp file in the same dir, then rename)."""
        os.makedirs(self.jobs_dir, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.jobs_dir, prefix=f".{job_id}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self._path(job_id))
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    async def _persist(self, job: Job) -> None:
        """Write a snapshot of job to disk off the event loop. Writes for one job are serialized in call order so the last mutation wins on disk."""
        snapshot = job.to_dict()
        lock = self._write_locks.setdefault(job.job_id, asyncio.Lock())
        async with lock:
            try:
                await asyncio.to_thread(self._write_file, job.job_id, snapshot)
            except OSError as e:
                raise JobPersistenceError(f"Failed to persist job {job.job_id}: {e}") from e

    def load(self) -> int:
        """Reload all persisted jobs from disk into memory. Returns the number of jobs loaded; unreadable documents are skipped with a warning.
        Why available: Called at app start-up so status polling keeps working across restarts (jobs that were mid-stage stay where they stopped)."""
        if not os.path.isdir(self.jobs_dir):
            return 0
        loaded = 0
        for fname in sorted(os.listdir(self.jobs_dir)):
            if not fname.endswith(".json"):
                continue
            path = os.path.join(self.jobs_dir, fname)
            try:
                with open(path, encoding="utf-8") as f:
                    job = Job.from_dict(json.load(f))
            except (OSError, ValueError, KeyError) as e:
                logger.warning("job_document_unreadable", extra={"path": path, "error": str(e)})
                continue
            self._jobs[job.job_id] = job
            loaded += 1
        return loaded

    # -------------------------
    # CRUD
    # -------------------------

    async def create(self, url: str, user_id: str, option: DeepDiveOption) -> Job:
        """Create a PENDING job for url owned by user_id and persist it. A failed durable write removes the record and raises JobPersistenceError, so no job exists after a failed submission."""
        now = time.time()
        job = Job(
            job_id=str(uuid.uuid4()),
            user_id=str(user_id),
            url=url,
            deep_dive_option=DeepDiveOption(option),
            status=JobStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._jobs[job.job_id] = job
        try:
            await self._persist(job)
        except JobPersistenceError:
            self._jobs.pop(job.job_id, None)
            raise
        logger.info("job_created", extra={"job_id": job.job_id, "user_id": job.user_id})
        return job

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def snapshot(self, job_id: str) -> Optional[Job]:
        """Return an independent copy of the job (for event payloads), or None."""
        job = self._jobs.get(job_id)
        return Job.from_dict(job.to_dict()) if job else None

    async def update_status(self, job_id: str, new_status: JobStatus, **fields: Any) -> Job:
        """Move job to new_status and set any of UPDATABLE_FIELDS passed in fields (job_metadata is merged, others overwrite). Absent fields are left alone.
        Raises JobNotFoundError for unknown ids, InvalidTransitionError for backward moves or writes to a terminal job, and JobPersistenceError when the durable write fails.
        On a failed write the in-memory record is rolled back to its previous state, so the status the caller fails the job from is still the active one. FAILED is the exception: it is kept in memory so the job stops even when disk is behind.
        Why available: The only mutation path for stages; callers decide whether a persistence failure is fatal for them."""
        job = self._jobs.get(job_id)
        if job is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        new_status = JobStatus(new_status)
        if not can_transition(job.status, new_status):
            raise InvalidTransitionError(
                f"Job {job_id} cannot move from {job.status.value} to {new_status.value}"
            )
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown job fields: {sorted(unknown)}")

        before = job.to_dict()
        previous = job.status
        for key, value in fields.items():
            if key == "job_metadata":
                job.job_metadata = {**job.job_metadata, **(value or {})}
            elif key == "error_step" and value is not None:
                job.error_step = JobStatus(value)
            else:
                setattr(job, key, value)
        job.status = new_status
        job.updated_at = time.time()
        logger.info(
            "job_status_updated",
            extra={"job_id": job_id, "from_status": previous.value, "to_status": new_status.value},
        )
        try:
            await self._persist(job)
        except JobPersistenceError:
            if new_status != JobStatus.FAILED:
                vars(job).update(vars(Job.from_dict(before)))
                logger.error(
                    "job_status_rolled_back",
                    extra={"job_id": job_id, "from_status": new_status.value, "to_status": previous.value},
                )
            raise
        finally:
            # No further writes follow a terminal one.
            if is_terminal(job.status):
                self._write_locks.pop(job_id, None)
        return job

    def status_view(self, job_id: str, caller_id: str) -> JobStatusResponse:
        """Build the polling view of a job for caller_id. Raises JobNotFoundError both when the job does not exist and when another user owns it.
        Why available: Backs GET /podcasts/{job_id}/status; result is attached only once the job is COMPLETED."""
        job = self._jobs.get(job_id)
        if job is None or job.user_id != str(caller_id):
            raise JobNotFoundError(f"Job {job_id} not found")

        result = None
        if job.status == JobStatus.COMPLETED:
            result = JobResult(
                title=job.title,
                summary=job.summary,
                transcript=job.transcript,
                audio_url=job.audio_url,
                metadata=dict(job.job_metadata),
            )
        return JobStatusResponse(
            job_id=job.job_id,
            status=job.status,
            error_message=job.error_message,
            error_step=job.error_step,
            result=result,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )
