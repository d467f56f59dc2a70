"""
Fan-in barrier for per-segment speech synthesis.
One entry per job in GENERATING_AUDIO: expected total, completed indices, owner and the synthesized bytes by index.
Entries are created lazily by the first finished segment and removed at the terminal transition.
"""
import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from podcaster.core.errors import TrackerError
from podcaster.jobs.models import is_terminal
from podcaster.jobs.store import JobStore

logger = logging.getLogger(__name__)


@dataclass
class TrackerEntry:
    total: int
    owner_id: Optional[str] = None
    completed: Set[int] = field(default_factory=set)
    buffers: Dict[int, bytes] = field(default_factory=dict)
    fired: bool = False


class CompletionTracker:
    """Counts finished segments per job and reports, exactly once, when the last one arrives.
    Why available: The segment stage fans out N independent tasks; this is the join that decides which single task triggers assembly."""

    def __init__(self, store: JobStore, discarded_memory: int = 1000):
        self.store = store
        self.discarded_memory = discarded_memory
        self._entries: Dict[str, TrackerEntry] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        # Recently discarded job ids, oldest first; late segments for these are dropped.
        self._discarded: "OrderedDict[str, None]" = OrderedDict()

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def _lock(self, job_id: str) -> asyncio.Lock:
        return self._locks.setdefault(job_id, asyncio.Lock())

    def _initialize(self, job_id: str, total: Optional[int]) -> Optional[TrackerEntry]:
        """Create the entry for job_id, resolving owner and (when not given) the expected total from the job record. Returns None when the job is unknown, terminal, or has no usable total."""
        job = self.store.get(job_id)
        if job is None or is_terminal(job.status):
            logger.warning(
                "tracker_segment_for_inactive_job",
                extra={"job_id": job_id, "status": job.status.value if job else None},
            )
            return None
        if total is None:
            total = job.job_metadata.get("segment_count")
        if not isinstance(total, int) or total <= 0:
            logger.error("tracker_missing_total", extra={"job_id": job_id, "total": total})
            return None
        entry = TrackerEntry(total=total, owner_id=job.user_id)
        self._entries[job_id] = entry
        logger.info("tracker_initialized", extra={"job_id": job_id, "total": total})
        return entry

    async def store_segment_audio(self, job_id: str, index: int, data: bytes, total: Optional[int] = None) -> bool:
        """Record that segment `index` of job_id finished with `data`. Returns True for exactly one call per job: the one that completes the set of [0, total) indices.
        Re-delivered indices overwrite their bytes but never fire twice; segments for terminal or discarded jobs are dropped (False). Raises ValueError for an index outside [0, total).
        Why available: Called by the segment stage after each synthesis; its True result is the only trigger for assembly."""
        async with self._lock(job_id):
            if job_id in self._discarded:
                logger.warning("tracker_segment_after_discard", extra={"job_id": job_id, "segment_index": index})
                return False
            entry = self._entries.get(job_id)
            if entry is None:
                entry = self._initialize(job_id, total)
                if entry is None:
                    return False
            if total is not None and total != entry.total:
                logger.warning(
                    "tracker_total_mismatch",
                    extra={"job_id": job_id, "expected": entry.total, "received": total},
                )
            if not 0 <= index < entry.total:
                raise ValueError(f"Segment index {index} out of range for job {job_id} (total {entry.total})")
            if index in entry.completed:
                logger.warning("tracker_segment_overwritten", extra={"job_id": job_id, "segment_index": index})

            entry.buffers[index] = data
            entry.completed.add(index)
            logger.info(
                "tracker_segment_stored",
                extra={"job_id": job_id, "segment_index": index, "completed": len(entry.completed), "total": entry.total},
            )
            if entry.fired or len(entry.completed) != entry.total:
                return False
            entry.fired = True
            return True

    def progress(self, job_id: str) -> Optional[tuple]:
        """Return (completed, total) for an active entry, else None."""
        entry = self._entries.get(job_id)
        if entry is None:
            return None
        return len(entry.completed), entry.total

    def retrieve_ordered_buffers(self, job_id: str) -> List[bytes]:
        """Return the segment bytes for indices [0, total) in dialogue order. Raises TrackerError if the entry or any index is missing.
        Why available: Called once by the assembly stage; ordering comes from the index, never from arrival order."""
        entry = self._entries.get(job_id)
        if entry is None:
            raise TrackerError(f"No completion state for job {job_id}")
        buffers: List[bytes] = []
        for i in range(entry.total):
            if i not in entry.buffers:
                raise TrackerError(f"Missing audio for segment {i} of job {job_id}")
            buffers.append(entry.buffers[i])
        return buffers

    def discard(self, job_id: str) -> bool:
        """Delete the entry and lock for job_id and remember the id so late segments cannot recreate it. Safe to call repeatedly; returns True if an entry existed."""
        existed = self._entries.pop(job_id, None) is not None
        self._locks.pop(job_id, None)
        self._discarded[job_id] = None
        self._discarded.move_to_end(job_id)
        while len(self._discarded) > self.discarded_memory:
            self._discarded.popitem(last=False)
        if existed:
            logger.info("tracker_discarded", extra={"job_id": job_id})
        return existed
