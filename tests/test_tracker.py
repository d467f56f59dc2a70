"""Unit tests for the per-job completion tracker (fan-in barrier)."""
import asyncio
import random

import pytest

from podcaster.core.errors import TrackerError
from podcaster.jobs.models import JobStatus
from podcaster.jobs.store import JobStore
from podcaster.jobs.tracker import CompletionTracker


async def _active_job(store, segment_count=None):
    job = await store.create("https://example.com/a", "owner", "RETAIN")
    meta = {"segment_count": segment_count} if segment_count is not None else {}
    await store.update_status(job.job_id, JobStatus.GENERATING_AUDIO, job_metadata=meta)
    return job.job_id


def test_all_complete_fires_once_on_last_index(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    async def go():
        job_id = await _active_job(store)
        results = [
            await tracker.store_segment_audio(job_id, 2, b"c", total=3),
            await tracker.store_segment_audio(job_id, 0, b"a", total=3),
            await tracker.store_segment_audio(job_id, 1, b"b", total=3),
        ]
        return job_id, results

    job_id, results = asyncio.run(go())
    assert results == [False, False, True]
    assert tracker.retrieve_ordered_buffers(job_id) == [b"a", b"b", b"c"]
    assert tracker.progress(job_id) == (3, 3)


def test_concurrent_completions_fire_exactly_once(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)
    total = 25

    async def complete(job_id, i):
        await asyncio.sleep(random.random() / 100)
        return await tracker.store_segment_audio(job_id, i, bytes([i]), total=total)

    async def go():
        job_id = await _active_job(store)
        results = await asyncio.gather(*(complete(job_id, i) for i in range(total)))
        return job_id, results

    job_id, results = asyncio.run(go())
    assert results.count(True) == 1
    assert tracker.retrieve_ordered_buffers(job_id) == [bytes([i]) for i in range(total)]


def test_redelivered_index_overwrites_without_second_fire(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    async def go():
        job_id = await _active_job(store)
        first = await tracker.store_segment_audio(job_id, 0, b"a", total=2)
        again = await tracker.store_segment_audio(job_id, 0, b"a2", total=2)
        last = await tracker.store_segment_audio(job_id, 1, b"b", total=2)
        repeat = await tracker.store_segment_audio(job_id, 1, b"b2", total=2)
        return job_id, [first, again, last, repeat]

    job_id, results = asyncio.run(go())
    assert results == [False, False, True, False]
    assert tracker.retrieve_ordered_buffers(job_id) == [b"a2", b"b2"]


def test_total_is_read_from_job_metadata(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    async def go():
        job_id = await _active_job(store, segment_count=2)
        return job_id, [
            await tracker.store_segment_audio(job_id, 1, b"b"),
            await tracker.store_segment_audio(job_id, 0, b"a"),
        ]

    job_id, results = asyncio.run(go())
    assert results == [False, True]
    assert tracker.progress(job_id) == (2, 2)


def test_index_out_of_range_raises(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    async def go():
        job_id = await _active_job(store)
        with pytest.raises(ValueError):
            await tracker.store_segment_audio(job_id, 3, b"x", total=3)
        with pytest.raises(ValueError):
            await tracker.store_segment_audio(job_id, -1, b"x", total=3)

    asyncio.run(go())


def test_segments_for_terminal_or_unknown_jobs_are_dropped(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    async def go():
        job_id = await _active_job(store)
        await store.update_status(job_id, JobStatus.FAILED, error_message="x", error_step=JobStatus.GENERATING_AUDIO)
        return [
            await tracker.store_segment_audio(job_id, 0, b"a", total=1),
            await tracker.store_segment_audio("unknown", 0, b"a", total=1),
        ]

    assert asyncio.run(go()) == [False, False]
    assert len(tracker) == 0


def test_discard_blocks_late_segments(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    async def go():
        job_id = await _active_job(store)
        await tracker.store_segment_audio(job_id, 0, b"a", total=2)
        assert tracker.discard(job_id) is True
        late = await tracker.store_segment_audio(job_id, 1, b"b", total=2)
        return job_id, late

    job_id, late = asyncio.run(go())
    assert late is False
    assert job_id not in tracker
    assert tracker.discard(job_id) is False


def test_discarded_memory_is_bounded(tmp_path):
    tracker = CompletionTracker(JobStore(str(tmp_path)), discarded_memory=2)
    for job_id in ("a", "b", "c"):
        tracker.discard(job_id)
    assert list(tracker._discarded) == ["b", "c"]


def test_retrieve_ordered_buffers_errors(tmp_path):
    store = JobStore(str(tmp_path))
    tracker = CompletionTracker(store)

    with pytest.raises(TrackerError):
        tracker.retrieve_ordered_buffers("missing")

    async def go():
        job_id = await _active_job(store)
        await tracker.store_segment_audio(job_id, 0, b"a", total=2)
        return job_id

    job_id = asyncio.run(go())
    with pytest.raises(TrackerError):
        tracker.retrieve_ordered_buffers(job_id)
