"""
Stitchers combine ordered segment audio into one stream.
ConcatStitcher joins bytes (fast; fine for same-encoder MP3 frames). FfmpegStitcher uses the concat demuxer (slower; tolerant of header differences).
"""
import asyncio
import logging
import os
from typing import List, Optional

from podcaster.audio.storage import AudioStore
from podcaster.core.config import settings
from podcaster.core.errors import StitchError

logger = logging.getLogger(__name__)


def _check(job_id: str, buffers: List[bytes]) -> None:
    if not buffers:
        raise StitchError(f"No audio segments to stitch for job {job_id}")


class ConcatStitcher:
    """Byte-join in list order."""

    async def stitch(self, job_id: str, buffers: List[bytes]) -> bytes:
        _check(job_id, buffers)
        if len(buffers) == 1:
            return buffers[0]
        return b"".join(buffers)


def build_concat_list(paths: List[str]) -> str:
    """Concat demuxer list file content: one `file '<path>'` line per segment, single quotes escaped."""
    lines = []
    for p in paths:
        escaped = p.replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    return "\n".join(lines) + "\n"


class FfmpegStitcher:
    """Writes segments into the job temp workspace and runs `ffmpeg -f concat -safe 0 -i list -c copy` with a timeout.
    Why available: Robust alternative when byte-joined MP3s play back with glitches; selected with AUDIO_STITCHER=ffmpeg."""

    def __init__(self, audio_store: AudioStore, binary: Optional[str] = None, timeout_seconds: Optional[float] = None):
        self.audio_store = audio_store
        self.binary = binary or settings.ffmpeg_binary
        self.timeout_seconds = timeout_seconds or settings.stitch_timeout_seconds

    def _prepare(self, job_id: str, buffers: List[bytes]) -> tuple:
        workdir = self.audio_store.temp_dir(job_id)
        paths = []
        for i, data in enumerate(buffers):
            path = os.path.join(workdir, f"segment_{i:04d}.mp3")
            with open(path, "wb") as f:
                f.write(data)
            paths.append(path)
        list_path = os.path.join(workdir, "concat.txt")
        with open(list_path, "w", encoding="utf-8") as f:
            f.write(build_concat_list(paths))
        return list_path, os.path.join(workdir, "combined.mp3")

    async def stitch(self, job_id: str, buffers: List[bytes]) -> bytes:
        _check(job_id, buffers)
        if len(buffers) == 1:
            return buffers[0]

        try:
            list_path, out_path = await asyncio.to_thread(self._prepare, job_id, buffers)
        except OSError as e:
            raise StitchError(f"Failed to write segments for job {job_id}: {e}") from e

        cmd = [self.binary, "-y", "-loglevel", "error", "-f", "concat", "-safe", "0", "-i", list_path, "-c", "copy", out_path]
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise StitchError(f"Could not start {self.binary}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            proc.kill()
            await proc.wait()
            raise StitchError(f"ffmpeg exceeded {self.timeout_seconds}s for job {job_id}") from e

        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise StitchError(f"ffmpeg exited with {proc.returncode}: {detail[:500]}")

        try:
            data = await asyncio.to_thread(_read_bytes, out_path)
        except OSError as e:
            raise StitchError(f"ffmpeg produced no output for job {job_id}: {e}") from e
        logger.info("ffmpeg_stitch_done", extra={"job_id": job_id, "segments": len(buffers), "bytes": len(data)})
        return data


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


def get_stitcher(audio_store: AudioStore):
    """Return the stitcher selected by AUDIO_STITCHER."""
    if settings.audio_stitcher == "ffmpeg":
        return FfmpegStitcher(audio_store)
    return ConcatStitcher()
