"""Final audio files and per-job temp workspaces on local disk."""
import asyncio
import logging
import os
import shutil
from typing import Optional

from podcaster.core.config import settings

logger = logging.getLogger(__name__)

AUDIO_DIRNAME = "audio"


class AudioStore:
    """Saves finished podcasts to <data_root>/audio/podcast-<job_id>.mp3 and hands out /podcasts/<job_id>/audio references.
    Why available: Assembly writes here; the audio endpoint serves from here; cleanup removes the job's temp workspace."""

    def __init__(self, data_root: str, temp_root: Optional[str] = None, base_url: Optional[str] = None):
        self.audio_dir = os.path.join(data_root, AUDIO_DIRNAME)
        self.temp_root = temp_root or os.path.join(data_root, "tmp")
        self.base_url = (base_url if base_url is not None else settings.audio_base_url).rstrip("/")

    def path_for(self, job_id: str) -> str:
        return os.path.join(self.audio_dir, f"podcast-{job_id}.mp3")

    def url_for(self, job_id: str) -> str:
        return f"{self.base_url}/{job_id}/audio"

    def _write(self, job_id: str, data: bytes) -> str:
        os.makedirs(self.audio_dir, exist_ok=True)
        path = self.path_for(job_id)
        tmp_path = f"{path}.part"
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
        return path

    async def save(self, job_id: str, data: bytes) -> str:
        """Write the final audio for job_id and return its reference URL."""
        path = await asyncio.to_thread(self._write, job_id, data)
        logger.info("audio_saved", extra={"job_id": job_id, "path": path, "bytes": len(data)})
        return self.url_for(job_id)

    def temp_dir(self, job_id: str) -> str:
        """Create (if needed) and return the temp workspace for job_id."""
        path = os.path.join(self.temp_root, job_id)
        os.makedirs(path, exist_ok=True)
        return path

    def clear_temp(self, job_id: str) -> None:
        """Remove the job's temp workspace. Safe to call when it does not exist."""
        path = os.path.join(self.temp_root, job_id)
        if os.path.isdir(path):
            shutil.rmtree(path, ignore_errors=True)
            logger.info("temp_workspace_cleared", extra={"job_id": job_id})
