"""ffmpeg capture runner — stream URL to audio file, bounded in time."""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from streamrec.core.errors import CaptureError

# Output suffix → ffmpeg audio encoder
CODECS: dict[str, str] = {
    ".mp3": "libmp3lame",
    ".ogg": "libvorbis",
}

MAX_STDERR = 2_000


class CaptureProcess:
    """Live handle on one running capture. Never persisted."""

    def __init__(self, job_id: str, proc: asyncio.subprocess.Process, output_path: Path):
        self.job_id = job_id
        self.output_path = output_path
        self._proc = proc
        self.killed = False

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def done(self) -> bool:
        return self._proc.returncode is not None

    async def wait(self) -> None:
        """Wait for exit. Raises CaptureError on a non-zero exit code."""
        _, stderr = await self._proc.communicate()
        code = self._proc.returncode
        if code == 0:
            return
        detail = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
        if len(detail) > MAX_STDERR:
            detail = "..." + detail[-MAX_STDERR:]
        reason = f"ffmpeg exited with code {code}"
        if detail:
            reason = f"{reason}: {detail}"
        raise CaptureError(self.job_id, reason)

    def kill(self) -> None:
        """Terminate the process if it is still running."""
        if self.done:
            return
        try:
            self._proc.kill()
        except ProcessLookupError:
            return
        self.killed = True


class FfmpegRunner:
    """Starts ffmpeg captures. ``run`` returns as soon as the process is spawned."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary

    def build_command(
        self, source_url: str, output_path: Path, duration_seconds: int, bitrate: str
    ) -> list[str]:
        codec = CODECS.get(output_path.suffix.lower(), CODECS[".mp3"])
        return [
            self.binary,
            "-hide_banner",
            "-nostdin",
            "-loglevel", "error",
            "-y",
            "-i", source_url,
            "-t", str(duration_seconds),
            "-c:a", codec,
            "-b:a", bitrate,
            str(output_path),
        ]

    async def run(
        self,
        job_id: str,
        source_url: str,
        output_path: Path,
        duration_seconds: int,
        bitrate: str,
    ) -> CaptureProcess:
        cmd = self.build_command(source_url, output_path, duration_seconds, bitrate)
        logger.info(f"Executing command: {' '.join(cmd)}")
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        return CaptureProcess(job_id, proc, output_path)
