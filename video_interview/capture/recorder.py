# video_interview/capture/recorder.py

import asyncio
import time
from typing import Callable, Optional, Protocol

from loguru import logger

from video_interview.capture.stream import CaptureStream
from video_interview.utils.error_handlers import CaptureUnavailableError

FragmentCallback = Callable[[bytes], None]


class MediaRecorder(Protocol):
    def on_fragment(self, callback: FragmentCallback) -> None: ...

    async def start(self, stream: CaptureStream) -> None: ...

    async def stop(self) -> None: ...


class FFmpegRecorder:
    """
    Records a capture stream to WebM with ffmpeg and hands out the encoded
    output as ordered binary fragments.

    Fragments are delivered only between the return of `start()` and the
    return of `stop()`; `stop()` finishes the file, drains what ffmpeg still
    had buffered and releases the stream.
    """

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        fragment_size: int = 64 * 1024,
        stop_timeout: float = 5.0,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.fragment_size = fragment_size
        self.stop_timeout = stop_timeout

        self._callback: Optional[FragmentCallback] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader: Optional[asyncio.Task] = None
        self._stream: Optional[CaptureStream] = None
        self._started_at: Optional[float] = None

        self.total_recordings = 0
        self.total_duration = 0.0
        self.total_bytes = 0

    @property
    def is_recording(self) -> bool:
        return self._process is not None

    def on_fragment(self, callback: FragmentCallback):
        self._callback = callback

    def build_command(self, stream: CaptureStream) -> list[str]:
        cmd = [
            self.ffmpeg_path, "-hide_banner", "-loglevel", "error",
            "-f", stream.video_input_format, "-i", stream.video_device,
        ]
        if stream.audio:
            cmd += ["-f", stream.audio_input_format, "-i", stream.audio_device]
        cmd += ["-c:v", "libvpx", "-deadline", "realtime", "-b:v", "1M"]
        cmd += ["-c:a", "libopus"] if stream.audio else ["-an"]
        cmd += ["-f", "webm", "pipe:1"]
        return cmd

    async def start(self, stream: CaptureStream):
        if self.is_recording:
            raise RuntimeError("Recorder already has an active capture")

        cmd = self.build_command(stream)
        logger.debug(f"Starting ffmpeg: {' '.join(cmd)}")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CaptureUnavailableError(f"Recorder could not be started: {e}") from e

        self._stream = stream
        self._started_at = time.time()
        logger.info("🔴 Recording started")
        # No awaits after this point: fragments must not arrive before start() returns
        self._reader = asyncio.create_task(self._pump(self._process))

    async def _pump(self, process: asyncio.subprocess.Process):
        while True:
            chunk = await process.stdout.read(self.fragment_size)
            if not chunk:
                break
            self.total_bytes += len(chunk)
            if self._callback:
                self._callback(chunk)

    async def stop(self):
        process = self._process
        if process is None:
            return

        # 'q' on stdin makes ffmpeg write the trailer and exit cleanly
        try:
            process.stdin.write(b"q")
            await process.stdin.drain()
            process.stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("ffmpeg had already exited")

        try:
            await asyncio.wait_for(process.wait(), timeout=self.stop_timeout)
        except asyncio.TimeoutError:
            logger.warning("ffmpeg did not stop in time, killing it")
            process.kill()
            await process.wait()

        await self._reader
        errors = (await process.stderr.read()).decode(errors="replace").strip()
        if process.returncode not in (0, 255) and errors:
            logger.warning(f"ffmpeg exited with {process.returncode}: {errors}")

        duration = time.time() - self._started_at
        self.total_duration += duration
        self.total_recordings += 1
        logger.info(f"⏹️ Recording stopped. Duration: {duration:.1f}s, Size: {self.total_bytes / 1024:.1f}KB total")

        self._stream.release()
        self._process = None
        self._reader = None
        self._stream = None

    def get_statistics(self) -> dict:
        avg_duration = (self.total_duration / self.total_recordings if self.total_recordings > 0 else 0)
        return {
            "total_recordings": self.total_recordings,
            "total_duration": f"{self.total_duration:.1f} s",
            "average_duration": f"{avg_duration:.1f} s",
            "total_size": f"{self.total_bytes / 1024:.1f} KB",
        }
