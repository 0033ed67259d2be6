# video_interview/capture/device.py

import asyncio

import cv2
import pyaudio
from loguru import logger

from video_interview.capture.stream import CaptureStream
from video_interview.utils.error_handlers import CaptureUnavailableError


class CaptureDevice:
    """
    Camera and microphone access.

    `acquire_stream()` only hands out a stream after the camera delivered a
    frame and, when audio is requested, the microphone could be opened.
    """

    def __init__(
        self,
        camera_index: int = 0,
        video_input_format: str = "v4l2",
        video_device: str = "/dev/video0",
        audio_input_format: str = "alsa",
        audio_device: str = "default",
    ):
        self.camera_index = camera_index
        self.video_input_format = video_input_format
        self.video_device = video_device
        self.audio_input_format = audio_input_format
        self.audio_device = audio_device

    async def acquire_stream(self, audio: bool = True) -> CaptureStream:
        if not await asyncio.to_thread(self._probe_camera):
            raise CaptureUnavailableError("Camera not available")
        if audio and not await asyncio.to_thread(self._probe_microphone):
            raise CaptureUnavailableError("Microphone not available")

        logger.info(f"📹 Capture stream acquired: {self.video_device}" + (f" + {self.audio_device}" if audio else ""))
        return CaptureStream(
            video_input_format=self.video_input_format,
            video_device=self.video_device,
            audio_input_format=self.audio_input_format if audio else None,
            audio_device=self.audio_device if audio else None,
        )

    def _probe_camera(self) -> bool:
        capture = cv2.VideoCapture(self.camera_index)
        try:
            if not capture.isOpened():
                logger.error(f"Camera #{self.camera_index} could not be opened")
                return False
            ok, _ = capture.read()
            if not ok:
                logger.error(f"Camera #{self.camera_index} returned no frame")
            return ok
        finally:
            capture.release()

    def _probe_microphone(self) -> bool:
        audio = pyaudio.PyAudio()
        try:
            info = audio.get_default_input_device_info()
            stream = audio.open(
                format=pyaudio.paInt16,
                channels=1,
                rate=int(info["defaultSampleRate"]),
                input=True,
                frames_per_buffer=1024,
            )
            stream.close()
            logger.debug(f"Microphone ok: {info['name']}")
            return True
        except OSError as e:
            logger.error(f"Microphone could not be opened: {e}")
            return False
        finally:
            audio.terminate()

    def list_input_devices(self) -> list[str]:
        """Names of the audio input devices, for the system check."""
        audio = pyaudio.PyAudio()
        try:
            names = []
            for i in range(audio.get_device_count()):
                info = audio.get_device_info_by_index(i)
                if info["maxInputChannels"] > 0:
                    names.append(f"#{i}: {info['name']} ({info['maxInputChannels']} ch)")
            return names
        finally:
            audio.terminate()
