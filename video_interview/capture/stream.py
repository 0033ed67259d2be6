from dataclasses import dataclass
from typing import Optional

from loguru import logger


@dataclass
class CaptureStream:
    """An acquired camera (and optionally microphone) input."""
    video_input_format: str
    video_device: str
    audio_input_format: Optional[str] = None
    audio_device: Optional[str] = None
    released: bool = False

    @property
    def audio(self) -> bool:
        return self.audio_device is not None

    def release(self):
        if not self.released:
            self.released = True
            logger.debug(f"Capture stream released ({self.video_device})")
