# The OpenCV/PyAudio backed CaptureDevice lives in .device and is imported explicitly.
from .stream import CaptureStream
from .recorder import FFmpegRecorder, MediaRecorder

__all__ = [
    'CaptureStream',
    'FFmpegRecorder',
    'MediaRecorder',
]
