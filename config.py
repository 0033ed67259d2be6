"""
Video Interview Client - Configuration

Settings for the backend service, the capture devices and the interview
timing. Values come from the environment or a `.env` file.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from loguru import logger
from video_interview.utils.logger import setup_logging
load_dotenv()


class BackendConfig(BaseSettings):
    """Backend-as-a-service (Supabase) settings"""

    url: str = Field("http://localhost:54321")
    anon_key: str = Field("")
    storage_bucket: str = Field("interview-responses")
    request_timeout: float = Field(30.0)

    @field_validator("url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return str(v).rstrip("/")

    model_config = SettingsConfigDict(env_prefix="SUPABASE_", env_file=".env", case_sensitive=False, extra="ignore")


class CaptureConfig(BaseSettings):
    """Camera / microphone capture settings"""

    # Device probing
    camera_index: int = Field(0)

    # ffmpeg inputs (Linux defaults; macOS uses avfoundation, Windows dshow)
    ffmpeg_path: str = Field("ffmpeg")
    video_input_format: str = Field("v4l2")
    video_device: str = Field("/dev/video0")
    audio_input_format: str = Field("alsa")
    audio_device: str = Field("default")

    # Output
    fragment_size: int = Field(64 * 1024)  # bytes per emitted fragment
    content_type: str = Field("video/webm")
    file_extension: str = Field("webm")

    @field_validator("fragment_size", mode="before")
    @classmethod
    def positive_fragment_size(cls, v: int) -> int:
        if int(v) <= 0:
            raise ValueError("fragment_size must be positive")
        return int(v)

    model_config = SettingsConfigDict(env_prefix="CAPTURE_", env_file=".env", case_sensitive=False, extra="ignore")


class InterviewConfig(BaseSettings):
    """Interview flow timing"""

    preparation_seconds: int = Field(60)
    recording_seconds: int = Field(120)
    max_rerecords: int = Field(1)  # re-records allowed beyond the first take
    upload_timeout: float = Field(120.0)

    @field_validator("preparation_seconds", "recording_seconds", mode="before")
    @classmethod
    def positive_duration(cls, v: int) -> int:
        if int(v) <= 0:
            raise ValueError("Countdown durations must be positive")
        return int(v)

    @field_validator("max_rerecords", mode="before")
    @classmethod
    def non_negative_rerecords(cls, v: int) -> int:
        if int(v) < 0:
            raise ValueError("max_rerecords cannot be negative")
        return int(v)

    model_config = SettingsConfigDict(env_prefix="INTERVIEW_", env_file=".env", case_sensitive=False, extra="ignore")


class ApplicationConfig(BaseSettings):
    """General application settings"""

    base_dir: Path = Path(__file__).parent
    log_level: str = Field("INFO")
    debug: bool = Field(False)

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


class Config:
    """Singleton main configuration object"""

    _instance: Optional["Config"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if hasattr(self, "_initialized") and self._initialized:
            return

        self.backend = BackendConfig()
        self.capture = CaptureConfig()
        self.interview = InterviewConfig()
        self.app = ApplicationConfig()

        setup_logging(log_level=self.app.log_level, base_dir=self.app.base_dir, debug=self.app.debug)

        self._initialized = True

    def validate(self) -> bool:
        """Check that the settings needed to reach the backend are present"""
        if not self.backend.anon_key:
            logger.error("SUPABASE_ANON_KEY is not set")
            return False
        if not self.backend.url.startswith(("http://", "https://")):
            logger.error(f"Invalid SUPABASE_URL: {self.backend.url}")
            return False
        logger.info("Configuration validated")
        return True

    def get_summary(self) -> dict:
        """Configuration summary (no secrets)"""
        return {
            "backend": {
                "url": self.backend.url,
                "bucket": self.backend.storage_bucket,
            },
            "capture": {
                "camera": self.capture.camera_index,
                "video_input": f"{self.capture.video_input_format}:{self.capture.video_device}",
                "audio_input": f"{self.capture.audio_input_format}:{self.capture.audio_device}",
                "format": self.capture.content_type,
            },
            "interview": {
                "preparation_seconds": self.interview.preparation_seconds,
                "recording_seconds": self.interview.recording_seconds,
                "takes_per_question": self.interview.max_rerecords + 1,
            },
        }


# Global config instance
config = Config()


if __name__ == "__main__":
    import json

    print("Video Interview Client Configuration")
    print("=" * 50)
    print(json.dumps(config.get_summary(), indent=2))
    print("\nValidation:")
    if config.validate():
        print("✅ Ready")
    else:
        print("❌ Not ready, fix the errors above.")
