import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

from app.services.frame_encoder import MAX_IMAGE_BYTES

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    aws_region: str = "us-east-1"

    # Frame extraction
    ffmpeg_path: str = "ffmpeg"
    frames_temp_root: Optional[str] = None  # None -> system temp dir
    frame_rate: int = 1
    ffmpeg_timeout: int = 300

    # Frame re-encoding
    max_frame_width: int = 1280
    jpeg_quality: int = 80
    fallback_frame_width: int = 640
    fallback_jpeg_quality: int = 50
    max_image_bytes: int = MAX_IMAGE_BYTES

    # Auth
    auth_enabled: bool = False
    jwt_secret: str = ""
    jwt_expires_minutes: int = 60

    # User / log store
    mongo_uri: str = "mongodb://localhost:27017/"
    mongo_db_name: str = "ppe_detection_db"

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            ffmpeg_path=os.getenv("FFMPEG_PATH", "ffmpeg"),
            frames_temp_root=os.getenv("FRAMES_TEMP_ROOT") or None,
            frame_rate=int(os.getenv("FRAME_RATE", "1")),
            ffmpeg_timeout=int(os.getenv("FFMPEG_TIMEOUT", "300")),
            max_frame_width=int(os.getenv("MAX_FRAME_WIDTH", "1280")),
            jpeg_quality=int(os.getenv("JPEG_QUALITY", "80")),
            fallback_frame_width=int(os.getenv("FALLBACK_FRAME_WIDTH", "640")),
            fallback_jpeg_quality=int(os.getenv("FALLBACK_JPEG_QUALITY", "50")),
            max_image_bytes=int(os.getenv("MAX_IMAGE_BYTES", str(MAX_IMAGE_BYTES))),
            auth_enabled=_env_bool("AUTH_ENABLED"),
            jwt_secret=os.getenv("JWT_SECRET", ""),
            jwt_expires_minutes=int(os.getenv("JWT_EXPIRES_MINUTES", "60")),
            mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017/"),
            mongo_db_name=os.getenv("MONGO_DB_NAME", "ppe_detection_db"),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return Settings.from_env()
