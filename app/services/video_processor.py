import os
import logging
import tempfile
from typing import Any, Callable, Dict, List, Optional

from app.config import Settings
from app.services import frame_extractor
from app.services.frame_encoder import compress_image_file
from app.services.ppe_detector import RekognitionPPEDetector
from app.utils.errors import DetectorError, MissingUploadError
from app.utils.helpers import safe_video_filename, format_frame_result

logger = logging.getLogger(__name__)


def save_video(video_bytes: bytes, filename: str, work_dir: str) -> str:
    """
    Save uploaded video bytes inside the request's work directory and return the path
    """
    path = os.path.join(work_dir, safe_video_filename(filename))
    with open(path, "wb") as f:
        f.write(video_bytes)
    logger.info("✅ Video saved at: %s", path)
    return path


class VideoProcessor:
    """
    Upload -> frames -> re-encode -> PPE detection -> ordered result list.

    Collaborators are injected so every deployment (local disk, /tmp on Lambda,
    a fixed ffmpeg binary) runs the same pipeline with different settings.
    """

    def __init__(self, settings: Settings, detector: RekognitionPPEDetector,
                 extract_frames: Optional[Callable] = None):
        self.settings = settings
        self.detector = detector
        self.extract_frames = extract_frames or frame_extractor.extract_frames

    def analyze_frames(self, frames_dir: str, frames) -> List[Dict[str, Any]]:
        s = self.settings
        ppe_data = []
        for frame_index, file_name in frames:
            image_path = os.path.join(frames_dir, file_name)

            # encode failures abort the request, detection failures only drop the frame
            encoded = compress_image_file(
                image_path,
                max_width=s.max_frame_width,
                quality=s.jpeg_quality,
                fallback_width=s.fallback_frame_width,
                fallback_quality=s.fallback_jpeg_quality,
                max_bytes=s.max_image_bytes,
            )
            try:
                persons = self.detector.detect(encoded.data)
            except DetectorError as e:
                logger.error("Error detecting PPE in frame %s: %s", file_name, e)
                continue
            ppe_data.append(format_frame_result(frame_index, file_name, persons))
        return ppe_data

    def process(self, video_bytes: bytes, filename: str) -> List[Dict[str, Any]]:
        if not video_bytes:
            raise MissingUploadError()

        s = self.settings
        if s.frames_temp_root:
            os.makedirs(s.frames_temp_root, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix="ppe-upload-", dir=s.frames_temp_root) as work_dir:
            video_path = save_video(video_bytes, filename, work_dir)
            frames_dir = os.path.join(work_dir, "frames")
            os.makedirs(frames_dir, exist_ok=True)

            frames = self.extract_frames(
                video_path,
                frames_dir,
                ffmpeg_path=s.ffmpeg_path,
                frame_rate=s.frame_rate,
                timeout=s.ffmpeg_timeout,
            )
            ppe_data = self.analyze_frames(frames_dir, frames)

        logger.info("🎉 Video processing complete: %d of %d frames analyzed", len(ppe_data), len(frames))
        return ppe_data
