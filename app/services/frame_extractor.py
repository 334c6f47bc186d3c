import os
import re
import math
import logging
import subprocess
from typing import List, Optional, Tuple

import cv2

from app.utils.errors import TranscodingError

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame-%03d.png"
FRAME_NAME_RE = re.compile(r"^frame-(\d+)\.png$")


def probe_duration(video_path: str) -> Optional[float]:
    """
    Returns the video duration in seconds, or None when OpenCV cannot read it.
    """
    cap = cv2.VideoCapture(video_path)
    try:
        if not cap.isOpened():
            return None
        fps = cap.get(cv2.CAP_PROP_FPS)
        frame_count = cap.get(cv2.CAP_PROP_FRAME_COUNT)
        if fps <= 0 or frame_count <= 0:
            return None
        return frame_count / fps
    finally:
        cap.release()


def build_ffmpeg_command(ffmpeg_path: str, video_path: str, output_dir: str,
                         frame_rate: int = 1, max_frames: Optional[int] = None) -> List[str]:
    cmd = [
        ffmpeg_path, "-hide_banner", "-loglevel", "error", "-y",
        "-i", video_path,
        "-vf", f"fps={frame_rate}",
    ]
    if max_frames:
        cmd += ["-frames:v", str(max_frames)]
    cmd.append(os.path.join(output_dir, FRAME_PATTERN))
    return cmd


def list_frames(frames_dir: str) -> List[Tuple[int, str]]:
    """
    Returns (frame_index, file_name) pairs sorted by frame index.
    Sorting is numeric so frame-1000.png comes after frame-999.png.
    """
    frames = []
    for name in os.listdir(frames_dir):
        match = FRAME_NAME_RE.match(name)
        if match:
            frames.append((int(match.group(1)), name))
    frames.sort()
    return frames


def extract_frames(video_path: str, output_dir: str, ffmpeg_path: str = "ffmpeg",
                   frame_rate: int = 1, timeout: int = 300) -> List[Tuple[int, str]]:
    """
    Samples `frame_rate` frames per second from the video into numbered PNG files
    inside `output_dir` (frame-001.png, frame-002.png, ...).

    The frame count is capped at ceil(duration * frame_rate) when the duration
    can be probed, since ffmpeg's fps filter may emit one trailing frame.
    """
    duration = probe_duration(video_path)
    max_frames = math.ceil(duration * frame_rate) if duration else None

    cmd = build_ffmpeg_command(ffmpeg_path, video_path, output_dir, frame_rate, max_frames)
    logger.debug("Running ffmpeg: %s", " ".join(cmd))
    try:
        result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError:
        raise TranscodingError(f"ffmpeg not found at '{ffmpeg_path}'")
    except subprocess.TimeoutExpired:
        raise TranscodingError("Frame extraction timed out")

    if result.returncode != 0:
        logger.error("Error extracting frames (exit %s): %s", result.returncode, result.stderr.strip())
        raise TranscodingError("Error extracting frames from video")

    frames = list_frames(output_dir)
    logger.info("✅ Extracted %d frames (duration=%s)", len(frames), duration)
    return frames
