import logging
from dataclasses import dataclass

import cv2
import numpy as np

from app.utils.errors import TranscodingError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
MIN_FRAME_WIDTH = 32


@dataclass
class EncodedFrame:
    data: bytes
    width: int
    height: int
    quality: int
    passes: int

    @property
    def size(self) -> int:
        return len(self.data)


def resize_to_width(image: np.ndarray, width: int) -> np.ndarray:
    """Scale down to `width` keeping aspect ratio. Narrower images are left as they are."""
    h, w = image.shape[:2]
    if w <= width:
        return image
    scale_ratio = width / w
    return cv2.resize(image, (width, max(1, int(h * scale_ratio))), interpolation=cv2.INTER_AREA)


def encode_jpeg(image: np.ndarray, quality: int) -> bytes:
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise TranscodingError("Error encoding frame as JPEG")
    return buffer.tobytes()


def compress_image(image: np.ndarray, max_width: int = 1280, quality: int = 80,
                   fallback_width: int = 640, fallback_quality: int = 50,
                   max_bytes: int = MAX_IMAGE_BYTES) -> EncodedFrame:
    """
    Re-encode a frame so it fits under `max_bytes`.

    First pass: max_width / quality. If still too big, the fallback width and
    quality are used, then the width keeps halving until the output fits.
    """
    resized = resize_to_width(image, max_width)
    data = encode_jpeg(resized, quality)
    passes = 1

    width = fallback_width
    while len(data) > max_bytes:
        if width < MIN_FRAME_WIDTH:
            raise TranscodingError(
                f"Unable to compress frame under {max_bytes} bytes"
            )
        # each pass starts again from the smaller of the current image and the target width
        resized = resize_to_width(resized, width)
        data = encode_jpeg(resized, fallback_quality)
        passes += 1
        logger.debug("Re-encoded frame at width=%d quality=%d -> %d bytes",
                     resized.shape[1], fallback_quality, len(data))
        width //= 2

    h, w = resized.shape[:2]
    return EncodedFrame(
        data=data,
        width=w,
        height=h,
        quality=quality if passes == 1 else fallback_quality,
        passes=passes,
    )


def compress_image_file(image_path: str, **kwargs) -> EncodedFrame:
    image = cv2.imread(image_path)
    if image is None:
        raise TranscodingError(f"Unable to read frame {image_path}")
    return compress_image(image, **kwargs)
