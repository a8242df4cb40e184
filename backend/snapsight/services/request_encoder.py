from dataclasses import dataclass
from enum import Enum

import cv2
import numpy as np

from snapsight.errors import EncodingError


class ImageFormat(Enum):
    JPEG = "jpeg"
    PNG = "png"


_EXTENSIONS = {
    ImageFormat.JPEG: ".jpg",
    ImageFormat.PNG: ".png",
}


@dataclass(frozen=True)
class CaptureRequest:
    image_bytes: bytes
    format: ImageFormat
    width: int
    height: int


def encode(frame: np.ndarray, width: int, height: int, quality: int = 90,
           image_format: ImageFormat = ImageFormat.JPEG) -> CaptureRequest:
    """
    Rasterize a frame into a CaptureRequest.

    The frame is scaled to ``width`` x ``height`` if its pixel size differs.
    ``quality`` (1-100) only affects JPEG; lower values shrink the payload.

    Raises:
        EncodingError: non-positive dimensions, empty frame, bad quality, or
            OpenCV could not encode the image.
    """
    if width <= 0 or height <= 0:
        raise EncodingError(f"Invalid frame dimensions: {width}x{height}")
    if not 1 <= quality <= 100:
        raise EncodingError(f"JPEG quality must be within 1-100, got {quality}")
    if frame is None or getattr(frame, "size", 0) == 0:
        raise EncodingError("Empty frame")

    try:
        image_format = ImageFormat(image_format)
    except ValueError:
        raise EncodingError(f"Unsupported image format: {image_format}")

    try:
        if frame.shape[1] != width or frame.shape[0] != height:
            frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)

        params = [cv2.IMWRITE_JPEG_QUALITY, int(quality)] if image_format is ImageFormat.JPEG else []
        ok, buf = cv2.imencode(_EXTENSIONS[image_format], frame, params)
    except cv2.error as e:
        raise EncodingError(f"Frame could not be encoded: {e}") from e

    if not ok:
        raise EncodingError("Frame could not be encoded")

    return CaptureRequest(image_bytes=buf.tobytes(), format=image_format, width=width, height=height)
