import cv2
import numpy as np
import pytest

from snapsight.errors import EncodingError
from snapsight.services.request_encoder import CaptureRequest, ImageFormat, encode


@pytest.fixture
def noisy_frame():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(120, 160, 3), dtype=np.uint8)


def _decode(data: bytes):
    return cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_UNCHANGED)


def test_encode_jpeg(noisy_frame):
    request = encode(noisy_frame, 160, 120, quality=90)

    assert isinstance(request, CaptureRequest)
    assert request.format is ImageFormat.JPEG
    assert (request.width, request.height) == (160, 120)
    assert request.image_bytes[:2] == b"\xff\xd8"
    assert _decode(request.image_bytes).shape[:2] == (120, 160)


def test_encode_is_deterministic(noisy_frame):
    assert encode(noisy_frame, 160, 120, 75) == encode(noisy_frame, 160, 120, 75)


def test_lower_quality_gives_smaller_payload(noisy_frame):
    low = encode(noisy_frame, 160, 120, quality=20)
    high = encode(noisy_frame, 160, 120, quality=95)
    assert len(low.image_bytes) < len(high.image_bytes)


def test_frame_is_scaled_to_declared_size(noisy_frame):
    request = encode(noisy_frame, 80, 60, quality=90)
    assert _decode(request.image_bytes).shape[:2] == (60, 80)


def test_encode_png(noisy_frame):
    request = encode(noisy_frame, 160, 120, quality=90, image_format="png")
    assert request.format is ImageFormat.PNG
    assert request.image_bytes[:8] == b"\x89PNG\r\n\x1a\n"


@pytest.mark.parametrize("width,height", [(0, 120), (160, 0), (-1, -1)])
def test_non_positive_dimensions_rejected(noisy_frame, width, height):
    with pytest.raises(EncodingError):
        encode(noisy_frame, width, height, quality=90)


def test_missing_frame_rejected():
    with pytest.raises(EncodingError):
        encode(None, 160, 120, quality=90)


def test_empty_frame_rejected():
    with pytest.raises(EncodingError):
        encode(np.zeros((0, 0, 3), dtype=np.uint8), 160, 120, quality=90)


def test_quality_out_of_range_rejected(noisy_frame):
    with pytest.raises(EncodingError):
        encode(noisy_frame, 160, 120, quality=0)


def test_unknown_format_rejected(noisy_frame):
    with pytest.raises(EncodingError):
        encode(noisy_frame, 160, 120, quality=90, image_format="tiff")


def test_capture_request_is_immutable(noisy_frame):
    request = encode(noisy_frame, 160, 120, quality=90)
    with pytest.raises(AttributeError):
        request.width = 1
