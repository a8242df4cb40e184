import cv2
import numpy as np

from snapsight.ml.dummy_analyzer import DummyAnalyzer, dominant_color, is_grayscale
from snapsight.rpc.image_service import ImageRequest


def _request(frame, ext=".png", image_format="png"):
    ok, buf = cv2.imencode(ext, frame)
    assert ok
    return ImageRequest(image_data=buf.tobytes(), image_format=image_format)


def test_bgra_png_reports_transparency_and_color():
    frame = np.zeros((40, 40, 4), dtype=np.uint8)
    frame[:, :] = (255, 0, 0, 200)  # BGRA blue

    response = DummyAnalyzer().ProcessImage(_request(frame), None)

    assert response.success
    assert response.HasField("color_info")
    assert response.color_info.has_transparency is True
    assert response.color_info.dominant_color == "#0000FF"
    assert response.color_info.is_grayscale is False
    assert response.image_info.width == 40


def test_gray_png_is_grayscale_without_alpha():
    frame = np.full((30, 50), 90, dtype=np.uint8)

    response = DummyAnalyzer().ProcessImage(_request(frame), None)

    assert response.color_info.is_grayscale is True
    assert response.color_info.has_transparency is False
    assert response.color_info.dominant_color == "#5A5A5A"


def test_dominant_color_picks_most_frequent_sample():
    rgb = np.zeros((100, 100, 3), dtype=np.uint8)
    rgb[:, :70] = (10, 200, 30)
    rgb[:, 70:] = (250, 250, 250)
    assert dominant_color(rgb) == "#0AC81E"


def test_grayscale_needs_more_than_ninety_percent():
    rgb = np.full((100, 100, 3), 128, dtype=np.uint8)
    assert is_grayscale(rgb) is True

    rgb[:, :20] = (255, 0, 0)
    assert is_grayscale(rgb) is False


def test_undecodable_bytes_are_a_logical_failure():
    response = DummyAnalyzer().ProcessImage(ImageRequest(image_data=b"hello", image_format="jpeg"), None)
    assert response.success is False
    assert not response.HasField("color_info")
