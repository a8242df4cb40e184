import pytest

from snapsight.config import CaptureConfig
from snapsight.errors import FrameSourceError, FrameSourceFailure
from snapsight.main import build_scheduler
from snapsight.services.frame_source import OpenCVCameraSource
from snapsight.services.request_encoder import ImageFormat


def test_missing_source_fails_to_open(tmp_path):
    source = OpenCVCameraSource(str(tmp_path / "no-such-video.mp4"))
    with pytest.raises(FrameSourceError) as excinfo:
        source.open()
    assert excinfo.value.kind is FrameSourceFailure.NOT_FOUND
    assert not source.is_open


def test_read_before_open_is_not_readable():
    source = OpenCVCameraSource(0)
    with pytest.raises(FrameSourceError) as excinfo:
        source.read()
    assert excinfo.value.kind is FrameSourceFailure.NOT_READABLE


def test_close_without_open_is_harmless():
    OpenCVCameraSource(0).close()


def test_build_scheduler_applies_capture_config(frame_source):
    config = CaptureConfig(gateway_url="http://gw:3000", capture_interval_ms=1500,
                           min_capture_gap_ms=300, encode_quality=70, image_format="png")
    scheduler = build_scheduler(config, frame_source=frame_source)
    try:
        assert scheduler.capture_interval_ms == 1500
        assert scheduler.min_capture_gap_ms == 300
        assert scheduler.encode_quality == 70
        assert scheduler.image_format is ImageFormat.PNG
        assert scheduler.client.url == "http://gw:3000"
        assert scheduler.frame_source is frame_source
    finally:
        scheduler.shutdown()
