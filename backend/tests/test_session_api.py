"""Tests for the capture-side control API (/api/session/*)."""

import pytest
from fastapi.testclient import TestClient

from snapsight.errors import FrameSourceError, FrameSourceFailure
from snapsight.main import create_app
from snapsight.scheduler.capture_scheduler import CaptureScheduler
from snapsight.schemas.analysis import AnalysisResult, ImageInfo


@pytest.fixture
def scheduler(frame_source, client, session, clock):
    return CaptureScheduler(frame_source, client, session, capture_interval_ms=60_000,
                            min_capture_gap_ms=500, clock=clock)


@pytest.fixture
def api(scheduler):
    with TestClient(create_app(scheduler)) as test_client:
        yield test_client


def test_root(api):
    assert api.get("/").json() == {"message": "SnapSight capture client is running"}


def test_status_before_start(api):
    body = api.get("/api/session/status").json()
    assert body["mode"] == "stopped"
    assert body["scheduler_state"] == "IDLE"
    assert body["stats"]["processed_count"] == 0
    assert body["result"] is None
    assert body["summary"] == "No frames processed yet"


def test_start_then_status_shows_result(api, client, session, wait):
    client.script = [AnalysisResult(
        success=True,
        message="Image processed successfully",
        image_info=ImageInfo(width=640, height=480, format="jpeg", size_bytes=51200, aspect_ratio=1.333),
    )]
    resp = api.post("/api/session/start").json()
    assert resp["success"] is True
    assert resp["running"] is True
    assert wait(lambda: session.stats.processed_count == 1)

    body = api.get("/api/session/status").json()
    assert body["mode"] == "running"
    assert body["stats"]["processed_count"] == 1
    assert body["result"]["image_info"]["width"] == 640
    assert body["result"]["bounding_boxes"] == []
    assert "Aspect Ratio: 1.33" in body["summary"]


def test_start_twice_reports_already_running(api):
    api.post("/api/session/start")
    resp = api.post("/api/session/start").json()
    assert resp["success"] is True
    assert resp["message"] == "Session already running"


def test_stop_is_idempotent(api):
    api.post("/api/session/start")
    first = api.post("/api/session/stop").json()
    second = api.post("/api/session/stop").json()
    assert first["running"] is False
    assert second["scheduler_state"] == "STOPPED"


def test_toggle(api):
    assert api.post("/api/session/toggle").json()["running"] is True
    assert api.post("/api/session/toggle").json()["running"] is False
    assert api.post("/api/session/toggle").json()["running"] is True


def test_start_failure_is_reported(api, frame_source):
    frame_source.open_error = FrameSourceError(FrameSourceFailure.NOT_FOUND, "Could not open video source: 0")

    resp = api.post("/api/session/start").json()
    assert resp["success"] is False
    assert resp["running"] is False

    body = api.get("/api/session/status").json()
    assert body["error_kind"] == "NOT_FOUND"
    assert body["error_text"] == "No camera device found. Please connect a camera and try again."
