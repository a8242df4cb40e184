from snapsight.errors import FrameSourceFailure
from snapsight.schemas.analysis import AnalysisResult, BoundingBox, ColorInfo, ImageInfo
from snapsight.services.presentation import frame_source_message, session_view, summarize_result


def test_summary_of_full_result():
    result = AnalysisResult(
        success=True,
        message="Image processed successfully",
        image_info=ImageInfo(width=640, height=480, format="jpeg", size_bytes=51200, aspect_ratio=1.3333),
        color_info=ColorInfo(dominant_color="#FFFFFF", is_grayscale=True, has_transparency=False),
        bounding_boxes=[BoundingBox(x1=1, y1=2, x2=3, y2=4, label="cup", confidence=0.5)],
    )
    summary = summarize_result(result)

    assert "Dimensions: 640x480" in summary
    assert "Size: 50KB" in summary
    assert "Aspect Ratio: 1.33" in summary
    assert "Dominant Color: #FFFFFF" in summary
    assert "Is Grayscale: Yes" in summary
    assert "Has Transparency: No" in summary
    assert "Box: cup (50%)" in summary


def test_summary_of_failure():
    result = AnalysisResult(success=False, message="Transport error: refused")
    assert summarize_result(result) == "Failed to process image: Transport error: refused"


def test_summary_without_result():
    assert summarize_result(None) == "No frames processed yet"


def test_frame_source_messages():
    assert frame_source_message(FrameSourceFailure.PERMISSION_DENIED).startswith("Camera access was denied")
    assert frame_source_message(FrameSourceFailure.NOT_READABLE) == "Camera is already in use by another application."
    assert frame_source_message(FrameSourceFailure.UNKNOWN, "driver crashed") == "Failed to access camera: driver crashed"
    assert frame_source_message(FrameSourceFailure.UNKNOWN) == "Failed to access camera: Unknown error"


def test_session_view_uses_plain_message_for_encoding_errors():
    snapshot = {
        "mode": "running",
        "stats": {"processed_count": 0, "total_response_time_ms": 0,
                  "last_response_time_ms": 0, "average_response_time_ms": 0},
        "result": None,
        "error_message": "Invalid frame dimensions: 0x48",
        "error_kind": None,
    }
    view = session_view(snapshot, "CAPTURING")
    assert view["error_text"] == "Invalid frame dimensions: 0x48"
    assert view["scheduler_state"] == "CAPTURING"
