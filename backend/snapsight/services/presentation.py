"""Human-readable rendering of session state for operators and logs."""

from typing import Optional

from snapsight.errors import FrameSourceFailure
from snapsight.schemas.analysis import AnalysisResult

FRAME_SOURCE_MESSAGES = {
    FrameSourceFailure.PERMISSION_DENIED: "Camera access was denied. Please allow camera access to use this feature.",
    FrameSourceFailure.NOT_FOUND: "No camera device found. Please connect a camera and try again.",
    FrameSourceFailure.NOT_READABLE: "Camera is already in use by another application.",
    FrameSourceFailure.UNSUPPORTED: "Camera API not supported on this platform.",
}


def frame_source_message(kind: Optional[FrameSourceFailure], detail: str = "") -> str:
    """Map a frame source failure kind to the text shown to the operator."""
    if kind in FRAME_SOURCE_MESSAGES:
        return FRAME_SOURCE_MESSAGES[kind]
    return "Failed to access camera: " + (detail or "Unknown error")


def summarize_result(result: Optional[AnalysisResult]) -> str:
    if result is None:
        return "No frames processed yet"
    if not result.success:
        return f"Failed to process image: {result.message}"

    lines = ["Image processed successfully!", ""]
    if result.image_info:
        info = result.image_info
        lines.append(f"Dimensions: {info.width}x{info.height}")
        lines.append(f"Format: {info.format}")
        lines.append(f"Size: {round(info.size_bytes / 1024)}KB")
        lines.append(f"Aspect Ratio: {info.aspect_ratio:.2f}")
    if result.color_info:
        color = result.color_info
        lines.append(f"Dominant Color: {color.dominant_color}")
        lines.append(f"Is Grayscale: {'Yes' if color.is_grayscale else 'No'}")
        lines.append(f"Has Transparency: {'Yes' if color.has_transparency else 'No'}")
    for box in result.bounding_boxes:
        lines.append(
            f"Box: {box.label} ({box.confidence:.0%}) "
            f"[{box.x1:.0f}, {box.y1:.0f}, {box.x2:.0f}, {box.y2:.0f}]"
        )
    return "\n".join(lines)


def session_view(snapshot: dict, scheduler_state: str) -> dict:
    """Status payload for the control API: session snapshot plus display text."""
    result = AnalysisResult.model_validate(snapshot["result"]) if snapshot["result"] else None

    error_text = None
    if snapshot["error_kind"]:
        error_text = frame_source_message(FrameSourceFailure(snapshot["error_kind"]), snapshot["error_message"])
    elif snapshot["error_message"]:
        error_text = snapshot["error_message"]

    return {
        **snapshot,
        "scheduler_state": scheduler_state,
        "error_text": error_text,
        "summary": summarize_result(result),
    }
