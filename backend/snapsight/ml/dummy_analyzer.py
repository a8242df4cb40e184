import logging
import time
from concurrent import futures

import cv2
import grpc
import numpy as np

from snapsight.config import load_config
from snapsight.rpc.image_service import (
    ColorInfo,
    ImageInfo,
    ImageResponse,
    add_image_processor_to_server,
)

logger = logging.getLogger(__name__)


def _to_rgb(img: np.ndarray) -> np.ndarray:
    """Drop alpha and return an 8-bit RGB view of a decoded image."""
    if img.dtype == np.uint16:
        img = cv2.convertScaleAbs(img, alpha=1 / 257)
    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGB)
    if img.shape[2] == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def dominant_color(rgb: np.ndarray, step: int = 10) -> str:
    """Most frequent color over every ``step``-th pixel, as #RRGGBB."""
    samples = rgb[::step, ::step].reshape(-1, 3)
    colors, counts = np.unique(samples, axis=0, return_counts=True)
    r, g, b = colors[counts.argmax()]
    return f"#{int(r):02X}{int(g):02X}{int(b):02X}"


def is_grayscale(rgb: np.ndarray, step: int = 20, tolerance: int = 10, ratio: float = 0.9) -> bool:
    """True when more than ``ratio`` of sampled pixels have near-equal channels."""
    samples = rgb[::step, ::step].reshape(-1, 3).astype(np.int16)
    if samples.size == 0:
        return False
    r, g, b = samples[:, 0], samples[:, 1], samples[:, 2]
    gray = (np.abs(r - g) < tolerance) & (np.abs(g - b) < tolerance) & (np.abs(r - b) < tolerance)
    return bool(gray.mean() > ratio)


class DummyAnalyzer:
    """
    Stand-in for the real analysis backend, served over the same gRPC contract.

    Decodes the frame to report its dimensions and basic color facts
    (dominant color, grayscale, alpha channel). No detection is performed,
    so bounding_boxes is always empty.
    """

    def __init__(self):
        self.failure_enabled = False
        self.failure_mode = "error"
        self.requests_handled = 0

    def set_failure_mode(self, enabled: bool, mode: str = "error"):
        """
        Enables or disables failure simulation.

        Args:
            enabled (bool): True to activate failure.
            mode (str): 'timeout' (sleep past client deadlines) or 'error' (abort with UNAVAILABLE).
        """
        self.failure_enabled = enabled
        self.failure_mode = mode

    def ProcessImage(self, request, context):
        self.requests_handled += 1

        if self.failure_enabled:
            if self.failure_mode == "timeout":
                logger.warning("[Analyzer] SIMULATING TIMEOUT...")
                time.sleep(2.0)
            else:
                logger.warning("[Analyzer] SIMULATING BACKEND FAILURE...")
                context.abort(grpc.StatusCode.UNAVAILABLE, "Simulated analyzer failure")

        nparr = np.frombuffer(request.image_data, np.uint8)
        img = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED) if nparr.size else None
        if img is None:
            return ImageResponse(success=False, message="Failed to decode image")

        height, width = img.shape[:2]
        rgb = _to_rgb(img)
        return ImageResponse(
            success=True,
            message="Image processed successfully",
            image_info=ImageInfo(
                width=width,
                height=height,
                format=request.image_format,
                size_bytes=len(request.image_data),
                aspect_ratio=width / height,
            ),
            color_info=ColorInfo(
                dominant_color=dominant_color(rgb),
                is_grayscale=is_grayscale(rgb),
                has_transparency=img.ndim == 3 and img.shape[2] == 4,
            ),
        )


def serve(port: int = 50051, analyzer: DummyAnalyzer = None, max_workers: int = 4, host: str = "0.0.0.0"):
    """Start the analyzer gRPC server. Returns (server, bound_port); port 0 picks a free one."""
    server = grpc.server(futures.ThreadPoolExecutor(max_workers=max_workers))
    add_image_processor_to_server(analyzer or DummyAnalyzer(), server)
    bound_port = server.add_insecure_port(f"{host}:{port}")
    server.start()
    logger.info(f"[Analyzer] Image Processing gRPC Server listening on port {bound_port}")
    return server, bound_port


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    analyzer_config = load_config().analyzer
    grpc_server, _ = serve(analyzer_config.port, max_workers=analyzer_config.max_workers)
    grpc_server.wait_for_termination()
