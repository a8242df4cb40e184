"""
Frame sources for the capture scheduler.

A frame source hands out one still snapshot (BGR numpy array) per call to
``read()``. Failures are reported as FrameSourceError with a closed failure
kind; turning the kind into text is the presentation layer's job.
"""

import logging
import threading
from typing import Optional

import cv2
import numpy as np

from snapsight.errors import FrameSourceError, FrameSourceFailure

logger = logging.getLogger(__name__)


class FrameSource:
    """Base interface: open() before the first read(), close() when done."""

    def open(self):
        pass

    def read(self) -> np.ndarray:
        raise NotImplementedError

    def close(self):
        pass

    @property
    def is_open(self) -> bool:
        return True


class OpenCVCameraSource(FrameSource):
    """Snapshot source backed by cv2.VideoCapture (webcam index, file or stream URL)."""

    def __init__(self, source=0):
        self.source = source
        self.cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def open(self):
        with self._lock:
            if self.cap is not None:
                return
            cap = cv2.VideoCapture(self.source)
            if not cap.isOpened():
                cap.release()
                raise FrameSourceError(FrameSourceFailure.NOT_FOUND, f"Could not open video source: {self.source}")
            self.cap = cap
            width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
            logger.info(f"[CameraSource] Opened {self.source} ({width}x{height})")

    def read(self) -> np.ndarray:
        with self._lock:
            if self.cap is None:
                raise FrameSourceError(FrameSourceFailure.NOT_READABLE, "Camera stream not available")
            ok, frame = self.cap.read()
        if not ok or frame is None:
            raise FrameSourceError(FrameSourceFailure.NOT_READABLE, f"Failed to read frame from {self.source}")
        return frame

    def close(self):
        with self._lock:
            if self.cap is not None:
                self.cap.release()
                self.cap = None
                logger.info(f"[CameraSource] Released {self.source}")
