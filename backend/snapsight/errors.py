"""
Error taxonomy shared by the capture client and the gateway.

- ValidationError: bad request fields, rejected at the gateway boundary
- TransportError: the analysis backend (or gateway) could not be reached
- EncodingError: a frame could not be rasterized into a request payload
- FrameSourceError: the camera could not be opened or read

A backend reply with success=false is NOT an error; it travels as data.
"""

from enum import Enum


class SnapSightError(Exception):
    """Base class for all SnapSight errors."""


class ValidationError(SnapSightError):
    pass


class TransportError(SnapSightError):
    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class EncodingError(SnapSightError):
    pass


class FrameSourceFailure(Enum):
    PERMISSION_DENIED = "PERMISSION_DENIED"
    NOT_FOUND = "NOT_FOUND"
    NOT_READABLE = "NOT_READABLE"
    UNSUPPORTED = "UNSUPPORTED"
    UNKNOWN = "UNKNOWN"


class FrameSourceError(SnapSightError):
    """Camera failure with a closed failure kind (mapped to text by presentation)."""

    def __init__(self, kind: FrameSourceFailure, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail
