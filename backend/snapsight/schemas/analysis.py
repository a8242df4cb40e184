from pydantic import BaseModel, Field
from typing import List, Optional


class ProcessImageRequest(BaseModel):
    # Optional so a missing field reaches the handler (400) instead of FastAPI's 422
    image_data: Optional[str] = None
    image_format: Optional[str] = None


class ImageInfo(BaseModel):
    width: int
    height: int
    format: str
    size_bytes: int = Field(ge=0)
    aspect_ratio: float


class ColorInfo(BaseModel):
    dominant_color: str
    is_grayscale: bool
    has_transparency: bool


class BoundingBox(BaseModel):
    x1: float
    y1: float
    x2: float
    y2: float
    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class AnalysisResult(BaseModel):
    success: bool
    message: str
    image_info: Optional[ImageInfo] = None
    color_info: Optional[ColorInfo] = None
    bounding_boxes: List[BoundingBox] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    success: bool = False
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: str
