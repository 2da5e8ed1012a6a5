from typing import List, Optional
from pydantic import BaseModel, Field


class ImageLink(BaseModel):
    original: str
    watermarked: str


class QCImagesResponse(BaseModel):
    success: bool = True
    productId: str
    storePlatform: str
    totalImages: int
    images: List[ImageLink] = Field(default_factory=list)


class FieldError(BaseModel):
    field: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: Optional[str] = None
    details: Optional[List[FieldError]] = None


class HealthResponse(BaseModel):
    status: str = "OK"
    timestamp: str
    service: str
    version: str
    environment: str
    uptime: float


class ImagePayload(BaseModel):
    """Fetched (and possibly watermarked) image bytes ready to send."""
    content: bytes
    content_type: str
    watermarked: bool = False
