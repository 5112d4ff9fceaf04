from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any

from models.gallery import ImageRecord


class ImageSearchResponse(BaseModel):
    """Payload of GET /api/images"""
    images: List[ImageRecord] = Field(default_factory=list)


class TrackDownloadRequest(BaseModel):
    """Body of POST /api/track-download"""
    download_location: Optional[str] = Field(
        default=None,
        description="download_location value from the image record"
    )


class TrackDownloadResponse(BaseModel):
    success: bool = True
    data: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error envelope shared by every proxy endpoint"""
    error: str
    message: Optional[str] = None
    details: Optional[Any] = None
