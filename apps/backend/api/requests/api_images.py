"""
Image proxy endpoints: keyword search and download tracking.

The upstream access key never leaves the server; responses carry only the
sanitized fields the writer needs.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from models.requests import ErrorResponse, ImageSearchResponse, TrackDownloadRequest, TrackDownloadResponse
from services.exceptions import ImageSearchError
from services.unsplash_service import UnsplashService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Images"])


def get_unsplash_service() -> UnsplashService:
    return UnsplashService()


def _error(status: int, error: str, message: Optional[str] = None, details: Any = None) -> JSONResponse:
    body = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True))


def _upstream_error(e: ImageSearchError) -> JSONResponse:
    if e.status is None:
        # transport failure: no upstream response to relay
        message = str(e.cause) if e.cause else e.message
        return _error(500, "Internal server error", message=message)
    return _error(e.status, e.message, details=e.context.get("details"))


@router.get("/images", response_model=ImageSearchResponse)
async def search_images(
    keyword: Optional[str] = Query(default=None),
    service: UnsplashService = Depends(get_unsplash_service),
):
    """Search photos for one keyword."""
    if not keyword or not keyword.strip():
        return _error(400, "Keyword is required")
    if not service.is_available:
        return _error(500, "Unsplash API key not configured")

    try:
        images = await service.search_photos(keyword.strip())
    except ImageSearchError as e:
        logger.warning(f"Image search failed for '{keyword}': {e}")
        return _upstream_error(e)

    payload = ImageSearchResponse(images=images)
    return JSONResponse(content=payload.model_dump(mode="json", by_alias=True))


@router.post("/track-download", response_model=TrackDownloadResponse)
async def track_download(
    request: TrackDownloadRequest,
    service: UnsplashService = Depends(get_unsplash_service),
):
    """Report a photo download to Unsplash."""
    if not request.download_location:
        return _error(400, "download_location is required")
    if not service.is_available:
        return _error(500, "Unsplash API key not configured")

    try:
        data = await service.track_download(request.download_location)
    except ImageSearchError as e:
        logger.warning(f"Download tracking failed: {e}")
        if e.status is None:
            return _upstream_error(e)
        return _error(e.status, "Failed to track download", details=e.context.get("details"))

    return {"success": True, "data": data if isinstance(data, dict) else None}
