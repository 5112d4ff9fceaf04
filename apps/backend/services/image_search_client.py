"""
Client side of the image search boundary.

The writer pipeline only depends on the ImageSearchClient protocol; the
production implementation talks to the proxy's /api/images endpoint.
"""

import asyncio
from typing import Any, List, Optional, Protocol

import aiohttp
from pydantic import ValidationError

from config.settings import get_settings
from models.gallery import ImageRecord
from models.requests import ImageSearchResponse
from services.exceptions import ImageSearchError, UpstreamUnavailableError, error_for_status
from setup_logging_optimized import get_logger

logger = get_logger(__name__)


class ImageSearchClient(Protocol):
    async def search(self, keyword: str) -> List[ImageRecord]:
        """Return candidate images for ``keyword``; raise ImageSearchError on failure."""
        ...

    async def track_download(self, tracking_ref: str) -> None:
        """Best-effort download notification; never raises."""
        ...


class ProxyImageSearchClient:
    """Calls the writer proxy over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        writer_config = get_settings().writer
        self.base_url = (base_url or writer_config.api_base_url).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds or writer_config.search_timeout_seconds)
        self.session = session
        self._owns_session = False

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None
            self._owns_session = False

    def _session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self.session

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        try:
            return await response.json(content_type=None)
        except ValueError:
            return {"message": await response.text()}

    async def search(self, keyword: str) -> List[ImageRecord]:
        url = f"{self.base_url}/api/images"
        try:
            async with self._session().get(url, params={"keyword": keyword}) as response:
                body = await self._read_body(response)
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise UpstreamUnavailableError(f"Image search request failed: {e}", cause=e) from e

        if status == 404:
            return []
        if status != 200:
            message = "Failed to fetch images"
            if isinstance(body, dict):
                message = body.get("error") or body.get("message") or message
            raise error_for_status(status, message, context={"keyword": keyword})

        try:
            return ImageSearchResponse.model_validate(body or {}).images
        except ValidationError as e:
            raise ImageSearchError("Malformed image search response", cause=e, context={"keyword": keyword}) from e

    async def track_download(self, tracking_ref: str) -> None:
        if not tracking_ref:
            return
        url = f"{self.base_url}/api/track-download"
        try:
            async with self._session().post(url, json={"download_location": tracking_ref}) as response:
                if response.status != 200:
                    logger.debug(f"Download tracking answered {response.status} for {tracking_ref}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            # Tracking must never block the export it supports
            logger.debug(f"Download tracking failed for {tracking_ref}: {e}")
