"""
Display sizes for gallery images.

Each image is loaded once, its natural dimensions read with Pillow, and
fitted into the card box. Sizes are cached by image id; a failed load
resolves to the default card size instead of raising.
"""

import asyncio
from io import BytesIO
from typing import Awaitable, Callable, Dict, Iterable, Optional

import aiohttp
from PIL import Image

from models.gallery import DEFAULT_SIZE, MAX_CARD_HEIGHT, MAX_CARD_WIDTH, ImageRecord, Size
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

ImageLoader = Callable[[str], Awaitable[bytes]]


def fit_size(natural_width: float, natural_height: float,
             max_width: float = MAX_CARD_WIDTH, max_height: float = MAX_CARD_HEIGHT) -> Size:
    """Scale to the full card width, then shrink to the max height if needed."""
    if natural_width <= 0 or natural_height <= 0:
        return DEFAULT_SIZE
    aspect_ratio = natural_width / natural_height
    width = max_width
    height = max_width / aspect_ratio
    if height > max_height:
        height = max_height
        width = max_height * aspect_ratio
    return Size(width, height)


class ImageSizeResolver:
    def __init__(self, loader: Optional[ImageLoader] = None, timeout_seconds: float = 20):
        self._loader = loader or self._download
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session: Optional[aiohttp.ClientSession] = None
        self._sizes: Dict[str, Size] = {}
        self._pending: Dict[str, asyncio.Task] = {}

    def cached(self, image_id: str) -> Optional[Size]:
        return self._sizes.get(image_id)

    def retain(self, image_ids: Iterable[str]) -> None:
        """Forget sizes of images that left the gallery."""
        keep = set(image_ids)
        self._sizes = {image_id: size for image_id, size in self._sizes.items() if image_id in keep}

    async def resolve(self, image: ImageRecord) -> Size:
        """Resolve exactly once per image id; concurrent callers share the load."""
        if image.id in self._sizes:
            return self._sizes[image.id]
        task = self._pending.get(image.id)
        if task is None:
            task = asyncio.ensure_future(self._load(image))
            self._pending[image.id] = task
        # shielded so one cancelled caller doesn't cancel the shared load
        try:
            size = await asyncio.shield(task)
        finally:
            if task.done():
                self._pending.pop(image.id, None)
        self._sizes[image.id] = size
        return size

    async def _load(self, image: ImageRecord) -> Size:
        try:
            data = await self._loader(image.url)
            with Image.open(BytesIO(data)) as im:
                width, height = im.size
            return fit_size(width, height)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError, ValueError) as e:
            logger.debug(f"Image {image.id} failed to load, using default size: {e}")
            return DEFAULT_SIZE
        except Exception as e:
            # Pillow refuses oversized images with DecompressionBombError
            logger.warning(f"Image {image.id} could not be measured, using default size: {e}")
            return DEFAULT_SIZE

    async def _download(self, url: str) -> bytes:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        async with self._session.get(url) as response:
            response.raise_for_status()
            return await response.read()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
