"""
Debounced keyword → gallery synchronization.

Every text change calls ``schedule``. Only the newest invocation survives
the debounce window; it fans out one search per keyword, joins them, and
commits the whole gallery at once. Each invocation carries a generation
number and commits only while it is still the newest one, so a slow,
superseded batch can finish but never overwrite fresher results.
"""

import asyncio
import itertools
import random
import time
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

import aiohttp

from config.settings import get_settings
from models.gallery import GalleryItem, ImageRecord, Notification
from services.exceptions import ImageSearchError
from services.image_search_client import ImageSearchClient
from services.writer_state import (
    GalleryReplaced,
    NotificationDismissed,
    NotificationShown,
    SearchCancelled,
    SearchStarted,
)
from setup_logging_optimized import get_logger
from utils.keywords import get_keyword_color

logger = get_logger(__name__)

NO_RESULTS_MESSAGE = "No images found for these keywords"
FETCH_FAILED_MESSAGE = "Failed to fetch images"


class FetchReconciler:
    def __init__(
        self,
        client: ImageSearchClient,
        dispatch: Callable[[object], object],
        debounce_seconds: Optional[float] = None,
        cache_ttl_seconds: Optional[float] = None,
        notification_timeout_seconds: Optional[float] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        writer_config = get_settings().writer
        self.client = client
        self.dispatch = dispatch
        self.debounce_seconds = writer_config.debounce_seconds if debounce_seconds is None else debounce_seconds
        self.cache_ttl_seconds = writer_config.search_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        self.notification_timeout_seconds = (
            writer_config.notification_timeout_seconds
            if notification_timeout_seconds is None else notification_timeout_seconds
        )
        self.rng = rng or random.Random()
        self.clock = clock

        self._generation = 0
        self._waiting: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._dismissals: Set[asyncio.Task] = set()
        self._cache: Dict[str, Tuple[float, List[ImageRecord]]] = {}
        self._notification_ids = itertools.count(1)

    @property
    def generation(self) -> int:
        return self._generation

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    @property
    def cached_keywords(self) -> List[str]:
        return list(self._cache)

    def schedule(self, keywords: Sequence[str]) -> asyncio.Task:
        """Start a new invocation, cancelling one still inside its debounce window."""
        self._generation += 1
        if self._waiting is not None and not self._waiting.done():
            self._waiting.cancel()

        task = asyncio.ensure_future(self._run(self._generation, tuple(keywords)))
        self._waiting = task
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    def cancel(self) -> None:
        """Drop pending and in-flight work; nothing scheduled so far will commit.

        The searching flag is cleared right away, so a cancelled batch never
        leaves the gallery looking busy.
        """
        self._generation += 1
        for task in list(self._inflight) + list(self._dismissals):
            task.cancel()
        self._waiting = None
        self.dispatch(SearchCancelled(self._generation))

    async def _run(self, generation: int, keywords: Tuple[str, ...]) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if self._waiting is asyncio.current_task():
            self._waiting = None
        if not self.is_current(generation):
            return

        if not keywords:
            self.dispatch(GalleryReplaced(generation, keywords, ()))
            return

        self.dispatch(SearchStarted(generation))
        logger.info(f"Searching images for {len(keywords)} keywords (generation {generation})")

        try:
            results = await asyncio.gather(*(self._search_one(keyword) for keyword in keywords))
        except Exception as e:
            if not self.is_current(generation):
                return
            logger.error(f"Image search batch failed: {e}", exc_info=True)
            self.dispatch(GalleryReplaced(generation, keywords, ()))
            self.notify(getattr(e, "message", None) or FETCH_FAILED_MESSAGE, kind="error")
            return

        if not self.is_current(generation):
            logger.debug(f"Discarding results of superseded generation {generation}")
            return

        # order-preserving: one entry per keyword, even when image ids repeat
        items = tuple(item for item in results if item is not None)
        self.dispatch(GalleryReplaced(generation, keywords, items))
        if not items:
            self.notify(NO_RESULTS_MESSAGE, kind="info")

    async def _search_one(self, keyword: str) -> Optional[GalleryItem]:
        try:
            pool = await self._search_pool(keyword)
        except (ImageSearchError, aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.info(f"No image for '{keyword}': {e}")
            return None
        if not pool:
            return None
        return GalleryItem(image=self.rng.choice(pool), keyword=keyword, color=get_keyword_color(keyword))

    async def _search_pool(self, keyword: str) -> List[ImageRecord]:
        now = self.clock()
        cached = self._cache.get(keyword)
        if cached is not None and now - cached[0] < self.cache_ttl_seconds:
            return cached[1]

        pool = list(await self.client.search(keyword))
        if self.cache_ttl_seconds > 0:
            self._cache = {
                key: entry for key, entry in self._cache.items() if now - entry[0] < self.cache_ttl_seconds
            }
            self._cache[keyword] = (now, pool)
        return pool

    def notify(self, message: str, kind: str = "info") -> Notification:
        """Show a transient notification that dismisses itself."""
        notification = Notification(id=next(self._notification_ids), message=message, kind=kind)
        self.dispatch(NotificationShown(notification))

        async def dismiss_later() -> None:
            await asyncio.sleep(self.notification_timeout_seconds)
            self.dispatch(NotificationDismissed(notification.id))

        task = asyncio.ensure_future(dismiss_later())
        self._dismissals.add(task)
        task.add_done_callback(self._dismissals.discard)
        return notification
