"""
Controller wiring the writer pipeline together.

text -> keywords -> FetchReconciler -> gallery -> sizes -> layout -> positions

The controller owns the WriterStore and is the only place that turns
committed galleries into size lookups and layout passes.
"""

import asyncio
import random
from typing import List, Optional, Set

from config.settings import get_settings
from models.gallery import GalleryItem, ImageRecord, ViewportTransform
from services.fetch_reconciler import FetchReconciler
from services.image_search_client import ImageSearchClient
from services.size_resolver import ImageSizeResolver
from services.writer_state import (
    GalleryReplaced,
    ItemSelected,
    LayoutComputed,
    SelectionCleared,
    SizeResolved,
    TextChanged,
    ViewportChanged,
    WriterState,
    WriterStore,
)
from setup_logging_optimized import get_logger
from utils.highlights import TextSpan, build_highlight_spans
from utils.keywords import extract_keywords
from utils.layout import LayoutEngine, canvas_width_for
from utils.viewport import DEFAULT_PADDING, focus_transform, reset_transform

logger = get_logger(__name__)


class WriterController:
    def __init__(
        self,
        client: ImageSearchClient,
        store: Optional[WriterStore] = None,
        reconciler: Optional[FetchReconciler] = None,
        size_resolver: Optional[ImageSizeResolver] = None,
        layout_rng: Optional[random.Random] = None,
        viewport_width: float = 1280,
        viewport_height: float = 800,
        padding: float = DEFAULT_PADDING,
        focus_scale: Optional[float] = None,
    ):
        self.client = client
        self.store = store or WriterStore()
        self.reconciler = reconciler or FetchReconciler(client, self.store.dispatch)
        self.size_resolver = size_resolver or ImageSizeResolver()
        self.layout_rng = layout_rng or random.Random()
        self.viewport_width = viewport_width
        self.viewport_height = viewport_height
        self.padding = padding
        self.focus_scale = get_settings().writer.focus_scale if focus_scale is None else focus_scale
        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = self.store.subscribe(self._on_action)

    @property
    def state(self) -> WriterState:
        return self.store.state

    # Text ------------------------------------------------------------------

    def set_text(self, text: str) -> asyncio.Task:
        """Record new editor text and schedule a debounced image search."""
        keywords = tuple(extract_keywords(text))
        self.store.dispatch(TextChanged(text, keywords))
        return self.reconciler.schedule(keywords)

    def highlight_spans(self) -> List[TextSpan]:
        return build_highlight_spans(self.state.text, self.state.keyword_colors)

    # Gallery -> sizes -> layout ---------------------------------------------

    def _on_action(self, state: WriterState, action) -> None:
        if isinstance(action, GalleryReplaced) and state.gallery_generation == action.generation:
            self.size_resolver.retain(item.id for item in state.gallery)
            self._spawn(self._measure_gallery(action.generation, state.gallery))

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _measure_gallery(self, generation: int, gallery) -> None:
        pending = {}
        for item in gallery:
            if item.id not in self.state.sizes and item.id not in pending:
                pending[item.id] = item.image
        await asyncio.gather(*(self._measure(generation, image) for image in pending.values()))
        if self.state.gallery_generation == generation:
            self.relayout()

    async def _measure(self, generation: int, image: ImageRecord) -> None:
        size = await self.size_resolver.resolve(image)
        self.store.dispatch(SizeResolved(generation, image.id, size))

    def relayout(self) -> None:
        """Recompute every position; runs only once all sizes are known."""
        state = self.state
        if not state.all_sizes_known:
            return
        engine = LayoutEngine(canvas_width=canvas_width_for(self.viewport_width), rng=self.layout_rng)
        result = engine.layout([state.sizes[item.id] for item in state.gallery])
        self.store.dispatch(LayoutComputed(
            state.gallery_generation,
            tuple(result.positions),
            result.canvas_width,
            result.canvas_height,
        ))
        logger.debug(f"Laid out {len(result.positions)} cards on {result.canvas_width}x{result.canvas_height}")

    def set_viewport_size(self, width: float, height: float) -> None:
        reflow = canvas_width_for(width) != canvas_width_for(self.viewport_width)
        self.viewport_width = width
        self.viewport_height = height
        if reflow:
            self.relayout()

    # Selection and camera ---------------------------------------------------

    def focus_item(self, index: int) -> Optional[ViewportTransform]:
        """Move the camera onto a card; no-op until the card is sized and placed."""
        state = self.state
        transform = focus_transform(
            state.position_of(index),
            state.size_of(index),
            self.viewport_width,
            self.viewport_height,
            padding_left=self.padding,
            padding_top=self.padding,
            scale=self.focus_scale,
        )
        if transform is not None:
            self.store.dispatch(ViewportChanged(transform))
        return transform

    def select_item(self, index: int) -> Optional[GalleryItem]:
        self.store.dispatch(ItemSelected(index))
        if self.state.selected_index == index:
            self.focus_item(index)
        return self.state.selected_item

    def select_next(self) -> Optional[GalleryItem]:
        state = self.state
        if 0 <= state.selected_index < len(state.gallery) - 1:
            self.store.dispatch(ItemSelected(state.selected_index + 1))
        return self.state.selected_item

    def select_previous(self) -> Optional[GalleryItem]:
        state = self.state
        if state.selected_index > 0:
            self.store.dispatch(ItemSelected(state.selected_index - 1))
        return self.state.selected_item

    def select_keyword(self, keyword: str) -> Optional[GalleryItem]:
        """Jump to the first card found for ``keyword`` (editor or viewer click)."""
        if not keyword:
            return None
        index = self.state.index_of_keyword(keyword)
        if index == -1:
            return None
        return self.select_item(index)

    def pan(self, transform: ViewportTransform) -> None:
        self.store.dispatch(ViewportChanged(transform))

    def close_viewer(self) -> None:
        self.store.dispatch(SelectionCleared())
        self.store.dispatch(ViewportChanged(reset_transform()))

    # Export support ---------------------------------------------------------

    async def track_downloads(self) -> None:
        """Fire download tracking for every gallery image; failures are ignored."""
        refs = {item.image.download_tracking_ref for item in self.state.gallery if item.image.download_tracking_ref}
        await asyncio.gather(*(self.client.track_download(ref) for ref in refs))

    async def wait_for_layout(self) -> None:
        """Wait until spawned size lookups and layout passes have finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self.reconciler.cancel()
        for task in list(self._tasks):
            task.cancel()
        self._unsubscribe()
        await self.size_resolver.close()
