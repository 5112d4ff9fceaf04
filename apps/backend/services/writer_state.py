"""
Application state for the writer and the reducer that evolves it.

All mutation goes through ``WriterStore.dispatch``: an action is applied
by the pure ``reduce`` function and the resulting state replaces the old
one wholesale. Results belonging to a superseded search generation are
dropped here, at commit time.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

from models.gallery import GalleryItem, Notification, Position, Size, ViewportTransform
from setup_logging_optimized import get_logger
from utils.keywords import get_keyword_color

logger = get_logger(__name__)


@dataclass(frozen=True)
class WriterState:
    text: str = ""
    keywords: Tuple[str, ...] = ()
    keyword_colors: Dict[str, str] = field(default_factory=dict)
    gallery: Tuple[GalleryItem, ...] = ()
    gallery_generation: int = 0
    search_generation: int = 0
    is_searching: bool = False
    sizes: Dict[str, Size] = field(default_factory=dict)
    positions: Tuple[Position, ...] = ()
    canvas_width: float = 0
    canvas_height: float = 0
    notification: Optional[Notification] = None
    viewport: ViewportTransform = field(default_factory=ViewportTransform)
    selected_index: int = -1
    last_keyword: str = ""

    @property
    def selected_item(self) -> Optional[GalleryItem]:
        if 0 <= self.selected_index < len(self.gallery):
            return self.gallery[self.selected_index]
        return None

    @property
    def current_keyword(self) -> str:
        """Keyword of the selected card, else the last extracted keyword."""
        item = self.selected_item
        if item is not None and item.keyword:
            return item.keyword
        return self.last_keyword

    @property
    def all_sizes_known(self) -> bool:
        return bool(self.gallery) and all(item.id in self.sizes for item in self.gallery)

    def size_of(self, index: int) -> Optional[Size]:
        if 0 <= index < len(self.gallery):
            return self.sizes.get(self.gallery[index].id)
        return None

    def position_of(self, index: int) -> Optional[Position]:
        if 0 <= index < len(self.positions):
            return self.positions[index]
        return None

    def index_of_keyword(self, keyword: str) -> int:
        for index, item in enumerate(self.gallery):
            if item.keyword == keyword:
                return index
        return -1


# Actions ---------------------------------------------------------------------

@dataclass(frozen=True)
class TextChanged:
    text: str
    keywords: Tuple[str, ...]


@dataclass(frozen=True)
class SearchStarted:
    generation: int


@dataclass(frozen=True)
class SearchCancelled:
    generation: int


@dataclass(frozen=True)
class GalleryReplaced:
    generation: int
    keywords: Tuple[str, ...]
    items: Tuple[GalleryItem, ...]


@dataclass(frozen=True)
class SizeResolved:
    generation: int
    image_id: str
    size: Size


@dataclass(frozen=True)
class LayoutComputed:
    generation: int
    positions: Tuple[Position, ...]
    canvas_width: float
    canvas_height: float


@dataclass(frozen=True)
class NotificationShown:
    notification: Notification


@dataclass(frozen=True)
class NotificationDismissed:
    notification_id: int


@dataclass(frozen=True)
class ItemSelected:
    index: int


@dataclass(frozen=True)
class SelectionCleared:
    pass


@dataclass(frozen=True)
class ViewportChanged:
    viewport: ViewportTransform


def _remap_selection(state: WriterState, items: Tuple[GalleryItem, ...]) -> int:
    selected = state.selected_item
    if selected is None:
        return -1
    for index, item in enumerate(items):
        if item.id == selected.id and item.keyword == selected.keyword:
            return index
    return -1


def _replace_gallery(state: WriterState, action: GalleryReplaced) -> WriterState:
    if action.generation < state.search_generation:
        logger.debug(f"Discarding stale gallery from generation {action.generation}")
        return state

    colors = dict(state.keyword_colors)
    if action.items:
        # every keyword of a batch that found anything gets highlighted
        colors.update({keyword: get_keyword_color(keyword) for keyword in action.keywords})
        colors.update({item.keyword: item.color for item in action.items})
    ids = {item.id for item in action.items}
    return replace(
        state,
        gallery=action.items,
        gallery_generation=action.generation,
        is_searching=False,
        keyword_colors=colors,
        sizes={image_id: size for image_id, size in state.sizes.items() if image_id in ids},
        positions=(),
        canvas_height=0,
        selected_index=_remap_selection(state, action.items),
        last_keyword=action.keywords[-1] if action.items and action.keywords else state.last_keyword,
    )


def reduce(state: WriterState, action) -> WriterState:
    """Pure state transition."""
    if isinstance(action, TextChanged):
        return replace(state, text=action.text, keywords=action.keywords)

    if isinstance(action, SearchStarted):
        if action.generation < state.search_generation:
            return state
        return replace(state, search_generation=action.generation, is_searching=True)

    if isinstance(action, SearchCancelled):
        if action.generation < state.search_generation:
            return state
        return replace(state, search_generation=action.generation, is_searching=False)

    if isinstance(action, GalleryReplaced):
        return _replace_gallery(state, action)

    if isinstance(action, SizeResolved):
        if action.generation != state.gallery_generation:
            return state
        if not any(item.id == action.image_id for item in state.gallery):
            return state
        if state.sizes.get(action.image_id) == action.size:
            return state
        sizes = dict(state.sizes)
        sizes[action.image_id] = action.size
        # a size change invalidates the current layout
        return replace(state, sizes=sizes, positions=())

    if isinstance(action, LayoutComputed):
        if action.generation != state.gallery_generation or len(action.positions) != len(state.gallery):
            return state
        return replace(
            state,
            positions=action.positions,
            canvas_width=action.canvas_width,
            canvas_height=action.canvas_height,
        )

    if isinstance(action, NotificationShown):
        return replace(state, notification=action.notification)

    if isinstance(action, NotificationDismissed):
        if state.notification is None or state.notification.id != action.notification_id:
            return state
        return replace(state, notification=None)

    if isinstance(action, ItemSelected):
        if not 0 <= action.index < len(state.gallery):
            return state
        return replace(state, selected_index=action.index)

    if isinstance(action, SelectionCleared):
        return replace(state, selected_index=-1)

    if isinstance(action, ViewportChanged):
        return replace(state, viewport=action.viewport)

    raise TypeError(f"Unknown action: {type(action).__name__}")


Listener = Callable[[WriterState, object], None]


class WriterStore:
    """Single owner of the writer state."""

    def __init__(self, state: Optional[WriterState] = None):
        self._state = state or WriterState()
        self._listeners: List[Listener] = []

    @property
    def state(self) -> WriterState:
        return self._state

    def dispatch(self, action) -> WriterState:
        previous = self._state
        self._state = reduce(previous, action)
        if self._state is not previous:
            for listener in list(self._listeners):
                listener(self._state, action)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
