"""
Collision-avoiding canvas layout for gallery cards.

Cards are placed largest first. Each card gets up to ``max_attempts``
random positions, then a grid scan, and finally is appended below
everything placed so far, growing the canvas. The result is a best-effort
packing with a guaranteed minimum gap between any two cards.
"""

import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.gallery import DEFAULT_SIZE, Position, Size
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

GAP = 20
GRID_STEP = 50
MAX_RANDOM_ATTEMPTS = 200
INITIAL_CANVAS_HEIGHT = 2000

# Canvas width presets keyed by viewport class
NARROW_BREAKPOINT = 640
MEDIUM_BREAKPOINT = 768
CANVAS_WIDTHS = {
    "narrow": 400,
    "medium": 600,
    "wide": 1200,
}


def viewport_class(viewport_width: Optional[float]) -> str:
    """Classify a viewport width into narrow / medium / wide."""
    if viewport_width is None:
        return "wide"
    if viewport_width < NARROW_BREAKPOINT:
        return "narrow"
    if viewport_width < MEDIUM_BREAKPOINT:
        return "medium"
    return "wide"


def canvas_width_for(viewport_width: Optional[float]) -> int:
    return CANVAS_WIDTHS[viewport_class(viewport_width)]


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def collides(self, other: "Rect", gap: float) -> bool:
        """True when the gap-inflated rectangles overlap on both axes.

        Rectangles exactly ``gap`` apart do not collide.
        """
        horizontal = not (self.x + self.width + gap <= other.x or self.x >= other.x + other.width + gap)
        vertical = not (self.y + self.height + gap <= other.y or self.y >= other.y + other.height + gap)
        return horizontal and vertical


@dataclass
class LayoutResult:
    positions: List[Position]
    canvas_width: float
    canvas_height: float


@dataclass
class LayoutEngine:
    canvas_width: float = CANVAS_WIDTHS["wide"]
    canvas_height: float = INITIAL_CANVAS_HEIGHT
    gap: float = GAP
    grid_step: float = GRID_STEP
    max_attempts: int = MAX_RANDOM_ATTEMPTS
    rng: random.Random = field(default_factory=random.Random)

    def layout(self, sizes: Sequence[Optional[Size]]) -> LayoutResult:
        """Place one card per size; positions come back in input order."""
        height = self.canvas_height
        placed: List[Rect] = []
        positions: List[Optional[Position]] = [None] * len(sizes)

        resolved = [size or DEFAULT_SIZE for size in sizes]
        # sorted() is stable, so equal areas keep their input order
        order = sorted(range(len(resolved)), key=lambda i: resolved[i].area, reverse=True)

        for index in order:
            size = resolved[index]
            rect = self._random_slot(size, height, placed) or self._grid_slot(size, height, placed)
            if rect is None:
                lowest = max([height] + [r.bottom for r in placed])
                rect = Rect(self.gap, lowest + self.gap, size.width, size.height)
                height = rect.bottom + self.gap
                logger.debug(f"Canvas grown to {height} to fit card {index}")
            placed.append(rect)
            positions[index] = Position(rect.x, rect.y)

        return LayoutResult(positions=positions, canvas_width=self.canvas_width, canvas_height=height)

    def _random_slot(self, size: Size, height: float, placed: List[Rect]) -> Optional[Rect]:
        span_x = self.canvas_width - size.width - self.gap * 2
        span_y = height - size.height - self.gap * 2
        if span_x < 0 or span_y < 0:
            return None
        for _ in range(self.max_attempts):
            candidate = Rect(
                self.rng.random() * span_x + self.gap,
                self.rng.random() * span_y + self.gap,
                size.width,
                size.height,
            )
            if not any(candidate.collides(rect, self.gap) for rect in placed):
                return candidate
        return None

    def _grid_slot(self, size: Size, height: float, placed: List[Rect]) -> Optional[Rect]:
        y = self.gap
        while y < height - size.height - self.gap:
            x = self.gap
            while x < self.canvas_width - size.width - self.gap:
                candidate = Rect(x, y, size.width, size.height)
                if not any(candidate.collides(rect, self.gap) for rect in placed):
                    return candidate
                x += self.grid_step
            y += self.grid_step
        return None


def calculate_masonry_layout(
    sizes: Sequence[Optional[Size]],
    viewport_width: Optional[float] = None,
    rng: Optional[random.Random] = None,
) -> LayoutResult:
    """Lay out cards on a canvas sized for ``viewport_width``."""
    engine = LayoutEngine(canvas_width=canvas_width_for(viewport_width), rng=rng or random.Random())
    return engine.layout(sizes)
