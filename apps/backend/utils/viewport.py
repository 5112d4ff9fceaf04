from typing import Optional

from models.gallery import Position, Size, ViewportTransform

FOCUS_SCALE = 1.8
# Canvas inset inside the gallery viewport when padding can't be measured
DEFAULT_PADDING = 12.0


def focus_transform(
    position: Optional[Position],
    size: Optional[Size],
    viewport_width: float,
    viewport_height: float,
    padding_left: float = DEFAULT_PADDING,
    padding_top: float = DEFAULT_PADDING,
    scale: float = FOCUS_SCALE,
) -> Optional[ViewportTransform]:
    """Camera transform that centers a card in the viewport at ``scale``.

    The transform origin is the viewport center, so the final offset is
    ``viewport_center - card_center * scale`` with the card center measured
    in canvas coordinates (position + padding + size / 2). Returns None
    when the card has not been measured or placed yet.
    """
    if position is None or size is None:
        return None

    center_x = position.x + padding_left + size.width / 2
    center_y = position.y + padding_top + size.height / 2

    return ViewportTransform(
        scale=scale,
        offset_x=viewport_width / 2 - center_x * scale,
        offset_y=viewport_height / 2 - center_y * scale,
    )


def reset_transform() -> ViewportTransform:
    return ViewportTransform()
