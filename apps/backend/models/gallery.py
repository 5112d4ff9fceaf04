from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

# Display box every image card is fitted into, and the fallback size used
# when an image cannot be loaded.
MAX_CARD_WIDTH = 300
MAX_CARD_HEIGHT = 400


class ImageRecord(BaseModel):
    """A sanitized image search result.

    Field aliases match the proxy's JSON payload, so records round-trip
    through ``model_dump(by_alias=True)``.
    """
    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    id: str = Field(..., description="Upstream photo id")
    url: str = Field(..., description="Hotlinked display URL")
    alt_text: str = Field(default="Unsplash image", alias="alt_description")
    photographer_name: str = Field(default="Unknown")
    photographer_username: Optional[str] = Field(default=None)
    photographer_profile_url: Optional[str] = Field(
        default=None,
        alias="photographer_profile",
        description="Profile link carrying the referral marker exactly once"
    )
    download_tracking_ref: Optional[str] = Field(
        default=None,
        alias="download_location",
        description="Opaque reference for the download tracking call"
    )


class GalleryItem(BaseModel):
    """One image bound to the keyword that found it."""
    model_config = {"frozen": True}

    image: ImageRecord
    keyword: str
    color: str

    @property
    def id(self) -> str:
        return self.image.id


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    @property
    def area(self) -> float:
        return self.width * self.height


DEFAULT_SIZE = Size(MAX_CARD_WIDTH, MAX_CARD_HEIGHT)


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class ViewportTransform:
    """Camera over the canvas: canvas point p is drawn at p * scale + offset."""
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass(frozen=True)
class Notification:
    id: int
    message: str
    kind: str = "info"  # info | error
