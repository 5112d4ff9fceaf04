import aiohttp
from typing import List, Dict, Any, Optional, Tuple

from config.settings import UnsplashConfig, get_settings
from models.gallery import ImageRecord
from services.exceptions import ImageSearchError, UpstreamUnavailableError, error_for_status
from setup_logging_optimized import get_logger

logger = get_logger(__name__)

UNSPLASH_PROFILE_BASE = "https://unsplash.com/@"

# Messages surfaced to the writer for upstream failures
UPSTREAM_ERROR_MESSAGES = {
    401: "Unauthorized. Invalid Unsplash API key.",
    403: "Access denied. Please check your Unsplash API key and permissions.",
    429: "Rate limit exceeded. Please try again later.",
}
DEFAULT_UPSTREAM_ERROR = "Failed to fetch images from Unsplash"


def referral_marker(utm_source: str) -> str:
    return f"utm_source={utm_source}&utm_medium=referral"


def add_referral(url: Optional[str], utm_source: str) -> Optional[str]:
    """Append the attribution referral marker to ``url`` exactly once.

    Applying it to an already marked URL returns the URL unchanged.
    """
    if not url:
        return url
    if f"utm_source={utm_source}" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{referral_marker(utm_source)}"


def sanitize_photo(photo: Dict[str, Any], utm_source: str) -> ImageRecord:
    """Reduce a raw Unsplash photo object to the fields the writer needs."""
    user = photo.get("user") or {}
    links = photo.get("links") or {}
    username = user.get("username") or None
    profile = (user.get("links") or {}).get("html") or None

    # Synthesize the profile link from the username when upstream omits it
    if not profile and username:
        profile = f"{UNSPLASH_PROFILE_BASE}{username}?{referral_marker(utm_source)}"

    return ImageRecord(
        id=str(photo["id"]),
        url=(photo.get("urls") or {}).get("regular", ""),
        alt_text=photo.get("alt_description") or photo.get("description") or "Unsplash image",
        photographer_name=user.get("name") or "Unknown",
        photographer_username=username,
        photographer_profile_url=add_referral(profile, utm_source),
        download_tracking_ref=links.get("download_location") or None,
    )


class UnsplashService:
    """Service for searching photos on the Unsplash API and tracking downloads.

    Usable directly (one HTTP session per call) or as an async context
    manager sharing a single session.
    """

    def __init__(self, config: Optional[UnsplashConfig] = None):
        self.config = config or get_settings().unsplash
        self.session: Optional[aiohttp.ClientSession] = None
        self.headers = {
            "Authorization": f"Client-ID {self.config.access_key}",
            "Accept-Version": "v1",
        }
        if not self.is_available:
            logger.warning("UNSPLASH_ACCESS_KEY not set. Image search will be disabled.")

    @property
    def is_available(self) -> bool:
        return self.config.is_configured

    async def __aenter__(self):
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        self.session = aiohttp.ClientSession(timeout=timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Tuple[int, Any]:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        session = self.session or aiohttp.ClientSession(timeout=timeout)
        try:
            async with session.get(url, headers=self.headers, params=params) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = {"message": await response.text()}
                return response.status, data
        except aiohttp.ClientError as e:
            raise UpstreamUnavailableError(str(e), cause=e) from e
        finally:
            if session is not self.session:
                await session.close()

    async def search_photos(self, keyword: str) -> List[ImageRecord]:
        """Search Unsplash for ``keyword`` and return sanitized records."""
        params = {
            "query": keyword,
            "per_page": self.config.per_page,
            "orientation": self.config.orientation,
            "content_filter": self.config.content_filter,
        }
        status, data = await self._get_json(self.config.api_url, params=params)

        if status != 200:
            message = UPSTREAM_ERROR_MESSAGES.get(status, DEFAULT_UPSTREAM_ERROR)
            logger.warning(f"Unsplash API error for '{keyword}': {status} - {data}")
            raise error_for_status(status, message, context={"details": data})

        results = (data or {}).get("results") or []
        images = []
        for photo in results:
            try:
                images.append(sanitize_photo(photo, self.config.utm_source))
            except (KeyError, ValueError) as e:
                logger.debug(f"Skipping malformed Unsplash photo: {e}")
        logger.info(f"Unsplash search '{keyword}' returned {len(images)} images")
        return images

    async def track_download(self, download_location: str) -> Any:
        """Notify Unsplash that a photo was downloaded, as the API terms require."""
        status, data = await self._get_json(download_location)
        if status != 200:
            raise error_for_status(status, "Failed to track download", context={"details": data})
        return data
