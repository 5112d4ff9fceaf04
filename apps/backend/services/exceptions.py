"""
Exception hierarchy for image search.

Every error raised by a search client is an ImageSearchError, which the
fetch reconciler treats as "no image for this keyword".
"""

from typing import Optional, Dict, Any


class ImageSearchError(Exception):
    """Base exception for image search failures"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        cause: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.cause = cause
        self.context = context or {}

    def __str__(self):
        parts = [super().__str__()]
        if self.status is not None:
            parts.append(f" [status {self.status}]")
        if self.cause:
            parts.append(f" (caused by: {type(self.cause).__name__}: {str(self.cause)})")
        if self.context:
            parts.append(f" Context: {self.context}")
        return "".join(parts)


class RateLimitedError(ImageSearchError):
    """Search API rate limit exceeded (HTTP 429)"""
    pass


class UnauthorizedError(ImageSearchError):
    """Credentials missing, invalid, or lacking permission (HTTP 401/403)"""
    pass


class UpstreamUnavailableError(ImageSearchError):
    """Search backend unreachable or answered with a server error"""
    pass


def error_for_status(status: int, message: str, **kwargs) -> ImageSearchError:
    """Map an HTTP status to the matching ImageSearchError subclass."""
    if status == 429:
        return RateLimitedError(message, status=status, **kwargs)
    if status in (401, 403):
        return UnauthorizedError(message, status=status, **kwargs)
    if status >= 500:
        return UpstreamUnavailableError(message, status=status, **kwargs)
    return ImageSearchError(message, status=status, **kwargs)
