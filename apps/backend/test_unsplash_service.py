import pytest

from config.settings import UnsplashConfig
from services.exceptions import (
    ImageSearchError,
    RateLimitedError,
    UnauthorizedError,
    UpstreamUnavailableError,
    error_for_status,
)
from services.unsplash_service import UnsplashService, add_referral, referral_marker, sanitize_photo

MARKER = "utm_source=zen-writing&utm_medium=referral"


def _photo(**overrides):
    photo = {
        "id": "abc123",
        "urls": {"regular": "https://images.unsplash.com/photo-abc?w=1080"},
        "alt_description": "waves at sunrise",
        "user": {
            "name": "Ansel Adams",
            "username": "ansel",
            "links": {"html": "https://unsplash.com/@ansel"},
        },
        "links": {"download_location": "https://api.unsplash.com/photos/abc123/download"},
    }
    photo.update(overrides)
    return photo


def test_referral_marker():
    assert referral_marker("zen-writing") == MARKER


@pytest.mark.parametrize("url,expected", [
    ("https://unsplash.com/@ansel", f"https://unsplash.com/@ansel?{MARKER}"),
    ("https://unsplash.com/@ansel?lang=en", f"https://unsplash.com/@ansel?lang=en&{MARKER}"),
    (None, None),
    ("", ""),
])
def test_add_referral(url, expected):
    assert add_referral(url, "zen-writing") == expected


def test_add_referral_is_idempotent():
    once = add_referral("https://unsplash.com/@ansel", "zen-writing")
    assert add_referral(once, "zen-writing") == once
    assert once.count("utm_source=") == 1


def test_sanitize_keeps_only_writer_fields():
    record = sanitize_photo(_photo(), "zen-writing")
    assert record.id == "abc123"
    assert record.url == "https://images.unsplash.com/photo-abc?w=1080"
    assert record.alt_text == "waves at sunrise"
    assert record.photographer_name == "Ansel Adams"
    assert record.photographer_username == "ansel"
    assert record.photographer_profile_url == f"https://unsplash.com/@ansel?{MARKER}"
    assert record.download_tracking_ref == "https://api.unsplash.com/photos/abc123/download"


def test_sanitize_synthesizes_profile_from_username():
    record = sanitize_photo(_photo(user={"name": "Ansel Adams", "username": "ansel"}), "zen-writing")
    assert record.photographer_profile_url == f"https://unsplash.com/@ansel?{MARKER}"


def test_sanitize_defaults():
    record = sanitize_photo({"id": 7, "urls": {"regular": "https://x/y.jpg"}}, "zen-writing")
    assert record.id == "7"
    assert record.alt_text == "Unsplash image"
    assert record.photographer_name == "Unknown"
    assert record.photographer_profile_url is None
    assert record.download_tracking_ref is None


def test_record_serializes_with_wire_names():
    payload = sanitize_photo(_photo(), "zen-writing").model_dump(by_alias=True)
    assert payload["alt_description"] == "waves at sunrise"
    assert payload["photographer_profile"].endswith(MARKER)
    assert payload["download_location"].endswith("/download")


@pytest.mark.parametrize("status,cls", [
    (429, RateLimitedError),
    (401, UnauthorizedError),
    (403, UnauthorizedError),
    (502, UpstreamUnavailableError),
    (418, ImageSearchError),
])
def test_error_for_status(status, cls):
    error = error_for_status(status, "boom")
    assert type(error) is cls
    assert error.status == status
    assert "boom" in str(error)


def test_error_str_includes_cause_and_context():
    error = ImageSearchError("search failed", cause=ValueError("bad json"), context={"keyword": "dawn"})
    assert "caused by: ValueError: bad json" in str(error)
    assert "dawn" in str(error)


def test_service_without_key_is_unavailable():
    service = UnsplashService(UnsplashConfig(access_key=""))
    assert not service.is_available
    assert UnsplashService(UnsplashConfig(access_key="key")).headers == {
        "Authorization": "Client-ID key",
        "Accept-Version": "v1",
    }


class _StubbedService(UnsplashService):
    def __init__(self, status, data):
        super().__init__(UnsplashConfig(access_key="key"))
        self.response = (status, data)
        self.requests = []

    async def _get_json(self, url, params=None):
        self.requests.append((url, params))
        return self.response


async def test_search_photos_sends_fixed_query_and_sanitizes():
    service = _StubbedService(200, {"results": [_photo(), {"urls": {}}]})
    images = await service.search_photos("ocean")

    assert [image.id for image in images] == ["abc123"]
    url, params = service.requests[0]
    assert url == "https://api.unsplash.com/search/photos"
    assert params == {"query": "ocean", "per_page": 6, "orientation": "portrait", "content_filter": "high"}


@pytest.mark.parametrize("status,message", [
    (401, "Unauthorized. Invalid Unsplash API key."),
    (403, "Access denied. Please check your Unsplash API key and permissions."),
    (429, "Rate limit exceeded. Please try again later."),
    (500, "Failed to fetch images from Unsplash"),
])
async def test_search_photos_maps_upstream_errors(status, message):
    service = _StubbedService(status, {"errors": ["nope"]})
    with pytest.raises(ImageSearchError) as info:
        await service.search_photos("ocean")
    assert info.value.status == status
    assert info.value.message == message
    assert info.value.context["details"] == {"errors": ["nope"]}
