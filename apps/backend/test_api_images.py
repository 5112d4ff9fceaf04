import aiohttp
import pytest
from fastapi.testclient import TestClient

from api.requests.api_images import get_unsplash_service
from api.writer_server import create_app
from models.requests import ErrorResponse
from services.exceptions import UpstreamUnavailableError, error_for_status

from conftest import make_record


class FakeUnsplashService:
    def __init__(self, available=True, images=None, error=None):
        self.is_available = available
        self.images = images or []
        self.error = error
        self.searched = []
        self.tracked = []

    async def search_photos(self, keyword):
        self.searched.append(keyword)
        if self.error:
            raise self.error
        return self.images

    async def track_download(self, download_location):
        self.tracked.append(download_location)
        if self.error:
            raise self.error
        return {"url": "https://images.unsplash.com/photo-abc"}


@pytest.fixture
def service():
    return FakeUnsplashService(images=[make_record("abc")])


@pytest.fixture
def client(service):
    app = create_app()
    app.dependency_overrides[get_unsplash_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_returns_sanitized_images(client, service):
    response = client.get("/api/images", params={"keyword": " ocean "})

    assert response.status_code == 200
    assert service.searched == ["ocean"]
    image = response.json()["images"][0]
    assert image["id"] == "abc"
    assert image["alt_description"] == "photo abc"
    assert image["photographer_profile"].endswith("utm_source=zen-writing&utm_medium=referral")
    assert image["download_location"] == "https://api.unsplash.com/photos/abc/download"
    assert "X-Request-ID" in response.headers


@pytest.mark.parametrize("params", [{}, {"keyword": ""}, {"keyword": "   "}])
def test_search_requires_keyword(client, service, params):
    response = client.get("/api/images", params=params)
    assert response.status_code == 400
    assert response.json() == {"error": "Keyword is required"}
    assert service.searched == []


def test_search_without_key(client, service):
    service.is_available = False
    response = client.get("/api/images", params={"keyword": "ocean"})
    assert response.status_code == 500
    assert response.json() == {"error": "Unsplash API key not configured"}


def test_upstream_status_is_relayed(client, service):
    service.error = error_for_status(
        429, "Rate limit exceeded. Please try again later.", context={"details": {"errors": ["Rate Limit Exceeded"]}}
    )
    response = client.get("/api/images", params={"keyword": "ocean"})

    assert response.status_code == 429
    assert response.json() == {
        "error": "Rate limit exceeded. Please try again later.",
        "details": {"errors": ["Rate Limit Exceeded"]},
    }


def test_transport_failure_is_internal_error(client, service):
    cause = aiohttp.ClientConnectionError("connection refused")
    service.error = UpstreamUnavailableError(str(cause), cause=cause)
    response = client.get("/api/images", params={"keyword": "ocean"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error", "message": "connection refused"}


def test_track_download(client, service):
    response = client.post("/api/track-download", json={"download_location": "https://api.unsplash.com/photos/abc/download"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"url": "https://images.unsplash.com/photo-abc"}}
    assert service.tracked == ["https://api.unsplash.com/photos/abc/download"]


def test_track_download_requires_location(client):
    response = client.post("/api/track-download", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "download_location is required"}


def test_track_download_upstream_error(client, service):
    service.error = error_for_status(404, "Failed to track download", context={"details": {"errors": ["Not found"]}})
    response = client.post("/api/track-download", json={"download_location": "https://api.unsplash.com/photos/x/download"})

    assert response.status_code == 404
    assert response.json() == {"error": "Failed to track download", "details": {"errors": ["Not found"]}}


def test_error_bodies_share_one_envelope(client, service):
    service.is_available = False
    for response in (
        client.get("/api/images", params={"keyword": "ocean"}),
        client.post("/api/track-download", json={"download_location": "x"}),
        client.get("/api/images"),
    ):
        body = ErrorResponse.model_validate(response.json())
        assert body.error
