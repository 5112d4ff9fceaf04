import asyncio
import struct
import zlib
from typing import Dict, List, Optional

import pytest

from models.gallery import ImageRecord


def make_record(image_id: str, **overrides) -> ImageRecord:
    fields = {
        "id": image_id,
        "url": f"https://images.example/{image_id}.jpg",
        "alt_text": f"photo {image_id}",
        "photographer_name": "Ansel",
        "photographer_profile_url": "https://unsplash.com/@ansel?utm_source=zen-writing&utm_medium=referral",
        "download_tracking_ref": f"https://api.unsplash.com/photos/{image_id}/download",
    }
    fields.update(overrides)
    return ImageRecord(**fields)


class FakeSearchClient:
    """In-memory ImageSearchClient.

    ``results`` maps keyword -> records or an exception to raise. ``gates``
    maps keyword -> asyncio.Event the search waits on before answering.
    """

    def __init__(self, results: Optional[Dict[str, object]] = None):
        self.results = results or {}
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []
        self.tracked: List[str] = []

    async def search(self, keyword: str) -> List[ImageRecord]:
        self.calls.append(keyword)
        gate = self.gates.get(keyword)
        if gate is not None:
            await gate.wait()
        result = self.results.get(keyword, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def track_download(self, tracking_ref: str) -> None:
        self.tracked.append(tracking_ref)


@pytest.fixture
def fake_client():
    return FakeSearchClient()



def declared_png(width: int, height: int) -> bytes:
    """PNG with only a header, declaring ``width`` x ``height`` pixels."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", header) + chunk(b"IEND", b"")
