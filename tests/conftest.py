import io
import struct
import zlib

import pytest
from PIL import Image

from contact_qr.fit_search import PhotoSession
from contact_qr.image_utils import BasePhotoCompressor, PhotoReencodeError, bytes_to_data_url
from contact_qr.vcard import ContactFields


def image_bytes(size=(120, 80), color=(40, 120, 200), fmt="PNG", mode="RGB") -> bytes:
    img = Image.new(mode, size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def bomb_png(width=20000, height=20000) -> bytes:
    """PNG whose header claims far more pixels than Pillow will decode."""
    def chunk(tag, data):
        crc = zlib.crc32(tag + data) & 0xFFFFFFFF
        return struct.pack(">I", len(data)) + tag + data + struct.pack(">I", crc)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"\x00") + chunk(b"IEND", b"")


def png_session(data: bytes, max_dimension=512, quality=0.8) -> PhotoSession:
    """Session holding ``data`` as both original and current photo, not re-encoded."""
    session = PhotoSession(max_dimension, quality)
    session.source = data
    session.set_photo(bytes_to_data_url(data, "image/png"))
    return session


def fake_data_url(body_length: int) -> str:
    return "data:image/jpeg;base64," + "A" * body_length


class SizedCompressor(BasePhotoCompressor):
    """Produces a data URL whose body length is computed from the candidate."""

    def __init__(self, size_for, fail_first: int = 0):
        self.size_for = size_for
        self.fail_first = fail_first
        self.calls: list[tuple[int, float]] = []

    async def reencode(self, source, max_dimension, quality):
        self.calls.append((max_dimension, quality))
        if len(self.calls) <= self.fail_first:
            raise PhotoReencodeError("unreadable")
        return fake_data_url(self.size_for(max_dimension, quality))


@pytest.fixture
def png_bytes():
    return image_bytes()


@pytest.fixture
def jane():
    return ContactFields(first_name="Jane", last_name="Doe", email="jane@example.com")
