"""Photo loading, data-URL handling and JPEG re-encoding for embedded photos."""

import asyncio
import base64
import binascii
import io
import os
from abc import ABC, abstractmethod

from PIL import Image

from contact_qr import PHOTO_MAX_DIM_RANGE, PHOTO_QUALITY_RANGE
from contact_qr.vcard import split_data_url


class PhotoReencodeError(ValueError):
    """The source photo could not be decoded or re-encoded."""


# ---------------------------------------------------------------------------
# Data URLs
# ---------------------------------------------------------------------------

def bytes_to_data_url(data: bytes, mime: str = "image/jpeg") -> str:
    return f"data:{mime};base64," + base64.b64encode(data).decode("ascii")


def data_url_to_bytes(data_url: str) -> bytes:
    """Decode the base64 body of a data URL.

    Raises:
        PhotoReencodeError: If the body is not valid base64.
    """
    _, body = split_data_url(data_url)
    try:
        return base64.b64decode(body, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PhotoReencodeError(f"Invalid image data URL: {e}")


def load_photo(path: str) -> bytes:
    """Read a photo from disk and check that Pillow can decode it.

    Args:
        path: Path to the image file.

    Returns:
        The raw file bytes.

    Raises:
        FileNotFoundError: If the image file doesn't exist.
        ValueError: If the file is not a valid image.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Image not found: {path}")

    with open(path, "rb") as fh:
        data = fh.read()
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (OSError, SyntaxError, Image.DecompressionBombError) as e:
        raise ValueError(f"Could not open image '{path}': {e}")
    return data


# ---------------------------------------------------------------------------
# Re-encoding
# ---------------------------------------------------------------------------

def _clamp(value, low, high):
    return max(low, min(high, value))


def scaled_size(width: int, height: int, max_dimension: int) -> tuple[int, int]:
    """Fit (width, height) inside ``max_dimension`` keeping aspect; never upscale."""
    scale = min(1.0, max_dimension / max(width, height))
    # Half-up rounding, never below one pixel
    return (
        max(1, int(width * scale + 0.5)),
        max(1, int(height * scale + 0.5)),
    )


def reencode_jpeg(source: bytes, max_dimension: int, quality: float) -> str:
    """Downscale ``source`` and re-encode it as a JPEG data URL.

    Args:
        source: Encoded image bytes (any format Pillow reads).
        max_dimension: Longest side of the output, clamped to [64, 1024].
        quality: JPEG quality as a 0-1 fraction, clamped to [0.4, 0.95].

    Returns:
        A ``data:image/jpeg;base64,...`` URL.

    Raises:
        PhotoReencodeError: If Pillow cannot decode or encode the image.
    """
    max_dimension = _clamp(int(max_dimension), *PHOTO_MAX_DIM_RANGE)
    quality = _clamp(float(quality), *PHOTO_QUALITY_RANGE)

    try:
        with Image.open(io.BytesIO(source)) as img:
            img.load()
            if img.mode in ("RGBA", "LA") or "transparency" in img.info:
                rgba = img.convert("RGBA")
                flat = Image.new("RGB", rgba.size, (255, 255, 255))
                flat.paste(rgba, mask=rgba.getchannel("A"))
            else:
                flat = img.convert("RGB")

        size = scaled_size(flat.width, flat.height, max_dimension)
        if size != flat.size:
            flat = flat.resize(size, Image.LANCZOS)

        out = io.BytesIO()
        flat.save(out, format="JPEG", quality=int(quality * 100 + 0.5))
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise PhotoReencodeError(f"Could not re-encode photo: {e}")

    return bytes_to_data_url(out.getvalue(), "image/jpeg")


class BasePhotoCompressor(ABC):
    """Abstract base class for photo re-encoding backends."""

    @abstractmethod
    async def reencode(self, source: bytes, max_dimension: int, quality: float) -> str:
        """Re-encode a photo at the given size and quality.

        Args:
            source: Original image bytes.
            max_dimension: Longest side of the output in pixels.
            quality: Lossy quality as a 0-1 fraction.

        Returns:
            An image data URL.

        Raises:
            PhotoReencodeError: If the image cannot be processed.
        """
        ...


class PillowPhotoCompressor(BasePhotoCompressor):
    """JPEG re-encoding with Pillow, run off the event loop in a worker thread."""

    async def reencode(self, source: bytes, max_dimension: int, quality: float) -> str:
        return await asyncio.to_thread(reencode_jpeg, source, max_dimension, quality)
