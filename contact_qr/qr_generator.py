"""Render payloads as QR code images."""

import os

import qrcode
from qrcode.exceptions import DataOverflowError
from PIL import Image

from contact_qr import DEFAULT_QR_SIZE, QR_SIZE_RANGE
from contact_qr.capacity import ErrorCorrectionLevel

_QRCODE_LEVELS = {
    ErrorCorrectionLevel.L: qrcode.constants.ERROR_CORRECT_L,
    ErrorCorrectionLevel.M: qrcode.constants.ERROR_CORRECT_M,
    ErrorCorrectionLevel.Q: qrcode.constants.ERROR_CORRECT_Q,
    ErrorCorrectionLevel.H: qrcode.constants.ERROR_CORRECT_H,
}


class RenderError(ValueError):
    """The QR renderer could not encode the payload."""


def clamp_size(size: int | None) -> int:
    low, high = QR_SIZE_RANGE
    return max(low, min(high, int(size or DEFAULT_QR_SIZE)))


def render_qr(
    data: str,
    level: ErrorCorrectionLevel | str = ErrorCorrectionLevel.M,
    size: int = DEFAULT_QR_SIZE,
    dark_color: str = "#000000",
    light_color: str = "#ffffff",
) -> Image.Image:
    """Render a payload as a square QR code image.

    Args:
        data: The vCard text or URL to encode.
        level: Error-correction level to encode with.
        size: Output image size in pixels (square), clamped to [128, 1024].
        dark_color: Module colour, e.g. ``"#000000"``.
        light_color: Background colour, e.g. ``"#ffffff"``.

    Returns:
        PIL Image of the QR code at the requested size.

    Raises:
        RenderError: If the payload is empty, larger than the level's byte
            capacity, or rejected by the QR encoder.
    """
    level = ErrorCorrectionLevel.parse(level)
    if not data:
        raise RenderError("QR data cannot be empty.")

    payload_length = len(data.encode("utf-8"))
    if payload_length > level.capacity:
        raise RenderError(
            f"QR data too long ({payload_length} bytes). "
            f"Maximum is {level.capacity} bytes with error correction level {level.value}."
        )

    qr = qrcode.QRCode(
        error_correction=_QRCODE_LEVELS[level],
        box_size=10,
        border=4,
    )
    try:
        qr.add_data(data)
        qr.make(fit=True)
        qr_image = qr.make_image(fill_color=dark_color, back_color=light_color)
    except (DataOverflowError, ValueError) as e:
        raise RenderError(f"Failed to render QR: {e}")

    size = clamp_size(size)
    qr_image = qr_image.get_image().convert("RGB")
    return qr_image.resize((size, size), Image.NEAREST)


def save_qr_png(qr_image: Image.Image, output_path: str) -> str:
    """Save a rendered QR code as PNG and return the path written."""
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    qr_image.save(output_path, "PNG")
    return output_path
