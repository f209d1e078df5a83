"""Contact QR - vCard payloads that fit inside a scannable QR code."""

__version__ = "1.0.0"

# Shared constants
QR_BYTE_CAPACITY = {
    "H": 1270,
    "Q": 1660,
    "M": 2330,
    "L": 2950,
}
DEFAULT_LEVEL = "M"

QR_SIZE_RANGE = (128, 1024)
DEFAULT_QR_SIZE = 320

PHOTO_MAX_DIM_RANGE = (64, 1024)
PHOTO_QUALITY_RANGE = (0.4, 0.95)
DEFAULT_PHOTO_MAX_DIM = 512
DEFAULT_PHOTO_QUALITY = 0.8

VCARD_LINE_LIMIT = 75  # RFC 2426 content line length, in characters
