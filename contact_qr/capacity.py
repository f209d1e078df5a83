"""QR error-correction levels and their payload byte capacities."""

import logging
from enum import Enum

from contact_qr import QR_BYTE_CAPACITY, DEFAULT_LEVEL

logger = logging.getLogger(__name__)


class ErrorCorrectionLevel(Enum):
    """QR error-correction levels, ordered from strongest to weakest."""

    H = "H"
    Q = "Q"
    M = "M"
    L = "L"

    @property
    def capacity(self) -> int:
        return QR_BYTE_CAPACITY[self.value]

    @classmethod
    def parse(cls, value: "ErrorCorrectionLevel | str | None") -> "ErrorCorrectionLevel":
        """Resolve a level or letter (any case). Unknown values fall back to M."""
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().upper())
        except ValueError:
            return cls(DEFAULT_LEVEL)


# Order in which levels are weakened when a payload does not fit
WEAKENING_ORDER = [
    ErrorCorrectionLevel.H,
    ErrorCorrectionLevel.Q,
    ErrorCorrectionLevel.M,
    ErrorCorrectionLevel.L,
]


class CapacityExceededError(ValueError):
    """The payload does not fit the requested level or any weaker one."""

    def __init__(self, level: ErrorCorrectionLevel, payload_length: int):
        self.level = level
        self.payload_length = payload_length
        self.capacity = level.capacity
        super().__init__(
            f"QR payload too large for level {level.value} "
            f"({payload_length} bytes, capacity {self.capacity}). "
            "Consider reducing image size/quality or disabling embedding."
        )


def capacity_of(level: ErrorCorrectionLevel | str | None) -> int:
    """Return the maximum payload size in bytes for an error-correction level."""
    return ErrorCorrectionLevel.parse(level).capacity


def check_capacity(
    level: ErrorCorrectionLevel | str | None,
    payload_length: int,
) -> ErrorCorrectionLevel:
    """Return ``level`` if the payload fits it, without trying weaker levels.

    Raises:
        CapacityExceededError: If the payload is larger than the level's capacity.
    """
    level = ErrorCorrectionLevel.parse(level)
    if payload_length > level.capacity:
        raise CapacityExceededError(level, payload_length)
    return level


def fit_level(
    requested: ErrorCorrectionLevel | str | None,
    payload_length: int,
) -> ErrorCorrectionLevel:
    """Pick the requested level, or the first weaker level that holds the payload.

    Levels are only ever weakened (H -> Q -> M -> L), never strengthened.

    Args:
        requested: The error-correction level the caller asked for.
        payload_length: Payload size in bytes.

    Returns:
        The chosen level.

    Raises:
        CapacityExceededError: If neither the requested level nor any weaker
            level can hold the payload.
    """
    requested = ErrorCorrectionLevel.parse(requested)
    if payload_length <= requested.capacity:
        return requested

    start = WEAKENING_ORDER.index(requested) + 1
    for candidate in WEAKENING_ORDER[start:]:
        if payload_length <= candidate.capacity:
            logger.info(
                "Lowered error correction %s -> %s for %d byte payload",
                requested.value, candidate.value, payload_length,
            )
            return candidate

    raise CapacityExceededError(requested, payload_length)
