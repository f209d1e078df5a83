"""Photo re-compression search that makes an embedded-photo vCard fit a QR code.

The search walks a fixed, bounded ladder of (max dimension, quality) pairs,
re-encoding the original photo for each pair until the serialized vCard fits
the capacity of the requested error-correction level. The first pair that
fits wins.
"""

import dataclasses
import logging
from dataclasses import dataclass

from contact_qr import (
    DEFAULT_PHOTO_MAX_DIM,
    DEFAULT_PHOTO_QUALITY,
    PHOTO_MAX_DIM_RANGE,
    PHOTO_QUALITY_RANGE,
)
from contact_qr.capacity import ErrorCorrectionLevel
from contact_qr.image_utils import (
    BasePhotoCompressor,
    PhotoReencodeError,
    PillowPhotoCompressor,
    data_url_to_bytes,
)
from contact_qr.vcard import ContactFields, VCardDocument, build_vcard

logger = logging.getLogger(__name__)


def _clamp(value, low, high):
    return max(low, min(high, value))


# Fixed ladders appended after the values derived from the current settings
DIMENSION_LADDER = [512, 448, 384, 352, 320, 288, 256, 224, 192, 160, 144, 128, 96, 80, 64]
QUALITY_LADDER = [0.6, 0.55, 0.5, 0.45, 0.4]

# Three derived values precede each fixed ladder
MAX_CANDIDATES = (len(DIMENSION_LADDER) + 3) * (len(QUALITY_LADDER) + 3)


@dataclass(frozen=True)
class CompressionCandidate:
    """A (max dimension, quality) pair used to re-encode the photo."""

    max_dimension: int
    quality: float


@dataclass
class FitResult:
    """Outcome of a fit search.

    On success ``document``, ``level`` and ``candidate`` are set. On failure
    ``document`` and ``candidate`` are ``None``.
    """

    level: ErrorCorrectionLevel
    document: VCardDocument | None = None
    candidate: CompressionCandidate | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.document is not None


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------

class PhotoSession:
    """Photo state shared by everything in one contact-editing session.

    Holds the original photo bytes, the currently embedded (possibly
    re-compressed) data URL, the configured compression settings and the
    flag that keeps a second search from starting while one is running.
    """

    def __init__(
        self,
        max_dimension: int = DEFAULT_PHOTO_MAX_DIM,
        quality: float = DEFAULT_PHOTO_QUALITY,
    ):
        self.max_dimension = _clamp(int(max_dimension), *PHOTO_MAX_DIM_RANGE)
        self.quality = round(_clamp(float(quality), *PHOTO_QUALITY_RANGE), 2)
        self.source: bytes | None = None
        self.photo_data_url = ""
        self.searching = False

    @property
    def has_photo(self) -> bool:
        return bool(self.photo_data_url)

    @property
    def candidate(self) -> CompressionCandidate:
        return CompressionCandidate(self.max_dimension, self.quality)

    def set_photo(self, data_url: str) -> None:
        self.photo_data_url = data_url or ""

    async def load(
        self,
        source: bytes,
        compressor: BasePhotoCompressor | None = None,
    ) -> str:
        """Adopt a new original photo and encode it at the current settings.

        Raises:
            PhotoReencodeError: If the photo cannot be re-encoded. The session
                is left without a photo.
        """
        compressor = compressor or PillowPhotoCompressor()
        self.source = source
        try:
            self.set_photo(await compressor.reencode(source, self.max_dimension, self.quality))
        except PhotoReencodeError:
            self.clear()
            raise
        return self.photo_data_url

    async def recompress(self, compressor: BasePhotoCompressor | None = None) -> str:
        """Re-encode the original photo after the settings changed.

        Failures keep the current photo unchanged.
        """
        if self.source is None:
            return self.photo_data_url
        compressor = compressor or PillowPhotoCompressor()
        try:
            self.set_photo(await compressor.reencode(self.source, self.max_dimension, self.quality))
        except PhotoReencodeError as e:
            logger.warning("Recompression failed, keeping current photo: %s", e)
        return self.photo_data_url

    def original_source(self) -> bytes:
        """Original bytes, or the decoded current photo if none were kept."""
        if self.source is not None:
            return self.source
        return data_url_to_bytes(self.photo_data_url)

    def clear(self) -> None:
        self.source = None
        self.photo_data_url = ""


# ---------------------------------------------------------------------------
# Candidate ladder
# ---------------------------------------------------------------------------

def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def _ladder(values, start, bounds):
    low, high = bounds
    seen = set()
    kept = []
    for v in values:
        if v in seen or not (low <= v <= high) or v > start:
            continue
        seen.add(v)
        kept.append(v)
    return sorted(kept, reverse=True)


def dimension_candidates(start: int) -> list[int]:
    """Descending max-dimension ladder beginning at ``start``."""
    start = _clamp(int(start), *PHOTO_MAX_DIM_RANGE)
    derived = [start, _round_half_up(start * 0.85), _round_half_up(start * 0.7)]
    return _ladder(derived + DIMENSION_LADDER, start, PHOTO_MAX_DIM_RANGE)


def quality_candidates(start: float) -> list[float]:
    """Descending quality ladder beginning at ``start``, floored at 0.4."""
    start = round(_clamp(float(start), *PHOTO_QUALITY_RANGE), 2)
    derived = [start, max(0.75, start - 0.1), max(0.65, start - 0.2)]
    return _ladder([round(q, 2) for q in derived + QUALITY_LADDER], start, PHOTO_QUALITY_RANGE)


def build_candidates(max_dimension: int, quality: float) -> list[CompressionCandidate]:
    """All (dimension, quality) pairs in search order.

    Dimension is the outer loop and quality the inner one, both largest first.
    """
    return [
        CompressionCandidate(d, q)
        for d in dimension_candidates(max_dimension)
        for q in quality_candidates(quality)
    ]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class FitSearchEngine:
    """Finds compression settings that make an embedded-photo vCard fit."""

    def __init__(self, compressor: BasePhotoCompressor | None = None):
        self.compressor = compressor or PillowPhotoCompressor()

    @staticmethod
    def _with_photo(fields: ContactFields, session: PhotoSession) -> VCardDocument:
        return build_vcard(dataclasses.replace(
            fields,
            photo_data_url=session.photo_data_url,
            include_photo=True,
        ))

    async def fit(
        self,
        fields: ContactFields,
        session: PhotoSession,
        level: ErrorCorrectionLevel | str | None,
    ) -> FitResult | None:
        """Shrink the session photo until the vCard fits ``level``'s capacity.

        Candidates are probed one at a time; every probe replaces the
        session's current photo. On success the session also adopts the
        winning settings. On failure the last probed photo stays in place and
        the caller decides whether to drop the photo, weaken the level or
        report the error.

        Args:
            fields: Contact values; the photo is taken from ``session``.
            session: Shared photo state for this editing session.
            level: Requested error-correction level.

        Returns:
            The fit result, or ``None`` when a search is already running for
            this session.
        """
        level = ErrorCorrectionLevel.parse(level)
        if session.searching:
            logger.debug("Fit search already running; ignoring request")
            return None
        if not session.has_photo:
            return FitResult(level)

        capacity = level.capacity
        document = self._with_photo(fields, session)
        if document.byte_length <= capacity:
            return FitResult(level, document, session.candidate)

        try:
            source = session.original_source()
        except PhotoReencodeError as e:
            logger.warning("Session photo cannot be decoded: %s", e)
            return FitResult(level)

        session.searching = True
        attempts = 0
        try:
            for candidate in build_candidates(session.max_dimension, session.quality):
                attempts += 1
                try:
                    data_url = await self.compressor.reencode(
                        source, candidate.max_dimension, candidate.quality
                    )
                except PhotoReencodeError as e:
                    logger.debug("Candidate %s failed to re-encode: %s", candidate, e)
                    continue

                session.set_photo(data_url)
                document = self._with_photo(fields, session)
                logger.debug(
                    "Candidate %dpx q=%.2f -> %d bytes (capacity %d)",
                    candidate.max_dimension, candidate.quality,
                    document.byte_length, capacity,
                )
                if document.byte_length <= capacity:
                    session.max_dimension = candidate.max_dimension
                    session.quality = candidate.quality
                    logger.info(
                        "Photo fits level %s at %dpx q=%.2f after %d attempt(s)",
                        level.value, candidate.max_dimension, candidate.quality, attempts,
                    )
                    return FitResult(level, document, candidate, attempts)
        finally:
            session.searching = False

        logger.info("No compression setting fits level %s (%d attempts)", level.value, attempts)
        return FitResult(level, attempts=attempts)
