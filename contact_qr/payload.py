"""Compose the final QR payload from contact fields and render options."""

import dataclasses
import logging
from dataclasses import dataclass

from contact_qr import DEFAULT_LEVEL, DEFAULT_QR_SIZE
from contact_qr.capacity import ErrorCorrectionLevel, check_capacity, fit_level
from contact_qr.fit_search import FitResult, FitSearchEngine, PhotoSession
from contact_qr.sanitizer import clean
from contact_qr.validation import is_valid_website
from contact_qr.vcard import ContactFields, VCardDocument, build_vcard

logger = logging.getLogger(__name__)


@dataclass
class QrOptions:
    """How the payload is built and rendered.

    The flags let one code path cover both the plain generator (no
    downgrade, no compression, no hosted URL) and the full-featured one.
    """

    level: str = DEFAULT_LEVEL
    size: int = DEFAULT_QR_SIZE
    dark_color: str = "#000000"
    light_color: str = "#ffffff"
    embed_photo: bool = True
    auto_downgrade: bool = True
    auto_compress: bool = True
    hosted_vcf_url: str = ""
    use_hosted_url: bool = False


@dataclass
class QrPayload:
    """Text to encode, the level to encode it with, and how it was reached."""

    text: str
    level: ErrorCorrectionLevel
    is_url: bool = False
    document: VCardDocument | None = None
    fit: FitResult | None = None

    @property
    def byte_length(self) -> int:
        return len(self.text.encode("utf-8"))


def qr_fields(fields: ContactFields, session: PhotoSession, embed_photo: bool) -> ContactFields:
    """Fields as they go into the QR code: photo forced on or stripped."""
    if embed_photo and session.has_photo:
        return dataclasses.replace(fields, photo_data_url=session.photo_data_url, include_photo=True)
    return dataclasses.replace(fields, photo_data_url="", include_photo=False)


def export_fields(fields: ContactFields, session: PhotoSession) -> ContactFields:
    """Fields as they go into a ``.vcf`` export, honouring ``include_photo``."""
    return dataclasses.replace(fields, photo_data_url=session.photo_data_url)


def _choose_level(options: QrOptions, payload_length: int) -> ErrorCorrectionLevel:
    if options.auto_downgrade:
        return fit_level(options.level, payload_length)
    return check_capacity(options.level, payload_length)


async def compose_payload(
    fields: ContactFields,
    session: PhotoSession,
    options: QrOptions,
    engine: FitSearchEngine | None = None,
) -> QrPayload:
    """Build the QR payload and pick the error-correction level for it.

    In hosted URL mode the payload is the URL itself. Otherwise it is the
    vCard, with the session photo embedded when ``options.embed_photo`` is
    set; if that vCard is over the requested level's capacity and
    ``options.auto_compress`` is set, the photo is re-compressed first.

    Args:
        fields: Contact values from the form.
        session: Photo state for this editing session.
        options: Payload and render options.
        engine: Fit search to use; a Pillow-backed one by default.

    Returns:
        The payload ready for rendering.

    Raises:
        ValueError: If hosted URL mode is on and the URL is not http(s).
        CapacityExceededError: If the payload fits no allowed level.
    """
    hosted_url = clean(options.hosted_vcf_url)
    if options.use_hosted_url and hosted_url:
        if not is_valid_website(hosted_url):
            raise ValueError(f"Hosted vCard URL must be http:// or https://: {hosted_url}")
        level = _choose_level(options, len(hosted_url.encode("utf-8")))
        return QrPayload(hosted_url, level, is_url=True)

    embed = options.embed_photo and session.has_photo
    document = build_vcard(qr_fields(fields, session, embed))

    fit = None
    requested = ErrorCorrectionLevel.parse(options.level)
    if embed and options.auto_compress and document.byte_length > requested.capacity:
        engine = engine or FitSearchEngine()
        fit = await engine.fit(fields, session, requested)
        # The search replaced the session photo; rebuild from what it left
        document = build_vcard(qr_fields(fields, session, embed))

    level = _choose_level(options, document.byte_length)
    return QrPayload(document.text, level, document=document, fit=fit)
