"""vCard 3.0 serialization with RFC 2426 line folding.

Builds the text record that is both exported as a ``.vcf`` file and encoded
into the QR code. Names, organization, title, address and note are escaped;
phone numbers, email and website are passed through as already-clean tokens.
"""

import os
import re
from dataclasses import dataclass

from contact_qr import VCARD_LINE_LIMIT
from contact_qr.sanitizer import clean, escape_value

VCARD_MIME_TYPE = "text/vcard;charset=utf-8"
CRLF = "\r\n"

_JPEG_META_RE = re.compile(r"image/jpeg", re.IGNORECASE)


@dataclass
class ContactFields:
    """Raw contact values as entered by the user."""

    first_name: str = ""
    last_name: str = ""
    display_name: str = ""
    organization: str = ""
    title: str = ""
    phone_mobile: str = ""
    phone_work: str = ""
    email: str = ""
    website: str = ""
    street: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    note: str = ""
    # data:<mime>;base64,<body>
    photo_data_url: str = ""
    include_photo: bool = False

    @property
    def has_address(self) -> bool:
        return any(
            clean(part)
            for part in (self.street, self.city, self.region, self.postal_code, self.country)
        )


@dataclass(frozen=True)
class VCardDocument:
    """A serialized vCard as its physical (already folded) lines."""

    lines: tuple[str, ...]

    @property
    def text(self) -> str:
        return CRLF.join(self.lines)

    @property
    def byte_length(self) -> int:
        return len(self.text.encode("utf-8"))

    def __str__(self) -> str:
        return self.text


# ---------------------------------------------------------------------------
# Line folding
# ---------------------------------------------------------------------------

def fold_line(line: str, limit: int = VCARD_LINE_LIMIT) -> list[str]:
    """Fold a content line into physical lines of at most ``limit`` characters.

    The first chunk holds ``limit`` characters; each continuation line is a
    single space followed by up to ``limit - 1`` characters.
    """
    if len(line) <= limit:
        return [line]

    parts = [line[:limit]]
    offset = limit
    while offset < len(line):
        parts.append(" " + line[offset:offset + limit - 1])
        offset += limit - 1
    return parts


def unfold_lines(lines: list[str]) -> list[str]:
    """Join continuation lines (leading space) back onto their content line."""
    unfolded: list[str] = []
    for line in lines:
        if line.startswith(" ") and unfolded:
            unfolded[-1] += line[1:]
        else:
            unfolded.append(line)
    return unfolded


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def display_name(fields: ContactFields) -> str:
    """Explicit display name, or "first last" built from the non-empty parts."""
    explicit = clean(fields.display_name)
    if explicit:
        return escape_value(explicit)
    parts = [clean(fields.first_name), clean(fields.last_name)]
    return escape_value(" ".join(p for p in parts if p))


def split_data_url(data_url: str) -> tuple[str, str]:
    """Split a data URL into its metadata prefix and base64 body."""
    meta, sep, body = data_url.partition(",")
    if not sep:
        return "", data_url
    return meta, body


def photo_property(data_url: str) -> str:
    """Build the unfolded PHOTO property line for an image data URL."""
    meta, body = split_data_url(data_url)
    kind = "JPEG" if _JPEG_META_RE.search(meta) else "PNG"
    return f"PHOTO;ENCODING=b;TYPE={kind}:{body}"


def build_vcard(fields: ContactFields) -> VCardDocument:
    """Serialize contact fields into a vCard 3.0 document.

    Optional properties are emitted only when their value is non-empty. The
    photo is embedded only when a data URL is present *and* ``include_photo``
    is set.

    Args:
        fields: Raw contact values; every value is trimmed before use.

    Returns:
        The folded document. Never fails; with no fields set the result is
        just BEGIN, VERSION, N, FN and END.
    """
    properties = [
        "BEGIN:VCARD",
        "VERSION:3.0",
        "N:" + ";".join([
            escape_value(clean(fields.last_name)),
            escape_value(clean(fields.first_name)),
            "", "", "",
        ]),
        "FN:" + display_name(fields),
    ]

    organization = clean(fields.organization)
    title = clean(fields.title)
    phone_mobile = clean(fields.phone_mobile)
    phone_work = clean(fields.phone_work)
    email = clean(fields.email)
    website = clean(fields.website)
    note = clean(fields.note)

    if organization:
        properties.append("ORG:" + escape_value(organization))
    if title:
        properties.append("TITLE:" + escape_value(title))
    if phone_mobile:
        properties.append("TEL;TYPE=CELL:" + phone_mobile)
    if phone_work:
        properties.append("TEL;TYPE=WORK,VOICE:" + phone_work)
    if email:
        properties.append("EMAIL;TYPE=INTERNET:" + email)
    if website:
        properties.append("URL:" + website)

    if fields.has_address:
        properties.append("ADR;TYPE=WORK:" + ";".join([
            "", "",
            escape_value(clean(fields.street)),
            escape_value(clean(fields.city)),
            escape_value(clean(fields.region)),
            escape_value(clean(fields.postal_code)),
            escape_value(clean(fields.country)),
        ]))

    if note:
        properties.append("NOTE:" + escape_value(note))

    if fields.photo_data_url and fields.include_photo:
        properties.append(photo_property(fields.photo_data_url))

    properties.append("END:VCARD")

    lines: list[str] = []
    for prop in properties:
        lines.extend(fold_line(prop))
    return VCardDocument(tuple(lines))


def save_vcf(document: VCardDocument, path: str) -> str:
    """Write a vCard document to disk as UTF-8 and return the path written."""
    if not path.lower().endswith(".vcf"):
        path += ".vcf"
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as fh:
        fh.write(document.text)
    return path
