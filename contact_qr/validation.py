"""Form-level checks run before a contact is exported or rendered."""

import re
from urllib.parse import urlparse

from contact_qr.sanitizer import clean
from contact_qr.vcard import ContactFields

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

PHONE_DIGITS_RANGE = (7, 15)


def is_valid_email(value: str | None) -> bool:
    if not value:
        return True
    return bool(_EMAIL_RE.match(value))


def is_valid_phone(value: str | None) -> bool:
    """7-15 digits; ``+``, spaces, dashes and other separators are ignored."""
    if not value:
        return True
    digits = re.sub(r"[^0-9]", "", value)
    low, high = PHONE_DIGITS_RANGE
    return low <= len(digits) <= high


def is_valid_website(value: str | None) -> bool:
    """An absolute http:// or https:// URL."""
    if not value:
        return True
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_contact(
    fields: ContactFields,
    hosted_url: str = "",
    use_hosted_url: bool = False,
) -> dict[str, str]:
    """Check a contact the way the entry form does.

    Returns:
        Mapping of field name to error message. Empty when everything is valid.
    """
    errors: dict[str, str] = {}

    if not (clean(fields.first_name) or clean(fields.last_name) or clean(fields.display_name)):
        errors["name"] = "Enter at least one of First, Last, or Display name"
    if not is_valid_email(clean(fields.email)):
        errors["email"] = "Enter a valid email (e.g., name@example.com)"
    if not is_valid_phone(clean(fields.phone_mobile)):
        errors["phone_mobile"] = "Enter 7–15 digits (you can include +, spaces, -)"
    if not is_valid_phone(clean(fields.phone_work)):
        errors["phone_work"] = "Enter 7–15 digits (you can include +, spaces, -)"
    if not is_valid_website(clean(fields.website)):
        errors["website"] = "Enter a valid URL starting with http:// or https://"
    if use_hosted_url and not is_valid_website(clean(hosted_url)):
        errors["hosted_url"] = "Enter a valid https:// URL to a .vcf file"

    return errors
