"""Normalization and escaping of raw contact field values."""

import re

_NEWLINE_RE = re.compile(r"\r\n|\r|\n")


def clean(value: str | None) -> str:
    """Trim surrounding whitespace; ``None`` becomes an empty string."""
    if not value:
        return ""
    return str(value).strip()


def escape_value(value: str | None) -> str:
    """Escape a text value for use inside a vCard 3.0 property.

    Backslashes are escaped first so that the backslashes introduced for
    newlines, commas and semicolons are not escaped a second time.

    Args:
        value: Raw field text. ``None`` and empty strings are allowed.

    Returns:
        The escaped text, or an empty string for absent input.
    """
    if not value:
        return ""
    text = str(value).replace("\\", "\\\\")
    text = _NEWLINE_RE.sub(r"\\n", text)
    text = text.replace(",", "\\,")
    return text.replace(";", "\\;")
