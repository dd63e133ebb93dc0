"""
Header and parameter helpers for the resumable upload protocol.
"""

from typing import Optional

UPLOAD_OFFSET_HEADER = "Upload-Offset"
UPLOAD_COMPLETE_HEADER = "Upload-Complete"
UPLOAD_INTEROP_VERSION_HEADER = "Upload-Draft-Interop-Version"


def format_sf_boolean(value: bool) -> str:
    """Encode a structured-field boolean ("?1" / "?0")."""
    return "?1" if value else "?0"


def parse_upload_offset(raw: Optional[str]) -> Optional[int]:
    """
    Parse an Upload-Offset header value.

    Args:
        raw: Header value or None

    Returns:
        The offset, or None if missing, non-numeric or negative

    Examples:
        >>> parse_upload_offset("104857600")
        104857600

        >>> parse_upload_offset("abc") is None
        True

        >>> parse_upload_offset("-5") is None
        True
    """
    if raw is None:
        return None

    raw = raw.strip()
    # Plain decimal digits only: no sign, no whitespace inside, no underscores
    if not raw.isascii() or not raw.isdigit():
        return None

    return int(raw)


def parse_content_length(raw: Optional[str]) -> Optional[int]:
    """Parse a Content-Length header value, None if missing or malformed."""
    return parse_upload_offset(raw)


def is_safe_identifier(value: Optional[str]) -> bool:
    """
    Check that a container or file identifier can be used as one path segment.

    Rejects empty values, path separators and the dot segments.
    """
    if not value:
        return False
    if value in (".", ".."):
        return False
    return "/" not in value and "\\" not in value and "\x00" not in value
