"""
Normalization helpers: record mapping and duplicate fingerprints.
"""

from .records import (
    format_display_date,
    format_display_time,
    normalize_local_record,
    parse_instant,
)
from .signatures import (
    EventSignatures,
    identity_signature,
    normalize_image_url,
    normalize_text,
    venue_signature,
)

__all__ = [
    "EventSignatures",
    "format_display_date",
    "format_display_time",
    "identity_signature",
    "normalize_image_url",
    "normalize_local_record",
    "normalize_text",
    "parse_instant",
    "venue_signature",
]
