"""
Source-to-target identifier remapping.

Source documents are keyed by 12-byte ObjectIds (24 hex characters); target
rows are keyed by 16-byte UUIDs. The mapping appends eight zero digits and
formats the result as 8-4-4-4-12 groups:

    507f1f77bcf86cd799439011 -> 507f1f77-bcf8-6cd7-9943-901100000000

The mapping is never stored. Every primary and foreign key is recomputed from
the source value, so it must stay a pure append-and-format with no hashing,
clock or randomness.

The domain is the lower-case hex form the source store emits; upper-case
input is rejected so that distinct accepted inputs always map to distinct
outputs.
"""

import re
from typing import Any, Optional

from bson import ObjectId

from .exceptions import InvalidIdentifierError

SOURCE_ID_LENGTH = 24
TARGET_HEX_LENGTH = 32
PADDING = '0' * (TARGET_HEX_LENGTH - SOURCE_ID_LENGTH)

_SOURCE_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")
_TARGET_ID_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$')


def is_source_id(value: Any) -> bool:
    """Return True if value is an ObjectId or a 24-character lower-case hex string."""
    if isinstance(value, ObjectId):
        return True
    return isinstance(value, str) and bool(_SOURCE_ID_PATTERN.fullmatch(value))


def remap(source_id: Any) -> str:
    """
    Convert a source identifier into its target identifier.

    Args:
        source_id: bson ObjectId or its 24-hex string form

    Returns:
        str: Lower-case hyphenated 32-hex-digit identifier

    Raises:
        InvalidIdentifierError: If the input is not exactly 24 lower-case hex
            characters
    """
    if not is_source_id(source_id):
        raise InvalidIdentifierError(source_id)

    padded = str(source_id) + PADDING
    target_id = '-'.join((
        padded[0:8],
        padded[8:12],
        padded[12:16],
        padded[16:20],
        padded[20:32],
    ))

    # Postcondition: canonical 8-4-4-4-12 layout of 32 hex digits
    if not _TARGET_ID_PATTERN.fullmatch(target_id):
        raise InvalidIdentifierError(source_id)
    return target_id


def remap_optional(source_id: Any) -> Optional[str]:
    """Remap a reference that may legitimately be absent."""
    if source_id is None or source_id == '':
        return None
    return remap(source_id)
