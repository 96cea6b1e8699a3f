"""ID generation for Busy - 128-bit random identifiers."""

import uuid
from typing import Optional, Set

from busy_core.exceptions import IDCollisionError, ValidationError
from busy_core.constants import MAX_ID_RETRIES

__all__ = [
    "generate_id",
    "parse_id",
    "normalize_prefix",
]


def generate_id(
    existing_ids: Optional[Set[uuid.UUID]] = None,
    max_retries: int = MAX_ID_RETRIES,
) -> uuid.UUID:
    """Generate a random 128-bit identifier.

    Args:
        existing_ids: Set of existing IDs to check for collisions
        max_retries: Maximum attempts to generate unique ID

    Returns:
        Fresh UUID4 not present in existing_ids

    Raises:
        IDCollisionError: If unable to generate unique ID after max_retries
    """
    if existing_ids is None:
        existing_ids = set()

    for attempt in range(max_retries):
        new_id = uuid.uuid4()
        if new_id not in existing_ids:
            return new_id

    raise IDCollisionError(f"Unable to generate unique ID after {max_retries} attempts")


def parse_id(value: str) -> uuid.UUID:
    """Parse the full textual form of an identifier.

    Accepts both the hyphenated and the bare 32-hex-digit form.

    Raises:
        ValidationError: If value is not a valid identifier
    """
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(f"Invalid identifier: {value!r}")


def normalize_prefix(prefix: str) -> str:
    """Normalize a short id to the bare lowercase hex form used for lookups.

    Examples:
        >>> normalize_prefix("A1B2-C3")
        'a1b2c3'
    """
    return prefix.strip().replace("-", "").lower()
