"""Lookup index for Busy - full ids, short ids and names."""

import bisect
import uuid
from typing import Dict, Iterable, List, Optional, Tuple

from busy_core.constants import KIND_PROJECT, KIND_TAG, VALID_KINDS, SHORT_ID_MIN_LENGTH
from busy_core.exceptions import AmbiguousError, NotFoundError, ValidationError
from busy_core.ids import normalize_prefix

__all__ = ["Index"]

# Sorts after every hex digit, closes a prefix range for bisect
_PREFIX_END = "~"


class Index:
    """Back-references into the Store's collections.

    For every entity kind the index keeps:
        - id -> position in the Store's list
        - sorted bare-hex ids, for short id resolution
        - name -> id (projects and tags only)

    The index never holds entities. The Store must call add() after an
    insert, rename() when a name changes and rebuild() after anything that
    shifts positions.
    """

    def __init__(self) -> None:
        self._positions: Dict[str, Dict[uuid.UUID, int]] = {kind: {} for kind in VALID_KINDS}
        self._keys: Dict[str, List[str]] = {kind: [] for kind in VALID_KINDS}
        self._names: Dict[str, Dict[str, uuid.UUID]] = {KIND_PROJECT: {}, KIND_TAG: {}}

    def rebuild(self, kind: str, entities: Iterable) -> None:
        """Recompute every table for kind from the Store's current list."""
        _check_kind(kind)
        positions: Dict[uuid.UUID, int] = {}
        names: Dict[str, uuid.UUID] = {}

        for position, entity in enumerate(entities):
            positions[entity.id] = position
            if kind in self._names:
                names[entity.name] = entity.id

        self._positions[kind] = positions
        self._keys[kind] = sorted(entity_id.hex for entity_id in positions)
        if kind in self._names:
            self._names[kind] = names

    def add(self, kind: str, entity, position: int) -> None:
        _check_kind(kind)
        self._positions[kind][entity.id] = position
        bisect.insort(self._keys[kind], entity.id.hex)
        if kind in self._names:
            self._names[kind][entity.name] = entity.id

    def rename(self, kind: str, entity_id: uuid.UUID, old_name: str, new_name: str) -> None:
        names = self._names[kind]
        if names.get(old_name) == entity_id:
            del names[old_name]
        names[new_name] = entity_id

    def position(self, kind: str, entity_id: uuid.UUID) -> Optional[int]:
        _check_kind(kind)
        return self._positions[kind].get(entity_id)

    def lookup_by_name(self, name: str, kind: str) -> Optional[uuid.UUID]:
        """Get the id of the project or tag called name (case-sensitive)."""
        if kind not in self._names:
            raise ValidationError(f"Entities of kind '{kind}' have no names")
        return self._names[kind].get(name)

    def candidates(self, short_id: str, kind: str) -> List[uuid.UUID]:
        """All live ids of kind whose hex form starts with short_id."""
        _check_kind(kind)
        prefix = normalize_prefix(short_id)
        keys = self._keys[kind]
        lo, hi = self._prefix_range(keys, prefix)
        return [uuid.UUID(hex=key) for key in keys[lo:hi]]

    def resolve(self, short_id: str, kind: str) -> uuid.UUID:
        """Resolve a short id (any prefix of the id's hex form) to a full id.

        Raises:
            ValidationError: If short_id is empty
            NotFoundError: If nothing of kind matches
            AmbiguousError: If more than one entity matches
        """
        if not normalize_prefix(short_id):
            raise ValidationError("Short id can't be empty")

        matches = self.candidates(short_id, kind)
        if not matches:
            raise NotFoundError(f"No {kind} matches id '{short_id}'")
        if len(matches) > 1:
            raise AmbiguousError(short_id, [str(m) for m in matches])
        return matches[0]

    def short_id(self, entity_id: uuid.UUID, kind: str, min_length: int = SHORT_ID_MIN_LENGTH) -> str:
        """Shortest prefix of entity_id that resolves uniquely, for display.

        Raises:
            NotFoundError: If entity_id is not indexed under kind
        """
        _check_kind(kind)
        keys = self._keys[kind]
        key = entity_id.hex
        i = bisect.bisect_left(keys, key)
        if i >= len(keys) or keys[i] != key:
            raise NotFoundError(f"No {kind} with id {entity_id}")

        shared = 0
        for neighbour in (i - 1, i + 1):
            if 0 <= neighbour < len(keys):
                shared = max(shared, _common_prefix_length(key, keys[neighbour]))

        return key[: max(shared + 1, min_length)]

    @staticmethod
    def _prefix_range(keys: List[str], prefix: str) -> Tuple[int, int]:
        lo = bisect.bisect_left(keys, prefix)
        hi = bisect.bisect_left(keys, prefix + _PREFIX_END)
        return lo, hi


def _check_kind(kind: str) -> None:
    if kind not in VALID_KINDS:
        raise ValidationError(f"Invalid entity kind: {kind}. Must be one of {VALID_KINDS}")


def _common_prefix_length(a: str, b: str) -> int:
    length = 0
    for x, y in zip(a, b):
        if x != y:
            break
        length += 1
    return length
