"""Permission key registry helpers.

Role permissions have been written by several generations of client code.  Some documents use the
canonical registry names (``SEND_MESSAGES``), some use camelCase (``sendMessages``), and some use a
pluralized camelCase form (``viewChannels`` for ``VIEW_CHANNEL``).  Old roles may even store a raw
integer bitset.  Everything in this module funnels those shapes into one complete boolean map over
PERMISSION_KEYS, which is the only representation the rest of the engine trusts.  The integer
bitmask is derived from that map and is never read back as an independent source.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from accord.constants import PERMISSION_KEYS

if TYPE_CHECKING:
    from typing import Any, Dict, Iterable, Iterator, Tuple, Union

    StoredPermissions = Union[None, int, Mapping[str, Any]]


def camel_case(key: str) -> str:
    """Convert a canonical SCREAMING_SNAKE key to camelCase."""
    head, *rest = key.lower().split("_")
    return head + "".join(part.capitalize() for part in rest)


def pluralize(name: str) -> str:
    return name if name.endswith("s") else name + "s"


def _build_spellings() -> Tuple[Tuple[str, str, str], ...]:
    spellings = []
    for key in PERMISSION_KEYS:
        camel = camel_case(key)
        spellings.append((key, camel, pluralize(camel)))
    return tuple(spellings)


# (canonical, camel, pluralized camel) for every key, in registry order.
_SPELLINGS = _build_spellings()

BIT_POSITIONS = {key: index for index, key in enumerate(PERMISSION_KEYS)}  # type: Dict[str, int]
ALL_PERMISSIONS_MASK = (1 << len(PERMISSION_KEYS)) - 1


def key_spellings(key: str) -> Tuple[str, str, str]:
    """Return the accepted spellings of a canonical key, in lookup order."""
    return _SPELLINGS[BIT_POSITIONS[key]]


def is_permission_key(name: str) -> bool:
    return name in BIT_POSITIONS


def canonical_key(name: str) -> str:
    """Map any supported spelling of a permission name to its canonical key.

    Matching is case-sensitive and the first registry key with a matching spelling wins.  Names
    that match nothing are returned unchanged so that capabilities added by newer clients pass
    through older code instead of raising.
    """
    for spellings in _SPELLINGS:
        if name in spellings:
            return spellings[0]
    return name


def normalize_permissions(stored: StoredPermissions) -> Dict[str, bool]:
    """Produce a complete boolean map over every registry key.

    For each key, the stored map is checked under the canonical, camel, and pluralized spelling in
    that order and the first one present decides the value.  Keys that are absent default to
    False.  A legacy integer bitset is decoded directly, and None yields an all-False map.
    """
    if stored is None:
        return decode_permissions(0)
    if isinstance(stored, int) and not isinstance(stored, bool):
        return decode_permissions(stored)
    if not isinstance(stored, Mapping):
        return decode_permissions(0)

    normalized = {}
    for canonical, camel, plural in _SPELLINGS:
        value = False
        for spelling in (canonical, camel, plural):
            if spelling in stored:
                value = bool(stored[spelling])
                break
        normalized[canonical] = value
    return normalized


def encode_permissions(permissions: Mapping[str, Any]) -> int:
    """Encode a map to an integer, setting bit i for registry key i when it maps to true.

    The map is normalized first, so legacy spellings encode the same as canonical keys.
    """
    normalized = normalize_permissions(permissions)
    bits = 0
    for index, key in enumerate(PERMISSION_KEYS):
        if normalized[key]:
            bits |= 1 << index
    return bits


def decode_permissions(bits: int) -> Dict[str, bool]:
    return {key: bool((bits >> index) & 1) for index, key in enumerate(PERMISSION_KEYS)}


def merge_permission_changes(stored, changes):
    # type: (StoredPermissions, Mapping[str, Any]) -> Dict[str, bool]
    """Apply a partial update to a stored permission map.

    The result is the normalized stored map with each change applied under its canonical key.
    Changes to names outside the registry are kept as-is so a newer client's capability is not
    silently dropped by an older writer.
    """
    merged = normalize_permissions(stored)
    for name, value in changes.items():
        merged[canonical_key(name)] = bool(value)
    return merged


@dataclass(frozen=True)
class PermissionSet:
    """A set of capabilities stored as a bit vector indexed by registry position."""

    bits: int = 0

    def __post_init__(self) -> None:
        if self.bits < 0 or self.bits & ~ALL_PERMISSIONS_MASK:
            object.__setattr__(self, "bits", self.bits & ALL_PERMISSIONS_MASK)

    @classmethod
    def from_stored(cls, stored: StoredPermissions) -> PermissionSet:
        return cls(encode_permissions(normalize_permissions(stored)))

    @classmethod
    def from_keys(cls, keys: Iterable[str]) -> PermissionSet:
        bits = 0
        for key in keys:
            canonical = canonical_key(key)
            if canonical in BIT_POSITIONS:
                bits |= 1 << BIT_POSITIONS[canonical]
        return cls(bits)

    @classmethod
    def all(cls) -> PermissionSet:
        return cls(ALL_PERMISSIONS_MASK)

    def __or__(self, other: PermissionSet) -> PermissionSet:
        return PermissionSet(self.bits | other.bits)

    def __and__(self, other: PermissionSet) -> PermissionSet:
        return PermissionSet(self.bits & other.bits)

    def __sub__(self, other: PermissionSet) -> PermissionSet:
        return PermissionSet(self.bits & ~other.bits)

    def __invert__(self) -> PermissionSet:
        return PermissionSet(ALL_PERMISSIONS_MASK & ~self.bits)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        position = BIT_POSITIONS.get(canonical_key(key))
        if position is None:
            return False
        return bool((self.bits >> position) & 1)

    def __iter__(self) -> Iterator[str]:
        for index, key in enumerate(PERMISSION_KEYS):
            if (self.bits >> index) & 1:
                yield key

    def __len__(self) -> int:
        return bin(self.bits).count("1")

    def issuperset(self, other: PermissionSet) -> bool:
        return self.bits & other.bits == other.bits

    def to_map(self) -> Dict[str, bool]:
        return decode_permissions(self.bits)
