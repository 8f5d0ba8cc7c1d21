from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from accord.permissions import canonical_key

if TYPE_CHECKING:
    from accord.permissions import PermissionSet
    from typing import Dict, List


@dataclass(frozen=True)
class EffectivePermissions:
    """The resolved capability set of one member, in both persisted representations."""

    permissions: Dict[str, bool]
    bits: int
    is_owner: bool = False

    @classmethod
    def from_set(
        cls, permission_set: PermissionSet, is_owner: bool = False
    ) -> EffectivePermissions:
        return cls(
            permissions=permission_set.to_map(), bits=permission_set.bits, is_owner=is_owner
        )

    def has(self, key: str) -> bool:
        return self.permissions.get(canonical_key(key), False)

    def granted(self) -> Dict[str, bool]:
        """Only the capabilities that are granted."""
        return {key: True for key, value in self.permissions.items() if value}


@dataclass
class CascadeResult:
    """Outcome of recomputing the cached permissions of a group of members.

    Attributes:
        updated: Members whose cache was rewritten
        unchanged: Members whose cache already matched and was left alone
        failures: Members whose cache could not be written, mapped to the error
    """

    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    def merge(self, other: CascadeResult) -> None:
        self.updated.extend(other.updated)
        self.unchanged.extend(other.unchanged)
        self.failures.update(other.failures)

    @property
    def failed_uids(self) -> List[str]:
        return sorted(self.failures)
