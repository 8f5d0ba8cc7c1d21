from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Dict, FrozenSet, Mapping, Optional


class BaseRole(Enum):
    """The legacy flat role on a member document, still authoritative for owner and admin."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def from_value(cls, value: Any) -> Optional[BaseRole]:
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class Member:
    uid: str
    base_role: Optional[BaseRole]
    role_ids: FrozenSet[str]
    last_computed_permissions: Optional[Dict[str, bool]] = None
    permission_bits: Optional[int] = None

    @classmethod
    def from_document(cls, uid: str, data: Mapping[str, Any]) -> Member:
        raw_role_ids = data.get("roleIds")
        if isinstance(raw_role_ids, (list, tuple, set, frozenset)):
            role_ids = frozenset(r for r in raw_role_ids if isinstance(r, str) and r)
        else:
            role_ids = frozenset()
        perms = data.get("perms")
        bits = data.get("permissionBits")
        return cls(
            uid=uid,
            base_role=BaseRole.from_value(data.get("role")),
            role_ids=role_ids,
            last_computed_permissions=dict(perms) if isinstance(perms, dict) else None,
            permission_bits=bits if isinstance(bits, int) and not isinstance(bits, bool) else None,
        )

    @property
    def is_owner(self) -> bool:
        return self.base_role == BaseRole.OWNER

    @property
    def is_admin(self) -> bool:
        return self.base_role == BaseRole.ADMIN


class MemberNotFoundException(Exception):
    """Attempt to operate on a member not found in the storage layer."""

    def __init__(self, server_id: str, uid: str) -> None:
        super().__init__(f"Member {uid} not found in server {server_id}")


class MemberRoleLimitExceededException(Exception):
    """Assigning another role would exceed the per-member role limit."""

    def __init__(self, uid: str, limit: int) -> None:
        super().__init__(f"Member {uid} already holds the maximum of {limit} roles")
        self.limit = limit
