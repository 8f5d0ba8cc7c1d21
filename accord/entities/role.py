from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from accord.permissions import encode_permissions, normalize_permissions

if TYPE_CHECKING:
    from typing import Any, Dict, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class Role:
    """A server role as stored.

    permissions is kept exactly as it was read (possibly sparse, legacy-keyed, or a legacy integer
    bitset).  Use normalized_permissions() or permission_bits() for anything that makes a decision.
    stored_bits is the denormalized cache field from the document and is informational only.
    """

    id: str
    name: str
    position: int = 0
    permissions: Union[int, Mapping[str, Any], None] = field(default_factory=dict)
    stored_bits: Optional[int] = None
    color: Optional[str] = None
    description: Optional[str] = None
    is_owner_role: bool = False
    is_everyone_role: bool = False
    mentionable: bool = False
    allow_mass_mentions: bool = False
    show_in_member_list: bool = True

    @classmethod
    def from_document(cls, role_id: str, data: Mapping[str, Any]) -> Role:
        name = str(data.get("name") or "").strip() or "Role"
        position = data.get("position")
        if isinstance(position, bool) or not isinstance(position, (int, float)):
            position = 0
        color = data.get("color") if isinstance(data.get("color"), str) else None
        description = data.get("description")
        if not isinstance(description, str) or not description.strip():
            description = None
        else:
            description = description.strip()
        stored_bits = data.get("permissionBits")
        if isinstance(stored_bits, bool) or not isinstance(stored_bits, int):
            stored_bits = None
        return cls(
            id=role_id,
            name=name,
            position=int(position),
            permissions=data.get("permissions"),
            stored_bits=stored_bits,
            color=color,
            description=description,
            is_owner_role=bool(data.get("isOwnerRole")),
            is_everyone_role=bool(data.get("isEveryoneRole")),
            mentionable=bool(data.get("mentionable", False)),
            allow_mass_mentions=bool(data.get("allowMassMentions", False)),
            show_in_member_list=bool(data.get("showInMemberList", True)),
        )

    def normalized_permissions(self) -> Dict[str, bool]:
        return normalize_permissions(self.permissions)

    def permission_bits(self) -> int:
        return encode_permissions(self.normalized_permissions())

    def cache_is_stale(self) -> bool:
        """Whether the stored permissionBits disagrees with the permission map."""
        return self.stored_bits != self.permission_bits()


def role_sort_key(role: Role) -> Tuple[int, str, str]:
    """Sort roles highest position first, then by name, then by id for stability."""
    return (-role.position, role.name.lower(), role.id)


class RoleNotFoundException(Exception):
    """Attempt to operate on a role not found in the storage layer."""

    def __init__(self, server_id: str, role_id: str) -> None:
        super().__init__(f"Role {role_id} not found in server {server_id}")
        self.server_id = server_id
        self.role_id = role_id


class RoleLimitExceededException(Exception):
    """Creating another role would exceed the per-server role limit."""

    def __init__(self, server_id: str, limit: int) -> None:
        super().__init__(f"Server {server_id} already has the maximum of {limit} roles")
        self.limit = limit


class OwnerRoleProtectedException(Exception):
    """The owner role cannot be deleted or have its permissions edited."""

    def __init__(self, role_id: str) -> None:
        super().__init__(f"Role {role_id} is the owner role and cannot be modified")
        self.role_id = role_id
