from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Mapping, Optional


@dataclass(frozen=True)
class Server:
    id: str
    name: str
    owner: Optional[str]
    default_role_id: Optional[str]

    @classmethod
    def from_document(cls, server_id: str, data: Mapping[str, Any]) -> Server:
        default_role_id = data.get("defaultRoleId")
        owner = data.get("owner")
        return cls(
            id=server_id,
            name=str(data.get("name") or ""),
            owner=owner if isinstance(owner, str) and owner else None,
            default_role_id=(
                default_role_id if isinstance(default_role_id, str) and default_role_id else None
            ),
        )


class ServerNotFoundException(Exception):
    """Attempt to operate on a server not found in the storage layer."""

    def __init__(self, server_id: str) -> None:
        super().__init__(f"Server {server_id} not found")
