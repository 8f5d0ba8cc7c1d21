from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from accord.permissions import PermissionSet

if TYPE_CHECKING:
    from typing import Any, Dict, FrozenSet, Mapping, Optional


@dataclass(frozen=True)
class PermissionOverride:
    """Channel-level allow and deny sets.  Deny beats allow."""

    allow: PermissionSet = PermissionSet()
    deny: PermissionSet = PermissionSet()

    @classmethod
    def from_document(cls, data: Any) -> Optional[PermissionOverride]:
        if not isinstance(data, dict):
            return None
        return cls(
            allow=PermissionSet.from_stored(data.get("allow")),
            deny=PermissionSet.from_stored(data.get("deny")),
        )

    def apply(self, permissions: PermissionSet) -> PermissionSet:
        return (permissions | self.allow) - self.deny


@dataclass(frozen=True)
class ChannelPermissionOverrides:
    everyone: Optional[PermissionOverride] = None
    roles: Dict[str, PermissionOverride] = field(default_factory=dict)
    members: Dict[str, PermissionOverride] = field(default_factory=dict)

    @classmethod
    def from_document(cls, data: Any) -> ChannelPermissionOverrides:
        if not isinstance(data, dict):
            return cls()
        return cls(
            everyone=PermissionOverride.from_document(data.get("everyone")),
            roles=cls._override_map(data.get("roles")),
            members=cls._override_map(data.get("members")),
        )

    @staticmethod
    def _override_map(data: Any) -> Dict[str, PermissionOverride]:
        if not isinstance(data, dict):
            return {}
        overrides = {}
        for key, value in data.items():
            override = PermissionOverride.from_document(value)
            if override:
                overrides[key] = override
        return overrides


@dataclass(frozen=True)
class Channel:
    id: str
    name: str
    type: str = "text"
    is_private: bool = False
    allowed_role_ids: FrozenSet[str] = frozenset()
    overrides: ChannelPermissionOverrides = ChannelPermissionOverrides()

    @classmethod
    def from_document(cls, channel_id: str, data: Mapping[str, Any]) -> Channel:
        allowed = data.get("allowedRoleIds")
        if isinstance(allowed, (list, tuple, set, frozenset)):
            allowed_role_ids = frozenset(r for r in allowed if isinstance(r, str) and r)
        else:
            allowed_role_ids = frozenset()
        return cls(
            id=channel_id,
            name=str(data.get("name") or ""),
            type=str(data.get("type") or "text"),
            is_private=data.get("isPrivate") is True,
            allowed_role_ids=allowed_role_ids,
            overrides=ChannelPermissionOverrides.from_document(data.get("permissionOverrides")),
        )


class ChannelNotFoundException(Exception):
    """Attempt to operate on a channel not found in the storage layer."""

    def __init__(self, server_id: str, channel_id: str) -> None:
        super().__init__(f"Channel {channel_id} not found in server {server_id}")
